from __future__ import annotations

import logging
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..errors import MissingArtifactError

logger = logging.getLogger(__name__)

ProgressFn = Callable[[int, int], None]

_CHUNK = 1024 * 1024
PROGRESS_STEP_PCT = 5


@dataclass(frozen=True)
class ExtractionReport:
    files_written: int
    files_skipped: int
    dirs_created: int = 0


@dataclass(frozen=True)
class SubtreeChecklist:
    present: List[str] = field(default_factory=list)
    missing_required: List[str] = field(default_factory=list)
    missing_optional: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing_required

    def raise_for_missing(self) -> None:
        if self.missing_required:
            raise MissingArtifactError(self.missing_required[0])


def normalize_prefixes(prefixes: Iterable[str]) -> Tuple[str, ...]:
    out: List[str] = []
    for p in prefixes:
        s = str(p).replace("\\", "/").lstrip("/").lower()
        if s and s not in out:
            out.append(s)
    return tuple(out)


def is_excluded(entry_path: str, prefixes: Sequence[str]) -> bool:
    """Case-insensitive prefix match; prefixes must already be normalized."""

    name = entry_path.replace("\\", "/").lstrip("/").lower()
    return any(name.startswith(p) for p in prefixes)


def _safe_relpath(name: str) -> Optional[PurePosixPath]:
    rel = PurePosixPath(name.replace("\\", "/"))
    if rel.is_absolute() or ".." in rel.parts:
        return None
    return rel


def _log_progress(label: str) -> ProgressFn:
    def report(done: int, total: int) -> None:
        pct = done * 100 // total if total else 100
        logger.info("Extracting %s: %d%% (%d/%d entries)", label, pct, done, total)

    return report


class ArchiveExtractor:
    """Streams zip entries into a destination tree, one entry at a time.

    Exclusions are evaluated before anything touches the filesystem, so an
    excluded subtree costs nothing but the lookup.
    """

    def __init__(self, progress: Optional[ProgressFn] = None, *, dry_run: bool = False) -> None:
        self._progress = progress
        self.dry_run = dry_run

    def extract(
        self,
        archive_path: str | Path,
        dest_root: str | Path,
        exclusions: Iterable[str] = (),
        *,
        strip_prefix: Optional[str] = None,
    ) -> ExtractionReport:
        archive = Path(archive_path)
        dest = Path(dest_root)
        prefixes = normalize_prefixes(exclusions)
        strip = (strip_prefix or "").replace("\\", "/").lstrip("/")
        if strip and not strip.endswith("/"):
            strip += "/"

        if self.dry_run and not archive.exists():
            logger.info("Would extract %s -> %s", str(archive), str(dest))
            return ExtractionReport(files_written=0, files_skipped=0)

        try:
            zf = zipfile.ZipFile(archive)
        except (OSError, zipfile.BadZipFile) as e:
            raise MissingArtifactError(str(archive), f"is not a readable archive ({e})") from e

        progress = self._progress or _log_progress(archive.name)
        written = skipped = dirs = 0

        with zf:
            entries = zf.infolist()
            total = len(entries)
            step = max(1, total * PROGRESS_STEP_PCT // 100)
            logger.info(
                "Extracting %s -> %s (%d entries, %d exclusion prefixes)",
                str(archive),
                str(dest),
                total,
                len(prefixes),
            )
            if not self.dry_run:
                dest.mkdir(parents=True, exist_ok=True)

            for n, info in enumerate(entries, start=1):
                name = info.filename
                if strip:
                    if not name.lower().startswith(strip.lower()):
                        skipped += 1
                        name = ""
                    else:
                        name = name[len(strip):]

                if name:
                    if is_excluded(name, prefixes):
                        skipped += 1
                    else:
                        rel = _safe_relpath(name)
                        if rel is None:
                            logger.warning("Skipping unsafe archive entry %r", info.filename)
                            skipped += 1
                        elif info.is_dir():
                            if not self.dry_run:
                                (dest / rel).mkdir(parents=True, exist_ok=True)
                            dirs += 1
                        else:
                            if not self.dry_run:
                                self._write_entry(zf, info, dest / rel)
                            written += 1

                if n % step == 0 or n == total:
                    progress(n, total)

        logger.info("Extracted %s: written=%d skipped=%d", archive.name, written, skipped)
        return ExtractionReport(files_written=written, files_skipped=skipped, dirs_created=dirs)

    def _write_entry(self, zf: zipfile.ZipFile, info: zipfile.ZipInfo, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_symlink():
            target.unlink()
        with zf.open(info) as src, target.open("wb") as out:
            shutil.copyfileobj(src, out, _CHUNK)
        mode = (info.external_attr >> 16) & 0o777
        if mode:
            target.chmod(mode)


def check_subtrees(
    dest_root: str | Path,
    required: Iterable[str] = (),
    optional: Iterable[str] = (),
) -> SubtreeChecklist:
    """Presence checklist for subtrees expected after extraction."""

    root = Path(dest_root)
    present: List[str] = []
    missing_required: List[str] = []
    missing_optional: List[str] = []

    for rel in required:
        (present if (root / rel).exists() else missing_required).append(rel)
    for rel in optional:
        (present if (root / rel).exists() else missing_optional).append(rel)

    for rel in present:
        logger.info("  [x] %s", rel)
    for rel in missing_required:
        logger.error("  [ ] %s (required)", rel)
    for rel in missing_optional:
        logger.warning("  [ ] %s (optional)", rel)

    return SubtreeChecklist(
        present=present,
        missing_required=missing_required,
        missing_optional=missing_optional,
    )
