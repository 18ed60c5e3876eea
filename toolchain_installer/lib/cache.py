from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import httpx

from ..errors import DownloadError
from .command import CommandError, run_cmd

logger = logging.getLogger(__name__)

ProgressFn = Callable[[int, Optional[int]], None]
FetchFn = Callable[[str, Path, Optional[ProgressFn]], None]

_CHUNK = 1024 * 1024
_UNKNOWN_SIZE_STEP = 64 * 1024 * 1024


@dataclass(frozen=True)
class Artifact:
    """A downloadable file.

    min_bytes is an integrity heuristic, not a checksum: a cached file at or
    above it is trusted as-is, anything smaller is treated as absent.
    """

    name: str
    url: str
    dest: Path
    min_bytes: int = 0
    optional: bool = False
    arch: Optional[str] = None

    def applies_to(self, arch: str) -> bool:
        return self.arch is None or self.arch == arch


def _log_progress(name: str) -> ProgressFn:
    last = {"pct": -5, "mark": 0}

    def report(done: int, total: Optional[int]) -> None:
        if total:
            pct = min(100, done * 100 // total)
            if pct >= last["pct"] + 5:
                last["pct"] = pct - pct % 5
                logger.info("Downloading %s: %d%% (%d/%d bytes)", name, pct, done, total)
        elif done >= last["mark"] + _UNKNOWN_SIZE_STEP:
            last["mark"] = done
            logger.info("Downloading %s: %d MiB", name, done // (1024 * 1024))

    return report


def httpx_fetch(url: str, part: Path, progress: Optional[ProgressFn] = None) -> None:
    """Plain streaming GET into part (overwrites)."""

    with httpx.stream("GET", url, follow_redirects=True, timeout=httpx.Timeout(60.0, connect=15.0)) as r:
        r.raise_for_status()
        length = r.headers.get("Content-Length")
        total = int(length) if length and length.isdigit() else None
        done = 0
        with part.open("wb") as f:
            for chunk in r.iter_bytes(_CHUNK):
                f.write(chunk)
                done += len(chunk)
                if progress:
                    progress(done, total)


def curl_fetch(url: str, part: Path, progress: Optional[ProgressFn] = None) -> None:
    """Resumable transfer: curl continues an interrupted part file."""

    run_cmd(
        [
            "curl",
            "--fail",
            "--location",
            "--retry",
            "3",
            "--continue-at",
            "-",
            "--output",
            str(part),
            url,
        ],
        capture=False,
    )


def default_fetch(url: str, part: Path, progress: Optional[ProgressFn] = None) -> None:
    if shutil.which("curl"):
        try:
            curl_fetch(url, part, progress)
            return
        except CommandError as e:
            logger.warning("Resumable transfer failed (%s); falling back to plain HTTP", e.returncode)
    httpx_fetch(url, part, progress)


class CacheStore:
    """Decides reuse vs. download for each Artifact."""

    def __init__(self, fetch: Optional[FetchFn] = None, *, dry_run: bool = False) -> None:
        self._fetch = fetch or default_fetch
        self.dry_run = dry_run
        self.outcomes: List[Tuple[str, str]] = []

    def is_valid(self, artifact: Artifact) -> bool:
        p = Path(artifact.dest)
        return p.is_file() and p.stat().st_size >= artifact.min_bytes

    def ensure_cached(self, artifact: Artifact) -> Path:
        dest = Path(artifact.dest)

        if dest.exists():
            size = dest.stat().st_size
            if size >= artifact.min_bytes:
                logger.info("Reusing cached %s (%d bytes) at %s", artifact.name, size, str(dest))
                self.outcomes.append((artifact.name, "reuse"))
                return dest
            logger.warning(
                "Cached %s is undersized (%d < %d bytes); deleting and downloading again",
                artifact.name,
                size,
                artifact.min_bytes,
            )
            if not self.dry_run:
                dest.unlink()

        self.outcomes.append((artifact.name, "download"))
        if self.dry_run:
            logger.info("Would download %s -> %s", artifact.url, str(dest))
            return dest

        dest.parent.mkdir(parents=True, exist_ok=True)
        part = dest.with_name(dest.name + ".part")
        logger.info("Downloading %s from %s", artifact.name, artifact.url)
        try:
            self._fetch(artifact.url, part, _log_progress(artifact.name))
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, CommandError, OSError) as e:
            raise DownloadError(artifact.url, e) from e

        size = part.stat().st_size if part.exists() else 0
        if size < artifact.min_bytes:
            # Keep the part file; a resumable transfer can continue it next run.
            raise DownloadError(
                artifact.url,
                f"transfer incomplete ({size} bytes, expected at least {artifact.min_bytes})",
            )

        os.replace(part, dest)
        logger.info("Downloaded %s (%d bytes) to %s", artifact.name, size, str(dest))
        return dest
