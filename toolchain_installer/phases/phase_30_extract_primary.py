from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..context import InstallContext
from ..errors import MissingArtifactError
from ..lib.archive import check_subtrees, normalize_prefixes
from ..lib.binfmt import classify_binary
from ..registry import ExecutionMode

logger = logging.getLogger(__name__)

# Written last, so an interrupted extraction leaves no marker behind.
MARKER_NAME = ".toolchain-extracted.json"


def _marker_path(ctx: InstallContext) -> Path:
    return ctx.cfg.install_root / MARKER_NAME


def _expected_marker(ctx: InstallContext, archive: Optional[Path]) -> Dict[str, Any]:
    primary = ctx.cfg.primary
    return {
        "archive": primary.artifact,
        "size": archive.stat().st_size if archive is not None and archive.exists() else None,
        "exclusions": sorted(normalize_prefixes(primary.exclusions)),
    }


def _read_marker(ctx: InstallContext) -> Optional[Dict[str, Any]]:
    p = _marker_path(ctx)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def primary_install_complete(ctx: InstallContext) -> bool:
    marker = _read_marker(ctx)
    if marker is None:
        return False

    expected = _expected_marker(ctx, ctx.artifact_path(ctx.cfg.primary.artifact))
    if marker.get("archive") != expected["archive"] or marker.get("exclusions") != expected["exclusions"]:
        return False
    # A different archive build on disk means the tree is stale.
    if expected["size"] is not None and marker.get("size") != expected["size"]:
        return False

    primary = ctx.cfg.primary
    return all((ctx.cfg.install_root / rel).exists() for rel in primary.required_subtrees)


class ExtractPrimaryPhase:
    phase_id = "30_extract_primary"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        return primary_install_complete(ctx)

    def run(self, ctx: InstallContext) -> None:
        assert ctx.extractor is not None
        cfg = ctx.cfg
        primary = cfg.primary
        root = cfg.install_root

        archive = ctx.artifact_path(primary.artifact)
        if archive is None:
            raise MissingArtifactError(primary.artifact, "was not acquired")

        marker = _marker_path(ctx)
        if marker.exists() or (root.exists() and any(root.iterdir())):
            logger.warning("Install root %s holds a stale or partial extraction; overwriting", str(root))
            if not ctx.dry_run and marker.exists():
                marker.unlink()

        report = ctx.extractor.extract(archive, root, primary.exclusions)
        logger.info(
            "Primary archive: %d files written, %d entries skipped",
            report.files_written,
            report.files_skipped,
        )

        if ctx.dry_run:
            return

        checklist = check_subtrees(root, primary.required_subtrees, primary.optional_subtrees)
        for rel in checklist.missing_optional:
            ctx.warn(subtree=rel, reason="optional_subtree_missing")
        checklist.raise_for_missing()

        marker.write_text(
            json.dumps(_expected_marker(ctx, archive), indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )

    def register(self, ctx: InstallContext) -> None:
        root = ctx.cfg.install_root
        for c in ctx.cfg.primary.components:
            target = root / c.path
            if c.binary:
                binary = root / c.binary
                present = binary.exists()
                mode = classify_binary(binary, ctx.arch) if present else ExecutionMode.UNKNOWN
            else:
                present = target.exists()
                mode = ExecutionMode.UNKNOWN
            ctx.registry.record(c.name, mode, present, path=str(target))
