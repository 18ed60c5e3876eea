from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..context import InstallContext
from ..errors import PrerequisiteError
from .phase_30_extract_primary import primary_install_complete

logger = logging.getLogger(__name__)


def _nearest_existing(p: Path) -> Path:
    for candidate in [p, *p.parents]:
        if candidate.exists():
            return candidate
    return Path("/")


class PrereqPhase:
    phase_id = "10_prereq"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        # Cheap probes; always re-checked.
        return False

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.cfg
        search_path = ctx.environ.get("PATH")

        for tool in cfg.required_tools:
            found = shutil.which(tool, path=search_path)
            if not found:
                raise PrerequisiteError(tool, "required tool not found on PATH")
            logger.info("Found %s at %s", tool, found)

        need = cfg.min_free_bytes
        if need and not primary_install_complete(ctx):
            probe = _nearest_existing(cfg.install_root)
            free = shutil.disk_usage(probe).free
            if free < need:
                raise PrerequisiteError(
                    str(probe),
                    f"insufficient disk space ({free // (1024 * 1024)} MiB free, "
                    f"{need // (1024 * 1024)} MiB needed)",
                )
            logger.info("Disk space ok at %s (%d MiB free)", str(probe), free // (1024 * 1024))

    def register(self, ctx: InstallContext) -> None:
        return None
