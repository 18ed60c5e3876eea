from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.assets import remove_tree
from ..registry import ExecutionMode

logger = logging.getLogger(__name__)


class InstallExtensionsPhase:
    phase_id = "70_extensions"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        return all(ext.manifest_path.exists() for ext in ctx.cfg.extensions)

    def run(self, ctx: InstallContext) -> None:
        assert ctx.extractor is not None
        for ext in ctx.cfg.extensions:
            if ext.manifest_path.exists():
                logger.info("Extension %s already installed", ext.name)
                continue

            package = ctx.artifact_path(ext.artifact)
            if package is None:
                logger.warning("Extension %s: package %s not available; skipping", ext.name, ext.artifact)
                ctx.warn(extension=ext.name, reason="artifact_unavailable")
                continue

            if ext.dest.exists():
                remove_tree(str(ext.dest), dry_run=ctx.dry_run)

            ctx.extractor.extract(package, ext.dest, (), strip_prefix=ext.strip_prefix)
            if not ctx.dry_run and not ext.manifest_path.exists():
                logger.warning("Extension %s: package has no package.json under %r", ext.name, ext.strip_prefix)
                ctx.warn(extension=ext.name, reason="manifest_missing")

    def register(self, ctx: InstallContext) -> None:
        # Extensions are interpreted code; there is no machine type to inspect.
        for ext in ctx.cfg.extensions:
            ctx.registry.record(ext.name, ExecutionMode.UNKNOWN, ext.manifest_path.exists(), path=str(ext.dest))
