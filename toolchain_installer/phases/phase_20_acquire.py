from __future__ import annotations

import logging

from ..context import InstallContext
from ..errors import DownloadError

logger = logging.getLogger(__name__)


class AcquirePhase:
    phase_id = "20_acquire"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        # The cache store itself decides reuse vs. download per artifact.
        return False

    def run(self, ctx: InstallContext) -> None:
        assert ctx.cache is not None
        for artifact in ctx.cfg.artifacts_for_host():
            try:
                ctx.artifacts[artifact.name] = ctx.cache.ensure_cached(artifact)
            except DownloadError as e:
                if not artifact.optional:
                    raise
                logger.warning("Optional artifact %s unavailable: %s", artifact.name, e)
                ctx.warn(artifact=artifact.name, reason="download_failed", error=str(e))

        skipped = [a.name for a in ctx.cfg.artifacts.values() if not a.applies_to(ctx.arch)]
        if skipped:
            logger.info("Artifacts not applicable to %s: %s", ctx.arch, ",".join(skipped))

    def register(self, ctx: InstallContext) -> None:
        return None
