from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.assets import copy_tree
from ..registry import ExecutionMode

logger = logging.getLogger(__name__)


class WarmCachesPhase:
    """Seed the build-tool wrapper cache and the offline dependency repository.

    Sources come from the extracted primary tree; each destination gets a
    marker file once its copy completed.
    """

    phase_id = "50_warm_caches"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        return all(c.marker_path.exists() for c in ctx.cfg.caches)

    def run(self, ctx: InstallContext) -> None:
        for cache in ctx.cfg.caches:
            if cache.marker_path.exists():
                logger.info("Cache %s already warm at %s", cache.name, str(cache.dest))
                continue

            if not cache.source.exists():
                logger.warning("Cache %s: source %s missing; skipping", cache.name, str(cache.source))
                ctx.warn(cache=cache.name, reason="source_missing", path=str(cache.source))
                continue

            if cache.dest.exists():
                # May be the user's own repository; copy over it, never clear it.
                logger.info("Cache %s: merging into existing %s", cache.name, str(cache.dest))

            copy_tree(str(cache.source), str(cache.dest), dry_run=ctx.dry_run)
            if not ctx.dry_run:
                cache.marker_path.parent.mkdir(parents=True, exist_ok=True)
                cache.marker_path.touch()

    def register(self, ctx: InstallContext) -> None:
        for cache in ctx.cfg.caches:
            ctx.registry.record(cache.name, ExecutionMode.UNKNOWN, cache.marker_path.exists(), path=str(cache.dest))
