from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.shell_env import apply_to_environ, path_contains, read_block, render_block, write_profile_block

logger = logging.getLogger(__name__)


class ApplyEnvironmentPhase:
    """Persist environment variables in a managed profile block and apply them to this process."""

    phase_id = "85_apply_environment"

    def _block(self, ctx: InstallContext) -> str:
        return render_block(ctx.cfg.env_variables, ctx.cfg.path_prepend)

    def is_satisfied(self, ctx: InstallContext) -> bool:
        cfg = ctx.cfg
        if cfg.profile_path is not None and read_block(cfg.profile_path) != self._block(ctx):
            return False
        if any(ctx.environ.get(k) != v for k, v in cfg.env_variables.items()):
            return False
        return all(path_contains(ctx.environ, p) for p in cfg.path_prepend)

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.cfg
        if cfg.profile_path is not None:
            write_profile_block(cfg.profile_path, self._block(ctx), dry_run=ctx.dry_run)

        if ctx.dry_run:
            return
        changed = apply_to_environ(ctx.environ, cfg.env_variables, cfg.path_prepend)
        if changed:
            logger.info("Environment updated: %s", ",".join(changed))

    def register(self, ctx: InstallContext) -> None:
        return None
