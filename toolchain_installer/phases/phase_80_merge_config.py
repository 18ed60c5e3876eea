from __future__ import annotations

import logging

from ..context import InstallContext
from ..settings_store import managed_keys_current, merge_settings, peek_settings

logger = logging.getLogger(__name__)


class MergeConfigPhase:
    phase_id = "80_merge_config"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        path = ctx.cfg.settings_path
        managed = ctx.cfg.managed_settings
        if path is None or not managed:
            return True
        current = peek_settings(path)
        return current is not None and managed_keys_current(current, managed)

    def run(self, ctx: InstallContext) -> None:
        path = ctx.cfg.settings_path
        managed = ctx.cfg.managed_settings
        if path is None or not managed:
            return
        merge_settings(path, managed, dry_run=ctx.dry_run)

    def register(self, ctx: InstallContext) -> None:
        return None
