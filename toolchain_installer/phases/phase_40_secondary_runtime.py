from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.assets import remove_tree
from ..lib.binfmt import classify_binary
from ..registry import ExecutionMode

logger = logging.getLogger(__name__)


class InstallSecondaryRuntimePhase:
    """Drop in the architecture-specific runtime the primary extraction left out.

    Only configured for some architectures; elsewhere the phase is a no-op.
    """

    phase_id = "40_secondary_runtime"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        spec = ctx.cfg.secondary_runtime
        if spec is None:
            return True
        binary = spec.binary_path
        return binary.exists() and classify_binary(binary, ctx.arch) == ExecutionMode.NATIVE

    def run(self, ctx: InstallContext) -> None:
        assert ctx.extractor is not None
        spec = ctx.cfg.secondary_runtime
        if spec is None:
            return

        archive = ctx.artifact_path(spec.artifact)
        if archive is None:
            logger.warning("Secondary runtime %s not available; continuing without it", spec.name)
            ctx.warn(component=spec.name, reason="artifact_unavailable")
            return

        if spec.dest.exists():
            mode = classify_binary(spec.binary_path, ctx.arch) if spec.binary_path.exists() else None
            logger.warning(
                "Replacing existing runtime at %s (mode=%s)",
                str(spec.dest),
                mode.value if mode else "incomplete",
            )
            remove_tree(str(spec.dest), dry_run=ctx.dry_run)

        ctx.extractor.extract(archive, spec.dest, (), strip_prefix=spec.strip_prefix)

        if not ctx.dry_run and not spec.binary_path.exists():
            logger.warning("Secondary runtime archive did not provide %s", spec.binary)
            ctx.warn(component=spec.name, reason="binary_missing", path=str(spec.binary_path))

    def register(self, ctx: InstallContext) -> None:
        spec = ctx.cfg.secondary_runtime
        if spec is None:
            return
        binary = spec.binary_path
        present = binary.exists()
        mode = classify_binary(binary, ctx.arch) if present else ExecutionMode.UNKNOWN
        ctx.registry.record(spec.name, mode, present, path=str(spec.dest))
