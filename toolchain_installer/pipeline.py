from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from .context import InstallContext
from .errors import InstallerError, PhaseFailed

logger = logging.getLogger(__name__)


class Phase(Protocol):
    """A single re-entrant phase.

    is_satisfied() re-derives the phase's target state from disk and the
    environment; nothing is remembered between runs.
    register() records the phase's components whether it ran or was skipped.
    """

    phase_id: str

    def is_satisfied(self, ctx: InstallContext) -> bool:
        ...

    def run(self, ctx: InstallContext) -> None:
        ...

    def register(self, ctx: InstallContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_phases: List[str]
    skipped_phases: List[str]


def run_pipeline(
    *,
    ctx: InstallContext,
    phases: Sequence[Phase],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Run phases in order with skip-if-satisfied semantics.

    A fatal error halts the run as PhaseFailed; completed phases stay as they are.
    """

    ran: List[str] = []
    skipped: List[str] = []

    started = start_at is None

    for phase in phases:
        if not started:
            if phase.phase_id == start_at:
                started = True
            else:
                continue

        try:
            if (not force) and phase.is_satisfied(ctx):
                logger.info("Skipping phase %s (already satisfied)", phase.phase_id)
                skipped.append(phase.phase_id)
            else:
                logger.info("Running phase %s", phase.phase_id)
                phase.run(ctx)
                ran.append(phase.phase_id)
            phase.register(ctx)
        except (InstallerError, OSError, ValueError) as e:
            if isinstance(e, PhaseFailed):
                raise
            logger.error("Phase %s failed: %s", phase.phase_id, e)
            raise PhaseFailed(phase.phase_id, e) from e

        if stop_after is not None and phase.phase_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    return PipelineResult(ran_phases=ran, skipped_phases=skipped)
