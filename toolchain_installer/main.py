from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .context import InstallContext
from .errors import PhaseFailed
from .install_config import InstallConfig, load_install_config
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import Phase, PipelineResult, run_pipeline
from .phases import (
    AcquirePhase,
    ApplyEnvironmentPhase,
    ExtractPrimaryPhase,
    InstallExtensionsPhase,
    InstallSecondaryRuntimePhase,
    MergeConfigPhase,
    PostProcessPhase,
    PrereqPhase,
    VerifyPhase,
    WarmCachesPhase,
)
from .verify import format_report

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "manifests/toolchain.yaml"


def build_phases() -> List[Phase]:
    return [
        PrereqPhase(),
        AcquirePhase(),
        ExtractPrimaryPhase(),
        InstallSecondaryRuntimePhase(),
        WarmCachesPhase(),
        PostProcessPhase(),
        InstallExtensionsPhase(),
        MergeConfigPhase(),
        ApplyEnvironmentPhase(),
        VerifyPhase(),
    ]


def run(
    cfg: InstallConfig,
    *,
    ctx: Optional[InstallContext] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> InstallContext:
    """Run the installer phases against a fresh (or supplied) context.

    Raises PhaseFailed on a fatal condition; the context keeps whatever the
    completed phases recorded.
    """

    ctx = ctx or InstallContext(cfg=cfg)
    logger.info("Installing into %s (arch=%s dry_run=%s)", str(cfg.install_root), cfg.arch, cfg.dry_run)

    result: PipelineResult = run_pipeline(
        ctx=ctx,
        phases=build_phases(),
        start_at=start_at,
        stop_after=stop_after,
        force=force,
    )
    logger.info("Ran: %s", ",".join(result.ran_phases) or "-")
    logger.info("Skipped: %s", ",".join(result.skipped_phases) or "-")
    if ctx.warnings:
        logger.warning("Completed with %d warnings", len(ctx.warnings))
    logger.info("Components: %s", ctx.registry.report())
    return ctx


def _summary(ctx: InstallContext) -> Dict[str, Any]:
    return {
        "components": ctx.registry.report(),
        "warnings": ctx.warnings,
        "verification": ctx.report.to_dict() if ctx.report is not None else None,
    }


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="toolchain-installer")
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to install plan (yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--arch", default=None, help="Override detected host arch (amd64|arm64)")
    p.add_argument("--start-at", default=None, help="Start at phase_id (e.g. 30_extract_primary)")
    p.add_argument("--stop-after", default=None, help="Stop after phase_id")
    p.add_argument("--force", action="store_true", help="Re-run phases even if already satisfied")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--strict", action="store_true", help="Exit non-zero if any verification check fails")
    p.add_argument("--json", action="store_true", help="Print a machine-readable summary")

    args = p.parse_args(argv)

    configure_logging(log_path=args.log, also_console=not args.json)

    overrides = {"dry_run": True} if args.dry_run else None
    try:
        cfg = load_install_config(args.config, arch=args.arch, overrides=overrides)
        ctx = run(cfg, start_at=args.start_at, stop_after=args.stop_after, force=bool(args.force))
    except PhaseFailed as e:
        logger.debug("Installer halted", exc_info=True)
        print(e.one_line(), file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"FATAL [config] {args.config}: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(_summary(ctx), indent=2, default=str))
    elif ctx.report is not None:
        print(format_report(ctx.report))

    if args.strict and ctx.report is not None and ctx.report.failed:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
