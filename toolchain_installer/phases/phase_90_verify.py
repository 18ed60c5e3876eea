from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Any, Callable, Dict, List

from ..context import InstallContext
from ..install_config import CommandProbe
from ..lib.binfmt import classify_binary
from ..lib.command import run_cmd
from ..lib.shell_env import path_contains, read_block
from ..registry import ExecutionMode
from ..settings_store import peek_settings
from ..verify import NamedCheck, run_checks

logger = logging.getLogger(__name__)


def _probe(ctx: InstallContext, probe: CommandProbe) -> NamedCheck:
    seen: Dict[str, str] = {}

    def predicate() -> bool:
        r = run_cmd(probe.argv, check=False, env=dict(ctx.environ), timeout=120)
        output = (r.stdout + r.stderr).strip()
        seen["out"] = output.splitlines()[0] if output else f"exit {r.returncode}"
        if r.returncode != 0:
            return False
        return probe.expect is None or probe.expect in output

    def detail() -> str:
        return f"{shlex.join(probe.argv)}: {seen.get('out', '')}"

    return NamedCheck(name=f"command {probe.name}", predicate=predicate, detail=detail)


def _mode_check(name: str, binary: Path, arch: str) -> NamedCheck:
    def predicate() -> bool:
        if not binary.exists():
            raise FileNotFoundError(str(binary))
        return classify_binary(binary, arch) == ExecutionMode.NATIVE

    def detail() -> str:
        return f"{binary} runs {classify_binary(binary, arch).value} on {arch}"

    return NamedCheck(name=f"{name} native", predicate=predicate, detail=detail)


def _setting_check(path: Path, key: str, value: Any) -> NamedCheck:
    def predicate() -> bool:
        doc = peek_settings(path)
        if doc is None:
            raise ValueError(f"{path} missing or unreadable")
        return doc.get(key) == value

    return NamedCheck(name=f"setting {key}", predicate=predicate, detail=f"{path} [{key}]")


def _env_check(ctx: InstallContext, name: str, value: str) -> NamedCheck:
    def predicate() -> bool:
        if ctx.environ.get(name) != value:
            return False
        profile = ctx.cfg.profile_path
        if profile is None:
            return True
        block = read_block(profile) or ""
        return f"export {name}={shlex.quote(value)}" in block

    def detail() -> str:
        return f"{name}={ctx.environ.get(name, '<unset>')}"

    return NamedCheck(name=f"env {name}", predicate=predicate, detail=detail)


def build_checks(ctx: InstallContext) -> List[NamedCheck]:
    """Declare the checks over the final state, in report order."""

    cfg = ctx.cfg
    root = cfg.install_root
    checks: List[NamedCheck] = [
        NamedCheck(name="install root", predicate=root.is_dir, detail=str(root)),
    ]

    primary = cfg.primary
    for rel in primary.required_subtrees:
        p = root / rel
        checks.append(NamedCheck(name=f"subtree {rel}", predicate=p.exists, detail=str(p)))

    for c in primary.components:
        if c.binary:
            p = root / c.binary
            checks.append(NamedCheck(name=f"{c.name} binary", predicate=p.exists, detail=str(p)))

    rt = cfg.secondary_runtime
    if rt is not None:
        checks.append(NamedCheck(name=f"{rt.name} binary", predicate=rt.binary_path.exists, detail=str(rt.binary_path)))
        checks.append(_mode_check(rt.name, rt.binary_path, ctx.arch))

    for cache in cfg.caches:
        checks.append(NamedCheck(name=f"cache {cache.name}", predicate=cache.marker_path.exists, detail=str(cache.dest)))

    for ext in cfg.extensions:
        checks.append(NamedCheck(name=f"extension {ext.name}", predicate=ext.manifest_path.exists, detail=str(ext.dest)))

    if cfg.settings_path is not None:
        for key, value in cfg.managed_settings.items():
            checks.append(_setting_check(cfg.settings_path, key, value))

    for name, value in cfg.env_variables.items():
        checks.append(_env_check(ctx, name, value))

    for entry in cfg.path_prepend:
        checks.append(
            NamedCheck(
                name=f"PATH has {entry}",
                predicate=_bind(path_contains, ctx.environ, entry),
                detail=entry,
            )
        )

    for probe in cfg.command_probes:
        checks.append(_probe(ctx, probe))

    return checks


def _bind(fn: Callable[..., bool], *args: Any) -> Callable[[], bool]:
    return lambda: fn(*args)


class VerifyPhase:
    phase_id = "90_verify"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        return False

    def run(self, ctx: InstallContext) -> None:
        ctx.report = run_checks(build_checks(ctx))

    def register(self, ctx: InstallContext) -> None:
        return None
