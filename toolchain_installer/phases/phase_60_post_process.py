from __future__ import annotations

import logging
import stat
from pathlib import Path
from typing import Dict, List

from ..context import InstallContext
from ..install_config import PropertiesSpec

logger = logging.getLogger(__name__)


def _needs_exec(p: Path) -> bool:
    mode = p.stat().st_mode
    return stat.S_ISREG(mode) and (mode & 0o111) != (mode & 0o444) >> 2


def _exec_candidates(ctx: InstallContext) -> List[Path]:
    root = ctx.cfg.install_root
    out: List[Path] = []
    for pattern in ctx.cfg.executables:
        out.extend(p for p in sorted(root.glob(pattern)) if p.is_file() and not p.is_symlink())
    return out


def _prop_key(line: str) -> str | None:
    s = line.strip()
    if not s or s[0] in "#!":
        return None
    for i, ch in enumerate(s):
        if ch in "=:":
            return s[:i].strip()
    return s.split()[0]


def merge_properties(text: str, values: Dict[str, str]) -> str:
    """Set key=value pairs in a .properties document; other lines are kept verbatim."""

    seen: set[str] = set()
    lines: List[str] = []
    for line in text.splitlines():
        key = _prop_key(line)
        if key in values:
            if key in seen:
                continue
            lines.append(f"{key}={values[key]}")
            seen.add(key)
        else:
            lines.append(line)
    for key, value in values.items():
        if key not in seen:
            lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


def _read(p: Path) -> str:
    return p.read_text(encoding="utf-8") if p.exists() else ""


def _properties_current(spec: PropertiesSpec) -> bool:
    text = _read(spec.path)
    return merge_properties(text, spec.values) == text


class PostProcessPhase:
    phase_id = "60_post_process"

    def is_satisfied(self, ctx: InstallContext) -> bool:
        if any(_needs_exec(p) for p in _exec_candidates(ctx)):
            return False
        return all(_properties_current(s) for s in ctx.cfg.properties_files)

    def run(self, ctx: InstallContext) -> None:
        fixed = 0
        for p in _exec_candidates(ctx):
            if _needs_exec(p):
                mode = p.stat().st_mode
                if ctx.dry_run:
                    logger.info("Would chmod +x %s", str(p))
                else:
                    p.chmod(stat.S_IMODE(mode) | (mode & 0o444) >> 2)
                fixed += 1
        if fixed:
            logger.info("Marked %d files executable", fixed)

        for spec in ctx.cfg.properties_files:
            text = _read(spec.path)
            updated = merge_properties(text, spec.values)
            if updated == text:
                continue
            if ctx.dry_run:
                logger.info("Would write %s", str(spec.path))
                continue
            spec.path.parent.mkdir(parents=True, exist_ok=True)
            spec.path.write_text(updated, encoding="utf-8")
            logger.info("Updated %d properties in %s", len(spec.values), str(spec.path))

    def register(self, ctx: InstallContext) -> None:
        return None
