from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path
from typing import List, Mapping, MutableMapping, Sequence

logger = logging.getLogger(__name__)

BLOCK_BEGIN = "# >>> toolchain-installer >>>"
BLOCK_END = "# <<< toolchain-installer <<<"


def render_block(variables: Mapping[str, str], path_prepend: Sequence[str]) -> str:
    lines = [BLOCK_BEGIN, "# Managed by toolchain-installer; edits inside this block are replaced."]
    for name, value in variables.items():
        lines.append(f"export {name}={shlex.quote(str(value))}")
    if path_prepend:
        joined = ":".join(shlex.quote(str(p)) for p in path_prepend)
        lines.append(f'export PATH={joined}:"$PATH"')
    lines.append(BLOCK_END)
    return "\n".join(lines) + "\n"


def read_block(profile: str | Path) -> str | None:
    p = Path(profile)
    if not p.exists():
        return None
    text = p.read_text(encoding="utf-8")
    start = text.find(BLOCK_BEGIN)
    if start == -1:
        return None
    end = text.find(BLOCK_END, start)
    if end == -1:
        return None
    return text[start : end + len(BLOCK_END)] + "\n"


def replace_block(text: str, block: str) -> str:
    """Swap the managed block in text, or append it. Everything else is kept."""

    start = text.find(BLOCK_BEGIN)
    end = text.find(BLOCK_END, start) if start != -1 else -1
    if start != -1 and end != -1:
        tail = text[end + len(BLOCK_END) :]
        if tail.startswith("\n"):
            tail = tail[1:]
        return text[:start] + block + tail
    if text and not text.endswith("\n"):
        text += "\n"
    sep = "\n" if text else ""
    return text + sep + block


def write_profile_block(profile: str | Path, block: str, *, dry_run: bool = False) -> bool:
    """Returns True if the profile changed."""

    p = Path(profile)
    current = p.read_text(encoding="utf-8") if p.exists() else ""
    updated = replace_block(current, block)
    if updated == current:
        return False
    if dry_run:
        logger.info("Would update environment block in %s", str(p))
        return True
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(updated, encoding="utf-8")
    logger.info("Updated environment block in %s", str(p))
    return True


def apply_to_environ(
    environ: MutableMapping[str, str],
    variables: Mapping[str, str],
    path_prepend: Sequence[str],
) -> List[str]:
    """Apply variables and PATH entries to a live environment; returns changed names."""

    changed: List[str] = []
    for name, value in variables.items():
        if environ.get(name) != str(value):
            environ[name] = str(value)
            changed.append(name)

    if path_prepend:
        parts = [p for p in environ.get("PATH", "").split(os.pathsep) if p]
        missing = [str(p) for p in path_prepend if str(p) not in parts]
        if missing:
            environ["PATH"] = os.pathsep.join(missing + parts)
            changed.append("PATH")
    return changed


def path_contains(environ: Mapping[str, str], entry: str) -> bool:
    return str(entry) in environ.get("PATH", "").split(os.pathsep)
