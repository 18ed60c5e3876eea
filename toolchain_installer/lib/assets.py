from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def copy_tree(src: str, dst: str, *, dry_run: bool = False) -> int:
    """Copy a directory tree over dst (existing files are overwritten).

    Returns the number of files copied.
    """

    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(src)

    if dry_run:
        logger.info("Would copy tree %s -> %s", str(s), str(d))
        return 0

    copied = 0
    d.mkdir(parents=True, exist_ok=True)
    for item in sorted(s.rglob("*")):
        rel = item.relative_to(s)
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, out)
            copied += 1
    logger.info("Copied %d files %s -> %s", copied, str(s), str(d))
    return copied


def remove_tree(path: str, *, dry_run: bool = False) -> None:
    """Remove a file or directory tree if it exists."""

    p = Path(path)
    if not p.exists() and not p.is_symlink():
        return
    if dry_run:
        logger.info("Would remove %s", str(p))
        return
    if p.is_dir() and not p.is_symlink():
        shutil.rmtree(p)
    else:
        p.unlink()
    logger.info("Removed %s", str(p))
