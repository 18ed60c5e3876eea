"""User settings documents: tolerant load, managed-key merge, safe persist.

The document belongs to the user. We only ever add or overwrite the keys we
are given; everything else is carried through as-is.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigParseError, ConfigWriteError

logger = logging.getLogger(__name__)

Settings = Dict[str, Any]


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to JSON (with comments) for unknown extensions.
    return "json"


def strip_json_comments(text: str) -> str:
    """Drop // and /* */ comments and trailing commas outside string literals."""

    out: list[str] = []
    i = 0
    n = len(text)
    in_str = False
    while i < n:
        c = text[i]
        if in_str:
            out.append(c)
            if c == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if c == '"':
                in_str = False
            i += 1
            continue

        if c == '"':
            in_str = True
            out.append(c)
            i += 1
        elif c == "/" and text.startswith("//", i):
            nl = text.find("\n", i)
            i = n if nl == -1 else nl
        elif c == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
            out.append(" ")
        else:
            out.append(c)
            i += 1

    return _strip_trailing_commas("".join(out))


def _strip_trailing_commas(text: str) -> str:
    out: list[str] = []
    in_str = False
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if in_str:
            out.append(c)
            if c == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if c == '"':
                in_str = False
            i += 1
            continue
        if c == '"':
            in_str = True
        elif c == ",":
            j = i + 1
            while j < n and text[j] in " \t\r\n":
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
        out.append(c)
        i += 1
    return "".join(out)


def parse_settings(text: str, fmt: str = "json") -> Settings:
    """Parse a settings document. Raises ValueError on anything unusable."""

    if not text.strip():
        return {}
    if fmt == "yaml":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(str(e)) from e
    else:
        data = json.loads(strip_json_comments(text.lstrip("\ufeff")))

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"top level must be an object/mapping, got {type(data).__name__}")
    return data


def load_settings(path: str | Path, *, dry_run: bool = False) -> Settings:
    """Load a settings document, degrading to {} if it is absent or broken.

    A broken original is copied to <name>.bak first, except on a dry run.
    """

    p = Path(path)
    if not p.exists():
        return {}

    try:
        return parse_settings(p.read_text(encoding="utf-8"), _detect_format(p))
    except (ValueError, UnicodeDecodeError) as e:
        err = ConfigParseError(str(p), e)
        logger.warning("%s; starting from an empty document", err)
        if not dry_run:
            _backup(p)
        return {}


def peek_settings(path: str | Path) -> Optional[Settings]:
    """Read without side effects: None if the document is absent or unreadable."""

    p = Path(path)
    try:
        return parse_settings(p.read_text(encoding="utf-8"), _detect_format(p))
    except (OSError, ValueError, UnicodeDecodeError):
        return None


def _backup(p: Path) -> None:
    bak = p.with_name(p.name + ".bak")
    try:
        shutil.copy2(p, bak)
        logger.warning("Kept unreadable original as %s", str(bak))
    except OSError as e:
        logger.warning("Could not back up %s: %s", str(p), e)


def dump_settings(data: Mapping[str, Any], fmt: str = "json") -> str:
    if fmt == "yaml":
        return yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
    return json.dumps(data, indent=4, ensure_ascii=False) + "\n"


def save_settings(path: str | Path, data: Mapping[str, Any]) -> None:
    p = Path(path)
    text = dump_settings(data, _detect_format(p))
    try:
        # A symlinked document is updated at its target; the link stays.
        target = p.resolve()
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            if target.exists():
                shutil.copymode(target, tmp)
            os.replace(tmp, target)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
    except OSError as e:
        raise ConfigWriteError(str(p), e) from e


def managed_keys_current(existing: Mapping[str, Any], new_keys: Mapping[str, Any]) -> bool:
    return all(k in existing and existing[k] == v for k, v in new_keys.items())


def merge_settings(path: str | Path, new_keys: Mapping[str, Any], *, dry_run: bool = False) -> Settings:
    """Set every managed key, keep every other key, write the result back."""

    existing = load_settings(path, dry_run=dry_run)
    for key, value in new_keys.items():
        existing[key] = value

    if dry_run:
        logger.info("Would write %d managed keys to %s", len(new_keys), str(path))
        return existing

    save_settings(path, existing)
    logger.info("Merged %d managed keys into %s", len(new_keys), str(path))
    return existing
