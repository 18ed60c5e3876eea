from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ExecutionMode(str, Enum):
    NATIVE = "native"
    EMULATED = "emulated"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Component:
    name: str
    mode: ExecutionMode
    present: bool
    path: Optional[str] = None


class ComponentRegistry:
    """Append-only ledger of what this run found installed.

    Observational only: nothing in the pipeline branches on it. Phases feed it
    from on-disk state, so a rerun that skips every phase rebuilds the same
    ledger.
    """

    def __init__(self) -> None:
        self._components: List[Component] = []

    def record(
        self,
        name: str,
        mode: ExecutionMode | str,
        present: bool,
        path: Optional[str] = None,
    ) -> Component:
        c = Component(name=name, mode=ExecutionMode(mode), present=bool(present), path=path)
        self._components.append(c)
        logger.info("Component %s: mode=%s present=%s", name, c.mode.value, c.present)
        return c

    @property
    def components(self) -> Tuple[Component, ...]:
        return tuple(self._components)

    def get(self, name: str) -> Optional[Component]:
        # Latest entry wins if a name was recorded twice.
        for c in reversed(self._components):
            if c.name == name:
                return c
        return None

    def report(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {"native": [], "emulated": [], "unknown": [], "absent": []}
        for c in self._components:
            if not c.present:
                out["absent"].append(c.name)
            else:
                out[c.mode.value].append(c.name)
        return out

    def __len__(self) -> int:
        return len(self._components)
