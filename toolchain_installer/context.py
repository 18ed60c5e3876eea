from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

from .install_config import InstallConfig
from .lib.archive import ArchiveExtractor
from .lib.cache import CacheStore
from .registry import ComponentRegistry


@dataclass
class InstallContext:
    """Everything a phase may read or touch, passed explicitly.

    Tests build one with fakes (fetcher, environ) and run phases in isolation.
    """

    cfg: InstallConfig
    registry: ComponentRegistry = field(default_factory=ComponentRegistry)
    cache: Optional[CacheStore] = None
    extractor: Optional[ArchiveExtractor] = None
    environ: MutableMapping[str, str] = field(default_factory=lambda: os.environ)
    artifacts: Dict[str, Path] = field(default_factory=dict)
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    report: Any = None

    def __post_init__(self) -> None:
        if self.cache is None:
            self.cache = CacheStore(dry_run=self.cfg.dry_run)
        if self.extractor is None:
            self.extractor = ArchiveExtractor(dry_run=self.cfg.dry_run)

    @property
    def dry_run(self) -> bool:
        return self.cfg.dry_run

    @property
    def arch(self) -> str:
        return self.cfg.arch

    def warn(self, **entry: Any) -> None:
        self.warnings.append(entry)

    def artifact_path(self, name: str) -> Optional[Path]:
        """Cached path for an artifact acquired this run, if it is usable."""

        p = self.artifacts.get(name)
        if p is not None:
            return p
        a = self.cfg.artifacts.get(name)
        if a is not None and self.cache is not None and self.cache.is_valid(a):
            return a.dest
        return None
