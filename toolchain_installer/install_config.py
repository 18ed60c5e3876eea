from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .lib.binfmt import host_arch
from .lib.cache import Artifact

DEFAULT_INSTALL_ROOT = "~/toolchain"
DEFAULT_CACHE_DIR = "~/.cache/toolchain-installer"

_TOKEN = re.compile(r"\{(install_root|cache_dir|home|arch)\}")


def _require(entry: Any, key: str, where: str) -> Any:
    if not isinstance(entry, dict):
        raise ValueError(f"{where} must be a mapping")
    value = entry.get(key)
    if value is None or value == "":
        raise ValueError(f"{where}.{key} is required")
    return value


@dataclass(frozen=True)
class ComponentSpec:
    name: str
    path: str
    binary: Optional[str] = None


@dataclass(frozen=True)
class PrimarySpec:
    artifact: str
    exclusions: List[str]
    required_subtrees: List[str]
    optional_subtrees: List[str]
    components: List[ComponentSpec]


@dataclass(frozen=True)
class SecondaryRuntimeSpec:
    name: str
    artifact: str
    dest: Path
    binary: str
    strip_prefix: Optional[str] = None

    @property
    def binary_path(self) -> Path:
        return self.dest / self.binary


@dataclass(frozen=True)
class CacheSpec:
    name: str
    source: Path
    dest: Path
    marker: str

    @property
    def marker_path(self) -> Path:
        return self.dest / self.marker


@dataclass(frozen=True)
class PropertiesSpec:
    path: Path
    values: Dict[str, str]


@dataclass(frozen=True)
class ExtensionSpec:
    name: str
    artifact: str
    dest: Path
    strip_prefix: Optional[str] = "extension/"

    @property
    def manifest_path(self) -> Path:
        return self.dest / "package.json"


@dataclass(frozen=True)
class CommandProbe:
    name: str
    argv: List[str]
    expect: Optional[str] = None


@dataclass(frozen=True)
class InstallConfig:
    """Typed, templated view over the YAML install plan.

    String values may use {install_root}, {cache_dir}, {home} and {arch};
    paths also get ~ expansion.
    """

    raw: Dict[str, Any]
    arch: str = field(default_factory=host_arch)

    # -- templating ---------------------------------------------------------

    def _vars(self) -> Dict[str, str]:
        return {
            "install_root": str(self._path_raw(self.raw.get("install_root") or DEFAULT_INSTALL_ROOT)),
            "cache_dir": str(self._path_raw(self.raw.get("cache_dir") or DEFAULT_CACHE_DIR)),
            "home": str(Path.home()),
            "arch": self.arch,
        }

    def _path_raw(self, value: str) -> Path:
        return Path(os.path.expanduser(str(value)))

    def expand(self, value: Any) -> Any:
        if isinstance(value, str):
            v = self._vars()
            return _TOKEN.sub(lambda m: v[m.group(1)], value)
        if isinstance(value, list):
            return [self.expand(x) for x in value]
        if isinstance(value, dict):
            return {k: self.expand(x) for k, x in value.items()}
        return value

    def path(self, value: str) -> Path:
        p = Path(os.path.expanduser(self.expand(str(value))))
        if not p.is_absolute():
            p = self.install_root / p
        return p

    # -- top level ----------------------------------------------------------

    @property
    def install_root(self) -> Path:
        return self._path_raw(self.raw.get("install_root") or DEFAULT_INSTALL_ROOT)

    @property
    def cache_dir(self) -> Path:
        return self._path_raw(self.raw.get("cache_dir") or DEFAULT_CACHE_DIR)

    @property
    def dry_run(self) -> bool:
        return bool(self.raw.get("dry_run", False))

    @property
    def required_tools(self) -> List[str]:
        return [str(t) for t in ((self.raw.get("prerequisites") or {}).get("tools") or [])]

    @property
    def min_free_bytes(self) -> int:
        return int((self.raw.get("prerequisites") or {}).get("min_free_bytes") or 0)

    # -- artifacts ----------------------------------------------------------

    @property
    def artifacts(self) -> Dict[str, Artifact]:
        out: Dict[str, Artifact] = {}
        for name, a in (self.raw.get("artifacts") or {}).items():
            _require(a, "url", f"artifacts.{name}")
            dest = a.get("dest") or f"{{cache_dir}}/{Path(str(a['url']).split('?')[0]).name}"
            out[str(name)] = Artifact(
                name=str(name),
                url=self.expand(str(a["url"])),
                dest=self._abs_cache_path(dest),
                min_bytes=int(a.get("min_bytes") or 0),
                optional=bool(a.get("optional", False)),
                arch=a.get("arch"),
            )
        return out

    def _abs_cache_path(self, value: str) -> Path:
        p = Path(os.path.expanduser(self.expand(str(value))))
        return p if p.is_absolute() else self.cache_dir / p

    def artifacts_for_host(self) -> List[Artifact]:
        return [a for a in self.artifacts.values() if a.applies_to(self.arch)]

    # -- phases -------------------------------------------------------------

    @property
    def primary(self) -> PrimarySpec:
        p = self.raw.get("primary") or {}
        if not p.get("artifact"):
            raise ValueError("primary.artifact is required")
        excl = p.get("exclusions") or {}
        if isinstance(excl, list):
            exclusions = [str(x) for x in excl]
        else:
            exclusions = [str(x) for x in (excl.get("default") or [])]
            exclusions += [str(x) for x in (excl.get(self.arch) or []) if str(x) not in exclusions]
        return PrimarySpec(
            artifact=str(p["artifact"]),
            exclusions=exclusions,
            required_subtrees=[str(x) for x in (p.get("required_subtrees") or [])],
            optional_subtrees=[str(x) for x in (p.get("optional_subtrees") or [])],
            components=[
                ComponentSpec(
                    name=str(_require(c, "name", f"primary.components[{i}]")),
                    path=str(c.get("path") or ""),
                    binary=c.get("binary"),
                )
                for i, c in enumerate(p.get("components") or [])
            ],
        )

    @property
    def secondary_runtime(self) -> Optional[SecondaryRuntimeSpec]:
        s = (self.raw.get("secondary_runtime") or {}).get(self.arch)
        if not s:
            return None
        where = f"secondary_runtime.{self.arch}"
        artifact = str(_require(s, "artifact", where))
        return SecondaryRuntimeSpec(
            name=str(s.get("name") or artifact),
            artifact=artifact,
            dest=self.path(_require(s, "dest", where)),
            binary=str(_require(s, "binary", where)),
            strip_prefix=s.get("strip_prefix"),
        )

    @property
    def caches(self) -> List[CacheSpec]:
        return [
            CacheSpec(
                name=str(_require(c, "name", f"caches[{i}]")),
                source=self.path(_require(c, "source", f"caches[{i}]")),
                dest=self.path(_require(c, "dest", f"caches[{i}]")),
                marker=str(c.get("marker") or ".complete"),
            )
            for i, c in enumerate(self.raw.get("caches") or [])
        ]

    @property
    def executables(self) -> List[str]:
        return [str(g) for g in ((self.raw.get("post_process") or {}).get("executables") or [])]

    @property
    def properties_files(self) -> List[PropertiesSpec]:
        return [
            PropertiesSpec(
                path=self.path(_require(f, "path", f"post_process.properties[{i}]")),
                values={str(k): str(self.expand(v)) for k, v in (f.get("values") or {}).items()},
            )
            for i, f in enumerate((self.raw.get("post_process") or {}).get("properties") or [])
        ]

    @property
    def extensions(self) -> List[ExtensionSpec]:
        e = self.raw.get("extensions") or {}
        base = self.path(e.get("dir") or "{install_root}/extensions")
        return [
            ExtensionSpec(
                name=str(_require(x, "name", f"extensions.packages[{i}]")),
                artifact=str(_require(x, "artifact", f"extensions.packages[{i}]")),
                dest=base / str(x.get("dir") or x["name"]),
                strip_prefix=x.get("strip_prefix", "extension/"),
            )
            for i, x in enumerate(e.get("packages") or [])
        ]

    @property
    def settings_path(self) -> Optional[Path]:
        s = self.raw.get("settings") or {}
        return self.path(s["path"]) if s.get("path") else None

    @property
    def managed_settings(self) -> Dict[str, Any]:
        return self.expand(dict((self.raw.get("settings") or {}).get("managed") or {}))

    @property
    def profile_path(self) -> Optional[Path]:
        e = self.raw.get("environment") or {}
        return self.path(e["profile"]) if e.get("profile") else None

    @property
    def env_variables(self) -> Dict[str, str]:
        e = self.raw.get("environment") or {}
        return {str(k): str(self.expand(v)) for k, v in (e.get("variables") or {}).items()}

    @property
    def path_prepend(self) -> List[str]:
        e = self.raw.get("environment") or {}
        return [str(self.expand(p)) for p in (e.get("path_prepend") or [])]

    @property
    def command_probes(self) -> List[CommandProbe]:
        return [
            CommandProbe(
                name=str(_require(c, "name", f"verify.commands[{i}]")),
                argv=[str(a) for a in self.expand(list(_require(c, "argv", f"verify.commands[{i}]")))],
                expect=c.get("expect"),
            )
            for i, c in enumerate((self.raw.get("verify") or {}).get("commands") or [])
        ]

    def validate(self) -> None:
        """Read every section once so a malformed plan fails before any phase runs."""

        self.artifacts
        self.primary
        self.secondary_runtime
        self.caches
        self.properties_files
        self.extensions
        self.command_probes


def load_install_config(path: str, *, arch: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> InstallConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("install config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p.name} must contain a mapping/object")

    raw.update(overrides or {})
    cfg = InstallConfig(raw=raw, arch=arch or host_arch())
    cfg.validate()
    return cfg
