"""Shared test fixtures for toolchain-installer tests."""

from __future__ import annotations

import shutil
import struct
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import pytest

from toolchain_installer.context import InstallContext
from toolchain_installer.install_config import InstallConfig
from toolchain_installer.lib.cache import CacheStore

ELF_MACHINE = {"amd64": 0x3E, "arm64": 0xB7, "armhf": 0x28, "i386": 0x03}

Entry = Union[bytes, str, None]


def elf_bytes(arch: str) -> bytes:
    """Minimal 64-byte ELF header for the given arch."""
    head = struct.pack("<4sBBBB8xHH", b"\x7fELF", 2, 1, 1, 0, 2, ELF_MACHINE[arch])
    return head + b"\0" * (64 - len(head))


def make_zip(path: Path, entries: Mapping[str, Entry], *, modes: Optional[Mapping[str, int]] = None) -> Path:
    """Write a zip; a None value makes a directory entry."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            if data is None:
                zf.writestr(name if name.endswith("/") else name + "/", b"")
                continue
            info = zipfile.ZipInfo(name)
            info.external_attr = ((modes or {}).get(name, 0o644)) << 16
            info.compress_type = zipfile.ZIP_DEFLATED
            zf.writestr(info, data.encode("utf-8") if isinstance(data, str) else data)
    return path


class FakeFetcher:
    """Stands in for the network: copies local files to the .part path."""

    def __init__(self, sources: Mapping[str, Path]) -> None:
        self.sources = dict(sources)
        self.calls: List[str] = []
        self.failing: set[str] = set()

    def __call__(self, url: str, part: Path, progress: Any = None) -> None:
        self.calls.append(url)
        if url in self.failing or url not in self.sources:
            raise OSError(f"network unreachable: {url}")
        shutil.copyfile(self.sources[url], part)
        if progress:
            size = part.stat().st_size
            progress(size, size)


BUNDLE_URL = "https://downloads.example.test/bundle.zip"
RUNTIME_URL = "https://downloads.example.test/runtime-arm64.zip"
EXT_URL = "https://downloads.example.test/redhat.java.vsix"


@pytest.fixture
def sources(tmp_path: Path) -> Dict[str, Path]:
    src = tmp_path / "src"
    bundle = make_zip(
        src / "bundle.zip",
        {
            "bin/": None,
            "bin/ide": elf_bytes("amd64"),
            "lib/core.jar": "core",
            "jbr/bin/java": elf_bytes("amd64"),
            "offline/gradle-dists/gradle-8.5-bin/gradle-8.5-bin.zip": "dist",
            "Uninstall/uninstall.sh": "#!/bin/sh\n",
        },
        modes={"bin/ide": 0o600},
    )
    runtime = make_zip(
        src / "runtime.zip",
        {
            "jdk-17/bin/java": elf_bytes("arm64"),
            "jdk-17/lib/modules": "modules",
        },
        modes={"jdk-17/bin/java": 0o755},
    )
    ext = make_zip(
        src / "redhat.java.vsix",
        {
            "extension.vsixmanifest": "<xml/>",
            "extension/package.json": '{"name": "java"}',
            "extension/out/main.js": "module.exports = {};",
        },
    )
    return {BUNDLE_URL: bundle, RUNTIME_URL: runtime, EXT_URL: ext}


@pytest.fixture
def fetcher(sources: Dict[str, Path]) -> FakeFetcher:
    return FakeFetcher(sources)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def raw_plan(tmp_path: Path, home: Path) -> Dict[str, Any]:
    return {
        "install_root": str(tmp_path / "root"),
        "cache_dir": str(tmp_path / "cache"),
        "artifacts": {
            "bundle": {"url": BUNDLE_URL, "min_bytes": 100},
            "runtime-arm64": {"url": RUNTIME_URL, "min_bytes": 50, "arch": "arm64", "optional": True},
            "ext-java": {"url": EXT_URL, "min_bytes": 50, "optional": True},
        },
        "primary": {
            "artifact": "bundle",
            "exclusions": {"default": ["Uninstall/"], "arm64": ["jbr/"]},
            "required_subtrees": ["bin/", "lib/"],
            "optional_subtrees": ["offline/"],
            "components": [{"name": "ide", "path": "bin", "binary": "bin/ide"}],
        },
        "secondary_runtime": {
            "arm64": {
                "name": "runtime-arm64",
                "artifact": "runtime-arm64",
                "dest": "jbr",
                "strip_prefix": "jdk-17/",
                "binary": "bin/java",
            }
        },
        "caches": [
            {"name": "wrapper", "source": "offline/gradle-dists", "dest": str(home / ".gradle/wrapper/dists")},
        ],
        "post_process": {
            "executables": ["bin/*"],
            "properties": [
                {"path": str(home / ".gradle/gradle.properties"), "values": {"org.gradle.offline": "true"}},
            ],
        },
        "extensions": {
            "dir": str(home / "extensions"),
            "packages": [{"name": "redhat.java", "artifact": "ext-java"}],
        },
        "settings": {
            "path": str(home / "settings.json"),
            "managed": {"java.home": "{install_root}/jbr"},
        },
        "environment": {
            "profile": str(home / ".profile"),
            "variables": {"JAVA_HOME": "{install_root}/jbr"},
            "path_prepend": ["{install_root}/bin"],
        },
    }


@pytest.fixture
def environ() -> Dict[str, str]:
    return {"PATH": "/usr/bin:/bin", "HOME": "/nonexistent"}


@pytest.fixture
def make_ctx(raw_plan: Dict[str, Any], fetcher: FakeFetcher, environ: Dict[str, str]):
    """Build a fresh InstallContext (new registry and cache store) per call."""

    def _make(arch: str = "arm64", **overrides: Any) -> InstallContext:
        raw = dict(raw_plan, **overrides)
        cfg = InstallConfig(raw=raw, arch=arch)
        return InstallContext(cfg=cfg, cache=CacheStore(fetch=fetcher), environ=environ)

    return _make
