"""Binary header inspection.

Answers one question: which CPU architecture was an executable built for?
The answer comes from the platform header, never from the file name or the
download it came from.

Supported containers:
- ELF (Linux): e_machine
- PE/COFF (Windows): Machine field of the COFF header
- Mach-O, thin and universal (macOS): cputype

Architectures are normalized to the same names used for artifact filters:
amd64, arm64, armhf, i386.
"""

from __future__ import annotations

import logging
import platform
import struct
from pathlib import Path
from typing import List, Optional

from ..registry import ExecutionMode

logger = logging.getLogger(__name__)


_ELF_MACHINES = {
    0x03: "i386",
    0x28: "armhf",
    0x3E: "amd64",
    0xB7: "arm64",
}

_PE_MACHINES = {
    0x014C: "i386",
    0x01C4: "armhf",
    0x8664: "amd64",
    0xAA64: "arm64",
    0xA641: "arm64",  # ARM64EC
}

_CPU_ARCH_ABI64 = 0x01000000
_MACHO_CPUTYPES = {
    7: "i386",
    7 | _CPU_ARCH_ABI64: "amd64",
    12: "armhf",
    12 | _CPU_ARCH_ABI64: "arm64",
}

# Java class files share the universal Mach-O magic; real fat headers list few slices.
_MAX_FAT_SLICES = 20


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "x64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
        "armv7l": "armhf",
        "armv6l": "armhf",
        "i386": "i386",
        "i686": "i386",
        "x86": "i386",
    }.get(m, m)


def host_arch() -> str:
    return normalize_arch(platform.machine())


def _elf_arch(head: bytes) -> Optional[str]:
    if len(head) < 20:
        return None
    endian = "<" if head[5] == 1 else ">"
    (machine,) = struct.unpack_from(endian + "H", head, 18)
    return _ELF_MACHINES.get(machine)


def _pe_arch(path: Path, head: bytes) -> Optional[str]:
    if len(head) < 0x40:
        return None
    (pe_offset,) = struct.unpack_from("<I", head, 0x3C)
    with path.open("rb") as f:
        f.seek(pe_offset)
        sig = f.read(6)
    if len(sig) < 6 or sig[:4] != b"PE\0\0":
        return None
    (machine,) = struct.unpack_from("<H", sig, 4)
    return _PE_MACHINES.get(machine)


def _macho_archs(path: Path, head: bytes) -> List[str]:
    if len(head) < 8:
        return []
    magic = head[:4]
    if magic in (b"\xcf\xfa\xed\xfe", b"\xce\xfa\xed\xfe"):
        (cputype,) = struct.unpack_from("<i", head, 4)
        arch = _MACHO_CPUTYPES.get(cputype)
        return [arch] if arch else []
    if magic in (b"\xfe\xed\xfa\xcf", b"\xfe\xed\xfa\xce"):
        (cputype,) = struct.unpack_from(">i", head, 4)
        arch = _MACHO_CPUTYPES.get(cputype)
        return [arch] if arch else []
    if magic == b"\xca\xfe\xba\xbe":
        (nslices,) = struct.unpack_from(">I", head, 4)
        if nslices == 0 or nslices >= _MAX_FAT_SLICES:
            return []
        with path.open("rb") as f:
            f.seek(8)
            table = f.read(20 * nslices)
        archs: List[str] = []
        for i in range(len(table) // 20):
            (cputype,) = struct.unpack_from(">i", table, i * 20)
            arch = _MACHO_CPUTYPES.get(cputype)
            if arch and arch not in archs:
                archs.append(arch)
        return archs
    return []


def binary_archs(path: str | Path) -> List[str]:
    """Return the architectures a binary carries code for ([] if unknown).

    Raises OSError if the file cannot be read.
    """

    p = Path(path)
    with p.open("rb") as f:
        head = f.read(64)

    if head[:4] == b"\x7fELF":
        arch = _elf_arch(head)
        return [arch] if arch else []
    if head[:2] == b"MZ":
        arch = _pe_arch(p, head)
        return [arch] if arch else []
    return _macho_archs(p, head)


def classify_binary(path: str | Path, host: Optional[str] = None) -> ExecutionMode:
    """native if the binary runs on the host CPU, emulated if built for another one."""

    host = host or host_arch()
    try:
        archs = binary_archs(path)
    except (OSError, struct.error) as e:
        logger.warning("Cannot inspect %s: %s", str(path), e)
        return ExecutionMode.UNKNOWN

    if not archs:
        return ExecutionMode.UNKNOWN
    if host in archs:
        return ExecutionMode.NATIVE
    return ExecutionMode.EMULATED
