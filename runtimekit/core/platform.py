"""
Platform detection for RuntimeKit.

Release catalogs name platforms the way Node.js does (``win32``, ``darwin``,
``linux``) and architectures the way GitHub runners do (``x64``, ``arm64``).
This module maps the running interpreter onto those identifiers.

Usage:
    from runtimekit.core.platform import detect_platform

    info = detect_platform()
    print(f"{info.platform}-{info.arch} ({info.os_name})")
"""

import functools
import platform as _platform
import sys
from dataclasses import dataclass

# Catalog platform identifier -> runner OS name
OS_NAMES = {
    "win32": "Windows",
    "darwin": "macOS",
    "linux": "Linux",
}


@dataclass(frozen=True)
class PlatformInfo:
    """
    Running platform as seen by the release catalog.

    Attributes:
        platform: Catalog platform ('win32', 'darwin', 'linux', ...)
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm', ...)
        os_name: Runner OS name used in cache keys ('Windows', 'macOS', 'Linux')
    """

    platform: str
    arch: str
    os_name: str


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect the running platform (cached per process).

    Example:
        >>> detect_platform()
        PlatformInfo(platform='linux', arch='x64', os_name='Linux')
    """
    plat = normalize_platform(sys.platform)
    return PlatformInfo(
        platform=plat,
        arch=normalize_architecture(_platform.machine()),
        os_name=os_name_for(plat),
    )


def normalize_platform(value: str) -> str:
    """
    Map a ``sys.platform`` style value to the catalog platform family.

    Example:
        >>> normalize_platform('linux2')
        'linux'
        >>> normalize_platform('cygwin')
        'win32'
    """
    value = value.lower()
    if value.startswith(("win", "cygwin", "msys")):
        return "win32"
    if value.startswith("darwin"):
        return "darwin"
    if value.startswith("linux"):
        return "linux"
    return value


def normalize_architecture(machine: str) -> str:
    """
    Normalize a machine name to a catalog architecture.

    Example:
        >>> normalize_architecture('AMD64')
        'x64'
        >>> normalize_architecture('aarch64')
        'arm64'
    """
    machine = machine.lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    else:
        return machine


def os_name_for(platform: str) -> str:
    """Runner OS name for a catalog platform ('linux' -> 'Linux')."""
    return OS_NAMES.get(platform, platform.capitalize())


def clear_platform_cache():
    """Clear the detect_platform() cache (used by tests)."""
    detect_platform.cache_clear()
