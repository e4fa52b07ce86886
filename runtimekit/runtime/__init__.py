"""
Runtime setup module for RuntimeKit.

This module provides functionality for:
- Version spec normalization and release catalog matching
- Cache key derivation and the install cache
- Platform-specific acquisition (installer or archive)
- Publishing the installed runtime to the CI runner
"""

from runtimekit.runtime.versions import (
    VersionRange,
    normalize_version_spec,
)
from runtimekit.runtime.manifest import (
    Manifest,
    Release,
    ReleaseFile,
    ReleaseMatch,
    find_release,
)
from runtimekit.runtime.cache_key import derive_cache_key
from runtimekit.runtime.install_cache import InstallCache, InstallRecord
from runtimekit.runtime.publish import ActionsPublisher, InstalledRuntime
from runtimekit.runtime.installer import (
    Resolution,
    RuntimeInstaller,
    install_runtime,
)

__all__ = [
    # Versions
    "VersionRange",
    "normalize_version_spec",
    # Manifest
    "Manifest",
    "Release",
    "ReleaseFile",
    "ReleaseMatch",
    "find_release",
    # Cache
    "derive_cache_key",
    "InstallCache",
    "InstallRecord",
    # Installer
    "Resolution",
    "RuntimeInstaller",
    "install_runtime",
    # Publishing
    "ActionsPublisher",
    "InstalledRuntime",
]
