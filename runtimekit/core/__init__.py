"""
Core functionality for RuntimeKit.

This package contains the foundational modules that other components depend on.
"""

from .exceptions import (
    RuntimeKitError,
    ConfigError,
    ManifestError,
    RuntimeSetupError,
    InvalidVersionSpec,
    NoMatchingVersion,
    NoMatchingPlatform,
    DownloadFailed,
    InstallFailed,
    UnexpectedArchiveLayout,
    CacheBackendError,
    CacheEntryExistsError,
    CacheLockTimeout,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
)

from .locking import (
    LockManager,
    LockTimeout,
)

from .cache_store import (
    LocalCacheStore,
)

__all__ = [
    # Exceptions
    "RuntimeKitError",
    "ConfigError",
    "ManifestError",
    "RuntimeSetupError",
    "InvalidVersionSpec",
    "NoMatchingVersion",
    "NoMatchingPlatform",
    "DownloadFailed",
    "InstallFailed",
    "UnexpectedArchiveLayout",
    "CacheBackendError",
    "CacheEntryExistsError",
    "CacheLockTimeout",
    # Platform
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    # Locking
    "LockManager",
    "LockTimeout",
    # Cache store
    "LocalCacheStore",
]
