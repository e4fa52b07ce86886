"""
Centralized exception hierarchy for RuntimeKit.

This module defines all custom exceptions raised by the resolve, fetch,
install and cache pipeline so callers can tell fatal setup failures apart
from non-fatal cache problems.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class RuntimeKitError(Exception):
    """Base exception for all RuntimeKit errors."""

    pass


class ConfigError(RuntimeKitError):
    """Configuration parsing or validation error."""

    pass


class ManifestError(RuntimeKitError):
    """Release catalog cannot be loaded or is malformed."""

    pass


# ============================================================================
# Runtime Setup Exceptions (fatal)
# ============================================================================


class RuntimeSetupError(RuntimeKitError):
    """
    Base exception for fatal runtime setup failures.

    Every setup error carries the version spec and architecture that were
    requested, so the message is actionable on its own.
    """

    def __init__(self, message: str, version_spec: str = "", architecture: str = ""):
        self.version_spec = version_spec
        self.architecture = architecture
        self.reason = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        context = []
        if self.version_spec:
            context.append(f"version '{self.version_spec}'")
        if self.architecture:
            context.append(f"arch '{self.architecture}'")
        if not context:
            return message
        return f"{message} (requested {', '.join(context)})"


class InvalidVersionSpec(RuntimeSetupError):
    """Version spec cannot be parsed into any recognizable version shape."""

    pass


class NoMatchingVersion(RuntimeSetupError):
    """No catalog release satisfies the requested version range."""

    pass


class NoMatchingPlatform(RuntimeSetupError):
    """A release matches the version range but has no file for platform/arch."""

    def __init__(
        self,
        message: str,
        version_spec: str = "",
        architecture: str = "",
        platform: str = "",
        release_version: str = "",
    ):
        self.platform = platform
        self.release_version = release_version
        super().__init__(message, version_spec, architecture)


class DownloadFailed(RuntimeSetupError):
    """Artifact download failed (network or HTTP error)."""

    def __init__(
        self,
        message: str,
        version_spec: str = "",
        architecture: str = "",
        url: str = "",
    ):
        self.url = url
        super().__init__(message, version_spec, architecture)


class InstallFailed(RuntimeSetupError):
    """Installer binary exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        version_spec: str = "",
        architecture: str = "",
        exit_code: Optional[int] = None,
    ):
        self.exit_code = exit_code
        super().__init__(message, version_spec, architecture)


class UnexpectedArchiveLayout(RuntimeSetupError):
    """Extracted archive does not contain exactly one top-level entry."""

    def __init__(
        self,
        message: str,
        version_spec: str = "",
        architecture: str = "",
        entries: Optional[list] = None,
    ):
        self.entries = list(entries or [])
        super().__init__(message, version_spec, architecture)


# ============================================================================
# Cache Exceptions (non-fatal for the pipeline)
# ============================================================================


class CacheBackendError(RuntimeKitError):
    """Persistent cache store failed to restore or save an entry."""

    pass


class CacheEntryExistsError(CacheBackendError):
    """Raised when saving a key that the store already holds."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Cache entry already exists: {key}")


class CacheLockTimeout(CacheBackendError):
    """Raised when the cache store lock cannot be acquired within timeout."""

    pass
