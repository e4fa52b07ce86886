"""
Release catalog (manifest) and release matching.

The catalog lists runtime releases with per-platform download files, in the
same shape as a GitHub tool-cache ``versions-manifest.json``::

    [
      {
        "version": "3.9.10",
        "stable": false,
        "release_url": "https://...",
        "files": [
          {"filename": "...", "arch": "x64", "platform": "darwin",
           "download_url": "https://..."}
        ]
      }
    ]

The embedded catalog lives in ``runtimekit/data/manifest.json``; another file
can be supplied through configuration.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from packaging.version import InvalidVersion, Version

from runtimekit.core.exceptions import (
    ManifestError,
    NoMatchingPlatform,
    NoMatchingVersion,
)
from runtimekit.runtime.versions import VersionRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseFile:
    """One downloadable artifact of a release."""

    filename: str
    arch: str
    platform: str
    download_url: str


@dataclass(frozen=True)
class Release:
    """A catalog release with its per-platform files."""

    version: str
    stable: bool
    release_url: str
    files: Tuple[ReleaseFile, ...]

    def find_file(self, platform: str, arch: str) -> Optional[ReleaseFile]:
        """Return the first file for this platform and architecture."""
        for entry in self.files:
            if entry.platform == platform and entry.arch == arch:
                return entry
        return None


@dataclass(frozen=True)
class ReleaseMatch:
    """Release selected for a request, with its platform file."""

    release: Release
    file: ReleaseFile

    @property
    def version(self) -> str:
        return self.release.version

    @property
    def download_url(self) -> str:
        return self.file.download_url


def default_manifest_path() -> Path:
    """Path to the embedded catalog."""
    return Path(__file__).parent.parent / "data" / "manifest.json"


def _parse_file(data: Any, version: str) -> ReleaseFile:
    if not isinstance(data, dict):
        raise ManifestError(f"Release {version}: file entry must be an object")
    try:
        return ReleaseFile(
            filename=str(data["filename"]),
            arch=str(data["arch"]),
            platform=str(data["platform"]),
            download_url=str(data["download_url"]),
        )
    except KeyError as e:
        raise ManifestError(f"Release {version}: file entry missing {e}") from e


def _parse_release(data: Any) -> Release:
    if not isinstance(data, dict):
        raise ManifestError("Release entry must be an object")
    if "version" not in data:
        raise ManifestError("Release entry missing 'version'")

    version = str(data["version"])
    files = data.get("files", [])
    if not isinstance(files, list):
        raise ManifestError(f"Release {version}: 'files' must be a list")

    return Release(
        version=version,
        stable=bool(data.get("stable", True)),
        release_url=str(data.get("release_url", "")),
        files=tuple(_parse_file(f, version) for f in files),
    )


class Manifest:
    """
    Ordered, immutable release catalog.

    Example:
        >>> manifest = Manifest.load()
        >>> manifest.versions()
        ['3.9.10']
    """

    def __init__(self, releases: Iterable[Release]):
        self.releases: Tuple[Release, ...] = tuple(releases)

    @classmethod
    def from_data(cls, data: Any) -> "Manifest":
        """
        Build a manifest from decoded JSON data.

        Raises:
            ManifestError: If the data does not have the catalog shape
        """
        if not isinstance(data, list):
            raise ManifestError("Manifest must be a list of releases")
        return cls(_parse_release(entry) for entry in data)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Manifest":
        """
        Load a manifest from a JSON file (default: embedded catalog).

        Raises:
            ManifestError: If file cannot be loaded or parsed
        """
        path = Path(path) if path else default_manifest_path()

        if not path.exists():
            raise ManifestError(f"Manifest file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid JSON in manifest: {e}\nFile: {path}") from e
        except OSError as e:
            raise ManifestError(f"Failed to load manifest: {e}\nFile: {path}") from e

        manifest = cls.from_data(data)
        logger.debug(f"Loaded manifest with {len(manifest.releases)} releases from {path}")
        return manifest

    def versions(self) -> List[str]:
        """List catalog versions in catalog order."""
        return [r.version for r in self.releases]

    def platforms(self, version: str) -> List[str]:
        """List 'platform-arch' strings available for a version."""
        for release in self.releases:
            if release.version == version:
                return [f"{f.platform}-{f.arch}" for f in release.files]
        return []

    def __len__(self) -> int:
        return len(self.releases)


def _sort_key(release: Release) -> Version:
    try:
        return Version(release.version)
    except InvalidVersion:
        return Version("0")


def find_release(
    version_range: VersionRange,
    architecture: str,
    manifest: Manifest,
    platform: str,
    stable_only: bool = False,
) -> ReleaseMatch:
    """
    Select the best release and its platform file.

    Among releases satisfying the range (and marked stable when
    ``stable_only`` is set) the highest version wins; equal versions keep
    catalog order. The file is the first one whose platform and arch both
    match.

    Args:
        version_range: Normalized version request
        architecture: Requested architecture (e.g. 'x64')
        manifest: Release catalog
        platform: Running platform (e.g. 'darwin')
        stable_only: Only consider releases flagged stable

    Returns:
        ReleaseMatch with the release and file

    Raises:
        NoMatchingVersion: If no release satisfies the range
        NoMatchingPlatform: If the chosen release has no file for platform/arch
    """
    candidates = [
        release
        for release in manifest.releases
        if version_range.contains(release.version)
        and (not stable_only or release.stable)
    ]

    if not candidates:
        raise NoMatchingVersion(
            f"No release in the manifest satisfies '{version_range.expression}'",
            version_range.spec,
            architecture,
        )

    # max() keeps the first of equal elements
    release = max(candidates, key=_sort_key)
    logger.debug(f"Selected release {release.version} for {version_range.spec}")

    entry = release.find_file(platform, architecture)
    if entry is None:
        available = ", ".join(f"{f.platform}-{f.arch}" for f in release.files) or "none"
        raise NoMatchingPlatform(
            f"Release {release.version} has no file for {platform}-{architecture} "
            f"(available: {available})",
            version_range.spec,
            architecture,
            platform=platform,
            release_version=release.version,
        )

    return ReleaseMatch(release=release, file=entry)
