"""
Runtime installation pipeline.

This module orchestrates one setup run:
1. Normalize the version spec and match it against the release catalog
2. Derive the cache key and restore a cached install when present
3. Download the release file
4. Materialize the install directory with the platform strategy
5. Save the install directory to the cache

Everything up to the cache check is pure; network access starts only after
the request resolved to a concrete release file.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from runtimekit.config import RuntimeConfig, default_config
from runtimekit.core.cache_store import LocalCacheStore
from runtimekit.core.download import DownloadError, download_file
from runtimekit.core.exceptions import DownloadFailed, InstallFailed, InvalidVersionSpec
from runtimekit.core.filesystem import FilesystemError, safe_rmtree
from runtimekit.core.locking import LockManager
from runtimekit.runtime.cache_key import derive_cache_key
from runtimekit.runtime.install_cache import InstallCache
from runtimekit.runtime.manifest import Manifest, ReleaseMatch, find_release
from runtimekit.runtime.publish import InstalledRuntime, binary_path
from runtimekit.runtime.strategies import strategy_for_platform
from runtimekit.runtime.strategy import SetupRequest
from runtimekit.runtime.versions import VersionRange, normalize_version_spec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """
    A version request resolved against the catalog.

    Attributes:
        request: Original version spec and architecture
        version_range: Normalized range
        match: Selected release and file
        cache_key: Key the install is cached under
        install_dir: Directory the runtime is installed into
    """

    request: SetupRequest
    version_range: VersionRange
    match: ReleaseMatch
    cache_key: str
    install_dir: Path

    @property
    def version(self) -> str:
        return self.match.version

    @property
    def download_url(self) -> str:
        return self.match.download_url


class RuntimeInstaller:
    """
    Install catalog runtimes with caching.

    Example:
        >>> installer = RuntimeInstaller(load_config())
        >>> runtime = installer.install("nogil-3.9")
        >>> print(runtime.binary_path)
    """

    def __init__(
        self,
        config: RuntimeConfig,
        manifest: Optional[Manifest] = None,
        cache: Optional[InstallCache] = None,
    ):
        """
        Initialize installer.

        Args:
            config: Resolved settings
            manifest: Release catalog (default: loaded from config.manifest)
            cache: Install cache (default: local store under config.cache_dir)
        """
        self.config = config
        self.manifest = manifest if manifest is not None else Manifest.load(config.manifest)
        self.cache = cache if cache is not None else InstallCache(
            LocalCacheStore(config.cache_dir)
        )
        self.strategy = strategy_for_platform(config.platform, config.temp_dir)

    def install_dir_for(self, version: str) -> Path:
        return self.config.install_root / f"{self.config.tool_name}-{version}"

    def resolve(self, version_spec: str, architecture: Optional[str] = None) -> Resolution:
        """
        Resolve a version request without touching the network or the cache.

        Raises:
            InvalidVersionSpec: If the version spec cannot be parsed
            NoMatchingVersion: If no release satisfies the version spec
            NoMatchingPlatform: If the release has no file for this platform/arch
        """
        arch = architecture or self.config.architecture
        request = SetupRequest(version_spec=version_spec, architecture=arch)

        try:
            version_range = normalize_version_spec(version_spec, self.config.tool_name)
        except InvalidVersionSpec as e:
            raise InvalidVersionSpec(e.reason, version_spec, arch) from e

        match = find_release(
            version_range, arch, self.manifest, self.config.platform, stable_only=False
        )
        cache_key = derive_cache_key(
            self.config.os_name,
            self.config.tool_name,
            match.version,
            match.download_url,
            prefix=self.config.cache_key_prefix,
        )

        return Resolution(
            request=request,
            version_range=version_range,
            match=match,
            cache_key=cache_key,
            install_dir=self.install_dir_for(match.version),
        )

    def install(self, version_spec: str, architecture: Optional[str] = None) -> InstalledRuntime:
        """
        Install the runtime matching a version spec.

        Args:
            version_spec: Requested version (e.g. 'nogil-3.9.10', '3.9')
            architecture: Requested architecture (default: config.architecture)

        Returns:
            InstalledRuntime describing the install

        Raises:
            RuntimeSetupError: Any fatal setup failure
        """
        resolution = self.resolve(version_spec, architecture)
        logger.debug(f"Cache key: {resolution.cache_key}")

        with self._install_lock(resolution.cache_key):
            record = self.cache.restore(resolution.cache_key, resolution.install_dir)
            if record is not None:
                logger.info(f"Using cached {self.config.tool_name} {resolution.version}")
                return self._result(resolution, was_cached=True)

            self._clear_stale_install(resolution)
            downloaded = self._download(resolution)
            self.strategy.materialize(
                downloaded, resolution.install_dir, resolution.request
            )
            self.cache.save(resolution.cache_key, resolution.install_dir)

        logger.info(
            f"Installed {self.config.tool_name} {resolution.version} "
            f"to {resolution.install_dir}"
        )
        return self._result(resolution, was_cached=False)

    def _clear_stale_install(self, resolution: Resolution):
        """
        Remove an install directory left behind by an earlier run.

        A directory at the install path on a cache miss was never saved, either
        because the save failed or because that run was interrupted.
        """
        install_dir = resolution.install_dir
        if not install_dir.exists() and not install_dir.is_symlink():
            return

        logger.warning(f"Removing stale install directory: {install_dir}")
        try:
            if install_dir.is_dir() and not install_dir.is_symlink():
                safe_rmtree(install_dir, require_prefix=self.config.install_root)
            else:
                install_dir.unlink()
        except (FilesystemError, ValueError, OSError) as e:
            raise InstallFailed(
                f"Failed to remove stale install directory {install_dir}: {e}. "
                "Remove it manually and re-run",
                resolution.request.version_spec,
                resolution.request.architecture,
            ) from e

    def _install_lock(self, cache_key: str):
        if not self.config.lock_installs:
            return nullcontext()
        return LockManager(self.config.cache_dir / "lock").install_lock(cache_key)

    def _download(self, resolution: Resolution) -> Path:
        url = resolution.download_url
        logger.info(f"Downloading {self.config.tool_name} from {url} ...")

        destination = self.strategy.download_destination(resolution.match.file)
        try:
            downloaded = download_file(
                url,
                destination=destination,
                download_dir=self.config.download_dir,
                timeout=self.config.download_timeout,
                max_retries=1,
            )
        except DownloadError as e:
            raise DownloadFailed(
                str(e),
                resolution.request.version_spec,
                resolution.request.architecture,
                url=url,
            ) from e

        logger.debug(f"Downloaded to {downloaded}")
        return downloaded

    def _result(self, resolution: Resolution, was_cached: bool) -> InstalledRuntime:
        return InstalledRuntime(
            impl=self.config.tool_name,
            version=resolution.version,
            install_dir=resolution.install_dir,
            binary_path=binary_path(resolution.install_dir, self.config.platform),
            platform=self.config.platform,
            was_cached=was_cached,
        )


def install_runtime(
    version_spec: str,
    architecture: Optional[str] = None,
    config: Optional[RuntimeConfig] = None,
) -> InstalledRuntime:
    """
    Convenience function to install a runtime.

    For several installs, create a RuntimeInstaller and reuse it.

    Example:
        >>> from runtimekit.runtime.installer import install_runtime
        >>> runtime = install_runtime("nogil-3.9.10")
    """
    installer = RuntimeInstaller(config or default_config())
    return installer.install(version_spec, architecture)
