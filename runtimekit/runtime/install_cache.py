"""
Install cache: memoizes installed runtime directories by cache key.

The install cache owns the key -> install directory mapping. Backend
failures never abort an install: a failing restore counts as a miss and a
failing save only loses the cache entry for future runs.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set

from runtimekit.core.cache_store import LocalCacheStore
from runtimekit.core.exceptions import CacheBackendError, CacheEntryExistsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallRecord:
    """An installed runtime directory."""

    install_dir: Path


class InstallCache:
    """
    Restore/save installed runtimes through a persistent cache store.

    Example:
        >>> cache = InstallCache(LocalCacheStore(cache_dir))
        >>> record = cache.restore(key, install_dir)
        >>> if record is None:
        ...     record = acquire()
        ...     cache.save(key, record.install_dir)
    """

    def __init__(self, store: LocalCacheStore):
        self.store = store
        self._known_keys: Set[str] = set()

    def restore(self, key: str, install_dir: Path) -> Optional[InstallRecord]:
        """
        Restore an install directory stored under key.

        Args:
            key: Cache key
            install_dir: Directory the entry is materialized into

        Returns:
            InstallRecord on a hit, None on a miss or backend failure
        """
        install_dir = Path(install_dir)
        try:
            matched = self.store.restore([install_dir], key)
        except CacheBackendError as e:
            logger.warning(f"Cache restore failed, continuing without cache: {e}")
            return None

        if matched is None:
            logger.info(f"No cached install found for key: {key}")
            return None

        self._known_keys.add(key)
        return InstallRecord(install_dir=install_dir)

    def save(self, key: str, install_dir: Path) -> bool:
        """
        Persist an install directory under key.

        A key restored or saved earlier in this process, or already present in
        the store, is not stored again.

        Returns:
            True if a new entry was written
        """
        if key in self._known_keys:
            logger.debug(f"Cache entry already known, not saving again: {key}")
            return False

        try:
            self.store.save([Path(install_dir)], key)
        except CacheEntryExistsError:
            logger.info(f"Cache entry already exists, skipping save: {key}")
            self._known_keys.add(key)
            return False
        except CacheBackendError as e:
            logger.warning(f"Failed to save cache entry {key}: {e}")
            return False

        self._known_keys.add(key)
        return True
