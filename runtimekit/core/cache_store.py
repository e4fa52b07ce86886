"""
Local persistent cache store for installed runtimes.

The store keeps one gzip tarball per cache key plus a JSON index, protected by
a file lock so several RuntimeKit processes can share one cache directory.
Its interface mirrors a CI cache service: ``restore(paths, key)`` returns the
matched key or None, ``save(paths, key)`` stores the paths under a key once.

Layout:
    <cache_dir>/index.json          : key -> entry metadata
    <cache_dir>/entries/<id>.tar.gz : archived paths
    <cache_dir>/lock/store.lock     : index lock
"""

import hashlib
import json
import logging
import os
import shutil
import tarfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from runtimekit.core.exceptions import (
    CacheBackendError,
    CacheEntryExistsError,
    CacheLockTimeout,
)
from runtimekit.core.filesystem import (
    FilesystemError,
    atomic_write,
    create_tar_archive,
    directory_size,
    extract_archive,
    move_directory,
    safe_rmtree,
    temporary_directory,
)
from runtimekit.core.locking import LockManager, LockTimeout

logger = logging.getLogger(__name__)

INDEX_VERSION = 1


def paths_signature(paths: Sequence[Path]) -> str:
    """
    Digest of the cached path list.

    An entry saved for one set of paths never restores into another set.
    """
    normalized = "|".join(str(Path(p).expanduser().absolute()) for p in paths)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class LocalCacheStore:
    """
    Directory-backed cache store with key/prefix lookup.

    Example:
        >>> store = LocalCacheStore(Path.home() / ".runtimekit" / "cache")
        >>> store.save([install_dir], "runtimekit/setup-python/Linux/nogil/3.9.10/abc")
        >>> store.restore([install_dir], "runtimekit/setup-python/Linux/nogil/3.9.10/abc")
        'runtimekit/setup-python/Linux/nogil/3.9.10/abc'
    """

    def __init__(self, cache_dir: Path, lock_timeout: int = 30):
        """
        Initialize cache store.

        Args:
            cache_dir: Root directory of the store
            lock_timeout: Timeout in seconds for acquiring the index lock
        """
        self.cache_dir = Path(cache_dir)
        self.index_path = self.cache_dir / "index.json"
        self.entries_dir = self.cache_dir / "entries"
        self.lock_timeout = lock_timeout

        logger.debug(f"Initialized cache store at {self.cache_dir}")

    # ------------------------------------------------------------------
    # Index handling
    # ------------------------------------------------------------------

    def _empty_index(self) -> dict:
        return {"version": INDEX_VERSION, "entries": {}}

    def _load_index(self) -> dict:
        if not self.index_path.exists():
            return self._empty_index()

        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise CacheBackendError(f"Failed to load cache index: {e}") from e

        if not self._valid_index(data):
            logger.warning("Invalid cache index format, resetting")
            return self._empty_index()

        return data

    def _valid_index(self, data) -> bool:
        if not isinstance(data, dict) or data.get("version") != INDEX_VERSION:
            return False
        entries = data.get("entries")
        return isinstance(entries, dict) and all(
            isinstance(entry, dict) for entry in entries.values()
        )

    def _save_index(self, data: dict):
        try:
            atomic_write(self.index_path, json.dumps(data, indent=2, ensure_ascii=False))
        except OSError as e:
            raise CacheBackendError(f"Failed to save cache index: {e}") from e

    @contextmanager
    def _lock(self):
        """
        Hold the index lock.

        Lock timeouts and I/O errors inside the locked block surface as
        cache backend errors.
        """
        try:
            locks = LockManager(self.cache_dir / "lock")
            with locks.store_lock(timeout=self.lock_timeout):
                yield
        except LockTimeout as e:
            raise CacheLockTimeout(
                f"Could not acquire cache store lock within {self.lock_timeout} seconds"
            ) from e
        except OSError as e:
            raise CacheBackendError(f"Cache store I/O error: {e}") from e

    def _entry_id(self, key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def contains(self, key: str) -> bool:
        """Check whether an entry is stored under exactly this key."""
        with self._lock():
            return key in self._load_index()["entries"]

    def restore(
        self,
        paths: Sequence[Path],
        primary_key: str,
        restore_keys: Iterable[str] = (),
    ) -> Optional[str]:
        """
        Restore cached paths.

        The exact primary key is tried first, then each restore key as a
        prefix, newest entry first.

        Args:
            paths: Paths to materialize (same list that was saved)
            primary_key: Exact key to look up
            restore_keys: Ordered key prefixes to fall back to

        Returns:
            The matched key, or None on a miss

        Raises:
            CacheBackendError: If the store cannot be read or extracted
        """
        paths = [Path(p) for p in paths]
        if not paths:
            raise ValueError("At least one path is required")

        with self._lock():
            index = self._load_index()

        matched_key = self._find_key(
            index["entries"], primary_key, list(restore_keys), paths_signature(paths)
        )
        if matched_key is None:
            logger.debug(f"Cache miss: {primary_key}")
            return None

        archive_name = index["entries"][matched_key].get("archive")
        if not isinstance(archive_name, str) or not archive_name:
            raise CacheBackendError(f"Cache index entry for {matched_key} has no archive")

        archive_path = self.entries_dir / archive_name
        if not archive_path.exists():
            raise CacheBackendError(
                f"Cache archive missing for {matched_key}: {archive_path}"
            )

        try:
            self._unpack(archive_path, paths)
        except (FilesystemError, OSError, tarfile.TarError) as e:
            raise CacheBackendError(f"Failed to restore {matched_key}: {e}") from e

        logger.info(f"Cache restored from key: {matched_key}")
        return matched_key

    def save(self, paths: Sequence[Path], primary_key: str) -> int:
        """
        Save paths under a key.

        Args:
            paths: Files or directories to archive
            primary_key: Key to store them under

        Returns:
            Size of the stored archive in bytes

        Raises:
            CacheEntryExistsError: If the key is already stored
            CacheBackendError: If paths are missing or the write fails
        """
        paths = [Path(p) for p in paths]
        if not primary_key:
            raise ValueError("Cache key cannot be empty")
        if not paths:
            raise ValueError("At least one path is required")

        missing = [str(p) for p in paths if not p.exists()]
        if missing:
            raise CacheBackendError(
                f"Path(s) specified for caching do not exist: {', '.join(missing)}"
            )

        if self.contains(primary_key):
            raise CacheEntryExistsError(primary_key)

        entry_id = self._entry_id(primary_key)
        archive_name = f"{entry_id}.tar.gz"
        archive_path = self.entries_dir / archive_name
        staging_path = self.entries_dir / f".{entry_id}.{os.getpid()}.tmp"

        try:
            content_size = sum(
                directory_size(p) if p.is_dir() else p.stat().st_size for p in paths
            )
            create_tar_archive(
                staging_path, ((p, str(i)) for i, p in enumerate(paths))
            )
        except (OSError, tarfile.TarError) as e:
            staging_path.unlink(missing_ok=True)
            raise CacheBackendError(f"Failed to archive {primary_key}: {e}") from e

        try:
            with self._lock():
                index = self._load_index()
                if primary_key in index["entries"]:
                    raise CacheEntryExistsError(primary_key)

                staging_path.replace(archive_path)
                size = archive_path.stat().st_size
                index["entries"][primary_key] = {
                    "archive": archive_name,
                    "paths": [str(p) for p in paths],
                    "signature": paths_signature(paths),
                    "created": datetime.now().isoformat(),
                    "size_mb": size / (1024 * 1024),
                    "content_size_mb": content_size / (1024 * 1024),
                }
                self._save_index(index)
        finally:
            staging_path.unlink(missing_ok=True)

        logger.info(f"Cache saved with key: {primary_key} ({size / 1024 / 1024:.1f} MB)")
        return size

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_key(
        self,
        entries: Dict[str, dict],
        primary_key: str,
        restore_keys: List[str],
        signature: str,
    ) -> Optional[str]:
        def usable(key: str) -> bool:
            return entries[key].get("signature") == signature

        if primary_key in entries and usable(primary_key):
            return primary_key

        for prefix in restore_keys:
            candidates = [k for k in entries if k.startswith(prefix) and usable(k)]
            if candidates:
                return max(candidates, key=lambda k: entries[k].get("created", ""))

        return None

    def _unpack(self, archive_path: Path, paths: List[Path]):
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with temporary_directory(prefix="restore_", parent=self.cache_dir) as staging:
            extract_archive(archive_path, staging)

            for i, target in enumerate(paths):
                source = staging / str(i)
                if not source.exists() and not source.is_symlink():
                    raise CacheBackendError(f"Cache archive has no member for {target}")

                if target.is_dir() and not target.is_symlink():
                    safe_rmtree(target)
                elif target.exists() or target.is_symlink():
                    target.unlink()

                if source.is_dir():
                    move_directory(source, target)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.move(str(source), str(target))
