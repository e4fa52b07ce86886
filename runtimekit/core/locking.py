"""
Concurrent access control for RuntimeKit.

File-based locks shared by every RuntimeKit process on a machine:

- the cache store lock serializes updates of the store index,
- the install lock (opt-in) serializes installs of one cache key so a second
  process waits and then restores instead of installing again.

Usage:
    from runtimekit.core.locking import LockManager

    locks = LockManager(cache_dir / "lock")
    with locks.install_lock(cache_key, timeout=600):
        ...
"""

import hashlib
import logging
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


class LockManager:
    """
    Manages lock files under one directory.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def store_lock(self, timeout: int = 30):
        """
        Acquire the cache store lock.

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        lock_path = self.lock_dir / "store.lock"
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired store lock: {lock_path}")
                yield
            logger.debug(f"Released store lock: {lock_path}")
        except LockTimeout as e:
            logger.error(f"Could not acquire store lock after {timeout}s")
            raise LockTimeout(str(lock_path)) from e

    @contextmanager
    def install_lock(self, cache_key: str, timeout: int = 600):
        """
        Acquire the install lock for one cache key.

        Keys hold characters that are not valid in file names, so the lock
        file is named after a digest of the key.

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        digest = hashlib.sha256(cache_key.encode("utf-8")).hexdigest()[:32]
        lock_path = self.lock_dir / f"install-{digest}.lock"
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired install lock for {cache_key}")
                yield
            logger.debug(f"Released install lock for {cache_key}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire install lock for {cache_key} after {timeout}s. "
                "Another process may be installing this runtime."
            )
            raise LockTimeout(str(lock_path)) from e


__all__ = ["LockManager", "LockTimeout"]
