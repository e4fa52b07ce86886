"""
Unit tests for locking module.
"""

import pytest
from filelock import FileLock

from runtimekit.core.locking import LockManager, LockTimeout


class TestLockManager:
    """Test LockManager class."""

    def test_creates_lock_dir(self, tmp_path):
        """Test lock directory is created on construction."""
        manager = LockManager(tmp_path / "cache" / "lock")
        assert manager.lock_dir.is_dir()

    def test_store_lock_acquire_release(self, tmp_path):
        """Test store lock can be taken twice in sequence."""
        manager = LockManager(tmp_path)

        with manager.store_lock(timeout=1):
            pass
        with manager.store_lock(timeout=1):
            pass

    def test_store_lock_timeout(self, tmp_path):
        """Test a held store lock times out."""
        manager = LockManager(tmp_path)
        holder = FileLock(tmp_path / "store.lock")

        with holder:
            with pytest.raises(LockTimeout):
                with manager.store_lock(timeout=0.1):
                    pass

    def test_install_lock_per_key(self, tmp_path):
        """Test install locks for different keys do not block each other."""
        manager = LockManager(tmp_path)

        with manager.install_lock("a/b/c", timeout=1):
            with manager.install_lock("a/b/d", timeout=1):
                pass

    def test_install_lock_file_name(self, tmp_path):
        """Test key characters never reach the lock file name."""
        manager = LockManager(tmp_path)

        with manager.install_lock("runtimekit/setup-python/Linux/nogil/3.9.10/x"):
            names = [p.name for p in tmp_path.iterdir()]

        assert len(names) == 1
        assert names[0].startswith("install-")
        assert "/" not in names[0]

    def test_install_lock_timeout(self, tmp_path):
        """Test a held install lock times out."""
        manager = LockManager(tmp_path)
        other = LockManager(tmp_path)

        with manager.install_lock("key", timeout=1):
            with pytest.raises(LockTimeout):
                with other.install_lock("key", timeout=0.1):
                    pass
