"""Tests for advisory store locks."""
from __future__ import annotations

import fcntl
from pathlib import Path

import pytest

from sharedpkg.core.exceptions import LockTimeoutError
from sharedpkg.core.utils.locking import acquire_file_lock


class TestAcquireFileLock:
    def test_lock_file_created_and_kept(self, tmp_path: Path) -> None:
        lock_path = tmp_path / "store" / "acme" / "1.0.0.lock"

        with acquire_file_lock(lock_path, timeout=1):
            assert lock_path.exists()

        assert lock_path.exists()

    def test_waiter_with_open_handle_still_excludes_later_callers(self, tmp_path: Path) -> None:
        """A waiter that opened the lock file before release locks the same file."""
        lock_path = tmp_path / "1.0.0.lock"
        with acquire_file_lock(lock_path, timeout=1):
            waiter = open(lock_path, "a+", encoding="utf-8")

        try:
            fcntl.flock(waiter.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

            with pytest.raises(LockTimeoutError):
                with acquire_file_lock(lock_path, timeout=0.3, poll_interval=0.05):
                    pass
        finally:
            fcntl.flock(waiter.fileno(), fcntl.LOCK_UN)
            waiter.close()

    def test_times_out_when_held_elsewhere(self, tmp_path: Path) -> None:
        """A lock held through another file description blocks acquisition."""
        lock_path = tmp_path / "held.lock"
        with open(lock_path, "a+", encoding="utf-8") as other:
            fcntl.flock(other.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

            with pytest.raises(LockTimeoutError, match="Could not acquire lock"):
                with acquire_file_lock(lock_path, timeout=0.2, poll_interval=0.05):
                    pass

            fcntl.flock(other.fileno(), fcntl.LOCK_UN)

    def test_rejects_non_positive_timeout(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            with acquire_file_lock(tmp_path / "x.lock", timeout=0):
                pass
