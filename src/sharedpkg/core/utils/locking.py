"""Advisory file locks around shared store writes."""
from __future__ import annotations

import fcntl
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

from sharedpkg.core.exceptions import LockTimeoutError

_THREAD_MUTEXES: dict[str, threading.Lock] = {}

DEFAULT_POLL_INTERVAL = 0.1


def _thread_mutex(path: Path) -> threading.Lock:
    key = str(path.resolve())
    lock = _THREAD_MUTEXES.get(key)
    if lock is None:
        lock = _THREAD_MUTEXES.setdefault(key, threading.Lock())
    return lock


@contextmanager
def acquire_file_lock(
    lock_path: Path | str,
    timeout: float,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Iterator[IO[str]]:
    """Hold an exclusive ``flock`` on ``lock_path`` for the duration of the context.

    The lock file is created when missing and left in place on release, so
    every waiter locks the same inode. Acquisition retries with ``LOCK_NB``
    until ``timeout`` seconds have elapsed.

    Raises:
        LockTimeoutError: If the lock is still held elsewhere after ``timeout``.
        ValueError: If ``timeout`` or ``poll_interval`` is not positive.
    """
    if timeout <= 0:
        raise ValueError(f"timeout must be positive (got {timeout})")
    if poll_interval <= 0:
        raise ValueError(f"poll_interval must be positive (got {poll_interval})")

    start = time.monotonic()
    target = Path(lock_path)
    target.parent.mkdir(parents=True, exist_ok=True)

    mutex = _thread_mutex(target)
    if not mutex.acquire(timeout=timeout):
        raise LockTimeoutError(
            f"Could not acquire lock on {target} within {timeout}s",
            context={"path": str(target)},
        )

    fh = open(target, "a+", encoding="utf-8")
    acquired = False
    try:
        while True:
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                acquired = True
                break
            except OSError:
                if (time.monotonic() - start) >= timeout:
                    raise LockTimeoutError(
                        f"Could not acquire lock on {target} within {timeout}s",
                        context={"path": str(target)},
                    )
                time.sleep(poll_interval)

        yield fh
    finally:
        try:
            if acquired:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        finally:
            fh.close()
            mutex.release()


__all__ = ["acquire_file_lock"]
