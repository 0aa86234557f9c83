"""Shared utilities for sharedpkg."""
from __future__ import annotations

from sharedpkg.core.utils.io import atomic_write, ensure_directory, read_yaml, write_yaml
from sharedpkg.core.utils.locking import acquire_file_lock

__all__ = [
    "atomic_write",
    "ensure_directory",
    "read_yaml",
    "write_yaml",
    "acquire_file_lock",
]
