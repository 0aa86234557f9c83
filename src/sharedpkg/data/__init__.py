"""
Bundled data resources.

Provides access to the schemas shipped with the package using
importlib.resources.
"""

from __future__ import annotations

from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml


def get_data_path(subpackage: str, filename: str = "") -> Path:
    """
    Get absolute path to a data file or directory.

    Args:
        subpackage: Name of the data subdirectory (e.g., "schemas")
        filename: Optional filename within the subdirectory

    Returns:
        Absolute path to the file or directory
    """
    pkg = resources.files("sharedpkg.data")
    base = Path(str(pkg / subpackage))
    return base / filename if filename else base


@lru_cache(maxsize=16)
def read_yaml(subpackage: str, filename: str) -> dict[str, Any]:
    """Load a bundled YAML document as a mapping."""
    path = get_data_path(subpackage, filename)
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Bundled YAML must be a mapping: {path}")
    return data


__all__ = ["get_data_path", "read_yaml"]
