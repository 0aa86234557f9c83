"""Shared package installer.

Installs resolved packages either as independent copies or as links into a
shared, version-keyed store.
"""
from __future__ import annotations

__version__ = "0.1.0"
