"""Installed-package ledgers.

The host package manager owns the record of installed packages; installers
only talk to it through :class:`InstalledRepository`. Two implementations are
provided: an in-memory ledger and a YAML-backed one.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterator, Protocol, runtime_checkable

from sharedpkg.core.installers.models import Installation, LedgerEntry, PackageDescriptor
from sharedpkg.core.utils.io import read_yaml, write_yaml


@runtime_checkable
class InstalledRepository(Protocol):
    """Narrow ledger interface consumed by the installers."""

    def has_package(self, package: PackageDescriptor) -> bool:
        """Return True when this exact name and version is recorded."""
        ...

    def find_package(self, name: str) -> LedgerEntry | None:
        """Return the entry recorded under ``name``, if any."""
        ...

    def add_package(
        self,
        package: PackageDescriptor,
        installation: Installation | None = None,
    ) -> None:
        """Record ``package``, replacing any entry with the same name."""
        ...

    def remove_package(self, package: PackageDescriptor) -> None:
        """Forget ``package``; unknown packages are ignored."""
        ...


class InMemoryLedger:
    """Ledger kept in process memory."""

    def __init__(self, entries: list[LedgerEntry] | None = None) -> None:
        self._entries: dict[str, LedgerEntry] = {}
        for entry in entries or []:
            self._entries[entry.package.name] = entry

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(sorted(self._entries.values(), key=lambda e: e.package.name))

    def __len__(self) -> int:
        return len(self._entries)

    def has_package(self, package: PackageDescriptor) -> bool:
        entry = self._entries.get(package.name)
        return entry is not None and entry.package.version == package.version

    def find_package(self, name: str) -> LedgerEntry | None:
        return self._entries.get(name)

    def add_package(
        self,
        package: PackageDescriptor,
        installation: Installation | None = None,
    ) -> None:
        self._entries[package.name] = LedgerEntry(package=package, installation=installation)
        self._changed()

    def remove_package(self, package: PackageDescriptor) -> None:
        if self._entries.pop(package.name, None) is not None:
            self._changed()

    def _changed(self) -> None:
        """Hook called after every mutation."""


class YamlLedger(InMemoryLedger):
    """Ledger persisted as a YAML document.

    Every mutation is written back immediately so an interrupted run never
    loses the record of operations that already completed. Entries are
    sorted by name for deterministic output.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)

    def load(self) -> None:
        """Load existing entries; a missing file means an empty ledger."""
        data = read_yaml(self.path, default={}, raise_on_error=True) if self.path.exists() else {}
        if not isinstance(data, dict):
            raise ValueError(f"Ledger must be a YAML mapping: {self.path}")
        self._entries = {}
        for item in data.get("packages", []) or []:
            entry = LedgerEntry.from_dict(item)
            self._entries[entry.package.name] = entry

    def save(self) -> None:
        write_yaml(self.path, {"packages": [entry.to_dict() for entry in self]})

    def _changed(self) -> None:
        self.save()


__all__ = ["InstalledRepository", "InMemoryLedger", "YamlLedger"]
