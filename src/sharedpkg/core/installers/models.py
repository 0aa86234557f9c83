"""Installer data models.

Provides immutable dataclasses for package descriptors, installation
records and store markers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Union


class InstallStrategy(str, Enum):
    """How a package is placed into the project."""

    SHARED = "shared"
    DEFAULT = "default"


class LinkMode(str, Enum):
    """Whether a created link stores a relative or an absolute target."""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"


class LinkFallback(str, Enum):
    """Link primitive used when native symlinks are unavailable."""

    NONE = "none"
    JUNCTION = "junction"


@dataclass(frozen=True, slots=True)
class PackageDescriptor:
    """A resolved dependency.

    Attributes:
        name: Canonical package name (may be vendor-prefixed, e.g. ``acme/foo``)
        version: Normalized resolved version
        pretty_name: Name as written by the package author
        pretty_version: Version as written by the package author
        type: Type tag declared by the package manifest
        extra: Arbitrary metadata from the package manifest
        dist_path: Local directory or archive holding the package contents
        source_reference: VCS reference of the resolved snapshot
    """

    name: str
    version: str
    pretty_name: str = ""
    pretty_version: str = ""
    type: str = "library"
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)
    dist_path: str | None = None
    source_reference: str | None = None

    @property
    def display_name(self) -> str:
        return self.pretty_name or self.name

    @property
    def display_version(self) -> str:
        return self.pretty_version or self.version

    @property
    def is_dev(self) -> bool:
        """True for branch snapshots such as ``dev-main`` or ``1.x-dev``."""
        v = self.display_version
        return v.startswith("dev-") or v.endswith("-dev")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PackageDescriptor:
        """Create a descriptor from a manifest-like mapping."""
        missing = [k for k in ("name", "version") if not data.get(k)]
        if missing:
            raise ValueError(f"Missing required keys: {sorted(missing)}")
        return cls(
            name=str(data["name"]),
            version=str(data["version"]),
            pretty_name=str(data.get("pretty_name") or ""),
            pretty_version=str(data.get("pretty_version") or ""),
            type=str(data.get("type") or "library"),
            extra=dict(data.get("extra") or {}),
            dist_path=data.get("dist_path"),
            source_reference=data.get("source_reference"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        result: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "type": self.type,
        }
        if self.pretty_name:
            result["pretty_name"] = self.pretty_name
        if self.pretty_version:
            result["pretty_version"] = self.pretty_version
        if self.extra:
            result["extra"] = dict(self.extra)
        if self.dist_path is not None:
            result["dist_path"] = self.dist_path
        if self.source_reference is not None:
            result["source_reference"] = self.source_reference
        return result


@dataclass(frozen=True, slots=True)
class SharedInstallation:
    """Package linked from the project into ``store_path``."""

    store_path: Path

    strategy = InstallStrategy.SHARED

    def to_dict(self) -> dict[str, Any]:
        return {"strategy": self.strategy.value, "store_path": str(self.store_path)}


@dataclass(frozen=True, slots=True)
class DefaultInstallation:
    """Package copied into the project as an independent directory."""

    strategy = InstallStrategy.DEFAULT

    def to_dict(self) -> dict[str, Any]:
        return {"strategy": self.strategy.value}


Installation = Union[SharedInstallation, DefaultInstallation]


def installation_from_dict(data: Mapping[str, Any] | None) -> Installation | None:
    """Parse an installation record; ``None`` when absent."""
    if not data:
        return None
    strategy = InstallStrategy(data.get("strategy"))
    if strategy is InstallStrategy.SHARED:
        return SharedInstallation(store_path=Path(data["store_path"]))
    return DefaultInstallation()


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """A package recorded as installed, with how it was installed."""

    package: PackageDescriptor
    installation: Installation | None = None

    def to_dict(self) -> dict[str, Any]:
        result = self.package.to_dict()
        if self.installation is not None:
            result["installation"] = self.installation.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LedgerEntry:
        payload = dict(data)
        installation = installation_from_dict(payload.pop("installation", None))
        return cls(package=PackageDescriptor.from_dict(payload), installation=installation)


@dataclass(frozen=True, slots=True)
class StoreManifest:
    """Marker written into a store directory once it is fully materialized.

    Attributes:
        name: Package name
        version: Resolved version
        source_reference: VCS reference, when known
        digest: SHA-256 over the materialized tree, when computed
    """

    name: str
    version: str
    source_reference: str | None = None
    digest: str | None = None

    def matches(self, package: PackageDescriptor) -> bool:
        if self.name != package.name or self.version != package.version:
            return False
        if package.source_reference and self.source_reference:
            return package.source_reference == self.source_reference
        return True

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "version": self.version}
        if self.source_reference is not None:
            result["source_reference"] = self.source_reference
        if self.digest is not None:
            result["digest"] = self.digest
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StoreManifest:
        return cls(
            name=str(data["name"]),
            version=str(data["version"]),
            source_reference=data.get("source_reference"),
            digest=data.get("digest"),
        )


__all__ = [
    "InstallStrategy",
    "LinkMode",
    "LinkFallback",
    "PackageDescriptor",
    "SharedInstallation",
    "DefaultInstallation",
    "Installation",
    "installation_from_dict",
    "LedgerEntry",
    "StoreManifest",
]
