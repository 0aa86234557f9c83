"""Shared package installer subsystem.

Decides per package between a linked, shared store entry and a plain copy,
and manages the lifecycle of both.

Key components:
- InstallerConfig: Validated, immutable installer settings
- PackageClassifier: Shared/default decision
- SymlinkFilesystem: Link primitives
- PackageStore: Version-keyed shared store
- LibraryInstaller: Default copy installer
- SharedPackageInstaller: Link-based installer
- InstallerSolver: Routes operations between both installers
"""
from __future__ import annotations

from sharedpkg.core.installers.classifier import PackageClassifier, is_shared_package
from sharedpkg.core.installers.config import InstallerConfig
from sharedpkg.core.installers.filesystem import SymlinkFilesystem
from sharedpkg.core.installers.ledger import InMemoryLedger, InstalledRepository, YamlLedger
from sharedpkg.core.installers.library import LibraryInstaller
from sharedpkg.core.installers.models import (
    DefaultInstallation,
    InstallStrategy,
    LedgerEntry,
    LinkFallback,
    LinkMode,
    PackageDescriptor,
    SharedInstallation,
    StoreManifest,
)
from sharedpkg.core.installers.shared import SharedPackageInstaller
from sharedpkg.core.installers.solver import Installer, InstallerSolver, create_solver
from sharedpkg.core.installers.store import PackageStore

__all__ = [
    # Config
    "InstallerConfig",
    # Models
    "PackageDescriptor",
    "InstallStrategy",
    "LinkMode",
    "LinkFallback",
    "SharedInstallation",
    "DefaultInstallation",
    "LedgerEntry",
    "StoreManifest",
    # Ledger
    "InstalledRepository",
    "InMemoryLedger",
    "YamlLedger",
    # Components
    "PackageClassifier",
    "is_shared_package",
    "SymlinkFilesystem",
    "PackageStore",
    "LibraryInstaller",
    "SharedPackageInstaller",
    "Installer",
    "InstallerSolver",
    "create_solver",
]
