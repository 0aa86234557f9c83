"""Installer solver.

Presents one uniform installer to the host package manager and routes every
operation to the shared or the default installer according to the package
classification. Holds no state of its own.
"""
from __future__ import annotations

from pathlib import Path
from typing import Mapping, Protocol

from sharedpkg.core.installers.classifier import PackageClassifier
from sharedpkg.core.installers.config import InstallerConfig
from sharedpkg.core.installers.filesystem import SymlinkFilesystem
from sharedpkg.core.installers.ledger import InstalledRepository
from sharedpkg.core.installers.library import LibraryInstaller
from sharedpkg.core.installers.models import InstallStrategy, PackageDescriptor
from sharedpkg.core.installers.shared import SharedPackageInstaller
from sharedpkg.core.installers.store import PackageStore


class Installer(Protocol):
    """Installer interface expected by the host package manager."""

    def supports(self, package_type: str) -> bool: ...

    def get_install_path(self, package: PackageDescriptor) -> Path: ...

    def install(self, repo: InstalledRepository, package: PackageDescriptor) -> None: ...

    def update(
        self,
        repo: InstalledRepository,
        initial: PackageDescriptor,
        target: PackageDescriptor,
    ) -> None: ...

    def uninstall(self, repo: InstalledRepository, package: PackageDescriptor) -> None: ...

    def is_installed(self, repo: InstalledRepository, package: PackageDescriptor) -> bool: ...


class InstallerSolver:
    """Routes installer operations between the shared and default strategies."""

    def __init__(
        self,
        classifier: PackageClassifier,
        installers: Mapping[InstallStrategy, Installer],
    ) -> None:
        if InstallStrategy.DEFAULT not in installers:
            raise ValueError("A default installer is required")
        self.classifier = classifier
        self.installers = dict(installers)

    def _installer_for(self, strategy: InstallStrategy) -> Installer:
        try:
            return self.installers[strategy]
        except KeyError:
            raise LookupError(f"No installer registered for {strategy.value} packages") from None

    def _route(self, package: PackageDescriptor) -> Installer:
        return self._installer_for(self.classifier.classify(package))

    def supports(self, package_type: str) -> bool:
        # Classification happens per operation, not per type.
        return True

    def get_install_path(self, package: PackageDescriptor) -> Path:
        return self._route(package).get_install_path(package)

    def install(self, repo: InstalledRepository, package: PackageDescriptor) -> None:
        self._route(package).install(repo, package)

    def is_installed(self, repo: InstalledRepository, package: PackageDescriptor) -> bool:
        return self._route(package).is_installed(repo, package)

    def update(
        self,
        repo: InstalledRepository,
        initial: PackageDescriptor,
        target: PackageDescriptor,
    ) -> None:
        # Any shared side goes through the shared installer, which can both
        # tear down and build links.
        strategies = {self.classifier.classify(initial), self.classifier.classify(target)}
        strategy = InstallStrategy.SHARED if InstallStrategy.SHARED in strategies else InstallStrategy.DEFAULT
        self._installer_for(strategy).update(repo, initial, target)

    def uninstall(self, repo: InstalledRepository, package: PackageDescriptor) -> None:
        self._route(package).uninstall(repo, package)

    def download(self, package: PackageDescriptor, prev_package: PackageDescriptor | None = None) -> None:
        return None

    def prepare(
        self,
        operation: str,
        package: PackageDescriptor,
        prev_package: PackageDescriptor | None = None,
    ) -> None:
        return None

    def cleanup(
        self,
        operation: str,
        package: PackageDescriptor,
        prev_package: PackageDescriptor | None = None,
    ) -> None:
        return None


def create_solver(
    config: InstallerConfig,
    *,
    filesystem: SymlinkFilesystem | None = None,
    check_links: bool = True,
) -> InstallerSolver:
    """Wire the classifier and both installers for ``config``.

    Args:
        config: Installer settings
        filesystem: Link primitive (defaults to one honoring ``link_fallback``)
        check_links: Probe link support in the store at startup

    Raises:
        ConfigurationError: If shared packages are enabled but links are unavailable
    """
    filesystem = filesystem or SymlinkFilesystem(config.link_fallback)
    classifier = PackageClassifier(config)
    default_installer = LibraryInstaller(config, filesystem)
    installers: dict[InstallStrategy, Installer] = {InstallStrategy.DEFAULT: default_installer}

    if config.shared_enabled:
        store = PackageStore(config, default_installer)
        if check_links:
            filesystem.ensure_supported(store.store_dir)
        installers[InstallStrategy.SHARED] = SharedPackageInstaller(
            config, store, filesystem, default_installer, classifier
        )

    return InstallerSolver(classifier, installers)


__all__ = ["Installer", "InstallerSolver", "create_solver"]
