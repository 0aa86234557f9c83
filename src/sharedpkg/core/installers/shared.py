"""Shared package installer.

Materializes packages once in the shared store and links them into the
project dependency directory. Uninstalling removes the project link only;
store entries outlive the projects that use them.
"""
from __future__ import annotations

import logging
from pathlib import Path

from sharedpkg.core.exceptions import FilesystemError, InstallError, VerificationError
from sharedpkg.core.installers.classifier import PackageClassifier
from sharedpkg.core.installers.config import InstallerConfig
from sharedpkg.core.installers.filesystem import SymlinkFilesystem
from sharedpkg.core.installers.ledger import InstalledRepository
from sharedpkg.core.installers.library import LibraryInstaller, not_installed_error
from sharedpkg.core.installers.models import (
    DefaultInstallation,
    Installation,
    PackageDescriptor,
    SharedInstallation,
)
from sharedpkg.core.installers.store import PackageStore

logger = logging.getLogger(__name__)


class SharedPackageInstaller:
    """Installs shared packages as links into the store.

    Also handles packages moving between the shared and default strategies
    during an update, since only this installer knows how to tear down or
    build a link.
    """

    def __init__(
        self,
        config: InstallerConfig,
        store: PackageStore,
        filesystem: SymlinkFilesystem,
        default_installer: LibraryInstaller,
        classifier: PackageClassifier,
    ) -> None:
        self.config = config
        self.store = store
        self.filesystem = filesystem
        self.default_installer = default_installer
        self.classifier = classifier

    def supports(self, package_type: str) -> bool:
        return package_type == self.config.package_type

    def get_install_path(self, package: PackageDescriptor) -> Path:
        """Project-side link location, never the store location."""
        return self.config.project_dir / package.name

    def get_store_path(self, package: PackageDescriptor) -> Path:
        return self.store.get_store_path(package)

    def install(self, repo: InstalledRepository, package: PackageDescriptor) -> None:
        """Materialize ``package`` in the store, link it, then record it.

        The store entry is verified before the link is touched, and the ledger
        is only updated once the link is in place and verified again. A failed
        link leaves the store entry for the next attempt.

        Raises:
            InstallError: If materialization, linking or verification fails
        """
        store_path = self.store.materialize(package)
        self.store.verify(package, store_path)
        link = self.get_install_path(package)

        try:
            self.filesystem.create_link(store_path, link, self.config.link_mode)
        except FilesystemError as exc:
            raise InstallError(
                f"Could not link {package.display_name} into {link}: {exc}",
                package=package.display_name,
                path=link,
            ) from exc

        try:
            self.store.verify(package, link)
        except VerificationError:
            self.filesystem.remove_link(link)
            raise

        repo.add_package(package, SharedInstallation(store_path=store_path))
        logger.info(
            "Linked %s (%s): %s -> %s",
            package.display_name,
            package.display_version,
            link,
            store_path,
        )

    def update(
        self,
        repo: InstalledRepository,
        initial: PackageDescriptor,
        target: PackageDescriptor,
    ) -> None:
        """Move ``initial`` to ``target``, whichever strategy each one uses.

        The store entry of ``initial`` is kept.

        Raises:
            PreconditionError: If ``initial`` is not in the ledger
        """
        if not repo.has_package(initial):
            raise not_installed_error(initial)

        current = self._installation_of(repo, initial)
        target_shared = self.classifier.is_shared(target)

        if (
            target_shared
            and isinstance(current, SharedInstallation)
            and initial.name == target.name
        ):
            # Relinking replaces the old link in place.
            try:
                self.install(repo, target)
            except InstallError:
                self._restore_link(initial, current)
                raise
            return

        self._teardown(repo, initial, current)
        if target_shared:
            self.install(repo, target)
        else:
            self.default_installer.install(repo, target)

    def uninstall(self, repo: InstalledRepository, package: PackageDescriptor) -> None:
        """Remove the project link and the ledger entry; the store is untouched.

        Raises:
            PreconditionError: If ``package`` is not in the ledger
            FilesystemError: If the project path is not a link
        """
        if not repo.has_package(package):
            raise not_installed_error(package)

        self._teardown(repo, package, self._installation_of(repo, package))

    def is_installed(self, repo: InstalledRepository, package: PackageDescriptor) -> bool:
        """Soft check: ledger entry present and link resolving to the store path."""
        if not repo.has_package(package):
            return False
        link = self.get_install_path(package)
        expected = self.get_store_path(package)
        if not self.filesystem.links_to(link, expected):
            logger.debug(
                "%s is recorded as installed but %s does not link to %s",
                package.display_name,
                link,
                expected,
            )
            return False
        return True

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

    def _installation_of(self, repo: InstalledRepository, package: PackageDescriptor) -> Installation:
        entry = repo.find_package(package.name)
        if entry is not None and entry.installation is not None:
            return entry.installation

        # No record of how it was installed: fall back to the filesystem.
        link = self.get_install_path(package)
        if self.filesystem.is_link(link):
            installation: Installation = SharedInstallation(
                store_path=self.filesystem.read_link_target(link)
            )
        else:
            installation = DefaultInstallation()
        logger.debug("Recovered installation of %s from disk: %s", package.display_name, installation)
        return installation

    def _restore_link(self, package: PackageDescriptor, installation: SharedInstallation) -> None:
        link = self.get_install_path(package)
        try:
            self.filesystem.create_link(installation.store_path, link, self.config.link_mode)
        except FilesystemError as exc:
            logger.error("Could not restore link %s -> %s: %s", link, installation.store_path, exc)
            return
        logger.warning("Restored link %s -> %s after a failed update", link, installation.store_path)

    def _teardown(
        self,
        repo: InstalledRepository,
        package: PackageDescriptor,
        installation: Installation,
    ) -> None:
        if isinstance(installation, DefaultInstallation):
            self.default_installer.uninstall(repo, package)
            return

        link = self.get_install_path(package)
        self.filesystem.remove_link(link)
        repo.remove_package(package)
        self.filesystem.remove_empty_directories(link.parent, self.config.project_dir)
        logger.info(
            "Unlinked %s (%s) from %s; store entry %s kept",
            package.display_name,
            package.display_version,
            link,
            installation.store_path,
        )


__all__ = ["SharedPackageInstaller"]
