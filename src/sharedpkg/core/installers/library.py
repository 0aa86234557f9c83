"""Default installer: independent copies in the project dependency directory."""
from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from sharedpkg.core.exceptions import InstallError, PreconditionError
from sharedpkg.core.installers.config import InstallerConfig
from sharedpkg.core.installers.filesystem import SymlinkFilesystem
from sharedpkg.core.installers.ledger import InstalledRepository
from sharedpkg.core.installers.models import DefaultInstallation, PackageDescriptor

logger = logging.getLogger(__name__)


def not_installed_error(package: PackageDescriptor) -> PreconditionError:
    return PreconditionError(
        f"Package is not installed : {package.display_name}",
        package=package.display_name,
    )


class LibraryInstaller:
    """Copies or extracts package contents into place.

    Besides installing into the project, :meth:`materialize` is used by the
    shared installer to fill store directories.
    """

    def __init__(
        self,
        config: InstallerConfig,
        filesystem: SymlinkFilesystem | None = None,
    ) -> None:
        self.config = config
        self.filesystem = filesystem or SymlinkFilesystem(config.link_fallback)

    def supports(self, package_type: str) -> bool:
        return True

    def get_install_path(self, package: PackageDescriptor) -> Path:
        return self.config.project_dir / package.name

    def materialize(self, package: PackageDescriptor, destination: Path) -> None:
        """Place the contents of ``package.dist_path`` at ``destination``.

        Directories are copied with their symlinks preserved; archives are
        unpacked, flattening a single top-level directory.

        Raises:
            InstallError: If the contents cannot be copied or extracted
        """
        if not package.dist_path:
            raise InstallError(
                f"Package {package.display_name} has no distribution to install from",
                package=package.display_name,
                path=destination,
            )
        source = Path(package.dist_path)
        if not source.exists():
            raise InstallError(
                f"Distribution of {package.display_name} not found: {source}",
                package=package.display_name,
                path=source,
            )

        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            if source.is_dir():
                shutil.copytree(source, destination, symlinks=True)
            else:
                self._extract(source, destination)
        except (OSError, shutil.Error, ValueError) as exc:
            raise InstallError(
                f"Could not install {package.display_name} into {destination}: {exc}",
                package=package.display_name,
                path=destination,
            ) from exc

    def _extract(self, archive: Path, destination: Path) -> None:
        with tempfile.TemporaryDirectory(prefix=".extract-", dir=destination.parent) as tmp:
            staging = Path(tmp)
            shutil.unpack_archive(str(archive), str(staging))
            entries = list(staging.iterdir())
            root = entries[0] if len(entries) == 1 and entries[0].is_dir() else staging
            if root is staging:
                shutil.copytree(staging, destination, symlinks=True)
            else:
                shutil.move(str(root), str(destination))

    def install(self, repo: InstalledRepository, package: PackageDescriptor) -> None:
        path = self.get_install_path(package)
        self._clear(path)
        self.materialize(package, path)
        repo.add_package(package, DefaultInstallation())
        logger.info("Installed %s (%s) into %s", package.display_name, package.display_version, path)

    def update(
        self,
        repo: InstalledRepository,
        initial: PackageDescriptor,
        target: PackageDescriptor,
    ) -> None:
        if not repo.has_package(initial):
            raise not_installed_error(initial)

        self._clear(self.get_install_path(initial))
        repo.remove_package(initial)
        self.install(repo, target)

    def uninstall(self, repo: InstalledRepository, package: PackageDescriptor) -> None:
        if not repo.has_package(package):
            raise not_installed_error(package)

        path = self.get_install_path(package)
        self._clear(path)
        repo.remove_package(package)
        self.filesystem.remove_empty_directories(path.parent, self.config.project_dir)
        logger.info("Removed %s from %s", package.display_name, path)

    def is_installed(self, repo: InstalledRepository, package: PackageDescriptor) -> bool:
        path = self.get_install_path(package)
        return repo.has_package(package) and path.is_dir() and not self.filesystem.is_link(path)

    def _clear(self, path: Path) -> None:
        """Remove whatever occupies ``path``; links are unlinked, never followed."""
        if self.filesystem.is_link(path):
            self.filesystem.remove_link(path)
        elif path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()

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


__all__ = ["LibraryInstaller", "not_installed_error"]
