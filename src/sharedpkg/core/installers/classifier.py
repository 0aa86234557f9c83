"""Shared/default package classification."""
from __future__ import annotations

from fnmatch import fnmatchcase

from sharedpkg.core.installers.config import InstallerConfig
from sharedpkg.core.installers.models import InstallStrategy, PackageDescriptor


def is_shared_package(package: PackageDescriptor, config: InstallerConfig) -> bool:
    """Return True when ``package`` must be installed through the shared store.

    A package is shared when its manifest type equals the configured shared
    type or its name matches a ``package_list`` pattern, and the configuration
    provides a store. Installation state is never consulted.
    """
    if not config.shared_enabled:
        return False
    if package.type == config.package_type:
        return True
    return any(
        fnmatchcase(name, pattern)
        for pattern in config.package_list
        for name in {package.name, package.display_name}
    )


class PackageClassifier:
    """Classifies packages into an :class:`InstallStrategy`."""

    def __init__(self, config: InstallerConfig) -> None:
        self.config = config

    def is_shared(self, package: PackageDescriptor) -> bool:
        return is_shared_package(package, self.config)

    def classify(self, package: PackageDescriptor) -> InstallStrategy:
        if self.is_shared(package):
            return InstallStrategy.SHARED
        return InstallStrategy.DEFAULT


__all__ = ["is_shared_package", "PackageClassifier"]
