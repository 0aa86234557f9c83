"""Shared package store.

Store layout::

    <store_dir>/<package name>/<version>/           materialized contents
    <store_dir>/<package name>/<version>/.sharedpkg-store.yaml   marker
    <store_dir>/<package name>/<version>.lock       advisory lock (kept)

The marker is written last, so a version directory without a matching
marker is a leftover of an interrupted materialization and is rebuilt.
Store entries are never deleted here; several projects may link to them.
"""
from __future__ import annotations

import hashlib
import logging
import os
import shutil
from contextlib import nullcontext
from pathlib import Path
from typing import ContextManager, Protocol

from sharedpkg.core.exceptions import ConfigurationError, InstallError, VerificationError
from sharedpkg.core.installers.config import InstallerConfig
from sharedpkg.core.installers.models import PackageDescriptor, StoreManifest
from sharedpkg.core.utils.io import read_yaml, write_yaml
from sharedpkg.core.utils.locking import acquire_file_lock

logger = logging.getLogger(__name__)

MANIFEST_FILE = ".sharedpkg-store.yaml"


class Materializer(Protocol):
    def materialize(self, package: PackageDescriptor, destination: Path) -> None: ...


def tree_digest(root: Path) -> str:
    """SHA-256 over relative paths, file contents and link targets under ``root``.

    The store marker itself is excluded.
    """
    digest = hashlib.sha256()
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames.sort()
        base = Path(dirpath)
        for name in sorted(filenames + [d for d in dirnames if (base / d).is_symlink()]):
            entry = base / name
            rel = entry.relative_to(root).as_posix()
            if rel == MANIFEST_FILE:
                continue
            digest.update(rel.encode("utf-8") + b"\0")
            if entry.is_symlink():
                digest.update(b"L" + os.readlink(entry).encode("utf-8") + b"\0")
                continue
            digest.update(b"F")
            with open(entry, "rb") as fh:
                for chunk in iter(lambda: fh.read(1 << 16), b""):
                    digest.update(chunk)
            digest.update(b"\0")
    return digest.hexdigest()


class PackageStore:
    """Version-keyed package store shared between projects."""

    def __init__(self, config: InstallerConfig, materializer: Materializer) -> None:
        if config.store_dir is None:
            raise ConfigurationError("Shared package store directory is not configured.")
        self.config = config
        self.store_dir: Path = config.store_dir
        self.materializer = materializer

    def version_dir_name(self, package: PackageDescriptor) -> str:
        """Directory name for the package's version.

        Dev snapshots carry their source reference so that two commits of the
        same branch never share a directory.
        """
        name = package.display_version
        for sep in ("/", "\\", os.sep, os.altsep or ""):
            if sep:
                name = name.replace(sep, "-")
        if package.is_dev and package.source_reference:
            name = f"{name}-{package.source_reference[:12]}"
        return name

    def get_store_path(self, package: PackageDescriptor) -> Path:
        return self.store_dir / package.name / self.version_dir_name(package)

    def read_manifest(self, path: Path) -> StoreManifest | None:
        data = read_yaml(Path(path) / MANIFEST_FILE, default=None)
        if not isinstance(data, dict):
            return None
        try:
            return StoreManifest.from_dict(data)
        except KeyError:
            return None

    def is_materialized(self, package: PackageDescriptor) -> bool:
        manifest = self.read_manifest(self.get_store_path(package))
        return manifest is not None and manifest.matches(package)

    def materialize(self, package: PackageDescriptor) -> Path:
        """Ensure the store holds ``package`` and return its store path.

        Already materialized versions are left untouched.

        Raises:
            InstallError: If the contents cannot be placed in the store
            LockTimeoutError: If another process holds the store lock too long
        """
        path = self.get_store_path(package)
        with self._lock(path):
            if self.is_materialized(package):
                logger.debug("Store already holds %s at %s", package.display_name, path)
                return path

            try:
                if path.is_symlink():
                    path.unlink()
                elif path.exists():
                    logger.warning("Discarding incomplete store entry %s", path)
                    shutil.rmtree(path)
            except OSError as exc:
                raise InstallError(
                    f"Could not clear incomplete store entry for {package.display_name}: {exc}",
                    package=package.display_name,
                    path=path,
                ) from exc

            self.materializer.materialize(package, path)

            digest = tree_digest(path) if self.config.verify_checksum else None
            manifest = StoreManifest(
                name=package.name,
                version=package.version,
                source_reference=package.source_reference,
                digest=digest,
            )
            try:
                write_yaml(path / MANIFEST_FILE, manifest.to_dict())
            except OSError as exc:
                raise InstallError(
                    f"Could not record store marker for {package.display_name}: {exc}",
                    package=package.display_name,
                    path=path,
                ) from exc

        logger.info("Materialized %s (%s) in %s", package.display_name, package.display_version, path)
        return path

    def verify(self, package: PackageDescriptor, path: Path) -> None:
        """Check that ``path`` (a store directory or a link to one) holds ``package``.

        Raises:
            VerificationError: If the marker is missing, names another
                version, or (with checksum verification) the contents changed
        """
        manifest = self.read_manifest(path)
        if manifest is None or not manifest.matches(package):
            found = f"{manifest.name} {manifest.version}" if manifest else "no store marker"
            raise VerificationError(
                f"{path} does not hold {package.display_name} {package.display_version} (found {found})",
                package=package.display_name,
                path=path,
            )
        if self.config.verify_checksum and manifest.digest:
            if tree_digest(Path(path)) != manifest.digest:
                raise VerificationError(
                    f"Contents of {package.display_name} at {path} differ from the store record",
                    package=package.display_name,
                    path=path,
                )

    def _lock(self, path: Path) -> ContextManager[object]:
        if not self.config.lock_store:
            return nullcontext()
        return acquire_file_lock(path.with_name(path.name + ".lock"), self.config.lock_timeout)


__all__ = ["PackageStore", "MANIFEST_FILE", "tree_digest"]
