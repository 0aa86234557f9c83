"""Tests for the installer solver (strategy router)."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from sharedpkg.core.exceptions import ConfigurationError, PreconditionError
from sharedpkg.core.installers.classifier import PackageClassifier
from sharedpkg.core.installers.config import InstallerConfig
from sharedpkg.core.installers.filesystem import SymlinkFilesystem
from sharedpkg.core.installers.ledger import InMemoryLedger, YamlLedger
from sharedpkg.core.installers.library import LibraryInstaller
from sharedpkg.core.installers.models import InstallStrategy, PackageDescriptor
from sharedpkg.core.installers.shared import SharedPackageInstaller
from sharedpkg.core.installers.solver import InstallerSolver, create_solver


class RecordingInstaller:
    """Installer double recording which operations reached it."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.calls: list[tuple[str, Any]] = []

    def supports(self, package_type: str) -> bool:
        return False

    def get_install_path(self, package: PackageDescriptor) -> Path:
        self.calls.append(("get_install_path", package.name))
        return Path(self.name) / package.name

    def install(self, repo: Any, package: PackageDescriptor) -> None:
        self.calls.append(("install", package.name))

    def update(self, repo: Any, initial: PackageDescriptor, target: PackageDescriptor) -> None:
        self.calls.append(("update", (initial.version, target.version)))

    def uninstall(self, repo: Any, package: PackageDescriptor) -> None:
        self.calls.append(("uninstall", package.name))

    def is_installed(self, repo: Any, package: PackageDescriptor) -> bool:
        self.calls.append(("is_installed", package.name))
        return True


@pytest.fixture
def routed(config: InstallerConfig) -> tuple[InstallerSolver, RecordingInstaller, RecordingInstaller]:
    shared = RecordingInstaller("shared")
    default = RecordingInstaller("default")
    solver = InstallerSolver(
        PackageClassifier(config),
        {InstallStrategy.SHARED: shared, InstallStrategy.DEFAULT: default},
    )
    return solver, shared, default


SHARED_PKG = PackageDescriptor(name="acme/foo", version="1.0", type="shared-package")
DEFAULT_PKG = PackageDescriptor(name="acme/bar", version="1.0", type="library")


class TestRouting:
    """Operations reach the installer matching the classification."""

    def test_shared_operations_route_to_shared(self, routed: Any) -> None:
        solver, shared, default = routed
        ledger = InMemoryLedger()

        assert solver.get_install_path(SHARED_PKG) == Path("shared") / "acme/foo"
        solver.install(ledger, SHARED_PKG)
        assert solver.is_installed(ledger, SHARED_PKG)
        solver.uninstall(ledger, SHARED_PKG)

        assert [c[0] for c in shared.calls] == [
            "get_install_path",
            "install",
            "is_installed",
            "uninstall",
        ]
        assert default.calls == []

    def test_default_operations_route_to_default(self, routed: Any) -> None:
        solver, shared, default = routed
        ledger = InMemoryLedger()

        solver.get_install_path(DEFAULT_PKG)
        solver.install(ledger, DEFAULT_PKG)
        solver.is_installed(ledger, DEFAULT_PKG)
        solver.uninstall(ledger, DEFAULT_PKG)

        assert len(default.calls) == 4
        assert shared.calls == []

    @pytest.mark.parametrize(
        ("initial_type", "target_type", "expected"),
        [
            ("shared-package", "shared-package", "shared"),
            ("shared-package", "library", "shared"),
            ("library", "shared-package", "shared"),
            ("library", "library", "default"),
        ],
    )
    def test_update_routes_shared_when_either_side_is_shared(
        self, routed: Any, initial_type: str, target_type: str, expected: str
    ) -> None:
        solver, shared, default = routed
        initial = PackageDescriptor(name="foo", version="1.0", type=initial_type)
        target = PackageDescriptor(name="foo", version="2.0", type=target_type)

        solver.update(InMemoryLedger(), initial, target)

        chosen = shared if expected == "shared" else default
        other = default if expected == "shared" else shared
        assert chosen.calls == [("update", ("1.0", "2.0"))]
        assert other.calls == []

    def test_supports_every_type(self, routed: Any) -> None:
        solver, _, _ = routed

        assert solver.supports("shared-package")
        assert solver.supports("library")
        assert solver.supports("")

    def test_lifecycle_hooks_are_noops(self, routed: Any) -> None:
        solver, shared, default = routed

        assert solver.download(SHARED_PKG) is None
        assert solver.prepare("update", SHARED_PKG, DEFAULT_PKG) is None
        assert solver.cleanup("uninstall", DEFAULT_PKG) is None
        assert shared.calls == [] and default.calls == []

    def test_default_installer_required(self, config: InstallerConfig) -> None:
        with pytest.raises(ValueError):
            InstallerSolver(PackageClassifier(config), {})


class TestCreateSolver:
    """Wiring."""

    def test_wires_shared_installer_when_store_configured(self, config: InstallerConfig) -> None:
        solver = create_solver(config)

        assert isinstance(solver.installers[InstallStrategy.SHARED], SharedPackageInstaller)
        assert isinstance(solver.installers[InstallStrategy.DEFAULT], LibraryInstaller)

    def test_without_store_everything_is_default(
        self,
        make_config: Callable[..., InstallerConfig],
        make_package: Callable[..., PackageDescriptor],
    ) -> None:
        config = make_config(**{"store-dir": ""})
        solver = create_solver(config)
        ledger = InMemoryLedger()
        package = make_package()

        solver.install(ledger, package)

        assert InstallStrategy.SHARED not in solver.installers
        path = solver.get_install_path(package)
        assert path.is_dir() and not path.is_symlink()

    def test_missing_symlink_support_is_a_startup_error(
        self, config: InstallerConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _refuse(self: SymlinkFilesystem, probe_dir: Path) -> None:
            raise ConfigurationError("no symlinks")

        monkeypatch.setattr(SymlinkFilesystem, "ensure_supported", _refuse)

        with pytest.raises(ConfigurationError):
            create_solver(config)


class TestEndToEnd:
    """Full lifecycles through the solver."""

    def test_install_update_uninstall_shared(
        self,
        config: InstallerConfig,
        make_package: Callable[..., PackageDescriptor],
        tmp_path: Path,
    ) -> None:
        solver = create_solver(config)
        ledger = YamlLedger(tmp_path / "installed.yaml")
        v1 = make_package(version="1.0.0")
        v2 = make_package(version="2.0.0")

        solver.install(ledger, v1)
        assert solver.is_installed(ledger, v1)

        solver.update(ledger, v1, v2)
        assert solver.is_installed(ledger, v2)
        assert not solver.is_installed(ledger, v1)

        solver.uninstall(ledger, v2)
        assert not solver.is_installed(ledger, v2)
        assert not solver.get_install_path(v2).exists()

        shared = solver.installers[InstallStrategy.SHARED]
        assert isinstance(shared, SharedPackageInstaller)
        assert (shared.get_store_path(v1) / "VERSION").exists()
        assert (shared.get_store_path(v2) / "VERSION").exists()

        reloaded = YamlLedger(tmp_path / "installed.yaml")
        reloaded.load()
        assert len(reloaded) == 0

    def test_mixed_project(
        self,
        config: InstallerConfig,
        make_package: Callable[..., PackageDescriptor],
    ) -> None:
        solver = create_solver(config)
        ledger = InMemoryLedger()
        shared = make_package(name="acme/shared")
        plain = make_package(name="acme/plain", type="library")

        solver.install(ledger, shared)
        solver.install(ledger, plain)

        assert solver.get_install_path(shared).is_symlink()
        assert not solver.get_install_path(plain).is_symlink()
        assert solver.is_installed(ledger, shared)
        assert solver.is_installed(ledger, plain)

    def test_update_not_installed_reports_package(
        self, config: InstallerConfig
    ) -> None:
        solver = create_solver(config)
        initial = PackageDescriptor(name="foo", version="1.0", type="shared-package")
        target = PackageDescriptor(name="foo", version="2.0", type="shared-package")

        with pytest.raises(PreconditionError, match="Package is not installed : foo"):
            solver.update(InMemoryLedger(), initial, target)

    def test_shared_to_default_transition(
        self,
        config: InstallerConfig,
        make_package: Callable[..., PackageDescriptor],
    ) -> None:
        solver = create_solver(config)
        ledger = InMemoryLedger()
        v1 = make_package(name="foo", version="1.0")
        v2 = make_package(name="foo", version="2.0", type="library")
        solver.install(ledger, v1)
        shared = solver.installers[InstallStrategy.SHARED]
        assert isinstance(shared, SharedPackageInstaller)
        store_v1 = shared.get_store_path(v1)

        solver.update(ledger, v1, v2)

        path = solver.get_install_path(v2)
        assert path.is_dir() and not path.is_symlink()
        assert (path / "VERSION").read_text(encoding="utf-8") == "2.0"
        assert (store_v1 / "VERSION").exists()
        assert ledger.has_package(v2)
        assert solver.is_installed(ledger, v2)
