import sys
from pathlib import Path
from typing import Any, Callable

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'sharedpkg'
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


from sharedpkg.core.installers.config import InstallerConfig
from sharedpkg.core.installers.ledger import InMemoryLedger
from sharedpkg.core.installers.models import PackageDescriptor


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep SHAREDPKG_* overrides from the developer's shell out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SHAREDPKG_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def make_config(project_root: Path, store_dir: Path) -> Callable[..., InstallerConfig]:
    """Build an InstallerConfig with a store under tmp_path; keys override defaults."""

    def _make(**overrides: Any) -> InstallerConfig:
        settings: dict[str, Any] = {"store-dir": str(store_dir), "lock-timeout": 5}
        settings.update(overrides)
        return InstallerConfig.from_mapping(settings, project_root=project_root, environ={})

    return _make


@pytest.fixture
def config(make_config: Callable[..., InstallerConfig]) -> InstallerConfig:
    return make_config()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., PackageDescriptor]:
    """Create a package descriptor backed by a dist directory on disk.

    The dist holds ``VERSION`` (the version string) and ``src/<name>.txt``.
    """

    def _make(
        name: str = "acme/foo",
        version: str = "1.0.0",
        type: str = "shared-package",
        **fields: Any,
    ) -> PackageDescriptor:
        dist = tmp_path / "dists" / name.replace("/", "_") / version
        if not dist.exists():
            (dist / "src").mkdir(parents=True)
            (dist / "VERSION").write_text(version, encoding="utf-8")
            (dist / "src" / f"{name.split('/')[-1]}.txt").write_text(
                f"{name} {version}\n", encoding="utf-8"
            )
        fields.setdefault("dist_path", str(dist))
        return PackageDescriptor(name=name, version=version, type=type, **fields)

    return _make
