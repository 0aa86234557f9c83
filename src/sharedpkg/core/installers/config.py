"""Installer configuration.

Builds the immutable :class:`InstallerConfig` from the host's already-parsed
settings mapping (for example the ``shared-package`` section of a root
manifest). The mapping is validated against the bundled JSON Schema and may
be overridden per key through ``SHAREDPKG_*`` environment variables.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from sharedpkg.core.exceptions import ConfigurationError
from sharedpkg.core.installers.models import LinkFallback, LinkMode
from sharedpkg.data import read_yaml

logger = logging.getLogger(__name__)

SCHEMA_FILE = "installer-config.schema.yaml"
ENV_PREFIX = "SHAREDPKG_"

DEFAULT_PACKAGE_TYPE = "shared-package"
DEFAULT_PROJECT_DIR = "vendor"
DEFAULT_LOCK_TIMEOUT = 30.0

# Host key aliases kept for manifests written against older plugin versions.
_ALIASES = {
    "vendor-dir": "store-dir",
    "symlink-dir": "project-dir",
}


@dataclass(frozen=True, slots=True)
class InstallerConfig:
    """Process-wide installer settings, read-only after startup.

    Attributes:
        project_dir: Project dependency directory (links and copies live here)
        store_dir: Shared store root; ``None`` disables the shared strategy
        package_type: Manifest type tag that marks a package as shared
        link_mode: Relative or absolute link targets
        package_list: fnmatch patterns of package names forced to shared
        symlink_enabled: Master switch for the shared strategy
        link_fallback: Link primitive used when symlinks are unavailable
        lock_store: Hold an advisory lock while materializing store entries
        lock_timeout: Seconds to wait for a store lock
        verify_checksum: Re-hash store contents when verifying a link
    """

    project_dir: Path
    store_dir: Path | None = None
    package_type: str = DEFAULT_PACKAGE_TYPE
    link_mode: LinkMode = LinkMode.RELATIVE
    package_list: tuple[str, ...] = ()
    symlink_enabled: bool = True
    link_fallback: LinkFallback = LinkFallback.NONE
    lock_store: bool = True
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    verify_checksum: bool = False

    @property
    def shared_enabled(self) -> bool:
        """True when shared packages can be installed at all."""
        return self.symlink_enabled and self.store_dir is not None

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any] | None,
        *,
        project_root: Path,
        environ: Mapping[str, str] | None = None,
    ) -> InstallerConfig:
        """Validate ``data`` and build the configuration.

        Args:
            data: Parsed settings mapping (hyphenated keys)
            project_root: Base for relative directories
            environ: Environment used for overrides (defaults to ``os.environ``)

        Raises:
            ConfigurationError: If the settings are malformed
        """
        settings = _normalize_keys(dict(data or {}))
        settings.update(_env_overrides(os.environ if environ is None else environ))

        try:
            jsonschema.validate(settings, read_yaml("schemas", SCHEMA_FILE))
        except jsonschema.ValidationError as exc:
            where = ".".join(str(p) for p in exc.absolute_path) or "<root>"
            raise ConfigurationError(
                f"Invalid installer configuration at {where}: {exc.message}",
                context={"key": where},
            ) from exc

        root = Path(project_root)
        store_raw = str(settings.get("store-dir") or "").strip()
        project_raw = str(settings.get("project-dir") or DEFAULT_PROJECT_DIR).strip()

        store_dir = _resolve_dir(store_raw, root) if store_raw else None
        project_dir = _resolve_dir(project_raw, root)

        if store_dir is not None and store_dir.resolve() == project_dir.resolve():
            raise ConfigurationError(
                f"Shared store '{store_dir}' must differ from the project dependency directory.",
                context={"store_dir": str(store_dir)},
            )

        config = cls(
            project_dir=project_dir,
            store_dir=store_dir,
            package_type=settings.get("package-type", DEFAULT_PACKAGE_TYPE),
            link_mode=LinkMode(settings.get("link-mode", LinkMode.RELATIVE.value)),
            package_list=tuple(settings.get("package-list", ())),
            symlink_enabled=settings.get("symlink-enabled", True),
            link_fallback=LinkFallback(settings.get("link-fallback", LinkFallback.NONE.value)),
            lock_store=settings.get("lock-store", True),
            lock_timeout=float(settings.get("lock-timeout", DEFAULT_LOCK_TIMEOUT)),
            verify_checksum=settings.get("verify-checksum", False),
        )
        if not config.shared_enabled:
            logger.info("Shared packages disabled; every package uses the default installer")
        return config


def _normalize_keys(settings: dict[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in settings.items():
        if isinstance(value, Path):
            value = str(value)
        canonical = _ALIASES.get(key, key)
        if canonical in normalized and canonical != key:
            # The canonical key wins over its alias.
            continue
        normalized[canonical] = value
    return normalized


def _as_bool(v: str) -> bool | None:
    low = v.strip().lower()
    if low in {"true", "1", "yes", "on"}:
        return True
    if low in {"false", "0", "no", "off"}:
        return False
    return None


def _as_number(v: str) -> float | int | None:
    s = v.strip()
    if re.fullmatch(r"[-+]?\d+", s):
        return int(s)
    if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
        return float(s)
    return None


_BOOL_KEYS = {"symlink-enabled", "lock-store", "verify-checksum"}
_NUMBER_KEYS = {"lock-timeout"}
_LIST_KEYS = {"package-list"}


def _coerce(key: str, raw: str) -> Any:
    if key in _BOOL_KEYS:
        value = _as_bool(raw)
        return raw if value is None else value
    if key in _NUMBER_KEYS:
        number = _as_number(raw)
        return raw if number is None else number
    if key in _LIST_KEYS:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw.strip()


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``SHAREDPKG_STORE_DIR=...`` style overrides."""
    overrides: dict[str, Any] = {}
    for env_key in sorted(environ):
        if not env_key.startswith(ENV_PREFIX):
            continue
        raw_key = env_key[len(ENV_PREFIX):]
        if not raw_key:
            continue
        key = raw_key.lower().replace("_", "-")
        key = _ALIASES.get(key, key)
        overrides[key] = _coerce(key, environ[env_key])
    return overrides


def _resolve_dir(raw: str, root: Path) -> Path:
    path = Path(raw).expanduser()
    return path if path.is_absolute() else root / path


__all__ = ["InstallerConfig", "DEFAULT_PACKAGE_TYPE", "ENV_PREFIX"]
