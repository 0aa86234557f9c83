from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping


class SharedPackageError(Exception):
    """Base exception for the shared package installer."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ConfigurationError(SharedPackageError, ValueError):
    """Raised when installer settings are missing or invalid.

    Detected while building the configuration, before any operation runs.
    """

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        SharedPackageError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class PreconditionError(SharedPackageError, ValueError):
    """Raised when an operation targets a package the ledger does not know."""

    def __init__(
        self,
        message: str = "",
        *,
        package: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if package:
            ctx["package"] = package
        SharedPackageError.__init__(self, message, context=ctx)
        ValueError.__init__(self, message)
        self.package = package


class FilesystemError(SharedPackageError, OSError):
    """Raised when a link cannot be created, removed or resolved."""

    def __init__(
        self,
        message: str = "",
        *,
        path: Path | str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if path is not None:
            ctx["path"] = str(path)
        SharedPackageError.__init__(self, message, context=ctx)
        OSError.__init__(self, message)
        self.path = Path(path) if path is not None else None


class InstallError(SharedPackageError, RuntimeError):
    """Raised when a package cannot be materialized or linked."""

    def __init__(
        self,
        message: str,
        *,
        package: str | None = None,
        path: Path | str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if package:
            ctx["package"] = package
        if path is not None:
            ctx["path"] = str(path)
        SharedPackageError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)
        self.package = package
        self.path = Path(path) if path is not None else None


class VerificationError(InstallError):
    """Raised when a linked store directory does not hold the expected version."""


class LockTimeoutError(SharedPackageError, TimeoutError):
    """Raised when a store lock cannot be acquired within the timeout."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        SharedPackageError.__init__(self, message, context=context)
        TimeoutError.__init__(self, message)


__all__ = [
    "SharedPackageError",
    "ConfigurationError",
    "PreconditionError",
    "FilesystemError",
    "InstallError",
    "VerificationError",
    "LockTimeoutError",
]
