"""Symbolic link primitives.

Manages the links that attach shared store entries to
a project's dependency directory. Removal only ever touches link entries,
never real files or directories.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from sharedpkg.core.exceptions import ConfigurationError, FilesystemError
from sharedpkg.core.installers.models import LinkFallback, LinkMode

logger = logging.getLogger(__name__)

_WINDOWS_PREFIX = "\\\\?\\"


def _is_junction(path: Path) -> bool:
    isjunction = getattr(os.path, "isjunction", None)
    if isjunction is None:
        return False
    return bool(isjunction(path))


class SymlinkFilesystem:
    """Link management for shared packages.

    Args:
        fallback: Primitive used instead of symlinks. ``JUNCTION`` creates
            Windows directory junctions, which always store absolute targets.
    """

    def __init__(self, fallback: LinkFallback = LinkFallback.NONE) -> None:
        self.fallback = fallback

    def ensure_supported(self, probe_dir: Path) -> None:
        """Check at startup that the configured link primitive is available.

        Raises:
            ConfigurationError: If links cannot be created under ``probe_dir``
        """
        if self.fallback is LinkFallback.JUNCTION:
            if os.name != "nt":
                raise ConfigurationError(
                    "Junction link fallback is only available on Windows.",
                    context={"link_fallback": self.fallback.value},
                )
            return

        probe_dir = Path(probe_dir)
        probe_dir.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix=".sharedpkg-probe-", dir=probe_dir))
        try:
            target = scratch / "target"
            target.mkdir()
            os.symlink(target, scratch / "link", target_is_directory=True)
        except (OSError, NotImplementedError) as exc:
            raise ConfigurationError(
                f"Symbolic links are not available under {probe_dir}: {exc}. "
                "Enable symlink support or configure link-fallback.",
                context={"path": str(probe_dir)},
            ) from exc
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    def is_link(self, path: Path | str) -> bool:
        """Return True when ``path`` is a symlink or junction (dangling included)."""
        try:
            p = Path(path)
            return p.is_symlink() or _is_junction(p)
        except (OSError, ValueError):
            return False

    def read_link_target(self, path: Path | str) -> Path:
        """Return the absolute, normalized target stored in the link at ``path``.

        Raises:
            FilesystemError: If ``path`` is not a link or cannot be read
        """
        link = Path(path)
        if not self.is_link(link):
            raise FilesystemError(f"Path is not a link: {link}", path=link)
        try:
            raw = os.readlink(link)
        except OSError as exc:
            raise FilesystemError(f"Cannot read link {link}: {exc}", path=link) from exc

        if raw.startswith(_WINDOWS_PREFIX):
            raw = raw[len(_WINDOWS_PREFIX):]
        target = Path(raw)
        if not target.is_absolute():
            target = link.parent / target
        return Path(os.path.normpath(target))

    def links_to(self, link_path: Path | str, target: Path | str) -> bool:
        """Return True when ``link_path`` is a link resolving to ``target``."""
        try:
            current = self.read_link_target(link_path)
        except FilesystemError:
            return False
        return current.resolve() == Path(target).resolve()

    def create_link(
        self,
        target: Path | str,
        link_path: Path | str,
        mode: LinkMode = LinkMode.RELATIVE,
    ) -> None:
        """Create a link at ``link_path`` pointing to ``target``.

        A correct existing link is left untouched. A link pointing elsewhere
        is replaced.

        Raises:
            FilesystemError: If ``target`` is missing, ``link_path`` is a real
                file or directory, or the OS refuses the operation
        """
        target = Path(target)
        link = Path(link_path)

        if not target.exists():
            raise FilesystemError(f"Link target does not exist: {target}", path=target)

        if self.is_link(link):
            if self.links_to(link, target):
                logger.debug("Link %s already points to %s", link, target)
                return
            logger.warning(
                "Replacing link %s (was pointing to %s)",
                link,
                self.read_link_target(link),
            )
            self.remove_link(link)
        elif link.exists():
            raise FilesystemError(
                f"Refusing to replace existing path with a link: {link}",
                path=link,
            )

        try:
            link.parent.mkdir(parents=True, exist_ok=True)
            if self.fallback is LinkFallback.JUNCTION:
                import _winapi  # type: ignore[import-not-found]

                _winapi.CreateJunction(str(target.resolve()), str(link))
            else:
                os.symlink(
                    self._stored_target(target, link, mode),
                    link,
                    target_is_directory=target.is_dir(),
                )
        except ImportError as exc:
            raise FilesystemError(
                f"Cannot create junction {link}: junctions are only available on Windows",
                path=link,
            ) from exc
        except OSError as exc:
            raise FilesystemError(
                f"Cannot create link {link} -> {target}: {exc}",
                path=link,
            ) from exc

        logger.debug("Linked %s -> %s (%s)", link, target, mode.value)

    def remove_link(self, link_path: Path | str) -> None:
        """Remove the link entry at ``link_path``, never its target.

        Raises:
            FilesystemError: If ``link_path`` exists but is not a link
        """
        link = Path(link_path)
        if not self.is_link(link):
            if link.exists():
                raise FilesystemError(
                    f"Refusing to remove {link}: it is not a link",
                    path=link,
                )
            return

        try:
            # Directory links on Windows are removed like empty directories.
            if os.name == "nt" and link.is_dir():
                os.rmdir(link)
            else:
                link.unlink()
        except OSError as exc:
            raise FilesystemError(f"Cannot remove link {link}: {exc}", path=link) from exc

    def remove_empty_directories(self, path: Path | str, stop_at: Path | str) -> None:
        """Remove ``path`` and its parents while empty, stopping at ``stop_at``."""
        current = Path(path)
        boundary = Path(stop_at).resolve()
        while True:
            try:
                resolved = current.resolve()
            except OSError:
                return
            if resolved == boundary or not resolved.is_relative_to(boundary):
                return
            if self.is_link(current) or not current.is_dir():
                return
            try:
                current.rmdir()
            except OSError:
                # Not empty.
                return
            current = current.parent

    def _stored_target(self, target: Path, link: Path, mode: LinkMode) -> str:
        target_abs = target.resolve()
        if mode is LinkMode.ABSOLUTE:
            return str(target_abs)
        return os.path.relpath(target_abs, link.parent.resolve())


__all__ = ["SymlinkFilesystem"]
