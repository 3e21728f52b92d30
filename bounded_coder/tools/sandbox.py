from __future__ import annotations
import logging
import os

from .result import ToolError, ToolErrorCode

"""
Working-root containment.

Every tool resolves its path argument here before touching the disk. A path is
joined to the root when relative, canonicalized with realpath (which follows
symlinks and canonicalizes the existing part of a not-yet-created path), and
accepted only when the canonical string is the root itself or lies under it.
"""

logger = logging.getLogger(__name__)


def _canonical(path: str) -> str:
    return os.path.realpath(os.path.abspath(path))


class WorkingRoot:
    def __init__(self, path: str = "."):
        self._path = ""
        self.set(path or os.getcwd())

    @property
    def path(self) -> str:
        return self._path

    def set(self, path: str) -> None:
        """Move the root. Rejects anything that is not an existing directory."""
        resolved = _canonical(path)
        if not os.path.isdir(resolved):
            raise ValueError(f"working directory must be an existing directory: {path}")
        self._path = resolved
        logger.debug("working root set to %s", resolved)

    def contains(self, resolved: str) -> bool:
        if resolved == self._path:
            return True
        prefix = self._path if self._path.endswith(os.sep) else self._path + os.sep
        return resolved.startswith(prefix)

    def resolve(self, path: str, max_length: int = 0) -> str:
        """Canonical absolute form of `path`, or ToolError if it leaves the root."""
        if max_length and len(path) > max_length:
            raise ToolError(ToolErrorCode.PATH_TOO_LONG,
                            f"Path too long ({len(path)} characters). Maximum is {max_length}.")
        if "\x00" in path:
            raise ToolError(ToolErrorCode.MALFORMED_ARGUMENTS, "Path contains a NUL byte.")
        candidate = path if os.path.isabs(path) else os.path.join(self._path, path)
        resolved = _canonical(candidate)
        if not self.contains(resolved):
            logger.debug("rejected path outside root: %r -> %s", path, resolved)
            raise ToolError(ToolErrorCode.PATH_OUTSIDE_ROOT, "Path outside working directory.")
        return resolved

    def relative(self, resolved: str) -> str:
        return os.path.relpath(resolved, self._path)
