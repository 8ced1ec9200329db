"""Workspace path sandboxing for model-supplied paths."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import unquote

from .errors import ErrorCode, PathError

LOGGER = logging.getLogger(__name__)

_FILE_SCHEME = "file://"
_EXPECTED_SHAPE = '"src/index.ts"'


@dataclass(slots=True)
class PathResolver:
    """Normalizes raw path strings to absolute locations inside ``workspace_root``.

    Models echo paths in many shapes: relative, absolute, ``file://`` URIs,
    percent-encoded, or prefixed with ``./``. Every shape is reduced to a
    normalized absolute path and rejected when it would leave the workspace.
    Traversal segments are collapsed by normalization before the containment
    check, so ``src/../../etc/passwd`` is caught.
    """

    workspace_root: str
    _root: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.workspace_root:
            raise ValueError("workspace_root must not be empty")
        self._root = os.path.normpath(os.path.abspath(str(self.workspace_root)))

    @property
    def root(self) -> str:
        """Return the normalized workspace root."""
        return self._root

    def resolve(self, raw: str | None) -> str:
        """Return the absolute path for ``raw`` or raise :class:`PathError`."""

        if raw is None or not str(raw).strip():
            raise PathError(
                error_code=ErrorCode.PATH_REQUIRED,
                message=f"Path is required but was empty. Provide a workspace-relative path such as {_EXPECTED_SHAPE}.",
                path=None if raw is None else str(raw),
            )
        original = str(raw)
        candidate = unquote(original.strip())

        if candidate[: len(_FILE_SCHEME)].lower() == _FILE_SCHEME:
            candidate = candidate[len(_FILE_SCHEME) :]

        if candidate.startswith(self._root):
            remainder = candidate[len(self._root) :]
            # Only strip on a segment boundary; "/ws-other" is not under "/ws".
            if not remainder or remainder[0] in ("/", os.sep):
                candidate = remainder.lstrip("/" + os.sep) or "."

        if candidate.startswith("./"):
            candidate = candidate[2:] or "."

        if os.path.isabs(candidate):
            resolved = os.path.normpath(candidate)
        else:
            resolved = os.path.normpath(os.path.join(self._root, candidate))

        if not self.contains(resolved):
            LOGGER.debug("Rejected path outside workspace: %r -> %s", original, resolved)
            raise PathError(
                message=(
                    f'Path "{original}" is outside the workspace. '
                    "Only workspace-relative paths are allowed."
                ),
                path=original,
            )
        return resolved

    def contains(self, absolute_path: str) -> bool:
        """Return ``True`` when ``absolute_path`` lies inside the workspace root."""

        normalized = os.path.normpath(absolute_path)
        if normalized == self._root:
            return True
        prefix = self._root if self._root.endswith(os.sep) else self._root + os.sep
        return normalized.startswith(prefix)

    def relative(self, absolute_path: str) -> str:
        """Render ``absolute_path`` relative to the workspace for display."""

        normalized = os.path.normpath(absolute_path)
        if not self.contains(normalized):
            return normalized
        rel = os.path.relpath(normalized, self._root)
        return rel.replace(os.sep, "/")


__all__ = ["PathResolver"]
