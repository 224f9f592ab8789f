"""Typed failures raised by the content-addressed core.

Every error carries the offending ``cid`` and/or ``path`` so callers (the
CLI, an HTTP layer) can decide how to react. The core never retries and
never swallows one of these.
"""

from __future__ import annotations

from typing import Any


class CarforgeError(Exception):
    """Base class for all carforge failures."""

    def __init__(self, message: str, *, cid: Any = None, path: str | None = None) -> None:
        super().__init__(message)
        self.cid = cid
        self.path = path


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class BlockNotFoundError(CarforgeError):
    """Raised when a requested identifier is absent from the block store."""


class IdentifierMismatchError(CarforgeError):
    """Raised when bytes do not hash to the identifier they are filed under."""


class StoreFrozenError(CarforgeError):
    """Raised on a write to a store that has been frozen for serving."""


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


class UnsupportedCodecError(CarforgeError):
    """Raised when no codec is registered for a multicodec tag."""


class MalformedBlockError(CarforgeError):
    """Raised when block bytes fail to decode under their declared codec."""


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


class InvalidPathError(CarforgeError):
    """Raised for empty paths or paths escaping the root with ``..``."""


class DuplicatePathError(CarforgeError):
    """Raised when a file path is declared twice under the ERROR policy."""


class PathConflictError(CarforgeError):
    """Raised when a path is used both as a file and as a directory."""


class UnreadableContentError(CarforgeError):
    """Raised when a lazy content source fails under the ERROR policy."""


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class PathNotFoundError(CarforgeError):
    """Raised when a path segment has no matching directory entry."""


class NotADirectoryPathError(CarforgeError):
    """Raised when a non-terminal path segment names a file."""


class IsADirectoryPathError(CarforgeError):
    """Raised when file content is requested for a directory."""


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


class MissingBlockError(CarforgeError):
    """Raised when an archive traversal reaches a linked but absent block."""


class NotBuiltError(CarforgeError):
    """Raised when an archive is requested before any build was published."""
