"""Slash-separated path handling shared by the importer and the resolver."""

from __future__ import annotations

from carforge.core.errors import InvalidPathError


def split_path(path: str) -> list[str]:
    """Split ``path`` into segments.

    Leading, trailing and repeated slashes and ``.`` segments are dropped, so
    ``"/"``, ``""`` and ``"."`` all name the root. ``..`` is rejected rather
    than resolved.
    """
    segments = [seg for seg in path.split("/") if seg not in ("", ".")]
    if ".." in segments:
        raise InvalidPathError(f"Path may not contain '..': {path!r}", path=path)
    return segments


def join_path(segments: list[str]) -> str:
    return "/".join(segments)
