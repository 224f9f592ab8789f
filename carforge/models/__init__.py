"""carforge data models — all Pydantic v2, all frozen (immutable)."""

from carforge.models.archive import CAR_CONTENT_TYPE, CAR_VERSION, CarArchive, CarBlock
from carforge.models.dag import (
    ENTRY_KIND_CODECS,
    ContentSource,
    DirectoryEntry,
    DirectoryNode,
    DuplicatePolicy,
    EntryKind,
    ImportCandidate,
    StatResult,
    UnreadablePolicy,
)

__all__ = [
    # dag
    "EntryKind",
    "ENTRY_KIND_CODECS",
    "DirectoryEntry",
    "DirectoryNode",
    "ContentSource",
    "ImportCandidate",
    "StatResult",
    "DuplicatePolicy",
    "UnreadablePolicy",
    # archive
    "CAR_CONTENT_TYPE",
    "CAR_VERSION",
    "CarBlock",
    "CarArchive",
]
