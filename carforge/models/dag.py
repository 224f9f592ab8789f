"""Merkle DAG models: directory entries, directory nodes, import candidates."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from multiformats import CID
from pydantic import BaseModel, ConfigDict, Field, model_validator


class EntryKind(str, Enum):
    """What a directory entry links to."""

    FILE = "file"
    DIRECTORY = "directory"


# A file entry links a raw leaf block; a directory entry links a dag-pb node.
ENTRY_KIND_CODECS: dict[EntryKind, str] = {
    EntryKind.FILE: "raw",
    EntryKind.DIRECTORY: "dag-pb",
}


class DuplicatePolicy(str, Enum):
    """How the importer treats a file path declared more than once."""

    LAST_WINS = "last_wins"
    ERROR = "error"


class UnreadablePolicy(str, Enum):
    """How the importer treats a lazy content source that raises."""

    ERROR = "error"
    EMPTY = "empty"


class DirectoryEntry(BaseModel):
    """One named link inside a directory node.

    ``size`` is the cumulative byte size of the linked sub-DAG: the content
    length for a file, the encoded node plus all descendants for a
    directory.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    cid: CID
    size: int = Field(ge=0)
    kind: EntryKind

    @model_validator(mode="after")
    def _check_name_and_codec(self) -> DirectoryEntry:
        if "/" in self.name or self.name in (".", ".."):
            raise ValueError(f"Invalid entry name {self.name!r}")
        expected = ENTRY_KIND_CODECS[self.kind]
        if self.cid.codec.name != expected:
            raise ValueError(
                f"{self.kind.value} entry {self.name!r} must link a {expected} "
                f"block, got {self.cid.codec.name}"
            )
        return self


class DirectoryNode(BaseModel):
    """An ordered, name-unique list of directory entries.

    Entry order is whatever the importer declared; ``get`` looks entries up
    by exact name.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    entries: tuple[DirectoryEntry, ...] = ()

    @model_validator(mode="after")
    def _check_unique_names(self) -> DirectoryNode:
        seen: set[str] = set()
        for entry in self.entries:
            if entry.name in seen:
                raise ValueError(f"Duplicate entry name {entry.name!r}")
            seen.add(entry.name)
        return self

    def get(self, name: str) -> DirectoryEntry | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    @property
    def names(self) -> list[str]:
        return [entry.name for entry in self.entries]

    @property
    def links(self) -> list[CID]:
        return [entry.cid for entry in self.entries]


ContentSource = bytes | str | Callable[[], bytes]


class ImportCandidate(BaseModel):
    """A ``(path, content)`` pair handed to the importer.

    ``content`` may be bytes, text (stored UTF-8 encoded) or a zero-argument
    callable that produces the bytes when the importer reaches it.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str
    content: ContentSource


class StatResult(BaseModel):
    """What lives at a path below a root."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str
    cid: CID
    kind: EntryKind
    size: int
