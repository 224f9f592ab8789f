"""DAG builder — turns flat ``(path, content)`` pairs into a UnixFS tree.

The import runs in two passes:

1. Every candidate is placed into an in-memory tree of pending directories,
   root first, in declaration order. Content is read eagerly here.
2. The tree is stored bottom-up with an explicit post-order stack: files
   become raw blocks, then each directory becomes a dag-pb block once all
   of its children have CIDs. A parent's CID depends on its children's, so
   no other order is possible.

The result is always a single wrapping root directory, even for one file
or for no files at all.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from multiformats import CID

from carforge.core.block_store import MemoryBlockStore
from carforge.core.codecs import CodecRegistry
from carforge.core.errors import (
    DuplicatePathError,
    InvalidPathError,
    PathConflictError,
    UnreadableContentError,
)
from carforge.core.identifier import DAG_PB, DEFAULT_HASH_FUNCTION, RAW
from carforge.core.paths import join_path, split_path
from carforge.models.dag import (
    ContentSource,
    DirectoryEntry,
    DirectoryNode,
    DuplicatePolicy,
    EntryKind,
    ImportCandidate,
    UnreadablePolicy,
)

logger = logging.getLogger(__name__)


class _PendingDirectory:
    """A directory whose children are known but whose CID is not yet."""

    __slots__ = ("path", "children", "cid", "size")

    def __init__(self, path: str) -> None:
        self.path = path
        # name -> file bytes or sub-directory, in declaration order
        self.children: dict[str, bytes | _PendingDirectory] = {}
        self.cid: CID | None = None
        self.size = 0

    def subdirectories(self) -> list[_PendingDirectory]:
        return [c for c in self.children.values() if isinstance(c, _PendingDirectory)]


class DagImporter:
    """Builds a Merkle DAG of raw file leaves under dag-pb directories.

    Parameters
    ----------
    store:
        Where blocks are written. Should be fresh per build.
    registry:
        Must provide the ``dag-pb`` codec.
    cid_version:
        CID version for directory nodes (0 or 1). File leaves are always
        CIDv1 ``raw``, since CIDv0 cannot express the raw codec.
    hash_function:
        Multihash function name for every block.
    duplicate_policy:
        What to do when the same file path is declared twice.
    unreadable_policy:
        What to do when a lazy content source raises.
    sort_entries:
        Emit directory entries sorted by name instead of declaration order.
    """

    def __init__(
        self,
        store: MemoryBlockStore,
        registry: CodecRegistry,
        *,
        cid_version: int = 1,
        hash_function: str = DEFAULT_HASH_FUNCTION,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.LAST_WINS,
        unreadable_policy: UnreadablePolicy = UnreadablePolicy.ERROR,
        sort_entries: bool = False,
    ) -> None:
        if cid_version == 0 and hash_function != DEFAULT_HASH_FUNCTION:
            raise ValueError(
                f"CIDv0 directories require {DEFAULT_HASH_FUNCTION}, got {hash_function}"
            )
        if cid_version not in (0, 1):
            raise ValueError(f"Unsupported CID version: {cid_version}")
        self._store = store
        self._dir_codec = registry.get(DAG_PB)
        self._cid_version = cid_version
        self._hash_function = hash_function
        self._duplicate_policy = DuplicatePolicy(duplicate_policy)
        self._unreadable_policy = UnreadablePolicy(unreadable_policy)
        self._sort_entries = sort_entries

    def build(self, candidates: Iterable[ImportCandidate | tuple[str, ContentSource]]) -> CID:
        """Import every candidate and return the root directory CID."""
        root = self._build_tree(candidates)
        self._store_tree(root)
        assert root.cid is not None
        logger.debug(
            "Imported tree rooted at %s (%d bytes cumulative, %d blocks in store)",
            root.cid, root.size, len(self._store),
        )
        return root.cid

    # ------------------------------------------------------------------
    # Pass 1: path tree
    # ------------------------------------------------------------------

    def _build_tree(
        self, candidates: Iterable[ImportCandidate | tuple[str, ContentSource]]
    ) -> _PendingDirectory:
        root = _PendingDirectory("")
        for candidate in candidates:
            if not isinstance(candidate, ImportCandidate):
                path, content = candidate
                candidate = ImportCandidate(path=path, content=content)
            self._insert(root, candidate)
        return root

    def _insert(self, root: _PendingDirectory, candidate: ImportCandidate) -> None:
        segments = split_path(candidate.path)
        if not segments:
            raise InvalidPathError(
                f"File path names the root directory: {candidate.path!r}",
                path=candidate.path,
            )
        parent = root
        for depth, name in enumerate(segments[:-1]):
            child = parent.children.get(name)
            if child is None:
                child = _PendingDirectory(join_path(segments[: depth + 1]))
                parent.children[name] = child
            elif not isinstance(child, _PendingDirectory):
                raise PathConflictError(
                    f"{join_path(segments[: depth + 1])!r} is a file but "
                    f"{candidate.path!r} uses it as a directory",
                    path=candidate.path,
                )
            parent = child

        name = segments[-1]
        existing = parent.children.get(name)
        if isinstance(existing, _PendingDirectory):
            raise PathConflictError(
                f"{candidate.path!r} is already a directory", path=candidate.path
            )
        if existing is not None and self._duplicate_policy == DuplicatePolicy.ERROR:
            raise DuplicatePathError(
                f"Duplicate path {candidate.path!r}", path=candidate.path
            )
        # Re-assigning an existing key keeps its first-declared position.
        parent.children[name] = self._read_content(candidate)

    def _read_content(self, candidate: ImportCandidate) -> bytes:
        content = candidate.content
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode("utf-8")
        try:
            data = content()
        except Exception as exc:
            if self._unreadable_policy == UnreadablePolicy.EMPTY:
                logger.warning(
                    "Could not read %s (%s); storing empty content",
                    candidate.path, exc,
                )
                return b""
            raise UnreadableContentError(
                f"Could not read content for {candidate.path!r}: {exc}",
                path=candidate.path,
            ) from exc
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise UnreadableContentError(
                f"Content source for {candidate.path!r} returned "
                f"{type(data).__name__}, expected bytes",
                path=candidate.path,
            )
        return bytes(data)

    # ------------------------------------------------------------------
    # Pass 2: bottom-up storage
    # ------------------------------------------------------------------

    def _store_tree(self, root: _PendingDirectory) -> None:
        stack: list[tuple[_PendingDirectory, bool]] = [(root, False)]
        while stack:
            directory, children_done = stack.pop()
            if not children_done:
                stack.append((directory, True))
                for sub in reversed(directory.subdirectories()):
                    stack.append((sub, False))
                continue
            self._store_directory(directory)

    def _store_directory(self, directory: _PendingDirectory) -> None:
        entries: list[DirectoryEntry] = []
        for name, child in directory.children.items():
            if isinstance(child, _PendingDirectory):
                assert child.cid is not None, "children are stored before parents"
                entries.append(DirectoryEntry(
                    name=name, cid=child.cid, size=child.size, kind=EntryKind.DIRECTORY,
                ))
            else:
                cid = self._store.put_block(child, RAW, hashfun=self._hash_function)
                entries.append(DirectoryEntry(
                    name=name, cid=cid, size=len(child), kind=EntryKind.FILE,
                ))
        if self._sort_entries:
            entries.sort(key=lambda e: e.name.encode("utf-8"))

        data = self._dir_codec.encode(DirectoryNode(entries=tuple(entries)))
        directory.cid = self._store.put_block(
            data, DAG_PB, version=self._cid_version, hashfun=self._hash_function,
        )
        directory.size = len(data) + sum(e.size for e in entries)
        logger.debug(
            "Stored directory /%s as %s (%d entries)", directory.path, directory.cid, len(entries)
        )
