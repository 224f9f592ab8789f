"""Path resolution (stat/ls/cat) over a stored UnixFS tree."""

from __future__ import annotations

from multiformats import CID

from carforge.core.block_store import MemoryBlockStore
from carforge.core.codecs import CodecRegistry
from carforge.core.errors import (
    IsADirectoryPathError,
    NotADirectoryPathError,
    PathNotFoundError,
)
from carforge.core.identifier import DAG_PB
from carforge.core.paths import join_path, split_path
from carforge.models.dag import DirectoryEntry, DirectoryNode, EntryKind, StatResult


class PathResolver:
    """Walks directory nodes from a root CID, one path segment at a time.

    Only reads from the store, so any number of resolvers may share a
    frozen store concurrently.
    """

    def __init__(self, store: MemoryBlockStore, registry: CodecRegistry) -> None:
        self._store = store
        self._registry = registry

    def resolve(self, root: CID, path: str) -> CID:
        """Return the CID of the node at ``path`` below ``root``.

        An empty path (``""`` or ``"/"``) is ``root`` itself, returned
        without reading the store.

        Raises
        ------
        PathNotFoundError
            A segment has no matching entry.
        NotADirectoryPathError
            A non-terminal segment names a file.
        """
        return self._walk(root, path)[0]

    def stat(self, root: CID, path: str = "") -> StatResult:
        cid, entry = self._walk(root, path)
        normalized = join_path(split_path(path))
        if entry is not None:
            return StatResult(path=normalized, cid=cid, kind=entry.kind, size=entry.size)
        # The root has no parent entry to carry its cumulative size.
        data = self._store.get(cid)
        if cid.codec.name != DAG_PB:
            return StatResult(path=normalized, cid=cid, kind=EntryKind.FILE, size=len(data))
        node = self._registry.decode(cid, data)
        size = len(data) + sum(e.size for e in node.entries)
        return StatResult(path=normalized, cid=cid, kind=EntryKind.DIRECTORY, size=size)

    def ls(self, root: CID, path: str = "") -> list[DirectoryEntry]:
        """List the entries of the directory at ``path``, in stored order."""
        cid = self.resolve(root, path)
        return list(self._directory(cid, join_path(split_path(path))).entries)

    def cat(self, root: CID, path: str) -> bytes:
        """Return the content of the file at ``path``."""
        cid = self.resolve(root, path)
        if cid.codec.name == DAG_PB:
            raise IsADirectoryPathError(f"{path!r} is a directory", cid=cid, path=path)
        return self._store.get(cid)

    # ------------------------------------------------------------------

    def _walk(self, root: CID, path: str) -> tuple[CID, DirectoryEntry | None]:
        segments = split_path(path)
        current = root
        entry: DirectoryEntry | None = None
        for depth, name in enumerate(segments):
            node = self._directory(current, join_path(segments[:depth]))
            entry = node.get(name)
            if entry is None:
                raise PathNotFoundError(
                    f"No entry {name!r} at /{join_path(segments[:depth])}",
                    cid=current,
                    path=path,
                )
            current = entry.cid
        return current, entry

    def _directory(self, cid: CID, path: str) -> DirectoryNode:
        if cid.codec.name != DAG_PB:
            raise NotADirectoryPathError(f"/{path} is not a directory", cid=cid, path=path)
        return self._registry.decode(cid, self._store.get(cid))
