"""Build service — one frozen store generation per build.

``build()`` imports into a brand new store, freezes it, and only then
publishes ``(root, store)`` as the current snapshot. Request handlers
capture the snapshot once and work against it, so a build in progress is
never visible to a reader and a failed build leaves the last good
snapshot in place.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from datetime import datetime, timezone

from multiformats import CID
from pydantic import BaseModel, ConfigDict, Field

from carforge.config import CarforgeConfig
from carforge.core.block_store import MemoryBlockStore
from carforge.core.car import CarEncoder
from carforge.core.codecs import CodecRegistry, default_registry
from carforge.core.errors import NotBuiltError
from carforge.core.importer import DagImporter
from carforge.core.resolver import PathResolver
from carforge.models.dag import ContentSource, ImportCandidate, StatResult

logger = logging.getLogger(__name__)


class BuildSnapshot(BaseModel):
    """A published build: its root and the frozen store holding its blocks."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    generation: int
    root: CID
    store: MemoryBlockStore
    built_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DagService:
    """Entry point for build pipelines and archive-serving layers.

    Parameters
    ----------
    config:
        Import settings. Defaults to a fresh ``CarforgeConfig()``.
    registry:
        Codec registry shared by every build. Defaults to
        ``default_registry()``.
    """

    def __init__(
        self,
        config: CarforgeConfig | None = None,
        registry: CodecRegistry | None = None,
    ) -> None:
        self._config = config or CarforgeConfig()
        self._registry = registry or default_registry()
        self._lock = threading.Lock()
        self._snapshot: BuildSnapshot | None = None
        self._generation = 0

    @property
    def registry(self) -> CodecRegistry:
        return self._registry

    @property
    def snapshot(self) -> BuildSnapshot | None:
        """The latest published build, or None before the first one."""
        return self._snapshot

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self, candidates: Iterable[ImportCandidate | tuple[str, ContentSource]]) -> CID:
        """Import a complete artifact set and publish it. Returns the root."""
        store = MemoryBlockStore()
        importer = DagImporter(
            store,
            self._registry,
            cid_version=self._config.cid_version,
            hash_function=self._config.hash_function,
            duplicate_policy=self._config.duplicate_policy,
            unreadable_policy=self._config.unreadable_policy,
            sort_entries=self._config.sort_entries,
        )
        root = importer.build(candidates)
        store.freeze()

        with self._lock:
            self._generation += 1
            self._snapshot = BuildSnapshot(
                generation=self._generation, root=root, store=store
            )
        logger.info(
            "Published build %d: root %s (%d blocks)", self._generation, root, len(store)
        )
        return root

    # ------------------------------------------------------------------
    # Serve
    # ------------------------------------------------------------------

    def resolve(self, path: str, *, root: CID | None = None) -> CID:
        snapshot = self._require_snapshot()
        if root is None:
            root = snapshot.root
        return PathResolver(snapshot.store, self._registry).resolve(root, path)

    def stat(self, path: str = "", *, root: CID | None = None) -> StatResult:
        snapshot = self._require_snapshot()
        if root is None:
            root = snapshot.root
        return PathResolver(snapshot.store, self._registry).stat(root, path)

    def build_archive(self, roots: Iterable[CID]) -> bytes:
        snapshot = self._require_snapshot()
        return CarEncoder(snapshot.store, self._registry).build_archive(roots)

    def archive(self, path: str = "/", *, root: CID | None = None) -> bytes:
        """CAR bytes for the sub-tree at ``path`` below ``root``.

        ``root`` defaults to the root of the latest build; any other root
        must live in the same snapshot.
        """
        snapshot = self._require_snapshot()
        if root is None:
            root = snapshot.root
        target = PathResolver(snapshot.store, self._registry).resolve(root, path)
        data = CarEncoder(snapshot.store, self._registry).build_archive([target])
        logger.debug("Archived %s at %s: %d bytes", path, target, len(data))
        return data

    def _require_snapshot(self) -> BuildSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise NotBuiltError("No build has been published yet")
        return snapshot
