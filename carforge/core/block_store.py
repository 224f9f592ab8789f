"""In-memory, content-addressed block store.

Blocks are immutable once stored: there is no update or delete, only a
full ``clear()`` before the store is frozen. Reads never block; writes are
serialized by a lock so independent subtree imports may share one store.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

from multiformats import CID

from carforge.core.errors import (
    BlockNotFoundError,
    IdentifierMismatchError,
    StoreFrozenError,
)
from carforge.core.identifier import DEFAULT_HASH_FUNCTION, RAW, identify, verify


class MemoryBlockStore:
    """CID keyed map of raw block bytes.

    Storing the same block twice is a no-op (idempotent). Every ``put`` is
    checked against the CID, so the store never holds a mismatched pair
    unless its memory is tampered with directly; ``get(..., verify_hash=True)``
    catches that case too.

    Once ``freeze()`` is called the store is read-only. A build writes into
    a fresh store and freezes it before any archive is served from it.
    """

    def __init__(self) -> None:
        self._blocks: dict[CID, bytes] = {}
        self._lock = threading.Lock()
        self._frozen = False

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def put(self, cid: CID, data: bytes) -> CID:
        """Store ``data`` under ``cid``.

        Raises
        ------
        IdentifierMismatchError
            If ``data`` does not hash to ``cid``.
        StoreFrozenError
            If the store has been frozen.
        """
        data = bytes(data)
        if not verify(cid, data):
            raise IdentifierMismatchError(
                f"Block bytes do not hash to {cid}", cid=cid
            )
        with self._lock:
            if self._frozen:
                raise StoreFrozenError(f"Cannot store {cid}: store is frozen", cid=cid)
            existing = self._blocks.get(cid)
            if existing is None:
                self._blocks[cid] = data
            elif existing != data:
                raise IdentifierMismatchError(
                    f"Different bytes already stored under {cid}", cid=cid
                )
        return cid

    def put_block(
        self,
        data: bytes,
        codec: str = RAW,
        *,
        version: int = 1,
        hashfun: str = DEFAULT_HASH_FUNCTION,
    ) -> CID:
        """Identify ``data`` under ``codec``, store it and return its CID."""
        return self.put(identify(data, codec, version=version, hashfun=hashfun), data)

    def clear(self) -> None:
        with self._lock:
            if self._frozen:
                raise StoreFrozenError("Cannot clear a frozen store")
            self._blocks.clear()

    def freeze(self) -> None:
        """Make the store read-only. Irreversible."""
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, cid: CID, *, verify_hash: bool = False) -> bytes:
        """Return the bytes stored under ``cid``.

        Raises
        ------
        BlockNotFoundError
            If no block is stored under ``cid``.
        IdentifierMismatchError
            If ``verify_hash`` is set and the stored bytes no longer hash
            to ``cid``.
        """
        try:
            data = self._blocks[cid]
        except KeyError:
            raise BlockNotFoundError(f"Block not found: {cid}", cid=cid) from None
        if verify_hash and not verify(cid, data):
            raise IdentifierMismatchError(
                f"Stored block no longer hashes to {cid}", cid=cid
            )
        return data

    def has(self, cid: CID) -> bool:
        return cid in self._blocks

    def __contains__(self, cid: object) -> bool:
        return cid in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[CID]:
        """Iterate CIDs in insertion order over a point-in-time copy."""
        return iter(list(self._blocks))
