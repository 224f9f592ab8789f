"""Unit tests for MemoryBlockStore."""

from __future__ import annotations

import pytest

from carforge.core.block_store import MemoryBlockStore
from carforge.core.errors import (
    BlockNotFoundError,
    IdentifierMismatchError,
    StoreFrozenError,
)
from carforge.core.identifier import DAG_PB, identify


class TestPutGet:
    def test_put_then_get(self, store: MemoryBlockStore):
        cid = identify(b"hello")
        assert store.put(cid, b"hello") == cid
        assert store.get(cid) == b"hello"
        assert store.has(cid)
        assert cid in store

    def test_put_block_identifies(self, store: MemoryBlockStore):
        cid = store.put_block(b"\x0a\x02\x08\x01", DAG_PB)
        assert cid == identify(b"\x0a\x02\x08\x01", DAG_PB)
        assert store.get(cid) == b"\x0a\x02\x08\x01"

    def test_put_is_idempotent(self, store: MemoryBlockStore):
        store.put_block(b"same")
        store.put_block(b"same")
        assert len(store) == 1

    def test_put_rejects_wrong_bytes(self, store: MemoryBlockStore):
        with pytest.raises(IdentifierMismatchError):
            store.put(identify(b"one"), b"two")
        assert len(store) == 0

    def test_get_missing(self, store: MemoryBlockStore):
        cid = identify(b"absent")
        with pytest.raises(BlockNotFoundError) as exc_info:
            store.get(cid)
        assert exc_info.value.cid == cid
        assert not store.has(cid)

    def test_iteration_in_insertion_order(self, store: MemoryBlockStore):
        cids = [store.put_block(data) for data in (b"c", b"a", b"b")]
        assert list(store) == cids

    def test_empty_block(self, store: MemoryBlockStore):
        cid = store.put_block(b"")
        assert store.get(cid) == b""


class TestVerifiedRead:
    def test_verify_hash_detects_tampering(self, store: MemoryBlockStore):
        cid = store.put_block(b"original")
        store._blocks[cid] = b"tampered"
        assert store.get(cid) == b"tampered"
        with pytest.raises(IdentifierMismatchError):
            store.get(cid, verify_hash=True)


class TestFreeze:
    def test_frozen_store_rejects_writes(self, store: MemoryBlockStore):
        cid = store.put_block(b"kept")
        store.freeze()
        assert store.frozen
        with pytest.raises(StoreFrozenError):
            store.put_block(b"new")
        with pytest.raises(StoreFrozenError):
            store.clear()
        assert store.get(cid) == b"kept"

    def test_clear_before_freeze(self, store: MemoryBlockStore):
        store.put_block(b"gone")
        store.clear()
        assert len(store) == 0
