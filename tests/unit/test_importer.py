"""Unit tests for the DAG importer: tree shape, policies and determinism."""

from __future__ import annotations

import logging

import pytest

from carforge.core.block_store import MemoryBlockStore
from carforge.core.codecs import CodecRegistry
from carforge.core.errors import (
    DuplicatePathError,
    InvalidPathError,
    PathConflictError,
    UnreadableContentError,
)
from carforge.core.identifier import DAG_PB, identify
from carforge.core.importer import DagImporter
from carforge.models.dag import DuplicatePolicy, EntryKind, ImportCandidate, UnreadablePolicy
from conftest import EMPTY_DIR_CID_V0, EMPTY_DIR_CID_V1, SAMPLE_PAIRS


def _root_node(store: MemoryBlockStore, registry: CodecRegistry, root):
    return registry.decode(root, store.get(root))


class TestTreeShape:
    def test_two_entry_tree(self, store, registry, importer):
        root = importer.build(SAMPLE_PAIRS)
        node = _root_node(store, registry, root)
        assert node.names == ["a.txt", "dir"]

        a_txt = node.get("a.txt")
        assert a_txt.kind == EntryKind.FILE
        assert a_txt.size == 5
        assert a_txt.cid == identify(b"hello")

        directory = node.get("dir")
        assert directory.kind == EntryKind.DIRECTORY
        sub = registry.decode(directory.cid, store.get(directory.cid))
        assert sub.names == ["b.txt"]
        assert sub.get("b.txt").size == 5
        assert store.get(sub.get("b.txt").cid) == b"world"

    def test_directory_size_is_cumulative(self, store, registry, importer):
        root = importer.build(SAMPLE_PAIRS)
        directory = _root_node(store, registry, root).get("dir")
        assert directory.size == len(store.get(directory.cid)) + 5

    def test_block_count(self, store, importer):
        importer.build(SAMPLE_PAIRS)
        # two raw leaves, two directories
        assert len(store) == 4

    def test_empty_input(self, store, importer):
        root = importer.build([])
        assert str(root) == EMPTY_DIR_CID_V1
        assert len(store) == 1

    def test_single_file_is_wrapped(self, store, registry, importer):
        root = importer.build([("only.bin", b"\x00\x01")])
        assert root.codec.name == DAG_PB
        assert _root_node(store, registry, root).names == ["only.bin"]

    def test_accepts_import_candidates(self, store, registry, importer):
        root = importer.build([ImportCandidate(path="x", content=b"1")])
        assert _root_node(store, registry, root).names == ["x"]

    def test_path_normalization(self, store, registry, importer):
        root = importer.build([("/dir//b.txt", "world"), ("./a.txt", "hello")])
        assert _root_node(store, registry, root).names == ["dir", "a.txt"]

    def test_empty_file(self, store, registry, importer):
        root = importer.build([("empty", b"")])
        entry = _root_node(store, registry, root).get("empty")
        assert entry.size == 0
        assert store.get(entry.cid) == b""

    def test_shared_content_stored_once(self, store, importer):
        importer.build([("a", b"same"), ("b/c", b"same")])
        # one raw leaf, two directories
        assert len(store) == 3


class TestDeterminism:
    def test_same_input_same_root(self, registry):
        first = DagImporter(MemoryBlockStore(), registry).build(SAMPLE_PAIRS)
        second = DagImporter(MemoryBlockStore(), registry).build(SAMPLE_PAIRS)
        assert first == second

    def test_rebuild_into_same_store(self, store, importer):
        first = importer.build(SAMPLE_PAIRS)
        count = len(store)
        assert importer.build(SAMPLE_PAIRS) == first
        assert len(store) == count

    def test_declaration_order_matters(self, importer):
        assert importer.build([("a", "1"), ("b", "2")]) != importer.build([("b", "2"), ("a", "1")])

    def test_sorted_entries_ignore_order(self, store, registry):
        importer = DagImporter(store, registry, sort_entries=True)
        first = importer.build([("b", "2"), ("a", "1"), ("c/z", "3")])
        second = importer.build([("c/z", "3"), ("a", "1"), ("b", "2")])
        assert first == second
        assert _root_node(store, registry, first).names == ["a", "b", "c"]

    def test_content_change_changes_root(self, importer):
        assert importer.build([("dir/b.txt", "world")]) != importer.build([("dir/b.txt", "World")])


class TestCidVersion:
    def test_v0_directories(self, store, registry):
        importer = DagImporter(store, registry, cid_version=0)
        root = importer.build([])
        assert str(root) == EMPTY_DIR_CID_V0

    def test_v0_leaves_stay_v1_raw(self, store, registry):
        root = DagImporter(store, registry, cid_version=0).build([("f", "x")])
        leaf = _root_node(store, registry, root).get("f")
        assert root.version == 0
        assert leaf.cid.version == 1
        assert leaf.cid.codec.name == "raw"

    def test_v0_requires_sha2_256(self, store, registry):
        with pytest.raises(ValueError):
            DagImporter(store, registry, cid_version=0, hash_function="sha2-512")

    def test_bad_version(self, store, registry):
        with pytest.raises(ValueError):
            DagImporter(store, registry, cid_version=3)

    def test_alternate_hash_function(self, store, registry):
        root = DagImporter(store, registry, hash_function="sha2-512").build([("f", "x")])
        assert root.hashfun.name == "sha2-512"
        assert _root_node(store, registry, root).get("f").cid.hashfun.name == "sha2-512"


class TestDuplicates:
    def test_last_wins_keeps_first_position(self, store, registry, importer):
        root = importer.build([("a", "old"), ("b", "2"), ("a", "new")])
        node = _root_node(store, registry, root)
        assert node.names == ["a", "b"]
        assert store.get(node.get("a").cid) == b"new"

    def test_error_policy(self, store, registry):
        importer = DagImporter(store, registry, duplicate_policy=DuplicatePolicy.ERROR)
        with pytest.raises(DuplicatePathError) as exc_info:
            importer.build([("dir/a", "1"), ("dir//a", "2")])
        assert exc_info.value.path == "dir//a"

    def test_file_then_directory_conflict(self, importer):
        with pytest.raises(PathConflictError):
            importer.build([("a", "file"), ("a/b", "nested")])

    def test_directory_then_file_conflict(self, importer):
        with pytest.raises(PathConflictError):
            importer.build([("a/b", "nested"), ("a", "file")])

    def test_root_path_rejected(self, importer):
        with pytest.raises(InvalidPathError):
            importer.build([("/", "x")])

    def test_parent_segment_rejected(self, importer):
        with pytest.raises(InvalidPathError):
            importer.build([("a/../b", "x")])


class TestContentSources:
    def test_lazy_source_read(self, store, registry, importer):
        calls = []

        def source() -> bytes:
            calls.append(1)
            return b"lazy"

        root = importer.build([("f", source)])
        assert calls == [1]
        assert store.get(_root_node(store, registry, root).get("f").cid) == b"lazy"

    def test_text_is_utf8(self, store, registry, importer):
        root = importer.build([("f", "héllo")])
        entry = _root_node(store, registry, root).get("f")
        assert store.get(entry.cid) == "héllo".encode("utf-8")
        assert entry.size == 6

    def test_unreadable_raises_by_default(self, importer):
        def broken() -> bytes:
            raise OSError("disk gone")

        with pytest.raises(UnreadableContentError) as exc_info:
            importer.build([("f", broken)])
        assert exc_info.value.path == "f"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_unreadable_empty_policy(self, store, registry, caplog):
        importer = DagImporter(store, registry, unreadable_policy=UnreadablePolicy.EMPTY)

        def broken() -> bytes:
            raise OSError("disk gone")

        with caplog.at_level(logging.WARNING, logger="carforge.core.importer"):
            root = importer.build([("f", broken)])
        entry = _root_node(store, registry, root).get("f")
        assert entry.size == 0
        assert "storing empty content" in caplog.text

    def test_source_returning_non_bytes(self, importer):
        with pytest.raises(UnreadableContentError, match="expected bytes"):
            importer.build([("f", lambda: 42)])
