"""CAR v1 (Content Addressable aRchive) encoding and decoding.

Binary layout::

    varint(len(header)) header
    varint(len(cid) + len(payload)) cid payload
    varint(len(cid) + len(payload)) cid payload
    ...

``header`` is the dag-cbor map ``{"roots": [CID, ...], "version": 1}``.
Records follow each other with no padding, so a reader can stream the
archive without random access.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import dag_cbor
from multiformats import CID

from carforge.core.block_store import MemoryBlockStore
from carforge.core.codecs import CodecRegistry
from carforge.core.errors import (
    BlockNotFoundError,
    IdentifierMismatchError,
    MalformedBlockError,
    MissingBlockError,
)
from carforge.core.identifier import read_cid, verify
from carforge.core.wire import encode_varint, read_varint
from carforge.models.archive import CAR_VERSION, CarArchive, CarBlock

logger = logging.getLogger(__name__)


class CarEncoder:
    """Collects every block reachable from a set of roots into a CAR.

    Traversal is depth-first pre-order with an explicit stack; children are
    visited in link order. A visited set makes shared sub-trees appear once
    and guarantees termination on cyclic input. The output is a pure
    function of the store contents and the roots.
    """

    def __init__(self, store: MemoryBlockStore, registry: CodecRegistry) -> None:
        self._store = store
        self._registry = registry

    def collect(self, roots: Iterable[CID]) -> list[CarBlock]:
        """Return reachable blocks in traversal order.

        Raises
        ------
        MissingBlockError
            A root or linked block is absent from the store.
        IdentifierMismatchError
            A stored block no longer hashes to its CID.
        MalformedBlockError
            A block fails to decode under its codec.
        UnsupportedCodecError
            A block's codec is not registered.
        """
        visited: set[CID] = set()
        blocks: list[CarBlock] = []
        for root in roots:
            stack = [root]
            while stack:
                cid = stack.pop()
                if cid in visited:
                    continue
                data = self._fetch(cid)
                visited.add(cid)
                blocks.append(CarBlock(cid=cid, data=data))
                stack.extend(reversed(self._registry.links(cid, data)))
        return blocks

    def build(self, roots: Iterable[CID]) -> CarArchive:
        roots = tuple(roots)
        archive = CarArchive(roots=roots, blocks=tuple(self.collect(roots)))
        logger.debug("Collected %d blocks from %d root(s)", len(archive.blocks), len(roots))
        return archive

    def build_archive(self, roots: Iterable[CID]) -> bytes:
        """Serialize every block reachable from ``roots`` as CAR v1 bytes."""
        return encode_car(self.build(roots))

    def _fetch(self, cid: CID) -> bytes:
        try:
            return self._store.get(cid, verify_hash=True)
        except BlockNotFoundError as exc:
            raise MissingBlockError(
                f"Block {cid} is linked but missing from the store", cid=cid
            ) from exc


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def encode_header(roots: Iterable[CID]) -> bytes:
    return dag_cbor.encode({"roots": list(roots), "version": CAR_VERSION})


def encode_car(archive: CarArchive) -> bytes:
    header = encode_header(archive.roots)
    parts = [encode_varint(len(header)), header]
    for block in archive.blocks:
        cid_bytes = bytes(block.cid)
        parts.append(encode_varint(len(cid_bytes) + len(block.data)))
        parts.append(cid_bytes)
        parts.append(block.data)
    return b"".join(parts)


def read_car(data: bytes, *, verify_blocks: bool = True) -> CarArchive:
    """Parse CAR v1 bytes.

    With ``verify_blocks`` every payload is re-hashed against its CID.

    Raises
    ------
    MalformedBlockError
        Truncated input, a bad header or an unparseable record.
    IdentifierMismatchError
        A payload does not hash to its CID.
    """
    roots, offset = _read_header(data)
    blocks: list[CarBlock] = []
    while offset < len(data):
        try:
            length, offset = read_varint(data, offset)
        except ValueError as exc:
            raise MalformedBlockError(f"Invalid record length at offset {offset}") from exc
        end = offset + length
        if length == 0 or end > len(data):
            raise MalformedBlockError(
                f"Record at offset {offset} declares {length} bytes, "
                f"{len(data) - offset} available"
            )
        cid, payload_start = read_cid(data, offset)
        if payload_start > end:
            raise MalformedBlockError(f"CID overruns its record at offset {offset}", cid=cid)
        payload = bytes(data[payload_start:end])
        if verify_blocks and not verify(cid, payload):
            raise IdentifierMismatchError(f"Archived block does not hash to {cid}", cid=cid)
        blocks.append(CarBlock(cid=cid, data=payload))
        offset = end
    return CarArchive(roots=roots, blocks=tuple(blocks))


def _read_header(data: bytes) -> tuple[tuple[CID, ...], int]:
    try:
        length, offset = read_varint(data, 0)
    except ValueError as exc:
        raise MalformedBlockError("Missing CAR header") from exc
    end = offset + length
    if length == 0 or end > len(data):
        raise MalformedBlockError(f"CAR header declares {length} bytes, got {len(data) - offset}")
    try:
        header = dag_cbor.decode(bytes(data[offset:end]))
    except Exception as exc:
        raise MalformedBlockError(f"CAR header is not valid dag-cbor: {exc}") from exc
    if not isinstance(header, dict) or header.get("version") != CAR_VERSION:
        raise MalformedBlockError(f"Unsupported CAR header: {header!r}")
    roots = header.get("roots")
    if not isinstance(roots, list) or not all(isinstance(r, CID) for r in roots):
        raise MalformedBlockError("CAR header roots must be a list of CIDs")
    return tuple(roots), end


def load_car(data: bytes, store: MemoryBlockStore) -> list[CID]:
    """Verify and put every block of a CAR into ``store``; return its roots."""
    archive = read_car(data, verify_blocks=True)
    for block in archive.blocks:
        store.put(block.cid, block.data)
    logger.debug("Loaded %d blocks into store", len(archive.blocks))
    return list(archive.roots)
