"""Codec registry — how block bytes are interpreted, per multicodec tag.

Four codecs are registered by ``default_registry()``:

* ``raw`` (0x55) — identity, used for file content; no outgoing links.
* ``dag-pb`` (0x70) — UnixFS directory nodes (see ``DagPbCodec``).
* ``dag-cbor`` (0x71) — map-structured nodes; links are every CID found
  anywhere in the decoded value.
* ``dag-json`` (0x0129) — the same data model as dag-cbor, JSON encoded.

Registries are plain instances handed to the importer, resolver and
archive encoder; there is no process-wide registry.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import dag_cbor
import dag_json
from multiformats import CID

from carforge.core.errors import MalformedBlockError, UnsupportedCodecError
from carforge.core.identifier import DAG_CBOR, DAG_JSON, DAG_PB, RAW
from carforge.core.wire import WIRE_LEN, WIRE_VARINT, bytes_field, iter_fields, varint_field
from carforge.models.dag import ENTRY_KIND_CODECS, DirectoryEntry, DirectoryNode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Codec(Protocol):
    """Encode/decode pair for one multicodec tag."""

    name: str
    code: int

    def encode(self, value: Any) -> bytes:
        ...

    def decode(self, data: bytes) -> Any:
        ...

    def links(self, data: bytes) -> list[CID]:
        """Return the CIDs ``data`` links to, in encoded order."""
        ...


# ---------------------------------------------------------------------------
# raw
# ---------------------------------------------------------------------------


class RawCodec:
    name = RAW
    code = 0x55

    def encode(self, value: bytes) -> bytes:
        return bytes(value)

    def decode(self, data: bytes) -> bytes:
        return bytes(data)

    def links(self, data: bytes) -> list[CID]:
        return []


# ---------------------------------------------------------------------------
# dag-pb (UnixFS directories)
# ---------------------------------------------------------------------------

# PBNode fields
_PB_DATA = 1
_PB_LINKS = 2
# PBLink fields
_LINK_HASH = 1
_LINK_NAME = 2
_LINK_TSIZE = 3
# UnixFS Data fields
_UNIXFS_TYPE = 1
_UNIXFS_DIRECTORY = 1

_DIRECTORY_DATA = varint_field(_UNIXFS_TYPE, _UNIXFS_DIRECTORY)

_CODEC_KINDS = {codec: kind for kind, codec in ENTRY_KIND_CODECS.items()}


class DagPbCodec:
    """UnixFS directory nodes in the dag-pb wire format.

    Layout (strict dag-pb ordering, links before data)::

        PBNode { repeated PBLink Links = 2; bytes Data = 1; }
        PBLink { bytes Hash = 1; string Name = 2; uint64 Tsize = 3; }
        Data   = UnixFS { Type = Directory }  ->  08 01

    The wire format has no per-link type, so an entry's kind is recovered
    from the codec of the CID it links: ``raw`` is a file, ``dag-pb`` is a
    directory. ``DirectoryEntry`` enforces the same pairing, which makes
    ``decode(encode(node)) == node`` exact.
    """

    name = DAG_PB
    code = 0x70

    def encode(self, value: DirectoryNode) -> bytes:
        if not isinstance(value, DirectoryNode):
            raise TypeError(f"dag-pb encodes DirectoryNode, got {type(value).__name__}")
        parts = [bytes_field(_PB_LINKS, self._encode_link(entry)) for entry in value.entries]
        parts.append(bytes_field(_PB_DATA, _DIRECTORY_DATA))
        return b"".join(parts)

    @staticmethod
    def _encode_link(entry: DirectoryEntry) -> bytes:
        return (
            bytes_field(_LINK_HASH, bytes(entry.cid))
            + bytes_field(_LINK_NAME, entry.name.encode("utf-8"))
            + varint_field(_LINK_TSIZE, entry.size)
        )

    def decode(self, data: bytes) -> DirectoryNode:
        try:
            entries, unixfs = self._split_node(data)
            self._check_directory(unixfs)
            return DirectoryNode(entries=tuple(self._decode_link(raw) for raw in entries))
        except MalformedBlockError:
            raise
        except ValueError as exc:
            # pydantic.ValidationError is a ValueError too
            raise MalformedBlockError(f"Invalid dag-pb directory node: {exc}") from exc

    def links(self, data: bytes) -> list[CID]:
        return self.decode(data).links

    @staticmethod
    def _split_node(data: bytes) -> tuple[list[bytes], bytes | None]:
        links: list[bytes] = []
        unixfs: bytes | None = None
        for field, wire_type, value in iter_fields(data):
            if field == _PB_LINKS and wire_type == WIRE_LEN:
                if unixfs is not None:
                    raise ValueError("PBNode links must precede data")
                links.append(value)
            elif field == _PB_DATA and wire_type == WIRE_LEN:
                if unixfs is not None:
                    raise ValueError("PBNode data appears more than once")
                unixfs = value
            else:
                raise ValueError(f"Unexpected PBNode field {field} (wire type {wire_type})")
        return links, unixfs

    @staticmethod
    def _check_directory(unixfs: bytes | None) -> None:
        if unixfs is None:
            raise ValueError("dag-pb node carries no UnixFS data")
        node_type = None
        for field, wire_type, value in iter_fields(unixfs):
            if field == _UNIXFS_TYPE and wire_type == WIRE_VARINT:
                node_type = value
        if node_type != _UNIXFS_DIRECTORY:
            raise ValueError(f"UnixFS node type {node_type} is not a directory")

    @staticmethod
    def _decode_link(raw: bytes) -> DirectoryEntry:
        cid_bytes = name = tsize = None
        for field, wire_type, value in iter_fields(raw):
            if field == _LINK_HASH and wire_type == WIRE_LEN:
                cid_bytes = value
            elif field == _LINK_NAME and wire_type == WIRE_LEN:
                name = value.decode("utf-8")
            elif field == _LINK_TSIZE and wire_type == WIRE_VARINT:
                tsize = value
            else:
                raise ValueError(f"Unexpected PBLink field {field} (wire type {wire_type})")
        if cid_bytes is None or name is None or tsize is None:
            raise ValueError("PBLink requires Hash, Name and Tsize")
        try:
            cid = CID.decode(cid_bytes)
        except KeyError as exc:
            raise ValueError(f"Unknown multicodec in link {name!r}") from exc
        kind = _CODEC_KINDS.get(cid.codec.name)
        if kind is None:
            raise ValueError(f"Link {name!r} targets unsupported codec {cid.codec.name}")
        return DirectoryEntry(name=name, cid=cid, size=tsize, kind=kind)


# ---------------------------------------------------------------------------
# dag-cbor
# ---------------------------------------------------------------------------


class DagCborCodec:
    name = DAG_CBOR
    code = 0x71

    def encode(self, value: Any) -> bytes:
        return dag_cbor.encode(value)

    def decode(self, data: bytes) -> Any:
        try:
            return dag_cbor.decode(data)
        except Exception as exc:
            raise MalformedBlockError(f"Invalid dag-cbor block: {exc}") from exc

    def links(self, data: bytes) -> list[CID]:
        return _find_links(self.decode(data))


# ---------------------------------------------------------------------------
# dag-json
# ---------------------------------------------------------------------------


class DagJsonCodec:
    name = DAG_JSON
    code = 0x0129

    def encode(self, value: Any) -> bytes:
        return dag_json.encode(value)

    def decode(self, data: bytes) -> Any:
        try:
            return dag_json.decode(data)
        except Exception as exc:
            raise MalformedBlockError(f"Invalid dag-json block: {exc}") from exc

    def links(self, data: bytes) -> list[CID]:
        return _find_links(self.decode(data))


def _find_links(value: Any) -> list[CID]:
    """Every CID inside a decoded IPLD value, in encoded order."""
    found: list[CID] = []
    stack = [value]
    while stack:
        item = stack.pop()
        if isinstance(item, CID):
            found.append(item)
        elif isinstance(item, dict):
            stack.extend(reversed(list(item.values())))
        elif isinstance(item, list):
            stack.extend(reversed(item))
    return found


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CodecRegistry:
    """Maps multicodec codes (and names) to codecs."""

    def __init__(self, codecs: list[Codec] | None = None) -> None:
        self._by_code: dict[int, Codec] = {}
        self._by_name: dict[str, Codec] = {}
        for codec in codecs or []:
            self.register(codec)

    def register(self, codec: Codec, *, replace: bool = False) -> None:
        if not isinstance(codec, Codec):
            raise TypeError(f"{codec!r} does not implement the Codec protocol")
        if codec.code in self._by_code and not replace:
            raise ValueError(f"Codec 0x{codec.code:x} ({codec.name}) is already registered")
        self._by_code[codec.code] = codec
        self._by_name[codec.name] = codec
        logger.debug("Registered codec %s (0x%x)", codec.name, codec.code)

    def get(self, codec: int | str) -> Codec:
        found = self._by_name.get(codec) if isinstance(codec, str) else self._by_code.get(codec)
        if found is None:
            label = codec if isinstance(codec, str) else f"0x{codec:x}"
            raise UnsupportedCodecError(f"No codec registered for {label}")
        return found

    def for_cid(self, cid: CID) -> Codec:
        try:
            return self.get(cid.codec.code)
        except UnsupportedCodecError as exc:
            raise UnsupportedCodecError(
                f"No codec registered for {cid.codec.name} (block {cid})", cid=cid
            ) from exc

    def encode(self, codec: int | str, value: Any) -> bytes:
        return self.get(codec).encode(value)

    def decode(self, cid: CID, data: bytes) -> Any:
        """Decode a block under the codec its CID declares."""
        try:
            return self.for_cid(cid).decode(data)
        except MalformedBlockError as exc:
            if exc.cid is None:
                exc.cid = cid
            raise

    def links(self, cid: CID, data: bytes) -> list[CID]:
        try:
            return self.for_cid(cid).links(data)
        except MalformedBlockError as exc:
            if exc.cid is None:
                exc.cid = cid
            raise

    def __contains__(self, codec: object) -> bool:
        if isinstance(codec, str):
            return codec in self._by_name
        return codec in self._by_code

    @property
    def names(self) -> list[str]:
        return list(self._by_name)


def default_registry() -> CodecRegistry:
    """A fresh registry with raw, dag-pb, dag-cbor and dag-json."""
    return CodecRegistry([RawCodec(), DagPbCodec(), DagCborCodec(), DagJsonCodec()])
