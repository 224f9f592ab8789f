"""Content identifiers (CIDs) derived from block bytes.

A CID is ``<version><codec><multihash>``; for version 1 each prefix is a
varint, for version 0 the binary form is the bare sha2-256 multihash and
the codec is implicitly dag-pb. CIDs are ``multiformats.CID`` instances:
they are immutable, hashable and compare equal iff version, codec and
multihash are all equal.
"""

from __future__ import annotations

from multiformats import CID, multihash

from carforge.core.errors import MalformedBlockError
from carforge.core.wire import read_varint

RAW = "raw"
DAG_PB = "dag-pb"
DAG_CBOR = "dag-cbor"
DAG_JSON = "dag-json"

DEFAULT_HASH_FUNCTION = "sha2-256"

# Binary CIDv0 is a sha2-256 multihash: 0x12 (sha2-256), 0x20 (32 bytes).
_V0_PREFIX = b"\x12\x20"
_V0_LENGTH = 34


def identify(
    data: bytes,
    codec: str = RAW,
    *,
    version: int = 1,
    hashfun: str = DEFAULT_HASH_FUNCTION,
) -> CID:
    """Derive the CID of ``data`` interpreted under ``codec``.

    Pure and deterministic. Zero-length input is valid.

    Raises
    ------
    ValueError
        If ``version`` is not 0 or 1, or version 0 is requested for anything
        other than a sha2-256 dag-pb block.
    """
    if version not in (0, 1):
        raise ValueError(f"Unsupported CID version: {version}")
    if version == 0 and (codec != DAG_PB or hashfun != DEFAULT_HASH_FUNCTION):
        raise ValueError(
            f"CIDv0 requires codec {DAG_PB!r} and {DEFAULT_HASH_FUNCTION!r}, "
            f"got {codec!r} and {hashfun!r}"
        )
    digest = multihash.digest(data, hashfun)
    base = "base58btc" if version == 0 else "base32"
    return CID(base, version, codec, digest)


def verify(cid: CID, data: bytes) -> bool:
    """Return True if ``data`` hashes to the multihash carried by ``cid``.

    Raises
    ------
    MalformedBlockError
        If the CID's hash function cannot be computed here (unknown, or its
        optional backend is not installed).
    """
    try:
        return multihash.digest(data, cid.hashfun.name) == cid.digest
    except (ImportError, KeyError) as exc:
        raise MalformedBlockError(
            f"Cannot verify {cid}: hash function {cid.hashfun.name} unavailable ({exc})",
            cid=cid,
        ) from exc


def parse_cid(text: str) -> CID:
    """Parse a multibase-encoded CID string (``bafy...``, ``Qm...``)."""
    try:
        return CID.decode(text)
    except (KeyError, ValueError) as exc:
        raise MalformedBlockError(f"Invalid CID string {text!r}: {exc}") from exc


def read_cid(buf: bytes | memoryview, offset: int = 0) -> tuple[CID, int]:
    """Parse one binary CID starting at ``offset`` in a byte stream.

    Returns the CID and the offset of the first byte after it. Used by the
    CAR reader, where a CID is immediately followed by its block payload
    with no separator.
    """
    try:
        if bytes(buf[offset:offset + 2]) == _V0_PREFIX:
            end = offset + _V0_LENGTH
            if end > len(buf):
                raise ValueError("Truncated CIDv0")
            return CID("base58btc", 0, DAG_PB, bytes(buf[offset:end])), end

        version, pos = read_varint(buf, offset)
        if version != 1:
            raise ValueError(f"Unsupported CID version {version}")
        _codec, pos = read_varint(buf, pos)
        _hash_code, pos = read_varint(buf, pos)
        digest_size, pos = read_varint(buf, pos)
        end = pos + digest_size
        if end > len(buf):
            raise ValueError("Truncated multihash digest")
        return CID.decode(bytes(buf[offset:end])), end
    except (KeyError, ValueError) as exc:
        raise MalformedBlockError(f"Invalid binary CID at offset {offset}: {exc}") from exc
