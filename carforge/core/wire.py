"""Varint and protobuf wire-format helpers.

Only the two wire types dag-pb and UnixFS use are supported: varint (0)
and length-delimited (2). Decoding errors surface as ``ValueError``; the
codecs translate them into ``MalformedBlockError``.
"""

from __future__ import annotations

from collections.abc import Iterator

from multiformats import varint

WIRE_VARINT = 0
WIRE_LEN = 2


def encode_varint(value: int) -> bytes:
    """Unsigned LEB128, as used by both multiformats and protobuf."""
    return varint.encode(value)


def read_varint(buf: bytes | memoryview, offset: int = 0) -> tuple[int, int]:
    """Decode a varint at ``offset``; return ``(value, next_offset)``."""
    if offset >= len(buf):
        raise ValueError(f"Unexpected end of data reading varint at offset {offset}")
    view = memoryview(buf)[offset:]
    # Varints are at most 9 bytes; the last one has the high bit clear.
    if all(byte & 0x80 for byte in view[:9]):
        raise ValueError(f"Truncated or overlong varint at offset {offset}")
    try:
        value, nbytes, _ = varint.decode_raw(view)
    except (IndexError, EOFError) as exc:
        raise ValueError(f"Truncated varint at offset {offset}") from exc
    return value, offset + nbytes


# ---------------------------------------------------------------------------
# Protobuf fields
# ---------------------------------------------------------------------------


def field_key(field: int, wire_type: int) -> bytes:
    return encode_varint((field << 3) | wire_type)


def varint_field(field: int, value: int) -> bytes:
    return field_key(field, WIRE_VARINT) + encode_varint(value)


def bytes_field(field: int, data: bytes) -> bytes:
    return field_key(field, WIRE_LEN) + encode_varint(len(data)) + data


def iter_fields(data: bytes) -> Iterator[tuple[int, int, int | bytes]]:
    """Yield ``(field_number, wire_type, value)`` for each field in order.

    Varint fields yield ``int``; length-delimited fields yield ``bytes``.
    """
    offset = 0
    end = len(data)
    while offset < end:
        key, offset = read_varint(data, offset)
        field, wire_type = key >> 3, key & 0x7
        if field == 0:
            raise ValueError("Invalid protobuf field number 0")
        if wire_type == WIRE_VARINT:
            value, offset = read_varint(data, offset)
            yield field, wire_type, value
        elif wire_type == WIRE_LEN:
            length, offset = read_varint(data, offset)
            if offset + length > end:
                raise ValueError(
                    f"Field {field} declares {length} bytes but only "
                    f"{end - offset} remain"
                )
            yield field, wire_type, bytes(data[offset:offset + length])
            offset += length
        else:
            raise ValueError(f"Unsupported protobuf wire type {wire_type} for field {field}")
