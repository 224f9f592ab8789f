"""Unit tests for varint and protobuf field helpers."""

from __future__ import annotations

import pytest

from carforge.core.wire import (
    WIRE_LEN,
    WIRE_VARINT,
    bytes_field,
    encode_varint,
    iter_fields,
    read_varint,
    varint_field,
)


class TestVarint:
    def test_encode(self):
        assert encode_varint(0) == b"\x00"
        assert encode_varint(127) == b"\x7f"
        assert encode_varint(300) == b"\xac\x02"

    def test_read_at_offset(self):
        assert read_varint(b"\xff\xac\x02\x01", 1) == (300, 3)

    def test_read_past_end(self):
        with pytest.raises(ValueError, match="end of data"):
            read_varint(b"\x01", 1)


class TestFields:
    def test_field_encoding(self):
        assert varint_field(1, 1) == b"\x08\x01"
        assert bytes_field(1, b"\x08\x01") == b"\x0a\x02\x08\x01"

    def test_iter_fields_in_order(self):
        data = bytes_field(2, b"link") + varint_field(3, 5) + bytes_field(1, b"")
        assert list(iter_fields(data)) == [
            (2, WIRE_LEN, b"link"),
            (3, WIRE_VARINT, 5),
            (1, WIRE_LEN, b""),
        ]

    def test_length_overrun(self):
        with pytest.raises(ValueError, match="declares"):
            list(iter_fields(b"\x0a\x05ab"))

    def test_field_zero(self):
        with pytest.raises(ValueError, match="field number 0"):
            list(iter_fields(b"\x00\x01"))

    def test_unsupported_wire_type(self):
        # field 1, wire type 5 (fixed32)
        with pytest.raises(ValueError, match="wire type"):
            list(iter_fields(b"\x0d\x00\x00\x00\x00"))

    def test_truncated(self):
        with pytest.raises(ValueError, match="Truncated"):
            read_varint(b"\x01\x80", 1)
