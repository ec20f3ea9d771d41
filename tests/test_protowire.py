"""Tests for the protobuf wire-format helpers."""

from __future__ import annotations

import pytest

from tronforge.pneuma import protowire as pw


class TestVarint:
    """LEB128 varints."""

    @pytest.mark.parametrize(
        "value, encoded",
        [(0, "00"), (1, "01"), (127, "7f"), (128, "8001"), (300, "ac02"), (30_000_000, "8087a70e")],
    )
    def test_encode(self, value: int, encoded: str) -> None:
        assert pw.encode_varint(value).hex() == encoded

    def test_decode_returns_new_position(self) -> None:
        assert pw.decode_varint(bytes.fromhex("ffac0201"), 1) == (300, 3)

    def test_negative_is_int64(self) -> None:
        encoded = pw.encode_varint(-1)
        assert len(encoded) == 10
        value, _ = pw.decode_varint(encoded, 0)
        assert pw.to_int64(value) == -1

    def test_truncated(self) -> None:
        with pytest.raises(pw.WireFormatError):
            pw.decode_varint(b"\x80", 0)


class TestFields:
    """Field parsing and serialization."""

    def test_parse(self) -> None:
        data = bytes.fromhex("0801") + bytes.fromhex("1203616263") + bytes.fromhex("9001ac02")
        fields = pw.parse_fields(data)
        assert fields == [
            pw.Field(1, pw.VARINT, 1),
            pw.Field(2, pw.LENGTH_DELIMITED, b"abc"),
            pw.Field(18, pw.VARINT, 300),
        ]

    def test_fixed_width(self) -> None:
        data = bytes.fromhex("0d01020304") + bytes.fromhex("110102030405060708")
        fields = pw.parse_fields(data)
        assert fields[0] == pw.Field(1, pw.FIXED32, bytes.fromhex("01020304"))
        assert fields[1] == pw.Field(2, pw.FIXED64, bytes.fromhex("0102030405060708"))
        assert pw.serialize_fields(fields) == data

    def test_serialize_sorts_by_number(self) -> None:
        fields = [pw.Field(3, pw.VARINT, 1), pw.Field(1, pw.VARINT, 2)]
        assert pw.serialize_fields(fields) == bytes.fromhex("08021801")

    def test_repeated_fields_keep_order(self) -> None:
        fields = [
            pw.Field(2, pw.LENGTH_DELIMITED, b"b"),
            pw.Field(1, pw.VARINT, 0),
            pw.Field(2, pw.LENGTH_DELIMITED, b"a"),
        ]
        out = pw.parse_fields(pw.serialize_fields(fields))
        assert [f.value for f in out] == [0, b"b", b"a"]

    def test_overrun(self) -> None:
        with pytest.raises(pw.WireFormatError):
            pw.parse_fields(bytes.fromhex("1205616263"))

    def test_field_zero(self) -> None:
        with pytest.raises(pw.WireFormatError):
            pw.parse_fields(bytes.fromhex("0001"))

    def test_unsupported_wire_type(self) -> None:
        with pytest.raises(pw.WireFormatError):
            pw.parse_fields(bytes.fromhex("0b"))


class TestEditing:
    """Field replacement helpers."""

    def test_set_field_replaces_all(self) -> None:
        fields = [pw.Field(5, pw.VARINT, 1), pw.Field(5, pw.VARINT, 2), pw.Field(1, pw.VARINT, 0)]
        out = pw.set_field(fields, 5, pw.VARINT, 9)
        assert [f for f in out if f.number == 5] == [pw.Field(5, pw.VARINT, 9)]

    def test_set_field_appends(self) -> None:
        out = pw.set_field([], 18, pw.VARINT, 100)
        assert pw.get_field(out, 18).value == 100

    def test_replace_first(self) -> None:
        fields = [pw.Field(11, pw.LENGTH_DELIMITED, b"x"), pw.Field(11, pw.LENGTH_DELIMITED, b"y")]
        out = pw.replace_first(fields, 11, b"z")
        assert [f.value for f in out] == [b"z", b"y"]

    def test_replace_first_missing(self) -> None:
        with pytest.raises(pw.WireFormatError):
            pw.replace_first([], 11, b"z")

    def test_length_delimited(self) -> None:
        assert pw.length_delimited(1, b"ab").hex() == "0a026162"
