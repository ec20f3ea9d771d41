"""
Minimal protobuf wire-format reader/writer.

The node hands back transactions as serialized ``Transaction.raw`` messages.
Changing the fee limit or the call data means editing those bytes and
re-serializing them canonically (fields in ascending number order) before
the transaction id can be recomputed. Only the wire format is handled
here; field meanings live in ``tx.py``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

VARINT = 0
FIXED64 = 1
LENGTH_DELIMITED = 2
FIXED32 = 5

_UINT64_MASK = (1 << 64) - 1


class WireFormatError(ValueError):
    exit_code: int = 3


@dataclass(frozen=True)
class Field:
    number: int
    wire_type: int
    value: Union[int, bytes]


def encode_varint(value: int) -> bytes:
    """Unsigned LEB128. Negative values are written as 64-bit two's complement (int64)."""
    value &= _UINT64_MASK
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, pos: int) -> tuple[int, int]:
    """Read a varint at ``pos``. Returns ``(value, new_pos)``."""
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise WireFormatError("Truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7
        if shift >= 70:
            raise WireFormatError("Varint too long")


def to_int64(value: int) -> int:
    value &= _UINT64_MASK
    return value - (1 << 64) if value >> 63 else value


def parse_fields(data: bytes) -> list[Field]:
    fields: list[Field] = []
    pos = 0
    while pos < len(data):
        key, pos = decode_varint(data, pos)
        number, wire_type = key >> 3, key & 0x07
        if number == 0:
            raise WireFormatError("Field number 0 is invalid")

        if wire_type == VARINT:
            value, pos = decode_varint(data, pos)
            fields.append(Field(number, wire_type, value))
        elif wire_type == LENGTH_DELIMITED:
            length, pos = decode_varint(data, pos)
            if pos + length > len(data):
                raise WireFormatError(f"Field {number} overruns the message")
            fields.append(Field(number, wire_type, data[pos:pos + length]))
            pos += length
        elif wire_type in (FIXED64, FIXED32):
            size = 8 if wire_type == FIXED64 else 4
            if pos + size > len(data):
                raise WireFormatError(f"Field {number} overruns the message")
            fields.append(Field(number, wire_type, data[pos:pos + size]))
            pos += size
        else:
            raise WireFormatError(f"Unsupported wire type {wire_type} for field {number}")
    return fields


def serialize_fields(fields: list[Field]) -> bytes:
    """Serialize fields ordered by field number; repeated fields keep their relative order."""
    out = bytearray()
    for f in sorted(fields, key=lambda f: f.number):
        out += encode_varint((f.number << 3) | f.wire_type)
        if f.wire_type == VARINT:
            out += encode_varint(int(f.value))
        elif f.wire_type == LENGTH_DELIMITED:
            out += encode_varint(len(f.value)) + bytes(f.value)
        else:
            out += bytes(f.value)
    return bytes(out)


def get_field(fields: list[Field], number: int) -> Optional[Field]:
    for f in fields:
        if f.number == number:
            return f
    return None


def set_field(fields: list[Field], number: int, wire_type: int, value: Union[int, bytes]) -> list[Field]:
    """Replace every occurrence of ``number`` with a single field, appending it if absent."""
    kept = [f for f in fields if f.number != number]
    kept.append(Field(number, wire_type, value))
    return kept


def replace_first(fields: list[Field], number: int, value: bytes) -> list[Field]:
    """Replace the payload of the first length-delimited ``number`` field, keeping the rest."""
    out = list(fields)
    for i, f in enumerate(out):
        if f.number == number:
            out[i] = Field(number, LENGTH_DELIMITED, value)
            return out
    raise WireFormatError(f"Field {number} not present")


def length_delimited(number: int, value: bytes) -> bytes:
    return encode_varint((number << 3) | LENGTH_DELIMITED) + encode_varint(len(value)) + value
