"""
ABI value codec.

Encodes typed call arguments into the contract ABI byte layout and decodes
return data back into typed values. Values are held in small immutable
wrappers (``IntValue``, ``AddressValue``, ...) so a decoded result carries
its shape; plain Python values are accepted on the encode side and
converted according to the declared type.

The byte layout itself (head/tail words, offsets, padding) is produced and
checked by eth-abi. This module maps TRON addresses to and from their
20-byte account id, decodes strings as UTF-8 itself and adds the lenient
inline-string form some older token contracts return.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence, Union

import eth_abi
from eth_abi import exceptions as eth_abi_exceptions
from eth_hash.auto import keccak

from ..sigil.address import Address, AddressError
from ..utils import decode_hex_or_base64
from .abi_types import (
    WORD_SIZE,
    AbiError,
    AbiType,
    AddressType,
    ArrayType,
    BoolType,
    BytesType,
    FixedBytesType,
    IntType,
    StringType,
    head_size,
    is_dynamic,
    parse_type,
)

SELECTOR_LENGTH = 4


class TypeMismatchError(AbiError):
    pass


class EncodingError(AbiError):
    pass


class DecodingError(AbiError):
    pass


class TruncatedDataError(DecodingError):
    pass


class InvalidEncodingError(DecodingError):
    pass


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IntValue:
    value: int

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True)
class BoolValue:
    value: bool

    def to_python(self) -> bool:
        return self.value


@dataclass(frozen=True)
class AddressValue:
    value: Address

    def to_python(self) -> Address:
        return self.value


@dataclass(frozen=True)
class BytesValue:
    value: bytes

    def to_python(self) -> bytes:
        return self.value


@dataclass(frozen=True)
class StringValue:
    value: str

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class ArrayValue:
    items: tuple["AbiValue", ...]

    def to_python(self) -> list[Any]:
        return [item.to_python() for item in self.items]

    def __len__(self) -> int:
        return len(self.items)


AbiValue = Union[IntValue, BoolValue, AddressValue, BytesValue, StringValue, ArrayValue]

_VALUE_CLASSES = (IntValue, BoolValue, AddressValue, BytesValue, StringValue, ArrayValue)


# ---------------------------------------------------------------------------
# Coercion: raw Python input -> AbiValue matching the declared type
# ---------------------------------------------------------------------------

def _parse_int_text(text: str) -> int:
    text = text.strip()
    try:
        if text[:2] in ("0x", "0X"):
            return int(text[2:], 16)
        return int(text, 10)
    except ValueError as exc:
        raise EncodingError(f"Not a decimal or 0x-hex integer: {text!r}") from exc


def _coerce_bytes(abi_type: Union[FixedBytesType, BytesType], raw: Any) -> BytesValue:
    if isinstance(raw, BytesValue):
        data = raw.value
    elif isinstance(raw, (bytes, bytearray, memoryview)):
        data = bytes(raw)
    elif isinstance(raw, str):
        try:
            data = decode_hex_or_base64(raw)
        except ValueError as exc:
            raise EncodingError(f"Cannot decode {abi_type.canonical} value {raw!r}") from exc
    else:
        raise TypeMismatchError(f"Expected bytes for {abi_type.canonical}, got {type(raw).__name__}")

    if isinstance(abi_type, FixedBytesType) and len(data) != abi_type.size:
        raise EncodingError(f"Invalid size for {abi_type.canonical}: got {len(data)} bytes")
    return BytesValue(data)


def coerce_value(abi_type: AbiType, raw: Any) -> AbiValue:
    """
    Convert ``raw`` into the value wrapper for ``abi_type``.

    Accepted conversions: decimal or ``0x`` text to integers, hex or base64
    text to bytes, Base58/hex text to addresses, any non-text sequence to
    arrays. An ``AbiValue`` of the matching variant is passed through.

    Raises:
        TypeMismatchError: If the value's shape does not fit the type.
        EncodingError: If a text conversion fails or an integer is out of range.
    """
    if isinstance(abi_type, IntType):
        if isinstance(raw, IntValue):
            value = raw.value
        elif isinstance(raw, bool) or not isinstance(raw, (int, str)):
            raise TypeMismatchError(f"Expected integer for {abi_type.canonical}, got {raw!r}")
        elif isinstance(raw, str):
            value = _parse_int_text(raw)
        else:
            value = raw
        if not abi_type.min_value <= value <= abi_type.max_value:
            raise EncodingError(f"Value {value} out of range for {abi_type.canonical}")
        return IntValue(value)

    if isinstance(abi_type, BoolType):
        if isinstance(raw, BoolValue):
            return raw
        if not isinstance(raw, bool):
            raise TypeMismatchError(f"Expected bool, got {raw!r}")
        return BoolValue(raw)

    if isinstance(abi_type, AddressType):
        if isinstance(raw, AddressValue):
            return raw
        if isinstance(raw, Address):
            return AddressValue(raw)
        if isinstance(raw, str):
            try:
                return AddressValue(Address.parse(raw))
            except AddressError as exc:
                raise EncodingError(f"Invalid address {raw!r}: {exc}") from exc
        raise TypeMismatchError(f"Expected address, got {type(raw).__name__}")

    if isinstance(abi_type, (FixedBytesType, BytesType)):
        return _coerce_bytes(abi_type, raw)

    if isinstance(abi_type, StringType):
        if isinstance(raw, StringValue):
            return raw
        if isinstance(raw, str):
            return StringValue(raw)
        raise TypeMismatchError(f"Expected string, got {type(raw).__name__}")

    if isinstance(abi_type, ArrayType):
        if isinstance(raw, ArrayValue):
            items: Sequence[Any] = raw.items
        elif isinstance(raw, (str, bytes, bytearray)) or not isinstance(raw, (list, tuple)):
            raise TypeMismatchError(f"Expected sequence for {abi_type.canonical}, got {type(raw).__name__}")
        else:
            items = raw
        if abi_type.length is not None and len(items) != abi_type.length:
            raise TypeMismatchError(
                f"{abi_type.canonical} needs {abi_type.length} items, got {len(items)}"
            )
        return ArrayValue(tuple(coerce_value(abi_type.element, item) for item in items))

    raise TypeMismatchError(f"Unsupported ABI type: {abi_type!r}")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def _to_wire(value: AbiValue) -> Any:
    """Plain value in the form eth-abi expects; addresses go in as their 20-byte account id."""
    if isinstance(value, AddressValue):
        return "0x" + value.value.account_id.hex()
    if isinstance(value, ArrayValue):
        return [_to_wire(item) for item in value.items]
    return value.value


def encode_arguments(params: Iterable[tuple[Union[str, AbiType], Any]]) -> bytes:
    """
    ABI-encode an ordered argument list.

    Args:
        params: ``(type, value)`` pairs; the type is a descriptor string or a
            parsed type, the value an ``AbiValue`` or a convertible Python value.

    Returns:
        The encoded argument tuple (no selector).

    Raises:
        TypeMismatchError: If a value's shape does not fit its type.
        EncodingError: If a value cannot be represented in its type.
    """
    types: list[AbiType] = []
    values: list[AbiValue] = []
    for descriptor, raw in params:
        abi_type = parse_type(descriptor) if isinstance(descriptor, str) else descriptor
        types.append(abi_type)
        values.append(coerce_value(abi_type, raw))

    try:
        return eth_abi.encode([t.canonical for t in types], [_to_wire(v) for v in values])
    except eth_abi_exceptions.EncodingError as exc:
        raise EncodingError(str(exc)) from exc


def method_selector(signature: str) -> bytes:
    """First 4 bytes of Keccak-256 over the signature text, e.g. ``transfer(address,uint256)``."""
    # Keccak-256, not NIST SHA3-256.
    return keccak(signature.encode("utf-8"))[:SELECTOR_LENGTH]


def encode_call(signature: str, params: Iterable[tuple[Union[str, AbiType], Any]] = ()) -> bytes:
    """Selector followed by the encoded arguments."""
    return method_selector(signature) + encode_arguments(params)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

# A head holding one offset that points right behind itself.
_TAIL_POINTER = WORD_SIZE.to_bytes(WORD_SIZE, "big")


def _wire_name(abi_type: AbiType) -> str:
    """Descriptor handed to eth-abi. Strings share the ``bytes`` layout and are decoded here."""
    if isinstance(abi_type, StringType):
        return "bytes"
    if isinstance(abi_type, ArrayType):
        suffix = "" if abi_type.length is None else str(abi_type.length)
        return f"{_wire_name(abi_type.element)}[{suffix}]"
    return abi_type.canonical


def _decode_utf8(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidEncodingError("String is not valid UTF-8") from exc


def _decode_inline_string(word: bytes) -> StringValue:
    nul = word.find(b"\x00")
    if nul >= 0:
        word = word[:nul]
    return StringValue(_decode_utf8(word))


def _wrap(abi_type: AbiType, raw: Any) -> AbiValue:
    """Turn an eth-abi result back into the value wrapper for ``abi_type``."""
    if isinstance(abi_type, IntType):
        return IntValue(raw)
    if isinstance(abi_type, BoolType):
        return BoolValue(raw)
    if isinstance(abi_type, AddressType):
        # eth-abi returns the checksummed 0x form of the 20-byte account id
        return AddressValue(Address.from_account_id(bytes.fromhex(raw[2:])))
    if isinstance(abi_type, StringType):
        return StringValue(_decode_utf8(bytes(raw)))
    if isinstance(abi_type, (FixedBytesType, BytesType)):
        return BytesValue(bytes(raw))
    if isinstance(abi_type, ArrayType):
        return ArrayValue(tuple(_wrap(abi_type.element, item) for item in raw))
    raise InvalidEncodingError(f"Unsupported ABI type: {abi_type!r}")


def _eth_decode(types: Sequence[AbiType], data: bytes) -> list[AbiValue]:
    try:
        raw = eth_abi.decode([_wire_name(t) for t in types], data)
    except eth_abi_exceptions.InsufficientDataBytes as exc:
        raise TruncatedDataError(str(exc)) from exc
    except eth_abi_exceptions.DecodingError as exc:
        # NonEmptyPaddingBytes, InvalidPointer and friends
        raise InvalidEncodingError(str(exc)) from exc
    return [_wrap(t, value) for t, value in zip(types, raw)]


def decode_result(
    abi_type: Union[str, AbiType],
    data: bytes,
    offset: int = 0,
    lenient_strings: bool = False,
) -> AbiValue:
    """
    Decode one value whose head slot starts at ``offset``.

    Offsets stored in the head of a dynamic value are taken relative to the
    start of ``data``, i.e. ``data`` is the whole return tuple.

    Args:
        abi_type: Descriptor string or parsed type.
        data: Raw return data.
        offset: Position of the value's head slot.
        lenient_strings: Accept a ``string`` packed inline in a single
            32-byte word (NUL-terminated), as some older token contracts
            return for ``name()``/``symbol()``.

    Raises:
        TruncatedDataError: If a read runs past the end of ``data``.
        InvalidEncodingError: If the bytes are not a valid encoding.
    """
    parsed = parse_type(abi_type) if isinstance(abi_type, str) else abi_type
    data = bytes(data)
    if offset < 0 or offset > len(data):
        raise TruncatedDataError(f"Offset {offset} is outside {len(data)} bytes of data")

    if lenient_strings and isinstance(parsed, StringType) and len(data) - offset == WORD_SIZE:
        return _decode_inline_string(data[offset:])

    if not is_dynamic(parsed):
        return _eth_decode([parsed], data[offset:])[0]

    pointer = _eth_decode([IntType(256)], data[offset:offset + WORD_SIZE])[0].value
    if pointer > len(data):
        raise TruncatedDataError(f"Offset {pointer} points past the end of {len(data)} bytes")
    return _eth_decode([parsed], _TAIL_POINTER + data[pointer:])[0]


def decode_arguments(
    types: Sequence[Union[str, AbiType]],
    data: bytes,
    lenient_strings: bool = False,
) -> list[AbiValue]:
    """Decode a whole argument or return tuple."""
    parsed = [parse_type(t) if isinstance(t, str) else t for t in types]
    data = bytes(data)

    # Only the last head slot can have exactly one word behind it.
    if lenient_strings and parsed and isinstance(parsed[-1], StringType):
        last = sum(head_size(t) for t in parsed[:-1])
        if len(data) - last == WORD_SIZE:
            head = _eth_decode(parsed[:-1], data) if len(parsed) > 1 else []
            return head + [_decode_inline_string(data[last:])]

    return _eth_decode(parsed, data)


def split_call_data(call_data: bytes) -> tuple[bytes, bytes]:
    """Split call data into ``(selector, encoded arguments)``."""
    if len(call_data) < SELECTOR_LENGTH:
        raise TruncatedDataError(f"Call data shorter than a selector: {len(call_data)} bytes")
    return call_data[:SELECTOR_LENGTH], call_data[SELECTOR_LENGTH:]
