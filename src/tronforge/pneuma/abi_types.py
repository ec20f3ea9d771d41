"""
ABI type descriptors.

Parses Solidity-style type strings (``address``, ``uint256``, ``bytes32``,
``string[]``, ``uint8[3][]``) into immutable type objects and classifies
them as static (encoded in place) or dynamic (encoded through an offset).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Union

WORD_SIZE = 32


class AbiError(ValueError):
    exit_code: int = 3


class UnknownTypeError(AbiError):
    pass


@dataclass(frozen=True)
class IntType:
    bits: int = 256
    signed: bool = False

    def __post_init__(self) -> None:
        if not (8 <= self.bits <= 256 and self.bits % 8 == 0):
            raise UnknownTypeError(f"Invalid integer width: {self.bits}")

    @property
    def canonical(self) -> str:
        return f"{'int' if self.signed else 'uint'}{self.bits}"

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1


@dataclass(frozen=True)
class AddressType:
    @property
    def canonical(self) -> str:
        return "address"


@dataclass(frozen=True)
class BoolType:
    @property
    def canonical(self) -> str:
        return "bool"


@dataclass(frozen=True)
class FixedBytesType:
    size: int

    def __post_init__(self) -> None:
        if not 1 <= self.size <= WORD_SIZE:
            raise UnknownTypeError(f"Invalid fixed bytes size: {self.size}")

    @property
    def canonical(self) -> str:
        return f"bytes{self.size}"


@dataclass(frozen=True)
class BytesType:
    @property
    def canonical(self) -> str:
        return "bytes"


@dataclass(frozen=True)
class StringType:
    @property
    def canonical(self) -> str:
        return "string"


@dataclass(frozen=True)
class ArrayType:
    """``element[length]``, or ``element[]`` when ``length`` is None."""

    element: "AbiType"
    length: Optional[int] = None

    def __post_init__(self) -> None:
        if self.length is not None and self.length < 1:
            raise UnknownTypeError(f"Invalid array length: {self.length}")

    @property
    def canonical(self) -> str:
        suffix = "" if self.length is None else str(self.length)
        return f"{self.element.canonical}[{suffix}]"


AbiType = Union[IntType, AddressType, BoolType, FixedBytesType, BytesType, StringType, ArrayType]

_BASE_RE = re.compile(r"^(uint|int|bytes)(\d*)$")
_SUFFIX_RE = re.compile(r"\[(\d*)\]")


def _parse_base(name: str) -> AbiType:
    if name == "address":
        return AddressType()
    if name == "bool":
        return BoolType()
    if name == "string":
        return StringType()

    match = _BASE_RE.match(name)
    if match is None:
        raise UnknownTypeError(f"Unknown ABI type: {name!r}")
    kind, digits = match.groups()
    if digits.startswith("0"):
        raise UnknownTypeError(f"Unknown ABI type: {name!r}")

    if kind == "bytes":
        return BytesType() if not digits else FixedBytesType(int(digits))
    bits = int(digits) if digits else 256
    return IntType(bits=bits, signed=(kind == "int"))


@lru_cache(maxsize=256)
def parse_type(descriptor: str) -> AbiType:
    """
    Parse a type descriptor.

    Args:
        descriptor: e.g. ``"address"``, ``"uint"``, ``"bytes32"``, ``"string[2][]"``

    Returns:
        The parsed type. ``uint``/``int`` default to 256 bits.

    Raises:
        UnknownTypeError: If the descriptor does not match the grammar.
    """
    if not isinstance(descriptor, str):
        raise UnknownTypeError(f"Type descriptor must be a string, got {descriptor!r}")

    bracket = descriptor.find("[")
    base, suffixes = (descriptor, "") if bracket < 0 else (descriptor[:bracket], descriptor[bracket:])

    abi_type = _parse_base(base)

    pos = 0
    while pos < len(suffixes):
        match = _SUFFIX_RE.match(suffixes, pos)
        if match is None:
            raise UnknownTypeError(f"Unknown ABI type: {descriptor!r}")
        size = match.group(1)
        if size.startswith("0"):
            raise UnknownTypeError(f"Invalid array length in {descriptor!r}")
        abi_type = ArrayType(abi_type, int(size) if size else None)
        pos = match.end()

    return abi_type


def is_dynamic(abi_type: AbiType) -> bool:
    if isinstance(abi_type, (BytesType, StringType)):
        return True
    if isinstance(abi_type, ArrayType):
        return abi_type.length is None or is_dynamic(abi_type.element)
    return False


def head_size(abi_type: AbiType) -> int:
    """Bytes the type occupies in the head of an enclosing tuple."""
    if isinstance(abi_type, ArrayType) and not is_dynamic(abi_type):
        return abi_type.length * head_size(abi_type.element)
    return WORD_SIZE


def function_signature(name: str, types: list[Union[str, AbiType]]) -> str:
    """Build ``name(type1,type2)`` with canonical widths (``uint`` becomes ``uint256``)."""
    parsed = [parse_type(t) if isinstance(t, str) else t for t in types]
    return f"{name}({','.join(t.canonical for t in parsed)})"


_SIGNATURE_RE = re.compile(r"^([A-Za-z_$][A-Za-z0-9_$]*)\((.*)\)$")


def parse_signature(signature: str) -> tuple[str, list[AbiType]]:
    """
    Split ``name(type1,type2)`` into the name and parsed argument types.

    Raises:
        UnknownTypeError: If the text is not a signature or a type is unknown.
    """
    match = _SIGNATURE_RE.match(signature.strip())
    if match is None:
        raise UnknownTypeError(f"Not a method signature: {signature!r}")
    name, args = match.groups()
    types = [parse_type(part.strip()) for part in args.split(",")] if args.strip() else []
    return name, types
