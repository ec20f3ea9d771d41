"""
TRON account addresses.

An address is 21 bytes: the network prefix ``0x41`` followed by the last
20 bytes of the Keccak-256 hash of the account's uncompressed public key.

Two text forms are supported:
- hex, ``0x``-prefixed (``0x41a614f8...``)
- Base58Check (``TR7NHqje...``): the 21 bytes plus the first 4 bytes of
  SHA-256(SHA-256(address)), encoded with the Bitcoin alphabet.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import base58
from eth_hash.auto import keccak

from ..utils import double_sha256, hex_to_bytes, strip_0x

ADDRESS_LENGTH = 21
ACCOUNT_ID_LENGTH = 20
CHECKSUM_LENGTH = 4
ADDRESS_PREFIX = 0x41

_HEX_ADDRESS_RE = re.compile(r"^(0[xX])?[0-9a-fA-F]{42}$")


class AddressError(ValueError):
    exit_code: int = 2


class InvalidChecksumError(AddressError):
    pass


class InvalidLengthError(AddressError):
    pass


class InvalidCharacterError(AddressError):
    pass


class InvalidHexError(AddressError):
    pass


def _checksum(payload: bytes) -> bytes:
    return double_sha256(payload)[:CHECKSUM_LENGTH]


@dataclass(frozen=True)
class Address:
    """A 21-byte TRON address. ``str()`` gives the Base58Check form."""

    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError(f"Address expects bytes, got {type(self.raw).__name__}")
        if len(self.raw) != ADDRESS_LENGTH:
            raise InvalidLengthError(
                f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.raw)}"
            )
        object.__setattr__(self, "raw", bytes(self.raw))

    # ---------------------------------------------------------------
    # Constructors
    # ---------------------------------------------------------------

    @classmethod
    def from_account_id(cls, account_id: bytes) -> "Address":
        if len(account_id) != ACCOUNT_ID_LENGTH:
            raise InvalidLengthError(
                f"Account id must be {ACCOUNT_ID_LENGTH} bytes, got {len(account_id)}"
            )
        return cls(bytes([ADDRESS_PREFIX]) + bytes(account_id))

    @classmethod
    def from_public_key(cls, public_key: bytes) -> "Address":
        """Derive the address of a secp256k1 public key.

        Accepts the 64-byte ``x || y`` form or the 65-byte ``0x04``-prefixed
        uncompressed form.
        """
        if len(public_key) == 65 and public_key[0] == 0x04:
            public_key = public_key[1:]
        if len(public_key) != 64:
            raise InvalidLengthError(
                f"Uncompressed public key must be 64 bytes, got {len(public_key)}"
            )
        return cls.from_account_id(keccak(bytes(public_key))[-ACCOUNT_ID_LENGTH:])

    @classmethod
    def from_base58(cls, text: str) -> "Address":
        try:
            decoded = base58.b58decode(text)
        except ValueError as exc:
            raise InvalidCharacterError(f"Invalid Base58 address {text!r}: {exc}") from exc

        # Checksum before length, so any typo reads as a checksum mismatch.
        if len(decoded) > CHECKSUM_LENGTH:
            payload, checksum = decoded[:-CHECKSUM_LENGTH], decoded[-CHECKSUM_LENGTH:]
            if _checksum(payload) != checksum:
                raise InvalidChecksumError(f"Checksum mismatch for address {text!r}")

        if len(decoded) != ADDRESS_LENGTH + CHECKSUM_LENGTH:
            raise InvalidLengthError(
                f"Base58 address {text!r} decodes to {len(decoded)} bytes, "
                f"expected {ADDRESS_LENGTH + CHECKSUM_LENGTH}"
            )
        return cls(decoded[:ADDRESS_LENGTH])

    @classmethod
    def from_hex(cls, text: str) -> "Address":
        try:
            raw = hex_to_bytes(text)
        except ValueError as exc:
            raise InvalidHexError(f"Invalid hex address {text!r}") from exc
        return cls(raw)

    @classmethod
    def from_trailing_bytes(cls, data: bytes) -> "Address":
        """Build an address from the last 20 bytes of an ABI word.

        Bytes before the last 20 are ignored, not checked for zero.
        """
        if len(data) < ACCOUNT_ID_LENGTH:
            raise InvalidLengthError(
                f"Need at least {ACCOUNT_ID_LENGTH} bytes, got {len(data)}"
            )
        return cls.from_account_id(data[-ACCOUNT_ID_LENGTH:])

    @classmethod
    def parse(cls, text: str) -> "Address":
        """Accept either text form: hex (42 digits, optional ``0x``) or Base58Check."""
        text = text.strip()
        if _HEX_ADDRESS_RE.match(text):
            return cls.from_hex(text)
        if text.startswith(("0x", "0X")):
            return cls.from_hex(text)
        return cls.from_base58(text)

    # ---------------------------------------------------------------
    # Encodings
    # ---------------------------------------------------------------

    @property
    def account_id(self) -> bytes:
        return self.raw[1:]

    def to_hex(self) -> str:
        return "0x" + self.raw.hex()

    def to_base58(self) -> str:
        if self.raw[0] == 0:
            # Historical rendering: the big-endian integer value in decimal.
            return str(int.from_bytes(self.raw, "big"))
        return base58.b58encode(self.raw + _checksum(self.raw)).decode("ascii")

    def to_abi_word(self) -> bytes:
        """The 32-byte ABI form: 12 zero bytes then the 20-byte account id."""
        return bytes(12) + self.account_id

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.to_base58()

    def __repr__(self) -> str:
        return f"Address({self.to_base58()!r})"


ZERO_ADDRESS = Address(bytes([ADDRESS_PREFIX]) + bytes(ACCOUNT_ID_LENGTH))


def is_valid_address(text: str) -> bool:
    try:
        Address.parse(text)
    except AddressError:
        return False
    return True


def node_hex(address: Address) -> str:
    """Hex form without ``0x``, as the node HTTP API expects with ``visible=false``."""
    return strip_0x(address.to_hex())
