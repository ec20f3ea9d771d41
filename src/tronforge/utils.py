from __future__ import annotations

import base64
import binascii
import hashlib
import re

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]*")


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def double_sha256(data: bytes) -> bytes:
    return sha256(sha256(data))


def has_0x_prefix(value: str) -> bool:
    return len(value) >= 2 and value[0] == "0" and value[1] in "xX"


def strip_0x(value: str) -> str:
    return value[2:] if has_0x_prefix(value) else value


def hex_to_bytes(value: str) -> bytes:
    """Decode hex text, tolerating a ``0x`` prefix and an odd digit count.

    Raises:
        ValueError: If the text contains non-hex characters.
    """
    digits = strip_0x(value)
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"Not a hex string: {value!r}")
    if len(digits) % 2 == 1:
        digits = "0" + digits
    return bytes.fromhex(digits)


def bytes_to_hex(data: bytes, prefix: bool = True) -> str:
    return ("0x" if prefix else "") + data.hex()


def decode_hex_or_base64(value: str) -> bytes:
    """Decode byte text as hex first, then as standard base64.

    Raises:
        ValueError: If neither decoding accepts the text.
    """
    digits = strip_0x(value)
    if len(digits) % 2 == 0 and _HEX_DIGITS.fullmatch(digits):
        return bytes.fromhex(digits)
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Not hex or base64: {value!r}") from exc


def decode_node_message(message: str) -> str:
    """Node result messages are usually hex-encoded UTF-8; plain text passes through."""
    try:
        return bytes.fromhex(message).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return message
