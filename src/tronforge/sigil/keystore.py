"""
secp256k1 key management.

A ``KeyStore`` holds one private key and signs 32-byte transaction hashes
with it. The signature is the 65-byte recoverable form ``r || s || v``
with ``v`` in {0, 1}, which is what the node expects in
``Transaction.signature``.

Keys are stored in ~/.tronforge/.env as PRIVATE_KEY (hex format).
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, set_key
from eth_account import Account
from eth_keys import keys

from .address import Address

TRONFORGE_DIR = Path.home() / ".tronforge"
TRONFORGE_ENV = TRONFORGE_DIR / ".env"

HASH_LENGTH = 32
PRIVATE_KEY_VAR = "PRIVATE_KEY"


class SigningError(ValueError):
    exit_code: int = 4


class KeyStore:
    """Owns a private key; exposes only its address and a sign operation."""

    __slots__ = ("_key", "_address")

    def __init__(self, private_key: keys.PrivateKey) -> None:
        self._key = private_key
        self._address = Address.from_public_key(private_key.public_key.to_bytes())

    @classmethod
    def from_private_key(cls, private_key: str) -> "KeyStore":
        """
        Load a key from hex text.

        Args:
            private_key: 32-byte key as hex, with or without ``0x``.

        Raises:
            ValueError: If the text is not a valid secp256k1 private key.
        """
        try:
            account = Account.from_key(private_key)
        except Exception as exc:
            raise ValueError("Invalid private key") from exc
        return cls(keys.PrivateKey(bytes(account.key)))

    @classmethod
    def generate(cls) -> "KeyStore":
        return cls.from_private_key("0x" + secrets.token_hex(32))

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "KeyStore":
        return cls.from_private_key(load_private_key(env_path))

    @property
    def address(self) -> Address:
        return self._address

    @property
    def public_key(self) -> bytes:
        """Uncompressed public key, 64 bytes (``x || y``)."""
        return self._key.public_key.to_bytes()

    def sign(self, message_hash: bytes) -> bytes:
        """
        Sign a 32-byte hash.

        Returns:
            65-byte signature ``r || s || v``.

        Raises:
            SigningError: If the hash is not 32 bytes or the backend fails.
        """
        if not isinstance(message_hash, (bytes, bytearray)) or len(message_hash) != HASH_LENGTH:
            size = len(message_hash) if isinstance(message_hash, (bytes, bytearray)) else "?"
            raise SigningError(f"Hash must be {HASH_LENGTH} bytes, got {size}")
        try:
            signature = self._key.sign_msg_hash(bytes(message_hash))
        except Exception as exc:
            raise SigningError("Signing failed") from exc
        return signature.to_bytes()

    def verify(self, message_hash: bytes, signature: bytes) -> bool:
        """Check that ``signature`` over ``message_hash`` recovers to this key's address."""
        return recover_address(message_hash, signature) == self._address

    def __repr__(self) -> str:
        return f"KeyStore(address={self._address.to_base58()!r})"


def recover_address(message_hash: bytes, signature: bytes) -> Address:
    """Recover the signer address from a 65-byte recoverable signature.

    Raises:
        SigningError: If the signature is malformed.
    """
    try:
        sig = keys.Signature(signature_bytes=bytes(signature))
        public_key = sig.recover_public_key_from_msg_hash(bytes(message_hash))
    except Exception as exc:
        raise SigningError("Cannot recover signer from signature") from exc
    return Address.from_public_key(public_key.to_bytes())


def save_private_key(private_key: str, env_path: Optional[Path] = None) -> Path:
    """
    Store PRIVATE_KEY in a .env file, keeping the file's other settings.

    The key is checked first and written in its 0x-prefixed lowercase form,
    so a typo never reaches disk.

    Args:
        private_key: Hex private key, with or without ``0x``
        env_path: Path to .env file (default: ~/.tronforge/.env)

    Returns:
        Path to the saved .env file

    Raises:
        ValueError: If the key is not a valid secp256k1 private key
    """
    key_hex = KeyStore.from_private_key(private_key)._key.to_hex()

    env_path = env_path or TRONFORGE_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(exist_ok=True)
    set_key(env_path, PRIVATE_KEY_VAR, key_hex, quote_mode="never")

    # Set secure permissions on Unix
    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Read PRIVATE_KEY from the .env file, falling back to the environment.

    Args:
        env_path: Path to .env file (default: ~/.tronforge/.env)

    Returns:
        0x-prefixed hex private key

    Raises:
        ValueError: If PRIVATE_KEY is not set or is not a valid key
    """
    env_path = env_path or TRONFORGE_ENV

    private_key = None
    if env_path.exists():
        private_key = dotenv_values(env_path).get(PRIVATE_KEY_VAR)
    if not private_key:
        private_key = os.environ.get(PRIVATE_KEY_VAR)
    if not private_key:
        raise ValueError(
            f"PRIVATE_KEY not found. Run 'tronforge keygen' or set "
            f"PRIVATE_KEY in {env_path}"
        )

    try:
        return KeyStore.from_private_key(private_key.strip())._key.to_hex()
    except ValueError as exc:
        raise ValueError(f"PRIVATE_KEY in {env_path} is not a valid private key") from exc
