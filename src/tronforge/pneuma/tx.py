"""
Transaction finalization - fee limit, call data, content hash, signatures.

The node returns an unsigned transaction as a serialized protobuf
``Transaction.raw`` message. Before broadcasting, the client may change the
fee limit or the call data, must recompute the content hash (SHA-256 over the
raw bytes, which is also the transaction id) and signs that hash.

``TransactionFinalizer`` enforces the order:

    DRAFT --compute_hash--> HASHED --sign--> SIGNED
      ^                       |
      +--attach_call_data-----+

A signed transaction cannot be edited; signing is refused until the hash
reflects the current payload.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..sigil.address import Address, AddressError
from ..sigil.keystore import KeyStore
from ..utils import sha256
from . import protowire as pw

logger = logging.getLogger(__name__)

# Transaction.raw
RAW_REF_BLOCK_BYTES = 1
RAW_REF_BLOCK_NUM = 3
RAW_REF_BLOCK_HASH = 4
RAW_EXPIRATION = 8
RAW_DATA = 10
RAW_CONTRACT = 11
RAW_TIMESTAMP = 14
RAW_FEE_LIMIT = 18

# Transaction.Contract
CONTRACT_TYPE = 1
CONTRACT_PARAMETER = 2

# google.protobuf.Any
ANY_TYPE_URL = 1
ANY_VALUE = 2

# TriggerSmartContract (owner_address is field 1 for every contract type)
OWNER_ADDRESS = 1
TRIGGER_CONTRACT_ADDRESS = 2
TRIGGER_CALL_VALUE = 3
TRIGGER_DATA = 4
TRIGGER_CALL_TOKEN_VALUE = 5
TRIGGER_TOKEN_ID = 6

# Transaction
TX_RAW_DATA = 1
TX_SIGNATURE = 2

TRANSFER_CONTRACT = 1
TRIGGER_SMART_CONTRACT = 31


class TransactionError(RuntimeError):
    exit_code: int = 5


class ImmutableAfterSignError(TransactionError):
    pass


class StaleHashError(TransactionError):
    pass


class FinalizerState(enum.Enum):
    DRAFT = "draft"
    HASHED = "hashed"
    SIGNED = "signed"


def _first_contract(raw_fields: list[pw.Field]) -> tuple[list[pw.Field], list[pw.Field]]:
    """Return ``(contract fields, parameter.value fields)`` of the first contract."""
    contract = pw.get_field(raw_fields, RAW_CONTRACT)
    if contract is None:
        raise TransactionError("Transaction has no contract")
    contract_fields = pw.parse_fields(contract.value)
    parameter = pw.get_field(contract_fields, CONTRACT_PARAMETER)
    if parameter is None:
        raise TransactionError("Contract has no parameter")
    value = pw.get_field(pw.parse_fields(parameter.value), ANY_VALUE)
    return contract_fields, pw.parse_fields(value.value) if value is not None else []


@dataclass
class UnsignedTransaction:
    """
    A transaction payload as produced by the node.

    ``raw_data`` is the serialized ``Transaction.raw`` message. ``txid`` is
    the content hash; it is undefined (None) until computed and must be
    recomputed after any change to ``raw_data``.
    """

    raw_data: bytes
    txid: Optional[bytes] = None
    signatures: list[bytes] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> "UnsignedTransaction":
        """Build from the node's JSON form (``raw_data_hex``; ``txID`` is not trusted)."""
        raw_hex = payload.get("raw_data_hex")
        if not raw_hex:
            raise TransactionError("Transaction JSON has no raw_data_hex")
        try:
            raw = bytes.fromhex(raw_hex)
        except ValueError as exc:
            raise TransactionError("raw_data_hex is not hex") from exc
        try:
            pw.parse_fields(raw)
        except pw.WireFormatError as exc:
            raise TransactionError(f"raw_data_hex is not a valid transaction: {exc}") from exc
        return cls(raw_data=raw)

    # -----------------------------------------------------------------
    # Read-only views of protocol fields
    # -----------------------------------------------------------------

    def _raw_fields(self) -> list[pw.Field]:
        return pw.parse_fields(self.raw_data)

    def _varint(self, number: int) -> int:
        f = pw.get_field(self._raw_fields(), number)
        return pw.to_int64(f.value) if f is not None else 0

    def _trigger_varint(self, number: int) -> int:
        if self.contract_type != TRIGGER_SMART_CONTRACT:
            return 0
        _, params = _first_contract(self._raw_fields())
        f = pw.get_field(params, number)
        return pw.to_int64(f.value) if f is not None else 0

    @property
    def fee_limit(self) -> int:
        return self._varint(RAW_FEE_LIMIT)

    @property
    def expiration(self) -> int:
        return self._varint(RAW_EXPIRATION)

    @property
    def timestamp(self) -> int:
        return self._varint(RAW_TIMESTAMP)

    @property
    def contract_type(self) -> int:
        contract_fields, _ = _first_contract(self._raw_fields())
        f = pw.get_field(contract_fields, CONTRACT_TYPE)
        return f.value if f is not None else 0

    @property
    def owner_address(self) -> Optional[Address]:
        _, params = _first_contract(self._raw_fields())
        f = pw.get_field(params, OWNER_ADDRESS)
        if f is None:
            return None
        try:
            return Address(f.value)
        except AddressError as exc:
            raise TransactionError("Malformed owner address in transaction") from exc

    @property
    def contract_address(self) -> Optional[Address]:
        if self.contract_type != TRIGGER_SMART_CONTRACT:
            return None
        _, params = _first_contract(self._raw_fields())
        f = pw.get_field(params, TRIGGER_CONTRACT_ADDRESS)
        return Address(f.value) if f is not None else None

    @property
    def call_data(self) -> Optional[bytes]:
        if self.contract_type != TRIGGER_SMART_CONTRACT:
            return None
        _, params = _first_contract(self._raw_fields())
        f = pw.get_field(params, TRIGGER_DATA)
        return bytes(f.value) if f is not None else b""

    @property
    def call_value(self) -> int:
        return self._trigger_varint(TRIGGER_CALL_VALUE)

    @property
    def call_token_value(self) -> int:
        return self._trigger_varint(TRIGGER_CALL_TOKEN_VALUE)

    @property
    def token_id(self) -> int:
        return self._trigger_varint(TRIGGER_TOKEN_ID)

    # -----------------------------------------------------------------
    # Payload rewrites (return new raw bytes, never touch txid)
    # -----------------------------------------------------------------

    def with_fee_limit(self, fee_limit: int) -> bytes:
        if fee_limit < 0:
            raise TransactionError(f"Fee limit must not be negative: {fee_limit}")
        fields = pw.set_field(self._raw_fields(), RAW_FEE_LIMIT, pw.VARINT, fee_limit)
        return pw.serialize_fields(fields)

    def with_call_data(self, call_data: bytes) -> bytes:
        raw_fields = self._raw_fields()
        contract_fields, params = _first_contract(raw_fields)
        type_field = pw.get_field(contract_fields, CONTRACT_TYPE)
        if type_field is None or type_field.value != TRIGGER_SMART_CONTRACT:
            raise TransactionError("Call data can only be attached to a contract trigger")

        params = pw.set_field(params, TRIGGER_DATA, pw.LENGTH_DELIMITED, bytes(call_data))
        parameter = pw.get_field(contract_fields, CONTRACT_PARAMETER)
        any_fields = pw.set_field(
            pw.parse_fields(parameter.value), ANY_VALUE, pw.LENGTH_DELIMITED, pw.serialize_fields(params)
        )
        contract_fields = pw.replace_first(
            contract_fields, CONTRACT_PARAMETER, pw.serialize_fields(any_fields)
        )
        raw_fields = pw.replace_first(raw_fields, RAW_CONTRACT, pw.serialize_fields(contract_fields))
        return pw.serialize_fields(raw_fields)

    def canonical_bytes(self) -> bytes:
        """``raw_data`` re-serialized with fields in ascending number order."""
        return pw.serialize_fields(self._raw_fields())


@dataclass(frozen=True)
class SignedTransaction:
    txid: bytes
    raw_data: bytes
    signatures: tuple[bytes, ...]

    def to_bytes(self) -> bytes:
        """Serialized ``Transaction`` message, as accepted by ``broadcasthex``."""
        out = pw.length_delimited(TX_RAW_DATA, self.raw_data)
        for sig in self.signatures:
            out += pw.length_delimited(TX_SIGNATURE, sig)
        return out

    def to_json(self) -> dict[str, Any]:
        return {
            "txID": self.txid.hex(),
            "raw_data_hex": self.raw_data.hex(),
            "signature": [sig.hex() for sig in self.signatures],
        }


class TransactionFinalizer:
    """
    Single-use builder that turns an unsigned transaction into a signed one.

    Args:
        transaction: The unsigned payload from the node.
        fee_limit: Fee ceiling in sun to write into the payload. ``None`` or
            0 keeps whatever the node put there.
    """

    def __init__(self, transaction: UnsignedTransaction, fee_limit: Optional[int] = None) -> None:
        if transaction.signatures:
            raise TransactionError("Transaction already carries signatures")
        self._tx = transaction
        self._tx.txid = None
        self._state = FinalizerState.DRAFT
        if fee_limit:
            self.attach_call_data(fee_limit=fee_limit)

    @property
    def state(self) -> FinalizerState:
        return self._state

    @property
    def transaction(self) -> UnsignedTransaction:
        return self._tx

    @property
    def content_hash(self) -> Optional[bytes]:
        return self._tx.txid

    def attach_call_data(
        self,
        call_data: Optional[bytes] = None,
        fee_limit: Optional[int] = None,
    ) -> None:
        """
        Change call data and/or fee limit. Invalidates any computed hash.

        Raises:
            ImmutableAfterSignError: If the transaction is already signed.
        """
        if self._state is FinalizerState.SIGNED:
            raise ImmutableAfterSignError(
                "Transaction is signed; build and sign a new one instead of patching it"
            )

        if call_data is not None:
            self._tx.raw_data = self._tx.with_call_data(call_data)
        if fee_limit is not None:
            self._tx.raw_data = self._tx.with_fee_limit(fee_limit)

        self._tx.txid = None
        self._state = FinalizerState.DRAFT
        logger.debug(
            "Transaction payload updated (call_data=%s, fee_limit=%s); hash invalidated",
            call_data is not None,
            fee_limit,
        )

    def compute_hash(self) -> bytes:
        """Hash the canonical payload; the result is the transaction id."""
        if self._state is FinalizerState.SIGNED:
            return self._tx.txid
        self._tx.raw_data = self._tx.canonical_bytes()
        self._tx.txid = sha256(self._tx.raw_data)
        self._state = FinalizerState.HASHED
        logger.debug("Transaction hashed: %s", self._tx.txid.hex())
        return self._tx.txid

    def sign(self, keystore: KeyStore) -> bytes:
        """
        Sign the content hash and append the signature.

        May be called again on a signed transaction to add a co-signer.

        Raises:
            StaleHashError: If the hash was never computed or was invalidated.
        """
        if self._state is FinalizerState.DRAFT or self._tx.txid is None:
            raise StaleHashError("Compute the transaction hash before signing")
        if sha256(self._tx.raw_data) != self._tx.txid:
            raise StaleHashError("Transaction payload changed after hashing")

        signature = keystore.sign(self._tx.txid)
        self._tx.signatures.append(signature)
        self._state = FinalizerState.SIGNED
        logger.debug("Transaction %s signed by %s", self._tx.txid.hex(), keystore.address)
        return signature

    def signed(self) -> SignedTransaction:
        if self._state is not FinalizerState.SIGNED:
            raise TransactionError("Transaction is not signed")
        return SignedTransaction(
            txid=self._tx.txid,
            raw_data=self._tx.raw_data,
            signatures=tuple(self._tx.signatures),
        )


def finalize(
    transaction: UnsignedTransaction,
    keystore: KeyStore,
    fee_limit: Optional[int] = None,
) -> SignedTransaction:
    """Apply the fee limit, hash and sign in the required order."""
    finalizer = TransactionFinalizer(transaction, fee_limit=fee_limit)
    finalizer.compute_hash()
    finalizer.sign(keystore)
    return finalizer.signed()
