"""Shared fixtures: node-shaped transaction payloads and a test wallet."""

from __future__ import annotations

from typing import Callable

import pytest

from tronforge.pneuma import protowire as pw
from tronforge.sigil.address import Address
from tronforge.sigil.keystore import KeyStore

TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_KEY = "0x" + "11" * 32

USDT = Address.parse("TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t")

TRIGGER_TYPE_URL = b"type.googleapis.com/protocol.TriggerSmartContract"
TRANSFER_TYPE_URL = b"type.googleapis.com/protocol.TransferContract"


def _raw_transaction(contract_type: int, type_url: bytes, parameter: list[pw.Field], fee_limit: int) -> bytes:
    any_value = pw.serialize_fields(
        [
            pw.Field(1, pw.LENGTH_DELIMITED, type_url),
            pw.Field(2, pw.LENGTH_DELIMITED, pw.serialize_fields(parameter)),
        ]
    )
    contract = pw.serialize_fields(
        [
            pw.Field(1, pw.VARINT, contract_type),
            pw.Field(2, pw.LENGTH_DELIMITED, any_value),
        ]
    )
    fields = [
        pw.Field(1, pw.LENGTH_DELIMITED, bytes.fromhex("abcd")),
        pw.Field(4, pw.LENGTH_DELIMITED, bytes.fromhex("0102030405060708")),
        pw.Field(8, pw.VARINT, 1_700_000_060_000),
        pw.Field(11, pw.LENGTH_DELIMITED, contract),
        pw.Field(14, pw.VARINT, 1_700_000_000_000),
    ]
    if fee_limit:
        fields.append(pw.Field(18, pw.VARINT, fee_limit))
    return pw.serialize_fields(fields)


@pytest.fixture()
def keystore() -> KeyStore:
    return KeyStore.from_private_key(TEST_KEY)


@pytest.fixture()
def other_keystore() -> KeyStore:
    return KeyStore.from_private_key(OTHER_KEY)


@pytest.fixture()
def trigger_raw() -> Callable[..., bytes]:
    """Build a ``Transaction.raw`` for a TriggerSmartContract call."""

    def build(
        owner: Address,
        contract: Address = USDT,
        data: bytes = b"",
        call_value: int = 0,
        fee_limit: int = 0,
        call_token_value: int = 0,
        token_id: int = 0,
    ) -> bytes:
        parameter = [
            pw.Field(1, pw.LENGTH_DELIMITED, owner.raw),
            pw.Field(2, pw.LENGTH_DELIMITED, contract.raw),
        ]
        if call_value:
            parameter.append(pw.Field(3, pw.VARINT, call_value))
        if data:
            parameter.append(pw.Field(4, pw.LENGTH_DELIMITED, data))
        if call_token_value:
            parameter.append(pw.Field(5, pw.VARINT, call_token_value))
        if token_id:
            parameter.append(pw.Field(6, pw.VARINT, token_id))
        return _raw_transaction(31, TRIGGER_TYPE_URL, parameter, fee_limit)

    return build


@pytest.fixture()
def transfer_raw() -> Callable[..., bytes]:
    """Build a ``Transaction.raw`` for a native TRX transfer."""

    def build(owner: Address, to: Address, amount: int) -> bytes:
        parameter = [
            pw.Field(1, pw.LENGTH_DELIMITED, owner.raw),
            pw.Field(2, pw.LENGTH_DELIMITED, to.raw),
            pw.Field(3, pw.VARINT, amount),
        ]
        return _raw_transaction(1, TRANSFER_TYPE_URL, parameter, 0)

    return build
