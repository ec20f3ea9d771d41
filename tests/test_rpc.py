"""
Tests for the node HTTP client.

Requests go through ``httpx.MockTransport``; no network access.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from tronforge.pneuma.rpc import (
    API_KEY_HEADER,
    BroadcastError,
    ContractExecutionError,
    RpcError,
    TronClient,
)
from tronforge.sigil.address import Address
from tronforge.sigil.keystore import KeyStore, recover_address
from tronforge.utils import sha256

USDT = Address.parse("TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t")


class FakeNode:
    """Records requests and answers from a path -> response table."""

    def __init__(self, responses: dict[str, Any]) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.responses.get(request.url.path)
        if answer is None:
            return httpx.Response(404, text="not found")
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    def payload(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


def _client(node: FakeNode, api_key: str = "") -> TronClient:
    return TronClient("https://node.test/", api_key=api_key or None, transport=httpx.MockTransport(node))


class TestTrigger:
    """triggersmartcontract / triggerconstantcontract."""

    def test_trigger_smart_contract(
        self, trigger_raw: Callable[..., bytes], keystore: KeyStore
    ) -> None:
        raw = trigger_raw(keystore.address, data=b"\xa9\x05\x9c\xbb")
        node = FakeNode(
            {
                "/wallet/triggersmartcontract": {
                    "result": {"result": True},
                    "energy_used": 1234,
                    "transaction": {"txID": "00" * 32, "raw_data_hex": raw.hex()},
                }
            }
        )
        result = _client(node, api_key="secret").trigger_smart_contract(
            keystore.address, USDT, b"\xa9\x05\x9c\xbb", fee_limit=10_000_000
        )

        assert result.transaction.raw_data == raw
        assert result.energy_used == 1234

        request = node.requests[0]
        assert str(request.url) == "https://node.test/wallet/triggersmartcontract"
        assert request.headers[API_KEY_HEADER] == "secret"
        assert node.payload() == {
            "owner_address": keystore.address.to_hex()[2:],
            "contract_address": "41a614f803b6fd780986a42c78ec9c7f77e6ded13c",
            "data": "a9059cbb",
            "fee_limit": 10_000_000,
            "call_value": 0,
            "visible": False,
        }

    def test_token_value_is_sent_with_token_id(
        self, trigger_raw: Callable[..., bytes], keystore: KeyStore
    ) -> None:
        raw = trigger_raw(keystore.address, call_token_value=3, token_id=1_000_001)
        node = FakeNode(
            {
                "/wallet/triggersmartcontract": {
                    "result": {"result": True},
                    "transaction": {"raw_data_hex": raw.hex()},
                }
            }
        )
        result = _client(node).trigger_smart_contract(
            keystore.address, USDT, b"", fee_limit=1, call_token_value=3, token_id=1_000_001
        )
        assert node.payload()["call_token_value"] == 3
        assert node.payload()["token_id"] == 1_000_001
        assert result.transaction.token_id == 1_000_001

    def test_token_fields_omitted_without_token_id(self, trigger_raw: Callable[..., bytes], keystore: KeyStore) -> None:
        raw = trigger_raw(keystore.address)
        node = FakeNode(
            {
                "/wallet/triggersmartcontract": {
                    "result": {"result": True},
                    "transaction": {"raw_data_hex": raw.hex()},
                }
            }
        )
        _client(node).trigger_smart_contract(keystore.address, USDT, b"", fee_limit=1, call_token_value=3)
        assert "token_id" not in node.payload()
        assert "call_token_value" not in node.payload()

    def test_no_api_key_header(self, keystore: KeyStore) -> None:
        node = FakeNode({"/wallet/triggerconstantcontract": {"result": {"result": True}}})
        _client(node).trigger_constant_contract(keystore.address, USDT, b"\x00")
        assert API_KEY_HEADER not in node.requests[0].headers

    def test_failed_simulation(self, keystore: KeyStore) -> None:
        node = FakeNode(
            {
                "/wallet/triggersmartcontract": {
                    "result": {
                        "code": "CONTRACT_VALIDATE_ERROR",
                        "message": b"account does not exist".hex(),
                    }
                }
            }
        )
        with pytest.raises(ContractExecutionError) as excinfo:
            _client(node).trigger_smart_contract(keystore.address, USDT, b"", fee_limit=1)
        assert excinfo.value.code == "CONTRACT_VALIDATE_ERROR"
        assert excinfo.value.message == "account does not exist"

    def test_missing_transaction(self, keystore: KeyStore) -> None:
        node = FakeNode({"/wallet/triggersmartcontract": {"result": {"result": True}}})
        with pytest.raises(RpcError):
            _client(node).trigger_smart_contract(keystore.address, USDT, b"", fee_limit=1)

    def test_constant_result(self, keystore: KeyStore) -> None:
        node = FakeNode(
            {
                "/wallet/triggerconstantcontract": {
                    "result": {"result": True},
                    "constant_result": ["00" * 31 + "2a"],
                    "energy_used": 500,
                    "transaction": {"ret": [{}], "txID": "00"},
                }
            }
        )
        result = _client(node).trigger_constant_contract(keystore.address, USDT, b"\x01")
        assert result.constant_result == [bytes(31) + b"\x2a"]
        assert result.transaction is None
        assert "fee_limit" not in node.payload()

    def test_constant_call_revert(self, keystore: KeyStore) -> None:
        node = FakeNode(
            {
                "/wallet/triggerconstantcontract": {
                    "result": {"result": True},
                    "constant_result": [""],
                    "transaction": {"ret": [{"ret": "REVERT"}]},
                }
            }
        )
        with pytest.raises(ContractExecutionError) as excinfo:
            _client(node).trigger_constant_contract(keystore.address, USDT, b"\x01")
        assert excinfo.value.code == "REVERT"


class TestTransport:
    """Transport and payload failures."""

    def test_http_error_status(self, keystore: KeyStore) -> None:
        node = FakeNode({"/wallet/triggerconstantcontract": httpx.Response(500, text="boom")})
        with pytest.raises(RpcError):
            _client(node).trigger_constant_contract(keystore.address, USDT, b"")

    def test_not_json(self, keystore: KeyStore) -> None:
        node = FakeNode({"/wallet/triggerconstantcontract": httpx.Response(200, text="<html>")})
        with pytest.raises(RpcError, match="not JSON"):
            _client(node).trigger_constant_contract(keystore.address, USDT, b"")

    def test_node_error_field(self, keystore: KeyStore) -> None:
        node = FakeNode({"/wallet/createtransaction": {"Error": "class org.tron.core.exception"}})
        with pytest.raises(RpcError, match="Node error"):
            _client(node).create_transaction(keystore.address, USDT, 1)

    def test_connection_failure(self, keystore: KeyStore) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = TronClient("https://node.test", transport=httpx.MockTransport(refuse))
        with pytest.raises(RpcError):
            client.trigger_constant_contract(keystore.address, USDT, b"")


class TestTransfers:
    """createtransaction."""

    def test_create_transaction(self, transfer_raw: Callable[..., bytes], keystore: KeyStore) -> None:
        raw = transfer_raw(keystore.address, USDT, 1_000_000)
        node = FakeNode({"/wallet/createtransaction": {"txID": "00", "raw_data_hex": raw.hex()}})
        tx = _client(node).create_transaction(keystore.address, USDT, 1_000_000)
        assert tx.raw_data == raw
        assert node.payload()["amount"] == 1_000_000
        assert node.payload()["to_address"] == USDT.to_hex()[2:]

    def test_rejects_non_positive_amount(self, keystore: KeyStore) -> None:
        node = FakeNode({})
        with pytest.raises(ValueError):
            _client(node).create_transaction(keystore.address, USDT, 0)
        assert node.requests == []


class TestBroadcast:
    """broadcasthex."""

    def test_accepted(self) -> None:
        node = FakeNode({"/wallet/broadcasthex": {"result": True, "txid": "ab" * 32}})
        result = _client(node).broadcast_transaction(b"\x0a\x00")
        assert result.accepted
        assert result.txid == "ab" * 32
        assert node.payload() == {"transaction": "0a00"}

    def test_rejected(self) -> None:
        node = FakeNode(
            {
                "/wallet/broadcasthex": {
                    "result": False,
                    "code": "SIGERROR",
                    "message": b"validate signature error".hex(),
                }
            }
        )
        with pytest.raises(BroadcastError) as excinfo:
            _client(node).broadcast_transaction(b"\x0a\x00")
        assert excinfo.value.code == "SIGERROR"
        assert excinfo.value.message == "validate signature error"


class TestReceipts:
    """gettransactioninfobyid."""

    def test_unconfirmed(self) -> None:
        node = FakeNode({"/wallet/gettransactioninfobyid": {}})
        assert _client(node).get_transaction_info("0x" + "ab" * 32) is None
        assert node.payload() == {"value": "ab" * 32}

    def test_receipt(self) -> None:
        txid = "cd" * 32
        node = FakeNode(
            {
                "/wallet/gettransactioninfobyid": {
                    "id": txid,
                    "blockNumber": 100,
                    "blockTimeStamp": 1_700_000_003_000,
                    "fee": 345_000,
                    "contractResult": ["00" * 31 + "01"],
                    "receipt": {"result": "SUCCESS", "energy_usage_total": 14_650},
                    "log": [
                        {
                            "address": USDT.account_id.hex(),
                            "topics": ["dd" * 32],
                            "data": "00" * 32,
                        }
                    ],
                }
            }
        )
        receipt = _client(node).get_transaction_info(txid)
        assert receipt.succeeded
        assert receipt.block_number == 100
        assert receipt.energy_usage == 14_650
        assert receipt.contract_result == [bytes(31) + b"\x01"]
        assert receipt.logs[0].address == USDT
        assert receipt.logs[0].topics == [b"\xdd" * 32]

    def test_failed_receipt(self) -> None:
        txid = "ef" * 32
        node = FakeNode(
            {
                "/wallet/gettransactioninfobyid": {
                    "id": txid,
                    "result": "FAILED",
                    "receipt": {"result": "REVERT"},
                    "resMessage": b"REVERT opcode executed".hex(),
                }
            }
        )
        receipt = _client(node).get_transaction_info(txid)
        assert not receipt.succeeded
        assert receipt.message == "REVERT opcode executed"


class TestTransactionLookup:
    """gettransactionbyid."""

    def test_found(self, trigger_raw: Callable[..., bytes], keystore: KeyStore) -> None:
        raw = trigger_raw(keystore.address, data=b"\x01")
        txid = sha256(raw).hex()
        signature = keystore.sign(sha256(raw))
        node = FakeNode(
            {
                "/wallet/gettransactionbyid": {
                    "txID": "00" * 32,
                    "raw_data": {"fee_limit": 1},
                    "raw_data_hex": raw.hex(),
                    "signature": [signature.hex()],
                    "ret": [{"contractRet": "SUCCESS"}],
                }
            }
        )
        tx = _client(node).get_transaction_by_id("0x" + txid)
        assert node.payload() == {"value": txid}
        assert tx.txid.hex() == txid
        assert tx.raw_data == raw
        assert tx.signatures == (signature,)
        assert recover_address(tx.txid, tx.signatures[0]) == keystore.address

    def test_unknown(self) -> None:
        node = FakeNode({"/wallet/gettransactionbyid": {}})
        assert _client(node).get_transaction_by_id("ab" * 32) is None

    def test_malformed_payload(self) -> None:
        node = FakeNode({"/wallet/gettransactionbyid": {"raw_data_hex": "0a05", "signature": []}})
        with pytest.raises(RpcError):
            _client(node).get_transaction_by_id("ab" * 32)


class TestContractAbi:
    """getcontract."""

    def test_entries(self) -> None:
        entries = [
            {"type": "Function", "name": "balanceOf", "inputs": [{"name": "who", "type": "address"}]},
            {"type": "Event", "name": "Transfer"},
        ]
        node = FakeNode(
            {
                "/wallet/getcontract": {
                    "bytecode": "6080",
                    "abi": {"entrys": entries},
                    "contract_address": "41a614f803b6fd780986a42c78ec9c7f77e6ded13c",
                }
            }
        )
        assert _client(node).get_contract_abi(USDT) == entries
        assert node.payload() == {
            "value": "41a614f803b6fd780986a42c78ec9c7f77e6ded13c",
            "visible": False,
        }

    def test_contract_without_abi(self) -> None:
        node = FakeNode({"/wallet/getcontract": {"bytecode": "6080"}})
        assert _client(node).get_contract_abi(USDT) == []

    def test_missing_contract(self) -> None:
        node = FakeNode({"/wallet/getcontract": {}})
        with pytest.raises(RpcError, match="invalid contract abi"):
            _client(node).get_contract_abi(USDT)
