"""
HTTP client for the TRON full-node API.

Lightweight: uses httpx for HTTP; all encoding and signing happens in the
codec modules. The node is only asked to build unsigned transactions,
simulate calls, accept signed transactions and report receipts.

No retries: transport failures surface as ``RpcError`` to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..sigil.address import Address, node_hex
from ..utils import decode_node_message, sha256, strip_0x
from .tx import SignedTransaction, TransactionError, UnsignedTransaction

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://api.trongrid.io"
DEFAULT_TIMEOUT = 30.0
API_KEY_HEADER = "TRON-PRO-API-KEY"


class RpcError(RuntimeError):
    exit_code: int = 6


class ContractExecutionError(RpcError):
    """The node simulated the call and it did not succeed."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message


class BroadcastError(RpcError):
    """The node rejected a signed transaction."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message


@dataclass(frozen=True)
class TriggerResult:
    transaction: Optional[UnsignedTransaction]
    constant_result: list[bytes] = field(default_factory=list)
    energy_used: int = 0


@dataclass(frozen=True)
class BroadcastResult:
    accepted: bool
    txid: str
    code: str = "SUCCESS"
    message: str = ""


@dataclass(frozen=True)
class TransactionLog:
    address: Address
    topics: list[bytes]
    data: bytes


@dataclass(frozen=True)
class TransactionReceipt:
    txid: str
    block_number: int
    block_timestamp: int
    fee: int
    result: str
    energy_usage: int
    contract_result: list[bytes]
    contract_address: Optional[Address]
    logs: list[TransactionLog]
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.result == "SUCCESS"

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> "TransactionReceipt":
        receipt = payload.get("receipt", {})
        contract_address = payload.get("contract_address")
        logs = [
            TransactionLog(
                address=Address.from_trailing_bytes(bytes.fromhex(log.get("address", ""))),
                topics=[bytes.fromhex(t) for t in log.get("topics", [])],
                data=bytes.fromhex(log.get("data", "")),
            )
            for log in payload.get("log", [])
        ]
        return cls(
            txid=payload["id"],
            block_number=int(payload.get("blockNumber", 0)),
            block_timestamp=int(payload.get("blockTimeStamp", 0)),
            fee=int(payload.get("fee", 0)),
            result=receipt.get("result", payload.get("result", "SUCCESS")),
            energy_usage=int(receipt.get("energy_usage_total", 0)),
            contract_result=[bytes.fromhex(r) for r in payload.get("contractResult", []) if r],
            contract_address=Address.from_hex(contract_address) if contract_address else None,
            logs=logs,
            message=decode_node_message(payload.get("resMessage", "")),
        )


def _check_result(data: dict[str, Any]) -> None:
    """Raise ContractExecutionError unless the node reports ``result.result == true``."""
    result = data.get("result", {})
    if result.get("result") is True:
        ret = data.get("transaction", {}).get("ret") or [{}]
        contract_ret = ret[0].get("ret")
        if contract_ret in (None, "SUCCESS"):
            return
        raise ContractExecutionError(contract_ret, "")
    code = str(result.get("code", "UNKNOWN"))
    message = decode_node_message(str(result.get("message", "")))
    raise ContractExecutionError(code, message)


class TronClient:
    """
    Client for the node HTTP API.

    Args:
        rpc_url: Full-node base URL (e.g. "https://api.trongrid.io").
        api_key: Optional TronGrid API key, sent as TRON-PRO-API-KEY.
        timeout: Request timeout in seconds.
        transport: Injectable httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: Any, transport: Optional[httpx.BaseTransport] = None) -> "TronClient":
        return cls(
            rpc_url=config.rpc_url,
            api_key=config.api_key,
            timeout=config.timeout,
            transport=transport,
        )

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST to a node endpoint.

        Raises:
            RpcError: On transport failure, HTTP error status, non-JSON body,
                or an ``Error`` field in the response.
        """
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers[API_KEY_HEADER] = self._api_key

        url = f"{self.rpc_url}{path}"
        logger.debug("POST %s", url)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise RpcError(f"Request to {path} failed: {exc}") from exc
        except ValueError as exc:
            raise RpcError(f"Response from {path} is not JSON") from exc

        if not isinstance(data, dict):
            raise RpcError(f"Unexpected response from {path}: {data!r}")
        if "Error" in data:
            raise RpcError(f"Node error from {path}: {data['Error']}")
        return data

    # -----------------------------------------------------------------
    # Contract calls
    # -----------------------------------------------------------------

    def trigger_smart_contract(
        self,
        owner: Address,
        contract: Address,
        call_data: bytes,
        fee_limit: int,
        call_value: int = 0,
        call_token_value: int = 0,
        token_id: int = 0,
    ) -> TriggerResult:
        """
        Ask the node to build (and simulate) a contract-call transaction.

        ``call_token_value`` units of the TRC-10 token ``token_id`` are sent
        with the call when ``token_id`` is non-zero.

        Raises:
            ContractExecutionError: If the simulated call fails.
        """
        payload: dict[str, Any] = {
            "owner_address": node_hex(owner),
            "contract_address": node_hex(contract),
            "data": call_data.hex(),
            "fee_limit": fee_limit,
            "call_value": call_value,
            "visible": False,
        }
        if token_id:
            payload["call_token_value"] = call_token_value
            payload["token_id"] = token_id
        data = self._post("/wallet/triggersmartcontract", payload)
        _check_result(data)
        if not data.get("transaction"):
            raise RpcError("triggersmartcontract returned no transaction")
        return TriggerResult(
            transaction=UnsignedTransaction.from_json(data["transaction"]),
            energy_used=int(data.get("energy_used", 0)),
        )

    def trigger_constant_contract(
        self,
        owner: Address,
        contract: Address,
        call_data: bytes,
    ) -> TriggerResult:
        """Run a read-only call; ``constant_result`` holds the raw return data."""
        data = self._post(
            "/wallet/triggerconstantcontract",
            {
                "owner_address": node_hex(owner),
                "contract_address": node_hex(contract),
                "data": call_data.hex(),
                "visible": False,
            },
        )
        _check_result(data)
        tx_json = data.get("transaction")
        return TriggerResult(
            transaction=UnsignedTransaction.from_json(tx_json) if tx_json and tx_json.get("raw_data_hex") else None,
            constant_result=[bytes.fromhex(r) for r in data.get("constant_result", [])],
            energy_used=int(data.get("energy_used", 0)),
        )

    # -----------------------------------------------------------------
    # Native transfers
    # -----------------------------------------------------------------

    def create_transaction(self, owner: Address, to: Address, amount: int) -> UnsignedTransaction:
        """Build an unsigned TRX transfer of ``amount`` sun."""
        if amount <= 0:
            raise ValueError(f"Transfer amount must be positive: {amount}")
        data = self._post(
            "/wallet/createtransaction",
            {
                "owner_address": node_hex(owner),
                "to_address": node_hex(to),
                "amount": amount,
                "visible": False,
            },
        )
        return UnsignedTransaction.from_json(data)

    # -----------------------------------------------------------------
    # Submission and receipts
    # -----------------------------------------------------------------

    def broadcast_transaction(self, signed_tx: bytes) -> BroadcastResult:
        """
        Submit a serialized signed ``Transaction``.

        Raises:
            BroadcastError: If the node rejects the transaction.
        """
        data = self._post("/wallet/broadcasthex", {"transaction": signed_tx.hex()})
        code = str(data.get("code", "SUCCESS"))
        message = decode_node_message(str(data.get("message", "")))
        if data.get("result") is not True:
            raise BroadcastError(code, message)
        txid = strip_0x(str(data.get("txid", "")))
        logger.debug("Broadcast accepted: %s", txid)
        return BroadcastResult(accepted=True, txid=txid, code=code, message=message)

    def get_transaction_info(self, txid: str) -> Optional[TransactionReceipt]:
        """Fetch a transaction receipt; None while the transaction is unconfirmed."""
        data = self._post("/wallet/gettransactioninfobyid", {"value": strip_0x(txid)})
        if not data or data.get("id") != strip_0x(txid):
            return None
        return TransactionReceipt.from_json(data)


    def get_transaction_by_id(self, txid: str) -> Optional[SignedTransaction]:
        """
        Fetch a transaction as the node stored it; None if the node does not know it.

        The returned id is recomputed from ``raw_data_hex``.

        Raises:
            RpcError: If the stored payload cannot be parsed.
        """
        data = self._post("/wallet/gettransactionbyid", {"value": strip_0x(txid)})
        if not data:
            return None
        try:
            raw = UnsignedTransaction.from_json(data).raw_data
            signatures = tuple(bytes.fromhex(sig) for sig in data.get("signature", []))
        except (TransactionError, ValueError) as exc:
            raise RpcError(f"Malformed transaction {txid} from node: {exc}") from exc
        return SignedTransaction(txid=sha256(raw), raw_data=raw, signatures=signatures)

    # -----------------------------------------------------------------
    # Contract metadata
    # -----------------------------------------------------------------

    def get_contract_abi(self, contract: Address) -> list[dict[str, Any]]:
        """ABI entries the contract was deployed with (the node's ``abi.entrys`` list)."""
        data = self._post("/wallet/getcontract", {"value": node_hex(contract), "visible": False})
        if not data:
            raise RpcError("invalid contract abi")
        return list(data.get("abi", {}).get("entrys", []))
