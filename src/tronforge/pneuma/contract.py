"""
Contract-call helper.

Ties the codec to the node: encodes a call, has the node build the
transaction, finalizes and signs it locally, broadcasts it. Holds a
``TronClient`` rather than extending it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union

from ..sigil.address import ZERO_ADDRESS, Address
from ..sigil.keystore import KeyStore
from .abi import AbiValue, decode_arguments, encode_call
from .abi_types import AbiType
from .rpc import BroadcastResult, TronClient
from .tx import SignedTransaction, finalize

Param = tuple[Union[str, AbiType], Any]


@dataclass(frozen=True)
class CallOutcome:
    """A broadcast contract call."""

    signed: SignedTransaction
    broadcast: BroadcastResult

    @property
    def txid(self) -> str:
        return self.signed.txid.hex()


class ContractCaller:
    """
    Calls into one contract.

    Args:
        client: Node client used for building, simulating and broadcasting.
        contract_address: Target contract.
        fee_limit: Fee ceiling in sun written into every transaction.
    """

    def __init__(self, client: TronClient, contract_address: Address, fee_limit: int) -> None:
        self.client = client
        self.contract_address = contract_address
        self.fee_limit = fee_limit

    def call_constant_raw(
        self,
        signature: str,
        params: Iterable[Param] = (),
        owner: Optional[Address] = None,
    ) -> bytes:
        """Run a read-only call and return the raw return data."""
        call_data = encode_call(signature, params)
        result = self.client.trigger_constant_contract(
            owner or ZERO_ADDRESS, self.contract_address, call_data
        )
        return result.constant_result[0] if result.constant_result else b""

    def call_constant(
        self,
        signature: str,
        params: Iterable[Param] = (),
        output_types: Sequence[Union[str, AbiType]] = (),
        owner: Optional[Address] = None,
        lenient_strings: bool = False,
    ) -> list[AbiValue]:
        """Run a read-only call and decode its return tuple."""
        raw = self.call_constant_raw(signature, params, owner=owner)
        return decode_arguments(output_types, raw, lenient_strings=lenient_strings)

    def call(
        self,
        keystore: KeyStore,
        signature: str,
        params: Iterable[Param] = (),
        call_value: int = 0,
        call_token_value: int = 0,
        token_id: int = 0,
    ) -> CallOutcome:
        """
        Send a state-changing call signed by ``keystore``.

        ``call_value`` is in sun; ``call_token_value`` is in units of the TRC-10
        token ``token_id`` and is ignored while ``token_id`` is 0.

        Raises:
            ContractExecutionError: If the node's simulation of the call fails.
            BroadcastError: If the node rejects the signed transaction.
        """
        call_data = encode_call(signature, params)
        trigger = self.client.trigger_smart_contract(
            keystore.address,
            self.contract_address,
            call_data,
            fee_limit=self.fee_limit,
            call_value=call_value,
            call_token_value=call_token_value,
            token_id=token_id,
        )
        signed = finalize(trigger.transaction, keystore, fee_limit=self.fee_limit)
        broadcast = self.client.broadcast_transaction(signed.to_bytes())
        return CallOutcome(signed=signed, broadcast=broadcast)


def send_trx(client: TronClient, keystore: KeyStore, to: Address, amount: int) -> CallOutcome:
    """Transfer ``amount`` sun of TRX from the keystore's account."""
    unsigned = client.create_transaction(keystore.address, to, amount)
    signed = finalize(unsigned, keystore)
    broadcast = client.broadcast_transaction(signed.to_bytes())
    return CallOutcome(signed=signed, broadcast=broadcast)
