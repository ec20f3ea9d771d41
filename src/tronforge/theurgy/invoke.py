"""
Theurgy Invoke - Execute contract calls.

``invoke`` builds a contract-call transaction through the node, signs it
locally with the wallet key and broadcasts it. ``call`` runs a read-only
call and decodes the returned data.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Optional

import click

from ..config import ClientConfig
from ..pneuma.abi import AbiError
from ..pneuma.abi_types import function_signature, parse_signature, parse_type
from ..pneuma.contract import ContractCaller
from ..pneuma.rpc import RpcError, TronClient
from ..pneuma.tx import TransactionError
from ..sigil.address import Address, AddressError
from ..sigil.keystore import KeyStore, SigningError, load_private_key


def _parse_args(args_json: str) -> list[Any]:
    try:
        args = json.loads(args_json)
        if not isinstance(args, list):
            raise ValueError("Args must be a JSON array")
    except (json.JSONDecodeError, ValueError) as exc:
        click.secho(f"ERROR: Invalid args: {exc}", fg="red")
        sys.exit(1)
    return args


def _build_params(signature: str, args: list[Any]) -> tuple[str, list]:
    """Canonical signature plus ``(type, value)`` pairs for ``args``."""
    name, types = parse_signature(signature)
    if len(types) != len(args):
        raise AbiError(f"{name} takes {len(types)} arguments, got {len(args)}")
    return function_signature(name, types), list(zip(types, args))


def _make_caller(contract: str, fee_limit: Optional[int]) -> ContractCaller:
    config = ClientConfig.from_env()
    client = TronClient.from_config(config)
    return ContractCaller(
        client,
        Address.parse(contract),
        fee_limit=fee_limit if fee_limit is not None else config.fee_limit,
    )


@click.command()
@click.option("--contract", required=True, help="Target contract address (Base58 or hex)")
@click.option("--function", "signature", required=True, help="Method signature, e.g. 'transfer(address,uint256)'")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option("--value", default=0, type=int, help="TRX value in sun")
@click.option("--token-value", default=0, type=int, help="TRC-10 token amount sent with the call")
@click.option("--token-id", default=0, type=int, help="TRC-10 token id for --token-value")
@click.option("--fee-limit", default=None, type=int, help="Fee limit in sun (default: TRON_FEE_LIMIT)")
def invoke(
    contract: str,
    signature: str,
    args_json: str,
    value: int,
    token_value: int,
    token_id: int,
    fee_limit: Optional[int],
) -> None:
    """
    Execute a state-changing contract call.

    The node builds the transaction; it is signed locally and broadcast.
    The sender pays energy up to the fee limit.
    """
    click.echo("=== tronforge invoke ===")
    click.echo("")

    args = _parse_args(args_json)

    # Load account
    try:
        keystore = KeyStore.from_private_key(load_private_key())
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    try:
        canonical, params = _build_params(signature, args)
        caller = _make_caller(contract, fee_limit)
    except (AbiError, AddressError, ValueError) as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))

    click.echo(f"  Sender: {keystore.address}")
    click.echo(f"  Target: {caller.contract_address}")
    click.echo(f"  Function: {canonical}")
    click.echo(f"  Args: {args}")
    if value > 0:
        click.echo(f"  Value: {value} sun")
    if token_id:
        click.echo(f"  Token: {token_value} of token {token_id}")
    click.echo(f"  Fee limit: {caller.fee_limit} sun")
    click.echo("")

    try:
        outcome = caller.call(
            keystore,
            canonical,
            params,
            call_value=value,
            call_token_value=token_value,
            token_id=token_id,
        )
    except (AbiError, RpcError, TransactionError, SigningError) as exc:
        click.secho(f"Transaction failed: {exc}", fg="red")
        sys.exit(exc.exit_code)

    click.secho("SUCCESS: Transaction broadcast", fg="green")
    click.echo(f"  TX: {outcome.txid}")


@click.command()
@click.option("--contract", required=True, help="Target contract address (Base58 or hex)")
@click.option("--function", "signature", required=True, help="Method signature, e.g. 'balanceOf(address)'")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option("--returns", "returns", default="", help="Comma-separated return types, e.g. 'uint256'")
@click.option("--lenient", is_flag=True, help="Accept strings packed in a single 32-byte word")
def call(
    contract: str,
    signature: str,
    args_json: str,
    returns: str,
    lenient: bool,
) -> None:
    """
    Run a read-only contract call.

    Prints the decoded return values as JSON, or the raw return data when
    no --returns types are given.
    """
    from ..cli import to_jsonable

    args = _parse_args(args_json)

    try:
        canonical, params = _build_params(signature, args)
        output_types = [parse_type(t.strip()) for t in returns.split(",")] if returns.strip() else []
        caller = _make_caller(contract, None)
    except (AbiError, AddressError, ValueError) as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))

    try:
        if not output_types:
            raw = caller.call_constant_raw(canonical, params)
            click.echo("0x" + raw.hex())
            return
        values = caller.call_constant(
            canonical, params, output_types=output_types, lenient_strings=lenient
        )
    except (AbiError, RpcError) as exc:
        click.secho(f"Call failed: {exc}", fg="red")
        sys.exit(exc.exit_code)

    click.echo(json.dumps([to_jsonable(v.to_python()) for v in values], indent=2))
