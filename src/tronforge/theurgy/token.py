"""
Theurgy Token - TRC-20 token operations.

The user supplies the token contract with --token (or TRON_TOKEN_ADDRESS).

Commands:
- balance:  Show the token balance of the wallet (or any --owner)
- transfer: Send tokens from the wallet to a recipient
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..config import ClientConfig
from ..pneuma.abi import AbiError
from ..pneuma.contract import ContractCaller
from ..pneuma.rpc import RpcError, TronClient
from ..pneuma.trc20 import Trc20Token, format_amount, parse_amount
from ..pneuma.tx import TransactionError
from ..sigil.address import Address, AddressError
from ..sigil.keystore import KeyStore, SigningError, load_private_key


def _open_token(token_address: str) -> Trc20Token:
    try:
        config = ClientConfig.from_env()
        contract = Address.parse(token_address)
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))
    caller = ContractCaller(TronClient.from_config(config), contract, fee_limit=config.fee_limit)
    return Trc20Token(caller)


def _load_keystore() -> KeyStore:
    try:
        return KeyStore.from_private_key(load_private_key())
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        click.echo("Run 'tronforge keygen' first.")
        sys.exit(1)


def _query_token_meta(token: Trc20Token) -> tuple[str, int]:
    """Read symbol and decimals. Returns (symbol, decimals)."""
    return token.symbol(), token.decimals()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
def token() -> None:
    """TRC-20 token operations.

    \b
    Examples:
      tronforge token balance --token TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t
      tronforge token transfer --token TR7N... --to TXYZ... --amount 5.5
    """


# ---------------------------------------------------------------------------
# balance
# ---------------------------------------------------------------------------

@token.command()
@click.option("--token", "token_address", envvar="TRON_TOKEN_ADDRESS", required=True,
              help="TRC-20 contract address (default: TRON_TOKEN_ADDRESS)")
@click.option("--owner", default=None, help="Account to query (default: wallet address)")
def balance(token_address: str, owner: Optional[str]) -> None:
    """Show the TRC-20 balance of an account."""
    trc20 = _open_token(token_address)

    if owner is None:
        account = _load_keystore().address
    else:
        try:
            account = Address.parse(owner)
        except AddressError as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(exc.exit_code)

    try:
        symbol, decimals = _query_token_meta(trc20)
        raw = trc20.balance_of(account)
    except (AbiError, RpcError) as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)

    click.echo(f"=== {symbol} Balance ===")
    click.echo()
    click.echo(click.style("  Token:    ", dim=True) + str(trc20.address))
    click.echo(click.style("  Account:  ", dim=True) + str(account))
    click.echo(click.style("  Decimals: ", dim=True) + str(decimals))
    click.echo(
        click.style("  Balance:  ", dim=True)
        + click.style(format_amount(raw, decimals, symbol), fg="green", bold=True)
    )
    click.echo()


# ---------------------------------------------------------------------------
# transfer
# ---------------------------------------------------------------------------

@token.command()
@click.option("--token", "token_address", envvar="TRON_TOKEN_ADDRESS", required=True,
              help="TRC-20 contract address (default: TRON_TOKEN_ADDRESS)")
@click.option("--to", "recipient", required=True, help="Recipient address (Base58 or hex)")
@click.option("--amount", required=True, help="Amount in token units (e.g. 1.5)")
def transfer(token_address: str, recipient: str, amount: str) -> None:
    """Transfer TRC-20 tokens from the wallet to a recipient.

    The wallet signs the transaction and pays energy up to TRON_FEE_LIMIT.
    """
    keystore = _load_keystore()
    trc20 = _open_token(token_address)

    try:
        to = Address.parse(recipient)
    except AddressError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)

    try:
        symbol, decimals = _query_token_meta(trc20)
    except (AbiError, RpcError) as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)

    try:
        raw_amount = parse_amount(amount, decimals)
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)
    if raw_amount <= 0:
        click.secho("ERROR: Amount must be positive", fg="red")
        sys.exit(1)

    click.echo(f"=== {symbol} Transfer ===")
    click.echo()
    click.echo(click.style("  Token:  ", dim=True) + f"{symbol} ({trc20.address})")
    click.echo(click.style("  From:   ", dim=True) + str(keystore.address))
    click.echo(click.style("  To:     ", dim=True) + str(to))
    click.echo(
        click.style("  Amount: ", dim=True)
        + f"{format_amount(raw_amount, decimals, symbol)} ({raw_amount} raw)"
    )
    click.echo()

    click.echo("  Sending transaction...")
    try:
        outcome = trc20.transfer(keystore, to, raw_amount)
    except (AbiError, RpcError, TransactionError, SigningError) as exc:
        click.secho(f"Transaction failed: {exc}", fg="red")
        sys.exit(exc.exit_code)

    click.secho("SUCCESS: Transaction broadcast", fg="green")
    click.echo(f"  TX: {outcome.txid}")
