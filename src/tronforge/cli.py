"""
tronforge CLI

Command-line interface for building, encoding and signing TRON transactions.

Commands:
  keygen    - Create a new key and store it in ~/.tronforge/.env
  whoami    - Show current wallet address
  address   - Convert an address between hex and Base58Check
  selector  - Compute a method selector
  encode    - ABI-encode call data
  decode    - ABI-decode return data
  invoke    - Sign and broadcast a contract call
  call      - Run a read-only contract call
  token     - TRC-20 balance / transfer
  info      - Show configuration
"""

from __future__ import annotations

import json
import secrets
import sys
from typing import Any

import click

from .config import ClientConfig
from .pneuma.abi import AbiError, decode_arguments, encode_arguments, method_selector
from .pneuma.abi_types import function_signature, parse_signature, parse_type
from .sigil.address import Address, AddressError
from .sigil.keystore import KeyStore, load_private_key, save_private_key
from .utils import hex_to_bytes


# ============ Constants ============

VERSION = "0.3.0"


# ============ Banner ============


def _print_banner() -> None:
    click.echo(
        click.style("  ◆ ", fg="cyan")
        + click.style("T R O N F O R G E", fg="bright_white", bold=True)
        + click.style(f"  v{VERSION}", dim=True)
    )
    click.echo()


def _fail(exc: Exception) -> None:
    click.secho(f"ERROR: {exc}", fg="red")
    sys.exit(getattr(exc, "exit_code", 1))


def to_jsonable(value: Any) -> Any:
    """Render decoded ABI values for JSON output."""
    if isinstance(value, Address):
        return value.to_base58()
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, list):
        return [to_jsonable(v) for v in value]
    return value


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="tronforge")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """tronforge: TRON transaction codec and signer."""
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .theurgy.invoke import call, invoke
from .theurgy.token import token

cli.add_command(invoke)
cli.add_command(call)
cli.add_command(token)


# ============ Identity ============


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing PRIVATE_KEY")
def keygen(force: bool) -> None:
    """Generate a key and store it in ~/.tronforge/.env."""
    try:
        load_private_key()
        exists = True
    except ValueError:
        exists = False
    if exists and not force:
        click.echo("A wallet already exists. Use --force to replace it.")
        sys.exit(1)

    private_key = "0x" + secrets.token_hex(32)
    keystore = KeyStore.from_private_key(private_key)
    path = save_private_key(private_key)
    click.echo(f"Address: {keystore.address}")
    click.echo(f"Saved to: {path}")


@cli.command()
def whoami() -> None:
    """Show current wallet identity."""
    try:
        keystore = KeyStore.from_private_key(load_private_key())
    except ValueError:
        click.echo("No wallet found.")
        click.echo("Run 'tronforge keygen' to create one.")
        sys.exit(1)
    click.echo(f"Address: {keystore.address}")
    click.echo(f"Hex:     {keystore.address.to_hex()}")


# ============ Codec ============


@cli.command("address")
@click.argument("text")
def address_cmd(text: str) -> None:
    """Show an address in both text forms."""
    try:
        addr = Address.parse(text)
    except AddressError as exc:
        _fail(exc)
    click.echo(f"Base58: {addr.to_base58()}")
    click.echo(f"Hex:    {addr.to_hex()}")


@cli.command()
@click.argument("signature")
def selector(signature: str) -> None:
    """Print the 4-byte selector of SIGNATURE, e.g. 'transfer(address,uint256)'."""
    try:
        name, types = parse_signature(signature)
    except AbiError as exc:
        _fail(exc)
    canonical = function_signature(name, types)
    click.echo(f"0x{method_selector(canonical).hex()}  {canonical}")


@cli.command()
@click.argument("signature")
@click.argument("args_json", default="[]")
@click.option("--no-selector", is_flag=True, help="Encode the arguments only")
def encode(signature: str, args_json: str, no_selector: bool) -> None:
    """
    ABI-encode a call.

    ARGS_JSON is a JSON array with one entry per parameter. Integers may be
    numbers or decimal/0x strings, bytes are hex or base64 strings,
    addresses are Base58 or hex strings.
    """
    try:
        args = json.loads(args_json)
        if not isinstance(args, list):
            raise ValueError("Args must be a JSON array")
    except (json.JSONDecodeError, ValueError) as exc:
        click.secho(f"ERROR: Invalid args: {exc}", fg="red")
        sys.exit(1)

    try:
        name, types = parse_signature(signature)
        if len(types) != len(args):
            raise AbiError(f"{name} takes {len(types)} arguments, got {len(args)}")
        encoded = encode_arguments(zip(types, args))
    except AbiError as exc:
        _fail(exc)

    if not no_selector:
        encoded = method_selector(function_signature(name, types)) + encoded
    click.echo("0x" + encoded.hex())


@cli.command()
@click.argument("types")
@click.argument("data")
@click.option("--lenient", is_flag=True, help="Accept strings packed in a single 32-byte word")
def decode(types: str, data: str, lenient: bool) -> None:
    """
    ABI-decode DATA (hex) as the comma-separated TYPES, e.g. 'address,uint256'.
    """
    try:
        raw = hex_to_bytes(data.strip())
    except ValueError:
        click.secho("ERROR: DATA must be hex", fg="red")
        sys.exit(1)

    try:
        parsed = [parse_type(t.strip()) for t in types.split(",")] if types.strip() else []
        values = decode_arguments(parsed, raw, lenient_strings=lenient)
    except (AbiError, AddressError) as exc:
        _fail(exc)

    click.echo(json.dumps([to_jsonable(v.to_python()) for v in values], indent=2))


# ============ Info ============


@cli.command()
def info() -> None:
    """Show configuration and wallet status."""
    _print_banner()

    try:
        config = ClientConfig.from_env()
    except ValueError as exc:
        _fail(exc)

    try:
        address = str(KeyStore.from_private_key(load_private_key()).address)
        address_text = click.style(address, fg="bright_white")
    except ValueError:
        address_text = click.style("not initialized", fg="yellow") + click.style(
            "  (run: tronforge keygen)", dim=True
        )

    click.echo(click.style("  Address:   ", dim=True) + address_text)
    click.echo(click.style("  Node:      ", dim=True) + config.rpc_url)
    click.echo(
        click.style("  API key:   ", dim=True) + ("set" if config.api_key else "not set")
    )
    click.echo(click.style("  Fee limit: ", dim=True) + f"{config.fee_limit} sun")
    click.echo(click.style("  Timeout:   ", dim=True) + f"{config.timeout:g}s")
    click.echo()


# ============ Entry Points ============


def main() -> None:
    """tronforge CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()
