"""
TRC-20 token helper.

Thin wrapper over ``ContractCaller`` for the standard token interface.
``name()``/``symbol()`` are decoded leniently: some early tokens return
them as a single NUL-padded 32-byte word instead of an ABI string.
"""

from __future__ import annotations

import re
from typing import Optional

from ..sigil.address import Address
from ..sigil.keystore import KeyStore
from .contract import CallOutcome, ContractCaller

_AMOUNT_RE = re.compile(r"^(\d+)(?:\.(\d+))?$")


class Trc20Token:
    def __init__(self, caller: ContractCaller) -> None:
        self.caller = caller

    @property
    def address(self) -> Address:
        return self.caller.contract_address

    def _read_one(self, signature: str, params: list, output: str, lenient: bool = False):
        (value,) = self.caller.call_constant(
            signature, params, output_types=[output], lenient_strings=lenient
        )
        return value.to_python()

    def name(self) -> str:
        return self._read_one("name()", [], "string", lenient=True)

    def symbol(self) -> str:
        return self._read_one("symbol()", [], "string", lenient=True)

    def decimals(self) -> int:
        return self._read_one("decimals()", [], "uint8")

    def total_supply(self) -> int:
        return self._read_one("totalSupply()", [], "uint256")

    def balance_of(self, owner: Address) -> int:
        return self._read_one("balanceOf(address)", [("address", owner)], "uint256")

    def allowance(self, owner: Address, spender: Address) -> int:
        return self._read_one(
            "allowance(address,address)",
            [("address", owner), ("address", spender)],
            "uint256",
        )

    def transfer(self, keystore: KeyStore, to: Address, amount: int) -> CallOutcome:
        return self.caller.call(
            keystore, "transfer(address,uint256)", [("address", to), ("uint256", amount)]
        )

    def approve(self, keystore: KeyStore, spender: Address, amount: int) -> CallOutcome:
        return self.caller.call(
            keystore, "approve(address,uint256)", [("address", spender), ("uint256", amount)]
        )

    def transfer_from(
        self, keystore: KeyStore, owner: Address, to: Address, amount: int
    ) -> CallOutcome:
        return self.caller.call(
            keystore,
            "transferFrom(address,address,uint256)",
            [("address", owner), ("address", to), ("uint256", amount)],
        )


def format_amount(amount: int, decimals: int, symbol: Optional[str] = None) -> str:
    """Render a raw token amount with its decimal point, e.g. 1500000 @ 6 -> '1.5'."""
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10 ** decimals) if decimals else (abs(amount), 0)
    text = f"{sign}{whole}"
    if decimals and frac:
        text += "." + str(frac).rjust(decimals, "0").rstrip("0")
    return f"{text} {symbol}" if symbol else text


def parse_amount(text: str, decimals: int) -> int:
    """Inverse of ``format_amount`` for user input such as '1.5'."""
    match = _AMOUNT_RE.match(text.strip())
    if match is None:
        raise ValueError(f"Invalid amount: {text!r}")
    whole, frac = match.group(1), match.group(2) or ""
    if len(frac) > decimals:
        raise ValueError(f"Amount {text!r} has more than {decimals} decimal places")
    return int(whole + frac.ljust(decimals, "0"))
