"""
Client configuration.

Settings come from the environment, optionally seeded from
~/.tronforge/.env (the same file that holds PRIVATE_KEY):

    TRON_RPC_URL       full-node HTTP endpoint   (default: https://api.trongrid.io)
    TRON_PRO_API_KEY   TronGrid API key          (default: none)
    TRON_RPC_TIMEOUT   request timeout, seconds  (default: 30)
    TRON_FEE_LIMIT     fee ceiling in sun        (default: 30000000)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .pneuma.rpc import DEFAULT_RPC_URL, DEFAULT_TIMEOUT
from .sigil import keystore

DEFAULT_FEE_LIMIT = 30_000_000


@dataclass(frozen=True)
class ClientConfig:
    rpc_url: str = DEFAULT_RPC_URL
    api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    fee_limit: int = DEFAULT_FEE_LIMIT

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "ClientConfig":
        """
        Read configuration from the environment.

        Values already exported in the process environment win over the
        .env file.

        Raises:
            ValueError: If a numeric setting does not parse.
        """
        env_path = env_path or keystore.TRONFORGE_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        try:
            timeout = float(os.environ.get("TRON_RPC_TIMEOUT", str(DEFAULT_TIMEOUT)))
            fee_limit = int(os.environ.get("TRON_FEE_LIMIT", str(DEFAULT_FEE_LIMIT)))
        except ValueError as exc:
            raise ValueError(f"Invalid numeric setting: {exc}") from exc

        if fee_limit < 0:
            raise ValueError(f"TRON_FEE_LIMIT must not be negative: {fee_limit}")

        return cls(
            rpc_url=os.environ.get("TRON_RPC_URL", DEFAULT_RPC_URL),
            api_key=os.environ.get("TRON_PRO_API_KEY") or None,
            timeout=timeout,
            fee_limit=fee_limit,
        )
