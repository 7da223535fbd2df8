"""Credential loading for the bridge bot.

Private keys come from a dotenv file (``PRIVATE_KEY_<n>=`` lines, or a
single ``PRIVATE_KEY=`` line); the RPC provider key comes from
``apikeys.txt``. Both fall back to :func:`get_secret`. Key material is never
logged.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List

from dotenv import dotenv_values
from eth_account import Account
from eth_account.signers.local import LocalAccount

from core.errors import ConfigError
from core.logger import StructuredLogger

LOGGER = StructuredLogger("secret_manager")

_NUMBERED_KEY = re.compile(r"PRIVATE_KEY_\d+")


def get_secret(name: str) -> str:
    """Return secret ``name`` from environment or file path.

    The function first checks ``${name}_FILE`` for a file containing the
    secret. If found, the file's contents are returned. Otherwise the
    environment variable ``name`` is used. Raises ``RuntimeError`` if the
    secret is not found.
    """
    file_var = f"{name}_FILE"
    path = os.getenv(file_var)
    if path:
        p = Path(path)
        if p.exists():
            return p.read_text().strip()
    val = os.getenv(name)
    if val:
        return val
    raise RuntimeError(f"secret {name} not found")


def _read(path: str | Path) -> Dict[str, str]:
    """Parse dotenv file ``path`` in file order; a missing file is empty."""
    p = Path(path)
    if not p.exists():
        return {}
    return {k: v.strip() for k, v in dotenv_values(p).items() if v and v.strip()}


def load_api_key(path: str | Path = "apikeys.txt") -> str:
    """Return the RPC provider key from ``path`` or the environment."""

    value = _read(path).get("ALCHEMY_API_KEY")
    if value:
        return value
    try:
        return get_secret("ALCHEMY_API_KEY")
    except RuntimeError as exc:
        raise ConfigError(
            f"Failed to read ALCHEMY_API_KEY from {path}! "
            "Ensure the file exists and contains ALCHEMY_API_KEY=..."
        ) from exc


def load_private_keys(path: str | Path = ".env") -> List[str]:
    """Return private keys in file order.

    Numbered ``PRIVATE_KEY_<n>`` entries win over a single ``PRIVATE_KEY``.
    An empty list means no credentials were found anywhere.
    """

    values = _read(path)
    keys = [v for k, v in values.items() if _NUMBERED_KEY.fullmatch(k)]
    if not keys and "PRIVATE_KEY" in values:
        keys = [values["PRIVATE_KEY"]]
    if not keys:
        try:
            keys = [get_secret("PRIVATE_KEY")]
        except RuntimeError:
            keys = []
    keys = [k for k in keys if k]
    LOGGER.log("keys_loaded", risk_level="low" if keys else "high", count=len(keys), path=str(path))
    return keys


def load_signers(path: str | Path = ".env") -> List[LocalAccount]:
    """Return one local signing account per configured private key."""

    signers: List[LocalAccount] = []
    for idx, key in enumerate(load_private_keys(path), start=1):
        try:
            signers.append(Account.from_key(key))
        except Exception:
            # the key itself must never reach the message
            raise ConfigError(f"private key #{idx} is invalid") from None
    return signers
