"""Coloured console output for the interactive bot run."""

from __future__ import annotations

import sys

GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
RED = "\033[0;31m"
BLUE = "\033[0;34m"
CYAN = "\033[1;36m"
GRAY = "\033[0;90m"
NC = "\033[0m"  # No Color

BANNER = """\
╔═════════════════════════════════════════════╗
║                Dzap-Auto-Bot                ║
╚═════════════════════════════════════════════╝"""


def mask_address(address: str) -> str:
    """Shorten ``address`` to ``0x1234...abcd``."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def truncate(message: str, limit: int = 120) -> str:
    return message[:limit]


def banner() -> None:
    print(f"{CYAN}{BANNER}{NC}")
    print()


def plain(msg: str) -> None:
    print(msg)


def info(msg: str) -> None:
    print(f"{BLUE}{msg}{NC}")


def balance(msg: str) -> None:
    print(f"{YELLOW}{msg}{NC}")


def success(msg: str) -> None:
    print(f"{GREEN}{msg}{NC}")


def muted(msg: str) -> None:
    print(f"{GRAY}{msg}{NC}")


def error(msg: str) -> None:
    print(f"{RED}{msg}{NC}", file=sys.stderr)
