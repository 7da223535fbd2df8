"""Advisory balance display for one wallet on both networks."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Dict, Mapping, Optional

from web3 import Web3

from core import console, metrics
from core.chains import ChainClient
from core.errors import BalanceQueryFailed
from core.logger import StructuredLogger

LOG = StructuredLogger("balances")

BORDER = "=" * 47


async def display_balances(
    address: str, clients: Mapping[str, ChainClient]
) -> Optional[Dict[str, Decimal]]:
    """Print native balances of ``address``; never raises on lookup failure."""

    names = list(clients)
    results = await asyncio.gather(
        *(clients[name].get_balance(address) for name in names), return_exceptions=True
    )
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            failure = result if isinstance(result, BalanceQueryFailed) else BalanceQueryFailed(name, str(result))
            console.error(f"Failed to get balances: {failure}")
            LOG.log(
                "balance_query_failed",
                account=console.mask_address(address),
                network=failure.network,
                risk_level="low",
                error=str(failure),
            )
            metrics.record_balance_failure()
            return None

    balances = {
        name: Decimal(str(Web3.from_wei(wei, "ether"))) for name, wei in zip(names, results)
    }
    console.plain(f"============ Wallet: {console.mask_address(address)} ============")
    for name, amount in balances.items():
        console.balance(f"   {clients[name].network.display_name} ETH: {amount:.6f}")
    console.plain(BORDER)
    LOG.log(
        "balances",
        account=console.mask_address(address),
        risk_level="low",
        balances={name: f"{amount:.6f}" for name, amount in balances.items()},
    )
    return balances
