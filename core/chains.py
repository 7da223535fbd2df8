"""Per-network chain clients and account-bound signers."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from eth_account.signers.local import LocalAccount
from web3 import Web3

from core.config import BotConfig, NetworkConfig
from core.errors import BalanceQueryFailed
from core.tx_engine.builder import TransactionBuilder, TransactionDescriptor


class ChainClient:
    """Read/write handle to one network.

    ``web3`` calls are blocking, so every call runs in a worker thread and is
    awaited immediately.
    """

    def __init__(
        self,
        network: NetworkConfig,
        web3: Any | None = None,
        *,
        receipt_timeout: float = 600,
        builder: TransactionBuilder | None = None,
    ) -> None:
        self.network = network
        self.web3 = web3 if web3 is not None else Web3(Web3.HTTPProvider(network.rpc_url))
        self.builder = builder or TransactionBuilder(
            self.web3, network.name, receipt_timeout=receipt_timeout
        )

    @property
    def name(self) -> str:
        return self.network.name

    async def get_balance(self, address: str) -> int:
        """Return the native balance of ``address`` in wei."""
        try:
            return int(await asyncio.to_thread(self.web3.eth.get_balance, address))
        except Exception as exc:
            raise BalanceQueryFailed(self.network.name, str(exc) or type(exc).__name__) from exc

    def signer(self, account: LocalAccount) -> "Signer":
        return Signer(self, account)


class Signer:
    """An account bound to one chain client."""

    def __init__(self, client: ChainClient, account: LocalAccount) -> None:
        self.client = client
        self.account = account

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def network(self) -> NetworkConfig:
        return self.client.network

    async def send_transaction(self, descriptor: TransactionDescriptor) -> str:
        """Submit ``descriptor`` and wait for one confirmation."""
        return await asyncio.to_thread(self.client.builder.send_transaction, self.account, descriptor)


def build_clients(config: BotConfig) -> Dict[str, ChainClient]:
    """Create one client per configured network, keyed by network name."""

    return {
        name: ChainClient(network, receipt_timeout=config.receipt_timeout_seconds)
        for name, network in config.networks.items()
    }
