"""Single cross-chain transfer: quote, build, sign, send, confirm."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Protocol

from web3 import Web3

from adapters.bridge_adapter import BridgeAdapter, TransferRequest
from core.config import NetworkConfig
from core.console import mask_address
from core.logger import StructuredLogger
from core.tx_engine.builder import TransactionDescriptor

LOG = StructuredLogger("bridge_executor")


class TransactionSigner(Protocol):
    async def send_transaction(self, descriptor: TransactionDescriptor) -> str: ...


@dataclass(frozen=True)
class SubmissionReceipt:
    tx_hash: str
    explorer_url: str


class BridgeExecutor:
    """Perform one complete bridge transfer.

    Every step depends on the previous one succeeding; any failure propagates
    to the caller unchanged and nothing is retried.
    """

    def __init__(
        self,
        adapter: BridgeAdapter,
        networks: Mapping[str, NetworkConfig],
        *,
        slippage: float = 1,
    ) -> None:
        self.adapter = adapter
        self.networks = networks
        self.slippage = slippage

    async def perform_bridge(
        self,
        from_network: str,
        to_network: str,
        amount: str,
        signer: TransactionSigner,
        account_address: str,
    ) -> SubmissionReceipt:
        source = self.networks[from_network]
        destination = self.networks[to_network]
        request = TransferRequest(
            source=source,
            destination=destination,
            amount_wei=Web3.to_wei(Decimal(amount), "ether"),
            address=account_address,
            slippage=self.slippage,
        )

        route = await self.adapter.quote(request)
        build = await self.adapter.build_tx(route)
        descriptor = TransactionDescriptor.from_build_response(build)
        tx_hash = await signer.send_transaction(descriptor)

        # the hash lives on the chain it was submitted to
        receipt = SubmissionReceipt(tx_hash=tx_hash, explorer_url=source.tx_url(tx_hash))
        LOG.log(
            "bridge_confirmed",
            account=mask_address(account_address),
            network=source.name,
            tx_hash=tx_hash,
            risk_level="low",
            destination=destination.name,
            amount=amount,
        )
        return receipt
