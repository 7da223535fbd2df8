"""Per-account bridging: balances, forward leg, reverse leg."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Mapping

from eth_account.signers.local import LocalAccount

from core import console, metrics
from core.balances import display_balances
from core.bridge_executor import BridgeExecutor
from core.chains import ChainClient, Signer
from core.config import BotConfig
from core.logger import StructuredLogger

LOG = StructuredLogger("account_runner")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class Leg:
    """Direction and number of transfers for one attempt loop."""

    source: str
    destination: str
    count: int
    label: str

    @property
    def direction(self) -> str:
        return f"{self.source}->{self.destination}"


@dataclass
class LegResult:
    leg: Leg
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


@dataclass
class AccountReport:
    address: str
    legs: List[LegResult] = field(default_factory=list)

    @property
    def successes(self) -> int:
        return sum(len(r.succeeded) for r in self.legs)

    @property
    def failures(self) -> int:
        return sum(len(r.failed) for r in self.legs)


def legs_for(config: BotConfig) -> List[Leg]:
    src, dst = config.source, config.destination
    return [
        Leg(src.name, dst.name, config.eth_to_arb_count, f"{src.display_name.upper()} > {dst.display_name.upper()}"),
        Leg(dst.name, src.name, config.arb_to_eth_count, f"{dst.display_name.upper()} > {src.display_name.upper()}"),
    ]


def _error_text(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class AccountRunner:
    """Run every configured transfer for one credential, strictly in order."""

    def __init__(
        self,
        config: BotConfig,
        clients: Mapping[str, ChainClient],
        executor: BridgeExecutor,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self.clients = clients
        self.executor = executor
        self._sleep = sleep

    async def run(self, account: LocalAccount) -> AccountReport:
        address = account.address
        masked = console.mask_address(address)
        signers: Dict[str, Signer] = {name: c.signer(account) for name, c in self.clients.items()}

        console.info(f"\n--- Starting process for account: {masked} ---")
        LOG.log("account_start", account=masked, risk_level="low")
        await display_balances(address, self.clients)

        report = AccountReport(address=address)
        for leg in legs_for(self.config):
            if leg.count <= 0:
                continue
            report.legs.append(await self._run_leg(leg, signers[leg.source], address))

        console.info(f"--- Process for {masked} complete ---")
        LOG.log(
            "account_complete",
            account=masked,
            risk_level="low",
            successes=report.successes,
            failures=report.failures,
        )
        return report

    async def _run_leg(self, leg: Leg, signer: Signer, address: str) -> LegResult:
        cfg = self.config
        masked = console.mask_address(address)
        result = LegResult(leg=leg)
        console.plain(f"\n--- Starting {leg.count}x {leg.label} ---")
        for i in range(1, leg.count + 1):
            tag = f"[{i}/{leg.count}]"
            try:
                console.plain(f"▶ {tag} Bridging {cfg.bridge_amount} ETH...")
                receipt = await self.executor.perform_bridge(
                    leg.source, leg.destination, cfg.bridge_amount, signer, address
                )
                console.plain(f"    ✅ {receipt.explorer_url}")
                console.success(f"    ✅ Claim {cfg.points_per_bridge} Points")
                result.succeeded.append(receipt.tx_hash)
                metrics.record_attempt(leg.direction, True)
            except Exception as exc:
                message = console.truncate(_error_text(exc))
                console.error(f"    ❌ {tag} Failed: {message}...")
                LOG.log(
                    "bridge_failed",
                    account=masked,
                    network=leg.source,
                    risk_level="low",
                    error=message,
                    attempt=i,
                    direction=leg.direction,
                    error_type=type(exc).__name__,
                )
                result.failed.append(message)
                metrics.record_attempt(leg.direction, False)
            if i < leg.count:
                console.muted(f"    ... Waiting for {cfg.delay_between_tx_seconds:g} seconds ...")
                await self._sleep(cfg.delay_between_tx_seconds)
        return result
