"""Multi-account batch scheduler and process entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

import aiohttp
from eth_account.signers.local import LocalAccount

from adapters.bridge_adapter import BridgeAdapter
from core import console, metrics
from core.account_runner import AccountReport, AccountRunner, Sleep
from core.bridge_executor import BridgeExecutor
from core.chains import build_clients
from core.config import BotConfig, load_config
from core.logger import StructuredLogger, log_error
from core.secret_manager import load_api_key, load_signers

LOGGER = StructuredLogger("orchestrator")


@dataclass
class RoundReport:
    number: int
    accounts: List[AccountReport] = field(default_factory=list)
    delays: List[int] = field(default_factory=list)


class BatchScheduler:
    """Process every credential one after another, then repeat on a fixed period."""

    def __init__(
        self,
        config: BotConfig,
        runner: AccountRunner,
        accounts: Sequence[LocalAccount],
        *,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.accounts = list(accounts)
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.rounds_started = 0
        self.rounds_skipped = 0

    # ---------------------------------------------------------------
    async def _random_delay(self) -> int:
        low, high = self.config.account_delay_range
        delay = self._rng.randint(low, high)
        console.muted(f"    ... Waiting for random {delay} seconds before next account ...")
        await self._sleep(delay)
        return delay

    async def run_round(self) -> RoundReport:
        self.rounds_started += 1
        report = RoundReport(number=self.rounds_started)
        LOGGER.log("round_start", risk_level="low", round=report.number, accounts=len(self.accounts))
        for idx, account in enumerate(self.accounts):
            report.accounts.append(await self.runner.run(account))
            if idx < len(self.accounts) - 1:
                report.delays.append(await self._random_delay())
        console.plain("\n--- All accounts processed in this round ---")
        LOGGER.log(
            "round_complete",
            risk_level="low",
            round=report.number,
            successes=sum(a.successes for a in report.accounts),
            failures=sum(a.failures for a in report.accounts),
        )
        metrics.record_round()
        return report

    # ---------------------------------------------------------------
    async def run_forever(self, max_ticks: Optional[int] = None) -> None:
        """Run a round now, then one per period.

        ``max_ticks`` bounds the number of timer firings; ``None`` runs until
        the process is stopped.
        """

        await self.run_round()
        if not self.accounts:
            console.plain("\nBot finished because no private keys were found.")
            LOGGER.log("no_credentials", risk_level="high")
            return

        period = self.config.loop_interval_seconds
        console.info(
            f"\nThe entire multi-account process will repeat every {_describe_period(period)}."
        )
        LOGGER.log("timer_armed", risk_level="low", period_seconds=period)

        loop = asyncio.get_running_loop()
        next_tick = loop.time() + period
        running: Set[asyncio.Task] = set()
        ticks = 0
        try:
            while max_ticks is None or ticks < max_ticks:
                await self._sleep(max(0.0, next_tick - loop.time()))
                next_tick += period
                ticks += 1
                self._reap(running)
                if running and not self.config.allow_round_overlap:
                    self.rounds_skipped += 1
                    metrics.record_skipped_round()
                    LOGGER.log("round_skipped", risk_level="high", tick=ticks)
                    continue
                running.add(asyncio.create_task(self.run_round()))
            if running:
                await asyncio.gather(*running)
        finally:
            for task in running:
                if not task.done():
                    task.cancel()

    @staticmethod
    def _reap(running: Set[asyncio.Task]) -> None:
        """Drop finished rounds, re-raising the first failure."""
        for task in [t for t in running if t.done()]:
            running.discard(task)
            task.result()


def _describe_period(seconds: float) -> str:
    hours = seconds / 3600
    if hours >= 1 and hours == int(hours):
        return f"{int(hours)} hours" if hours != 1 else "1 hour"
    minutes = seconds / 60
    return "1 minute" if minutes == 1 else f"{minutes:g} minutes"


# ---------------------------------------------------------------------------
async def run_bot(
    config: BotConfig,
    accounts: Sequence[LocalAccount],
    *,
    once: bool = False,
) -> None:
    clients = build_clients(config)
    async with aiohttp.ClientSession() as session:
        adapter = BridgeAdapter(session, config.api_url, integrator_id=config.integrator_id)
        executor = BridgeExecutor(adapter, config.networks, slippage=config.slippage)
        runner = AccountRunner(config, clients, executor)
        scheduler = BatchScheduler(config, runner, accounts)
        if once:
            await scheduler.run_round()
        else:
            await scheduler.run_forever()


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="DZap testnet bridge bot")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--env-file", default=".env", help="File holding PRIVATE_KEY entries")
    parser.add_argument("--apikeys-file", default="apikeys.txt", help="File holding ALCHEMY_API_KEY")
    parser.add_argument("--once", action="store_true", help="Run a single round and exit")
    args = parser.parse_args(argv)

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))
    console.banner()
    try:
        config = load_config(args.config)
        if config.needs_api_key():
            config = config.with_api_key(load_api_key(args.apikeys_file))
        accounts = load_signers(args.env_file)
        metrics.start_metrics_server()
        asyncio.run(run_bot(config, accounts, once=args.once))
    except KeyboardInterrupt:
        LOGGER.log("stopped", risk_level="low")
    except Exception as exc:
        console.error(f"A fatal error occurred: {exc}")
        log_error("orchestrator", str(exc), event="fatal", risk_level="high")
        raise SystemExit(1) from exc


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
