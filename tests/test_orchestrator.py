import asyncio
import json
import random
from pathlib import Path

import sys

import pytest
from eth_account import Account

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # noqa: E402

from core import orchestrator
from core.account_runner import AccountReport
from core.config import config_from_dict
from core.orchestrator import BatchScheduler, _describe_period
from fakes import TEST_KEY, TEST_KEY_2

ACCOUNTS = [Account.from_key(TEST_KEY), Account.from_key(TEST_KEY_2), Account.from_key("0x" + "6e" * 32)]


class FakeRunner:
    def __init__(self, gate=None, fail_on=None):
        self.seen = []
        self.gate = gate
        self.fail_on = fail_on

    async def run(self, account):
        self.seen.append(account.address)
        if self.fail_on is not None and len(self.seen) == self.fail_on:
            raise RuntimeError("runner blew up")
        if self.gate is not None and len(self.seen) > 1:
            await self.gate.wait()
        return AccountReport(address=account.address)


class YieldingSleep:
    """Records requested waits and yields so scheduled rounds get to run."""

    def __init__(self, on_call=None):
        self.calls = []
        self.on_call = on_call

    async def __call__(self, seconds):
        self.calls.append(seconds)
        if self.on_call is not None:
            self.on_call(len(self.calls))
        await asyncio.sleep(0)


def test_describe_period():
    assert _describe_period(300 * 60) == "5 hours"
    assert _describe_period(3600) == "1 hour"
    assert _describe_period(90) == "1.5 minutes"
    assert _describe_period(60) == "1 minute"


def test_round_processes_accounts_in_order(sleep, capsys):
    runner = FakeRunner()
    scheduler = BatchScheduler(config_from_dict({}), runner, ACCOUNTS, sleep=sleep, rng=random.Random(7))

    report = asyncio.run(scheduler.run_round())

    assert runner.seen == [a.address for a in ACCOUNTS]
    assert len(sleep.calls) == len(ACCOUNTS) - 1
    assert all(isinstance(d, int) and 3 <= d <= 5 for d in sleep.calls)
    assert report.delays == sleep.calls
    out = capsys.readouterr().out
    assert out.count("Waiting for random") == 2
    assert "--- All accounts processed in this round ---" in out


def test_single_account_has_no_random_delay(sleep):
    scheduler = BatchScheduler(config_from_dict({}), FakeRunner(), ACCOUNTS[:1], sleep=sleep)
    asyncio.run(scheduler.run_round())
    assert sleep.calls == []


def test_no_credentials_never_arms_timer(sleep, capsys, tmp_path):
    runner = FakeRunner()
    scheduler = BatchScheduler(config_from_dict({}), runner, [], sleep=sleep)

    asyncio.run(scheduler.run_forever())

    assert runner.seen == []
    assert sleep.calls == []
    out = capsys.readouterr().out
    assert out.index("All accounts processed") < out.index("Bot finished because no private keys were found.")
    assert "repeat every" not in out
    events = [json.loads(line)["event"] for line in (tmp_path / "logs" / "orchestrator.json").read_text().splitlines()]
    assert "no_credentials" in events
    assert "timer_armed" not in events


def test_periodic_rounds(capsys):
    cfg = config_from_dict({"loop_interval_minutes": 1})
    runner = FakeRunner()
    sleep = YieldingSleep()
    scheduler = BatchScheduler(cfg, runner, ACCOUNTS[:1], sleep=sleep)

    asyncio.run(scheduler.run_forever(max_ticks=2))

    assert scheduler.rounds_started == 3
    assert scheduler.rounds_skipped == 0
    assert len(runner.seen) == 3
    # the fake sleep does not move the loop clock, so each wait is one period further out
    assert 0 <= sleep.calls[0] <= 60
    assert sleep.calls[1] - sleep.calls[0] == pytest.approx(60, abs=1)
    assert "repeat every 1 minute." in capsys.readouterr().out


def test_tick_skipped_while_round_running():
    holder = {}

    def on_call(n):
        if n == 3:
            holder["gate"].set()

    async def scenario():
        holder["gate"] = asyncio.Event()
        runner = FakeRunner(gate=holder["gate"])
        scheduler = BatchScheduler(config_from_dict({}), runner, ACCOUNTS[:1], sleep=YieldingSleep(on_call))
        await scheduler.run_forever(max_ticks=3)
        return scheduler

    scheduler = asyncio.run(scenario())
    assert scheduler.rounds_skipped == 1
    assert scheduler.rounds_started == 3


def test_overlap_allowed_starts_every_tick():
    holder = {}

    def on_call(n):
        if n == 3:
            holder["gate"].set()

    async def scenario():
        holder["gate"] = asyncio.Event()
        runner = FakeRunner(gate=holder["gate"])
        cfg = config_from_dict({"allow_round_overlap": True})
        scheduler = BatchScheduler(cfg, runner, ACCOUNTS[:1], sleep=YieldingSleep(on_call))
        await scheduler.run_forever(max_ticks=3)
        return scheduler

    scheduler = asyncio.run(scenario())
    assert scheduler.rounds_skipped == 0
    assert scheduler.rounds_started == 4


def test_failed_round_surfaces():
    runner = FakeRunner(fail_on=2)
    scheduler = BatchScheduler(config_from_dict({}), runner, ACCOUNTS[:1], sleep=YieldingSleep())
    with pytest.raises(RuntimeError, match="runner blew up"):
        asyncio.run(scheduler.run_forever(max_ticks=3))


def test_main_single_round_without_keys(monkeypatch, capsys):
    monkeypatch.setenv("ALCHEMY_API_KEY", "k")
    orchestrator.main(["--once", "--env-file", "missing.env"])
    out = capsys.readouterr().out
    assert "Dzap-Auto-Bot" in out
    assert "--- All accounts processed in this round ---" in out


def test_main_fatal_error_exits_nonzero(capsys, tmp_path):
    with pytest.raises(SystemExit) as exc:
        orchestrator.main(["--config", str(tmp_path / "absent.yaml")])
    assert exc.value.code == 1
    assert "A fatal error occurred: config file not found" in capsys.readouterr().err
    err = json.loads((tmp_path / "logs" / "errors.log").read_text().splitlines()[-1])
    assert err["event"] == "fatal"


def test_main_missing_api_key_is_fatal(capsys):
    with pytest.raises(SystemExit):
        orchestrator.main(["--once"])
    assert "ALCHEMY_API_KEY" in capsys.readouterr().err
