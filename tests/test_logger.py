"""Unit tests for StructuredLogger behavior."""

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # noqa: E402

from core import logger as logger_mod
from core.logger import StructuredLogger, make_json_safe, register_hook, unregister_hook


def test_structured_logging(tmp_path, monkeypatch):
    log_file = tmp_path / "log.json"
    err_file = tmp_path / "errors.log"
    monkeypatch.setenv("ERROR_LOG_FILE", str(err_file))
    logger = StructuredLogger("test_mod", log_file=str(log_file))
    captured = []

    def hook(entry):
        captured.append(entry)

    register_hook(hook)
    try:
        logger.log(
            "bridge_failed",
            account="0x1234...abcd",
            network="sepolia",
            risk_level="low",
            error="boom",
            attempt=2,
        )
    finally:
        unregister_hook(hook)

    data = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert data[0]["module"] == "test_mod"
    assert data[0]["event"] == "bridge_failed"
    assert data[0]["network"] == "sepolia"
    assert captured and captured[0]["attempt"] == 2
    dt = datetime.fromisoformat(data[0]["timestamp"])
    assert dt.tzinfo is not None

    err = json.loads(err_file.read_text().splitlines()[0])
    assert err["error"] == "boom"
    assert err["module"] == "test_mod"
    assert err["event"] == "bridge_failed"


def test_hook_failure_does_not_interrupt(tmp_path):
    logger = StructuredLogger("hooks", log_file=str(tmp_path / "h.json"))

    def bad_hook(entry):
        raise ValueError("hook exploded")

    register_hook(bad_hook)
    try:
        logger.log("ok", risk_level="low")
    finally:
        unregister_hook(bad_hook)

    assert (tmp_path / "h.json").read_text().strip()
    err = json.loads((tmp_path / "logs" / "errors.log").read_text().splitlines()[0])
    assert "hook exploded" in err["error"]


def test_alert_sent_for_high_risk(tmp_path, monkeypatch):
    monkeypatch.setenv("OPS_ALERT_WEBHOOK", "http://hook.invalid")
    posted = []
    monkeypatch.setattr(logger_mod.requests, "post", lambda url, json=None, timeout=None: posted.append((url, json)))
    logger = StructuredLogger("alerts", log_file=str(tmp_path / "a.json"))

    logger.log("quiet", risk_level="low")
    logger.log("no_credentials", risk_level="high")

    assert len(posted) == 1
    assert posted[0][0] == "http://hook.invalid"
    assert "alerts:no_credentials" in posted[0][1]["text"]


def test_env_overrides_log_path(tmp_path, monkeypatch):
    target = tmp_path / "custom.json"
    monkeypatch.setenv("CUSTOMMOD_LOG", str(target))
    StructuredLogger("custommod").log("hello")
    assert json.loads(target.read_text())["event"] == "hello"


@dataclass
class _Sample:
    value: Decimal
    raw: bytes


def test_make_json_safe_handles_nested_types():
    out = make_json_safe({"s": _Sample(Decimal("0.0001"), b"\x12\x34"), "p": Path("a/b"), "t": (1, 2)})
    assert out == {"s": {"value": "0.0001", "raw": "0x1234"}, "p": "a/b", "t": [1, 2]}
    json.dumps(out)
