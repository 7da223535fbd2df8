import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # noqa: E402

from fakes import RecordingSleep  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ERROR_LOG_FILE", str(tmp_path / "logs" / "errors.log"))
    monkeypatch.setenv("TX_LOG_FILE", str(tmp_path / "logs" / "tx_log.json"))
    for var in (
        "OPS_ALERT_WEBHOOK",
        "PRIVATE_KEY",
        "PRIVATE_KEY_FILE",
        "ALCHEMY_API_KEY",
        "ALCHEMY_API_KEY_FILE",
        "BOT_CONFIG",
        "METRICS_PORT",
        "TRACE_ID",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def sleep():
    return RecordingSleep()
