"""Prometheus metrics for bridge activity.

Counters live in the default ``prometheus_client`` registry. The HTTP
endpoint is only started when ``METRICS_PORT`` is configured.
"""

from __future__ import annotations

import os

from prometheus_client import Counter, start_http_server

from core.logger import StructuredLogger

LOG = StructuredLogger("metrics")

BRIDGE_ATTEMPTS = Counter(
    "bridge_attempts",
    "Bridge attempts by direction and outcome",
    ["direction", "status"],
)
ROUNDS = Counter("bridge_rounds", "Completed multi-account rounds")
ROUNDS_SKIPPED = Counter("bridge_rounds_skipped", "Rounds skipped because the previous one was still running")
BALANCE_FAILURES = Counter("balance_query_failures", "Failed balance lookups")


def record_attempt(direction: str, success: bool) -> None:
    BRIDGE_ATTEMPTS.labels(direction=direction, status="success" if success else "failure").inc()


def record_round() -> None:
    ROUNDS.inc()


def record_skipped_round() -> None:
    ROUNDS_SKIPPED.inc()


def record_balance_failure() -> None:
    BALANCE_FAILURES.inc()


def start_metrics_server(port: int | None = None) -> int | None:
    """Serve ``/metrics`` on ``port`` or ``$METRICS_PORT``; return the port used."""

    if port is None:
        env_port = os.getenv("METRICS_PORT")
        if not env_port:
            return None
        port = int(env_port)
    start_http_server(port)
    LOG.log("metrics_server_started", risk_level="low", port=port)
    return port
