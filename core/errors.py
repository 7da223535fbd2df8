"""Exception types raised by the bridge bot."""

from __future__ import annotations


class BridgeBotError(RuntimeError):
    """Base class for all bot errors."""


class ConfigError(BridgeBotError):
    """Configuration or credential material is missing or invalid."""


class RouteUnavailable(BridgeBotError):
    """The quote response carried no recommended route."""


class RouteConsumed(BridgeBotError):
    """A route was used for more than one build request."""


class BuildFailed(BridgeBotError):
    """The build response did not report success."""

    def __init__(self, body: str) -> None:
        super().__init__(f"buildTx API failed: {body}")
        self.body = body


class SubmissionFailed(BridgeBotError):
    """Signing, broadcasting or confirming a transaction failed."""

    def __init__(self, network: str, message: str, tx_hash: str = "") -> None:
        super().__init__(message)
        self.network = network
        self.tx_hash = tx_hash


class BalanceQueryFailed(BridgeBotError):
    """Reading a native balance failed on one network."""

    def __init__(self, network: str, message: str) -> None:
        super().__init__(f"{network}: {message}")
        self.network = network
