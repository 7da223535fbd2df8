"""Bot configuration loaded once at startup.

Values come from built-in defaults, optionally overridden by a YAML file.
The resulting :class:`BotConfig` is frozen and passed by reference to every
component that needs it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Tuple, cast

import yaml

from core.errors import ConfigError
from core.logger import StructuredLogger

LOGGER = StructuredLogger("config")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class NetworkConfig:
    """Static description of one chain the bot bridges on."""

    name: str
    display_name: str
    chain_id: int
    rpc_url: str
    explorer_url: str

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"

    def with_api_key(self, api_key: str) -> "NetworkConfig":
        """Return a copy with ``{api_key}`` substituted in the RPC URL."""
        return replace(self, rpc_url=self.rpc_url.format(api_key=api_key))


SEPOLIA = NetworkConfig(
    name="sepolia",
    display_name="Sepolia",
    chain_id=11155111,
    rpc_url="https://eth-sepolia.g.alchemy.com/v2/{api_key}",
    explorer_url="https://sepolia.etherscan.io",
)

ARBITRUM_SEPOLIA = NetworkConfig(
    name="arbitrum",
    display_name="Arbitrum",
    chain_id=421614,
    rpc_url="https://arb-sepolia.g.alchemy.com/v2/{api_key}",
    explorer_url="https://sepolia.arbiscan.io",
)


@dataclass(frozen=True)
class BotConfig:
    """Immutable run settings shared by the scheduler and runners."""

    source: NetworkConfig = SEPOLIA
    destination: NetworkConfig = ARBITRUM_SEPOLIA
    eth_to_arb_count: int = 3
    arb_to_eth_count: int = 3
    bridge_amount: str = "0.0001"
    delay_between_tx_seconds: float = 30
    loop_interval_minutes: float = 300
    account_delay_range: Tuple[int, int] = (3, 5)
    slippage: float = 1
    api_url: str = "https://api.dzap.io/v1"
    integrator_id: str = "dzap"
    allow_round_overlap: bool = False
    receipt_timeout_seconds: float = 600
    points_per_bridge: int = 5
    networks: Dict[str, NetworkConfig] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "networks",
            {self.source.name: self.source, self.destination.name: self.destination},
        )

    # ------------------------------------------------------------------
    @property
    def loop_interval_seconds(self) -> float:
        return self.loop_interval_minutes * 60

    def needs_api_key(self) -> bool:
        return any("{api_key}" in n.rpc_url for n in (self.source, self.destination))

    def with_api_key(self, api_key: str) -> "BotConfig":
        """Return a copy whose RPC URLs have the API key filled in."""
        return replace(
            self,
            source=self.source.with_api_key(api_key),
            destination=self.destination.with_api_key(api_key),
        )

    def validate(self) -> None:
        if self.source.name == self.destination.name:
            raise ConfigError("source and destination networks must differ")
        if self.source.chain_id == self.destination.chain_id:
            raise ConfigError("source and destination chain ids must differ")
        if self.eth_to_arb_count < 0 or self.arb_to_eth_count < 0:
            raise ConfigError("transfer counts must be >= 0")
        if self.delay_between_tx_seconds < 0:
            raise ConfigError("delay_between_tx_seconds must be >= 0")
        if self.loop_interval_minutes <= 0:
            raise ConfigError("loop_interval_minutes must be > 0")
        low, high = self.account_delay_range
        if low < 0 or high < low:
            raise ConfigError(f"invalid account_delay_range: {list(self.account_delay_range)}")
        try:
            amount = Decimal(self.bridge_amount)
        except InvalidOperation as exc:
            raise ConfigError(f"invalid bridge_amount: {self.bridge_amount!r}") from exc
        if not amount.is_finite() or amount <= 0:
            raise ConfigError(f"invalid bridge_amount: {self.bridge_amount!r}")


# ---------------------------------------------------------------------------
_FIELD_TYPES: Dict[str, Tuple[type, ...]] = {
    "eth_to_arb_count": (int,),
    "arb_to_eth_count": (int,),
    "points_per_bridge": (int,),
    "delay_between_tx_seconds": (int, float),
    "loop_interval_minutes": (int, float),
    "slippage": (int, float),
    "receipt_timeout_seconds": (int, float),
    "api_url": (str,),
    "integrator_id": (str,),
    "allow_round_overlap": (bool,),
}


def _check_type(key: str, value: Any) -> None:
    expected = _FIELD_TYPES[key]
    # bool is an int subclass
    if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
        raise ConfigError(f"{key} must be {expected[0].__name__}, got {value!r}")


def _network_from(raw: Any, default: NetworkConfig) -> NetworkConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"network override for {default.name} must be a mapping")
    unknown = set(raw) - {f.name for f in fields(NetworkConfig)}
    if unknown:
        raise ConfigError(f"unknown network keys: {sorted(unknown)}")
    merged = replace(default, **raw)
    try:
        return replace(merged, chain_id=int(merged.chain_id))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid chain_id: {merged.chain_id!r}") from exc


def config_from_dict(data: Dict[str, Any] | None) -> BotConfig:
    """Build a validated :class:`BotConfig` from parsed YAML data."""

    data = dict(data or {})
    allowed = {f.name for f in fields(BotConfig) if f.init}
    unknown = set(data) - allowed
    if unknown:
        raise ConfigError(f"unknown config keys: {sorted(unknown)}")

    kwargs: Dict[str, Any] = {}
    if "source" in data:
        kwargs["source"] = _network_from(data.pop("source") or {}, SEPOLIA)
    if "destination" in data:
        kwargs["destination"] = _network_from(data.pop("destination") or {}, ARBITRUM_SEPOLIA)
    if "account_delay_range" in data:
        rng = data.pop("account_delay_range")
        if not isinstance(rng, (list, tuple)) or len(rng) != 2:
            raise ConfigError("account_delay_range must be a [min, max] pair")
        for bound in rng:
            if isinstance(bound, bool) or not isinstance(bound, int):
                raise ConfigError(f"account_delay_range bounds must be integers, got {list(rng)}")
        kwargs["account_delay_range"] = (rng[0], rng[1])
    if "bridge_amount" in data:
        amount = data.pop("bridge_amount")
        if isinstance(amount, bool) or not isinstance(amount, (str, int, float)):
            raise ConfigError(f"invalid bridge_amount: {amount!r}")
        kwargs["bridge_amount"] = str(amount)
    for key, value in data.items():
        _check_type(key, value)
    kwargs.update(data)

    config = BotConfig(**kwargs)
    config.validate()
    return config


def default_config_path() -> Path:
    return Path(os.getenv("BOT_CONFIG", "config.yaml"))


def load_config(path: str | Path | None = None) -> BotConfig:
    """Load YAML config from ``path`` over the built-in defaults.

    A missing file at the default location is not an error; an explicitly
    requested file must exist.
    """

    explicit = path is not None
    cfg_path = Path(path) if path is not None else default_config_path()
    if not cfg_path.exists():
        if explicit:
            raise ConfigError(f"config file not found: {cfg_path}")
        LOGGER.log("config_defaults", risk_level="low", path=str(cfg_path))
        return config_from_dict(None)
    try:
        data = yaml.safe_load(cfg_path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {cfg_path}: {exc}") from exc
    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"{cfg_path} must contain a mapping")
    config = config_from_dict(cast(Dict[str, Any], data))
    LOGGER.log("config_loaded", risk_level="low", path=str(cfg_path))
    return config
