"""DZap bridge API adapter.

The bridge protocol is a two-step pipeline: a quote request yields a
:class:`Route`, and that route is spent on exactly one build request whose
response describes the transaction to sign.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import aiohttp

from core.config import NetworkConfig, ZERO_ADDRESS
from core.errors import BuildFailed, RouteConsumed, RouteUnavailable
from core.logger import StructuredLogger

LOGGER = StructuredLogger("bridge_adapter")
log = logging.getLogger(__name__)

NATIVE_DECIMALS = 18

# The native-to-native route needs no real permit, but the field is required.
PLACEHOLDER_PERMIT_DATA = (
    "0x"
    + "00" * 63
    + "40"
    + "00" * 32
)


@dataclass(frozen=True)
class TransferRequest:
    """One self-bridge of native ETH from ``source`` to ``destination``."""

    source: NetworkConfig
    destination: NetworkConfig
    amount_wei: int
    address: str
    slippage: float = 1

    @property
    def recipient(self) -> str:
        return self.address

    @property
    def quote_key(self) -> str:
        return (
            f"{self.source.chain_id}_{ZERO_ADDRESS}-"
            f"{self.destination.chain_id}_{ZERO_ADDRESS}"
        )


@dataclass
class Route:
    """Recommended route for one request; valid for a single build call."""

    request: TransferRequest
    recommended_source: Any
    _consumed: bool = field(default=False, repr=False)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def consume(self) -> Any:
        if self._consumed:
            raise RouteConsumed("route already used for a build request")
        self._consumed = True
        return self.recommended_source


class BridgeAdapter:
    """Talk to the DZap quote and build endpoints over an ``aiohttp`` session."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_url: str = "https://api.dzap.io/v1",
        *,
        integrator_id: str = "dzap",
    ) -> None:
        self.session = session
        self.api_url = api_url.rstrip("/")
        self.integrator_id = integrator_id

    async def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.api_url}{path}"
        log.debug("POST %s %s", url, payload)
        async with self.session.post(url, json=payload) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)

    # ------------------------------------------------------------------
    def quote_payload(self, request: TransferRequest) -> Dict[str, Any]:
        return {
            "fromChain": request.source.chain_id,
            "account": request.address,
            "data": [
                {
                    "amount": str(request.amount_wei),
                    "destDecimals": NATIVE_DECIMALS,
                    "destToken": ZERO_ADDRESS,
                    "slippage": request.slippage,
                    "srcDecimals": NATIVE_DECIMALS,
                    "srcToken": ZERO_ADDRESS,
                    "toChain": request.destination.chain_id,
                }
            ],
            "integratorId": self.integrator_id,
        }

    def build_payload(self, request: TransferRequest, selected_route: Any) -> Dict[str, Any]:
        return {
            "fromChain": request.source.chain_id,
            "data": [
                {
                    "amount": str(request.amount_wei),
                    "srcToken": ZERO_ADDRESS,
                    "destDecimals": NATIVE_DECIMALS,
                    "srcDecimals": NATIVE_DECIMALS,
                    "selectedRoute": selected_route,
                    "destToken": ZERO_ADDRESS,
                    "slippage": request.slippage,
                    "permitData": PLACEHOLDER_PERMIT_DATA,
                    "recipient": request.recipient,
                    "toChain": request.destination.chain_id,
                }
            ],
            "integratorId": self.integrator_id,
            "refundee": request.address,
            "sender": request.address,
            "publicKey": request.address,
        }

    # ------------------------------------------------------------------
    async def quote(self, request: TransferRequest) -> Route:
        """Return the recommended route or raise :class:`RouteUnavailable`."""

        body = await self._post("/bridge/quote", self.quote_payload(request))
        entry = body.get(request.quote_key) if isinstance(body, dict) else None
        recommended = entry.get("recommendedSource") if isinstance(entry, dict) else None
        if not recommended:
            LOGGER.log(
                "route_unavailable",
                network=request.source.name,
                risk_level="low",
                quote_key=request.quote_key,
            )
            raise RouteUnavailable("Failed to get route from quote API.")
        LOGGER.log(
            "quote",
            network=request.source.name,
            risk_level="low",
            destination=request.destination.name,
            amount_wei=str(request.amount_wei),
            route=recommended,
        )
        return Route(request=request, recommended_source=recommended)

    async def build_tx(self, route: Route) -> Dict[str, Any]:
        """Spend ``route`` on a build request; return the successful response body."""

        request = route.request
        body = await self._post("/bridge/buildTx", self.build_payload(request, route.consume()))
        if not isinstance(body, dict) or body.get("status") != "success":
            raw = json.dumps(body, separators=(",", ":"))
            LOGGER.log("build_failed", network=request.source.name, risk_level="low", response=raw)
            raise BuildFailed(raw)
        LOGGER.log("build", network=request.source.name, risk_level="low", to=body.get("to"))
        return body
