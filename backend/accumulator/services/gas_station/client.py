"""Polygon gas station HTTP client."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

import httpx

from .config import GasStationConfig
from .exceptions import GasStationError, GasStationResponseError
from .models import GasPriceQuote

logger = logging.getLogger(__name__)


class GasStationClient:
    """Async client for the gas station price feed."""

    def __init__(self, config: GasStationConfig | None = None):
        self.config = config or GasStationConfig()
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GasStationClient:
        self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("GasStationClient must be used as async context manager")
        return self._client

    async def get_quote(self) -> GasPriceQuote:
        try:
            response = await self.client.get(self.config.url)
        except httpx.RequestError as e:
            raise GasStationError(f"Gas station request failed: {e}") from e

        if response.status_code >= 400:
            raise GasStationError(
                f"Gas station returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GasStationResponseError(f"Invalid JSON from gas station: {e}") from e

        if not isinstance(data, dict):
            raise GasStationResponseError("Gas station response was not an object")
        return GasPriceQuote.from_api(data)

    async def get_gas_price_gwei(self) -> Decimal:
        quote = await self.get_quote()
        price = quote.for_speed(self.config.speed)
        logger.debug(f"Gas station {self.config.speed} price: {price} gwei")
        return price
