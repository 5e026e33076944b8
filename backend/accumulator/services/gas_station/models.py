from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from .exceptions import GasStationResponseError


class GasPriceQuote(BaseModel):
    """Gas price tiers in gwei."""

    safe_low: Decimal | None = None
    standard: Decimal
    fast: Decimal | None = None

    def for_speed(self, speed: str) -> Decimal:
        value = getattr(self, speed, None)
        if value is None:
            raise GasStationResponseError(f"No '{speed}' price in gas station response")
        return value

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GasPriceQuote:
        """Parse both the legacy flat response and the v2 per-tier response."""

        def tier(name: str) -> Decimal | None:
            value = data.get(name)
            if value is None:
                return None
            if isinstance(value, dict):
                value = value.get("maxFee")
                if value is None:
                    return None
            return Decimal(str(value))

        standard = tier("standard")
        if standard is None:
            raise GasStationResponseError(
                f"Gas station response is missing 'standard': {str(data)[:200]}"
            )
        return cls(safe_low=tier("safeLow"), standard=standard, fast=tier("fast"))
