"""Polygon gas station fee price oracle."""

from .client import GasStationClient
from .config import GasStationConfig
from .exceptions import GasStationError, GasStationResponseError
from .models import GasPriceQuote

__all__ = [
    "GasStationClient",
    "GasStationConfig",
    "GasStationError",
    "GasStationResponseError",
    "GasPriceQuote",
]
