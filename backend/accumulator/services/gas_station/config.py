"""Configuration for the gas station client."""

from pydantic import BaseModel


class GasStationConfig(BaseModel):
    """Configuration for the Polygon gas station client."""

    url: str = "https://gasstation-mainnet.matic.network"
    timeout_seconds: float = 10.0
    speed: str = "standard"
