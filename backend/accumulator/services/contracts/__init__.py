"""Contract ABIs, reads and call encoders."""

from .aave import AaveContracts
from .erc20 import Erc20Contracts
from .quickswap import QuickSwapContracts

__all__ = [
    "AaveContracts",
    "Erc20Contracts",
    "QuickSwapContracts",
]
