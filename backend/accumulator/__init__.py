"""Accumulator: claims Aave incentive rewards, swaps them and re-deposits the proceeds."""

__version__ = "0.1.0"

__all__ = ["__version__"]
