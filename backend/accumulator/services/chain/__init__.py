from .client import ChainClient

__all__ = ["ChainClient"]
