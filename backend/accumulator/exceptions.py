"""Error kinds raised by the accumulator pipeline."""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class AccumulatorError(Exception):
    """Base exception for accumulator failures.

    Carries a context dict (step, amount, counterpart, ...) so an operator can
    diagnose a failure from the message alone.
    """

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def add_context(self, **context: Any) -> AccumulatorError:
        for key, value in context.items():
            if value is not None:
                self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class ConfigurationInvalid(AccumulatorError):
    """Required settings are missing."""

    def __init__(self, missing: list[str]):
        super().__init__(f"Missing required settings: {', '.join(missing)}")
        self.missing = missing


class TokenNotFound(AccumulatorError):
    """Configured symbol is not a reserve of the lending protocol."""

    pass


class CostExceeded(AccumulatorError):
    """Gas price is over the configured ceiling."""

    def __init__(self, observed: Decimal | float, ceiling: Decimal | float):
        super().__init__(
            f"Standard gas price: {observed} is over configuration limit {ceiling}, "
            "skipping transaction!"
        )
        self.observed = observed
        self.ceiling = ceiling


class ContractCallFailed(AccumulatorError):
    """A read-only contract call reverted or returned unusable data."""

    pass


class SigningFailed(AccumulatorError):
    """Could not gather the network facts needed to sign."""

    pass


class EncodingFailed(AccumulatorError):
    """Call data or transaction fields were rejected while encoding or signing."""

    pass


class SubmissionRejected(AccumulatorError):
    """The network refused a signed transaction."""

    def __init__(self, message: str, tx_hash: str | None = None, **context: Any):
        super().__init__(message, tx_hash=tx_hash, **context)
        self.tx_hash = tx_hash


class DuplicateBroadcast(AccumulatorError):
    """A signed transaction was handed to the broadcaster a second time."""

    pass


class NetworkUnavailable(AccumulatorError):
    """RPC node could not be reached or refused the request."""

    pass


class PipelineBusy(AccumulatorError):
    """Another pipeline run is still in flight."""

    pass


class ShutdownRequested(AccumulatorError):
    """Shutdown was requested between steps or while waiting for a confirmation."""

    def __init__(self, tx_hash: str | None = None):
        if tx_hash is None:
            message = "Shutdown requested; no further transactions will be sent"
        else:
            message = (
                "Shutdown requested while waiting for confirmation; "
                "the transaction stays broadcast"
            )
        super().__init__(message, tx_hash=tx_hash)
        self.tx_hash = tx_hash
