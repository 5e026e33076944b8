"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from accumulator import __version__
from accumulator.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire tracing.

    Must be called ONCE at application startup, before any pipeline runs.

    Instruments:
    - HTTPX clients (gas station)
    - Python logging (bridges to Logfire)

    Pipeline steps are wrapped in ``logfire.span`` by the orchestrator and show
    up as nested spans once this has run.

    Args:
        settings: Application settings containing Logfire token
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="accumulator",
            service_version=__version__,
            environment=f"chain-{settings.chain.chain_id}",
        )

        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        # Continue running - observability is optional
