"""Gas price ceiling check, run before every signing."""

import logging
from decimal import Decimal

from accumulator.exceptions import CostExceeded

logger = logging.getLogger(__name__)


def check_gas_price(
    observed_gwei: Decimal | float,
    ceiling_gwei: Decimal | float | None,
) -> None:
    """Raise CostExceeded when the observed price is over the ceiling.

    No ceiling configured means every price is accepted. A price equal to the
    ceiling is accepted.
    """
    if ceiling_gwei is None:
        return
    if Decimal(str(observed_gwei)) > Decimal(str(ceiling_gwei)):
        logger.warning(
            f"Gas price {observed_gwei} gwei is over the limit of {ceiling_gwei} gwei"
        )
        raise CostExceeded(observed_gwei, ceiling_gwei)
