import logging
from typing import Any

from web3.contract import AsyncContract
from web3.exceptions import Web3Exception

from accumulator.exceptions import EncodingFailed
from accumulator.transactions.models import UnsignedOperation

logger = logging.getLogger(__name__)


def encode_call(
    contract: AsyncContract,
    fn_name: str,
    args: list[Any],
    description: str,
) -> UnsignedOperation:
    """ABI-encode a contract call into an UnsignedOperation."""
    try:
        data = contract.encode_abi(fn_name, args=args)
    except (Web3Exception, ValueError, TypeError) as e:
        raise EncodingFailed(
            f"Could not encode {fn_name}: {e}", counterpart=contract.address
        ) from e

    logger.debug(f"Encoded {description} for {contract.address}")
    return UnsignedOperation(to=contract.address, data=data, description=description)
