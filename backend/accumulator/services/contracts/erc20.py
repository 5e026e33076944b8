from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from web3 import AsyncWeb3

from accumulator.transactions.models import UnsignedOperation

from .abis import ERC20_ABI
from .encoding import encode_call

if TYPE_CHECKING:
    from accumulator.services.chain import ChainClient

logger = logging.getLogger(__name__)


class Erc20Contracts:
    def __init__(self, chain: ChainClient, wallet_address: str):
        self.chain = chain
        self.wallet_address = AsyncWeb3.to_checksum_address(wallet_address)

    async def get_balance(self, token: str) -> int:
        return await self.chain.get_token_balance(token, self.wallet_address)

    async def encode_approve(self, token: str, spender: str, amount: int) -> UnsignedOperation:
        logger.info(
            f"Creating erc20 tx approval for amount: {amount}, to who: {spender}, "
            f"erc20Address: {token}"
        )
        return encode_call(
            self.chain.contract(token, ERC20_ABI),
            "approve",
            [AsyncWeb3.to_checksum_address(spender), amount],
            f"approve {spender} for {amount} of {token}",
        )
