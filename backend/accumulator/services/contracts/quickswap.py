"""QuickSwap (Uniswap v2 router) quotes and swap encoding."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from web3 import AsyncWeb3

from accumulator.config import ContractsConfig
from accumulator.transactions.models import UnsignedOperation

from .abis import UNISWAP_V2_FACTORY_ABI, UNISWAP_V2_ROUTER_ABI
from .encoding import encode_call

if TYPE_CHECKING:
    from accumulator.services.chain import ChainClient

logger = logging.getLogger(__name__)


class QuickSwapContracts:
    def __init__(self, chain: ChainClient, contracts: ContractsConfig, wallet_address: str):
        self.chain = chain
        self.wallet_address = AsyncWeb3.to_checksum_address(wallet_address)
        self.router = chain.contract(contracts.exchange_router, UNISWAP_V2_ROUTER_ABI)
        self.factory = chain.contract(contracts.exchange_factory, UNISWAP_V2_FACTORY_ABI)

    @property
    def router_address(self) -> str:
        return self.router.address

    async def get_pair_address(self, token_a: str, token_b: str) -> str:
        return await self.chain.call(
            self.factory.functions.getPair(
                AsyncWeb3.to_checksum_address(token_a),
                AsyncWeb3.to_checksum_address(token_b),
            )
        )

    async def get_swap_quote(self, amount_in: int, path: list[str]) -> int:
        """Router estimate of the output for amount_in along path."""
        logger.debug(f"Calculating swap amount out for rewards balance: {amount_in}")
        amounts = await self.chain.call(
            self.router.functions.getAmountsOut(
                amount_in, [AsyncWeb3.to_checksum_address(a) for a in path]
            ),
            amount=amount_in,
            counterpart=self.router.address,
        )
        return int(amounts[-1])

    async def encode_swap(
        self,
        amount_in: int,
        min_out: int,
        path: list[str],
        deadline: int,
    ) -> UnsignedOperation:
        logger.info(f"Creating swap tx for inAmount: {amount_in}, to outAmount: {min_out}")
        return encode_call(
            self.router,
            "swapExactTokensForTokens",
            [
                amount_in,
                min_out,
                [AsyncWeb3.to_checksum_address(a) for a in path],
                self.wallet_address,
                deadline,
            ],
            f"swap {amount_in} for at least {min_out}",
        )
