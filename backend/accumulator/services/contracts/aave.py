"""Aave v2 reads and call encoders: reserve lookup, reward claim, deposit."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from web3 import AsyncWeb3

from accumulator.config import ContractsConfig
from accumulator.exceptions import TokenNotFound
from accumulator.transactions.models import TokenReference, UnsignedOperation

from .abis import AAVE_DATA_PROVIDER_ABI, AAVE_INCENTIVES_ABI, AAVE_LENDING_POOL_ABI
from .encoding import encode_call

if TYPE_CHECKING:
    from accumulator.services.chain import ChainClient

logger = logging.getLogger(__name__)

REFERRAL_CODE = 0


class AaveContracts:
    def __init__(self, chain: ChainClient, contracts: ContractsConfig, wallet_address: str):
        self.chain = chain
        self.wallet_address = AsyncWeb3.to_checksum_address(wallet_address)
        self.data_provider = chain.contract(contracts.data_provider, AAVE_DATA_PROVIDER_ABI)
        self.incentives = chain.contract(contracts.incentives_controller, AAVE_INCENTIVES_ABI)
        self.lending_pool = chain.contract(contracts.lending_pool, AAVE_LENDING_POOL_ABI)

    async def resolve_token(self, symbol: str) -> TokenReference:
        """Look up a reserve token address by its symbol."""
        reserves = await self.chain.call(
            self.data_provider.functions.getAllReservesTokens(), symbol=symbol
        )
        for reserve_symbol, address in reserves:
            if reserve_symbol == symbol:
                return TokenReference(symbol=symbol, address=address)
        raise TokenNotFound(
            f"No Aave reserve with symbol {symbol}",
            counterpart=self.data_provider.address,
        )

    async def get_a_token_address(self, asset: str) -> str:
        a_token, _stable_debt, _variable_debt = await self.chain.call(
            self.data_provider.functions.getReserveTokensAddresses(
                AsyncWeb3.to_checksum_address(asset)
            ),
            asset=asset,
        )
        return a_token

    async def get_rewards_balance(self, a_token: str) -> int:
        balance = await self.chain.call(
            self.incentives.functions.getRewardsBalance(
                [AsyncWeb3.to_checksum_address(a_token)], self.wallet_address
            ),
            position=a_token,
        )
        return int(balance)

    async def encode_claim(self, a_token: str) -> UnsignedOperation:
        """Claim every pending reward accrued by the aToken position."""
        pending = await self.get_rewards_balance(a_token)
        logger.info(f"Attempting to claim rewards: {pending}")
        return encode_call(
            self.incentives,
            "claimRewards",
            [[AsyncWeb3.to_checksum_address(a_token)], pending, self.wallet_address],
            f"claim {pending} rewards for {a_token}",
        )

    async def encode_deposit(self, asset: str, amount: int) -> UnsignedOperation:
        logger.info(f"Creating deposit tx for amount: {amount}, to assetAddress: {asset}")
        return encode_call(
            self.lending_pool,
            "deposit",
            [AsyncWeb3.to_checksum_address(asset), amount, self.wallet_address, REFERRAL_CODE],
            f"deposit {amount} of {asset}",
        )
