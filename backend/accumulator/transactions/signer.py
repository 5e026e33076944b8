"""Builds and signs legacy (gasPrice) transactions for the configured wallet."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from eth_account import Account
from web3 import Web3
from web3.exceptions import Web3Exception

from accumulator.config import Settings
from accumulator.exceptions import AccumulatorError, EncodingFailed, SigningFailed
from accumulator.services.gas_station import GasStationError

from .cost_guard import check_gas_price
from .models import SignedTransaction, UnsignedOperation

logger = logging.getLogger(__name__)

LOOKUP_ERRORS = (AccumulatorError, GasStationError, Web3Exception, ValueError)


class TransactionSigner:
    """Turns an UnsignedOperation into a broadcast-ready SignedTransaction.

    Reads the sender's nonce and the current fee price, runs the cost guard
    and signs with the wallet key. Nothing is mutated on-chain or locally.
    """

    def __init__(self, chain: Any, fee_oracle: Any, settings: Settings):
        self.chain = chain
        self.fee_oracle = fee_oracle
        self.settings = settings
        self.sender = Web3.to_checksum_address(settings.wallet_address)

    async def _fetch_nonce(self) -> int:
        try:
            return await self.chain.get_transaction_count(self.sender)
        except LOOKUP_ERRORS as e:
            raise SigningFailed(
                f"Could not fetch transaction count: {e}", sender=self.sender
            ) from e

    async def _fetch_gas_price(self) -> Decimal:
        try:
            return Decimal(str(await self.fee_oracle.get_gas_price_gwei()))
        except LOOKUP_ERRORS as e:
            raise SigningFailed(f"Could not fetch gas price: {e}") from e

    async def sign(self, operation: UnsignedOperation) -> SignedTransaction:
        nonce = await self._fetch_nonce()
        gas_price_gwei = await self._fetch_gas_price()

        check_gas_price(gas_price_gwei, self.settings.gas.price_limit_gwei)

        gas_limit = self.settings.gas.gas_limit
        chain_id = self.settings.chain.chain_id
        try:
            gas_price_wei = Web3.to_wei(gas_price_gwei, "gwei")
            raw_tx = {
                "nonce": nonce,
                "from": self.sender,
                "to": Web3.to_checksum_address(operation.to),
                "gasPrice": gas_price_wei,
                "gas": gas_limit,
                "value": 0,
                "data": operation.data,
                "chainId": chain_id,
            }
            signed = Account.sign_transaction(raw_tx, self.settings.wallet_private_key)
        except (ValueError, TypeError, Web3Exception) as e:
            raise EncodingFailed(
                f"Could not sign transaction: {e}", counterpart=operation.to
            ) from e

        tx_hash = Web3.to_hex(signed.hash)
        logger.debug(
            f"Signed {operation.description or 'transaction'}: nonce={nonce} "
            f"gas_price={gas_price_gwei} gwei hash={tx_hash}"
        )
        return SignedTransaction(
            nonce=nonce,
            sender=self.sender,
            to=raw_tx["to"],
            gas_price_wei=gas_price_wei,
            gas_limit=gas_limit,
            data=operation.data,
            chain_id=chain_id,
            tx_hash=tx_hash,
            raw_transaction=bytes(signed.raw_transaction),
            description=operation.description,
        )
