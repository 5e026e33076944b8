from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any

import aiohttp
from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.contract.async_contract import AsyncContractFunction
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    TransactionNotFound,
    Web3Exception,
    Web3RPCError,
)

from accumulator.config import ChainConfig
from accumulator.exceptions import ContractCallFailed, NetworkUnavailable, SubmissionRejected
from accumulator.services.contracts.abis import ERC20_ABI
from accumulator.transactions.models import ConfirmationReceipt

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError)
READ_ERRORS = (*TRANSPORT_ERRORS, Web3RPCError)
CALL_FAILURES = (ContractLogicError, BadFunctionCallOutput)


class ChainClient:
    """Async JSON-RPC reader/writer for one EVM network."""

    def __init__(self, network_url: str, config: ChainConfig | None = None):
        self.network_url = network_url
        self.config = config or ChainConfig()
        self._w3: AsyncWeb3 | None = None

    async def __aenter__(self) -> ChainClient:
        self._w3 = AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                self.network_url,
                request_kwargs={"timeout": self.config.request_timeout_seconds},
            )
        )
        logger.info(f"Connected ChainClient (chain_id={self.config.chain_id})")
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._w3:
            await self._w3.provider.disconnect()
            self._w3 = None
            logger.info("Closed ChainClient")

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            raise RuntimeError("ChainClient must be used as async context manager")
        return self._w3

    def contract(self, address: str, abi: list[dict[str, Any]]) -> AsyncContract:
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=abi
        )

    async def get_transaction_count(self, address: str) -> int:
        try:
            return await self.w3.eth.get_transaction_count(
                AsyncWeb3.to_checksum_address(address), "latest"
            )
        except READ_ERRORS as e:
            raise NetworkUnavailable(f"Could not read nonce: {e}", address=address) from e

    async def get_gas_price_gwei(self) -> Decimal:
        try:
            wei = await self.w3.eth.gas_price
        except READ_ERRORS as e:
            raise NetworkUnavailable(f"Could not read gas price: {e}") from e
        return Decimal(AsyncWeb3.from_wei(wei, "gwei"))

    async def call(self, function: AsyncContractFunction, **context: Any) -> Any:
        """Run a read-only contract call."""
        try:
            return await function.call()
        except CALL_FAILURES as e:
            context.setdefault("counterpart", function.address)
            raise ContractCallFailed(
                f"Contract call {function.fn_name} failed: {e}", **context
            ) from e
        except READ_ERRORS as e:
            raise NetworkUnavailable(
                f"Contract call {function.fn_name} failed: {e}", **context
            ) from e

    async def get_token_balance(self, token: str, owner: str) -> int:
        """ERC-20 balance in the token's smallest unit."""
        function = self.contract(token, ERC20_ABI).functions.balanceOf(
            AsyncWeb3.to_checksum_address(owner)
        )
        balance = await self.call(function, token=token, owner=owner)
        return int(balance)

    async def get_receipt(self, tx_hash: str) -> ConfirmationReceipt | None:
        """Receipt for tx_hash, or None while the transaction is pending."""
        try:
            receipt = await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except READ_ERRORS as e:
            raise NetworkUnavailable(
                f"Could not fetch receipt: {e}", tx_hash=tx_hash
            ) from e
        if receipt is None:
            return None

        block_hash = receipt.get("blockHash")
        return ConfirmationReceipt(
            tx_hash=AsyncWeb3.to_hex(receipt["transactionHash"]),
            block_number=receipt["blockNumber"],
            block_hash=AsyncWeb3.to_hex(block_hash) if block_hash else None,
            status=receipt.get("status"),
            gas_used=receipt.get("gasUsed"),
        )

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(raw_transaction)
        except TRANSPORT_ERRORS as e:
            raise NetworkUnavailable(f"Could not submit transaction: {e}") from e
        except (Web3Exception, ValueError) as e:
            raise SubmissionRejected(f"Node rejected transaction: {e}") from e
        return AsyncWeb3.to_hex(tx_hash)
