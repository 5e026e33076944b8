"""Accumulation pipeline: CLAIM -> APPROVE_SWAP -> SWAP -> APPROVE_DEPOSIT -> DEPOSIT."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import AsyncExitStack
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

import logfire
from pydantic import BaseModel, Field

from accumulator.config import Settings
from accumulator.exceptions import AccumulatorError, PipelineBusy, ShutdownRequested
from accumulator.services.chain import ChainClient
from accumulator.services.contracts import AaveContracts, Erc20Contracts, QuickSwapContracts
from accumulator.services.gas_station import GasStationClient, GasStationConfig
from accumulator.storage import AuditSink
from accumulator.transactions import (
    Broadcaster,
    ConfirmationReceipt,
    ShutdownSignal,
    TokenReference,
    TransactionSigner,
    TxType,
    UnsignedOperation,
)

logger = logging.getLogger("accumulator.pipeline")

T = TypeVar("T")

SLIPPAGE_BUFFER = 1000
ROUNDING_TOLERANCE = 1  # getAmountsOut and the pair's own math can differ by one unit


class PipelineStep(str, Enum):
    CLAIM = "CLAIM"
    APPROVE_SWAP = "APPROVE_SWAP"
    SWAP = "SWAP"
    APPROVE_DEPOSIT = "APPROVE_DEPOSIT"
    DEPOSIT = "DEPOSIT"
    DONE = "DONE"


NEXT_STEP = {
    PipelineStep.CLAIM: PipelineStep.APPROVE_SWAP,
    PipelineStep.APPROVE_SWAP: PipelineStep.SWAP,
    PipelineStep.SWAP: PipelineStep.APPROVE_DEPOSIT,
    PipelineStep.APPROVE_DEPOSIT: PipelineStep.DEPOSIT,
    PipelineStep.DEPOSIT: PipelineStep.DONE,
}


def minimum_swap_output(quote: int, slippage_buffer: int = SLIPPAGE_BUFFER) -> int:
    """Lowest swap output to accept for a router quote (never negative)."""
    return max(quote - slippage_buffer - ROUNDING_TOLERANCE, 0)


class PipelineRun(BaseModel):
    """State carried between steps of one run. Never persisted."""

    step: PipelineStep = PipelineStep.CLAIM
    reward_balance: int | None = None
    swap_quote: int | None = None
    min_swap_output: int | None = None
    swap_deadline: int | None = None
    deposit_balance: int | None = None
    receipts: dict[PipelineStep, ConfirmationReceipt] = Field(default_factory=dict)


class AccumulatorPipeline:
    """Runs the five dependent transactions of one accumulation.

    Each step is signed, broadcast and confirmed before the next one starts.
    Amounts are always re-read from the ledger after a confirmation instead
    of trusting a call's own return value. Any failure ends the run; confirmed
    steps are not rolled back and the next run starts again at CLAIM.
    """

    def __init__(
        self,
        settings: Settings,
        aave: Any,
        erc20: Any,
        quickswap: Any,
        signer: TransactionSigner,
        broadcaster: Broadcaster,
        reward_token: TokenReference,
        deposit_token: TokenReference,
        deposit_a_token: str,
        clock: Callable[[], float] = time.time,
        shutdown: ShutdownSignal | None = None,
    ):
        self.settings = settings
        self.aave = aave
        self.erc20 = erc20
        self.quickswap = quickswap
        self.signer = signer
        self.broadcaster = broadcaster
        self.reward_token = reward_token
        self.deposit_token = deposit_token
        self.deposit_a_token = deposit_a_token
        self.clock = clock
        self.shutdown = shutdown or broadcaster.shutdown
        self._handlers: dict[PipelineStep, Callable[[PipelineRun], Awaitable[None]]] = {
            PipelineStep.CLAIM: self._claim,
            PipelineStep.APPROVE_SWAP: self._approve_swap,
            PipelineStep.SWAP: self._swap,
            PipelineStep.APPROVE_DEPOSIT: self._approve_deposit,
            PipelineStep.DEPOSIT: self._deposit,
        }

    @property
    def swap_path(self) -> list[str]:
        return [self.reward_token.address, self.deposit_token.address]

    async def run(self) -> int:
        """Run every step from CLAIM and return the deposited amount."""
        logger.info(
            f"Starting main sequence, deposit token: {self.deposit_token.symbol} "
            f"({self.deposit_token.address}), award token: {self.reward_token.symbol} "
            f"({self.reward_token.address})"
        )
        run = PipelineRun()

        while run.step is not PipelineStep.DONE:
            with logfire.span("accumulator.step {step}", step=run.step.value):
                try:
                    self._check_shutdown()
                    await self._handlers[run.step](run)
                except AccumulatorError as e:
                    logger.error(f"Step {run.step.value} failed: {e}")
                    raise e.add_context(step=run.step.value)
            run.step = NEXT_STEP[run.step]

        deposit_receipt = run.receipts[PipelineStep.DEPOSIT]
        if deposit_receipt.reverted:
            logger.error(
                f"Deposit of {run.deposit_balance} {self.deposit_token.symbol} reverted "
                f"in block {deposit_receipt.block_number} ({deposit_receipt.tx_hash}); "
                "nothing was deposited"
            )
            return 0

        logger.info(
            f"Deposited {run.deposit_balance} {self.deposit_token.symbol} successfully."
        )
        return run.deposit_balance

    def _check_shutdown(self) -> None:
        if self.shutdown.is_set():
            logger.warning("Shutdown requested, not sending any further transactions")
            raise ShutdownRequested()

    async def _submit(
        self,
        run: PipelineRun,
        operation: UnsignedOperation,
        tx_type: TxType,
        amount: int | None = None,
    ) -> ConfirmationReceipt:
        try:
            self._check_shutdown()
            signed = await self.signer.sign(operation)
            receipt = await self.broadcaster.send(signed, tx_type)
        except AccumulatorError as e:
            raise e.add_context(amount=amount, counterpart=operation.to)
        run.receipts[run.step] = receipt
        return receipt

    async def _claim(self, run: PipelineRun) -> None:
        operation = await self.aave.encode_claim(self.deposit_a_token)
        await self._submit(run, operation, TxType.CLAIM)

        run.reward_balance = await self.erc20.get_balance(self.reward_token.address)
        logger.info(
            "Claimed AAVE incentive rewards, reward token balance after claim: "
            f"{run.reward_balance} {self.reward_token.symbol}"
        )

    async def _approve_swap(self, run: PipelineRun) -> None:
        run.swap_quote = await self.quickswap.get_swap_quote(run.reward_balance, self.swap_path)
        run.min_swap_output = minimum_swap_output(
            run.swap_quote, self.settings.swap.slippage_buffer
        )
        logger.debug(f"Quote for swap: {run.swap_quote}, minimum out: {run.min_swap_output}")

        operation = await self.erc20.encode_approve(
            self.reward_token.address, self.quickswap.router_address, run.reward_balance
        )
        await self._submit(run, operation, TxType.ERC20_APPROVAL, run.reward_balance)

    async def _swap(self, run: PipelineRun) -> None:
        run.swap_deadline = int(self.clock()) + self.settings.swap.deadline_minutes * 60
        operation = await self.quickswap.encode_swap(
            run.reward_balance, run.min_swap_output, self.swap_path, run.swap_deadline
        )
        await self._submit(run, operation, TxType.SWAP, run.reward_balance)
        logger.info(
            f"Performed swap of {run.reward_balance} {self.reward_token.symbol} "
            f"for at least {run.min_swap_output} {self.deposit_token.symbol}"
        )

    async def _approve_deposit(self, run: PipelineRun) -> None:
        run.deposit_balance = await self.erc20.get_balance(self.deposit_token.address)
        logger.info(
            f"Deposit token balance after swap: {run.deposit_balance} {self.deposit_token.symbol}"
        )
        operation = await self.erc20.encode_approve(
            self.deposit_token.address,
            self.settings.contracts.lending_pool,
            run.deposit_balance,
        )
        await self._submit(run, operation, TxType.ERC20_APPROVAL, run.deposit_balance)

    async def _deposit(self, run: PipelineRun) -> None:
        operation = await self.aave.encode_deposit(self.deposit_token.address, run.deposit_balance)
        await self._submit(run, operation, TxType.DEPOSIT, run.deposit_balance)


class PipelineRunner:
    """Lets at most one pipeline run be in flight; extra triggers are refused."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run(self, job: Callable[[], Awaitable[T]]) -> T:
        if not self._lock.acquire(blocking=False):
            raise PipelineBusy("A pipeline run is already in flight; skipping this trigger")
        try:
            return await job()
        finally:
            self._lock.release()


async def run_accumulator(settings: Settings, shutdown: ShutdownSignal | None = None) -> int:
    """Wire the live clients together and run one accumulation."""
    settings.validate_required()

    audit = AuditSink.from_settings(settings)
    audit.ensure_file()

    async with AsyncExitStack() as stack:
        chain = await stack.enter_async_context(
            ChainClient(settings.network_url, settings.chain)
        )
        if settings.gas.price_source == "gas_station":
            fee_oracle: Any = await stack.enter_async_context(
                GasStationClient(
                    GasStationConfig(
                        url=settings.gas.gas_station_url,
                        timeout_seconds=settings.gas.timeout_seconds,
                    )
                )
            )
        else:
            fee_oracle = chain

        aave = AaveContracts(chain, settings.contracts, settings.wallet_address)
        erc20 = Erc20Contracts(chain, settings.wallet_address)
        quickswap = QuickSwapContracts(chain, settings.contracts, settings.wallet_address)

        reward_token = await aave.resolve_token(settings.tokens.award_token)
        deposit_token = await aave.resolve_token(settings.tokens.deposit_token)
        deposit_a_token = await aave.get_a_token_address(deposit_token.address)
        logger.info(f"Deposit position aToken: {deposit_a_token}")

        pipeline = AccumulatorPipeline(
            settings=settings,
            aave=aave,
            erc20=erc20,
            quickswap=quickswap,
            signer=TransactionSigner(chain, fee_oracle, settings),
            broadcaster=Broadcaster(
                chain,
                audit=audit,
                poll_interval=settings.confirmation.poll_interval_seconds,
                shutdown=shutdown,
            ),
            reward_token=reward_token,
            deposit_token=deposit_token,
            deposit_a_token=deposit_a_token,
            shutdown=shutdown,
        )
        return await pipeline.run()
