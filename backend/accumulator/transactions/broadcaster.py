"""Submits signed transactions and blocks until a receipt exists."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from accumulator.exceptions import (
    DuplicateBroadcast,
    NetworkUnavailable,
    ShutdownRequested,
    SubmissionRejected,
)

from .models import ConfirmationReceipt, SignedTransaction, TransactionRecord, TxType
from .shutdown import ShutdownSignal

if TYPE_CHECKING:
    from accumulator.storage.audit import AuditSink

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 15.0


class Broadcaster:
    """Broadcasts each SignedTransaction once and polls for its receipt.

    The poll loop has no timeout: it ends at the first receipt, or when the
    shutdown signal is observed between polls. A broadcast transaction is
    never cancelled or resent.
    """

    def __init__(
        self,
        chain: Any,
        audit: AuditSink | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        shutdown: ShutdownSignal | None = None,
    ):
        self.chain = chain
        self.audit = audit
        self.poll_interval = poll_interval
        self.shutdown = shutdown or ShutdownSignal()
        self._broadcast_hashes: set[str] = set()

    async def send(self, signed: SignedTransaction, tx_type: TxType) -> ConfirmationReceipt:
        if signed.tx_hash in self._broadcast_hashes:
            raise DuplicateBroadcast(
                "Transaction was already broadcast",
                tx_hash=signed.tx_hash,
                tx_type=tx_type.value,
            )
        self._broadcast_hashes.add(signed.tx_hash)

        logger.info(f"Sending signed {tx_type.value} with hash: {signed.tx_hash}")
        try:
            await self.chain.send_raw_transaction(signed.raw_transaction)
        except SubmissionRejected as e:
            logger.error(f"Transaction failed type: {tx_type.value}, hash: {signed.tx_hash}")
            raise e.add_context(tx_hash=signed.tx_hash, tx_type=tx_type.value)
        except NetworkUnavailable as e:
            logger.error(f"Transaction failed type: {tx_type.value}, hash: {signed.tx_hash}")
            raise SubmissionRejected(
                f"Could not submit transaction: {e.message}",
                tx_hash=signed.tx_hash,
                tx_type=tx_type.value,
            ) from e

        receipt = await self.wait_for_receipt(signed.tx_hash)
        if receipt.reverted:
            logger.warning(
                f"{tx_type.value} {signed.tx_hash} was mined in block "
                f"{receipt.block_number} but reverted"
            )
        else:
            logger.info(f"Transaction done, receipt txHash: {receipt.tx_hash}")

        if self.audit is not None:
            self.audit.append_record(TransactionRecord(type=tx_type, hash=signed.tx_hash))
        return receipt

    async def wait_for_receipt(self, tx_hash: str) -> ConfirmationReceipt:
        while True:
            logger.info("Fetching transaction receipt, this might take some time...")
            try:
                receipt = await self.chain.get_receipt(tx_hash)
            except NetworkUnavailable as e:
                logger.warning(f"Receipt poll for {tx_hash} failed, will retry: {e}")
                receipt = None

            if receipt is not None:
                return receipt

            if await self.shutdown.wait(self.poll_interval):
                raise ShutdownRequested(tx_hash)
