from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TxType(str, Enum):
    CLAIM = "CLAIM"
    ERC20_APPROVAL = "ERC20_APPROVAL"
    SWAP = "SWAP"
    DEPOSIT = "DEPOSIT"


class TokenReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    address: str


class UnsignedOperation(BaseModel):
    """Destination plus encoded call data, produced by a contract encoder."""

    model_config = ConfigDict(frozen=True)

    to: str
    data: str
    description: str = ""


class SignedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    nonce: int
    sender: str
    to: str
    gas_price_wei: int
    gas_limit: int
    data: str
    chain_id: int
    tx_hash: str
    raw_transaction: bytes
    description: str = ""


class ConfirmationReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    tx_hash: str
    block_number: int
    block_hash: str | None = None
    status: int | None = None
    gas_used: int | None = None

    @property
    def reverted(self) -> bool:
        return self.status == 0


class TransactionRecord(BaseModel):
    """Audit row for one confirmed transaction."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: TxType
    hash: str

    def to_row(self) -> list[str]:
        return [self.timestamp.isoformat(), self.type.value, self.hash]
