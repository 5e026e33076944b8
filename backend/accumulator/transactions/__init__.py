"""Transaction engine: cost guard, signer, broadcaster/confirmer."""

from .broadcaster import Broadcaster
from .cost_guard import check_gas_price
from .models import (
    ConfirmationReceipt,
    SignedTransaction,
    TokenReference,
    TransactionRecord,
    TxType,
    UnsignedOperation,
)
from .shutdown import ShutdownSignal
from .signer import TransactionSigner

__all__ = [
    "Broadcaster",
    "check_gas_price",
    "ConfirmationReceipt",
    "SignedTransaction",
    "TokenReference",
    "TransactionRecord",
    "TxType",
    "UnsignedOperation",
    "ShutdownSignal",
    "TransactionSigner",
]
