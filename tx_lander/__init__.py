"""
tx-lander

Lands Solana transactions over an unreliable RPC layer: dynamic compute
budget and priority fee, one-time signing, and a bounded re-broadcast and
confirmation loop.
"""

__version__ = "1.0.0"

from .config import Settings, get_settings
from .exceptions import (
    EstimationError,
    SigningError,
    SubmissionCancelledError,
    SubmissionTimeoutError,
    TransactionFailedError,
    TxLanderError,
)
from .models import (
    ComputeBudget,
    ConfirmationLevel,
    ConfirmationStatus,
    PriorityFeeSample,
    SignedTransaction,
    StatusUpdate,
    SubmissionStatus,
    TransactionSkeleton,
)
from .rpc import RpcGateway
from .transaction import TransactionSender, sign_and_send_transaction

__all__ = [
    "Settings",
    "get_settings",
    "TxLanderError",
    "EstimationError",
    "SigningError",
    "TransactionFailedError",
    "SubmissionTimeoutError",
    "SubmissionCancelledError",
    "ComputeBudget",
    "ConfirmationLevel",
    "ConfirmationStatus",
    "PriorityFeeSample",
    "SignedTransaction",
    "StatusUpdate",
    "SubmissionStatus",
    "TransactionSkeleton",
    "RpcGateway",
    "TransactionSender",
    "sign_and_send_transaction",
]
