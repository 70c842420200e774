"""
Exception Hierarchy for tx-lander.

This module defines the error taxonomy for the transaction submission core,
from budget estimation and signing through RPC transport and on-chain
execution.

Each exception includes:
- Unique error code for logging and debugging
- Descriptive message
- Optional context dictionary for additional debugging info
- is_recoverable flag indicating if the caller may retry the whole submission
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
from datetime import datetime, timezone


# =============================================================================
# BASE EXCEPTIONS
# =============================================================================

@dataclass
class TxLanderError(Exception):
    """
    Base exception for all tx-lander errors.

    Attributes:
        message: Human-readable error description
        error_code: Unique identifier for the error type (e.g., "TX_005")
        context: Optional dictionary with debugging information
        is_recoverable: Whether the caller may retry the operation
        timestamp: When the error occurred
    """
    message: str
    error_code: str = "GENERAL_001"
    context: dict[str, Any] = field(default_factory=dict)
    is_recoverable: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the error message with code and context."""
        base = f"[{self.error_code}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base += f" | Context: {context_str}"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "is_recoverable": self.is_recoverable,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        return self.format_message()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"error_code={self.error_code!r}, "
            f"message={self.message!r}, "
            f"is_recoverable={self.is_recoverable})"
        )


@dataclass
class ConfigurationError(TxLanderError):
    """Error in configuration or settings."""
    error_code: str = "CONFIG_001"
    is_recoverable: bool = False


# =============================================================================
# ESTIMATION EXCEPTIONS
# =============================================================================

@dataclass
class EstimationError(TxLanderError):
    """Compute budget could not be estimated; nothing was broadcast."""
    error_code: str = "EST_000"
    is_recoverable: bool = True


@dataclass
class EmptyFeeSampleError(EstimationError):
    """The node returned no recent prioritization fees."""
    error_code: str = "EST_001"


@dataclass
class SimulationError(EstimationError):
    """Transaction simulation could not be performed."""
    error_code: str = "EST_002"
    simulation_logs: list[str] = field(default_factory=list)


# =============================================================================
# TRANSACTION EXCEPTIONS
# =============================================================================

@dataclass
class TransactionError(TxLanderError):
    """Base exception for transaction-related errors."""
    error_code: str = "TX_000"
    transaction_signature: Optional[str] = None


@dataclass
class TransactionBuildError(TransactionError):
    """Transaction skeleton cannot be compiled into a message."""
    error_code: str = "TX_001"
    is_recoverable: bool = False


@dataclass
class SigningError(TransactionError):
    """Failed to sign transaction."""
    error_code: str = "TX_002"
    is_recoverable: bool = False


@dataclass
class SignerMismatchError(SigningError):
    """A signing key is not one of the transaction's required signers."""
    error_code: str = "TX_003"
    signer: Optional[str] = None


@dataclass
class MissingSignatureError(SigningError):
    """A required signer slot was left unsigned."""
    error_code: str = "TX_004"
    missing_signers: list[str] = field(default_factory=list)


@dataclass
class TransactionFailedError(TransactionError):
    """The network reported a definite on-chain execution failure."""
    error_code: str = "TX_005"
    is_recoverable: bool = False
    on_chain_error: Any = None


@dataclass
class SubmissionTimeoutError(TransactionError):
    """
    Retry budget exhausted without observing confirmation.

    The transaction may still land after this is raised; callers holding
    ``transaction_signature`` can keep checking its status.
    """
    error_code: str = "TX_006"
    is_recoverable: bool = True
    attempts: int = 0
    last_status: Any = None


@dataclass
class SubmissionCancelledError(TransactionError):
    """Submission abandoned by the caller."""
    error_code: str = "TX_007"
    is_recoverable: bool = False
    attempts: int = 0


# =============================================================================
# RPC EXCEPTIONS
# =============================================================================

@dataclass
class RPCError(TxLanderError):
    """Base exception for RPC-related errors."""
    error_code: str = "RPC_000"
    is_recoverable: bool = True
    rpc_endpoint: Optional[str] = None


@dataclass
class RPCConnectionError(RPCError):
    """Failed to connect to RPC endpoint."""
    error_code: str = "RPC_001"


@dataclass
class RPCTimeoutError(RPCError):
    """RPC request timed out."""
    error_code: str = "RPC_002"
    timeout_seconds: Optional[float] = None


@dataclass
class RPCResponseError(RPCError):
    """RPC returned an error response."""
    error_code: str = "RPC_004"
    rpc_error_code: Optional[int] = None
    rpc_error_message: Optional[str] = None


@dataclass
class BlockhashNotFoundError(RPCError):
    """Recent blockhash not available."""
    error_code: str = "RPC_008"


# =============================================================================
# VALIDATION EXCEPTIONS
# =============================================================================

@dataclass
class ValidationError(TxLanderError):
    """Base exception for validation errors."""
    error_code: str = "VAL_000"
    is_recoverable: bool = False


@dataclass
class InvalidAddressError(ValidationError):
    """Invalid Solana address format."""
    error_code: str = "VAL_001"
    invalid_address: Optional[str] = None


@dataclass
class InvalidUrlError(ValidationError):
    """RPC URL is malformed or uses an unsupported scheme."""
    error_code: str = "VAL_002"
    url: Optional[str] = None


@dataclass
class InvalidKeypairError(ValidationError):
    """Keypair file missing or malformed."""
    error_code: str = "VAL_003"
    path: Optional[str] = None


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, TxLanderError):
        return error.is_recoverable
    return False


def wrap_exception(
    original: Exception,
    wrapper_class: type[TxLanderError],
    message: Optional[str] = None,
    **kwargs: Any
) -> TxLanderError:
    """Wrap a generic exception in a TxLanderError subclass."""
    msg = message or str(original)
    context = kwargs.pop("context", {})
    context["original_error"] = type(original).__name__
    context["original_message"] = str(original)

    return wrapper_class(
        message=msg,
        context=context,
        **kwargs
    )


__all__ = [
    "TxLanderError", "ConfigurationError",
    "EstimationError", "EmptyFeeSampleError", "SimulationError",
    "TransactionError", "TransactionBuildError", "SigningError",
    "SignerMismatchError", "MissingSignatureError", "TransactionFailedError",
    "SubmissionTimeoutError", "SubmissionCancelledError",
    "RPCError", "RPCConnectionError", "RPCTimeoutError", "RPCResponseError",
    "BlockhashNotFoundError", "ValidationError", "InvalidAddressError",
    "InvalidUrlError", "InvalidKeypairError",
    "is_retryable", "wrap_exception",
]
