from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from solders.hash import Hash
from solders.instruction import Instruction
from solders.pubkey import Pubkey


class ConfirmationLevel(str, Enum):
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    @classmethod
    def parse(cls, value: Any) -> Optional["ConfirmationLevel"]:
        """Accept enum members, strings and solders' TransactionConfirmationStatus."""
        if value is None:
            return None
        text = str(value).lower()
        for level in (cls.FINALIZED, cls.CONFIRMED, cls.PROCESSED):
            if level.value in text:
                return level
        return None


class SubmissionStatus(str, Enum):
    CREATED = "created"
    SIGNED = "signed"
    SENT = "sent"
    CONFIRMED = "confirmed"

    @property
    def order(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [
    SubmissionStatus.CREATED,
    SubmissionStatus.SIGNED,
    SubmissionStatus.SENT,
    SubmissionStatus.CONFIRMED,
]


@dataclass(frozen=True)
class TransactionSkeleton:
    """
    Unsigned transaction contents: ordered instructions, fee payer and
    recent blockhash. Rewriting helpers return new skeletons.
    """
    instructions: Tuple[Instruction, ...] = ()
    fee_payer: Optional[Pubkey] = None
    recent_blockhash: Optional[Hash] = None

    def __post_init__(self):
        object.__setattr__(self, "instructions", tuple(self.instructions))

    def with_instructions(self, instructions: Sequence[Instruction]) -> "TransactionSkeleton":
        return replace(self, instructions=tuple(instructions))

    def with_fee_payer(self, fee_payer: Pubkey) -> "TransactionSkeleton":
        return replace(self, fee_payer=fee_payer)

    def with_blockhash(self, blockhash: Hash) -> "TransactionSkeleton":
        return replace(self, recent_blockhash=blockhash)


@dataclass(frozen=True)
class ComputeBudget:
    unit_limit: int
    micro_lamport_price: int


@dataclass(frozen=True)
class PriorityFeeSample:
    slot: int
    fee: int


@dataclass(frozen=True)
class SimulationResult:
    units_consumed: Optional[int]
    error: Optional[Any] = None
    logs: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ConfirmationStatus:
    slot: Optional[int] = None
    confirmation_level: Optional[ConfirmationLevel] = None
    error: Optional[Any] = None
    confirmations: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def is_confirmed(self) -> bool:
        return self.confirmation_level in (
            ConfirmationLevel.CONFIRMED,
            ConfirmationLevel.FINALIZED,
        )


@dataclass(frozen=True)
class SignedTransaction:
    """Wire bytes of a fully signed transaction. Never mutated after signing."""
    raw: bytes
    signatures: Tuple[str, ...]

    @property
    def signature(self) -> str:
        """Fee payer signature, which the network uses as the transaction id."""
        return self.signatures[0]

    def __len__(self) -> int:
        return len(self.raw)


@dataclass(frozen=True)
class StatusUpdate:
    status: SubmissionStatus
    signature: Optional[str] = None
    result: Optional[ConfirmationStatus] = None

    @classmethod
    def created(cls) -> "StatusUpdate":
        return cls(SubmissionStatus.CREATED)

    @classmethod
    def signed(cls) -> "StatusUpdate":
        return cls(SubmissionStatus.SIGNED)

    @classmethod
    def sent(cls, signature: str) -> "StatusUpdate":
        return cls(SubmissionStatus.SENT, signature=signature)

    @classmethod
    def confirmed(cls, signature: str, result: ConfirmationStatus) -> "StatusUpdate":
        return cls(SubmissionStatus.CONFIRMED, signature=signature, result=result)


@dataclass(frozen=True)
class TransientFailure:
    iteration: int
    operation: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.operation} failed on attempt {self.iteration}: {self.error}"


__all__ = [
    "ConfirmationLevel",
    "SubmissionStatus",
    "TransactionSkeleton",
    "ComputeBudget",
    "PriorityFeeSample",
    "SimulationResult",
    "ConfirmationStatus",
    "SignedTransaction",
    "StatusUpdate",
    "TransientFailure",
]
