"""
Pytest fixtures for tx-lander tests
"""
import pytest
from typing import Callable, List, Optional, Sequence, Union

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction, VersionedTransaction

from tx_lander.exceptions import RPCConnectionError
from tx_lander.models import (
    ConfirmationLevel,
    ConfirmationStatus,
    PriorityFeeSample,
    SimulationResult,
    TransactionSkeleton,
)

PollResult = Union[ConfirmationStatus, None, Exception]


class FakeClock:
    """Simulated time: sleeping advances ``elapsed`` without waiting."""

    def __init__(self):
        self.elapsed = 0.0
        self.sleeps: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.elapsed += seconds


class FakeGateway:
    """
    Scripted stand-in for RpcGateway.

    ``poll_script`` is consumed one entry per status query; once exhausted
    every further query returns ``default_status``. ``failing_sends`` holds
    1-based send call numbers that raise a transport error.
    """

    def __init__(
        self,
        units_consumed: Optional[int] = 100_000,
        fee_samples: Optional[Sequence[PriorityFeeSample]] = None,
        poll_script: Optional[Sequence[PollResult]] = None,
        default_status: Optional[ConfirmationStatus] = None,
        failing_sends: Sequence[int] = (),
        blockhash_failures: int = 0,
        simulation_error: Optional[Exception] = None,
    ):
        self.blockhash = Hash.new_unique()
        self.units_consumed = units_consumed
        self.fee_samples = list(fee_samples) if fee_samples is not None else [
            PriorityFeeSample(slot=1, fee=5_000),
            PriorityFeeSample(slot=2, fee=50_000),
            PriorityFeeSample(slot=3, fee=20_000),
        ]
        self.poll_script = list(poll_script or [])
        self.default_status = default_status
        self.failing_sends = set(failing_sends)
        self.blockhash_failures = blockhash_failures
        self.simulation_error = simulation_error

        self.blockhash_calls = 0
        self.simulated: List[VersionedTransaction] = []
        self.fee_calls = 0
        self.sent_payloads: List[bytes] = []
        self.polled_signatures: List[str] = []

    async def get_latest_blockhash(self) -> Hash:
        self.blockhash_calls += 1
        if self.blockhash_calls <= self.blockhash_failures:
            raise RPCConnectionError("connection reset")
        return self.blockhash

    async def simulate_transaction(self, tx: VersionedTransaction) -> SimulationResult:
        if self.simulation_error is not None:
            raise self.simulation_error
        self.simulated.append(tx)
        return SimulationResult(units_consumed=self.units_consumed)

    async def get_recent_prioritization_fees(self, accounts=None) -> List[PriorityFeeSample]:
        self.fee_calls += 1
        return list(self.fee_samples)

    async def send_raw_transaction(self, raw: bytes) -> str:
        self.sent_payloads.append(raw)
        if len(self.sent_payloads) in self.failing_sends:
            raise RPCConnectionError("send failed")
        return str(Transaction.from_bytes(raw).signatures[0])

    async def get_signature_status(self, signature: str) -> Optional[ConfirmationStatus]:
        self.polled_signatures.append(signature)
        if self.poll_script:
            result = self.poll_script.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return self.default_status

    async def close(self):
        pass


def pending() -> ConfirmationStatus:
    return ConfirmationStatus(slot=100, confirmation_level=ConfirmationLevel.PROCESSED)


def confirmed() -> ConfirmationStatus:
    return ConfirmationStatus(slot=101, confirmation_level=ConfirmationLevel.CONFIRMED, confirmations=1)


def failed(error=None) -> ConfirmationStatus:
    return ConfirmationStatus(
        slot=102,
        confirmation_level=ConfirmationLevel.PROCESSED,
        error=error or {"InstructionError": [0, {"Custom": 6001}]},
    )


@pytest.fixture
def payer() -> Keypair:
    return Keypair()


@pytest.fixture
def cosigner() -> Keypair:
    return Keypair()


@pytest.fixture
def program_id() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def make_instruction(program_id) -> Callable[..., Instruction]:
    def _make(*signers: Pubkey, data: bytes = b"\x01") -> Instruction:
        accounts = [AccountMeta(pubkey=s, is_signer=True, is_writable=True) for s in signers]
        accounts.append(AccountMeta(pubkey=Pubkey.new_unique(), is_signer=False, is_writable=False))
        return Instruction(program_id=program_id, accounts=accounts, data=data)
    return _make


@pytest.fixture
def skeleton(payer, make_instruction) -> TransactionSkeleton:
    return TransactionSkeleton(
        instructions=[make_instruction(payer.pubkey(), data=b"\x01"), make_instruction(data=b"\x02")],
        fee_payer=payer.pubkey(),
        recent_blockhash=Hash.new_unique(),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
