import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from solders.hash import Hash
from solders.keypair import Keypair

from .budget import BudgetEstimator
from .config import Settings, get_settings
from .exceptions import BlockhashNotFoundError, TransactionBuildError
from .instructions import inject_budget_instructions, strip_budget_instructions
from .models import ComputeBudget, StatusUpdate, TransactionSkeleton
from .retry import ExponentialBackoff, RetryError, RetryPolicy, retry_async
from .rpc import RpcGateway
from .signer import sign_transaction
from .submission import (
    StatusCallback,
    StatusReporter,
    SubmissionLoop,
    TransientErrorCallback,
)

logger = logging.getLogger(__name__)


async def fetch_latest_blockhash(
    gateway: RpcGateway,
    max_retries: int = 5,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Hash:
    policy = RetryPolicy(max_attempts=max_retries, base_delay=0.1, max_delay=5.0, jitter=0.5)
    try:
        return await retry_async(
            gateway.get_latest_blockhash,
            policy=policy,
            backoff=ExponentialBackoff(),
            sleep=sleep,
        )
    except RetryError as e:
        raise BlockhashNotFoundError(
            "Unable to get latest blockhash",
            context={"attempts": e.attempts, "last_error": str(e.last_exception)},
        ) from e


async def prepare_transaction(
    skeleton: TransactionSkeleton,
    estimator: BudgetEstimator,
    blockhash: Hash,
) -> TransactionSkeleton:
    """Refresh the blockhash and replace any compute budget with a fresh estimate."""
    unbudgeted = strip_budget_instructions(skeleton.with_blockhash(blockhash))
    budget: ComputeBudget = await estimator.estimate(unbudgeted)
    return inject_budget_instructions(unbudgeted, budget)


async def sign_and_send_transaction(
    gateway: RpcGateway,
    signers: Sequence[Keypair],
    skeleton: TransactionSkeleton,
    on_status_update: Optional[StatusCallback] = None,
    *,
    settings: Optional[Settings] = None,
    cancel_event: Optional[asyncio.Event] = None,
    on_transient_error: Optional[TransientErrorCallback] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> str:
    """
    Budget, sign and land a transaction, returning its signature.

    The compute unit limit and price are always re-estimated: budget
    instructions already present in ``skeleton`` are replaced. The fee payer
    defaults to the first signer when the skeleton does not name one.

    Raises:
        EstimationError: budget could not be estimated (nothing was sent)
        SigningError: signers do not match the transaction's signer slots
        TransactionFailedError: the network rejected the transaction
        SubmissionTimeoutError: no confirmation within the retry budget
        SubmissionCancelledError: ``cancel_event`` was set
    """
    if not signers:
        raise TransactionBuildError("At least one signer is required.")

    settings = settings or get_settings()
    reporter = StatusReporter(on_status_update)

    blockhash = await fetch_latest_blockhash(
        gateway,
        max_retries=settings.submission.blockhash_retries,
        sleep=sleep,
    )

    if skeleton.fee_payer is None:
        skeleton = skeleton.with_fee_payer(signers[0].pubkey())

    estimator = BudgetEstimator.from_settings(gateway, settings.fees)
    txn = await prepare_transaction(skeleton, estimator, blockhash)

    reporter.emit(StatusUpdate.created())

    signed = sign_transaction(txn, signers)

    reporter.emit(StatusUpdate.signed())

    loop = SubmissionLoop(
        gateway,
        signed,
        reporter=reporter,
        retry_interval=settings.submission.retry_interval,
        max_retries=settings.submission.max_retries,
        cancel_event=cancel_event,
        on_transient_error=on_transient_error,
        sleep=sleep,
    )
    return await loop.run()


class TransactionSender:
    """Holds a gateway and settings for repeated submissions."""

    def __init__(
        self,
        gateway: RpcGateway,
        settings: Optional[Settings] = None
    ):
        self.gateway = gateway
        self.settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TransactionSender":
        settings = settings or get_settings()
        gateway = RpcGateway(
            settings.rpc.endpoint,
            commitment=settings.rpc.commitment,
            timeout=settings.rpc.timeout,
        )
        return cls(gateway, settings)

    async def close(self):
        await self.gateway.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def send(
        self,
        skeleton: TransactionSkeleton,
        signers: Sequence[Keypair],
        on_status_update: Optional[StatusCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_transient_error: Optional[TransientErrorCallback] = None,
    ) -> str:
        return await sign_and_send_transaction(
            self.gateway,
            signers,
            skeleton,
            on_status_update,
            settings=self.settings,
            cancel_event=cancel_event,
            on_transient_error=on_transient_error,
        )


__all__ = [
    "fetch_latest_blockhash",
    "prepare_transaction",
    "sign_and_send_transaction",
    "TransactionSender",
]
