"""
Submission loop - lands an already signed transaction.

Every round re-broadcasts the same signed bytes (nodes drop unconfirmed
transactions from their forwarding queues under load) and, concurrently,
polls the status of the signature observed on the first successful send.
Both calls are best-effort; only an on-chain execution error ends the loop
early. The loop gives up after ``max_retries`` rounds.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from .exceptions import (
    SubmissionCancelledError,
    SubmissionTimeoutError,
    TransactionFailedError,
)
from .models import (
    ConfirmationStatus,
    SignedTransaction,
    StatusUpdate,
    SubmissionStatus,
    TransientFailure,
)
from .rpc import RpcGateway

logger = logging.getLogger(__name__)

# A minute of retries, with 2 second intervals
RETRY_INTERVAL = 2.0
MAX_RETRIES = 30

StatusCallback = Callable[[StatusUpdate], None]
TransientErrorCallback = Callable[[TransientFailure], None]


class StatusReporter:
    """
    Forwards submission status updates to an optional observer.

    Updates only move forward through created, signed, sent, confirmed and
    each is delivered at most once; anything else is dropped.
    """

    def __init__(self, callback: Optional[StatusCallback] = None):
        self.callback = callback
        self.history: List[StatusUpdate] = []

    @property
    def current(self) -> Optional[SubmissionStatus]:
        return self.history[-1].status if self.history else None

    def emit(self, update: StatusUpdate) -> bool:
        current = self.current
        if current is not None and update.status.order <= current.order:
            logger.debug(f"Ignoring status {update.status.value} after {current.value}")
            return False

        self.history.append(update)

        if self.callback:
            try:
                self.callback(update)
            except Exception as e:
                logger.error(f"Status callback error: {e}")

        return True


class SubmissionLoop:

    def __init__(
        self,
        gateway: RpcGateway,
        signed: SignedTransaction,
        reporter: Optional[StatusReporter] = None,
        retry_interval: float = RETRY_INTERVAL,
        max_retries: int = MAX_RETRIES,
        cancel_event: Optional[asyncio.Event] = None,
        on_transient_error: Optional[TransientErrorCallback] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if retry_interval < 0:
            raise ValueError("retry_interval must be >= 0")

        self.gateway = gateway
        self.signed = signed
        self.reporter = reporter or StatusReporter()
        self.retry_interval = retry_interval
        self.max_retries = max_retries
        self.cancel_event = cancel_event
        self.on_transient_error = on_transient_error
        self._sleep = sleep

        self.signature: Optional[str] = None
        self.status: Optional[ConfirmationStatus] = None
        self.attempts = 0
        self.transient_failures: List[TransientFailure] = []
        self._started = False

    async def run(self) -> str:
        if self._started:
            raise RuntimeError("SubmissionLoop.run() can only be called once")
        self._started = True

        while self.attempts < self.max_retries:
            self._check_cancelled("broadcast")
            self.attempts += 1

            logger.debug(
                f"Broadcasting transaction {self.signature} "
                f"(attempt {self.attempts}/{self.max_retries})"
            )

            known_signature = self.signature
            results = await asyncio.gather(
                self._broadcast(),
                self._poll(known_signature),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            if self.status is not None and self.status.is_confirmed:
                self.reporter.emit(StatusUpdate.confirmed(self.signature, self.status))
                logger.info(
                    f"Transaction {self.status.confirmation_level.value}: {self.signature} "
                    f"after {self.attempts} attempts"
                )
                return self.signature

            if self.attempts < self.max_retries:
                self._check_cancelled("sleep")
                await self._sleep(self.retry_interval)

        logger.error(
            f"Transaction {self.signature} not confirmed after {self.attempts} attempts "
            f"({len(self.transient_failures)} transient failures)"
        )
        raise SubmissionTimeoutError(
            f"Transaction not confirmed after {self.attempts} attempts; it may still land",
            transaction_signature=self.signature,
            attempts=self.attempts,
            last_status=self.status,
        )

    async def _broadcast(self) -> None:
        try:
            signature = await self.gateway.send_raw_transaction(self.signed.raw)
        except Exception as e:
            self._record_transient("broadcast", e)
            return

        if self.signature is None:
            self.signature = signature
            logger.info(f"Transaction sent: {signature}")
            self.reporter.emit(StatusUpdate.sent(signature))
        elif signature != self.signature:
            logger.warning(f"Node returned signature {signature}, keeping {self.signature}")

    async def _poll(self, signature: Optional[str]) -> None:
        if signature is None:
            return

        try:
            status = await self.gateway.get_signature_status(signature)
        except Exception as e:
            self._record_transient("poll", e)
            return

        if status is None:
            return

        self.status = status
        if status.failed:
            logger.error(f"Transaction {signature} failed on-chain: {status.error}")
            raise TransactionFailedError(
                f"Transaction failed: {status.error}",
                transaction_signature=signature,
                on_chain_error=status.error,
            )

    def _record_transient(self, operation: str, error: Exception) -> None:
        failure = TransientFailure(iteration=self.attempts, operation=operation, error=error)
        self.transient_failures.append(failure)
        logger.warning(f"Transient {failure}")

        if self.on_transient_error:
            try:
                self.on_transient_error(failure)
            except Exception as e:
                logger.error(f"Transient error callback failed: {e}")

    def _check_cancelled(self, stage: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.info(f"Submission cancelled before {stage} (attempt {self.attempts})")
            raise SubmissionCancelledError(
                f"Submission cancelled before {stage}",
                transaction_signature=self.signature,
                attempts=self.attempts,
            )


__all__ = [
    "RETRY_INTERVAL",
    "MAX_RETRIES",
    "StatusCallback",
    "TransientErrorCallback",
    "StatusReporter",
    "SubmissionLoop",
]
