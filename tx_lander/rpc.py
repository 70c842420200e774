import asyncio
import logging
from typing import Any, List, Optional, Sequence

import aiohttp
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import RPCException
from solana.rpc.models import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .exceptions import (
    BlockhashNotFoundError,
    RPCConnectionError,
    RPCError,
    RPCResponseError,
    RPCTimeoutError,
    wrap_exception,
)
from .models import ConfirmationLevel, ConfirmationStatus, PriorityFeeSample, SimulationResult
from .validators import validate_rpc_url

logger = logging.getLogger(__name__)

DEFAULT_RPC_TIMEOUT = 30

# Node-side forwarding retries are disabled; SubmissionLoop owns the retry policy.
SEND_OPTS = TxOpts(
    skip_preflight=True,
    preflight_commitment=Confirmed,
    max_retries=0,
)


class RpcGateway:
    """
    Network seam for the submission core.

    Wraps a solana-py ``AsyncClient`` for the typed RPC methods and an
    aiohttp session for raw JSON-RPC calls the client does not expose.
    The gateway holds no per-submission state and can be shared by
    concurrent submissions.
    """

    def __init__(
        self,
        endpoint: str,
        commitment: str = "confirmed",
        timeout: float = DEFAULT_RPC_TIMEOUT,
        client: Optional[AsyncClient] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.endpoint = validate_rpc_url(endpoint)
        self.commitment = Commitment(commitment)
        self.timeout = timeout
        self.client = client or AsyncClient(endpoint, commitment=self.commitment, timeout=timeout)
        self._session = session
        self._request_id = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"Content-Type": "application/json"})
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    def _translate(self, method: str, error: Exception) -> RPCError:
        if isinstance(error, RPCError):
            return error
        if isinstance(error, asyncio.TimeoutError):
            return wrap_exception(
                error,
                RPCTimeoutError,
                f"{method} timed out",
                rpc_endpoint=self.endpoint,
                timeout_seconds=self.timeout,
            )
        if isinstance(error, RPCException):
            return wrap_exception(
                error,
                RPCResponseError,
                f"{method} returned an error: {error}",
                rpc_endpoint=self.endpoint,
                rpc_error_message=str(error),
            )
        if isinstance(error, (SolanaRpcException, aiohttp.ClientError)):
            return wrap_exception(
                error, RPCConnectionError, f"{method} failed: {error}", rpc_endpoint=self.endpoint
            )
        return wrap_exception(error, RPCError, f"{method} failed: {error}", rpc_endpoint=self.endpoint)

    async def _rpc_request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        session = await self._get_session()
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            async with session.post(
                self.endpoint,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise self._translate(method, e) from e
        except ValueError as e:
            # non-JSON body, e.g. a proxy error page
            raise wrap_exception(
                e,
                RPCResponseError,
                f"{method} returned a malformed response",
                rpc_endpoint=self.endpoint,
            ) from e

        if not isinstance(data, dict):
            raise RPCResponseError(
                f"{method} returned an unexpected payload: {data!r}",
                rpc_endpoint=self.endpoint,
            )

        if "error" in data:
            error = data["error"] or {}
            raise RPCResponseError(
                f"{method} returned an error: {error}",
                rpc_endpoint=self.endpoint,
                rpc_error_code=error.get("code") if isinstance(error, dict) else None,
                rpc_error_message=error.get("message") if isinstance(error, dict) else str(error),
            )

        return data.get("result")

    async def get_latest_blockhash(self) -> Hash:
        try:
            response = await self.client.get_latest_blockhash(commitment=self.commitment)
        except Exception as e:
            raise self._translate("getLatestBlockhash", e) from e

        if not response.value:
            raise BlockhashNotFoundError("Failed to get recent blockhash", rpc_endpoint=self.endpoint)

        logger.debug(f"Fetched blockhash: {response.value.blockhash}")
        return response.value.blockhash

    async def simulate_transaction(self, tx: VersionedTransaction) -> SimulationResult:
        try:
            response = await self.client.simulate_transaction(
                tx,
                sig_verify=False,
                commitment=self.commitment
            )
        except Exception as e:
            raise self._translate("simulateTransaction", e) from e

        result = response.value
        if result is None:
            return SimulationResult(units_consumed=None, error="Empty simulation response")

        return SimulationResult(
            units_consumed=result.units_consumed,
            error=result.err,
            logs=list(result.logs or []),
        )

    async def get_recent_prioritization_fees(
        self,
        accounts: Optional[Sequence[Pubkey]] = None
    ) -> List[PriorityFeeSample]:
        params: List[Any] = []
        if accounts:
            params.append([str(account) for account in accounts])

        result = await self._rpc_request("getRecentPrioritizationFees", params)

        try:
            return [
                PriorityFeeSample(slot=int(entry["slot"]), fee=int(entry["prioritizationFee"]))
                for entry in result or []
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise wrap_exception(
                e,
                RPCResponseError,
                f"getRecentPrioritizationFees returned malformed entries: {result!r}",
                rpc_endpoint=self.endpoint,
            ) from e

    async def send_raw_transaction(self, raw: bytes) -> str:
        try:
            response = await self.client.send_raw_transaction(raw, opts=SEND_OPTS)
        except Exception as e:
            raise self._translate("sendTransaction", e) from e

        if not response.value:
            raise RPCResponseError("Empty response from sendTransaction", rpc_endpoint=self.endpoint)

        return str(response.value)

    async def get_signature_status(self, signature: str) -> Optional[ConfirmationStatus]:
        try:
            response = await self.client.get_signature_statuses([Signature.from_string(signature)])
        except Exception as e:
            raise self._translate("getSignatureStatuses", e) from e

        if not response.value or response.value[0] is None:
            return None

        status = response.value[0]
        return ConfirmationStatus(
            slot=status.slot,
            confirmation_level=ConfirmationLevel.parse(status.confirmation_status),
            error=status.err,
            confirmations=status.confirmations,
        )


__all__ = [
    "RpcGateway",
    "SEND_OPTS",
    "DEFAULT_RPC_TIMEOUT",
]
