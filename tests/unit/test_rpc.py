"""Tests for the RPC gateway"""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from tx_lander.budget import BudgetEstimator
from tx_lander.exceptions import (
    BlockhashNotFoundError,
    EstimationError,
    InvalidUrlError,
    RPCConnectionError,
    RPCResponseError,
    RPCTimeoutError,
)
from tx_lander.models import ConfirmationLevel, PriorityFeeSample
from tx_lander.rpc import SEND_OPTS, RpcGateway

ENDPOINT = "https://rpc.example.test"


@pytest.fixture
def client():
    mock = MagicMock()
    mock.get_latest_blockhash = AsyncMock()
    mock.simulate_transaction = AsyncMock()
    mock.send_raw_transaction = AsyncMock()
    mock.get_signature_statuses = AsyncMock()
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def rpc(client):
    return RpcGateway(ENDPOINT, client=client)


def mock_session(payload=None, json_error=None):
    response = MagicMock()
    response.json = AsyncMock(return_value=payload, side_effect=json_error)
    session = MagicMock()
    session.closed = False
    session.post.return_value.__aenter__.return_value = response
    session.close = AsyncMock()
    return session


def test_send_options_disable_preflight_and_node_retries():
    assert SEND_OPTS.skip_preflight is True
    assert SEND_OPTS.max_retries == 0


@pytest.mark.asyncio
async def test_latest_blockhash(rpc, client):
    blockhash = Hash.new_unique()
    client.get_latest_blockhash.return_value = MagicMock(value=MagicMock(blockhash=blockhash))

    assert await rpc.get_latest_blockhash() == blockhash


@pytest.mark.asyncio
async def test_latest_blockhash_missing(rpc, client):
    client.get_latest_blockhash.return_value = MagicMock(value=None)

    with pytest.raises(BlockhashNotFoundError):
        await rpc.get_latest_blockhash()


@pytest.mark.asyncio
async def test_simulation_result(rpc, client):
    client.simulate_transaction.return_value = MagicMock(
        value=MagicMock(units_consumed=4_200, err=None, logs=["Program log: ok"])
    )

    result = await rpc.simulate_transaction(MagicMock())

    assert result.units_consumed == 4_200
    assert result.success
    assert result.logs == ["Program log: ok"]
    assert client.simulate_transaction.call_args.kwargs["sig_verify"] is False


@pytest.mark.asyncio
async def test_send_raw_transaction_uses_send_options(rpc, client):
    signature = Signature.new_unique()
    client.send_raw_transaction.return_value = MagicMock(value=signature)

    result = await rpc.send_raw_transaction(b"\x01\x02")

    assert result == str(signature)
    client.send_raw_transaction.assert_awaited_once_with(b"\x01\x02", opts=SEND_OPTS)


@pytest.mark.asyncio
async def test_signature_status_parsed(rpc, client):
    status = MagicMock(
        slot=77,
        confirmation_status=TransactionConfirmationStatus.Finalized,
        err=None,
        confirmations=None,
    )
    client.get_signature_statuses.return_value = MagicMock(value=[status])

    result = await rpc.get_signature_status(str(Signature.new_unique()))

    assert result.slot == 77
    assert result.confirmation_level == ConfirmationLevel.FINALIZED
    assert result.is_confirmed
    assert not result.failed


@pytest.mark.asyncio
async def test_signature_status_unknown(rpc, client):
    client.get_signature_statuses.return_value = MagicMock(value=[None])

    assert await rpc.get_signature_status(str(Signature.new_unique())) is None


@pytest.mark.asyncio
async def test_signature_status_with_error(rpc, client):
    status = MagicMock(slot=3, confirmation_status="processed", err="InstructionError", confirmations=0)
    client.get_signature_statuses.return_value = MagicMock(value=[status])

    result = await rpc.get_signature_status(str(Signature.new_unique()))

    assert result.failed
    assert result.confirmation_level == ConfirmationLevel.PROCESSED


@pytest.mark.asyncio
@pytest.mark.parametrize("raised,expected", [
    (asyncio.TimeoutError(), RPCTimeoutError),
    (aiohttp.ClientConnectionError("refused"), RPCConnectionError),
    (RPCException("node is behind"), RPCResponseError),
])
async def test_transport_errors_are_translated(rpc, client, raised, expected):
    client.send_raw_transaction.side_effect = raised

    with pytest.raises(expected) as exc_info:
        await rpc.send_raw_transaction(b"\x00")

    assert exc_info.value.rpc_endpoint == ENDPOINT
    assert exc_info.value.is_recoverable


@pytest.mark.asyncio
async def test_prioritization_fees_parsed(rpc, monkeypatch):
    request = AsyncMock(return_value=[
        {"slot": 10, "prioritizationFee": 0},
        {"slot": 11, "prioritizationFee": 25_000},
    ])
    monkeypatch.setattr(rpc, "_rpc_request", request)
    account = Pubkey.new_unique()

    samples = await rpc.get_recent_prioritization_fees([account])

    assert samples == [PriorityFeeSample(10, 0), PriorityFeeSample(11, 25_000)]
    request.assert_awaited_once_with("getRecentPrioritizationFees", [[str(account)]])


@pytest.mark.asyncio
async def test_prioritization_fees_over_json_rpc(client):
    session = mock_session({"jsonrpc": "2.0", "id": 1, "result": [{"slot": 5, "prioritizationFee": 9}]})
    rpc = RpcGateway(ENDPOINT, client=client, session=session)

    samples = await rpc.get_recent_prioritization_fees()

    assert samples == [PriorityFeeSample(5, 9)]
    payload = session.post.call_args.kwargs["json"]
    assert payload["method"] == "getRecentPrioritizationFees"
    assert payload["params"] == []


@pytest.mark.asyncio
async def test_json_rpc_error_response(client):
    session = mock_session({"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}})
    rpc = RpcGateway(ENDPOINT, client=client, session=session)

    with pytest.raises(RPCResponseError) as exc_info:
        await rpc.get_recent_prioritization_fees()

    assert exc_info.value.rpc_error_code == -32601
    assert exc_info.value.rpc_error_message == "Method not found"


@pytest.mark.asyncio
async def test_close_releases_client_and_session(client):
    session = mock_session({})
    rpc = RpcGateway(ENDPOINT, client=client, session=session)

    async with rpc:
        pass

    session.close.assert_awaited_once()
    client.close.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("session", [
    mock_session(json_error=json.JSONDecodeError("Expecting value", "<html>502</html>", 0)),
    mock_session(None),
    mock_session(["not", "an", "envelope"]),
    mock_session({"jsonrpc": "2.0", "id": 1, "result": [{"slot": 5}]}),
    mock_session({"jsonrpc": "2.0", "id": 1, "result": [{"slot": 5, "prioritizationFee": "lots"}]}),
    mock_session({"jsonrpc": "2.0", "id": 1, "result": 42}),
], ids=["html-body", "null-body", "list-body", "missing-fee", "non-numeric-fee", "scalar-result"])
async def test_malformed_fee_responses_are_rpc_errors(client, session):
    rpc = RpcGateway(ENDPOINT, client=client, session=session)

    with pytest.raises(RPCResponseError) as exc_info:
        await rpc.get_recent_prioritization_fees()

    assert exc_info.value.rpc_endpoint == ENDPOINT
    # reaches the estimator as an estimation failure, before anything is signed
    with pytest.raises(EstimationError):
        await BudgetEstimator(rpc).estimate_priority_fee()


@pytest.mark.asyncio
async def test_translated_errors_keep_original_details(rpc, client):
    client.send_raw_transaction.side_effect = aiohttp.ClientConnectionError("refused")

    with pytest.raises(RPCConnectionError) as exc_info:
        await rpc.send_raw_transaction(b"\x00")

    assert exc_info.value.context["original_error"] == "ClientConnectionError"
    assert exc_info.value.context["original_message"] == "refused"


@pytest.mark.parametrize("endpoint", ["", "ftp://rpc.example.test", "rpc.example.test"])
def test_gateway_rejects_invalid_endpoint(client, endpoint):
    with pytest.raises(InvalidUrlError):
        RpcGateway(endpoint, client=client)
