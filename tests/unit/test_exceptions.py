"""Tests for the exception hierarchy"""
import pytest

from tx_lander.exceptions import (
    BlockhashNotFoundError,
    EmptyFeeSampleError,
    EstimationError,
    RPCConnectionError,
    RPCError,
    SigningError,
    SubmissionTimeoutError,
    TransactionError,
    TransactionFailedError,
    TxLanderError,
    is_retryable,
    wrap_exception,
)


def test_message_includes_code_and_context():
    error = TransactionFailedError(
        "Transaction failed",
        context={"slot": 12},
        transaction_signature="abc",
        on_chain_error={"InstructionError": [0, "Custom"]},
    )

    assert str(error) == "[TX_005] Transaction failed | Context: slot=12"
    assert error.transaction_signature == "abc"
    assert isinstance(error, TransactionError)


def test_to_dict():
    data = EmptyFeeSampleError("no samples").to_dict()

    assert data["error_code"] == "EST_001"
    assert data["exception_type"] == "EmptyFeeSampleError"
    assert data["is_recoverable"] is True
    assert "timestamp" in data


@pytest.mark.parametrize("error,expected", [
    (RPCConnectionError("down"), True),
    (BlockhashNotFoundError("stale"), True),
    (SubmissionTimeoutError("timed out", attempts=30), True),
    (TransactionFailedError("failed"), False),
    (SigningError("bad key"), False),
    (ValueError("plain"), False),
])
def test_is_retryable(error, expected):
    assert is_retryable(error) is expected


def test_wrap_exception_keeps_original_details():
    wrapped = wrap_exception(OSError("socket closed"), RPCError, rpc_endpoint="http://node")

    assert isinstance(wrapped, RPCError)
    assert wrapped.message == "socket closed"
    assert wrapped.context["original_error"] == "OSError"
    assert wrapped.rpc_endpoint == "http://node"


@pytest.mark.parametrize("cls,code", [
    (TxLanderError, "GENERAL_001"),
    (EstimationError, "EST_000"),
    (EmptyFeeSampleError, "EST_001"),
    (TransactionFailedError, "TX_005"),
    (SubmissionTimeoutError, "TX_006"),
    (RPCConnectionError, "RPC_001"),
    (BlockhashNotFoundError, "RPC_008"),
])
def test_error_codes(cls, code):
    assert cls("x").error_code == code


def test_family_membership():
    assert issubclass(EmptyFeeSampleError, EstimationError)
    assert issubclass(BlockhashNotFoundError, RPCError)
    assert issubclass(SigningError, TransactionError)
