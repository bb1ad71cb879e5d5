"""
Unit tests для ErrorClassifier.

Порядок правил: отказ пользователя → insufficient funds → revert контракта →
сеть → unknown.
"""

import asyncio

import pytest

from btc1_client.core.errors import (
    ConfirmationTimeout,
    ContractValidationError,
    ErrorKind,
    TransactionError,
)
from btc1_client.orchestration.error_classifier import KNOWN_REVERT_MESSAGES, classify


class RpcError(Exception):
    """Исключение провайдера с EIP-1193 кодом."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class TestUserRejection:
    @pytest.mark.parametrize(
        "raw",
        [
            "MetaMask Tx Signature: User denied transaction signature.",
            "User rejected the request.",
            RpcError("request refused", code=4001),
            {"code": 4001, "message": "rejected"},
        ],
    )
    def test_rejection(self, raw):
        assert classify(raw).kind == ErrorKind.USER_REJECTED

    def test_rejection_wins_over_other_markers(self):
        err = classify("User denied transaction: insufficient funds for gas")
        assert err.kind == ErrorKind.USER_REJECTED
        assert err.user_message == "Transaction cancelled"


class TestInsufficientFunds:
    def test_gas(self):
        err = classify(Exception("insufficient funds for gas * price + value"))
        assert err.kind == ErrorKind.INSUFFICIENT_FUNDS
        assert err.user_message == "Insufficient funds"

    def test_funds_wins_over_revert(self):
        err = classify("execution reverted: insufficient funds")
        assert err.kind == ErrorKind.INSUFFICIENT_FUNDS


class TestContractRevert:
    def test_known_reason(self):
        err = classify("Error: execution reverted: Vault: collateral ratio too low")

        assert isinstance(err, ContractValidationError)
        assert err.reason == "Vault: collateral ratio too low"
        assert err.user_message == KNOWN_REVERT_MESSAGES["Vault: collateral ratio too low"]

    def test_trailing_period_dropped(self):
        err = classify("execution reverted: Vault: collateral ratio too low.")

        assert err.reason == "Vault: collateral ratio too low"
        assert err.user_message == KNOWN_REVERT_MESSAGES["Vault: collateral ratio too low"]

    def test_stale_price(self):
        err = classify({"code": -32603, "message": "Internal JSON-RPC error.",
                        "data": {"message": "execution reverted: PriceOracle: price is stale"}})

        assert err.kind == ErrorKind.CONTRACT_VALIDATION_ERROR
        assert err.reason == "PriceOracle: price is stale"
        assert "stale" in err.user_message

    def test_unknown_reason_keeps_reason(self):
        err = classify('reverted with reason string "Vault: paused"')

        assert err.kind == ErrorKind.CONTRACT_VALIDATION_ERROR
        assert err.reason == "Vault: paused"
        assert err.user_message == ContractValidationError.default_message

    def test_bare_execution_reverted(self):
        err = classify("Execution Reverted")
        assert err.kind == ErrorKind.CONTRACT_VALIDATION_ERROR
        assert err.reason == "execution reverted"

    def test_internal_rpc_error(self):
        err = classify("Internal JSON-RPC error.")

        assert err.kind == ErrorKind.CONTRACT_VALIDATION_ERROR
        assert err.reason == "Internal JSON-RPC error"
        assert err.user_message.startswith("Contract execution failed")

    def test_user_message_has_no_raw_payload(self):
        raw = "execution reverted: BTC1USD: caller is not vault {stack: 0xdeadbeef}"
        err = classify(raw)

        assert err.raw == raw
        assert "0xdeadbeef" not in err.user_message


class TestNetwork:
    @pytest.mark.parametrize(
        "raw",
        [
            TimeoutError(),
            asyncio.TimeoutError(),
            ConnectionResetError("peer gone"),
            "Network request failed",
            "request timed out",
            "fetch failed",
        ],
    )
    def test_network(self, raw):
        err = classify(raw)
        assert err.kind == ErrorKind.NETWORK_ERROR
        assert err.user_message == "Network error - please try again"


class TestUnknown:
    def test_unrecognized(self):
        err = classify(ValueError("something odd"))

        assert err.kind == ErrorKind.UNKNOWN
        assert err.raw == "something odd"
        assert err.user_message == "Transaction failed"

    def test_empty_exception_uses_type_name(self):
        assert classify(RuntimeError()).raw == "RuntimeError"

    def test_never_returns_none(self):
        for raw in (None, "", 0, object()):
            assert isinstance(classify(raw), TransactionError)


class TestPassThrough:
    def test_already_classified(self):
        original = ConfirmationTimeout(raw="0xtx1")
        assert classify(original) is original
