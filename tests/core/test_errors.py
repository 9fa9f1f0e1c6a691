"""
Tests for error classification at the provider boundary.
"""

import httpx
import pytest

from lbp_sale.core.errors import (
    ErrorCategory,
    NetworkError,
    SimulationError,
    SubmissionError,
    SwapAlreadyPending,
    TxFailed,
    UserDeclined,
    classify_error,
    is_user_decline,
)


def _status_error(status: int, body: str = "") -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://lcd.terra.dev/terra/wasm/v1beta1/contracts/x/store")
    response = httpx.Response(status, text=body, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestClassifyError:
    def test_server_error_is_network(self):
        error = classify_error(_status_error(502, "bad gateway"))

        assert isinstance(error, NetworkError)
        assert error.status_code == 502
        assert error.context.recoverable

    def test_rejected_simulation(self):
        error = classify_error(_status_error(400, "ask pool is empty"), simulation=True)

        assert isinstance(error, SimulationError)
        assert error.context.category == ErrorCategory.SIMULATION

    def test_rejected_query_outside_simulation_is_network(self):
        error = classify_error(_status_error(400, "ask pool is empty"))

        assert isinstance(error, NetworkError)
        assert error.status_code == 400

    def test_transport_error(self):
        request = httpx.Request("GET", "https://lcd.terra.dev")
        error = classify_error(httpx.ConnectError("connection refused", request=request))

        assert isinstance(error, NetworkError)
        assert "ConnectError" in error.message

    def test_malformed_payload(self):
        assert isinstance(classify_error(KeyError("query_result")), NetworkError)

    def test_classified_errors_pass_through(self):
        original = TxFailed("ABC", 5, "out of gas")

        assert classify_error(original) is original


class TestUserDecline:
    @pytest.mark.parametrize(
        "error",
        [
            UserDeclined(),
            Exception("User denied transaction signature"),
            RuntimeError("Request rejected by user"),
        ],
    )
    def test_declines_detected(self, error):
        assert is_user_decline(error)

    def test_other_failures_are_not_declines(self):
        assert not is_user_decline(Exception("insufficient fees"))


def test_error_context_carries_tx_hash():
    error = SwapAlreadyPending("ABC123")

    assert isinstance(error, SubmissionError)
    assert error.context.tx_hash == "ABC123"
    assert "tx_hash" not in error.context.details
