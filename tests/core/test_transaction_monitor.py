"""
Tests for the transaction confirmation poll loop.
"""

import asyncio
import itertools
from unittest.mock import AsyncMock

import httpx
import pytest

from lbp_sale.core.errors import NetworkError, TxFailed
from lbp_sale.core.models import PendingSwap, PendingSwapStatus
from lbp_sale.core.monitor import PollToken, TransactionMonitor
from lbp_sale.types.chain import TxInfo

TX_HASH = "6F2B1A0C9E8D7F6A5B4C3D2E1F0A9B8C7D6E5F4A3B2C1D0E9F8A7B6C5D4E3F2A"


def _pending() -> PendingSwap:
    return PendingSwap(instruction_hash=TX_HASH, from_symbol="UST", offer_amount=1_000_000)


@pytest.fixture
def release_calls(monkeypatch):
    """Count PollToken.release calls while keeping its behaviour."""
    calls = []
    original = PollToken.release

    def spy(self):
        calls.append(self.tx_hash)
        original(self)

    monkeypatch.setattr(PollToken, "release", spy)
    return calls


def _monitor(chain, **kwargs):
    statuses = []
    on_confirmed = AsyncMock()
    monitor = TransactionMonitor(
        chain,
        on_confirmed=on_confirmed,
        listener=lambda pending: statuses.append(pending.status),
        poll_interval=0,
        max_errors=kwargs.pop("max_errors", 2),
        timeout_seconds=kwargs.pop("timeout_seconds", 60),
        **kwargs,
    )
    return monitor, statuses, on_confirmed


class TestConfirmation:
    @pytest.mark.asyncio
    async def test_found_on_third_poll(self, chain, release_calls):
        chain.tx_results = [None, None, TxInfo(txhash=TX_HASH, height=100, code=0)]
        monitor, statuses, on_confirmed = _monitor(chain)

        token = monitor.track(_pending())
        pending = await token.wait()

        assert statuses == [
            PendingSwapStatus.SUBMITTED,
            PendingSwapStatus.SUBMITTED,
            PendingSwapStatus.CONFIRMED,
        ]
        assert pending.status == PendingSwapStatus.CONFIRMED
        assert release_calls == [TX_HASH]
        on_confirmed.assert_awaited_once_with(pending)
        assert monitor.active_count == 0

    @pytest.mark.asyncio
    async def test_refresh_runs_after_polling_stopped(self, chain):
        chain.tx_results = [TxInfo(txhash=TX_HASH, code=0)]
        seen = []

        async def on_confirmed(pending):
            seen.append((monitor.get(pending.instruction_hash), token.active))

        monitor = TransactionMonitor(chain, on_confirmed=on_confirmed, poll_interval=0)
        token = monitor.track(_pending())
        await token.wait()

        assert seen == [(None, False)]

    @pytest.mark.asyncio
    async def test_tracking_twice_keeps_one_loop(self, chain):
        chain.tx_results = [None, TxInfo(txhash=TX_HASH, code=0)]
        monitor, _, on_confirmed = _monitor(chain)
        pending = _pending()

        first = monitor.track(pending)
        second = monitor.track(pending)
        await first.wait()

        assert first is second
        on_confirmed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_terminal_swap_not_tracked(self, chain):
        monitor, _, _ = _monitor(chain)
        pending = _pending()
        pending.transition_to(PendingSwapStatus.FAILED)

        with pytest.raises(ValueError):
            monitor.track(pending)


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_on_chain(self, chain, release_calls):
        chain.tx_results = [TxInfo(txhash=TX_HASH, code=5, raw_log="out of gas")]
        monitor, statuses, on_confirmed = _monitor(chain)

        monitor.track(_pending())
        pending = await monitor.wait(TX_HASH)

        assert pending.status == PendingSwapStatus.FAILED
        assert isinstance(pending.error, TxFailed)
        assert pending.error.code == 5
        assert statuses == [PendingSwapStatus.FAILED]
        assert release_calls == [TX_HASH]
        on_confirmed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_network_errors_tolerated_up_to_bound(self, chain):
        request = httpx.Request("GET", "https://lcd.terra.dev")
        chain.tx_results = [httpx.ConnectError("refused", request=request)] * 2 + [
            TxInfo(txhash=TX_HASH, code=0)
        ]
        monitor, _, _ = _monitor(chain, max_errors=2)

        pending = await monitor.track(_pending()).wait()

        assert pending.status == PendingSwapStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_gives_up_after_repeated_network_errors(self, chain):
        request = httpx.Request("GET", "https://lcd.terra.dev")
        chain.tx_results = [httpx.ConnectError("refused", request=request)] * 3
        monitor, _, on_confirmed = _monitor(chain, max_errors=2)

        pending = await monitor.track(_pending()).wait()

        assert pending.status == PendingSwapStatus.FAILED
        assert isinstance(pending.error, NetworkError)
        assert chain.calls.count("tx_info") == 3
        on_confirmed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_times_out(self, chain, release_calls):
        clock = itertools.count(0, 100)
        monitor, statuses, _ = _monitor(chain, timeout_seconds=150, clock=lambda: next(clock))

        pending = await monitor.track(_pending()).wait()

        assert pending.status == PendingSwapStatus.TIMED_OUT
        assert statuses[-1] == PendingSwapStatus.TIMED_OUT
        assert release_calls == [TX_HASH]

    @pytest.mark.asyncio
    async def test_zero_timeout_expires_on_first_tick(self, chain, release_calls):
        monitor, statuses, on_confirmed = _monitor(chain, timeout_seconds=0, clock=lambda: 0.0)

        assert monitor.timeout_seconds == 0
        pending = await monitor.track(_pending()).wait()

        assert pending.status == PendingSwapStatus.TIMED_OUT
        assert statuses == [PendingSwapStatus.TIMED_OUT]
        assert "tx_info" not in chain.calls
        assert release_calls == [TX_HASH]
        on_confirmed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_listener_errors_do_not_stop_polling(self, chain):
        chain.tx_results = [None, TxInfo(txhash=TX_HASH, code=0)]

        def listener(pending):
            raise RuntimeError("display gone")

        monitor = TransactionMonitor(chain, listener=listener, poll_interval=0)

        pending = await monitor.track(_pending()).wait()

        assert pending.status == PendingSwapStatus.CONFIRMED


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_releases_token_once(self, chain, release_calls):
        monitor, _, on_confirmed = _monitor(chain)
        token = monitor.track(_pending())
        for _ in range(5):
            await asyncio.sleep(0)

        assert monitor.cancel(TX_HASH)
        pending = await token.wait()

        assert pending.status == PendingSwapStatus.SUBMITTED
        assert release_calls == [TX_HASH]
        assert monitor.active_count == 0
        on_confirmed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_before_first_poll(self, chain, release_calls):
        monitor, _, _ = _monitor(chain)
        token = monitor.track(_pending())

        await monitor.cancel_all()

        assert not token.active
        assert release_calls == [TX_HASH]
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_cancel_unknown_hash(self, chain):
        monitor, _, _ = _monitor(chain)

        assert not monitor.cancel("NOPE")
        assert await monitor.wait("NOPE") is None
