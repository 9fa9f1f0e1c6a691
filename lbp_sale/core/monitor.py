"""
Transaction confirmation monitor.

Each submitted swap gets one poll loop, owned by a PollToken. The loop either
reschedules itself after the poll interval or finishes the swap, and the
token is released exactly once on every exit path, including cancellation.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Union

import structlog

from ..config import settings
from ..providers.base import ChainQueryProvider
from .errors import NetworkError, TxFailed, TxNotFoundYet, classify_error
from .models import PendingSwap, PendingSwapStatus

StatusListener = Callable[[PendingSwap], Union[Awaitable[None], None]]
ConfirmedCallback = Callable[[PendingSwap], Awaitable[None]]

_slog = structlog.stdlib.get_logger("lbp_sale.monitor")


class PollToken:
    """Lifetime of one poll loop."""

    def __init__(self, pending: PendingSwap) -> None:
        self.pending = pending
        self._task: Optional[asyncio.Task] = None
        self._released = False

    @property
    def tx_hash(self) -> str:
        return self.pending.instruction_hash

    @property
    def active(self) -> bool:
        return not self._released

    def attach(self, task: asyncio.Task) -> None:
        self._task = task

    def release(self) -> None:
        self._released = True

    def cancel(self) -> bool:
        """Stop the loop; the loop releases the token as it unwinds."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    async def wait(self) -> PendingSwap:
        """Wait for the loop to finish without propagating its cancellation."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self.pending


class TransactionMonitor:
    """
    Polls the chain until a submitted swap is confirmed, fails or times out.

    - "not found" is the normal pending state and just schedules another poll
    - network errors are tolerated up to ``max_errors`` consecutive times
    - a confirmed swap runs ``on_confirmed`` once, after polling has stopped
    """

    def __init__(
        self,
        provider: ChainQueryProvider,
        *,
        on_confirmed: Optional[ConfirmedCallback] = None,
        listener: Optional[StatusListener] = None,
        poll_interval: Optional[float] = None,
        max_errors: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._provider = provider
        self._on_confirmed = on_confirmed
        self._listener = listener
        self.poll_interval = settings.tx_poll_interval_seconds if poll_interval is None else poll_interval
        self.max_errors = settings.tx_poll_max_errors if max_errors is None else max_errors
        self.timeout_seconds = settings.tx_confirmation_timeout_seconds if timeout_seconds is None else timeout_seconds
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._loops: Dict[str, PollToken] = {}

    @property
    def active_count(self) -> int:
        return len(self._loops)

    def get(self, tx_hash: str) -> Optional[PollToken]:
        return self._loops.get(tx_hash)

    def track(self, pending: PendingSwap) -> PollToken:
        """Start polling ``pending``; a swap already being polled keeps its loop."""
        existing = self._loops.get(pending.instruction_hash)
        if existing is not None:
            return existing
        if pending.is_terminal:
            raise ValueError(f"Swap {pending.instruction_hash} is already {pending.status.value}")

        token = PollToken(pending)
        self._loops[pending.instruction_hash] = token
        task = asyncio.create_task(self._run(token), name=f"tx-monitor-{pending.instruction_hash[:12]}")
        # A loop cancelled before its first step never reaches its finally block
        task.add_done_callback(lambda _t: self._reap(token))
        token.attach(task)
        self._logger.info("Monitoring swap %s", pending.instruction_hash)
        return token

    def _reap(self, token: PollToken) -> None:
        if token.active:
            token.release()
        if self._loops.get(token.tx_hash) is token:
            del self._loops[token.tx_hash]

    def cancel(self, tx_hash: str) -> bool:
        token = self._loops.get(tx_hash)
        return token.cancel() if token else False

    async def wait(self, tx_hash: str) -> Optional[PendingSwap]:
        token = self._loops.get(tx_hash)
        return await token.wait() if token else None

    async def cancel_all(self) -> None:
        """Cancel every running loop and wait for them to unwind."""
        tokens = list(self._loops.values())
        for token in tokens:
            token.cancel()
        for token in tokens:
            await token.wait()

    async def _notify(self, pending: PendingSwap) -> None:
        if self._listener is None:
            return
        try:
            result = self._listener(pending)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("Status listener failed for %s: %s", pending.instruction_hash, exc, exc_info=True)

    async def _finish(self, pending: PendingSwap, status: PendingSwapStatus, error: Optional[Exception] = None) -> None:
        pending.transition_to(status, error)
        duration_s = round((pending.finished_at - pending.submitted_at).total_seconds(), 1)
        _slog.info(
            "swap_finished",
            tx_hash=pending.instruction_hash,
            status=status.value,
            duration_s=duration_s,
            error=str(error) if error else None,
        )
        await self._notify(pending)

    async def _run(self, token: PollToken) -> None:
        pending = token.pending
        tx_hash = pending.instruction_hash
        started = self._clock()
        errors = 0
        try:
            while True:
                await asyncio.sleep(self.poll_interval)

                if self._clock() - started >= self.timeout_seconds:
                    await self._finish(
                        pending,
                        PendingSwapStatus.TIMED_OUT,
                        NetworkError(f"No confirmation for {tx_hash} after {self.timeout_seconds}s"),
                    )
                    return

                try:
                    info = await self._provider.tx_info(tx_hash)
                except TxNotFoundYet:
                    info = None
                except Exception as exc:  # noqa: BLE001
                    error = classify_error(exc)
                    errors += 1
                    self._logger.debug("Poll %s failed (%d/%d): %s", tx_hash, errors, self.max_errors, error)
                    if errors > self.max_errors:
                        await self._finish(pending, PendingSwapStatus.FAILED, error)
                        return
                    continue

                errors = 0
                if not info:
                    await self._notify(pending)
                    continue

                if not info.succeeded:
                    await self._finish(
                        pending,
                        PendingSwapStatus.FAILED,
                        TxFailed(tx_hash, info.code, info.raw_log),
                    )
                    return

                await self._finish(pending, PendingSwapStatus.CONFIRMED)
                break
        finally:
            self._reap(token)

        # Polling has stopped; refresh whatever the swap changed
        if self._on_confirmed is not None:
            try:
                await self._on_confirmed(pending)
            except Exception as exc:  # noqa: BLE001
                self._logger.warning("Post-confirmation refresh failed for %s: %s", tx_hash, exc, exc_info=True)

