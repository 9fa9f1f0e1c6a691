"""SwapOrchestrator picks the swap variant, applies the fee margin and submits."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Tuple

import structlog

from ..config import Settings, settings as default_settings
from ..providers.wallet import WalletSigner
from .amounts import ceil_mul
from .errors import (
    InsufficientBalance,
    SubmissionError,
    SwapAlreadyPending,
    UnknownAsset,
    WalletNotConnected,
    is_user_decline,
)
from .fee_estimator import FeeEstimator
from .instructions import InstructionBuilder, SwapInstruction
from .models import PendingSwap, Quote, SwapDirection
from .monitor import TransactionMonitor
from .pair_state import PairStateCache
from .quote_engine import QuoteEngine

_slog = structlog.stdlib.get_logger("lbp_sale.swap")


class SwapOrchestrator:
    """
    Builds and submits the swap for the active pair.

    - native symbol: native-origin swap, clamped so amount plus fee fits the balance
    - sale token symbol: token-origin swap, fees are paid in native so no clamp
    - anything else: UnknownAsset

    Only one swap may be outstanding; it is handed to the TransactionMonitor
    as soon as the wallet returns a hash.
    """

    def __init__(
        self,
        state: PairStateCache,
        quotes: QuoteEngine,
        fees: FeeEstimator,
        monitor: TransactionMonitor,
        wallet: WalletSigner,
        *,
        wallet_address: str = "",
        config: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._state = state
        self._quotes = quotes
        self._fees = fees
        self._monitor = monitor
        self._wallet = wallet
        self._config = config or default_settings
        self._logger = logger or logging.getLogger(__name__)
        self.wallet_address = wallet_address
        self._pending: Optional[PendingSwap] = None
        self._submitting = False

    @property
    def pending_swap(self) -> Optional[PendingSwap]:
        """The outstanding swap; terminal swaps are discarded."""
        if self._pending is not None and self._pending.is_terminal:
            self._pending = None
        return self._pending

    def discard_pending(self) -> None:
        self._pending = None

    @property
    def safety_margin(self) -> Decimal:
        return self._config.fee_safety_margin

    @staticmethod
    def clamp_native_amount(amount: int, balance: int, max_fee: int, margin: Decimal) -> int:
        """
        Reduce ``amount`` so that it plus the fee cannot exceed ``balance``.

        When ``amount + max_fee`` fits, the amount is returned unchanged.
        Otherwise it becomes ``balance - ceil(max_fee * margin)``.
        """
        if amount + max_fee <= balance:
            return amount
        reserved = ceil_mul(max_fee, margin)
        clamped = balance - reserved
        if clamped <= 0:
            raise InsufficientBalance(
                f"Balance {balance} cannot cover the estimated fee of {reserved}",
                required=reserved,
                available=balance,
            )
        return clamped

    async def submit_swap(self, from_symbol: str, from_amount: int) -> Optional[PendingSwap]:
        """
        Submit a swap of ``from_amount`` base units of ``from_symbol``.

        Returns the PendingSwap, or None when the owner declined to sign.
        """
        if self._submitting:
            raise SubmissionError("A swap submission is already in progress")
        outstanding = self.pending_swap
        if outstanding is not None:
            raise SwapAlreadyPending(outstanding.instruction_hash)
        if from_amount <= 0:
            raise ValueError(f"Swap amount must be positive, got {from_amount}")

        self._submitting = True
        try:
            instruction, quote = await self._prepare(from_symbol, from_amount)
            return await self._post(from_symbol, instruction, quote)
        finally:
            self._submitting = False

    async def _prepare(self, from_symbol: str, from_amount: int) -> Tuple[SwapInstruction, Quote]:
        wallet_address = self.wallet_address
        if not wallet_address:
            raise WalletNotConnected()

        pair, pool, token_info = self._state.pair, self._state.pool, self._state.token_info
        if pair is None or pool is None or token_info is None:
            raise SubmissionError("Pair state has not been loaded")
        balance = self._state.balance

        symbol = from_symbol.strip().lower()
        native_symbol = self._config.native_symbol(pair.native_ref.denom)

        if symbol == native_symbol.lower():
            max_fee = self._fees.cached_fee(wallet_address, pair)
            if max_fee is None:
                max_fee = await self._fees.estimate_max_fee(wallet_address, pair)
            amount = self.clamp_native_amount(from_amount, balance.native, max_fee, self.safety_margin)
            if amount != from_amount:
                self._logger.info(
                    "Clamped native swap from %d to %d (balance=%d, max_fee=%d)",
                    from_amount,
                    amount,
                    balance.native,
                    max_fee,
                )
            quote = await self._quotes.simulate(pool, pair, SwapDirection.NATIVE_TO_SALE, amount)
            return InstructionBuilder.swap_from_native(pair, wallet_address, amount), quote

        if symbol == token_info.symbol.lower():
            if from_amount > balance.token:
                raise InsufficientBalance(
                    f"Swap of {from_amount} exceeds the token balance of {balance.token}",
                    required=from_amount,
                    available=balance.token,
                )
            quote = await self._quotes.simulate_offer(pair, pair.sale_ref, from_amount)
            return InstructionBuilder.swap_from_token(pair, wallet_address, from_amount), quote

        raise UnknownAsset(from_symbol)

    async def _post(self, from_symbol: str, instruction: SwapInstruction, quote: Quote) -> Optional[PendingSwap]:
        try:
            tx_hash = await self._wallet.post(instruction)
        except Exception as exc:  # noqa: BLE001
            if is_user_decline(exc):
                self._logger.info("Swap of %d %s declined in wallet", instruction.offer_amount, from_symbol)
                return None
            _slog.error("swap_submission_error", from_symbol=from_symbol, error=str(exc))
            raise SubmissionError(f"Swap submission failed: {exc}") from exc

        if not tx_hash:
            raise SubmissionError("Wallet returned no transaction hash")

        pair = self._state.pair
        pending = PendingSwap(
            instruction_hash=tx_hash,
            from_symbol=from_symbol,
            offer_amount=instruction.offer_amount,
            expected_output=quote.output_amount,
            pair_key=pair.key if pair else "",
        )
        self._pending = pending
        self._monitor.track(pending)
        _slog.info(
            "swap_submitted",
            tx_hash=tx_hash,
            pair=pending.pair_key,
            from_symbol=from_symbol,
            from_native=instruction.from_native,
            offer_amount=instruction.offer_amount,
            expected_output=quote.output_amount,
            spread=quote.spread,
        )
        return pending
