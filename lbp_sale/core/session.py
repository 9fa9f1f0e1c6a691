from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Callable, Dict, Optional

from ..config import NetworkConfig, Settings, settings as default_settings
from ..logging_config import bind_session, setup_logging
from ..providers.base import ChainQueryProvider, GasPriceSource
from ..providers.gas_prices import FcdGasPriceProvider
from ..providers.terra_lcd import TerraLcdProvider
from ..providers.wallet import WalletEvent, WalletSigner
from .amounts import format_token_amount, to_base_units
from .errors import NetworkError, SaleError, SimulationError, WrongNetwork
from .fee_estimator import FeeEstimator
from .models import Feedback, LoadingState, PendingSwap, PendingSwapStatus, TokensRemaining
from .monitor import TransactionMonitor
from .pair_state import PairStateCache
from .quote_engine import QuoteEngine
from .swap import SwapOrchestrator

ProviderFactory = Callable[[NetworkConfig], ChainQueryProvider]
GasPriceFactory = Callable[[NetworkConfig], GasPriceSource]


class SaleSession:
    """
    Wires the sale components to one network and one wallet.

    Wallet status changes arrive on a queue and are applied by a single
    consumer loop. A network change builds a fresh provider and fresh
    components; an existing client handle is never re-pointed.
    """

    def __init__(
        self,
        wallet: WalletSigner,
        *,
        config: Optional[Settings] = None,
        provider_factory: Optional[ProviderFactory] = None,
        gas_price_factory: Optional[GasPriceFactory] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config or default_settings
        self._wallet = wallet
        self._provider_factory = provider_factory or TerraLcdProvider
        self._gas_price_factory = gas_price_factory or FcdGasPriceProvider
        self.logger = logger or logging.getLogger(__name__)

        self._events: asyncio.Queue[WalletEvent] = asyncio.Queue()
        self._loop_task: Optional[asyncio.Task] = None

        self.wallet_address = ""
        self.loading = LoadingState.idle()
        self.feedback = Feedback.none()
        self.tokens_remaining: Optional[TokensRemaining] = None
        self.token_price: Optional[Decimal] = None
        self.seconds_remaining: Optional[int] = None
        self.max_swap_fee: Optional[int] = None

        self._build(self._config.network())

    # ---------------------------
    # Wiring
    # ---------------------------
    def _build(self, network: NetworkConfig) -> None:
        self.network = network
        self.provider = self._provider_factory(network)
        self.gas_prices = self._gas_price_factory(network)
        self.state = PairStateCache(self.provider, self._config.pair_address)
        self.quotes = QuoteEngine(self.provider, precision=self._config.decimals)
        self.fees = FeeEstimator(self.provider, self.gas_prices)
        self.monitor = TransactionMonitor(
            self.provider,
            on_confirmed=self._after_confirmation,
            listener=self._on_swap_status,
            poll_interval=self._config.tx_poll_interval_seconds,
            max_errors=self._config.tx_poll_max_errors,
            timeout_seconds=self._config.tx_confirmation_timeout_seconds,
        )
        self.swaps = SwapOrchestrator(
            self.state,
            self.quotes,
            self.fees,
            self.monitor,
            self._wallet,
            wallet_address=self.wallet_address,
            config=self._config,
        )

    async def _switch_network(self, network: NetworkConfig) -> None:
        self.logger.info("Switching LCD endpoint to %s (%s)", network.lcd_url, network.chain_id)
        await self.monitor.cancel_all()
        old_provider, old_gas_prices = self.provider, self.gas_prices
        self._build(network)
        await old_provider.aclose()
        await old_gas_prices.aclose()

    @property
    def native_symbol(self) -> str:
        pair = self.state.pair
        return self._config.native_symbol(pair.native_ref.denom if pair else None)

    @property
    def sale_symbol(self) -> Optional[str]:
        return self.state.token_info.symbol if self.state.token_info else None

    @property
    def pending_swap(self) -> Optional[PendingSwap]:
        return self.swaps.pending_swap

    @property
    def weights_label(self) -> Optional[str]:
        return self.state.weights.label() if self.state.weights else None

    def _precision_of(self, symbol: str) -> int:
        info = self.state.token_info
        if info is not None and symbol.strip().lower() == info.symbol.lower():
            return info.decimals
        return self._config.decimals

    def parse_amount(self, symbol: str, text: str) -> int:
        """Convert an amount typed in ``symbol`` ("1,250.5") into base units."""
        return to_base_units(text, self._precision_of(symbol))

    def display_values(self) -> Dict[str, Optional[str]]:
        """Balances, pool reserves and weights formatted for display."""
        pair, pool = self.state.pair, self.state.pool
        sale_precision = self._precision_of(self.sale_symbol or "")
        balance = self.state.balance
        values: Dict[str, Optional[str]] = {
            "native_balance": format_token_amount(balance.native, self._config.decimals),
            "token_balance": format_token_amount(balance.token, sale_precision),
            "pool_native": None,
            "pool_tokens": None,
            "weights": self.weights_label,
        }
        if pair is not None and pool is not None:
            values["pool_native"] = format_token_amount(pool.native_reserve, self._config.decimals)
            values["pool_tokens"] = format_token_amount(pool.reserve_of(pair.sale_ref), sale_precision)
        return values

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self, *, configure_logging: bool = False) -> None:
        """Start consuming wallet events.

        ``configure_logging`` installs the package log setup at
        ``config.log_level`` for hosts that do not configure logging themselves.
        """
        if configure_logging:
            setup_logging(self._config.log_level)
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._run_loop(), name="sale-session-wallet-events")

    async def stop(self) -> None:
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        await self.monitor.cancel_all()
        await self.provider.aclose()
        await self.gas_prices.aclose()

    async def publish(self, event: WalletEvent) -> None:
        """Producer side of the wallet event channel."""
        await self._events.put(event)

    async def _run_loop(self) -> None:
        while True:
            event = await self._events.get()
            try:
                await self.handle_wallet_event(event)
            except Exception as exc:  # noqa: BLE001
                self.logger.error("Wallet event handling failed: %s", exc, exc_info=True)
            finally:
                self._events.task_done()

    async def drain(self) -> None:
        """Wait until every published event has been applied."""
        await self._events.join()

    # ---------------------------
    # Wallet events
    # ---------------------------
    async def handle_wallet_event(self, event: WalletEvent) -> None:
        if not event.connected:
            await self._set_wallet("")
            await self._refresh_with_feedback()
            return

        self.loading = LoadingState.busy("Connecting wallet...")
        try:
            network = event.network
            if network is not None and network.chain_id != self.network.chain_id:
                error = WrongNetwork(expected=self.network.chain_id, actual=network.chain_id)
                self.logger.warning("%s", error.message)
                await self._set_wallet("")
                self.feedback = Feedback.error(
                    message="We had a problem connecting to your wallet. "
                    "Make sure it is connected to the right network.",
                )
                return
            if network is not None and network.lcd_url.rstrip("/") != self.network.lcd_url:
                await self._switch_network(
                    NetworkConfig(
                        lcd_url=network.lcd_url.rstrip("/"),
                        chain_id=network.chain_id,
                        gas_prices_url=self.network.gas_prices_url,
                    )
                )
            await self._set_wallet(event.address)
            await self._refresh_with_feedback()
        finally:
            self.loading = LoadingState.idle()

    async def _set_wallet(self, address: str) -> None:
        if address == self.wallet_address:
            return
        self.logger.info("Wallet changed to %s", address or "<none>")
        await self._reset_swap_state()
        self.state.clear_balance()
        self.wallet_address = address
        self.swaps.wallet_address = address
        bind_session(address, self.network.chain_id)

    async def _reset_swap_state(self) -> None:
        """Stop tracking and forget every estimate tied to the old pair or wallet."""
        if self.swaps.pending_swap is not None:
            self.loading = LoadingState.idle()
        await self.monitor.cancel_all()
        self.swaps.discard_pending()
        self.fees.invalidate()
        self.max_swap_fee = None

    # ---------------------------
    # Refresh
    # ---------------------------
    async def _refresh_with_feedback(self) -> None:
        try:
            await self.refresh_all()
        except SaleError as exc:
            self.logger.warning("Refreshing sale state failed: %s", exc.message)
            self.feedback = Feedback.error(message=exc.message)

    async def refresh_all(self) -> None:
        """Re-read the pair and everything derived from it."""
        previous = self.state.pair
        pair = await self.state.refresh_pair()
        if previous is not None and previous.key != pair.key:
            await self._reset_swap_state()

        token_info = await self.state.refresh_token_info(pair.sale_ref)
        pool = await self.state.refresh_pool(pair)
        self.tokens_remaining = self.state.tokens_remaining(pool, token_info)
        self.seconds_remaining = self.state.seconds_remaining(pair)

        try:
            await self.state.refresh_weights(pair)
        except NetworkError as exc:
            self.logger.warning("Weights unavailable: %s", exc.message)

        try:
            self.token_price = await self.quotes.unit_price(pool, pair)
        except (SimulationError, NetworkError) as exc:
            self.logger.warning("Token price unavailable: %s", exc.message)
            self.token_price = None

        await self.refresh_balance()
        await self.refresh_max_fee()

    async def refresh_balance(self) -> None:
        pair = self.state.pair
        if pair is None:
            self.state.clear_balance()
            return
        await self.state.refresh_balance(self.wallet_address, pair)

    async def refresh_max_fee(self) -> Optional[int]:
        """Estimate the max fee; a failed estimate keeps the previous value."""
        pair = self.state.pair
        if pair is None or not self.wallet_address:
            self.max_swap_fee = None
            return None
        try:
            self.max_swap_fee = await self.fees.estimate_max_fee(self.wallet_address, pair)
        except NetworkError as exc:
            self.logger.warning("Keeping previous max fee: %s", exc.message)
            self.max_swap_fee = self.fees.cached_fee(self.wallet_address, pair)
        return self.max_swap_fee

    # ---------------------------
    # Swaps
    # ---------------------------
    async def swap(self, from_symbol: str, from_amount: int) -> Optional[PendingSwap]:
        """Submit a swap and reflect its progress in ``loading`` / ``feedback``."""
        self.loading = LoadingState.busy("Waiting for wallet")
        self.feedback = Feedback.none()
        try:
            pending = await self.swaps.submit_swap(from_symbol, from_amount)
        except Exception as exc:  # noqa: BLE001
            self.loading = LoadingState.idle()
            self.feedback = Feedback.error(message=getattr(exc, "message", None) or str(exc))
            raise

        if pending is None:
            self.loading = LoadingState.idle()
            return None

        self.loading = LoadingState.busy("Transaction hash:", transaction=pending.instruction_hash)
        return pending

    def _on_swap_status(self, pending: PendingSwap) -> None:
        if pending.status == PendingSwapStatus.SUBMITTED:
            self.loading = LoadingState.busy("Transaction hash:", transaction=pending.instruction_hash)
        elif pending.status == PendingSwapStatus.CONFIRMED:
            self.loading = LoadingState.idle()
            self.feedback = Feedback.success().with_details(transaction=pending.instruction_hash)
        else:
            self.loading = LoadingState.idle()
            reason = getattr(pending.error, "message", None) or str(pending.error or pending.status.value)
            self.feedback = Feedback.error(message=reason).with_details(transaction=pending.instruction_hash)

    async def _after_confirmation(self, pending: PendingSwap) -> None:
        self.logger.info("Swap %s confirmed; refreshing balances and pool", pending.instruction_hash)
        await self._refresh_with_feedback()
