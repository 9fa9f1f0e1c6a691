"""QuoteEngine simulates swaps against the pair contract."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Union

from ..providers.base import ChainQueryProvider
from ..types.chain import ContractAsset, NativeAsset, Pair, Pool
from .amounts import DEFAULT_PRECISION, to_decimal
from .errors import SimulationError
from .models import Quote, SwapDirection


class QuoteEngine:
    """
    Forward and reverse swap simulation.

    NATIVE_TO_SALE offers native coins and reports the sale tokens returned.
    SALE_TO_NATIVE asks for an amount of sale tokens and reports the native
    amount that must be offered, which is also how the unit price is read.
    """

    def __init__(
        self,
        provider: ChainQueryProvider,
        *,
        precision: int = DEFAULT_PRECISION,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._provider = provider
        self.precision = precision
        self._logger = logger or logging.getLogger(__name__)

    async def simulate(
        self,
        pool: Pool,
        pair: Pair,
        direction: SwapDirection,
        input_amount: int,
    ) -> Quote:
        if input_amount < 0:
            raise ValueError(f"Input amount must be non-negative, got {input_amount}")
        if pool.sale_reserve <= 0:
            raise SimulationError("Sale pool is exhausted", pool=pair.pool_address)

        if direction == SwapDirection.NATIVE_TO_SALE:
            return await self.simulate_offer(pair, pair.native_ref, input_amount)

        if input_amount > pool.sale_reserve:
            raise SimulationError(
                f"Requested {input_amount} exceeds the {pool.sale_reserve} sale tokens left",
                pool=pair.pool_address,
            )
        result = await self._provider.get_reverse_simulation(pair.pool_address, input_amount, pair.sale_ref)
        self._logger.debug(
            "Reverse simulation on %s: ask=%d offer=%d spread=%d",
            pair.pool_address,
            input_amount,
            result.offer_amount,
            result.spread_amount,
        )
        return Quote(output_amount=result.offer_amount, spread=result.spread_amount, precision=self.precision)

    async def simulate_offer(
        self,
        pair: Pair,
        offer_ref: Union[NativeAsset, ContractAsset],
        amount: int,
    ) -> Quote:
        """Forward simulation offering ``amount`` of either side of the pair."""
        if offer_ref not in pair.asset_refs:
            raise SimulationError(f"{offer_ref!r} is not part of pair {pair.pool_address}")
        result = await self._provider.get_simulation(pair.pool_address, amount, offer_ref)
        self._logger.debug(
            "Simulation on %s: offer=%d return=%d spread=%d",
            pair.pool_address,
            amount,
            result.return_amount,
            result.spread_amount,
        )
        return Quote(output_amount=result.return_amount, spread=result.spread_amount, precision=self.precision)

    async def unit_price(self, pool: Pool, pair: Pair) -> Decimal:
        """Native cost of exactly one whole sale token at the current weights."""
        one_token = 10 ** self.precision
        quote = await self.simulate(pool, pair, SwapDirection.SALE_TO_NATIVE, one_token)
        return to_decimal(quote.output_amount, self.precision)
