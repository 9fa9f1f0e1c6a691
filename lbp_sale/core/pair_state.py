"""PairStateCache holds the active sale pair and the snapshots derived from it."""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Optional

from ..providers.base import ChainQueryProvider
from ..types.chain import ContractAsset, Pair, Pool, TokenInfo
from .amounts import floor_div
from .models import SessionBalance, TokensRemaining, Weights


class PairStateCache:
    """
    Caches the active pair, its pool, weights, sale token info and balances.

    Every refresh is an independent chain read that replaces one snapshot
    wholesale. Callers compose them; nothing else writes these fields.
    """

    def __init__(
        self,
        provider: ChainQueryProvider,
        pair_address: str,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._provider = provider
        self._pair_address = pair_address
        self._logger = logger or logging.getLogger(__name__)

        self.pair: Optional[Pair] = None
        self.pool: Optional[Pool] = None
        self.weights: Optional[Weights] = None
        self.token_info: Optional[TokenInfo] = None
        self.balance: SessionBalance = SessionBalance.empty()

    async def refresh_pair(self) -> Pair:
        pair = await self._provider.get_pair(self._pair_address)
        if self.pair is not None and self.pair.key != pair.key:
            self._logger.info("Active pair changed from %s to %s", self.pair.key, pair.key)
            self.pool = None
            self.weights = None
            self.token_info = None
        self.pair = pair
        return pair

    async def refresh_pool(self, pair: Pair) -> Pool:
        pool = await self._provider.get_pool(pair.pool_address)
        self.pool = pool
        return pool

    async def refresh_weights(self, pair: Pair) -> Weights:
        native_weight, sale_weight = await self._provider.get_weights(
            pair.pool_address,
            pair.native_ref.denom,
        )
        weights = Weights(native_weight=Decimal(native_weight), sale_weight=Decimal(sale_weight))
        self.weights = weights
        return weights

    async def refresh_token_info(self, sale_ref: ContractAsset) -> TokenInfo:
        token_info = await self._provider.get_token_info(sale_ref.address)
        self.token_info = token_info
        return token_info

    async def refresh_balance(self, wallet_address: str, pair: Pair) -> SessionBalance:
        """Read both balances; an empty address reports zero without a network call."""
        if not wallet_address:
            self.balance = SessionBalance.empty()
            return self.balance

        native = await self._provider.get_balance(pair.native_ref.denom, wallet_address)
        token = await self._provider.get_token_balance(pair.sale_ref.address, wallet_address)
        self.balance = SessionBalance(native=max(native, 0), token=max(token, 0))
        return self.balance

    def clear_balance(self) -> None:
        self.balance = SessionBalance.empty()

    @staticmethod
    def tokens_remaining(pool: Pool, token_info: TokenInfo) -> TokensRemaining:
        """Sale reserve as whole tokens and as a floored share of total supply."""
        remaining = max(pool.sale_reserve, 0)
        return TokensRemaining(
            amount=floor_div(remaining, 10 ** token_info.decimals),
            percentage=floor_div(remaining * 100, token_info.total_supply),
        )

    @staticmethod
    def seconds_remaining(pair: Pair, now: Optional[float] = None) -> int:
        current = int(now if now is not None else time.time())
        return max(pair.end_time - current, 0)
