"""FeeEstimator computes a pessimistic max fee for a native-origin swap."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from ..providers.base import ChainQueryProvider, GasPriceSource
from ..types.chain import Pair, SignerData
from .amounts import ceil_mul
from .errors import NetworkError, SaleError, WalletNotConnected, classify_error
from .instructions import InstructionBuilder


class FeeEstimator:
    """
    Max-fee estimate cached per (pair, wallet).

    The estimate is taken once for a nominal one-unit swap; the safety margin
    applied by the orchestrator absorbs gas variance between swap sizes.
    """

    def __init__(
        self,
        provider: ChainQueryProvider,
        gas_prices: GasPriceSource,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._provider = provider
        self._gas_prices = gas_prices
        self._logger = logger or logging.getLogger(__name__)
        self._cache: Dict[Tuple[str, str], int] = {}

    @staticmethod
    def _key(wallet_address: str, pair: Pair) -> Tuple[str, str]:
        return pair.key, wallet_address

    def cached_fee(self, wallet_address: str, pair: Pair) -> Optional[int]:
        return self._cache.get(self._key(wallet_address, pair))

    def invalidate(self) -> None:
        """Drop every estimate; called on pair switch and wallet change."""
        if self._cache:
            self._logger.debug("Dropping %d cached fee estimate(s)", len(self._cache))
        self._cache.clear()

    async def estimate_max_fee(self, wallet_address: str, pair: Pair) -> int:
        """
        Estimate ``gas_limit * gas_price`` for a one-unit native swap.

        On failure the cached value for this (pair, wallet) is left untouched
        and NetworkError is raised.
        """
        if not wallet_address:
            raise WalletNotConnected("Fee estimation needs a connected wallet")

        instruction = InstructionBuilder.swap_from_native(pair, wallet_address, 1)
        denom = pair.native_ref.denom
        try:
            account = await self._provider.account_info(wallet_address)
            signer = SignerData(sequence=account.sequence, public_key=account.public_key)
            estimate = await self._provider.estimate_fee(signer, instruction)
            gas_price = await self._gas_prices.get_gas_price(denom)
        except SaleError as exc:
            self._logger.warning("Fee estimation for %s failed: %s", pair.key, exc)
            if isinstance(exc, NetworkError):
                raise
            raise NetworkError(f"Fee estimation failed: {exc.message}") from exc
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("Fee estimation for %s failed: %s", pair.key, exc)
            raise classify_error(exc) from exc

        max_fee = max(ceil_mul(estimate.gas_limit, gas_price), 0)
        self._cache[self._key(wallet_address, pair)] = max_fee
        self._logger.info(
            "Max swap fee for %s: %d%s (gas_limit=%d, gas_price=%s)",
            pair.key,
            max_fee,
            denom,
            estimate.gas_limit,
            gas_price,
        )
        return max_fee
