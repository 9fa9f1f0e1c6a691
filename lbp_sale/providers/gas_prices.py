"""Gas price lookup from the FCD ``/v1/txs/gas_prices`` endpoint."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from ..config import NetworkConfig, settings
from ..core.errors import NetworkError, classify_error
from .base import GasPriceSource


class FcdGasPriceProvider(GasPriceSource):
    """Current gas price per denom. No API key required."""

    name = "fcd_gas_prices"

    def __init__(
        self,
        network: NetworkConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.url = network.gas_prices_url
        self.timeout_s = settings.request_timeout_seconds if timeout_s is None else timeout_s
        self._client = client or httpx.AsyncClient(timeout=self.timeout_s)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def health_check(self) -> Dict[str, Any]:
        try:
            prices = await self._fetch()
            return {"status": "healthy", "denoms": sorted(prices)}
        except NetworkError as e:
            return {"status": "error", "reason": e.message}

    async def _fetch(self) -> Dict[str, Any]:
        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise classify_error(exc) from exc

    async def get_gas_price(self, denom: str) -> Decimal:
        prices = await self._fetch()
        if denom not in prices:
            raise NetworkError(f"No gas price published for {denom}")
        try:
            price = Decimal(str(prices[denom]))
        except InvalidOperation as exc:
            raise NetworkError(f"Malformed gas price for {denom}: {prices[denom]!r}") from exc
        if price < 0:
            raise NetworkError(f"Negative gas price for {denom}: {price}")
        return price
