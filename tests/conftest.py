"""Shared fakes for the sale core tests."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from lbp_sale.config import Settings
from lbp_sale.core.errors import SimulationError, TxNotFoundYet
from lbp_sale.providers.base import ChainQueryProvider, GasPriceSource
from lbp_sale.types.chain import (
    AccountInfo,
    ContractAsset,
    FeeEstimate,
    NativeAsset,
    Pair,
    Pool,
    PoolAsset,
    ReverseSimulationResult,
    SimulationResult,
    TokenInfo,
)

PAIR_ADDRESS = "terra1fnywlw4edny3vw44x04xd67uzkdqluymgreu7g"
TOKEN_ADDRESS = "terra1mddcdx0ujx89f38gu7zspk2r2ffdl5enyz2u03"
WALLET = "terra1x46rqay4d3cssq8gxxvqz8xt6nwlz4td20k38v"


def build_pair(token_address: str = TOKEN_ADDRESS, denom: str = "uusd", *, native_first: bool = False) -> Pair:
    refs = (ContractAsset(address=token_address), NativeAsset(denom=denom))
    if native_first:
        refs = (refs[1], refs[0])
    return Pair(asset_refs=refs, pool_address=PAIR_ADDRESS, token_code_id=1796, end_time=1_700_000_000)


def build_pool(native: int, sale: int, token_address: str = TOKEN_ADDRESS, denom: str = "uusd") -> Pool:
    return Pool(
        assets=(
            PoolAsset(info=ContractAsset(address=token_address), amount=sale),
            PoolAsset(info=NativeAsset(denom=denom), amount=native),
        ),
        total_share=1,
    )


class FakeChain(ChainQueryProvider):
    """In-memory chain with a constant-product pool."""

    name = "fake_chain"

    def __init__(self, pair: Pair, pool: Pool, token_info: TokenInfo):
        self.pair = pair
        self.pool = pool
        self.token_info = token_info
        self.native_balance = 0
        self.token_balance = 0
        self.weights = (Decimal("30"), Decimal("70"))
        self.gas_limit = 200_000
        self.tx_results: List[Any] = []
        self.fail_with: Optional[Exception] = None
        self.calls: List[str] = []
        self.closed = False

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def _sides(self, ref):
        """(reserve of ``ref``, reserve of the other side)"""
        if isinstance(ref, NativeAsset):
            return self.pool.native_reserve, self.pool.sale_reserve
        return self.pool.sale_reserve, self.pool.native_reserve

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def aclose(self) -> None:
        self.closed = True

    async def get_balance(self, denom, address):
        self._record("get_balance")
        return self.native_balance

    async def get_token_balance(self, contract_address, address):
        self._record("get_token_balance")
        return self.token_balance

    async def get_token_info(self, contract_address):
        self._record("get_token_info")
        return self.token_info

    async def get_pair(self, pair_address):
        self._record("get_pair")
        return self.pair

    async def get_pool(self, pool_address):
        self._record("get_pool")
        return self.pool

    async def get_weights(self, pool_address, native_denom):
        self._record("get_weights")
        return self.weights

    async def get_simulation(self, pool_address, amount, asset_ref):
        self._record("get_simulation")
        offer_pool, ask_pool = self._sides(asset_ref)
        return_amount = ask_pool * amount // (offer_pool + amount)
        spread = ask_pool * amount // offer_pool - return_amount
        return SimulationResult(return_amount=return_amount, spread_amount=max(spread, 0))

    async def get_reverse_simulation(self, pool_address, amount, asset_ref):
        self._record("get_reverse_simulation")
        ask_pool, offer_pool = self._sides(asset_ref)
        if amount >= ask_pool:
            raise SimulationError("ask pool is empty")
        offer_amount = -(-offer_pool * amount // (ask_pool - amount))
        spread = offer_amount - offer_pool * amount // ask_pool
        return ReverseSimulationResult(offer_amount=offer_amount, spread_amount=max(spread, 0))

    async def account_info(self, address):
        self._record("account_info")
        return AccountInfo(address=address, account_number=42, sequence=7)

    async def estimate_fee(self, signer_data, instruction):
        self._record("estimate_fee")
        return FeeEstimate(gas_limit=self.gas_limit)

    async def tx_info(self, tx_hash):
        self._record("tx_info")
        result = self.tx_results.pop(0) if self.tx_results else None
        if isinstance(result, Exception):
            raise result
        if result is None:
            raise TxNotFoundYet(tx_hash)
        return result


class FakeGasPrices(GasPriceSource):
    name = "fake_gas_prices"

    def __init__(self, price: Decimal = Decimal("0.15")):
        self.price = price
        self.fail_with: Optional[Exception] = None
        self.closed = False

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def aclose(self) -> None:
        self.closed = True

    async def get_gas_price(self, denom):
        if self.fail_with is not None:
            raise self.fail_with
        return self.price


@pytest.fixture
def pair() -> Pair:
    return build_pair()


@pytest.fixture
def pool() -> Pool:
    # 2M UST against 10M sale tokens
    return build_pool(native=2_000_000_000_000, sale=10_000_000_000_000)


@pytest.fixture
def token_info() -> TokenInfo:
    return TokenInfo(name="Sale Token", symbol="SALE", decimals=6, total_supply=20_000_000_000_000)


@pytest.fixture
def chain(pair, pool, token_info) -> FakeChain:
    return FakeChain(pair, pool, token_info)


@pytest.fixture
def gas_prices() -> FakeGasPrices:
    return FakeGasPrices()


@pytest.fixture
def sale_settings() -> Settings:
    return Settings(
        _env_file=None,
        pair_address=PAIR_ADDRESS,
        fee_safety_margin=Decimal("1.1"),
        tx_poll_interval_seconds=0.001,
        tx_poll_max_errors=2,
        tx_confirmation_timeout_seconds=30,
    )


@pytest.fixture
def make_pair():
    return build_pair


@pytest.fixture
def make_pool():
    return build_pool


@pytest.fixture
def wallet_address() -> str:
    return WALLET


@pytest.fixture
def chain_factory(pair, pool, token_info):
    """Builds a fresh FakeChain per network, keeping every instance."""
    created: List[FakeChain] = []

    def factory(network=None) -> FakeChain:
        instance = FakeChain(pair, pool, token_info)
        created.append(instance)
        return instance

    factory.created = created
    return factory
