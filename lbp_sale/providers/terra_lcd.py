"""
Terra LCD query provider.

Talks to a Terra light-client daemon (LCD) over its REST gateway:
- bank balances
- CosmWasm smart queries (pair, pool, weights, simulations, CW20 reads)
- account info and gas simulation for fee estimation
- transaction lookup by hash for confirmation polling

A provider instance is the client handle for one network. Switching networks
means building a new provider, never re-pointing an existing one.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from ..config import NetworkConfig, settings
from ..core.amounts import ceil_mul
from ..core.errors import NetworkError, SaleError, TxNotFoundYet, classify_error
from ..core.instructions import SwapInstruction
from ..types.chain import (
    AccountInfo,
    ContractAsset,
    FeeEstimate,
    NativeAsset,
    Pair,
    Pool,
    ReverseSimulationResult,
    SignerData,
    SimulationResult,
    TokenInfo,
    TxInfo,
    asset_ref_from_chain,
)
from .base import ChainQueryProvider

logger = logging.getLogger(__name__)


class TerraLcdProvider(ChainQueryProvider):
    """
    Chain reads against one LCD endpoint.

    Usage:
        provider = TerraLcdProvider(settings.network())
        pool = await provider.get_pool(pair.pool_address)
        await provider.aclose()
    """

    name = "terra_lcd"

    def __init__(
        self,
        network: NetworkConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
        max_retries: Optional[int] = None,
        gas_adjustment: Optional[Decimal] = None,
        token_code_id: Optional[int] = None,
        retry_backoff_s: float = 0.5,
    ) -> None:
        self.network = network
        self.timeout_s = settings.request_timeout_seconds if timeout_s is None else timeout_s
        self.max_retries = settings.request_max_retries if max_retries is None else max_retries
        self.retry_backoff_s = retry_backoff_s
        self.gas_adjustment = settings.gas_adjustment if gas_adjustment is None else gas_adjustment
        self.token_code_id = token_code_id if token_code_id is not None else settings.token_code_id
        self._client = client or httpx.AsyncClient(base_url=network.lcd_url, timeout=self.timeout_s)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TerraLcdProvider":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def health_check(self) -> Dict[str, Any]:
        try:
            data = await self._request("GET", "/cosmos/base/tendermint/v1beta1/node_info")
            network = (data.get("default_node_info") or {}).get("network")
            return {
                "status": "healthy" if network == self.network.chain_id else "wrong_network",
                "network": network,
            }
        except SaleError as e:
            return {"status": "error", "reason": e.message}

    # ---------------------------
    # Transport
    # ---------------------------
    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        simulation: bool = False,
    ) -> Dict[str, Any]:
        """
        Issue one LCD request.

        Transport errors and 5xx responses are retried with linear backoff;
        anything else is classified and raised immediately. At least one
        attempt is always made.
        """
        attempts = max(self.max_retries, 1)
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._client.request(method, path, params=params, json=json_body)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code < 500 or attempt >= attempts:
                    raise classify_error(exc, simulation=simulation) from exc
                error: Exception = exc
            except httpx.RequestError as exc:
                if attempt >= attempts:
                    raise classify_error(exc, simulation=simulation) from exc
                error = exc
            except ValueError as exc:
                raise NetworkError(f"Invalid JSON from {path}: {exc}") from exc

            logger.debug("LCD %s %s failed (attempt %d/%d): %s", method, path, attempt, attempts, error)
            await asyncio.sleep(self.retry_backoff_s * attempt)

    async def _smart_query(self, contract: str, msg: Dict[str, Any], *, simulation: bool = False) -> Any:
        encoded = base64.b64encode(json.dumps(msg, separators=(",", ":")).encode()).decode()
        data = await self._request(
            "GET",
            f"/terra/wasm/v1beta1/contracts/{contract}/store",
            params={"query_msg": encoded},
            simulation=simulation,
        )
        if "query_result" not in data:
            raise NetworkError(f"Smart query to {contract} returned no result")
        return data["query_result"]

    def _parse(self, build, *args: Any, **kwargs: Any):
        """Run a model constructor, turning malformed payloads into NetworkError."""
        try:
            return build(*args, **kwargs)
        except (ValueError, KeyError, TypeError) as exc:
            raise classify_error(exc) from exc

    # ---------------------------
    # Balances and token metadata
    # ---------------------------
    async def get_balance(self, denom: str, address: str) -> int:
        data = await self._request(
            "GET",
            f"/cosmos/bank/v1beta1/balances/{address}/by_denom",
            params={"denom": denom},
        )
        return self._parse(int, (data.get("balance") or {}).get("amount") or 0)

    async def get_token_balance(self, contract_address: str, address: str) -> int:
        result = await self._smart_query(contract_address, {"balance": {"address": address}})
        return self._parse(int, result.get("balance") or 0)

    async def get_token_info(self, contract_address: str) -> TokenInfo:
        result = await self._smart_query(contract_address, {"token_info": {}})
        return self._parse(TokenInfo.model_validate, result)

    # ---------------------------
    # Pair state
    # ---------------------------
    async def get_pair(self, pair_address: str) -> Pair:
        result = await self._smart_query(pair_address, {"pair": {}})
        result.setdefault("contract_addr", pair_address)
        return self._parse(Pair.from_chain, result, token_code_id=self.token_code_id)

    async def get_pool(self, pool_address: str) -> Pool:
        result = await self._smart_query(pool_address, {"pool": {}})
        return self._parse(Pool.from_chain, result)

    async def get_weights(self, pool_address: str, native_denom: str) -> Tuple[Decimal, Decimal]:
        """
        Read the pool's current weights.

        The pair answers ``{"weights": {}}`` with ``[{"info": ..., "weight": "..."}]``
        (or ``[[info, weight], ...]``); the native side is picked by denom.
        """
        result = await self._smart_query(pool_address, {"weights": {}})
        entries: List[Any] = result.get("weights") if isinstance(result, dict) else result
        native_weight: Optional[Decimal] = None
        sale_weight: Optional[Decimal] = None
        try:
            for entry in entries or []:
                info, weight = (entry["info"], entry["weight"]) if isinstance(entry, dict) else entry
                ref = asset_ref_from_chain(info)
                if isinstance(ref, NativeAsset) and ref.denom == native_denom:
                    native_weight = Decimal(str(weight))
                else:
                    sale_weight = Decimal(str(weight))
        except (ValueError, KeyError, TypeError, ArithmeticError) as exc:
            raise NetworkError(f"Malformed weights from {pool_address}: {exc}") from exc
        if native_weight is None or sale_weight is None:
            raise NetworkError(f"Weights from {pool_address} do not cover {native_denom}")
        return native_weight, sale_weight

    # ---------------------------
    # Simulation
    # ---------------------------
    async def get_simulation(
        self,
        pool_address: str,
        amount: int,
        asset_ref: Union[NativeAsset, ContractAsset],
    ) -> SimulationResult:
        msg = {"simulation": {"offer_asset": {"info": asset_ref.to_chain(), "amount": str(amount)}}}
        result = await self._smart_query(pool_address, msg, simulation=True)
        return self._parse(SimulationResult.model_validate, result)

    async def get_reverse_simulation(
        self,
        pool_address: str,
        amount: int,
        asset_ref: Union[NativeAsset, ContractAsset],
    ) -> ReverseSimulationResult:
        msg = {"reverse_simulation": {"ask_asset": {"info": asset_ref.to_chain(), "amount": str(amount)}}}
        result = await self._smart_query(pool_address, msg, simulation=True)
        return self._parse(ReverseSimulationResult.model_validate, result)

    # ---------------------------
    # Accounts, fees, transactions
    # ---------------------------
    async def account_info(self, address: str) -> AccountInfo:
        data = await self._request("GET", f"/cosmos/auth/v1beta1/accounts/{address}")
        account = data.get("account") or {}
        # Vesting accounts nest the base account one level down
        base = account.get("base_vesting_account", {}).get("base_account") or account
        return self._parse(
            AccountInfo,
            address=base.get("address") or address,
            account_number=base.get("account_number") or 0,
            sequence=base.get("sequence") or 0,
            public_key=base.get("pub_key"),
        )

    async def estimate_fee(self, signer_data: SignerData, instruction: SwapInstruction) -> FeeEstimate:
        """Simulate the unsigned tx and pad the gas used by ``gas_adjustment``."""
        body = {
            "tx": {
                "body": {"messages": [instruction.to_dict()], "memo": ""},
                "auth_info": {
                    "signer_infos": [
                        {
                            "public_key": signer_data.public_key,
                            "mode_info": {"single": {"mode": "SIGN_MODE_DIRECT"}},
                            "sequence": str(signer_data.sequence),
                        }
                    ],
                    "fee": {"amount": [], "gas_limit": "0"},
                },
                "signatures": [""],
            }
        }
        data = await self._request("POST", "/cosmos/tx/v1beta1/simulate", json_body=body)
        gas_used = self._parse(int, (data.get("gas_info") or {}).get("gas_used") or 0)
        return FeeEstimate(gas_limit=ceil_mul(gas_used, self.gas_adjustment))

    async def tx_info(self, tx_hash: str) -> Optional[TxInfo]:
        try:
            data = await self._request("GET", f"/cosmos/tx/v1beta1/txs/{tx_hash}")
        except NetworkError as exc:
            if exc.status_code == 404 or (exc.status_code == 400 and "not found" in exc.message.lower()):
                raise TxNotFoundYet(tx_hash) from exc
            raise
        response = data.get("tx_response")
        if not response:
            raise TxNotFoundYet(tx_hash)
        return self._parse(TxInfo.model_validate, response)
