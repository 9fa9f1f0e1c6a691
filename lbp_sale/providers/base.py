from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

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
)


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass

    async def aclose(self) -> None:
        """Release transport resources"""
        return None


class ChainQueryProvider(Provider):
    """Read access to the chain. Every failure is raised as a SaleError."""

    @abstractmethod
    async def get_balance(self, denom: str, address: str) -> int:
        """Native bank balance in base units"""
        pass

    @abstractmethod
    async def get_token_balance(self, contract_address: str, address: str) -> int:
        """CW20 balance in base units"""
        pass

    @abstractmethod
    async def get_token_info(self, contract_address: str) -> TokenInfo:
        pass

    @abstractmethod
    async def get_pair(self, pair_address: str) -> Pair:
        pass

    @abstractmethod
    async def get_pool(self, pool_address: str) -> Pool:
        pass

    @abstractmethod
    async def get_weights(self, pool_address: str, native_denom: str) -> Tuple[Decimal, Decimal]:
        """Current (native, sale) weights"""
        pass

    @abstractmethod
    async def get_simulation(
        self,
        pool_address: str,
        amount: int,
        asset_ref: Union[NativeAsset, ContractAsset],
    ) -> SimulationResult:
        """Simulate offering ``amount`` of ``asset_ref``"""
        pass

    @abstractmethod
    async def get_reverse_simulation(
        self,
        pool_address: str,
        amount: int,
        asset_ref: Union[NativeAsset, ContractAsset],
    ) -> ReverseSimulationResult:
        """Simulate asking for ``amount`` of ``asset_ref``"""
        pass

    @abstractmethod
    async def account_info(self, address: str) -> AccountInfo:
        pass

    @abstractmethod
    async def estimate_fee(self, signer_data: SignerData, instruction: SwapInstruction) -> FeeEstimate:
        pass

    @abstractmethod
    async def tx_info(self, tx_hash: str) -> Optional[TxInfo]:
        """Return the included tx, raise TxNotFoundYet while it is pending"""
        pass


class GasPriceSource(Provider):
    """Read-only source of current gas prices"""

    @abstractmethod
    async def get_gas_price(self, denom: str) -> Decimal:
        pass
