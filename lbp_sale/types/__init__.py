from .chain import (
    AccountInfo,
    AssetRef,
    ContractAsset,
    FeeEstimate,
    NativeAsset,
    Pair,
    Pool,
    PoolAsset,
    ReverseSimulationResult,
    SignerData,
    SimulationResult,
    TokenInfo,
    TxInfo,
    asset_ref_from_chain,
)

__all__ = [
    "AccountInfo",
    "AssetRef",
    "ContractAsset",
    "FeeEstimate",
    "NativeAsset",
    "Pair",
    "Pool",
    "PoolAsset",
    "ReverseSimulationResult",
    "SignerData",
    "SimulationResult",
    "TokenInfo",
    "TxInfo",
    "asset_ref_from_chain",
]
