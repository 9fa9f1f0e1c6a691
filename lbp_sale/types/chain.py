"""Chain-facing models for the LBP pair, its pool and the sale token.

Asset sides are resolved by tag (native denom vs. contract token), never by
their position in the pair's asset list.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class NativeAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["native"] = "native"
    denom: str = Field(min_length=1, description="Bank denom (e.g. uusd)")

    def to_chain(self) -> Dict[str, Any]:
        return {"native_token": {"denom": self.denom}}


class ContractAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["contract"] = "contract"
    address: str = Field(min_length=1, description="CW20 token contract address")

    def to_chain(self) -> Dict[str, Any]:
        return {"token": {"contract_addr": self.address}}


AssetRef = Annotated[Union[NativeAsset, ContractAsset], Field(discriminator="kind")]


def asset_ref_from_chain(data: Dict[str, Any]) -> Union[NativeAsset, ContractAsset]:
    """Parse ``{"native_token": {...}}`` / ``{"token": {...}}`` asset infos.

    Weighted pair entries (``{"info": {...}, "start_weight": ...}``) are unwrapped.
    """
    if "info" in data:
        data = data["info"]
    if "native_token" in data:
        return NativeAsset(denom=data["native_token"]["denom"])
    if "token" in data:
        return ContractAsset(address=data["token"]["contract_addr"])
    raise ValueError(f"Unrecognised asset info: {data!r}")


def _one_of_each(refs: Tuple[Any, ...]) -> None:
    kinds = sorted(ref.kind for ref in refs)
    if kinds != ["contract", "native"]:
        raise ValueError(f"A pair needs exactly one native and one contract asset, got {kinds}")


class Pair(BaseModel):
    """One LBP market. Replaced wholesale on refresh."""

    model_config = ConfigDict(frozen=True)

    asset_refs: Tuple[AssetRef, AssetRef]
    pool_address: str = Field(min_length=1)
    token_code_id: int = 0
    start_time: Optional[int] = None
    end_time: int = 0

    @model_validator(mode="after")
    def _check_sides(self) -> "Pair":
        _one_of_each(self.asset_refs)
        return self

    @property
    def native_ref(self) -> NativeAsset:
        return next(ref for ref in self.asset_refs if isinstance(ref, NativeAsset))

    @property
    def sale_ref(self) -> ContractAsset:
        return next(ref for ref in self.asset_refs if isinstance(ref, ContractAsset))

    @property
    def key(self) -> str:
        """Identity of the market, used to scope cached fees and quotes."""
        return f"{self.pool_address}:{self.sale_ref.address}:{self.native_ref.denom}"

    @classmethod
    def from_chain(cls, data: Dict[str, Any], *, token_code_id: int = 0) -> "Pair":
        refs = tuple(asset_ref_from_chain(item) for item in data.get("asset_infos") or [])
        if len(refs) != 2:
            raise ValueError(f"Expected two asset infos, got {len(refs)}")
        return cls(
            asset_refs=refs,
            pool_address=data["contract_addr"],
            token_code_id=data.get("token_code_id") or token_code_id,
            start_time=data.get("start_time"),
            end_time=data.get("end_time") or 0,
        )


class PoolAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    info: AssetRef
    amount: int = Field(ge=0, description="Reserve in base units")


class Pool(BaseModel):
    """Pool reserves keyed to the pair's asset refs."""

    model_config = ConfigDict(frozen=True)

    assets: Tuple[PoolAsset, PoolAsset]
    total_share: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_sides(self) -> "Pool":
        _one_of_each(tuple(asset.info for asset in self.assets))
        return self

    def reserve_of(self, ref: Union[NativeAsset, ContractAsset]) -> int:
        for asset in self.assets:
            if asset.info == ref:
                return asset.amount
        raise KeyError(f"Pool holds no reserve for {ref!r}")

    @property
    def native_reserve(self) -> int:
        return next(a.amount for a in self.assets if isinstance(a.info, NativeAsset))

    @property
    def sale_reserve(self) -> int:
        return next(a.amount for a in self.assets if isinstance(a.info, ContractAsset))

    @classmethod
    def from_chain(cls, data: Dict[str, Any]) -> "Pool":
        assets = tuple(
            PoolAsset(info=asset_ref_from_chain(item["info"]), amount=item["amount"])
            for item in data.get("assets") or []
        )
        return cls(assets=assets, total_share=data.get("total_share") or 0)


class TokenInfo(BaseModel):
    name: str = ""
    symbol: str
    decimals: int = Field(ge=0)
    total_supply: int = Field(ge=0)


class SimulationResult(BaseModel):
    return_amount: int = Field(ge=0)
    spread_amount: int = Field(ge=0)
    commission_amount: int = Field(default=0, ge=0)


class ReverseSimulationResult(BaseModel):
    offer_amount: int = Field(ge=0)
    spread_amount: int = Field(ge=0)
    commission_amount: int = Field(default=0, ge=0)


class AccountInfo(BaseModel):
    address: str
    account_number: int = 0
    sequence: int = 0
    public_key: Optional[Dict[str, Any]] = None


class SignerData(BaseModel):
    sequence: int
    public_key: Optional[Dict[str, Any]] = None


class FeeEstimate(BaseModel):
    gas_limit: int = Field(ge=0)


class TxInfo(BaseModel):
    txhash: str
    height: int = 0
    code: int = 0
    raw_log: str = ""
    gas_wanted: int = 0
    gas_used: int = 0

    @property
    def succeeded(self) -> bool:
        return self.code == 0
