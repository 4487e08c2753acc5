from decimal import Decimal
from typing import Any, Dict, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field

from parabootstrap.chain.multi_location import Location


class ProvisioningModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class AssetSpec(ProvisioningModel):
    """
    One entry of the asset specification file (assets.json).
    """
    name: str = Field(min_length=1)
    symbol: str = Field(min_length=1)
    decimals: int = Field(ge=0, le=255)
    initial_price: Optional[Decimal] = Field(default=None, alias="initialPrice", gt=0)


class AssetDescriptor(ProvisioningModel):
    local_id: int = Field(alias="assetId", ge=0)
    name: str
    symbol: str
    decimals: int = Field(ge=0, le=255)
    initial_price: Optional[Decimal] = Field(default=None, alias="initialPrice")


class CrossChainAssetRecord(ProvisioningModel):
    """
    An origin-chain asset as registered on a destination chain. Serialized with the camelCase keys the
    asset-metadata.json file uses.
    """
    destination_local_id: int = Field(alias="assetId", ge=0)
    origin_asset_id: int = Field(alias="assetHubAssetId", ge=0)
    name: str
    symbol: str
    decimals: int = Field(ge=0, le=255)
    location: Dict[str, Any]
    initial_price: Optional[Decimal] = Field(default=None, alias="initialPrice")
    predicted_local_id: Optional[int] = Field(default=None, alias="predictedAssetId")
    bridged_amount: Optional[int] = Field(default=None, alias="bridgedAmount", ge=0)

    def origin_location(self) -> Location:
        return Location.from_scale(self.location)


class BridgeRequest(NamedTuple):
    origin_asset_id: int
    amount: int


class LocalAssetSpec(ProvisioningModel):
    """
    An asset created directly in a destination chain's registry with Root origin.
    """
    asset_id: int = Field(ge=0)
    name: str = Field(min_length=1)
    symbol: str = Field(min_length=1)
    decimals: int = Field(default=12, ge=0, le=255)
    existential_deposit: int = Field(default=1000, ge=0)
    fee_price: int = Field(default=1000, gt=0)
    balance: Optional[int] = Field(default=None, ge=0)

    @property
    def seeded_balance(self) -> int:
        if self.balance is not None:
            return self.balance
        return 100_000 * 10 ** self.decimals
