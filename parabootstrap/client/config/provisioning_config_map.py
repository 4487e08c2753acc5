from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.data_types import BlockBuildMode
from parabootstrap.client.config.config_data_types import BaseClientModel, ClientConfigEnum
from parabootstrap.client.settings import DEFAULT_ASSETS_FILE_NAME, DEFAULT_METADATA_FILE_NAME
from parabootstrap.provisioning.data_types import LocalAssetSpec


class PacerMode(ClientConfigEnum):
    RUNNING = "running"
    MANUAL = "manual"
    STOPPED = "stopped"


class ChainConfigMap(BaseClientModel):
    name: str = Field(description="Name used in logs")
    url: str = Field(description="Websocket endpoint of the sandboxed node")
    para_id: Optional[int] = Field(default=None, ge=0)
    pacer_mode: PacerMode = Field(
        default=PacerMode.RUNNING,
        description="running: force a block every pacer_interval seconds. manual: blocks only advance when the "
                    "orchestrator steps the chain.",
    )
    pacer_interval: float = Field(default=CONSTANTS.DEFAULT_PACER_INTERVAL, gt=0)
    block_build_mode: Optional[BlockBuildMode] = Field(
        default=None,
        description="Sent to the node with dev_setBlockBuildMode before anything is submitted",
    )


class LocalAssetConfigMap(BaseClientModel):
    asset_id: int = Field(ge=0)
    name: str
    symbol: str
    decimals: int = Field(default=12, ge=0, le=255)
    existential_deposit: int = Field(default=1000, ge=0)
    fee_price: int = Field(default=1000, gt=0)
    balance: Optional[int] = Field(default=None, ge=0)

    def to_spec(self) -> LocalAssetSpec:
        return LocalAssetSpec(**self.model_dump())


class ProvisioningConfigMap(BaseClientModel):
    origin: ChainConfigMap = Field(
        default=ChainConfigMap(name="asset-hub", url=CONSTANTS.DEFAULT_ORIGIN_URL,
                               para_id=CONSTANTS.ASSET_HUB_PARA_ID),
    )
    relay: Optional[ChainConfigMap] = Field(
        default=ChainConfigMap(name="relay", url=CONSTANTS.DEFAULT_RELAY_URL, pacer_mode=PacerMode.STOPPED),
        description="Stepped between origin and destination so downward/upward messages get processed",
    )
    destination: ChainConfigMap = Field(
        default=ChainConfigMap(name="hydration", url=CONSTANTS.DEFAULT_DESTINATION_URL,
                               para_id=CONSTANTS.HYDRATION_PARA_ID),
    )
    signer_uri: str = Field(default="//Alice", description="Secret URI of the sr25519 signing key")
    beneficiary: Optional[str] = Field(
        default=None,
        description="Destination account receiving bridged funds. Defaults to the signer.",
    )
    assets_file: str = Field(default=DEFAULT_ASSETS_FILE_NAME)
    metadata_file: str = Field(default=DEFAULT_METADATA_FILE_NAME)

    assets_pallet_instance: int = Field(default=CONSTANTS.ASSETS_PALLET_INSTANCE, ge=0)
    min_balance: int = Field(default=CONSTANTS.DEFAULT_MIN_BALANCE, gt=0)
    mint_amount: int = Field(default=1_100_000_000 * 10 ** 12, gt=0)
    counterpart_account: Optional[str] = Field(
        default=None,
        description="Account touched on the origin chain for every new asset. Defaults to the destination "
                    "parachain's sibling sovereign account.",
    )
    verify_origin_metadata: bool = True
    destination_id_offset: int = Field(default=0, ge=0)

    transfer_amount: int = Field(default=1_000_000_000 * 10 ** 12, gt=0)
    fee_asset_amount: int = Field(default=CONSTANTS.DEFAULT_FEE_ASSET_AMOUNT, gt=0)
    max_delivery_rounds: int = Field(default=5, gt=0)

    base_asset_id: int = Field(default=5, ge=0)
    base_pool_amount: int = Field(default=100 * 10 ** 10, gt=0)
    base_pool_price: Decimal = Field(default=Decimal("0.001"), gt=0)
    initial_pool_size: int = Field(default=1000 * 10 ** 12, gt=0)

    inclusion_timeout: float = Field(default=CONSTANTS.DEFAULT_INCLUSION_TIMEOUT, gt=0)
    advance_timeout: float = Field(default=CONSTANTS.DEFAULT_ADVANCE_TIMEOUT, gt=0)

    allow_privileged_injection: bool = Field(
        default=False,
        description="Allow root calls to be written straight into the scheduler agenda. Sandboxes only.",
    )
    local_assets: List[LocalAssetConfigMap] = Field(default=[])
    local_pool_amount: Optional[int] = Field(
        default=1000 * 10 ** 12,
        description="Liquidity for the pool between the first two local assets. Empty to skip the pool.",
    )

    @model_validator(mode="after")
    def check_para_ids(self):
        for role in ("origin", "destination"):
            if getattr(self, role).para_id is None:
                raise ValueError(f"{role}.para_id is required")
        return self
