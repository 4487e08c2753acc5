import logging
from typing import List, Optional, Sequence

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.batch_composer import BatchComposer, PrivilegedScheduler
from parabootstrap.chain.data_types import ChainCall
from parabootstrap.logger import ParabootstrapLogger
from parabootstrap.provisioning.data_types import LocalAssetSpec


class LocalAssetSeeder:
    """
    Registers tokens in a destination chain's own asset registry, makes them usable for fees and funds an account
    with them. These calls need Root, so they go through the privileged scheduler, one batch per asset.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self, scheduler: PrivilegedScheduler):
        self._scheduler = scheduler

    @staticmethod
    def seed_calls(asset: LocalAssetSpec, account: str) -> List[ChainCall]:
        return [
            ChainCall(CONSTANTS.ASSET_REGISTRY_MODULE, "register", {
                "asset_id": asset.asset_id,
                "name": asset.name,
                "asset_type": "Token",
                "existential_deposit": asset.existential_deposit,
                "symbol": asset.symbol,
                "decimals": asset.decimals,
                "location": None,
                "xcm_rate_limit": None,
                "is_sufficient": True,
            }),
            ChainCall(CONSTANTS.MULTI_TRANSACTION_PAYMENT_MODULE, "add_currency", {
                "currency": asset.asset_id,
                "price": asset.fee_price,
            }),
            ChainCall(CONSTANTS.TOKENS_MODULE, "set_balance", {
                "who": account,
                "currency_id": asset.asset_id,
                "new_free": asset.seeded_balance,
                "new_reserved": 0,
            }),
        ]

    async def seed_local_assets(self, account: str, assets: Sequence[LocalAssetSpec]) -> List[int]:
        """
        Returns the block height each asset's batch executed at.
        """
        executed_at: List[int] = []
        for asset in assets:
            batch = BatchComposer.compose(self.seed_calls(asset, account))
            block_number = await self._scheduler.execute(batch)
            self.logger().info(f"Seeded {asset.symbol} as asset {asset.asset_id} with {asset.seeded_balance} "
                               f"for {account} at block #{block_number}")
            executed_at.append(block_number)
        return executed_at
