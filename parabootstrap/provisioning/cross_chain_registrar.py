import logging
from typing import List, Optional, Sequence

from substrateinterface import Keypair

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.batch_composer import BatchComposer
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.chain.data_types import ChainCall
from parabootstrap.chain.multi_location import Location, origin_asset_location
from parabootstrap.exceptions import AlreadyRegistered, IdentifierPredictionMismatch, SubmissionRejected
from parabootstrap.logger import ParabootstrapLogger
from parabootstrap.provisioning.data_types import AssetDescriptor, CrossChainAssetRecord
from parabootstrap.provisioning.identifier_lease import IdentifierLease
from parabootstrap.provisioning.metadata_store import MetadataStore


class CrossChainRegistrar:
    """
    Registers origin-chain assets on a destination chain's asset registry by location.

    The destination id of each asset is whatever the registry maps its location to after the batch lands. The
    pre-submission prediction is only kept on the record for diagnostics. Once the batch is included, every record
    that reads back is saved, even if a later read-back fails.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self, metadata_store: Optional[MetadataStore] = None, id_offset: int = 0):
        self._metadata_store = metadata_store
        self._id_offset = id_offset

    @property
    def id_offset(self) -> int:
        return self._id_offset

    @staticmethod
    def register_call(location: Location) -> ChainCall:
        return ChainCall(CONSTANTS.ASSET_REGISTRY_MODULE, "register_external", {"location": location.to_scale()})

    async def registered_id(self, destination: ChainHandle, location: Location) -> Optional[int]:
        value = await destination.query(CONSTANTS.ASSET_REGISTRY_MODULE, CONSTANTS.LOCATION_ASSETS_STORAGE,
                                        [location.to_scale()])
        return None if value is None else int(value)

    async def register_external(self,
                                destination: ChainHandle,
                                signer: Keypair,
                                origin_para_id: int,
                                origin_pallet_instance: int,
                                assets: Sequence[AssetDescriptor]) -> List[CrossChainAssetRecord]:
        if len(assets) == 0:
            return []

        locations = [origin_asset_location(origin_para_id, origin_pallet_instance, asset.local_id)
                     for asset in assets]

        async with IdentifierLease(destination, CONSTANTS.ASSET_REGISTRY_MODULE,
                                   CONSTANTS.NEXT_ASSET_ID_STORAGE) as lease:
            for asset, location in zip(assets, locations):
                existing_id = await self.registered_id(destination, location)
                if existing_id is not None:
                    raise AlreadyRegistered(f"{asset.symbol} (origin asset {asset.local_id}) is already registered on "
                                            f"{destination.name} as asset {existing_id}")

            predicted_ids = lease.allocate(len(assets), offset=self._id_offset)
            batch = BatchComposer.compose([self.register_call(location) for location in locations])
            self.logger().info(f"Registering {len(assets)} external asset(s) on {destination.name}, "
                               f"expecting ids {predicted_ids}")
            outcome = await destination.submit(batch.as_call(), signer)
            if not outcome.success:
                raise SubmissionRejected(f"External registration batch failed on {destination.name}: "
                                         f"{outcome.error_description}")

            records: List[CrossChainAssetRecord] = []
            missing: List[str] = []
            try:
                for asset, location, predicted_id in zip(assets, locations, predicted_ids):
                    assigned_id = await self.registered_id(destination, location)
                    if assigned_id is None:
                        missing.append(asset.symbol)
                        continue
                    if assigned_id != predicted_id:
                        self.logger().warning(f"{destination.name} assigned id {assigned_id} to {asset.symbol}, "
                                              f"predicted {predicted_id}. Using the assigned id.")
                    records.append(CrossChainAssetRecord(destination_local_id=assigned_id,
                                                         origin_asset_id=asset.local_id,
                                                         name=asset.name,
                                                         symbol=asset.symbol,
                                                         decimals=asset.decimals,
                                                         location=location.to_scale(),
                                                         initial_price=asset.initial_price,
                                                         predicted_local_id=predicted_id))
            finally:
                # the batch is on chain, so every id read back so far is final
                if records and self._metadata_store is not None:
                    self._metadata_store.save(records)
            if missing:
                raise IdentifierPredictionMismatch(f"No registry entry on {destination.name} after registration for: "
                                                   f"{', '.join(missing)}")

        for record in records:
            self.logger().info(f"{record.symbol}: origin asset {record.origin_asset_id} -> "
                               f"{destination.name} asset {record.destination_local_id}")
        return records
