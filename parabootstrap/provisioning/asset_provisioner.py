import logging
from typing import Any, List, Optional, Sequence, Union

from substrateinterface import Keypair

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.batch_composer import BatchComposer
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.chain.data_types import ChainCall
from parabootstrap.chain.multi_location import decode_account_id
from parabootstrap.exceptions import ChainStateError, IdentifierPredictionMismatch, SubmissionRejected
from parabootstrap.logger import ParabootstrapLogger
from parabootstrap.provisioning.data_types import AssetDescriptor, AssetSpec
from parabootstrap.provisioning.identifier_lease import IdentifierLease


def decode_text(value: Any) -> str:
    """
    Metadata byte fields come back either as text or as 0x-prefixed hex depending on the decoder.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str) and value.startswith("0x"):
        try:
            return bytes.fromhex(value[2:]).decode("utf-8")
        except ValueError:
            return value
    return str(value)


class AssetProvisioner:
    """
    Creates a set of assets on the origin chain in one atomic batch: create, set_metadata, mint to the signer and
    touch_other for the counterpart account that will later receive the asset.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self,
                 counterpart_account: Union[str, bytes],
                 min_balance: int = CONSTANTS.DEFAULT_MIN_BALANCE,
                 verify: bool = True):
        self._counterpart = f"0x{decode_account_id(counterpart_account).hex()}"
        self._min_balance = min_balance
        self._verify = verify

    @property
    def counterpart_account(self) -> str:
        return self._counterpart

    def asset_calls(self, asset_id: int, spec: AssetSpec, owner: str, mint_amount: int) -> List[ChainCall]:
        return [
            ChainCall(CONSTANTS.ASSETS_MODULE, "create", {
                "id": asset_id,
                "admin": owner,
                "min_balance": self._min_balance,
            }),
            ChainCall(CONSTANTS.ASSETS_MODULE, "set_metadata", {
                "id": asset_id,
                "name": spec.name,
                "symbol": spec.symbol,
                "decimals": spec.decimals,
            }),
            ChainCall(CONSTANTS.ASSETS_MODULE, "mint", {
                "id": asset_id,
                "beneficiary": owner,
                "amount": mint_amount,
            }),
            ChainCall(CONSTANTS.ASSETS_MODULE, "touch_other", {
                "id": asset_id,
                "who": self._counterpart,
            }),
        ]

    async def provision_assets(self,
                               chain: ChainHandle,
                               signer: Keypair,
                               specs: Sequence[AssetSpec],
                               mint_amount: int) -> List[AssetDescriptor]:
        """
        Returns one descriptor per spec, in order, with contiguous ids starting at the chain's NextAssetId.
        A dispatch failure raises SubmissionRejected and leaves the chain unchanged.
        """
        if len(specs) == 0:
            return []

        async with IdentifierLease(chain, CONSTANTS.ASSETS_MODULE, CONSTANTS.NEXT_ASSET_ID_STORAGE) as lease:
            asset_ids = lease.allocate(len(specs))
            calls: List[ChainCall] = []
            for asset_id, spec in zip(asset_ids, specs):
                calls.extend(self.asset_calls(asset_id, spec, signer.ss58_address, mint_amount))
            batch = BatchComposer.compose(calls)

            self.logger().info(f"Creating {len(specs)} asset(s) on {chain.name} with ids {asset_ids}")
            outcome = await chain.submit(batch.as_call(), signer)
            if not outcome.success:
                raise SubmissionRejected(f"Asset creation batch failed on {chain.name}: {outcome.error_description}")

            descriptors = [
                AssetDescriptor(local_id=asset_id,
                                name=spec.name,
                                symbol=spec.symbol,
                                decimals=spec.decimals,
                                initial_price=spec.initial_price)
                for asset_id, spec in zip(asset_ids, specs)
            ]
            if self._verify:
                await self.verify_assets(chain, descriptors)

        for descriptor in descriptors:
            self.logger().info(f"Created {descriptor.symbol} ({descriptor.name}) as asset {descriptor.local_id} "
                               f"on {chain.name}")
        return descriptors

    async def verify_assets(self, chain: ChainHandle, descriptors: Sequence[AssetDescriptor]):
        for descriptor in descriptors:
            metadata = await chain.query(CONSTANTS.ASSETS_MODULE, CONSTANTS.ASSET_METADATA_STORAGE,
                                         [descriptor.local_id])
            if metadata is None:
                raise ChainStateError(f"No metadata for asset {descriptor.local_id} on {chain.name}")
            on_chain = (decode_text(metadata.get("name")),
                        decode_text(metadata.get("symbol")),
                        int(metadata.get("decimals", -1)))
            expected = (descriptor.name, descriptor.symbol, descriptor.decimals)
            if on_chain != expected:
                raise IdentifierPredictionMismatch(
                    f"Asset {descriptor.local_id} on {chain.name} holds {on_chain}, expected {expected}. "
                    f"Another writer consumed asset ids during the run.")
