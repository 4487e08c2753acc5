import logging
from typing import Any, Optional, Union

from substrateinterface import Keypair

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.chain.data_types import ChainCall, TransactionOutcome
from parabootstrap.chain.multi_location import (
    account_location,
    fungible_asset,
    local_asset_location,
    parachain_location,
    relay_native_location,
)
from parabootstrap.exceptions import SubmissionRejected, XcmSendRejected
from parabootstrap.logger import ParabootstrapLogger
from parabootstrap.provisioning.data_types import BridgeRequest


class LiquidityBridge:
    """
    Moves an origin-chain asset to an account on a sibling parachain with a reserve-backed transfer. The relay
    chain's native asset rides along as the fee item paying for execution on the destination.

    The weight limit is Unlimited, which only makes sense against sandboxed chains.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self,
                 assets_pallet_instance: int = CONSTANTS.ASSETS_PALLET_INSTANCE,
                 fee_asset_amount: int = CONSTANTS.DEFAULT_FEE_ASSET_AMOUNT):
        self._assets_pallet_instance = assets_pallet_instance
        self._fee_asset_amount = fee_asset_amount

    def build_transfer_call(self,
                            asset: BridgeRequest,
                            destination_para_id: int,
                            beneficiary: Union[str, bytes]) -> ChainCall:
        version = CONSTANTS.XCM_VERSION
        assets = [
            fungible_asset(local_asset_location(self._assets_pallet_instance, asset.origin_asset_id), asset.amount),
            fungible_asset(relay_native_location(), self._fee_asset_amount),
        ]
        return ChainCall(CONSTANTS.POLKADOT_XCM_MODULE, "limited_reserve_transfer_assets", {
            "dest": parachain_location(destination_para_id).versioned(version),
            "beneficiary": account_location(beneficiary).versioned(version),
            "assets": {version: assets},
            "fee_asset_item": CONSTANTS.FEE_ASSET_ITEM,
            "weight_limit": CONSTANTS.UNLIMITED_WEIGHT,
        })

    async def bridge(self,
                     origin: ChainHandle,
                     signer: Keypair,
                     asset: BridgeRequest,
                     destination_para_id: int,
                     beneficiary: Union[str, bytes]) -> TransactionOutcome:
        if asset.amount <= 0:
            raise ValueError(f"Bridge amount must be positive, got {asset.amount}")
        call = self.build_transfer_call(asset, destination_para_id, beneficiary)
        self.logger().info(f"Sending {asset.amount} of asset {asset.origin_asset_id} from {origin.name} "
                           f"to parachain {destination_para_id}")
        try:
            outcome = await origin.submit(call, signer)
        except SubmissionRejected as e:
            raise XcmSendRejected(f"{origin.name} refused the transfer of asset {asset.origin_asset_id}: {e}") from e
        if not outcome.success:
            raise XcmSendRejected(f"Transfer of asset {asset.origin_asset_id} failed on {origin.name}: "
                                  f"{outcome.error_description}")
        for event in outcome.events_for(CONSTANTS.POLKADOT_XCM_MODULE, CONSTANTS.XCM_ATTEMPTED_EVENT):
            xcm_outcome = _attempted_outcome(event.get("attributes"))
            if xcm_outcome is not None and xcm_outcome != CONSTANTS.XCM_OUTCOME_COMPLETE:
                raise XcmSendRejected(f"Local XCM execution for asset {asset.origin_asset_id} on {origin.name} "
                                      f"ended {xcm_outcome}")
        return outcome


def _attempted_outcome(attributes: Any) -> Optional[str]:
    if isinstance(attributes, dict):
        outcome: Any = attributes.get("outcome", attributes)
    elif isinstance(attributes, (list, tuple)) and len(attributes) > 0:
        outcome = attributes[0]
    else:
        return None
    if isinstance(outcome, dict) and len(outcome) > 0:
        return next(iter(outcome.keys()))
    if isinstance(outcome, str):
        return outcome
    return None
