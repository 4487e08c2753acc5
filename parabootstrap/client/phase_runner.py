import argparse
import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional

from substrateinterface import Keypair

from parabootstrap import init_logging
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.client.config.config_helpers import (
    load_asset_specs,
    load_provisioning_config_from_file,
    resolve_conf_path,
)
from parabootstrap.client.config.provisioning_config_map import ProvisioningConfigMap
from parabootstrap.client.settings import DEFAULT_CONFIG_FILE_NAME
from parabootstrap.provisioning.metadata_store import MetadataStore
from parabootstrap.provisioning.orchestrator import ChainSession, HandleFactory, ProvisioningOrchestrator

PROVISION_AND_REGISTER = "provision_and_register"
BRIDGE_LIQUIDITY = "bridge_liquidity"
BOOTSTRAP_POOLS = "bootstrap_pools"
SEED_LOCAL_ASSETS = "seed_local_assets"


class CmdlineParser(argparse.ArgumentParser):
    def __init__(self, phase: str):
        super().__init__(prog=phase)
        self.add_argument("--config-file-name", "-f",
                          type=str,
                          required=False,
                          help=f"Specify a file in `conf/` to load as the provisioning config file. "
                               f"Defaults to {DEFAULT_CONFIG_FILE_NAME}.")


async def _provision_and_register(orchestrator: ProvisioningOrchestrator, config: ProvisioningConfigMap):
    return await orchestrator.provision_and_register(load_asset_specs(config.assets_file))


async def _bridge_liquidity(orchestrator: ProvisioningOrchestrator, config: ProvisioningConfigMap):
    return await orchestrator.bridge_liquidity()


async def _bootstrap_pools(orchestrator: ProvisioningOrchestrator, config: ProvisioningConfigMap):
    return await orchestrator.bootstrap_pools()


async def _seed_local_assets(orchestrator: ProvisioningOrchestrator, config: ProvisioningConfigMap):
    return await orchestrator.seed_local_assets()


PHASES: Dict[str, Callable[[ProvisioningOrchestrator, ProvisioningConfigMap], Awaitable[Any]]] = {
    PROVISION_AND_REGISTER: _provision_and_register,
    BRIDGE_LIQUIDITY: _bridge_liquidity,
    BOOTSTRAP_POOLS: _bootstrap_pools,
    SEED_LOCAL_ASSETS: _seed_local_assets,
}


async def run_phase(phase: str,
                    config: ProvisioningConfigMap,
                    handle_factory: HandleFactory = ChainHandle.connect,
                    signer: Optional[Keypair] = None) -> Any:
    phase_function = PHASES[phase]
    signer = signer or Keypair.create_from_uri(config.signer_uri)
    metadata_store = MetadataStore(resolve_conf_path(config.metadata_file))
    async with ChainSession(config, handle_factory=handle_factory) as session:
        orchestrator = ProvisioningOrchestrator(config, session, signer, metadata_store)
        return await phase_function(orchestrator, config)


def main(phase: str, argv: Optional[List[str]] = None) -> int:
    args = CmdlineParser(phase).parse_args(argv)

    if args.config_file_name is None and len(os.environ.get("CONFIG_FILE_NAME", "")) > 0:
        args.config_file_name = os.environ["CONFIG_FILE_NAME"]
    config_file_name = args.config_file_name or DEFAULT_CONFIG_FILE_NAME

    init_logging(log_file_name=phase)
    logger = logging.getLogger(__name__)
    try:
        config = load_provisioning_config_from_file(config_file_name)
        logger.info(f"Running {phase} with {resolve_conf_path(config_file_name)}")
        asyncio.run(run_phase(phase, config))
    except KeyboardInterrupt:
        logger.error(f"{phase} interrupted")
        return 1
    except Exception as e:
        logger.error(f"{phase} failed: {e}", exc_info=True)
        return 1
    logger.info(f"{phase} complete")
    return 0
