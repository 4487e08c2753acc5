import logging
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from substrateinterface import Keypair

from parabootstrap.chain.batch_composer import PrivilegedScheduler
from parabootstrap.chain.block_pacer import BlockPacer
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.chain.data_types import BlockBuildMode, TransactionOutcome
from parabootstrap.chain.multi_location import sibling_sovereign_account
from parabootstrap.client.config.provisioning_config_map import ChainConfigMap, PacerMode, ProvisioningConfigMap
from parabootstrap.exceptions import DeliveryTimeout, XcmSendRejected
from parabootstrap.logger import ParabootstrapLogger
from parabootstrap.provisioning.asset_provisioner import AssetProvisioner
from parabootstrap.provisioning.balances import destination_free_balance
from parabootstrap.provisioning.cross_chain_registrar import CrossChainRegistrar
from parabootstrap.provisioning.data_types import AssetSpec, BridgeRequest, CrossChainAssetRecord
from parabootstrap.provisioning.liquidity_bridge import LiquidityBridge
from parabootstrap.provisioning.local_asset_seeder import LocalAssetSeeder
from parabootstrap.provisioning.metadata_store import MetadataStore
from parabootstrap.provisioning.pool_bootstrapper import PoolBootstrapper, PoolQuote

HandleFactory = Callable[..., Awaitable[ChainHandle]]


class ChainSession:
    """
    Opens every configured chain, sets up its pacer, and tears everything down on exit, including when the
    body raises.

        async with ChainSession(config) as session:
            await session.step_chains()
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self, config: ProvisioningConfigMap, handle_factory: HandleFactory = ChainHandle.connect):
        self._config = config
        self._handle_factory = handle_factory
        self._handles: Dict[str, ChainHandle] = {}
        self._pacers: Dict[str, BlockPacer] = {}

    @property
    def origin(self) -> ChainHandle:
        return self._handles[self._config.origin.name]

    @property
    def destination(self) -> ChainHandle:
        return self._handles[self._config.destination.name]

    @property
    def relay(self) -> Optional[ChainHandle]:
        if self._config.relay is None:
            return None
        return self._handles.get(self._config.relay.name)

    def pacer(self, chain: ChainHandle) -> BlockPacer:
        return self._pacers[chain.name]

    def _chain_configs(self) -> List[ChainConfigMap]:
        configs = [self._config.origin]
        if self._config.relay is not None:
            configs.append(self._config.relay)
        configs.append(self._config.destination)
        return configs

    async def __aenter__(self) -> "ChainSession":
        try:
            for chain_config in self._chain_configs():
                await self._open(chain_config)
        except BaseException:
            self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def _open(self, chain_config: ChainConfigMap):
        handle = await self._handle_factory(chain_config.name, chain_config.url,
                                            inclusion_timeout=self._config.inclusion_timeout)
        self._handles[chain_config.name] = handle
        pacer = BlockPacer(handle, interval=chain_config.pacer_interval, advance_timeout=self._config.advance_timeout)
        self._pacers[chain_config.name] = pacer
        if chain_config.block_build_mode is not None:
            await pacer.set_build_mode(chain_config.block_build_mode)
        if chain_config.pacer_mode is PacerMode.RUNNING:
            pacer.start()
        elif chain_config.pacer_mode is PacerMode.MANUAL:
            pacer.set_manual()
        # Instant and Batch nodes build a block for every pending extrinsic on their own
        if chain_config.block_build_mode not in (BlockBuildMode.INSTANT, BlockBuildMode.BATCH):
            handle.set_inclusion_driver(pacer.drive_inclusion)

    def close(self):
        for pacer in self._pacers.values():
            pacer.stop()
        for handle in self._handles.values():
            handle.close()
        self._pacers.clear()
        self._handles.clear()

    async def step_chains(self, rounds: int = 1):
        """
        Advances origin, relay and destination by one block each, in that order, `rounds` times. Messages sent
        from the origin are picked up by the relay and then delivered on the destination.
        """
        for _ in range(rounds):
            for chain_config in self._chain_configs():
                await self._pacers[chain_config.name].advance(1)


class ProvisioningOrchestrator:
    """
    Runs the provisioning phases against an open ChainSession. Phases hand over through the metadata store, so
    each one can run in a separate process.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self,
                 config: ProvisioningConfigMap,
                 session: ChainSession,
                 signer: Keypair,
                 metadata_store: MetadataStore):
        self._config = config
        self._session = session
        self._signer = signer
        self._metadata_store = metadata_store
        self._pool_bootstrapper = PoolBootstrapper()

    @property
    def beneficiary(self) -> str:
        return self._config.beneficiary or self._signer.ss58_address

    def _counterpart_account(self) -> str:
        if self._config.counterpart_account is not None:
            return self._config.counterpart_account
        return f"0x{sibling_sovereign_account(self._config.destination.para_id).hex()}"

    def _load_records(self) -> List[CrossChainAssetRecord]:
        if not self._metadata_store.exists():
            raise FileNotFoundError(f"{self._metadata_store.path} not found. Run provision_and_register first.")
        records = self._metadata_store.load()
        if len(records) == 0:
            raise ValueError(f"{self._metadata_store.path} holds no asset records")
        return records

    async def provision_and_register(self, specs: Sequence[AssetSpec]) -> List[CrossChainAssetRecord]:
        config = self._config
        provisioner = AssetProvisioner(counterpart_account=self._counterpart_account(),
                                       min_balance=config.min_balance,
                                       verify=config.verify_origin_metadata)
        descriptors = await provisioner.provision_assets(self._session.origin, self._signer, specs,
                                                         config.mint_amount)
        if len(descriptors) == 0:
            self.logger().warning("No assets to provision")
            return []
        await self._session.step_chains()

        registrar = CrossChainRegistrar(metadata_store=self._metadata_store, id_offset=config.destination_id_offset)
        records = await registrar.register_external(self._session.destination, self._signer,
                                                    config.origin.para_id, config.assets_pallet_instance,
                                                    descriptors)
        await self._session.step_chains()
        return records

    async def bridge_liquidity(self,
                               records: Optional[Sequence[CrossChainAssetRecord]] = None) -> List[TransactionOutcome]:
        """
        Bridges `transfer_amount` of every registered asset to the beneficiary and waits for each to arrive.
        A rejected transfer does not stop the others; all rejections are raised together at the end. Every
        delivered asset is marked in the metadata store, and assets already marked are skipped on a re-run.
        """
        config = self._config
        records = list(records) if records is not None else self._load_records()
        bridge = LiquidityBridge(assets_pallet_instance=config.assets_pallet_instance,
                                 fee_asset_amount=config.fee_asset_amount)
        destination = self._session.destination
        outcomes: List[TransactionOutcome] = []
        failures: Dict[str, XcmSendRejected] = {}
        bridged = self._metadata_store.bridged_amounts()
        for record in records:
            if record.destination_local_id in bridged:
                self.logger().info(f"Skipping {record.symbol}: {bridged[record.destination_local_id]} already "
                                   f"bridged to {destination.name}")
                continue
            previous_balance = await destination_free_balance(destination, self.beneficiary,
                                                              record.destination_local_id)
            try:
                outcome = await bridge.bridge(self._session.origin, self._signer,
                                              BridgeRequest(record.origin_asset_id, config.transfer_amount),
                                              config.destination.para_id, self.beneficiary)
            except XcmSendRejected as e:
                self.logger().error(f"Bridging {record.symbol} failed: {e}")
                failures[record.symbol] = e
                continue
            await self.await_arrival(record.destination_local_id, previous_balance, config.transfer_amount)
            self._metadata_store.mark_bridged(record, config.transfer_amount)
            outcomes.append(outcome)
        if failures:
            raise XcmSendRejected(f"{len(failures)} of {len(records)} transfer(s) failed: "
                                  + "; ".join(f"{symbol}: {error}" for symbol, error in failures.items()))
        return outcomes

    async def await_arrival(self, asset_id: int, previous_balance: int, amount: int) -> int:
        destination = self._session.destination
        for _ in range(self._config.max_delivery_rounds):
            await self._session.step_chains()
            balance = await destination_free_balance(destination, self.beneficiary, asset_id)
            credited = balance - previous_balance
            if credited >= amount:
                if credited != amount:
                    self.logger().warning(f"Expected {amount} of asset {asset_id} on {destination.name}, "
                                          f"{credited} arrived")
                self.logger().info(f"{credited} of asset {asset_id} arrived on {destination.name}, "
                                   f"balance {balance}")
                return balance
        raise DeliveryTimeout(f"Asset {asset_id} did not arrive on {destination.name} after "
                              f"{self._config.max_delivery_rounds} round(s)")

    async def bootstrap_pools(self,
                              records: Optional[Sequence[CrossChainAssetRecord]] = None) -> List[TransactionOutcome]:
        """
        The first registered asset is paired with the base asset. Every other registered asset is paired with
        the first one, at its own initial price.
        """
        config = self._config
        records = list(records) if records is not None else self._load_records()
        if len(records) == 0:
            raise ValueError("No registered assets to pair with the base asset")
        destination = self._session.destination
        first = records[0]
        outcomes = [await self._pool_bootstrapper.create_pool(destination, self._signer, config.base_asset_id,
                                                              PoolQuote(first.destination_local_id,
                                                                        config.base_pool_price),
                                                              config.base_pool_amount)]
        quotes = [PoolQuote(record.destination_local_id, record.initial_price or Decimal("1"))
                  for record in records[1:]]
        if quotes:
            outcomes.append(await self._pool_bootstrapper.create_pools(destination, self._signer,
                                                                       first.destination_local_id, quotes,
                                                                       config.initial_pool_size))
        return outcomes

    async def seed_local_assets(self) -> List[int]:
        config = self._config
        destination = self._session.destination
        scheduler = PrivilegedScheduler(self._session.pacer(destination), enabled=config.allow_privileged_injection)
        specs = [asset.to_spec() for asset in config.local_assets]
        if len(specs) == 0:
            self.logger().warning("No local assets configured")
            return []
        heights = await LocalAssetSeeder(scheduler).seed_local_assets(self._signer.ss58_address, specs)
        if len(specs) >= 2 and config.local_pool_amount:
            await self._pool_bootstrapper.create_pool(destination, self._signer, specs[0].asset_id,
                                                      PoolQuote(specs[1].asset_id), config.local_pool_amount)
        return heights
