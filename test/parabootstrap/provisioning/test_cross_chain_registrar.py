import tempfile
from decimal import Decimal
from pathlib import Path
from test.isolated_asyncio_wrapper_test_case import IsolatedAsyncioWrapperTestCase
from test.logger_mxin import TestLoggerMixin
from test.parabootstrap.chain.mock_chain_handle import MockChainHandle, MockSigner

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.multi_location import origin_asset_location
from parabootstrap.exceptions import (
    AlreadyRegistered,
    ChainConnectionError,
    IdentifierPredictionMismatch,
    SubmissionRejected,
)
from parabootstrap.provisioning.cross_chain_registrar import CrossChainRegistrar
from parabootstrap.provisioning.data_types import AssetDescriptor
from parabootstrap.provisioning.metadata_store import MetadataStore

ASSETS = [
    AssetDescriptor(local_id=7, name="BLAST-1", symbol="BLAST Stage 1", decimals=18, initial_price=Decimal("0.5")),
    AssetDescriptor(local_id=8, name="FAZE-1", symbol="FAZE Stage 1", decimals=12, initial_price=Decimal("2")),
]


class CrossChainRegistrarTest(IsolatedAsyncioWrapperTestCase, TestLoggerMixin):

    def setUp(self) -> None:
        super().setUp()
        self._tmp_dir = tempfile.TemporaryDirectory()
        self.store = MetadataStore(Path(self._tmp_dir.name) / "asset-metadata.json")
        self.destination = MockChainHandle("hydration", para_id=2034, registry_next_id=5,
                                           registry_id_offset=1_000_000)
        self.signer = MockSigner()
        self.registrar = CrossChainRegistrar(metadata_store=self.store, id_offset=1_000_000)
        self.set_loggers([CrossChainRegistrar.logger()])

    def tearDown(self) -> None:
        self._tmp_dir.cleanup()
        super().tearDown()

    async def test_registers_assets_and_persists_records(self):
        records = await self.registrar.register_external(self.destination, self.signer, 1000, 50, ASSETS)

        self.assertEqual([1_000_005, 1_000_006], [r.destination_local_id for r in records])
        self.assertEqual([1_000_005, 1_000_006], [r.predicted_local_id for r in records])
        self.assertEqual([7, 8], [r.origin_asset_id for r in records])
        self.assertEqual(origin_asset_location(1000, 50, 8).to_scale(), records[1].location)
        self.assertEqual(Decimal("2"), records[1].initial_price)
        self.assertEqual(records, self.store.load())
        self.assertEqual(1, len(self.destination.submitted))
        self.assertEqual(2, len(self.destination.submitted[0].params["calls"]))
        self.assertTrue(self.is_logged("INFO", "BLAST Stage 1: origin asset 7 -> hydration asset 1000005"))

    async def test_rerun_raises_already_registered_without_submitting(self):
        await self.registrar.register_external(self.destination, self.signer, 1000, 50, ASSETS)

        with self.assertRaises(AlreadyRegistered):
            await self.registrar.register_external(self.destination, self.signer, 1000, 50, ASSETS)

        self.assertEqual(1, len(self.destination.submitted))

    async def test_assigned_id_wins_over_prediction(self):
        registrar = CrossChainRegistrar(metadata_store=self.store)

        records = await registrar.register_external(self.destination, self.signer, 1000, 50, ASSETS[:1])

        self.assertEqual(1_000_005, records[0].destination_local_id)
        self.assertEqual(5, records[0].predicted_local_id)
        self.assertTrue(self.is_logged(
            "WARNING", "hydration assigned id 1000005 to BLAST Stage 1, predicted 5. Using the assigned id."))
        self.assertEqual(1_000_005, self.store.load()[0].destination_local_id)

    async def test_location_taken_during_run_fails_atomically(self):
        self.destination.external_writer = CrossChainRegistrar.register_call(origin_asset_location(1000, 50, 8))

        with self.assertRaises(SubmissionRejected):
            await self.registrar.register_external(self.destination, self.signer, 1000, 50, ASSETS)

        self.assertIsNone(await self.registrar.registered_id(self.destination, origin_asset_location(1000, 50, 7)))
        self.assertFalse(self.store.exists())

    def replace_location_read(self, read_number: int, replacement):
        """
        Swaps the `read_number`-th AssetRegistry location lookup for `replacement()`. The first two lookups are the
        already-registered checks, the following ones the read-backs after the batch is included.
        """
        query = self.destination.query
        reads = []

        async def query_with_replacement(module, storage_function, params=None):
            if storage_function == CONSTANTS.LOCATION_ASSETS_STORAGE:
                reads.append(params)
                if len(reads) == read_number:
                    return await replacement()
            return await query(module, storage_function, params)

        self.destination.query = query_with_replacement

    async def test_records_resolved_before_a_failed_read_back_are_saved(self):
        async def drop_connection():
            raise ChainConnectionError("hydration kept dropping the connection")

        self.replace_location_read(4, drop_connection)

        with self.assertRaises(ChainConnectionError):
            await self.registrar.register_external(self.destination, self.signer, 1000, 50, ASSETS)

        saved = self.store.load()
        self.assertEqual([1_000_005], [r.destination_local_id for r in saved])
        self.assertEqual(7, saved[0].origin_asset_id)
        self.assertEqual(1_000_006, await self.registrar.registered_id(self.destination,
                                                                       origin_asset_location(1000, 50, 8)))

    async def test_missing_registry_entry_keeps_the_resolved_records(self):
        async def no_entry():
            return None

        self.replace_location_read(3, no_entry)

        with self.assertRaises(IdentifierPredictionMismatch) as context:
            await self.registrar.register_external(self.destination, self.signer, 1000, 50, ASSETS)

        self.assertIn("BLAST Stage 1", str(context.exception))
        self.assertEqual([1_000_006], [r.destination_local_id for r in self.store.load()])

    async def test_no_assets(self):
        self.assertEqual([], await self.registrar.register_external(self.destination, self.signer, 1000, 50, []))
        self.assertEqual([], self.destination.submitted)
