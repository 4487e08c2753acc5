import json
import os
import tempfile
import unittest
from pathlib import Path
from test.isolated_asyncio_wrapper_test_case import IsolatedAsyncioWrapperTestCase
from test.parabootstrap.chain.mock_chain_handle import ALICE_ADDRESS, MockChainHandle, MockNetwork, MockSigner
from unittest.mock import AsyncMock, patch

from parabootstrap.client.config.provisioning_config_map import ChainConfigMap, PacerMode, ProvisioningConfigMap
from parabootstrap.client.phase_runner import (
    BRIDGE_LIQUIDITY,
    PROVISION_AND_REGISTER,
    CmdlineParser,
    main,
    run_phase,
)
from parabootstrap.provisioning.metadata_store import MetadataStore


class RunPhaseTest(IsolatedAsyncioWrapperTestCase):

    def setUp(self) -> None:
        super().setUp()
        self._tmp_dir = tempfile.TemporaryDirectory()
        tmp_path = Path(self._tmp_dir.name)
        assets_file = tmp_path / "assets.json"
        assets_file.write_text(json.dumps([{"name": "BLAST-1", "symbol": "BLAST Stage 1", "decimals": 18}]))
        self.metadata_file = tmp_path / "asset-metadata.json"
        self.config = ProvisioningConfigMap(
            origin=ChainConfigMap(name="asset-hub", url="ws://asset-hub", para_id=1000, pacer_mode=PacerMode.MANUAL),
            relay=None,
            destination=ChainConfigMap(name="hydration", url="ws://hydration", para_id=2034,
                                       pacer_mode=PacerMode.MANUAL),
            assets_file=str(assets_file),
            metadata_file=str(self.metadata_file),
            mint_amount=10_000,
            transfer_amount=100,
        )
        network = MockNetwork()
        self.chains = {
            "asset-hub": MockChainHandle("asset-hub", para_id=1000, next_asset_id=3),
            "hydration": MockChainHandle("hydration", para_id=2034, registry_next_id=20),
        }
        for chain in self.chains.values():
            network.add(chain)

    def tearDown(self) -> None:
        self._tmp_dir.cleanup()
        super().tearDown()

    async def handle_factory(self, name: str, url: str, **kwargs) -> MockChainHandle:
        return self.chains[name]

    async def test_phases_hand_over_through_metadata_file(self):
        records = await run_phase(PROVISION_AND_REGISTER, self.config, self.handle_factory, MockSigner())

        self.assertEqual([20], [record.destination_local_id for record in records])
        self.assertEqual(records, MetadataStore(self.metadata_file).load())
        self.assertTrue(all(chain.closed for chain in self.chains.values()))

        outcomes = await run_phase(BRIDGE_LIQUIDITY, self.config, self.handle_factory, MockSigner())

        self.assertEqual(1, len(outcomes))
        self.assertEqual(100, self.chains["hydration"].token_balance(ALICE_ADDRESS, 20))


class MainTest(unittest.TestCase):

    def setUp(self) -> None:
        super().setUp()
        self._tmp_dir = tempfile.TemporaryDirectory()
        self.config_file = Path(self._tmp_dir.name) / "conf.yml"
        self.config_file.write_text("destination_id_offset: 1000000\n")
        init_logging_patcher = patch("parabootstrap.client.phase_runner.init_logging")
        self.init_logging = init_logging_patcher.start()
        self.addCleanup(init_logging_patcher.stop)

    def tearDown(self) -> None:
        self._tmp_dir.cleanup()
        super().tearDown()

    def test_cmdline_parser(self):
        args = CmdlineParser(BRIDGE_LIQUIDITY).parse_args(["-f", "sandbox.yml"])

        self.assertEqual("sandbox.yml", args.config_file_name)
        self.assertIsNone(CmdlineParser(BRIDGE_LIQUIDITY).parse_args([]).config_file_name)

    @patch("parabootstrap.client.phase_runner.run_phase", new_callable=AsyncMock)
    def test_main_runs_phase(self, run_phase_mock: AsyncMock):
        exit_code = main(BRIDGE_LIQUIDITY, ["-f", str(self.config_file)])

        self.assertEqual(0, exit_code)
        self.init_logging.assert_called_with(log_file_name=BRIDGE_LIQUIDITY)
        phase, config = run_phase_mock.await_args.args
        self.assertEqual(BRIDGE_LIQUIDITY, phase)
        self.assertEqual(1_000_000, config.destination_id_offset)

    @patch("parabootstrap.client.phase_runner.run_phase", new_callable=AsyncMock)
    def test_main_reads_config_file_name_from_environment(self, run_phase_mock: AsyncMock):
        with patch.dict(os.environ, {"CONFIG_FILE_NAME": str(self.config_file)}):
            exit_code = main(BRIDGE_LIQUIDITY, [])

        self.assertEqual(0, exit_code)
        self.assertEqual(1_000_000, run_phase_mock.await_args.args[1].destination_id_offset)

    @patch("parabootstrap.client.phase_runner.run_phase", new_callable=AsyncMock)
    def test_main_returns_error_code_on_failure(self, run_phase_mock: AsyncMock):
        run_phase_mock.side_effect = FileNotFoundError("asset-metadata.json not found")

        self.assertEqual(1, main(BRIDGE_LIQUIDITY, ["-f", str(self.config_file)]))

    def test_main_returns_error_code_on_missing_config(self):
        self.assertEqual(1, main(BRIDGE_LIQUIDITY, ["-f", str(Path(self._tmp_dir.name) / "missing.yml")]))
