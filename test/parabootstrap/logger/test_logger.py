import logging
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import parabootstrap
from parabootstrap import get_logging_conf_path, init_logging, template_path
from parabootstrap.chain.block_pacer import BlockPacer
from parabootstrap.logger import NETWORK, MaxLevelFilter, ParabootstrapLogger


def record(level: int) -> logging.LogRecord:
    return logging.LogRecord("parabootstrap", level, __file__, 1, "message", None, None)


class ParabootstrapLoggerTest(unittest.TestCase):

    def test_logger_name_for_class(self):
        self.assertEqual("parabootstrap.chain.block_pacer.BlockPacer",
                         ParabootstrapLogger.logger_name_for_class(BlockPacer))

    def test_class_loggers_are_parabootstrap_loggers(self):
        self.assertIsInstance(BlockPacer.logger(), ParabootstrapLogger)

    def test_network_level(self):
        logger = ParabootstrapLogger("parabootstrap.test.network")
        logger.setLevel(1)
        with self.assertLogs(logger, level=NETWORK) as logs:
            logger.network("chain_getHeader []")

        self.assertEqual(["NETWORK:parabootstrap.test.network:chain_getHeader []"], logs.output)
        self.assertLess(NETWORK, logging.INFO)

    def test_max_level_filter(self):
        below_error = MaxLevelFilter("ERROR")

        self.assertTrue(below_error.filter(record(logging.INFO)))
        self.assertTrue(below_error.filter(record(logging.WARNING)))
        self.assertFalse(below_error.filter(record(logging.ERROR)))
        self.assertFalse(MaxLevelFilter(logging.WARNING).filter(record(logging.WARNING)))


class InitLoggingTest(unittest.TestCase):

    def setUp(self) -> None:
        super().setUp()
        self._tmp_dir = tempfile.TemporaryDirectory()
        parabootstrap.set_prefix_path(self._tmp_dir.name)

    def tearDown(self) -> None:
        parabootstrap.set_prefix_path(None)
        self._tmp_dir.cleanup()
        super().tearDown()

    def test_falls_back_to_packaged_template(self):
        self.assertEqual(template_path("parabootstrap_logs.yml"), get_logging_conf_path("parabootstrap_logs.yml"))

    def test_prefers_conf_directory(self):
        conf_path = Path(self._tmp_dir.name) / "conf" / "parabootstrap_logs.yml"
        conf_path.parent.mkdir()
        conf_path.write_text("version: 1\n")

        self.assertEqual(conf_path, get_logging_conf_path("parabootstrap_logs.yml"))

    @patch("logging.config.dictConfig")
    def test_init_logging_fills_in_paths(self, dict_config_mock):
        init_logging(log_file_name="bridge_liquidity", override_log_level="DEBUG")

        config = dict_config_mock.call_args.args[0]
        self.assertEqual(f"{self._tmp_dir.name}/logs/logs_bridge_liquidity.log",
                         config["handlers"]["file_handler"]["filename"])
        self.assertEqual("DEBUG", config["loggers"]["parabootstrap"]["level"])
        self.assertEqual("DEBUG", config["loggers"]["substrateinterface"]["level"])
        self.assertTrue((Path(self._tmp_dir.name) / "logs").is_dir())
