from test.isolated_asyncio_wrapper_test_case import IsolatedAsyncioWrapperTestCase
from test.logger_mxin import TestLoggerMixin
from test.parabootstrap.chain.mock_chain_handle import ALICE_ADDRESS, MockChainHandle

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.batch_composer import BatchComposer, PrivilegedScheduler
from parabootstrap.chain.block_pacer import BlockPacer
from parabootstrap.chain.data_types import ChainCall, PacerState
from parabootstrap.exceptions import BlockProductionError, PrivilegedInjectionDisabled


def set_balance_call(currency_id: int, amount: int) -> ChainCall:
    return ChainCall("Tokens", "set_balance", {
        "who": ALICE_ADDRESS, "currency_id": currency_id, "new_free": amount, "new_reserved": 0,
    })


class BatchComposerTest(IsolatedAsyncioWrapperTestCase, TestLoggerMixin):

    def setUp(self) -> None:
        super().setUp()
        self.chain = MockChainHandle("hydration", para_id=2034, block_number=50)
        self.pacer = BlockPacer(self.chain, interval=0.01, advance_timeout=0.2, poll_interval=0.01)
        self.set_loggers([PrivilegedScheduler.logger()])

    async def asyncTearDown(self) -> None:
        self.pacer.stop()
        await super().asyncTearDown()

    def test_compose_keeps_call_order(self):
        calls = [set_balance_call(1, 10), set_balance_call(2, 20)]

        batch = BatchComposer.compose(calls)

        self.assertEqual(2, batch.size)
        self.assertEqual(ChainCall("Utility", "batch_all", {"calls": calls}), batch.as_call())

    def test_compose_rejects_empty_batch(self):
        with self.assertRaises(ValueError):
            BatchComposer.compose([])

    async def test_wrap_as_root_schedule_builds_agenda_entry(self):
        batch = BatchComposer.compose([set_balance_call(1, 10)])

        scheduled = await BatchComposer(self.chain).wrap_as_root_schedule(batch, 51)

        self.assertEqual(batch.as_call(), self.chain.encoded_calls[scheduled.encoded_call])
        self.assertEqual(
            {"scheduler": {"agenda": [[[51], [{"call": {"Inline": scheduled.encoded_call},
                                               "origin": {"system": "Root"}}]]]}},
            scheduled.storage_entries())

    def test_privileged_scheduler_requires_opt_in(self):
        with self.assertRaises(PrivilegedInjectionDisabled):
            PrivilegedScheduler(self.pacer)

    async def test_execute_runs_batch_with_root_at_next_block(self):
        scheduler = PrivilegedScheduler(self.pacer, enabled=True)

        executed_at = await scheduler.execute(BatchComposer.compose([set_balance_call(1, 10), set_balance_call(2, 20)]))

        self.assertEqual(51, executed_at)
        self.assertEqual(10, self.chain.token_balance(ALICE_ADDRESS, 1))
        self.assertEqual(20, self.chain.token_balance(ALICE_ADDRESS, 2))
        methods = [method for method, _ in self.chain.control_calls]
        self.assertLess(methods.index(CONSTANTS.SET_STORAGE_METHOD), methods.index(CONSTANTS.NEW_BLOCK_METHOD))
        self.assertTrue(self.is_logged("INFO", "Root batch executed on hydration at block #51"))

    async def test_execute_is_all_or_nothing(self):
        scheduler = PrivilegedScheduler(self.pacer, enabled=True)
        invalid = ChainCall("XYK", "create_pool", {"asset_a": 1, "amount_a": 10, "asset_b": 2, "amount_b": 10})

        await scheduler.execute(BatchComposer.compose([set_balance_call(1, 10), invalid]))

        self.assertEqual(0, self.chain.token_balance(ALICE_ADDRESS, 1))

    async def test_execute_pauses_and_restarts_running_pacer(self):
        self.pacer.start(interval=60)
        scheduler = PrivilegedScheduler(self.pacer, enabled=True)

        await scheduler.execute(BatchComposer.compose([set_balance_call(1, 10)]))

        self.assertEqual(PacerState.RUNNING, self.pacer.state)
        self.assertIsNotNone(self.pacer.pacer_task)

    async def test_execute_fails_when_target_block_is_never_produced(self):
        self.chain.frozen = True
        scheduler = PrivilegedScheduler(self.pacer, enabled=True)

        with self.assertRaises(BlockProductionError):
            await scheduler.execute(BatchComposer.compose([set_balance_call(1, 10)]))

        self.assertEqual(0, self.chain.token_balance(ALICE_ADDRESS, 1))
