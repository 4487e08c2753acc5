from test.isolated_asyncio_wrapper_test_case import IsolatedAsyncioWrapperTestCase

from parabootstrap.core.utils.async_retry import AllTriesFailedException, async_retry


class AsyncRetryTest(IsolatedAsyncioWrapperTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.calls = 0
        self.stats = {}

    async def test_retries_until_success(self):
        @async_retry(retry_count=3, exception_types=[ConnectionError], retry_interval=0, stats=self.stats)
        async def flaky():
            self.calls += 1
            if self.calls < 3:
                raise ConnectionError("dropped")
            return "ok"

        self.assertEqual("ok", await flaky())
        self.assertEqual(3, self.calls)
        self.assertEqual(2, self.stats["retry.flaky.count"])

    async def test_raises_after_all_tries(self):
        @async_retry(retry_count=2, exception_types=[ConnectionError], retry_interval=0)
        async def always_fails():
            self.calls += 1
            raise ConnectionError("dropped")

        with self.assertRaises(AllTriesFailedException) as context:
            await always_fails()

        self.assertEqual(2, self.calls)
        self.assertIsInstance(context.exception.__cause__, ConnectionError)

    async def test_other_exceptions_are_not_retried(self):
        @async_retry(retry_count=3, exception_types=[ConnectionError], retry_interval=0)
        async def broken():
            self.calls += 1
            raise ValueError("bad")

        with self.assertRaises(ValueError):
            await broken()
        self.assertEqual(1, self.calls)

    async def test_returns_none_when_not_raising(self):
        @async_retry(retry_count=2, exception_types=[ConnectionError], retry_interval=0, raise_exp=False)
        async def always_fails():
            raise ConnectionError("dropped")

        self.assertIsNone(await always_fails())
