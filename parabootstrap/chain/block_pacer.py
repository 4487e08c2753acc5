import asyncio
import logging
from typing import Optional

from async_timeout import timeout

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.chain.data_types import BlockBuildMode, PacerState
from parabootstrap.core.utils.async_utils import safe_ensure_future
from parabootstrap.exceptions import BlockProductionError
from parabootstrap.logger import ParabootstrapLogger


class BlockPacer:
    """
    Drives block production for one ChainHandle.

    RUNNING: a background task forces a block every `interval` seconds. A failed tick is logged and pushed to
    `production_errors`; the next tick tries again.
    MANUAL: blocks only advance through `advance(n)`.
    STOPPED: no task, `advance` still works.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self,
                 chain: ChainHandle,
                 interval: float = CONSTANTS.DEFAULT_PACER_INTERVAL,
                 advance_timeout: float = CONSTANTS.DEFAULT_ADVANCE_TIMEOUT,
                 poll_interval: float = CONSTANTS.ADVANCE_POLL_INTERVAL):
        self._chain = chain
        self._interval = interval
        self._advance_timeout = advance_timeout
        self._poll_interval = poll_interval
        self._state = PacerState.STOPPED
        self._pacer_task: Optional[asyncio.Task] = None
        self._production_errors: asyncio.Queue = asyncio.Queue(maxsize=CONSTANTS.PRODUCTION_ERRORS_QUEUE_SIZE)

    @property
    def chain(self) -> ChainHandle:
        return self._chain

    @property
    def state(self) -> PacerState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def pacer_task(self) -> Optional[asyncio.Task]:
        return self._pacer_task

    @property
    def production_errors(self) -> asyncio.Queue:
        return self._production_errors

    def start(self, interval: Optional[float] = None):
        if interval is not None:
            self._interval = interval
        if self._state is PacerState.RUNNING and self._pacer_task is not None:
            return
        self._cancel_pacer_task()
        self._pacer_task = safe_ensure_future(self._produce_blocks_loop())
        self._state = PacerState.RUNNING
        self.logger().info(f"Producing a block on {self._chain.name} every {self._interval}s")

    def set_manual(self):
        self._cancel_pacer_task()
        self._state = PacerState.MANUAL

    def stop(self):
        self._cancel_pacer_task()
        self._state = PacerState.STOPPED

    def _cancel_pacer_task(self):
        if self._pacer_task is not None:
            self._pacer_task.cancel()
            self._pacer_task = None

    async def set_build_mode(self, mode: BlockBuildMode):
        await self._chain.set_block_build_mode(mode)

    async def advance(self, count: int = 1) -> Optional[int]:
        """
        Forces `count` blocks and returns once the chain head is observed at least `count` blocks above where it
        was. `advance(0)` returns immediately without touching the node.
        """
        if count < 0:
            raise ValueError(f"Cannot advance {self._chain.name} by {count} blocks")
        if count == 0:
            return self._chain.latest_block_number

        start_block = await self._chain.block_number()
        target_block = start_block + count
        await self._chain.produce_block(count)
        try:
            async with timeout(self._advance_timeout):
                current_block = await self._chain.block_number()
                while current_block < target_block:
                    await self._sleep(self._poll_interval)
                    current_block = await self._chain.block_number()
        except asyncio.TimeoutError:
            raise BlockProductionError(f"{self._chain.name} did not reach block #{target_block} within "
                                       f"{self._advance_timeout}s")
        self.logger().debug(f"{self._chain.name} advanced {count} block(s) to #{current_block}")
        return current_block

    async def drive_inclusion(self):
        """
        Inclusion driver for the chain handle. Forces one block unless the periodic task already produces them.
        """
        if self._state is PacerState.RUNNING:
            return
        await self.advance(1)

    async def _produce_blocks_loop(self):
        while True:
            await self._sleep(self._interval)
            try:
                await self._chain.produce_block()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger().error(f"Error producing block on {self._chain.name}: {e}", exc_info=True)
                self._report_production_error(e)

    def _report_production_error(self, error: Exception):
        if not isinstance(error, BlockProductionError):
            production_error = BlockProductionError(f"{self._chain.name}: {error}")
            production_error.__cause__ = error
            error = production_error
        if self._production_errors.full():
            self._production_errors.get_nowait()
        self._production_errors.put_nowait(error)

    async def _sleep(self, seconds: float):
        await asyncio.sleep(seconds)
