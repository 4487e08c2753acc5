import logging
from typing import Any, Dict, NamedTuple, Optional, Sequence, Tuple

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.block_pacer import BlockPacer
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.chain.data_types import ChainCall, PacerState
from parabootstrap.exceptions import BlockProductionError, PrivilegedInjectionDisabled
from parabootstrap.logger import ParabootstrapLogger


class BatchedCall(NamedTuple):
    """
    Calls applied all-or-nothing, in order, within one block (`Utility.batch_all`).
    """
    calls: Tuple[ChainCall, ...]

    @property
    def size(self) -> int:
        return len(self.calls)

    def as_call(self) -> ChainCall:
        return ChainCall(CONSTANTS.UTILITY_MODULE, CONSTANTS.BATCH_ALL_FUNCTION, {"calls": list(self.calls)})


class ScheduledRootBatch(NamedTuple):
    target_block: int
    encoded_call: str

    def storage_entries(self) -> Dict[str, Any]:
        """
        `dev_setStorage` payload that places the call in the scheduler agenda for `target_block` with Root origin.
        """
        return {
            CONSTANTS.SCHEDULER_STORAGE_KEY: {
                CONSTANTS.SCHEDULER_AGENDA_KEY: [
                    [
                        [self.target_block],
                        [{"call": {"Inline": self.encoded_call}, "origin": dict(CONSTANTS.ROOT_ORIGIN)}],
                    ]
                ]
            }
        }


class BatchComposer:
    def __init__(self, chain: ChainHandle):
        self._chain = chain

    @staticmethod
    def compose(calls: Sequence[ChainCall]) -> BatchedCall:
        if len(calls) == 0:
            raise ValueError("Cannot compose an empty batch")
        return BatchedCall(calls=tuple(calls))

    async def wrap_as_root_schedule(self, batch: BatchedCall, target_block_height: int) -> ScheduledRootBatch:
        encoded_call = await self._chain.encode_call(batch.as_call())
        return ScheduledRootBatch(target_block=target_block_height, encoded_call=encoded_call)


class PrivilegedScheduler:
    """
    Test-only capability: executes batches with Root origin by writing them straight into the scheduler agenda
    of a sandboxed node and forcing the block that runs them. Nothing signs these calls, so this must never be
    pointed at a chain the operator does not fully control.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self, pacer: BlockPacer, enabled: bool = False):
        if not enabled:
            raise PrivilegedInjectionDisabled(
                f"Root scheduler injection on {pacer.chain.name} requires allow_privileged_injection: true")
        self._pacer = pacer
        self._chain = pacer.chain
        self._composer = BatchComposer(self._chain)

    async def execute(self, batch: BatchedCall) -> int:
        """
        Schedules `batch` for the next block and forces that block. Returns the height it executed at.

        A running pacer is paused meanwhile: a tick landing between the height read and the injection would
        move the chain past the target and the agenda entry would never run.
        """
        was_running = self._pacer.state is PacerState.RUNNING
        if was_running:
            self._pacer.set_manual()
        try:
            current_block = await self._chain.block_number()
            scheduled = await self._composer.wrap_as_root_schedule(batch, current_block + 1)
            self.logger().info(f"Scheduling {batch.size} root call(s) on {self._chain.name} "
                               f"for block #{scheduled.target_block}")
            await self._chain.inject_storage(scheduled.storage_entries())
            reached = await self._pacer.advance(1)
            if reached is None or reached < scheduled.target_block:
                raise BlockProductionError(f"{self._chain.name} never reached block #{scheduled.target_block}")
            self.logger().info(f"Root batch executed on {self._chain.name} at block #{scheduled.target_block}")
            return scheduled.target_block
        finally:
            if was_running:
                self._pacer.start()
