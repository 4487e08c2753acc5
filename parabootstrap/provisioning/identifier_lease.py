import logging
from typing import List, Optional

from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.exceptions import ChainStateError
from parabootstrap.logger import ParabootstrapLogger


class IdentifierLease:
    """
    Checks out a chain's sequential "next identifier" counter for the span of one read-allocate-submit-verify
    sequence.

    Precondition of every orchestration run: no other actor issues identifier-consuming transactions against
    the chain while it runs. The lease enforces that inside this process (one holder per counter per chain);
    writers outside the process can only be caught by the post-inclusion verification the callers perform.

        async with IdentifierLease(chain, "Assets", "NextAssetId") as lease:
            ids = lease.allocate(len(specs))
            ...
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self, chain: ChainHandle, module: str, storage_function: str):
        self._chain = chain
        self._module = module
        self._storage_function = storage_function
        self._lock = chain.lease_lock(f"{module}.{storage_function}")
        self._base: Optional[int] = None
        self._allocated = 0

    @property
    def counter_name(self) -> str:
        return f"{self._chain.name}:{self._module}.{self._storage_function}"

    @property
    def base(self) -> int:
        if self._base is None:
            raise RuntimeError(f"Lease on {self.counter_name} is not held")
        return self._base

    async def __aenter__(self) -> "IdentifierLease":
        if self._lock.locked():
            self.logger().info(f"Waiting for {self.counter_name} to be released")
        await self._lock.acquire()
        try:
            self._base = await self.read_counter()
        except BaseException:
            self._lock.release()
            raise
        self._allocated = 0
        self.logger().debug(f"Checked out {self.counter_name} at {self._base}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._base = None
        self._lock.release()

    async def read_counter(self) -> int:
        value = await self._chain.query(self._module, self._storage_function)
        if value is None:
            raise ChainStateError(f"{self.counter_name} is not set")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ChainStateError(f"{self.counter_name} holds a non-integer value {value!r}") from e

    def allocate(self, count: int, offset: int = 0) -> List[int]:
        """
        Next `count` identifiers, contiguous, in allocation order. `offset` is added to each (some registries
        number externally registered assets from a fixed start).
        """
        start = self.base + self._allocated
        self._allocated += count
        return [start + index + offset for index in range(count)]
