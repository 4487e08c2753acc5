import asyncio
import logging
import ssl
import threading
from typing import Any, Awaitable, Callable, Dict, List, Optional

from substrateinterface import ExtrinsicReceipt, Keypair, SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from websocket import WebSocketConnectionClosedException, WebSocketException

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.data_types import BlockBuildMode, ChainCall, TransactionOutcome
from parabootstrap.core.utils.async_retry import AllTriesFailedException, async_retry
from parabootstrap.core.utils.async_utils import drive_until_done, run_in_thread
from parabootstrap.exceptions import (
    ChainConnectionError,
    ChainStateError,
    ControlCommandFailed,
    InclusionTimeout,
    SubmissionRejected,
)
from parabootstrap.logger import ParabootstrapLogger

CONNECTION_DROPPED_ERRORS = (WebSocketConnectionClosedException, ssl.SSLEOFError, BrokenPipeError)


class ChainHandle:
    """
    Connection to one sandboxed chain node.

    Two websocket instances are kept: `_rpc_instance` carries extrinsics and storage reads, `_control_instance`
    carries the node's dev_* commands. A submission waiting for inclusion holds the rpc instance, and inclusion
    needs a block to be produced through the control instance, so the two must never share a socket.
    Each instance is guarded by a thread lock because substrate-interface calls run in worker threads.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    @classmethod
    async def connect(cls, name: str, url: str, **kwargs) -> "ChainHandle":
        handle = cls(name=name, url=url, **kwargs)
        await handle.start()
        return handle

    def __init__(self,
                 name: str,
                 url: str,
                 inclusion_timeout: float = CONSTANTS.DEFAULT_INCLUSION_TIMEOUT,
                 inclusion_poll_interval: float = CONSTANTS.INCLUSION_POLL_INTERVAL):
        self._name = name
        self._url = url
        self._inclusion_timeout = inclusion_timeout
        self._inclusion_poll_interval = inclusion_poll_interval
        self._inclusion_driver: Optional[Callable[[], Awaitable[Any]]] = None
        self._rpc_instance: Optional[SubstrateInterface] = None
        self._control_instance: Optional[SubstrateInterface] = None
        self._rpc_lock = threading.RLock()
        self._control_lock = threading.Lock()
        self._latest_block_number: Optional[int] = None
        self._lease_locks: Dict[str, asyncio.Lock] = {}
        self._submit_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def url(self) -> str:
        return self._url

    @property
    def latest_block_number(self) -> Optional[int]:
        return self._latest_block_number

    @property
    def started(self) -> bool:
        return self._rpc_instance is not None and self._control_instance is not None

    def lease_lock(self, counter: str) -> asyncio.Lock:
        """
        One lock per identifier counter on this chain, held by whoever is allocating from it.
        """
        if counter not in self._lease_locks:
            self._lease_locks[counter] = asyncio.Lock()
        return self._lease_locks[counter]

    def set_inclusion_driver(self, driver: Optional[Callable[[], Awaitable[Any]]]):
        """
        `driver` is awaited each time a submission is still waiting for inclusion after the poll interval.
        Needed on chains that only build blocks on request, where nothing else would include the extrinsic.
        """
        self._inclusion_driver = driver

    async def start(self):
        self.logger().info(f"Connecting to {self._name} at {self._url}")
        self._rpc_instance = await run_in_thread(self._start_instance, self._url)
        self._control_instance = await run_in_thread(self._start_instance, self._url)
        block_number = await self.block_number()
        self.logger().info(f"Connected to {self._name}, best block #{block_number}")

    def close(self):
        for instance in (self._rpc_instance, self._control_instance):
            if instance is not None:
                instance.close()
        self._rpc_instance = None
        self._control_instance = None

    def _start_instance(self, url: str) -> SubstrateInterface:
        self.logger().debug(f"Start instance {url}")
        try:
            instance = SubstrateInterface(url=url)
        except (OSError, WebSocketException) as err:
            self.logger().error(f"Could not connect to {self._name} at {url}: {err}")
            raise ChainConnectionError(f"{self._name} node at {url} is unreachable: {err}") from err
        return instance

    def _reinitialize_rpc_instance(self):
        self.logger().debug(f"Reinitializing {self._name} RPC instance")
        if self._rpc_instance is not None:
            self._rpc_instance.close()
        self._rpc_instance = self._start_instance(self._url)

    def _check_started(self):
        if not self.started:
            raise ChainConnectionError(f"{self._name} handle is not connected. Call start() first.")

    # --- node control ---

    async def raw_control(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self._check_started()
        return await run_in_thread(self._execute_control_request, method, params or [])

    def _execute_control_request(self, method: str, params: List[Any]) -> Any:
        self.logger().network(f"{self._name} control request {method} {params}")
        with self._control_lock:
            try:
                response = self._control_instance.rpc_request(method, params)
            except SubstrateRequestException as err:
                raise ControlCommandFailed(f"{method} failed on {self._name}: {err}") from err
            except (OSError, WebSocketException) as err:
                raise ChainConnectionError(f"{self._name} control connection failed during {method}: {err}") from err
        if "error" in response:
            raise ControlCommandFailed(f"{method} failed on {self._name}: {response['error']}")
        return response.get("result")

    async def produce_block(self, count: int = 1) -> Any:
        params = [] if count == 1 else [{"count": count}]
        result = await self.raw_control(CONSTANTS.NEW_BLOCK_METHOD, params)
        self.logger().debug(f"Produced {count} block(s) on {self._name}: {result}")
        return result

    async def set_block_build_mode(self, mode: BlockBuildMode):
        self.logger().info(f"Setting {self._name} block build mode to {mode}")
        await self.raw_control(CONSTANTS.SET_BLOCK_BUILD_MODE_METHOD, [mode.value])

    async def inject_storage(self, entries: Dict[str, Any]):
        await self.raw_control(CONSTANTS.SET_STORAGE_METHOD, [entries])

    async def block_number(self) -> int:
        header = await self.raw_control(CONSTANTS.CHAIN_HEADER_METHOD, [])
        if not header or "number" not in header:
            raise ChainStateError(f"{self._name} returned no header")
        number = header["number"]
        self._latest_block_number = int(number, 16) if isinstance(number, str) else int(number)
        return self._latest_block_number

    # --- state ---

    async def query(self, module: str, storage_function: str, params: Optional[List[Any]] = None) -> Any:
        self._check_started()
        try:
            return await self._query_with_retry(module, storage_function, params or [])
        except AllTriesFailedException as err:
            raise ChainConnectionError(f"{self._name} kept dropping the connection while reading "
                                       f"{module}.{storage_function}") from err

    @async_retry(retry_count=CONSTANTS.QUERY_RETRY_COUNT,
                 exception_types=list(CONNECTION_DROPPED_ERRORS),
                 retry_interval=CONSTANTS.QUERY_RETRY_INTERVAL)
    async def _query_with_retry(self, module: str, storage_function: str, params: List[Any]) -> Any:
        return await run_in_thread(self._execute_query, module, storage_function, params)

    def _execute_query(self, module: str, storage_function: str, params: List[Any]) -> Any:
        with self._rpc_lock:
            try:
                result = self._rpc_instance.query(module, storage_function, params)
            except CONNECTION_DROPPED_ERRORS:
                self._reinitialize_rpc_instance()
                raise
            except SubstrateRequestException as err:
                raise ChainStateError(f"Query {module}.{storage_function}{params} failed on {self._name}: {err}") from err
        return None if result is None else result.value

    async def encode_call(self, call: ChainCall) -> str:
        self._check_started()
        return await run_in_thread(self._encode_call, call)

    def _encode_call(self, call: ChainCall) -> str:
        with self._rpc_lock:
            generic_call = self._compose_call(self._rpc_instance, call)
        return generic_call.data.to_hex()

    def _compose_call(self, instance: SubstrateInterface, call: ChainCall):
        call_params = {key: self._compose_param(instance, value) for key, value in call.params.items()}
        return instance.compose_call(call_module=call.module, call_function=call.function, call_params=call_params)

    def _compose_param(self, instance: SubstrateInterface, value: Any) -> Any:
        if isinstance(value, ChainCall):
            return self._compose_call(instance, value)
        if isinstance(value, list):
            return [self._compose_param(instance, item) for item in value]
        return value

    # --- transactions ---

    async def submit(self, call: ChainCall, signer: Keypair, progress: Optional[asyncio.Queue] = None) -> TransactionOutcome:
        """
        Signs and submits `call`, suspending until the node reports it in a block or rejects it.

        Intermediate statuses (ready, broadcast, ...) are pushed to `progress` when one is given.
        A dispatch error inside the block is returned as an unsuccessful outcome; rejection before inclusion
        raises SubmissionRejected. With an inclusion driver set, blocks are requested through it while the
        extrinsic waits. On timeout the rpc socket is recycled and InclusionTimeout is raised; the extrinsic is
        never resubmitted here.
        """
        self._check_started()
        loop = asyncio.get_running_loop()

        def notify(status: Any):
            if progress is not None:
                loop.call_soon_threadsafe(progress.put_nowait, status)

        async with self._submit_lock:
            watch = run_in_thread(self._submit_and_watch, call, signer, notify)
            if self._inclusion_driver is not None:
                watch = drive_until_done(watch, self._inclusion_driver, self._inclusion_poll_interval)
            try:
                return await asyncio.wait_for(watch, timeout=self._inclusion_timeout)
            except asyncio.TimeoutError:
                self.logger().warning(f"{call.module}.{call.function} was not included on {self._name} "
                                      f"within {self._inclusion_timeout}s")
                await run_in_thread(self._reinitialize_rpc_instance)
                raise InclusionTimeout(f"{call.module}.{call.function} not included on {self._name} within "
                                       f"{self._inclusion_timeout}s. Check chain state before resubmitting.")

    def _submit_and_watch(self, call: ChainCall, signer: Keypair, notify: Callable[[Any], None]) -> TransactionOutcome:
        with self._rpc_lock:
            instance = self._rpc_instance
            try:
                generic_call = self._compose_call(instance, call)
                extrinsic = instance.create_signed_extrinsic(call=generic_call, keypair=signer)
            except SubstrateRequestException as err:
                raise SubmissionRejected(f"Could not sign {call.module}.{call.function} for {self._name}: {err}") from err

            def result_handler(message: Dict[str, Any], update_nr: int, subscription_id: str):
                status = message["params"]["result"]
                self.logger().network(f"{self._name} extrinsic status: {status}")
                notify(status)
                if isinstance(status, dict):
                    if CONSTANTS.TX_STATUS_IN_BLOCK in status:
                        instance.rpc_request(CONSTANTS.UNWATCH_EXTRINSIC_METHOD, [subscription_id])
                        return {"block_hash": status[CONSTANTS.TX_STATUS_IN_BLOCK]}
                    terminal = [key for key in CONSTANTS.TX_STATUS_ERRORS if key in status]
                    if terminal:
                        return {"terminal": terminal[0]}
                elif status in CONSTANTS.TX_STATUS_ERRORS:
                    return {"terminal": status}
                return None

            try:
                result = instance.rpc_request(CONSTANTS.SUBMIT_AND_WATCH_METHOD, [str(extrinsic.data)],
                                              result_handler=result_handler)
            except SubstrateRequestException as err:
                raise SubmissionRejected(f"{self._name} rejected {call.module}.{call.function}: {err}") from err
            except (OSError, WebSocketException) as err:
                raise ChainConnectionError(f"{self._name} connection dropped while watching "
                                           f"{call.module}.{call.function}: {err}") from err

            extrinsic_hash = f"0x{extrinsic.extrinsic_hash.hex()}"
            if "terminal" in result:
                raise SubmissionRejected(f"{call.module}.{call.function} ({extrinsic_hash}) was "
                                         f"{result['terminal']} on {self._name}")
            if "block_hash" not in result:
                raise SubmissionRejected(f"{self._name} rejected {call.module}.{call.function}: "
                                         f"{result.get('error', result)}")

            receipt = ExtrinsicReceipt(substrate=instance, extrinsic_hash=extrinsic_hash, block_hash=result["block_hash"])
            events = tuple(self._format_event(record) for record in receipt.triggered_events)
            outcome = TransactionOutcome(extrinsic_hash=extrinsic_hash,
                                         block_hash=result["block_hash"],
                                         success=receipt.is_success,
                                         error=receipt.error_message,
                                         events=events)
        self.logger().info(f"{call.module}.{call.function} in block {outcome.block_hash} on {self._name}"
                           + ("" if outcome.success else f" (failed: {outcome.error_description})"))
        return outcome

    @staticmethod
    def _format_event(record: Any) -> Dict[str, Any]:
        value = record.value if hasattr(record, "value") else record
        event = value.get("event", value)
        return {
            "module_id": event.get("module_id"),
            "event_id": event.get("event_id"),
            "attributes": event.get("attributes"),
        }
