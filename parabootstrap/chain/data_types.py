from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


class BlockBuildMode(Enum):
    INSTANT = "Instant"
    MANUAL = "Manual"
    BATCH = "Batch"

    def __str__(self):
        return self.value


class PacerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    MANUAL = "manual"


class ChainCall(NamedTuple):
    """
    A pallet call before encoding. Param values may themselves be ChainCalls (or lists of them),
    which is how batches nest their inner calls.
    """
    module: str
    function: str
    params: Dict[str, Any] = {}


class TransactionOutcome(NamedTuple):
    extrinsic_hash: Optional[str]
    block_hash: Optional[str]
    success: bool
    error: Optional[Any] = None
    events: Tuple[Dict[str, Any], ...] = ()

    @property
    def error_description(self) -> str:
        if self.error is None:
            return ""
        if isinstance(self.error, dict):
            name = self.error.get("name") or self.error.get("type") or "DispatchError"
            docs = self.error.get("docs") or []
            return f"{name}: {' '.join(docs)}" if docs else str(name)
        return str(self.error)

    def events_for(self, module_id: str, event_id: str) -> List[Dict[str, Any]]:
        return [event for event in self.events
                if event.get("module_id") == module_id and event.get("event_id") == event_id]
