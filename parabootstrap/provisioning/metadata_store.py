import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from pydantic import TypeAdapter

from parabootstrap.exceptions import MetadataConflict
from parabootstrap.logger import ParabootstrapLogger
from parabootstrap.provisioning.data_types import CrossChainAssetRecord

_records_adapter = TypeAdapter(List[CrossChainAssetRecord])


def _without_marker(record: CrossChainAssetRecord) -> CrossChainAssetRecord:
    return record.model_copy(update={"bridged_amount": None})


class MetadataStore:
    """
    Durable hand-off between phases: the registered cross-chain records, as a JSON list.

    Saving merges into what is already on disk keyed by destination id. Re-saving an identical record is a
    no-op; a different record under an existing id raises MetadataConflict instead of overwriting it. The
    bridged marker is not part of that comparison and survives a re-save.
    """
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> List[CrossChainAssetRecord]:
        if not self._path.exists():
            return []
        with open(self._path) as fd:
            return _records_adapter.validate_python(json.load(fd))

    def save(self, records: Sequence[CrossChainAssetRecord]) -> List[CrossChainAssetRecord]:
        merged: Dict[int, CrossChainAssetRecord] = {record.destination_local_id: record for record in self.load()}
        for record in records:
            existing = merged.get(record.destination_local_id)
            if existing is not None:
                if _without_marker(existing) != _without_marker(record):
                    raise MetadataConflict(f"{self._path} already holds a different record for destination asset "
                                           f"{record.destination_local_id} ({existing.name}); refusing to overwrite")
                if record.bridged_amount is None:
                    record = existing
            merged[record.destination_local_id] = record
        ordered = sorted(merged.values(), key=lambda r: r.destination_local_id)
        self._write(ordered)
        self.logger().info(f"Saved {len(records)} asset record(s) to {self._path}")
        return ordered

    def bridged_amounts(self) -> Dict[int, int]:
        return {record.destination_local_id: record.bridged_amount
                for record in self.load() if record.bridged_amount is not None}

    def mark_bridged(self, record: CrossChainAssetRecord, amount: int) -> CrossChainAssetRecord:
        """
        Records that `amount` of the asset reached the beneficiary, so a re-run of the bridge phase skips it.
        """
        merged = {existing.destination_local_id: existing for existing in self.load()}
        marked = merged.get(record.destination_local_id, record).model_copy(update={"bridged_amount": amount})
        merged[record.destination_local_id] = marked
        self._write(sorted(merged.values(), key=lambda r: r.destination_local_id))
        self.logger().info(f"Marked {record.symbol} (asset {record.destination_local_id}) as bridged: {amount}")
        return marked

    def _write(self, records: Sequence[CrossChainAssetRecord]):
        if self._path.parent and not self._path.parent.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = _records_adapter.dump_python(list(records), mode="json", by_alias=True, exclude_none=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        with open(tmp_path, "w") as fd:
            json.dump(payload, fd, indent=2)
            fd.flush()
            os.fsync(fd.fileno())
        os.replace(tmp_path, self._path)
