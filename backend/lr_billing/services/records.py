"""
Record store interface and the bundled in-memory implementation.

The production record store is a relational database owned by the CRUD side
of the application; the pipeline only reads records and marks them billed.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from lr_billing.logging_config import get_logger
from lr_billing.schemas import ShipmentRecord

logger = get_logger(__name__)


class RecordStore(Protocol):
    async def get_record(self, lr_no: str) -> Optional[ShipmentRecord]:
        ...

    async def update_record(self, lr_no: str, fields: Dict[str, Any]) -> bool:
        ...

    async def list_all(self) -> List[ShipmentRecord]:
        ...


class InMemoryRecordStore:
    def __init__(self, records: Iterable[ShipmentRecord] = ()):
        self._records: Dict[str, ShipmentRecord] = {r.lr_no: r for r in records}

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryRecordStore":
        """
        Load records from a JSON array of objects keyed by record-store column names.
        """
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            raise ValueError(f"Expected a JSON array of records in {path}")
        records = [ShipmentRecord.model_validate(row) for row in rows]
        logger.info(
            "Record store seeded",
            extra={"extra_fields": {"path": str(path), "records": len(records)}},
        )
        return cls(records)

    async def get_record(self, lr_no: str) -> Optional[ShipmentRecord]:
        return self._records.get(lr_no)

    async def update_record(self, lr_no: str, fields: Dict[str, Any]) -> bool:
        """
        Apply a partial update. `fields` may use column names or attribute names.
        The record number itself is immutable.
        """
        current = self._records.get(lr_no)
        if current is None:
            return False
        aliases = {f.alias: name for name, f in ShipmentRecord.model_fields.items() if f.alias}
        update = {}
        for key, value in fields.items():
            name = aliases.get(key, key)
            if name in ShipmentRecord.model_fields and name != "lr_no":
                update[name] = value
        self._records[lr_no] = current.model_copy(update=update)
        return True

    async def list_all(self) -> List[ShipmentRecord]:
        return list(self._records.values())
