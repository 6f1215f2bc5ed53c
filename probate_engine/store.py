"""
Persistence port for probate records.

The engine never talks to a database or the Records API directly; it receives
a RecordStore through its constructor. InMemoryRecordStore is the reference
implementation used by the demo and the test-suite.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Protocol

from .models import ProbateRecord

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """What the engine needs from persistence.

    Implementations raise PersistenceError (or a subclass) on failure; the
    engine propagates those unchanged and never retries.
    """

    def get(self, record_id: str) -> Optional[ProbateRecord]: ...

    def save(self, record: ProbateRecord) -> ProbateRecord: ...

    def list_records(self) -> list[ProbateRecord]: ...


class InMemoryRecordStore:
    """Dict-backed store. Assigns a uuid4 id and the next sequence number on first save."""

    def __init__(self, records: list[ProbateRecord] | None = None):
        self._records: dict[str, ProbateRecord] = {}
        self._last_sequence = 0
        for record in records or []:
            self.save(record)

    def get(self, record_id: str) -> Optional[ProbateRecord]:
        return self._records.get(record_id)

    def save(self, record: ProbateRecord) -> ProbateRecord:
        if record.id is None:
            record = record.model_copy(
                update={"id": str(uuid.uuid4()), "sequence_number": self._next_sequence()}
            )
            logger.debug("Assigned id %s to %s", record.id, record.cause_number)
        elif record.sequence_number is None:
            previous = self._records.get(record.id)
            sequence = previous.sequence_number if previous else self._next_sequence()
            record = record.model_copy(update={"sequence_number": sequence})
        self._last_sequence = max(self._last_sequence, record.sequence_number or 0)
        self._records[record.id] = record
        return record

    def list_records(self) -> list[ProbateRecord]:
        return list(self._records.values())

    def _next_sequence(self) -> int:
        self._last_sequence += 1
        return self._last_sequence

    def __len__(self) -> int:
        return len(self._records)
