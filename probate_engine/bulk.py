"""
Bulk transition processor — forwards a batch of records to the Government Printer.

Flow per id (ids are de-duplicated, order preserved):

    id ──► store.get ──► date check ──► already on this date? ──► store.save
              │              │                   │                    │
           missing      forward < received    no-op (applied,     PersistenceError
              │              │                 not re-saved)          │
              └──────────────┴──────► skipped ◄────────────────────────┘

Design principles:
  - Each record is saved on its own. A batch is NOT a transaction: what was
    applied stays applied, what failed is reported in ``skipped``.
  - The transition is "set", not "set-if-absent": a later call overwrites an
    earlier forward date. Callers own the decision to re-forward.
  - The forward date is parsed once, up front. A malformed date fails the
    whole call before any record is touched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .calculator import compute_forwarding_lead_time
from .exceptions import MalformedInputError, PersistenceError
from .models import BatchResult, CalendarDate, Officer, ProbateRecord, SkippedRecord
from .store import RecordStore
from .validators import validate_date_order

logger = logging.getLogger(__name__)

RECORD_NOT_FOUND = "record not found"
FORWARD_ACTION = "Forwarded to Government Printer"

_calendar_date = TypeAdapter(CalendarDate)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_calendar_date(value: Any, field: str = "date") -> date:
    """Parse a date, datetime or ISO string into a calendar date, or raise MalformedInputError."""
    try:
        return _calendar_date.validate_python(value)
    except PydanticValidationError as e:
        raise MalformedInputError(
            f"{field}: '{value}' is not a valid calendar date",
            {"field": field, "value": str(value)},
        ) from e


class BulkTransitionProcessor:
    """Applies the "forwarded to GP" transition across many records.

    Usage:
        processor = BulkTransitionProcessor(store)
        result = processor.forward_batch(["a", "b"], "2024-04-01", officer=me)
        for skipped in result.skipped:
            print(skipped.id, skipped.reason)
    """

    def __init__(
        self, store: RecordStore, clock: Callable[[], datetime] = _utcnow
    ):
        self.store = store
        self.clock = clock

    def forward_batch(
        self,
        ids: Iterable[str],
        forward_date: date | datetime | str,
        officer: Officer | None = None,
    ) -> BatchResult:
        """Set ``date_forwarded_to_gp`` on every listed record that accepts it.

        Args:
            ids: Record identifiers. Duplicates are processed once.
            forward_date: The dispatch date.
            officer: Who performed the dispatch (audit trail).

        Returns:
            BatchResult with applied ids, per-id skips and the updated records.
        """
        if isinstance(ids, str):
            raise MalformedInputError("ids must be a collection of record ids, not a string")
        target = parse_calendar_date(forward_date, "forward_date")

        result = BatchResult()
        for record_id in dict.fromkeys(ids):
            try:
                record, reason = self._forward_one(record_id, target, officer)
            except PersistenceError as e:
                logger.error("Forwarding record %s failed: %s", record_id, e)
                result.skipped.append(SkippedRecord(id=record_id, reason=str(e)))
                continue

            if record is None:
                assert reason is not None
                logger.warning("Skipped record %s: %s", record_id, reason)
                result.skipped.append(SkippedRecord(id=record_id, reason=reason))
                continue

            result.applied_ids.append(record_id)
            result.updated_records.append(record)

        logger.info(
            "Forwarded %d record(s) on %s, skipped %d",
            len(result.applied_ids),
            target,
            len(result.skipped),
        )
        return result

    # ─── Per-record transition ───────────────────────────────────────

    def _forward_one(
        self, record_id: str, target: date, officer: Officer | None
    ) -> tuple[Optional[ProbateRecord], Optional[str]]:
        """Forward one record. Returns (updated record, None) or (None, skip reason)."""
        record = self.store.get(record_id)
        if record is None:
            return None, RECORD_NOT_FOUND

        errors = validate_date_order(record.date_received, date_forwarded_to_gp=target)
        if errors:
            return None, errors[0].message

        if record.date_forwarded_to_gp == target:
            return record, None  # Same date again: nothing changes, nothing is saved

        if record.date_forwarded_to_gp is not None:
            logger.info(
                "Overwriting forward date of record %s: %s -> %s",
                record_id,
                record.date_forwarded_to_gp,
                target,
            )

        updated = ProbateRecord.model_validate(
            {
                **record.model_dump(),
                "date_forwarded_to_gp": target,
                "forwarding_lead_time_days": compute_forwarding_lead_time(
                    record.date_received, target
                ),
                "last_modified_by": officer if officer is not None else record.last_modified_by,
                "last_modified_at": self.clock(),
                "last_edit_action": FORWARD_ACTION,
            }
        )
        return self.store.save(updated), None
