"""
Registry service — the single entry point a UI or API layer talks to.

Flow:
    input ──► RecordValidator ──► (lead times derived) ──► RecordStore ──► canonical record

Validation failures come back as a ValidationResult and never touch the
store. Persistence failures are the store's to report: they propagate
unchanged, and nothing here retries them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any, Optional, Union

from .bulk import BulkTransitionProcessor
from .exceptions import RecordNotFoundError
from .models import (
    BatchResult,
    Officer,
    ProbateRecord,
    RecordInput,
    RecordPatch,
    ValidationResult,
)
from .store import RecordStore
from .validators import RecordValidator

logger = logging.getLogger(__name__)

KPI_ALERT_ACTION = "KPI alert sent"


class ProbateRegistry:
    """Create, edit and forward probate records against an injected store.

    Usage:
        registry = ProbateRegistry(InMemoryRecordStore(), RecordValidator(courts=courts))
        result = registry.create_record({...}, officer=me)
        if result.is_valid:
            print(result.record.id)
    """

    def __init__(
        self,
        store: RecordStore,
        validator: RecordValidator,
        processor: BulkTransitionProcessor | None = None,
    ):
        self.store = store
        self.validator = validator
        self.processor = processor or BulkTransitionProcessor(store, clock=validator.clock)

    def get_record(self, record_id: str) -> ProbateRecord:
        record = self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def list_records(self) -> list[ProbateRecord]:
        return self.store.list_records()

    def create_record(
        self,
        data: Union[RecordInput, Mapping[str, Any]],
        officer: Officer | None = None,
    ) -> ValidationResult:
        """Validate and persist a new record. The returned record carries its store-assigned id."""
        result = self.validator.validate_for_create(data, officer=officer)
        if not result.is_valid:
            return result

        assert result.record is not None
        saved = self.store.save(result.record)
        logger.info("Created record %s (%s)", saved.id, saved.cause_number)
        return ValidationResult.ok(saved)

    def update_record(
        self,
        record_id: str,
        patch: Union[RecordPatch, Mapping[str, Any]],
        officer: Officer | None = None,
    ) -> ValidationResult:
        """Validate ``existing ⊕ patch`` and persist it.

        Raises:
            RecordNotFoundError: no record with this id.
        """
        existing = self.get_record(record_id)
        result = self.validator.validate_for_update(existing, patch, officer=officer)
        if not result.is_valid:
            return result

        assert result.record is not None
        saved = self.store.save(result.record)
        logger.info("Updated record %s", saved.id)
        return ValidationResult.ok(saved)

    def forward_batch(
        self,
        ids: Iterable[str],
        forward_date: Union[date, datetime, str],
        officer: Optional[Officer] = None,
    ) -> BatchResult:
        """Bulk "forwarded to GP" transition. See BulkTransitionProcessor.forward_batch."""
        return self.processor.forward_batch(ids, forward_date, officer=officer)

    def mark_kpi_alert_sent(
        self, record_id: str, officer: Optional[Officer] = None
    ) -> ProbateRecord:
        """Record that the KPI escalation for this record went out.

        Drops the record from ``reports.pending_escalations``. Marking an
        already-marked record returns it unchanged.

        Raises:
            RecordNotFoundError: no record with this id.
        """
        record = self.get_record(record_id)
        if record.kpi_alert_sent:
            return record

        saved = self.store.save(
            record.model_copy(
                update={
                    "kpi_alert_sent": True,
                    "last_modified_by": officer if officer is not None else record.last_modified_by,
                    "last_modified_at": self.validator.clock(),
                    "last_edit_action": KPI_ALERT_ACTION,
                }
            )
        )
        logger.info("KPI alert marked as sent for record %s", record_id)
        return saved
