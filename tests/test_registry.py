"""
Integration tests: registry service wired to the in-memory store.

Run: pytest tests/ -v
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from probate_engine.exceptions import PersistenceError, RecordNotFoundError
from probate_engine.models import ComplianceVerdict, CourtStation, Officer, ProbateRecord
from probate_engine.registry import KPI_ALERT_ACTION, ProbateRegistry
from probate_engine.reports import pending_escalations
from probate_engine.store import InMemoryRecordStore
from probate_engine.validators import RecordValidator

NAIROBI = CourtStation(id="nrb-hc", name="Nairobi High Court")
KIAMBU = CourtStation(id="kiambu", name="Kiambu Law Courts")
OFFICER = Officer(id="off-1", first_name="Jane", last_name="Wanjiru")
FIXED_NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def _payload(**overrides):
    data = {
        "cause_number": "HC/E101/2024",
        "deceased_name": "John Kamau",
        "court_station": "nrb-hc",
        "date_received": "2024-03-01",
        "compliance_verdict": "Approved",
    }
    data.update(overrides)
    return data


class BrokenStore(InMemoryRecordStore):
    def save(self, record: ProbateRecord) -> ProbateRecord:
        raise PersistenceError("database unavailable")


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def registry(store) -> ProbateRegistry:
    validator = RecordValidator(courts=[NAIROBI, KIAMBU], clock=lambda: FIXED_NOW)
    return ProbateRegistry(store, validator)


# ═══════════════════════════════════════════════════════════════════════
# CREATE
# ═══════════════════════════════════════════════════════════════════════


class TestCreateRecord:
    def test_assigns_id_and_sequence(self, registry, store):
        first = registry.create_record(_payload(), officer=OFFICER)
        second = registry.create_record(_payload(cause_number="HC/E102/2024"))

        assert first.is_valid and second.is_valid
        assert first.record.id and second.record.id
        assert first.record.id != second.record.id
        assert (first.record.sequence_number, second.record.sequence_number) == (1, 2)
        assert len(store) == 2
        assert registry.get_record(first.record.id) == first.record

    def test_invalid_input_never_reaches_the_store(self, registry, store):
        result = registry.create_record(_payload(compliance_verdict="Rejected"))
        assert result.is_valid is False
        assert len(store) == 0

    def test_persistence_failure_propagates(self):
        registry = ProbateRegistry(BrokenStore(), RecordValidator(courts=[NAIROBI]))
        with pytest.raises(PersistenceError, match="database unavailable"):
            registry.create_record(_payload())


# ═══════════════════════════════════════════════════════════════════════
# UPDATE
# ═══════════════════════════════════════════════════════════════════════


class TestUpdateRecord:
    def test_unknown_record(self, registry):
        with pytest.raises(RecordNotFoundError) as exc_info:
            registry.update_record("ghost", {"deceased_name": "Jane"})
        assert exc_info.value.record_id == "ghost"

    def test_update_is_persisted(self, registry):
        created = registry.create_record(
            _payload(compliance_verdict="Rejected", rejection_reason="FORM 60 missing")
        ).record

        result = registry.update_record(
            created.id, {"compliance_verdict": "Approved", "date_forwarded_to_gp": "2024-03-08"}
        )

        assert result.is_valid is True
        stored = registry.get_record(created.id)
        assert stored == result.record
        assert stored.compliance_verdict == ComplianceVerdict.APPROVED
        assert stored.rejection_reason is None
        assert stored.forwarding_lead_time_days == 7
        assert stored.sequence_number == created.sequence_number

    def test_invalid_update_leaves_store_unchanged(self, registry):
        created = registry.create_record(_payload()).record
        result = registry.update_record(created.id, {"date_forwarded_to_gp": "2024-01-01"})
        assert result.is_valid is False
        assert registry.get_record(created.id) == created

    def test_list_records(self, registry):
        registry.create_record(_payload())
        registry.create_record(_payload(court_station="Kiambu Law Courts"))
        courts = {r.court_station.id for r in registry.list_records()}
        assert courts == {"nrb-hc", "kiambu"}


# ═══════════════════════════════════════════════════════════════════════
# FORWARDING
# ═══════════════════════════════════════════════════════════════════════


class TestRegistryForwardBatch:
    def test_delegates_to_processor(self, registry):
        early = registry.create_record(_payload()).record
        late = registry.create_record(_payload(date_received="2024-05-01")).record

        result = registry.forward_batch([early.id, late.id], date(2024, 4, 1), officer=OFFICER)

        assert result.applied_ids == [early.id]
        assert result.skipped[0].id == late.id
        forwarded = registry.get_record(early.id)
        assert forwarded.forwarding_lead_time_days == 31
        assert forwarded.last_modified_at == FIXED_NOW  # Shares the validator's clock


# ═══════════════════════════════════════════════════════════════════════
# KPI ESCALATION
# ═══════════════════════════════════════════════════════════════════════


class TestMarkKpiAlertSent:
    def test_marked_record_leaves_the_escalation_list(self, registry):
        late = registry.create_record(_payload(date_forwarded_to_gp="2024-04-15")).record
        assert [r.id for r in pending_escalations(registry.list_records())] == [late.id]

        marked = registry.mark_kpi_alert_sent(late.id, officer=OFFICER)

        assert marked.kpi_alert_sent is True
        assert marked.last_modified_by == OFFICER
        assert marked.last_edit_action == KPI_ALERT_ACTION
        assert registry.get_record(late.id) == marked
        assert pending_escalations(registry.list_records()) == []

    def test_marking_twice_changes_nothing(self, registry):
        created = registry.create_record(_payload(date_forwarded_to_gp="2024-04-15")).record
        first = registry.mark_kpi_alert_sent(created.id)
        assert registry.mark_kpi_alert_sent(created.id) == first

    def test_unknown_record(self, registry):
        with pytest.raises(RecordNotFoundError):
            registry.mark_kpi_alert_sent("ghost")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
