"""
Tests for the registry reports: dashboard stats, court performance, filters,
the forwarding queue, daily intake and KPI escalations.

Run: pytest tests/ -v
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from probate_engine.calculator import derive_lead_times
from probate_engine.models import (
    ComplianceVerdict,
    CourtStation,
    GPPublicationStatus,
    ProbateRecord,
    RecordFilter,
    RecordStats,
)
from probate_engine.reports import (
    court_performance,
    daily_intake,
    filter_records,
    pending_escalations,
    pending_forwarding,
    record_stats,
)

NAIROBI = CourtStation(id="nrb-hc", name="Nairobi High Court")
KIAMBU = CourtStation(id="kiambu", name="Kiambu Law Courts")


def _make_record(seq: int, **overrides: Any) -> ProbateRecord:
    kwargs: dict[str, Any] = {
        "id": f"rec-{seq}",
        "sequence_number": seq,
        "cause_number": f"HC/E{seq}/2024",
        "deceased_name": "John Kamau",
        "court_station": NAIROBI,
        "date_received": date(2024, 3, 1),
        "compliance_verdict": ComplianceVerdict.APPROVED,
    }
    kwargs.update(overrides)
    if kwargs["compliance_verdict"] == ComplianceVerdict.REJECTED:
        kwargs.setdefault("rejection_reason", "FORM 60 missing")
    kwargs.update(
        derive_lead_times(
            kwargs["date_received"],
            kwargs.get("date_of_receipt"),
            kwargs.get("date_forwarded_to_gp"),
        )
    )
    return ProbateRecord(**kwargs)


@pytest.fixture
def records() -> list[ProbateRecord]:
    return [
        _make_record(1, date_of_receipt=date(2024, 3, 3), date_forwarded_to_gp=date(2024, 3, 5)),
        _make_record(
            2,
            deceased_name="Mary Njeri",
            court_station=KIAMBU,
            date_received=date(2024, 3, 4),
        ),
        _make_record(
            3,
            compliance_verdict=ComplianceVerdict.REJECTED,
            date_received=date(2024, 3, 5),
            date_forwarded_to_gp=date(2024, 4, 20),  # 46 d
            gp_publication_status=GPPublicationStatus.PUBLISHED,
        ),
        _make_record(4, deceased_name="Peter Otieno", date_received=date(2024, 3, 7)),
    ]


# ═══════════════════════════════════════════════════════════════════════
# STATISTICS
# ═══════════════════════════════════════════════════════════════════════


class TestRecordStats:
    def test_empty(self):
        stats = record_stats([])
        assert stats == RecordStats()
        assert stats.averages.forwarding is None

    def test_mixed(self, records):
        stats = record_stats(records)
        assert stats.total == 4
        assert (stats.compliance.approved, stats.compliance.rejected) == (3, 1)
        assert (stats.gp_status.pending, stats.gp_status.published) == (3, 1)
        assert stats.kpi_breaches == 1
        assert stats.averages.receiving == pytest.approx(2.0)
        assert stats.averages.forwarding == pytest.approx(25.0)

    def test_custom_threshold(self, records):
        assert record_stats(records, kpi_threshold=3).kpi_breaches == 2


class TestCourtPerformance:
    def test_rates_and_order(self, records):
        rows = court_performance(records)
        assert [(r.court_id, r.count, r.compliance_rate) for r in rows] == [
            ("nrb-hc", 3, 66.7),
            ("kiambu", 1, 100.0),
        ]
        assert rows[0].court_name == "Nairobi High Court"

    def test_empty(self):
        assert court_performance([]) == []


# ═══════════════════════════════════════════════════════════════════════
# LISTINGS
# ═══════════════════════════════════════════════════════════════════════


class TestFilterRecords:
    def test_no_criteria_newest_first(self, records):
        assert [r.sequence_number for r in filter_records(records, RecordFilter())] == [4, 3, 2, 1]

    def test_by_court(self, records):
        result = filter_records(records, RecordFilter(court_id="kiambu"))
        assert [r.id for r in result] == ["rec-2"]

    def test_by_verdict(self, records):
        result = filter_records(records, RecordFilter(compliance_verdict="Rejected"))
        assert [r.id for r in result] == ["rec-3"]

    def test_not_forwarded_only(self, records):
        result = filter_records(records, RecordFilter(not_forwarded_only=True))
        assert [r.id for r in result] == ["rec-4", "rec-2"]

    def test_received_range_is_inclusive(self, records):
        result = filter_records(
            records, RecordFilter(received_from="2024-03-04", received_to="2024-03-05")
        )
        assert [r.id for r in result] == ["rec-3", "rec-2"]


class TestPendingForwarding:
    def test_queue(self, records):
        assert [r.id for r in pending_forwarding(records)] == ["rec-4", "rec-2"]

    def test_court_filter(self, records):
        assert [r.id for r in pending_forwarding(records, court_id="nrb-hc")] == ["rec-4"]

    @pytest.mark.parametrize(
        "search, expected",
        [
            ("otieno", ["rec-4"]),
            ("HC/E2/", ["rec-2"]),
            ("kiambu", ["rec-2"]),
            ("   ", ["rec-4", "rec-2"]),
            ("nobody", []),
        ],
    )
    def test_search(self, records, search, expected):
        assert [r.id for r in pending_forwarding(records, search=search)] == expected


class TestDailyIntake:
    def test_window(self, records):
        rows = daily_intake(records, end_date=date(2024, 3, 7), days=7)
        assert [r.day for r in rows][0] == date(2024, 3, 1)
        assert [r.day for r in rows][-1] == date(2024, 3, 7)
        by_day = {r.day: (r.approved, r.rejected) for r in rows}
        assert by_day[date(2024, 3, 1)] == (1, 0)
        assert by_day[date(2024, 3, 5)] == (0, 1)
        assert by_day[date(2024, 3, 6)] == (0, 0)

    def test_records_outside_window_ignored(self, records):
        rows = daily_intake(records, end_date=date(2024, 3, 5), days=1)
        assert len(rows) == 1
        assert (rows[0].approved, rows[0].rejected) == (0, 1)

    def test_days_must_be_positive(self):
        with pytest.raises(ValueError):
            daily_intake([], end_date=date(2024, 3, 1), days=0)


class TestPendingEscalations:
    def test_breaching_records_not_yet_alerted(self, records):
        assert [r.id for r in pending_escalations(records)] == ["rec-3"]

    def test_alerted_records_dropped(self, records):
        records[2] = records[2].model_copy(update={"kpi_alert_sent": True})
        assert pending_escalations(records) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
