"""
Registry reports: dashboard statistics, per-court performance, filtered
listings, the forwarding queue and the KPI escalation list.

All functions are pure views over a collection of canonical records; lead
times and breach classification come from the calculator, never recomputed
here.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Optional

from .calculator import KPI_THRESHOLD_DAYS, average_lead_time, record_breaches_kpi
from .models import (
    ComplianceCounts,
    ComplianceVerdict,
    CourtPerformance,
    DailyIntake,
    GPPublicationStatus,
    GPStatusCounts,
    LeadTimeAverages,
    ProbateRecord,
    RecordFilter,
    RecordStats,
)


def _newest_first(records: Iterable[ProbateRecord]) -> list[ProbateRecord]:
    return sorted(records, key=lambda r: r.sequence_number or 0, reverse=True)


def record_stats(
    records: Iterable[ProbateRecord], kpi_threshold: int = KPI_THRESHOLD_DAYS
) -> RecordStats:
    """Dashboard card figures: verdict split, GP status split, breaches, average lead times."""
    records = list(records)
    return RecordStats(
        total=len(records),
        compliance=ComplianceCounts(
            approved=sum(
                1 for r in records if r.compliance_verdict == ComplianceVerdict.APPROVED
            ),
            rejected=sum(
                1 for r in records if r.compliance_verdict == ComplianceVerdict.REJECTED
            ),
        ),
        gp_status=GPStatusCounts(
            pending=sum(
                1 for r in records if r.gp_publication_status == GPPublicationStatus.PENDING
            ),
            published=sum(
                1
                for r in records
                if r.gp_publication_status == GPPublicationStatus.PUBLISHED
            ),
        ),
        kpi_breaches=sum(1 for r in records if record_breaches_kpi(r, kpi_threshold)),
        averages=LeadTimeAverages(
            receiving=average_lead_time(r.receiving_lead_time_days for r in records),
            forwarding=average_lead_time(r.forwarding_lead_time_days for r in records),
        ),
    )


def court_performance(records: Iterable[ProbateRecord]) -> list[CourtPerformance]:
    """Records per court station and the share of them whose Form 60 was approved.

    Sorted busiest court first; ties by court name.
    """
    grouped: dict[str, list[ProbateRecord]] = {}
    for record in records:
        grouped.setdefault(record.court_station.id, []).append(record)

    rows = []
    for court_id, court_records in grouped.items():
        approved = sum(
            1 for r in court_records if r.compliance_verdict == ComplianceVerdict.APPROVED
        )
        rows.append(
            CourtPerformance(
                court_id=court_id,
                court_name=court_records[0].court_station.name,
                count=len(court_records),
                compliance_rate=round(100 * approved / len(court_records), 1),
            )
        )
    return sorted(rows, key=lambda row: (-row.count, row.court_name))


def filter_records(
    records: Iterable[ProbateRecord], criteria: RecordFilter
) -> list[ProbateRecord]:
    """Apply report filters (court, verdict, not-forwarded, received-date range), newest first."""

    def matches(record: ProbateRecord) -> bool:
        if criteria.court_id and record.court_station.id != criteria.court_id:
            return False
        if (
            criteria.compliance_verdict is not None
            and record.compliance_verdict != criteria.compliance_verdict
        ):
            return False
        if criteria.not_forwarded_only and record.date_forwarded_to_gp is not None:
            return False
        if criteria.received_from and record.date_received < criteria.received_from:
            return False
        if criteria.received_to and record.date_received > criteria.received_to:
            return False
        return True

    return _newest_first(r for r in records if matches(r))


def pending_forwarding(
    records: Iterable[ProbateRecord],
    court_id: Optional[str] = None,
    search: Optional[str] = None,
) -> list[ProbateRecord]:
    """The forwarding queue: records not yet dispatched to the Government Printer.

    ``search`` is a case-insensitive substring match over the deceased's name,
    the cause number and the court name.
    """
    needle = (search or "").strip().casefold()

    def matches(record: ProbateRecord) -> bool:
        if record.date_forwarded_to_gp is not None:
            return False
        if court_id and record.court_station.id != court_id:
            return False
        if needle:
            haystack = (
                record.deceased_name,
                record.cause_number,
                record.court_station.name,
            )
            return any(needle in text.casefold() for text in haystack)
        return True

    return _newest_first(r for r in records if matches(r))


def daily_intake(
    records: Iterable[ProbateRecord], end_date: date, days: int = 7
) -> list[DailyIntake]:
    """Approved/rejected arrivals per day for the ``days`` days ending on ``end_date``, oldest first."""
    if days < 1:
        raise ValueError(f"days must be at least 1, got {days}")

    window: OrderedDict[date, DailyIntake] = OrderedDict(
        (day, DailyIntake(day=day))
        for day in (end_date - timedelta(days=offset) for offset in range(days - 1, -1, -1))
    )
    for record in records:
        bucket = window.get(record.date_received)
        if bucket is None:
            continue
        if record.compliance_verdict == ComplianceVerdict.APPROVED:
            bucket.approved += 1
        else:
            bucket.rejected += 1
    return list(window.values())


def pending_escalations(
    records: Iterable[ProbateRecord], kpi_threshold: int = KPI_THRESHOLD_DAYS
) -> list[ProbateRecord]:
    """KPI-breaching records for which no alert has been sent yet, newest first."""
    return _newest_first(
        r
        for r in records
        if record_breaches_kpi(r, kpi_threshold) and not r.kpi_alert_sent
    )
