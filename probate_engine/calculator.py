"""
Lead-time & compliance calculator — the single source of derived metrics.

Every screen, report and validator derives lead times through these functions;
nothing else in the codebase subtracts dates. All functions are pure: no I/O,
no clock, no mutation.

Rounding rule: lead times are whole calendar days. Inputs are calendar dates
(datetimes are truncated at the model boundary), so the "ceiling of the
difference" is simply the day difference. Negative differences clamp to 0:
a receipt dated before the registry entry is a tolerated data-entry artifact,
not an error.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Optional

from .models import (
    ComplianceVerdict,
    LeadTimeBand,
    ProbateRecord,
    RecordSummary,
)


# ─── Business constants ─────────────────────────────────────────────

KPI_THRESHOLD_DAYS = 30  # Only this threshold classifies a breach needing escalation

# Display-only targets used for colour coding on the registry screens.
RECEIVING_DISPLAY_THRESHOLD_DAYS = 5
FORWARDING_DISPLAY_THRESHOLD_DAYS = 3


# ─── Lead times ─────────────────────────────────────────────────────


def _whole_days_between(start: date, end: date) -> int:
    return max(0, (end - start).days)


def compute_receiving_lead_time(
    date_received: date, date_of_receipt: Optional[date]
) -> Optional[int]:
    """Days from registry entry to the e-Citizen receipt date, or None without a receipt."""
    if date_of_receipt is None:
        return None
    return _whole_days_between(date_received, date_of_receipt)


def compute_forwarding_lead_time(
    date_received: date, date_forwarded_to_gp: Optional[date]
) -> Optional[int]:
    """Days from registry entry to dispatch to the Government Printer, or None if not forwarded."""
    if date_forwarded_to_gp is None:
        return None
    return _whole_days_between(date_received, date_forwarded_to_gp)


def derive_lead_times(
    date_received: date,
    date_of_receipt: Optional[date],
    date_forwarded_to_gp: Optional[date],
) -> dict[str, Optional[int]]:
    """Both derived lead times, keyed by their ProbateRecord field names."""
    return {
        "receiving_lead_time_days": compute_receiving_lead_time(
            date_received, date_of_receipt
        ),
        "forwarding_lead_time_days": compute_forwarding_lead_time(
            date_received, date_forwarded_to_gp
        ),
    }


# ─── KPI classification ─────────────────────────────────────────────


def is_kpi_breach(
    lead_time_days: Optional[int], threshold: int = KPI_THRESHOLD_DAYS
) -> bool:
    """A lead time breaches the KPI only when it is known AND strictly above the threshold."""
    return lead_time_days is not None and lead_time_days > threshold


def record_breaches_kpi(
    record: ProbateRecord, threshold: int = KPI_THRESHOLD_DAYS
) -> bool:
    """True when either of the record's lead times breaches the KPI."""
    return is_kpi_breach(record.receiving_lead_time_days, threshold) or is_kpi_breach(
        record.forwarding_lead_time_days, threshold
    )


def lead_time_band(
    lead_time_days: Optional[int],
    display_threshold: int,
    kpi_threshold: int = KPI_THRESHOLD_DAYS,
) -> LeadTimeBand:
    """Colour band for dashboards. Purely cosmetic, validation never consults it."""
    if lead_time_days is None:
        return LeadTimeBand.UNKNOWN
    if is_kpi_breach(lead_time_days, kpi_threshold):
        return LeadTimeBand.KPI_BREACH
    if lead_time_days > display_threshold:
        return LeadTimeBand.OVER_TARGET
    return LeadTimeBand.ON_TARGET


# ─── Aggregation ────────────────────────────────────────────────────


def average_lead_time(values: Iterable[Optional[int]]) -> Optional[float]:
    """Mean of the known lead times. Unknown (None) values are excluded, not zeroed."""
    known = [v for v in values if v is not None]
    if not known:
        return None
    return round(sum(known) / len(known), 2)


def summarize(
    records: Iterable[ProbateRecord], kpi_threshold: int = KPI_THRESHOLD_DAYS
) -> RecordSummary:
    """Aggregate counts and the average forwarding lead time over a collection."""
    records = list(records)
    return RecordSummary(
        total=len(records),
        approved_count=sum(
            1 for r in records if r.compliance_verdict == ComplianceVerdict.APPROVED
        ),
        rejected_count=sum(
            1 for r in records if r.compliance_verdict == ComplianceVerdict.REJECTED
        ),
        pending_forwarding_count=sum(1 for r in records if r.date_forwarded_to_gp is None),
        average_forwarding_lead_time_days=average_lead_time(
            r.forwarding_lead_time_days for r in records
        ),
        kpi_breach_count=sum(1 for r in records if record_breaches_kpi(r, kpi_threshold)),
    )
