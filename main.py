#!/usr/bin/env python3
"""
Probate Engine — Entry Point
=============================

Demonstrates the record lifecycle on a small sample registry: create records,
reject a bad one, bulk-forward a batch to the Government Printer (with one
record that must be skipped), then print the compliance summary.

Usage:
    python main.py
    PROBATE_KPI_THRESHOLD_DAYS=20 python main.py    # Override a threshold
"""

from __future__ import annotations

import logging
import sys
from datetime import date

from dotenv import load_dotenv

from probate_engine.calculator import lead_time_band, summarize
from probate_engine.config import get_settings
from probate_engine.models import CourtStation, LeadTimeBand, Officer, ProbateRecord
from probate_engine.registry import ProbateRegistry
from probate_engine.reports import court_performance, pending_forwarding
from probate_engine.store import InMemoryRecordStore
from probate_engine.validators import RecordValidator

load_dotenv()


# ─── Sample registry ─────────────────────────────────────────────────

COURTS = [
    CourtStation(id="nrb-hc", name="Nairobi High Court", level="High Court"),
    CourtStation(id="kiambu", name="Kiambu Law Courts", level="Magistrate"),
]

OFFICER = Officer(id="off-1", first_name="Jane", last_name="Wanjiru")

SAMPLE_INPUTS = [
    {
        "cause_number": "HC/E101/2024",
        "deceased_name": "John Kamau",
        "court_station": "nrb-hc",
        "date_received": "2024-03-01",
        "date_of_receipt": "2024-03-04",
        "compliance_verdict": "Approved",
    },
    {
        "cause_number": "KBU/E55/2024",
        "deceased_name": "Mary Njeri",
        "court_station": "Kiambu Law Courts",
        "date_received": "2024-05-01",
        "compliance_verdict": "Approved",
    },
    {
        "cause_number": "HC/E102/2024",
        "deceased_name": "Peter Otieno",
        "court_station": "nrb-hc",
        "date_received": "2024-02-01",
        "compliance_verdict": "Rejected",
        "rejection_reason": "FORM 60 missing",
    },
    {
        # Rejected without a reason: fails validation
        "cause_number": "HC/E103/2024",
        "deceased_name": "Grace Achieng",
        "court_station": "nrb-hc",
        "date_received": "2024-03-02",
        "compliance_verdict": "Rejected",
    },
]


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_BAND_COLORS = {
    LeadTimeBand.UNKNOWN: _DIM,
    LeadTimeBand.ON_TARGET: _GREEN,
    LeadTimeBand.OVER_TARGET: _YELLOW,
    LeadTimeBand.KPI_BREACH: _RED,
}


# ─── Pretty Printer ─────────────────────────────────────────────────


def _fmt_days(days: int | None) -> str:
    return "—" if days is None else f"{days} d"


def _print_record(record: ProbateRecord) -> None:
    settings = get_settings()
    receiving = lead_time_band(
        record.receiving_lead_time_days,
        settings.receiving_display_threshold_days,
        settings.kpi_threshold_days,
    )
    forwarding = lead_time_band(
        record.forwarding_lead_time_days,
        settings.forwarding_display_threshold_days,
        settings.kpi_threshold_days,
    )
    print(
        f"  #{record.sequence_number:<3} {record.cause_number:<14} "
        f"{record.deceased_name:<16} {record.compliance_verdict.value:<9} "
        f"recv {_BAND_COLORS[receiving]}{_fmt_days(record.receiving_lead_time_days):>5}{_RESET}  "
        f"fwd {_BAND_COLORS[forwarding]}{_fmt_days(record.forwarding_lead_time_days):>5}{_RESET}"
    )


def print_report(registry: ProbateRegistry) -> int:
    """Pretty-print the registry state.

    Returns:
        0 if no record breaches the KPI, 1 otherwise.
    """
    settings = get_settings()
    records = registry.list_records()
    summary = summarize(records, settings.kpi_threshold_days)

    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  PROBATE REGISTRY COMPLIANCE REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    for record in sorted(records, key=lambda r: r.sequence_number or 0):
        _print_record(record)
    print(f"{'─' * _WIDTH}")
    print(f"  Total:              {summary.total}")
    print(f"  Approved/Rejected:  {summary.approved_count}/{summary.rejected_count}")
    print(f"  Awaiting dispatch:  {summary.pending_forwarding_count}")
    avg = summary.average_forwarding_lead_time_days
    print(f"  Avg forwarding:     {'—' if avg is None else f'{avg:.2f} days'}")
    for row in court_performance(records):
        print(f"  {_DIM}{row.court_name}: {row.count} record(s), {row.compliance_rate}% approved{_RESET}")
    print(f"{'=' * _WIDTH}")
    if summary.kpi_breach_count:
        print(f"  {_RED}{_BOLD}{summary.kpi_breach_count} record(s) breach the "
              f"{settings.kpi_threshold_days}-day KPI{_RESET}")
    else:
        print(f"  {_GREEN}{_BOLD}ALL RECORDS WITHIN KPI{_RESET}")
    print(f"{'=' * _WIDTH}\n")

    return 1 if summary.kpi_breach_count else 0


# ─── Main ────────────────────────────────────────────────────────────


def main():
    """Run the sample lifecycle and print the report."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    registry = ProbateRegistry(
        InMemoryRecordStore(), RecordValidator.from_settings(settings, courts=COURTS)
    )

    created: list[str] = []
    for payload in SAMPLE_INPUTS:
        result = registry.create_record(payload, officer=OFFICER)
        if result.is_valid:
            assert result.record is not None and result.record.id is not None
            created.append(result.record.id)
        else:
            for error in result.errors:
                print(f"  {_RED}[{error.code}]{_RESET} {payload['cause_number']}: {error.message}")

    queue = pending_forwarding(registry.list_records())
    print(f"\n  {len(queue)} record(s) awaiting dispatch to the Government Printer")

    batch = registry.forward_batch(created, date(2024, 4, 1), officer=OFFICER)
    for skipped in batch.skipped:
        print(f"  {_YELLOW}skipped{_RESET} {skipped.id[:8]}…: {skipped.reason}")

    exit_code = print_report(registry)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
