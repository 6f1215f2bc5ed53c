"""
Pydantic models for probate records — strict typing as the first line of defense.

ProbateRecord is the canonical entity: it refuses to be constructed when its
static invariants do not hold. Input and patch models are deliberately loose
(every field Optional) because completeness is the validator's job, not the
parser's.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


# ─── Enumerations ───────────────────────────────────────────────────


class ComplianceVerdict(str, Enum):
    """Form 60 compliance verdict."""

    APPROVED = "Approved"
    REJECTED = "Rejected"

    @classmethod
    def _missing_(cls, value: object) -> ComplianceVerdict | None:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class GPPublicationStatus(str, Enum):
    """Publication state at the Government Printer."""

    PENDING = "Pending"
    PUBLISHED = "Published"


class LeadTimeBand(str, Enum):
    """Display-only colour band for a lead time. Never a validation gate."""

    UNKNOWN = "unknown"
    ON_TARGET = "on_target"
    OVER_TARGET = "over_target"
    KPI_BREACH = "kpi_breach"


# ─── Calendar date coercion ─────────────────────────────────────────


def coerce_calendar_date(value: Any) -> Any:
    """Reduce datetimes and ISO timestamps ("2024-03-01T00:00:00.000Z") to a date.

    Anything else is handed back untouched so pydantic can parse or reject it.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return text.split("T", 1)[0]
    return value


def coerce_verdict(value: Any) -> Any:
    if isinstance(value, str):
        if not value.strip():
            return None  # Unselected dropdown
        return ComplianceVerdict(value)
    return value


CalendarDate = Annotated[date, BeforeValidator(coerce_calendar_date)]
OptionalCalendarDate = Annotated[Optional[date], BeforeValidator(coerce_calendar_date)]
Verdict = Annotated[ComplianceVerdict, BeforeValidator(coerce_verdict)]
OptionalVerdict = Annotated[Optional[ComplianceVerdict], BeforeValidator(coerce_verdict)]


# ─── Reference entities ─────────────────────────────────────────────


class CourtStation(BaseModel):
    """A court station. Immutable from this engine's point of view."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    level: Optional[str] = None


class Officer(BaseModel):
    """The registry officer who last touched a record."""

    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


# ─── Validation error ───────────────────────────────────────────────


class ValidationError(BaseModel):
    """A single user-correctable problem tagged with the field it concerns.

    Returned inside a ValidationResult, never raised.
    """

    field: str
    code: str  # Machine-readable, e.g. "DATE_ORDER_VIOLATION"
    message: str
    details: dict = Field(default_factory=dict)


# ─── Probate record ─────────────────────────────────────────────────


def record_invariant_violations(record: Any) -> list[ValidationError]:
    """Check the static invariants of a (possibly unvalidated) record.

    Works on any object exposing ProbateRecord's attributes, including one
    built with ``ProbateRecord.model_construct``.
    """
    violations: list[ValidationError] = []

    reason = (record.rejection_reason or "").strip()
    if record.compliance_verdict == ComplianceVerdict.REJECTED and not reason:
        violations.append(
            ValidationError(
                field="rejection_reason",
                code="REJECTION_REASON_REQUIRED",
                message="A rejected record must carry a rejection reason.",
            )
        )
    if record.compliance_verdict != ComplianceVerdict.REJECTED and reason:
        violations.append(
            ValidationError(
                field="rejection_reason",
                code="REJECTION_REASON_NOT_ALLOWED",
                message="Only a rejected record may carry a rejection reason.",
                details={"rejection_reason": reason},
            )
        )

    if (
        record.date_forwarded_to_gp is not None
        and record.date_forwarded_to_gp < record.date_received
    ):
        violations.append(
            ValidationError(
                field="date_forwarded_to_gp",
                code="DATE_ORDER_VIOLATION",
                message="forward date precedes receipt date",
                details={
                    "date_received": str(record.date_received),
                    "date_forwarded_to_gp": str(record.date_forwarded_to_gp),
                },
            )
        )

    derived = [
        ("receiving_lead_time_days", "date_of_receipt"),
        ("forwarding_lead_time_days", "date_forwarded_to_gp"),
    ]
    for lead_field, source_field in derived:
        lead = getattr(record, lead_field)
        if lead is None:
            continue
        if getattr(record, source_field) is None:
            violations.append(
                ValidationError(
                    field=lead_field,
                    code="LEAD_TIME_WITHOUT_DATE",
                    message=f"{lead_field} is only defined when {source_field} is present.",
                )
            )
        elif lead < 0:
            violations.append(
                ValidationError(
                    field=lead_field,
                    code="NEGATIVE_LEAD_TIME",
                    message=f"{lead_field} cannot be negative (got {lead}).",
                )
            )

    return violations


class ProbateRecord(BaseModel):
    """The canonical probate record.

    Frozen: edits go through RecordValidator, which builds a new record.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None  # Assigned by the store
    sequence_number: Optional[int] = None  # Assigned by the store
    cause_number: str = Field(min_length=1)
    deceased_name: str = Field(min_length=1)
    court_station: CourtStation
    date_received: CalendarDate
    date_of_receipt: OptionalCalendarDate = None  # e-Citizen payment receipt date
    date_forwarded_to_gp: OptionalCalendarDate = None
    compliance_verdict: Verdict
    rejection_reason: Optional[str] = None
    gp_publication_status: GPPublicationStatus = GPPublicationStatus.PENDING
    receiving_lead_time_days: Optional[int] = None
    forwarding_lead_time_days: Optional[int] = None
    kpi_alert_sent: bool = False
    last_modified_by: Optional[Officer] = None
    last_modified_at: Optional[datetime] = None
    last_edit_action: Optional[str] = None

    @model_validator(mode="after")
    def check_invariants(self) -> ProbateRecord:
        violations = record_invariant_violations(self)
        if violations:
            raise ValueError("; ".join(f"{v.field}: {v.message}" for v in violations))
        return self

    @property
    def is_forwarded(self) -> bool:
        return self.date_forwarded_to_gp is not None


# ─── Input payloads ─────────────────────────────────────────────────


class RecordInput(BaseModel):
    """What a caller submits to create a record.

    Fields are Optional because the form may be incomplete. We check
    completeness in the validator, where each gap becomes a field-tagged error.
    """

    model_config = ConfigDict(extra="forbid")

    cause_number: Optional[str] = None
    deceased_name: Optional[str] = None
    court_station: Union[CourtStation, str, None] = None
    date_received: OptionalCalendarDate = None
    date_of_receipt: OptionalCalendarDate = None
    date_forwarded_to_gp: OptionalCalendarDate = None
    compliance_verdict: OptionalVerdict = None
    rejection_reason: Optional[str] = None
    custom_rejection: Optional[str] = None  # Free text when the reason is "Other"


class RecordPatch(RecordInput):
    """A partial update. Only fields explicitly set by the caller are applied."""

    def supplied(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


# ─── Results ────────────────────────────────────────────────────────


class ValidationResult(BaseModel):
    """Outcome of a create/update validation: a record or a list of errors, never both."""

    is_valid: bool
    record: Optional[ProbateRecord] = None
    errors: list[ValidationError] = Field(default_factory=list)

    @classmethod
    def ok(cls, record: ProbateRecord) -> ValidationResult:
        return cls(is_valid=True, record=record)

    @classmethod
    def failed(cls, errors: list[ValidationError]) -> ValidationResult:
        return cls(is_valid=False, errors=errors)


class SkippedRecord(BaseModel):
    """One id of a batch that was not transitioned, and why."""

    id: str
    reason: str


class BatchResult(BaseModel):
    """Outcome of a bulk forwarding call. Partial failure is normal."""

    applied_ids: list[str] = Field(default_factory=list)
    skipped: list[SkippedRecord] = Field(default_factory=list)
    updated_records: list[ProbateRecord] = Field(default_factory=list)


# ─── Aggregates ─────────────────────────────────────────────────────


class RecordSummary(BaseModel):
    total: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    pending_forwarding_count: int = 0
    average_forwarding_lead_time_days: Optional[float] = None
    kpi_breach_count: int = 0


class ComplianceCounts(BaseModel):
    approved: int = 0
    rejected: int = 0


class GPStatusCounts(BaseModel):
    pending: int = 0
    published: int = 0


class LeadTimeAverages(BaseModel):
    receiving: Optional[float] = None
    forwarding: Optional[float] = None


class RecordStats(BaseModel):
    """Dashboard statistics over a set of records."""

    total: int = 0
    compliance: ComplianceCounts = Field(default_factory=ComplianceCounts)
    gp_status: GPStatusCounts = Field(default_factory=GPStatusCounts)
    kpi_breaches: int = 0
    averages: LeadTimeAverages = Field(default_factory=LeadTimeAverages)


class CourtPerformance(BaseModel):
    court_id: str
    court_name: str
    count: int
    compliance_rate: float  # Percentage of approved records, 0-100


class DailyIntake(BaseModel):
    day: date
    approved: int = 0
    rejected: int = 0


class RecordFilter(BaseModel):
    """Report filters. ``None`` means "all" for every criterion."""

    court_id: Optional[str] = None
    compliance_verdict: Optional[ComplianceVerdict] = None
    not_forwarded_only: bool = False
    received_from: OptionalCalendarDate = None
    received_to: OptionalCalendarDate = None
