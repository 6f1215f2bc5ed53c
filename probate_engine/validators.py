"""
Record lifecycle validator — the gatekeeper in front of persistence.

Every create and every edit passes through RecordValidator before it reaches
the store. Field-level problems are collected, never raised: the caller gets a
ValidationResult holding either a complete ProbateRecord or the full list of
field-tagged errors, never a partially applied record.

Each check below is a module-level function that:
  - Takes plain values (or a RecordInput)
  - Returns a list of ValidationError objects (empty = all clear)
  - Is independently testable

Only inputs that cannot be interpreted at all (an unparseable date, an unknown
verdict, an unexpected field) raise MalformedInputError at the boundary,
before any rule runs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime, timezone
from typing import Any, Optional, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .calculator import derive_lead_times
from .config import Settings, get_settings
from .exceptions import MalformedInputError
from .models import (
    ComplianceVerdict,
    CourtStation,
    Officer,
    ProbateRecord,
    RecordInput,
    RecordPatch,
    ValidationError,
    ValidationResult,
)
from .reasons import (
    OTHER_REASON,
    load_rejection_reasons,
    resolve_rejection_reason,
    same_reason,
    suggest_rejection_reasons,
)

logger = logging.getLogger(__name__)

_InputT = TypeVar("_InputT", bound=BaseModel)

REQUIRED_FIELDS: list[tuple[str, str]] = [
    ("cause_number", "Cause Number"),
    ("deceased_name", "Name of Deceased"),
    ("court_station", "Court Station"),
    ("date_received", "Date Received"),
    ("compliance_verdict", "Form 60 Compliance"),
]

DATE_FIELDS: tuple[str, ...] = ("date_received", "date_of_receipt", "date_forwarded_to_gp")

# Fields of a stored record that an edit may change
_EDITABLE_FIELDS: tuple[str, ...] = (
    "cause_number",
    "deceased_name",
    "court_station",
    *DATE_FIELDS,
    "compliance_verdict",
)

FORWARD_BEFORE_RECEIVED = "forward date precedes receipt date"
RECEIPT_BEFORE_RECEIVED = "e-Citizen receipt date precedes the date received"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Individual Validators ───────────────────────────────────────────


def validate_required_fields(values: Any) -> list[ValidationError]:
    """Every record needs a cause number, deceased name, court, date received and verdict.

    Blank strings count as missing: a cause number of "   " identifies nothing.
    """
    errors: list[ValidationError] = []

    for field_name, display_name in REQUIRED_FIELDS:
        value = getattr(values, field_name, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(
                ValidationError(
                    field=field_name,
                    code="MISSING_REQUIRED_FIELD",
                    message=f"{display_name} is required.",
                )
            )

    return errors


def validate_date_order(
    date_received: Optional[date],
    date_of_receipt: Optional[date] = None,
    date_forwarded_to_gp: Optional[date] = None,
) -> list[ValidationError]:
    """Neither the e-Citizen receipt nor the dispatch to the GP may precede arrival at the registry."""
    errors: list[ValidationError] = []
    if date_received is None:
        return errors  # Reported by validate_required_fields

    checks = [
        ("date_of_receipt", date_of_receipt, RECEIPT_BEFORE_RECEIVED),
        ("date_forwarded_to_gp", date_forwarded_to_gp, FORWARD_BEFORE_RECEIVED),
    ]
    for field_name, later, message in checks:
        if later is not None and later < date_received:
            errors.append(
                ValidationError(
                    field=field_name,
                    code="DATE_ORDER_VIOLATION",
                    message=message,
                    details={
                        "date_received": str(date_received),
                        field_name: str(later),
                        "gap_days": (date_received - later).days,
                    },
                )
            )

    return errors


def validate_rejection_reason(
    verdict: Optional[ComplianceVerdict],
    reason: Optional[str],
    reasons: list[str],
    custom_text: Optional[str] = None,
) -> tuple[Optional[str], list[ValidationError]]:
    """Check a freshly submitted reason against the verdict and the vocabulary.

    Returns:
        (text to store, errors). The text is None for an approved record.
    """
    errors: list[ValidationError] = []
    submitted = (reason or "").strip()

    if verdict != ComplianceVerdict.REJECTED:
        if submitted:
            errors.append(
                ValidationError(
                    field="rejection_reason",
                    code="REJECTION_REASON_NOT_ALLOWED",
                    message="A rejection reason may only be given for a rejected Form 60.",
                    details={"rejection_reason": submitted},
                )
            )
        return None, errors

    if not submitted:
        errors.append(
            ValidationError(
                field="rejection_reason",
                code="REJECTION_REASON_REQUIRED",
                message="A rejected Form 60 needs a rejection reason.",
            )
        )
        return None, errors

    match = resolve_rejection_reason(submitted, reasons, custom_text)
    if match is not None:
        return match.resolved, errors

    if submitted.casefold() == OTHER_REASON.casefold():
        errors.append(
            ValidationError(
                field="custom_rejection",
                code="REJECTION_REASON_REQUIRED",
                message=f'Describe the rejection when choosing "{OTHER_REASON}".',
            )
        )
    else:
        errors.append(
            ValidationError(
                field="rejection_reason",
                code="REJECTION_REASON_UNLISTED",
                message=(
                    f"'{submitted}' is not a listed rejection reason. Pick a listed "
                    f'reason or choose "{OTHER_REASON}" and describe it.'
                ),
                details={
                    "rejection_reason": submitted,
                    "suggestions": suggest_rejection_reasons(submitted, reasons),
                },
            )
        )
    return None, errors


def validate_no_cleared_dates(
    existing: ProbateRecord, supplied: Mapping[str, Any]
) -> list[ValidationError]:
    """Edits may add or move milestone dates, never erase one that is already set."""
    errors: list[ValidationError] = []

    for field_name in DATE_FIELDS:
        if field_name not in supplied or supplied[field_name] is not None:
            continue
        current = getattr(existing, field_name)
        if current is not None:
            errors.append(
                ValidationError(
                    field=field_name,
                    code="DATE_CLEAR_NOT_ALLOWED",
                    message=f"{field_name} is already set ({current}) and cannot be cleared.",
                    details={field_name: str(current)},
                )
            )

    return errors


# ─── Validator ───────────────────────────────────────────────────────


class RecordValidator:
    """Validates record creation and edits, and builds the canonical record.

    Usage:
        validator = RecordValidator.from_settings(courts=courts)
        result = validator.validate_for_create(form_data, officer=me)
        if not result.is_valid:
            for error in result.errors:
                show(error.field, error.message)
    """

    def __init__(
        self,
        rejection_reasons: list[str] | None = None,
        courts: list[CourtStation] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.rejection_reasons = (
            rejection_reasons if rejection_reasons is not None else load_rejection_reasons()
        )
        self.courts = list(courts) if courts is not None else None
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        courts: list[CourtStation] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> RecordValidator:
        settings = settings or get_settings()
        return cls(
            rejection_reasons=load_rejection_reasons(settings.rejection_reasons_path),
            courts=courts,
            clock=clock,
        )

    # ─── Create ──────────────────────────────────────────────────────

    def validate_for_create(
        self,
        data: Union[RecordInput, Mapping[str, Any]],
        officer: Officer | None = None,
    ) -> ValidationResult:
        """Validate a new record and, when clean, build it with derived lead times."""
        record_input = _parse(data, RecordInput)

        errors = validate_required_fields(record_input)

        court: CourtStation | None = None
        if _is_supplied(record_input.court_station):
            court, court_errors = self._resolve_court(record_input.court_station)
            errors.extend(court_errors)

        errors.extend(
            validate_date_order(
                record_input.date_received,
                record_input.date_of_receipt,
                record_input.date_forwarded_to_gp,
            )
        )

        reason: Optional[str] = None
        if record_input.compliance_verdict is not None:
            reason, reason_errors = validate_rejection_reason(
                record_input.compliance_verdict,
                record_input.rejection_reason,
                self.rejection_reasons,
                record_input.custom_rejection,
            )
            errors.extend(reason_errors)

        if errors:
            logger.info("Create rejected with %d error(s)", len(errors))
            return ValidationResult.failed(errors)

        assert record_input.date_received is not None
        assert record_input.cause_number is not None
        assert record_input.deceased_name is not None

        values = {
            "cause_number": record_input.cause_number.strip(),
            "deceased_name": record_input.deceased_name.strip(),
            "court_station": court,
            "date_received": record_input.date_received,
            "date_of_receipt": record_input.date_of_receipt,
            "date_forwarded_to_gp": record_input.date_forwarded_to_gp,
            "compliance_verdict": record_input.compliance_verdict,
            "rejection_reason": reason,
            **derive_lead_times(
                record_input.date_received,
                record_input.date_of_receipt,
                record_input.date_forwarded_to_gp,
            ),
            "last_modified_by": officer,
            "last_modified_at": self.clock(),
            "last_edit_action": "Created record",
        }
        return self._build(values)

    # ─── Update ──────────────────────────────────────────────────────

    def validate_for_update(
        self,
        existing: ProbateRecord,
        patch: Union[RecordPatch, Mapping[str, Any]],
        officer: Officer | None = None,
    ) -> ValidationResult:
        """Validate ``existing ⊕ patch`` with the create rules and build the merged record.

        A verdict that moves away from Rejected drops the stored reason, so an
        approved record never carries a stale one.
        """
        record_patch = _parse(patch, RecordPatch)
        supplied = record_patch.supplied()

        errors = validate_no_cleared_dates(existing, supplied)

        merged: dict[str, Any] = {name: getattr(existing, name) for name in _EDITABLE_FIELDS}
        for name in _EDITABLE_FIELDS:
            if name in supplied:
                merged[name] = supplied[name]

        if _is_supplied(supplied.get("court_station")):
            merged["court_station"], court_errors = self._resolve_court(
                supplied["court_station"]
            )
            errors.extend(court_errors)

        errors.extend(validate_required_fields(_Namespace(merged)))
        errors.extend(
            validate_date_order(
                merged["date_received"],
                merged["date_of_receipt"],
                merged["date_forwarded_to_gp"],
            )
        )

        reason, reason_errors = self._merge_reason(existing, merged, supplied, record_patch)
        errors.extend(reason_errors)

        if errors:
            logger.info(
                "Update of record %s rejected with %d error(s)", existing.id, len(errors)
            )
            return ValidationResult.failed(errors)

        values = {
            **existing.model_dump(),
            **merged,
            "cause_number": merged["cause_number"].strip(),
            "deceased_name": merged["deceased_name"].strip(),
            "rejection_reason": reason,
            **derive_lead_times(
                merged["date_received"],
                merged["date_of_receipt"],
                merged["date_forwarded_to_gp"],
            ),
            "last_modified_by": officer if officer is not None else existing.last_modified_by,
            "last_modified_at": self.clock(),
            "last_edit_action": "Updated record",
        }
        return self._build(values)

    # ─── Helpers ─────────────────────────────────────────────────────

    def _merge_reason(
        self,
        existing: ProbateRecord,
        merged: dict[str, Any],
        supplied: Mapping[str, Any],
        record_patch: RecordPatch,
    ) -> tuple[Optional[str], list[ValidationError]]:
        verdict = merged["compliance_verdict"]
        if verdict is None:
            return None, []  # Reported by validate_required_fields

        resubmitted = (
            verdict == ComplianceVerdict.REJECTED
            and existing.compliance_verdict == ComplianceVerdict.REJECTED
            and same_reason(record_patch.rejection_reason, existing.rejection_reason)
        )
        if resubmitted:
            return existing.rejection_reason, []  # Whole form sent back unchanged

        if "rejection_reason" in supplied:
            return validate_rejection_reason(
                verdict,
                record_patch.rejection_reason,
                self.rejection_reasons,
                record_patch.custom_rejection,
            )

        if verdict != ComplianceVerdict.REJECTED:
            if existing.rejection_reason:
                logger.debug(
                    "Clearing rejection reason of record %s (verdict now %s)",
                    existing.id,
                    verdict.value,
                )
            return None, []

        # Still rejected, reason untouched: keep it as stored (may be "Other" free text)
        if existing.rejection_reason:
            return existing.rejection_reason, []
        return validate_rejection_reason(verdict, None, self.rejection_reasons)

    def _resolve_court(
        self, value: Union[CourtStation, str]
    ) -> tuple[CourtStation | None, list[ValidationError]]:
        """Match a court station (object, id or name) against the injected catalogue."""
        if isinstance(value, CourtStation):
            if self.courts is None or any(c.id == value.id for c in self.courts):
                return value, []
            return None, [_unknown_court(value.id)]

        key = value.strip()
        for court in self.courts or []:
            if court.id == key:
                return court, []
        for court in self.courts or []:
            if court.name.strip().casefold() == key.casefold():
                return court, []
        return None, [_unknown_court(key)]

    def _build(self, values: dict[str, Any]) -> ValidationResult:
        try:
            record = ProbateRecord.model_validate(values)
        except PydanticValidationError as e:
            return ValidationResult.failed(
                [
                    ValidationError(
                        field=".".join(str(p) for p in err["loc"]) or "record",
                        code="INVARIANT_VIOLATION",
                        message=err["msg"],
                    )
                    for err in e.errors(include_url=False)
                ]
            )
        return ValidationResult.ok(record)


# ─── Internal Helpers ────────────────────────────────────────────────


class _Namespace:
    """Attribute view over a dict, so merged edits can reuse the field checks."""

    def __init__(self, values: Mapping[str, Any]):
        self.__dict__.update(values)


def _is_supplied(value: Any) -> bool:
    """A court given as an object or a non-blank string. Blanks are left to the required check."""
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None


def _unknown_court(key: str) -> ValidationError:
    return ValidationError(
        field="court_station",
        code="COURT_STATION_UNKNOWN",
        message=f"Court station '{key}' is not a known court.",
        details={"court_station": key},
    )


def _parse(data: Any, model: type[_InputT]) -> _InputT:
    """Turn caller input into a typed payload, failing fast on malformed shapes."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    if not isinstance(data, Mapping):
        raise MalformedInputError(
            f"Expected a {model.__name__} or a mapping, got {type(data).__name__}"
        )
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as e:
        problems = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors(include_url=False)
        ]
        raise MalformedInputError(
            "Malformed input: "
            + "; ".join(f"{p['field']}: {p['message']}" for p in problems),
            {"errors": problems},
        ) from e
