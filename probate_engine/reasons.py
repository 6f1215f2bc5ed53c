"""
Rejection-reason vocabulary: loading and resolution.

The registry rejects Form 60 notices for a fixed set of reasons. That list is
configuration data (data/rejection_reasons.json, overridable through
PROBATE_REJECTION_REASONS_PATH), not code. A caller may either pick one of the
listed reasons or pick "Other" and type free text.

Resolution strategy:
  1. Exact match, case- and whitespace-insensitive → canonical wording
  2. "Other" → the caller's free text (must be non-blank)
  3. Anything else is unlisted; we offer close matches (SequenceMatcher) as
     suggestions but NEVER silently substitute one.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from difflib import get_close_matches
from pathlib import Path
from typing import Optional

from .exceptions import ReasonCatalogueError

logger = logging.getLogger(__name__)

OTHER_REASON = "Other"

# Minimum similarity for a listed reason to be offered as a suggestion
SUGGESTION_CUTOFF = 0.6

_DEFAULT_PATH = Path(__file__).parent / "data" / "rejection_reasons.json"


# ─── Data Structures ────────────────────────────────────────────────


@dataclass
class ReasonMatch:
    """Result of resolving a submitted rejection reason."""

    original: str  # What the caller submitted
    resolved: str  # The text that will be stored on the record
    is_other: bool  # True when the free-text "Other" route was taken


# ─── Public API ──────────────────────────────────────────────────────


def load_rejection_reasons(path: str | Path | None = None) -> list[str]:
    """Load the controlled rejection-reason list from a JSON array of strings.

    Args:
        path: Path to the JSON file. Defaults to the bundled list.

    Raises:
        ReasonCatalogueError: the file is missing, not JSON, or holds no reasons.
    """
    resolved = _DEFAULT_PATH if path is None else Path(path)

    try:
        with resolved.open(encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ReasonCatalogueError(
            f"Cannot read rejection reasons from {resolved}: {e}",
            {"path": str(resolved)},
        ) from e

    if not isinstance(data, list) or not all(isinstance(r, str) for r in data):
        raise ReasonCatalogueError(
            f"{resolved} must contain a JSON array of strings",
            {"path": str(resolved)},
        )

    reasons = [r.strip() for r in data if r.strip() and r.strip() != OTHER_REASON]
    if not reasons:
        raise ReasonCatalogueError(
            f"{resolved} lists no rejection reasons", {"path": str(resolved)}
        )

    logger.debug("Loaded %d rejection reasons from %s", len(reasons), resolved)
    return reasons


def resolve_rejection_reason(
    reason: Optional[str],
    reasons: list[str],
    custom_text: Optional[str] = None,
) -> ReasonMatch | None:
    """Map a submitted reason onto the text to store.

    Args:
        reason: A listed reason (any casing/spacing) or "Other".
        reasons: The controlled vocabulary.
        custom_text: Free text accompanying "Other".

    Returns:
        ReasonMatch if the reason is listed, or is "Other" with non-blank text;
        None otherwise.
    """
    if reason is None:
        return None

    key = _normalize(reason)
    if not key:
        return None

    if key == _normalize(OTHER_REASON):
        text = (custom_text or "").strip()
        if not text:
            return None
        return ReasonMatch(original=reason, resolved=text, is_other=True)

    for listed in reasons:
        if _normalize(listed) == key:
            return ReasonMatch(original=reason, resolved=listed, is_other=False)

    return None


def suggest_rejection_reasons(
    reason: str, reasons: list[str], limit: int = 3
) -> list[str]:
    """Listed reasons that look like what the caller probably meant."""
    by_key = {_normalize(r): r for r in reasons}
    matches = get_close_matches(
        _normalize(reason), list(by_key), n=limit, cutoff=SUGGESTION_CUTOFF
    )
    return [by_key[m] for m in matches]


def same_reason(first: Optional[str], second: Optional[str]) -> bool:
    """True when two reason texts differ only in casing or spacing."""
    if first is None or second is None:
        return False
    return _normalize(first) == _normalize(second)


# ─── Internal Helpers ────────────────────────────────────────────────


def _normalize(text: str) -> str:
    """Case-fold and collapse whitespace (form inputs often carry stray spaces)."""
    return re.sub(r"\s+", " ", text.strip()).casefold()
