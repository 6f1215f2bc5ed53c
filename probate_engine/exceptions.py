"""
Custom exception hierarchy for the probate record engine.

Field-level validation problems are NOT exceptions. They come back as
ValidationError models inside a ValidationResult. The exceptions below are
reserved for inputs that cannot even be interpreted and for failures of the
external record store.
"""

from __future__ import annotations


class ProbateEngineError(Exception):
    """Base exception for all probate engine failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class MalformedInputError(ProbateEngineError):
    """An input value has the wrong shape (unparseable date, unknown verdict...)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("MALFORMED_INPUT", message, details)


class PersistenceError(ProbateEngineError):
    """The record store failed. Propagated unchanged, never retried."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("PERSISTENCE_FAILED", message, details)


class RecordNotFoundError(PersistenceError):
    """No record exists for the requested identifier."""

    def __init__(self, record_id: str):
        super().__init__(f"Record '{record_id}' not found", {"record_id": record_id})
        self.code = "RECORD_NOT_FOUND"
        self.record_id = record_id


class ReasonCatalogueError(ProbateEngineError):
    """The rejection-reason vocabulary file is unreadable or empty."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("REASON_CATALOGUE_INVALID", message, details)
