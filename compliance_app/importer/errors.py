"""
Error taxonomy for the import engine.

Row-level errors are recorded as row outcomes and never stop a batch.
``PersistenceError`` is the only fatal error: the batch is rolled back and the
error is re-raised with whatever report had been assembled so far.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .pipeline.report import BatchReport


class ImporterError(Exception):
    """Base exception for import engine failures."""


class RowError(ImporterError):
    """Non-fatal problem confined to one input row."""

    outcome = "error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(RowError):
    """A required field is missing or a value is unusable."""

    def __init__(self, message: str, *, missing: Sequence[str] = (), field: str | None = None) -> None:
        super().__init__(message, field=field)
        self.missing = tuple(missing)

    @classmethod
    def missing_fields(cls, missing: Sequence[str]) -> "ValidationError":
        fields = ", ".join(missing)
        return cls(f"Missing required field(s): {fields}", missing=missing)


class ResolutionError(RowError):
    """A referenced entity does not exist and may not be created."""

    def __init__(self, entity_kind: str, reference: Any, *, reason: str | None = None) -> None:
        message = reason or f"{entity_kind.replace('_', ' ').capitalize()} '{reference}' not found"
        super().__init__(message, field=entity_kind)
        self.entity_kind = entity_kind
        self.reference = reference


class DuplicateError(RowError):
    """The row's natural key already appeared earlier in the same batch."""

    def __init__(self, natural_key: str, *, first_row: int | None = None) -> None:
        message = f"Duplicate key '{natural_key}' in upload"
        if first_row is not None:
            message += f" (first seen on row {first_row})"
        super().__init__(message)
        self.natural_key = natural_key
        self.first_row = first_row


class DateParseError(ImporterError):
    """A date cell could not be parsed; the field is stored as null."""

    def __init__(self, value: Any, *, field: str | None = None) -> None:
        label = f" for {field}" if field else ""
        super().__init__(f"Could not parse date{label}: {value!r}")
        self.value = value
        self.field = field


class PersistenceError(ImporterError):
    """
    Fatal storage failure; every write of the batch has been rolled back.

    ``report`` holds the outcomes assembled before the failure. It is
    informational only and does not describe committed state.
    """

    def __init__(self, message: str, *, batch_id: str | None = None, report: "BatchReport | None" = None) -> None:
        super().__init__(message)
        self.batch_id = batch_id
        self.report = report


class UnsupportedSubjectError(ImporterError):
    """Raised when no import strategy is registered for a subject."""


class InputFileError(ImporterError):
    """Raised when an uploaded file cannot be read as tabular data."""
