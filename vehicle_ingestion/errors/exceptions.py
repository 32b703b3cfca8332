"""Custom exception hierarchy for vehicle import errors.

Batch-fatal errors (FileParseError, MappingValidationError) abort an import
before any row is touched. Everything deriving from RowError is caught at the
row boundary and recorded as a failed row outcome.
"""
from typing import List, Optional, Sequence, Tuple


class VehicleImportError(Exception):
    """Base exception for all vehicle import errors."""

    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class FileParseError(VehicleImportError):
    """Raised when an uploaded file cannot be turned into header + data rows."""
    pass


class MappingValidationError(VehicleImportError):
    """Raised when the column mapping leaves required fields unmapped."""

    def __init__(
        self,
        message: str,
        missing_fields: Sequence[str] = (),
        unknown_headers: Sequence[str] = (),
    ):
        self.missing_fields = list(missing_fields)
        self.unknown_headers = list(unknown_headers)
        super().__init__(message)


class RowError(VehicleImportError):
    """Base class for failures scoped to a single row."""

    def field_errors(self) -> List[Tuple[Optional[str], str]]:
        """Return the (field, reason) pairs this error contributes to a row report."""
        return [(None, self.message)]


class ValidationError(RowError):
    """Raised when a single field value fails validation."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def field_errors(self) -> List[Tuple[Optional[str], str]]:
        return [(self.field, self.reason)]


class TaxonomyUnmatchedError(RowError):
    """Raised when a make/model/variant value has no confident taxonomy match."""

    def __init__(self, field: str, text: str, reason: Optional[str] = None):
        self.field = field
        self.text = text
        self.reason = reason or f"no confident match for '{text}'"
        super().__init__(f"{field}: {self.reason}")

    def field_errors(self) -> List[Tuple[Optional[str], str]]:
        return [(self.field, self.reason)]


class RowValidationError(RowError):
    """All field-level errors of one row, collected without short-circuiting."""

    def __init__(self, errors: Sequence[RowError]):
        self.errors = list(errors)
        summary = "; ".join(e.message for e in self.errors)
        super().__init__(f"Row failed validation: {summary}")

    def field_errors(self) -> List[Tuple[Optional[str], str]]:
        pairs: List[Tuple[Optional[str], str]] = []
        for error in self.errors:
            pairs.extend(error.field_errors())
        return pairs


class PersistenceError(RowError):
    """Raised by the persistence collaborator when a vehicle cannot be stored."""
    pass


class BatchStateError(VehicleImportError):
    """Raised on an illegal import batch transition or a write to a finished batch."""
    pass
