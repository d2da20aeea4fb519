"""
Error taxonomy for the LLM interaction and memory subsystem.

Generation-facing operations raise these to the caller; memory maintenance
catches SummarizationFailure internally and degrades to truncation.
"""
from typing import List, Optional, Tuple


class TechDeckError(Exception):
    """Base class for all pipeline errors."""


class TransientInvocationError(TechDeckError):
    """Network, rate-limit or empty-reply failure during an LLM call. Retried."""


class InvocationExhausted(TechDeckError):
    """Every retry attempt of an LLM call failed."""

    def __init__(self, operation: str, attempts: int, last_error: Optional[BaseException] = None):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        reason = str(last_error) if last_error else "Unknown error"
        super().__init__(
            f"AI operation '{operation}' failed after {attempts} attempts: {reason}"
        )


class ParseFailure(TechDeckError):
    """Essential fields could not be extracted from the model output."""

    def __init__(self, record_type: str, missing_fields: List[str]):
        self.record_type = record_type
        self.missing_fields = missing_fields
        super().__init__(
            f"Failed to parse essential {record_type} fields from AI response "
            f"(missing: {', '.join(missing_fields)})"
        )


class ValidationFailure(TechDeckError):
    """Extracted data is well formed but violates the record schema."""

    def __init__(self, record_type: str, field_errors: List[Tuple[str, str]]):
        self.record_type = record_type
        self.field_errors = field_errors
        details = "; ".join(f"{path}: {message}" for path, message in field_errors)
        super().__init__(f"Generated {record_type} data failed validation: {details}")

    @property
    def field_paths(self) -> List[str]:
        return [path for path, _ in self.field_errors]


class SummarizationFailure(TechDeckError):
    """AI summarization of memory notes failed or returned nothing usable."""


class PersistenceError(TechDeckError):
    """The record store refused or failed to save a validated record."""
