"""
Exception hierarchy for caller errors.

Malformed field VALUES never raise — they come back as invalid, low-confidence
outcomes. These exceptions are for callers asking for something the engine
does not offer, such as validating a field kind that has no validator.
"""

from __future__ import annotations


class DocumentValidationError(Exception):
    """Base exception for all document validation failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class UnsupportedFieldError(DocumentValidationError):
    """The requested field kind has no validator."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INVALID_FIELD", message, details)
