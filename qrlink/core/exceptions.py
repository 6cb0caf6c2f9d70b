"""
Custom Exceptions

This module defines the error taxonomy of the QR link service.

Mapping to HTTP:
- InvalidSubmissionError -> 400
- ShortCodeNotFoundError -> 404 (same page for unknown and expired codes)
- AllocationExhaustedError, DatabaseError -> 500
"""


class QRLinkError(Exception):
    """Base exception for the QR link service."""
    pass


class InvalidSubmissionError(QRLinkError):
    """Raised when a submission is missing a field or carries a bad value."""

    def __init__(self, field: str, reason: str = "Missing required fields"):
        self.field = field
        self.reason = reason
        super().__init__(f"{reason}: {field}")


class ShortCodeNotFoundError(QRLinkError):
    """Raised when a short code is unknown, expired or deactivated."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class AllocationExhaustedError(QRLinkError):
    """Raised when every allocation attempt collided with an existing code."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Unable to generate unique short code after {attempts} attempts")


class DatabaseError(QRLinkError):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class CodeConflictError(DatabaseError):
    """Raised when an insert hits the unique index on the short code."""

    def __init__(self, short_code: str, original_error: Exception = None):
        self.short_code = short_code
        super().__init__(
            f"short code '{short_code}' already exists",
            original_error=original_error
        )
