"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs,
plus the timestamp helpers shared by the services and the store.

Security Considerations:
- Short codes are restricted to base62 before they reach a query
- Length limits keep logged client data bounded
"""

import re
from datetime import datetime, timezone
from typing import Optional


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Short codes should only contain base62 characters: [0-9a-zA-Z]

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if len(short_code) > 20:
        return None

    if not re.match(r'^[0-9a-zA-Z]+$', short_code):
        return None

    return short_code


def truncate(value: Optional[str], max_length: int) -> str:
    """Clip client-supplied header values before they are stored."""
    if not value:
        return ""
    return value[:max_length]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.

    SQLite drops the offset of DateTime(timezone=True) columns, so values read
    back from it are naive but were written as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
