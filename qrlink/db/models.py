"""
Database Models for the QR Link Service

This module defines the SQLModel database schemas for:
- ShortLink: Maps a short code to its destination and tracks expiry state
- ScanEvent: Append-only record of every successful resolution

Design Decisions:
- Unique index on code: the database, not the application, guarantees uniqueness
- Rows are never deleted; expiry and deletion only clear is_active
- scan_count denormalized on ShortLink for listings without joins
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlmodel import Column, Field, SQLModel

from qrlink.core.validators import utcnow


class ContentKind(str, Enum):
    """What a submission turned out to be."""
    URL = "url"
    TEXT = "text"


class ShortLink(SQLModel, table=True):
    """
    Main table storing short code mappings.

    Fields:
    - code: 8-character base62 code (unique index, the public lookup key)
    - display_name: Cosmetic sequential label (QR-001, QR-002, ...)
    - content_kind: 'url' or 'text'
    - payload: Normalized URL or raw text
    - expires_at: Absolute expiry computed from the relative offset at creation
    - is_active: Cleared on deletion or on first access after expiry, never set again
    - scan_count / last_scanned_at: Maintained by scan recording only
    - route_hint / compact_mode: Which public path style was handed out
    """
    __tablename__ = "short_links"

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(sa_column=Column(String(20), nullable=False, unique=True, index=True))
    display_name: str = Field(sa_column=Column(String(32), nullable=False))
    content_kind: str = Field(
        default=ContentKind.URL.value,
        sa_column=Column(String(8), nullable=False, default=ContentKind.URL.value)
    )
    payload: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True, index=True)
    )
    scan_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    last_scanned_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    route_hint: Optional[str] = Field(
        default=None,
        sa_column=Column(String(16), nullable=True)
    )
    compact_mode: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False)
    )


class ScanEvent(SQLModel, table=True):
    """
    Scan log table.

    One row per successful resolution. Never updated or deleted.
    user_agent and source_address are truncated before insert.
    """
    __tablename__ = "scan_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    short_link_id: int = Field(
        sa_column=Column(Integer, ForeignKey("short_links.id"), nullable=False, index=True)
    )
    user_agent: str = Field(default="", sa_column=Column(String(500), nullable=False, default=""))
    source_address: str = Field(default="", sa_column=Column(String(100), nullable=False, default=""))
    is_restrictive_context: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False)
    )
    scanned_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
