"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Wire names are camelCase; Python attributes stay snake_case.

Request fields the endpoints must report as 400 (not 422) when missing are
declared optional here and checked by the services.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from qrlink.core.validators import as_utc
from qrlink.services.creation import CreationResult


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateRequest(CamelModel):
    """Request model for the create endpoint."""
    content: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("content", "originalUrl"),
        description="URL or plain text to encode"
    )
    expires_in_minutes: Optional[float] = Field(
        default=None,
        description="Link lifetime in minutes (required for URLs)"
    )
    route_hint: Optional[str] = Field(
        default=None,
        description="Public path style: go, share, link, view or article"
    )
    restrictive_context_flag: bool = Field(
        default=False,
        description="Set by clients that know they run inside an in-app browser"
    )


class CreateResponse(CamelModel):
    """Response model for the create endpoint."""
    is_url: bool = Field(..., alias="isURL")
    content: str = Field(..., description="Normalized URL, or the text echoed back")
    code: Optional[str] = None
    display_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    public_url: Optional[str] = None
    route_hint: Optional[str] = None
    compact_mode: bool = False
    qr_base64: Optional[str] = None

    @classmethod
    def from_result(cls, result: CreationResult) -> "CreateResponse":
        return cls(
            is_url=result.is_url,
            content=result.content,
            code=result.code,
            display_name=result.display_name,
            expires_at=result.expires_at,
            public_url=result.public_url,
            route_hint=result.route_hint,
            compact_mode=result.compact_mode,
            qr_base64=result.qr_base64,
        )


class LinkOut(CamelModel):
    """One entry of the manage listing."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    code: str
    display_name: str
    content_kind: str
    payload: str
    created_at: datetime
    expires_at: datetime
    is_active: bool
    scan_count: int
    last_scanned_at: Optional[datetime] = None
    route_hint: Optional[str] = None
    compact_mode: bool = False

    @field_validator("created_at", "expires_at", "last_scanned_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class DeleteRequest(CamelModel):
    """Request model for deactivating a link."""
    code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("code", "shortCode")
    )


class SuccessResponse(BaseModel):
    success: bool


class QRResponse(CamelModel):
    code: str
    qr_base64: str

