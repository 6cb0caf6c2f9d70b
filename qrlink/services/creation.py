"""
Creation Service

Turns a client submission into a short link:
- Classifies the content as URL or plain text
- Validates and normalizes URLs (http/https only)
- Allocates a code through the Code Registry and persists the link
- Builds the public link (route style, compact spelling, disguise query)

Plain text is echoed back and never persisted: the client renders it into
the QR code directly, so there is nothing to resolve later.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from urllib.parse import urlparse

from qrlink.core.exceptions import InvalidSubmissionError
from qrlink.core.setting import settings
from qrlink.db.models import ContentKind, ShortLink
from qrlink.services.detection import ClientContext
from qrlink.services.qr import generate_qr_base64
from qrlink.services.registry import CodeRegistry
from qrlink.services.routes import (
    build_public_url,
    normalize_route_hint,
    path_segment_for,
    pick_disguise_query,
)

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = {"http", "https"}

# Bare domains such as "example.com" or "www.example.com/path?x=1"
_BARE_DOMAIN = re.compile(
    r"^(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,}(?::\d{1,5})?(?:[/?#]\S*)?$",
    re.IGNORECASE,
)


def is_valid_url(url: str) -> bool:
    """
    Strict check: absolute http(s) URL with a plausible host.

    Args:
        url: The URL string to validate

    Returns:
        True if valid, False otherwise
    """
    if not url or not isinstance(url, str) or any(c.isspace() for c in url):
        return False

    try:
        result = urlparse(url)
    except ValueError:
        return False

    if result.scheme.lower() not in ALLOWED_SCHEMES or not result.netloc:
        return False

    domain = result.hostname or ""
    return domain == "localhost" or "." in domain


def looks_like_bare_domain(content: str) -> bool:
    """Permissive heuristic for scheme-less links."""
    return bool(_BARE_DOMAIN.match(content))


def classify_content(content: str) -> ContentKind:
    """
    Decide whether a submission is a link or plain text.

    Example:
        classify_content("https://example.com") -> ContentKind.URL
        classify_content("www.example.com/path") -> ContentKind.URL
        classify_content("hello world") -> ContentKind.TEXT
    """
    candidate = content.strip()
    if is_valid_url(candidate) or looks_like_bare_domain(candidate):
        return ContentKind.URL
    return ContentKind.TEXT


def normalize_url(url: str) -> str:
    """Prefix https:// when the URL carries no scheme."""
    url = url.strip()
    if urlparse(url).scheme.lower() in ALLOWED_SCHEMES:
        return url
    return f"https://{url}"


@dataclass
class CreationResult:
    """Everything the client needs to print and track a new link."""
    is_url: bool
    content: str
    code: Optional[str] = None
    display_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    public_url: Optional[str] = None
    route_hint: Optional[str] = None
    compact_mode: bool = False
    qr_base64: Optional[str] = None


class CreationService:
    """
    Creates short links.

    Receives its registry explicitly; nothing here touches a global store.
    """

    def __init__(
        self,
        registry: CodeRegistry,
        disguise_enabled: Optional[bool] = None,
        disguise_picker: Callable[[], str] = pick_disguise_query,
        render_qr: bool = True,
    ):
        """
        Args:
            registry: Code registry bound to the request's store
            disguise_enabled: Append a disguise query (defaults to settings)
            disguise_picker: Chooses the disguise query
            render_qr: Include a base64 PNG of the public link in results
        """
        self.registry = registry
        self.disguise_enabled = (
            settings.DISGUISE_QUERY_ENABLED if disguise_enabled is None else disguise_enabled
        )
        self.disguise_picker = disguise_picker
        self.render_qr = render_qr

    async def create(
        self,
        content: Optional[str],
        expires_in_minutes: Optional[float],
        route_hint: Optional[str],
        context: ClientContext,
    ) -> CreationResult:
        """
        Create a short link, or echo plain text back.

        Args:
            content: Submitted URL or text
            expires_in_minutes: Lifetime of the link (required for URLs)
            route_hint: Preferred public path style
            context: Requesting client

        Returns:
            CreationResult

        Raises:
            InvalidSubmissionError: Missing content, missing/invalid expiry, URL too long
            AllocationExhaustedError: No free code found
            DatabaseError: Persisting failed
        """
        if content is None or not str(content).strip():
            raise InvalidSubmissionError("content")

        if classify_content(content) is ContentKind.TEXT:
            return CreationResult(is_url=False, content=content)

        if expires_in_minutes is None:
            raise InvalidSubmissionError("expiresInMinutes")
        if not math.isfinite(expires_in_minutes) or expires_in_minutes <= 0:
            raise InvalidSubmissionError("expiresInMinutes", reason="Must be a positive number of minutes")
        if expires_in_minutes > settings.MAX_EXPIRES_IN_MINUTES:
            raise InvalidSubmissionError(
                "expiresInMinutes",
                reason=f"Must be at most {settings.MAX_EXPIRES_IN_MINUTES:g} minutes"
            )

        payload = normalize_url(content)
        if len(payload) > MAX_URL_LENGTH:
            raise InvalidSubmissionError("content", reason=f"URL longer than {MAX_URL_LENGTH} characters")

        await self.registry.sweep_expired()

        hint = normalize_route_hint(route_hint, default=settings.DEFAULT_ROUTE_HINT)
        compact = context.restrictive
        segment = path_segment_for(hint, compact)

        display_name = await self.registry.next_display_name()
        created_at = self.registry.clock()
        expires_at = created_at + timedelta(minutes=expires_in_minutes)

        def build_link(code: str) -> ShortLink:
            return ShortLink(
                code=code,
                display_name=display_name,
                content_kind=ContentKind.URL.value,
                payload=payload,
                created_at=created_at,
                expires_at=expires_at,
                is_active=True,
                scan_count=0,
                route_hint=hint,
                compact_mode=compact,
            )

        link = await self.registry.register(build_link)

        disguise = self.disguise_picker() if self.disguise_enabled else None
        public_url = build_public_url(context.base_url, segment, link.code, disguise)

        logger.info(f"Created {display_name} ({link.code}) -> {payload}, expires {expires_at.isoformat()}")

        return CreationResult(
            is_url=True,
            content=payload,
            code=link.code,
            display_name=display_name,
            expires_at=expires_at,
            public_url=public_url,
            route_hint=hint,
            compact_mode=compact,
            qr_base64=generate_qr_base64(public_url) if self.render_qr else None,
        )
