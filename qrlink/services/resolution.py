"""
Resolution Service

Resolves a public path to the response a scanning client should get:
- Redirect (302) for ordinary browsers
- Interstitial page for restrictive in-app browsers, where scripted or
  automatic redirects are unreliable
- Text page for text entries
- Not found for unknown, expired or deactivated codes (indistinguishable)

Expired links are deactivated lazily here, on first access past expiry.
Visits are handed to a scan dispatcher and never awaited on this path.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from qrlink.core.setting import settings
from qrlink.core.validators import sanitize_short_code, truncate
from qrlink.db.models import ContentKind, ScanEvent, ShortLink
from qrlink.services.detection import ClientContext
from qrlink.services.registry import CodeRegistry, is_live
from qrlink.services.routes import extract_short_code

logger = logging.getLogger(__name__)

# Schedules recording of a visit; must return without waiting for the write.
ScanDispatcher = Callable[[int, ScanEvent], None]


class ResolutionKind(str, Enum):
    REDIRECT = "redirect"
    INTERSTITIAL = "interstitial"
    TEXT = "text"
    NOT_FOUND = "not_found"


@dataclass
class Resolution:
    """Outcome of resolving a path."""
    kind: ResolutionKind
    code: Optional[str] = None
    payload: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def not_found(cls) -> "Resolution":
        return cls(kind=ResolutionKind.NOT_FOUND)


class ResolutionService:
    """
    Looks up codes and picks the response shape.

    The registry and the scan dispatcher are injected; the dispatcher decides
    where the visit write runs (FastAPI background task, detached asyncio
    task, or inline in tests).
    """

    def __init__(self, registry: CodeRegistry, dispatch_scan: ScanDispatcher):
        """
        Args:
            registry: Code registry bound to the request's store
            dispatch_scan: Schedules a visit record for (link id, event)
        """
        self.registry = registry
        self.dispatch_scan = dispatch_scan

    async def resolve(self, path: str, context: ClientContext) -> Resolution:
        """
        Resolve a request path for a client.

        Args:
            path: Request path, e.g. "/s/Ab3dEf9h" (query string ignored)
            context: Requesting client

        Returns:
            Resolution describing the response to send

        Raises:
            DatabaseError: If the lookup or lazy deactivation fails
        """
        code = sanitize_short_code(extract_short_code(path.split("?", 1)[0]))
        if not code:
            return Resolution.not_found()

        link = await self.registry.find_by_code(code)
        if link is None:
            logger.info(f"Unknown short code: {code}")
            return Resolution.not_found()

        now = self.registry.clock()
        if not is_live(link, now):
            if link.is_active:
                await self.registry.deactivate(code)
                logger.info(f"Short code {code} expired; marked inactive")
            else:
                logger.info(f"Short code {code} is inactive")
            return Resolution.not_found()

        restrictive = context.restrictive
        self._schedule_scan(link, context, restrictive, now)

        if link.content_kind == ContentKind.TEXT.value:
            kind = ResolutionKind.TEXT
        elif restrictive:
            kind = ResolutionKind.INTERSTITIAL
        else:
            kind = ResolutionKind.REDIRECT

        return Resolution(
            kind=kind,
            code=link.code,
            payload=link.payload,
            display_name=link.display_name,
        )

    def _schedule_scan(self, link: ShortLink, context: ClientContext, restrictive: bool, now) -> None:
        event = ScanEvent(
            short_link_id=link.id,
            user_agent=truncate(context.user_agent, settings.USER_AGENT_MAX_LENGTH),
            source_address=truncate(context.source_address, settings.SOURCE_ADDRESS_MAX_LENGTH),
            is_restrictive_context=restrictive,
            scanned_at=now,
        )
        try:
            self.dispatch_scan(link.id, event)
        except Exception as e:
            # Resolution proceeds even if the visit is never recorded
            logger.error(f"Failed to schedule scan for {link.code}: {str(e)}", exc_info=True)
