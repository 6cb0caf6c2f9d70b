"""
Code Registry

Owns the short code lifecycle on top of an injected LinkStore:
- Generating random base62 codes
- Allocating a code by inserting under the unique index, retrying on conflict
- Best-effort sequential display names (QR-001, QR-002, ...)
- Lazy expiry sweep and deactivation

Codes are random rather than sequential so printed codes cannot be
enumerated. A collision surfaces as a unique index violation and is retried.
"""

import logging
import re
import secrets
import string
from datetime import datetime
from typing import Callable, List, Optional

from qrlink.core.exceptions import AllocationExhaustedError, CodeConflictError, ShortCodeNotFoundError
from qrlink.core.setting import settings
from qrlink.core.validators import as_utc, utcnow
from qrlink.db.interface import LinkStore
from qrlink.db.models import ScanEvent, ShortLink

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
DISPLAY_NAME_PREFIX = "QR-"
DEFAULT_DISPLAY_NAME = "QR-001"

_TRAILING_NUMBER = re.compile(r"(\d+)$")


def generate_code(length: int = 8) -> str:
    """
    Sample a code uniformly from the 62-symbol alphabet.

    Example:
        generate_code() -> "aZ3kQ9xB"
    """
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def is_live(link: ShortLink, now: datetime) -> bool:
    return bool(link.is_active) and now <= as_utc(link.expires_at)


def next_display_name_after(previous: Optional[str]) -> str:
    """
    Name that follows previous in the QR-### sequence.

    Example:
        next_display_name_after("QR-041") -> "QR-042"
        next_display_name_after(None) -> "QR-001"
        next_display_name_after("garbage") -> "QR-001"
    """
    if not previous:
        return DEFAULT_DISPLAY_NAME
    match = _TRAILING_NUMBER.search(previous)
    if not match:
        return DEFAULT_DISPLAY_NAME
    return f"{DISPLAY_NAME_PREFIX}{int(match.group(1)) + 1:03d}"


class CodeRegistry:
    """
    Registry of short codes backed by a LinkStore.

    Holds no state between calls besides its collaborators.
    """

    def __init__(
        self,
        store: LinkStore,
        code_generator: Callable[[int], str] = generate_code,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: Optional[int] = None,
        code_length: Optional[int] = None,
    ):
        """
        Args:
            store: Storage backend
            code_generator: Produces candidate codes of a given length
            clock: Source of "now" (UTC, aware)
            max_attempts: Insert attempts before AllocationExhaustedError
            code_length: Length of generated codes
        """
        self.store = store
        self.code_generator = code_generator
        self.clock = clock
        self.max_attempts = max_attempts or settings.CODE_ALLOCATION_ATTEMPTS
        self.code_length = code_length or settings.SHORT_CODE_LENGTH

    def allocate_code(self) -> str:
        """Sample one candidate code. Uniqueness is settled by register()."""
        return self.code_generator(self.code_length)

    async def register(
        self,
        build_link: Callable[[str], ShortLink],
    ) -> ShortLink:
        """
        Allocate a code and persist the link built for it.

        Each attempt samples a fresh code and inserts; the store's unique
        index rejects duplicates with CodeConflictError, which triggers the
        next attempt.

        Args:
            build_link: Builds the complete ShortLink for a candidate code

        Returns:
            The persisted ShortLink

        Raises:
            AllocationExhaustedError: If every attempt collided
            DatabaseError: If the store fails for any other reason
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.allocate_code()
            try:
                return await self.store.insert_link(build_link(code))
            except CodeConflictError:
                logger.warning(
                    f"Short code collision on attempt {attempt}/{self.max_attempts}"
                )
        raise AllocationExhaustedError(self.max_attempts)

    async def next_display_name(self) -> str:
        return next_display_name_after(await self.store.latest_display_name())

    async def sweep_expired(self) -> int:
        """Deactivate every expired link that is still marked active."""
        swept = await self.store.deactivate_expired(self.clock())
        if swept:
            logger.info(f"Deactivated {swept} expired link(s)")
        return swept

    async def find_by_code(self, code: str) -> Optional[ShortLink]:
        return await self.store.get_by_code(code)

    async def get_live(self, code: str) -> ShortLink:
        """
        Active, unexpired link for code.

        Raises:
            ShortCodeNotFoundError: If the code is unknown, deactivated or expired
        """
        link = await self.store.get_by_code(code)
        if link is None or not is_live(link, self.clock()):
            raise ShortCodeNotFoundError(code)
        return link

    async def deactivate(self, code: str) -> bool:
        return await self.store.deactivate(code)

    async def list_active(self) -> List[ShortLink]:
        return await self.store.list_active(self.clock())

    async def record_scan(self, link_id: int, event: ScanEvent) -> None:
        await self.store.record_scan(link_id, event)

