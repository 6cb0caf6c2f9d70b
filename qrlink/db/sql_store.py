"""
SQL Link Store

LinkStore implementation on top of an async SQLModel/SQLAlchemy session.

Design Decisions:
- Each mutating call commits its own transaction so every operation is atomic
- Uniqueness of codes comes from the unique index; an IntegrityError on insert
  is reported as CodeConflictError so the registry can retry with a new code
- Counters use database-level UPDATE (scan_count + 1), not read-modify-write
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from qrlink.core.exceptions import CodeConflictError, DatabaseError
from qrlink.db.interface import LinkStore
from qrlink.db.models import ScanEvent, ShortLink

logger = logging.getLogger(__name__)


class SQLLinkStore(LinkStore):
    """LinkStore bound to one AsyncSession."""

    def __init__(self, session: AsyncSession):
        """
        Args:
            session: Async database session for database operations
        """
        self.session = session

    async def insert_link(self, link: ShortLink) -> ShortLink:
        try:
            self.session.add(link)
            await self.session.commit()
            await self.session.refresh(link)
            return link
        except IntegrityError as e:
            await self.session.rollback()
            if await self.get_by_code(link.code) is not None:
                logger.debug(f"Insert collided on existing code {link.code}")
                raise CodeConflictError(link.code, original_error=e)
            raise DatabaseError(
                "Failed to create short link: database constraint violation",
                original_error=e
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to create short link: {str(e)}", original_error=e)

    async def get_by_code(self, code: str) -> Optional[ShortLink]:
        try:
            statement = (
                select(ShortLink)
                .where(ShortLink.code == code)
                .execution_options(populate_existing=True)
            )
            result = await self.session.exec(statement)
            return result.first()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to look up '{code}'", original_error=e)

    async def latest_display_name(self) -> Optional[str]:
        try:
            statement = (
                select(ShortLink.display_name)
                .order_by(ShortLink.created_at.desc(), ShortLink.id.desc())
                .limit(1)
            )
            result = await self.session.exec(statement)
            return result.first()
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to read latest display name", original_error=e)

    async def deactivate(self, code: str) -> bool:
        statement = (
            update(ShortLink)
            .where(ShortLink.code == code)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        rowcount = await self._execute_update(statement, f"deactivate '{code}'")
        return rowcount > 0

    async def deactivate_expired(self, now: datetime) -> int:
        statement = (
            update(ShortLink)
            .where(ShortLink.is_active.is_(True))
            .where(ShortLink.expires_at < now)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        return await self._execute_update(statement, "sweep expired links")

    async def list_active(self, now: datetime) -> List[ShortLink]:
        try:
            statement = (
                select(ShortLink)
                .where(ShortLink.is_active.is_(True))
                .where(ShortLink.expires_at >= now)
                .order_by(ShortLink.created_at.desc(), ShortLink.id.desc())
                .execution_options(populate_existing=True)
            )
            result = await self.session.exec(statement)
            return list(result.all())
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to list active links", original_error=e)

    async def record_scan(self, link_id: int, event: ScanEvent) -> None:
        event.short_link_id = link_id
        try:
            self.session.add(event)
            await self.session.execute(
                update(ShortLink)
                .where(ShortLink.id == link_id)
                .values(
                    scan_count=ShortLink.scan_count + 1,
                    last_scanned_at=event.scanned_at,
                )
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to record scan for link {link_id}", original_error=e)

    async def _execute_update(self, statement, action: str) -> int:
        try:
            result = await self.session.execute(statement)
            await self.session.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to {action}", original_error=e)
