"""
Database Abstraction Interface

Two seams live here:

- DatabaseAdapter: engine construction per backend (SQLite, PostgreSQL).
- LinkStore: the storage operations the services depend on. Services receive
  a LinkStore instance explicitly, so tests can hand them an in-memory fake
  and the SQL implementation can change without touching business logic.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import Pool

from qrlink.db.models import ScanEvent, ShortLink


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Implement all abstract methods
    3. Register it in get_database_adapter()
    """

    @abstractmethod
    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.

        Args:
            database_url: Connection string for the database
            **kwargs: Additional engine configuration options

        Returns:
            Configured AsyncEngine instance
        """
        pass

    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """Pool class for this backend, or None for SQLAlchemy's default."""
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Driver-level connection arguments."""
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Additional create_async_engine keyword arguments."""
        pass

    @abstractmethod
    def get_dialect_name(self) -> str:
        """SQLAlchemy dialect name (e.g., 'sqlite', 'postgresql')."""
        pass


class LinkStore(ABC):
    """
    Storage operations for short links and their scan log.

    Every mutating method is atomic: it either applies completely or raises
    and leaves nothing behind.
    """

    @abstractmethod
    async def insert_link(self, link: ShortLink) -> ShortLink:
        """
        Persist a fully populated new link.

        Raises:
            CodeConflictError: If the code is already taken
            DatabaseError: On any other storage failure
        """
        pass

    @abstractmethod
    async def get_by_code(self, code: str) -> Optional[ShortLink]:
        """Exact-match lookup, regardless of active state."""
        pass

    @abstractmethod
    async def latest_display_name(self) -> Optional[str]:
        """Display name of the most recently created link, if any."""
        pass

    @abstractmethod
    async def deactivate(self, code: str) -> bool:
        """Clear is_active for code. Returns False when no row matched."""
        pass

    @abstractmethod
    async def deactivate_expired(self, now: datetime) -> int:
        """Clear is_active on every active link that expired before now."""
        pass

    @abstractmethod
    async def list_active(self, now: datetime) -> List[ShortLink]:
        """Active, unexpired links, newest first."""
        pass

    @abstractmethod
    async def record_scan(self, link_id: int, event: ScanEvent) -> None:
        """Append event and bump the owner's scan_count / last_scanned_at together."""
        pass
