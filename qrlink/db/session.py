"""
Database Session Management

This module handles async database connections using SQLAlchemy's async engine.
The engine is configured by the adapter matching DATABASE_URL.

Key Features:
- get_link_store: FastAPI dependency yielding a LinkStore on a request session
- link_store_scope: standalone store for work that outlives the request
  (background scan recording cannot reuse the endpoint's closed session)
- init_models: create missing tables for development setups
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from qrlink.core.setting import settings
from qrlink.db import models  # noqa: F401  (registers tables on SQLModel.metadata)
from qrlink.db.adapters import get_database_adapter
from qrlink.db.interface import LinkStore
from qrlink.db.sql_store import SQLLinkStore

db_adapter = get_database_adapter(settings.DATABASE_URL)

engine = db_adapter.create_engine(settings.DATABASE_URL)

async_session_maker = async_sessionmaker(
    engine,
    class_=SQLModelAsyncSession,
    expire_on_commit=False,  # Returned links stay readable after commit
    autocommit=False,
    autoflush=False,
)


async def init_models() -> None:
    """Create any missing tables. Production deployments run Alembic instead."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_link_store() -> AsyncGenerator[LinkStore, None]:
    """
    Dependency function for FastAPI to get a link store.

    The store commits per operation; anything left open when the endpoint
    raises is rolled back.
    """
    async with async_session_maker() as session:
        try:
            yield SQLLinkStore(session)
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def link_store_scope() -> AsyncGenerator[LinkStore, None]:
    """Open a store on its own session, independent of any request."""
    async with async_session_maker() as session:
        yield SQLLinkStore(session)
