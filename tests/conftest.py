"""Test fixtures for the QR link service."""

import os

# Must be set before qrlink.core.setting is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["PUBLIC_BASE_URL"] = ""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlmodel import SQLModel

from qrlink.db.adapters import SQLiteAdapter
from qrlink.db.sql_store import SQLLinkStore
from qrlink.services.registry import CodeRegistry
from qrlink.services.scan_recorder import ScanRecorder
from tests.fakes import FrozenClock, InMemoryLinkStore


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def fake_store() -> InMemoryLinkStore:
    return InMemoryLinkStore()


@pytest.fixture
def registry(fake_store, clock) -> CodeRegistry:
    return CodeRegistry(fake_store, clock=clock)


@pytest.fixture
def fake_recorder(fake_store) -> ScanRecorder:
    """Recorder writing into the in-memory store."""
    @asynccontextmanager
    async def scope():
        yield fake_store

    return ScanRecorder(scope, timeout=1.0)


@pytest_asyncio.fixture
async def sql_session_maker():
    """Fresh in-memory SQLite database per test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker
    from sqlmodel.ext.asyncio.session import AsyncSession

    engine = SQLiteAdapter(in_memory=True).create_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(sql_session_maker) -> AsyncGenerator[SQLLinkStore, None]:
    async with sql_session_maker() as session:
        yield SQLLinkStore(session)


@pytest_asyncio.fixture
async def app_db():
    """Tables on the application's own in-memory engine, dropped with the connection."""
    from qrlink.db.session import engine, init_models

    await init_models()
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def client(app_db, clock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, with the registry clock under test control."""
    from fastapi import Depends

    from qrlink.api.endpoints import get_registry
    from qrlink.db.session import get_link_store
    from qrlink.main import app

    def registry_with_clock(store=Depends(get_link_store)) -> CodeRegistry:
        return CodeRegistry(store, clock=clock)

    app.dependency_overrides[get_registry] = registry_with_clock
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()
