"""Tests for the SQL link store against in-memory SQLite."""

import warnings
from datetime import timedelta

import pytest
from sqlalchemy import func
from sqlmodel import select

from qrlink.core.exceptions import AllocationExhaustedError, CodeConflictError
from qrlink.core.validators import as_utc
from qrlink.db.models import ScanEvent, ShortLink
from qrlink.db.sql_store import SQLLinkStore
from qrlink.services.registry import CodeRegistry


def new_link(code, clock, minutes=60, name="QR-001", created_offset=0) -> ShortLink:
    created = clock() + timedelta(seconds=created_offset)
    return ShortLink(
        code=code,
        display_name=name,
        content_kind="url",
        payload=f"https://example.com/{code}",
        created_at=created,
        expires_at=created + timedelta(minutes=minutes),
    )


class TestInsertAndLookup:
    """Test inserts under the unique code index."""

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_round_trips(self, sql_store, clock):
        link = await sql_store.insert_link(new_link("Ab3dEf9h", clock))

        assert link.id is not None
        found = await sql_store.get_by_code("Ab3dEf9h")
        assert found.payload == "https://example.com/Ab3dEf9h"
        assert found.is_active is True
        assert found.scan_count == 0
        assert as_utc(found.expires_at) == clock() + timedelta(minutes=60)

    @pytest.mark.asyncio
    async def test_unknown_code(self, sql_store):
        assert await sql_store.get_by_code("ZZZZZZZZ") is None

    @pytest.mark.asyncio
    async def test_reads_use_typed_exec(self, sql_store, clock):
        await sql_store.insert_link(new_link("Ab3dEf9h", clock))

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            await sql_store.get_by_code("Ab3dEf9h")
            await sql_store.latest_display_name()
            await sql_store.list_active(clock())

        assert not [w for w in caught if "session.exec" in str(w.message)]

    @pytest.mark.asyncio
    async def test_duplicate_code_raises_conflict(self, sql_store, clock):
        await sql_store.insert_link(new_link("Ab3dEf9h", clock))

        with pytest.raises(CodeConflictError) as exc_info:
            await sql_store.insert_link(new_link("Ab3dEf9h", clock, name="QR-002"))

        assert exc_info.value.short_code == "Ab3dEf9h"
        found = await sql_store.get_by_code("Ab3dEf9h")
        assert found.display_name == "QR-001"

    @pytest.mark.asyncio
    async def test_session_usable_after_conflict(self, sql_store, clock):
        await sql_store.insert_link(new_link("Ab3dEf9h", clock))
        with pytest.raises(CodeConflictError):
            await sql_store.insert_link(new_link("Ab3dEf9h", clock))

        link = await sql_store.insert_link(new_link("Zz9yXw8v", clock))

        assert link.id is not None

    @pytest.mark.asyncio
    async def test_registry_never_duplicates(self, sql_store, clock):
        registry = CodeRegistry(sql_store, code_generator=lambda _: "SAMECODE", clock=clock, max_attempts=3)
        await registry.register(lambda code: new_link(code, clock))

        with pytest.raises(AllocationExhaustedError):
            await registry.register(lambda code: new_link(code, clock))

        result = await sql_store.session.exec(
            select(func.count()).select_from(ShortLink).where(ShortLink.code == "SAMECODE")
        )
        assert result.one() == 1


class TestLifecycle:
    """Test deactivation, sweep and listing."""

    @pytest.mark.asyncio
    async def test_deactivate(self, sql_store, clock):
        await sql_store.insert_link(new_link("Ab3dEf9h", clock))

        assert await sql_store.deactivate("Ab3dEf9h") is True
        assert await sql_store.deactivate("ZZZZZZZZ") is False
        assert (await sql_store.get_by_code("Ab3dEf9h")).is_active is False

    @pytest.mark.asyncio
    async def test_sweep_expired(self, sql_store, clock):
        await sql_store.insert_link(new_link("Short001", clock, minutes=5))
        await sql_store.insert_link(new_link("Long0001", clock, minutes=120))
        later = clock() + timedelta(minutes=10)

        assert await sql_store.deactivate_expired(later) == 1
        assert await sql_store.deactivate_expired(later) == 0
        assert (await sql_store.get_by_code("Short001")).is_active is False
        assert (await sql_store.get_by_code("Long0001")).is_active is True

    @pytest.mark.asyncio
    async def test_list_active_newest_first(self, sql_store, clock):
        await sql_store.insert_link(new_link("First001", clock, created_offset=0))
        await sql_store.insert_link(new_link("Second01", clock, created_offset=10))
        await sql_store.insert_link(new_link("Third001", clock, created_offset=20))
        await sql_store.insert_link(new_link("Gone0001", clock, created_offset=30))
        await sql_store.deactivate("Gone0001")

        links = await sql_store.list_active(clock() + timedelta(minutes=1))

        assert [link.code for link in links] == ["Third001", "Second01", "First001"]

    @pytest.mark.asyncio
    async def test_list_active_hides_expired(self, sql_store, clock):
        await sql_store.insert_link(new_link("Short001", clock, minutes=5))

        assert await sql_store.list_active(clock() + timedelta(minutes=10)) == []

    @pytest.mark.asyncio
    async def test_latest_display_name(self, sql_store, clock):
        assert await sql_store.latest_display_name() is None

        await sql_store.insert_link(new_link("First001", clock, name="QR-004"))
        await sql_store.insert_link(new_link("Second01", clock, name="QR-005", created_offset=5))

        assert await sql_store.latest_display_name() == "QR-005"


class TestRecordScan:
    """Test scan logging writes."""

    @pytest.mark.asyncio
    async def test_counts_every_scan(self, sql_store, clock):
        link = await sql_store.insert_link(new_link("Ab3dEf9h", clock))
        link_id = link.id

        for minute in range(3):
            await sql_store.record_scan(link_id, ScanEvent(
                short_link_id=link_id,
                user_agent="ua",
                source_address="198.51.100.1",
                scanned_at=clock() + timedelta(minutes=minute),
            ))

        found = await sql_store.get_by_code("Ab3dEf9h")
        assert found.scan_count == 3
        assert as_utc(found.last_scanned_at) == clock() + timedelta(minutes=2)

        result = await sql_store.session.exec(
            select(func.count()).select_from(ScanEvent).where(ScanEvent.short_link_id == link_id)
        )
        assert result.one() == 3

    @pytest.mark.asyncio
    async def test_concurrent_sessions_do_not_lose_counts(self, sql_session_maker, clock):
        async with sql_session_maker() as session:
            link = await SQLLinkStore(session).insert_link(new_link("Ab3dEf9h", clock))
            link_id = link.id

        async with sql_session_maker() as first, sql_session_maker() as second:
            store_a, store_b = SQLLinkStore(first), SQLLinkStore(second)
            await store_a.record_scan(link_id, ScanEvent(short_link_id=link_id, scanned_at=clock()))
            await store_b.record_scan(link_id, ScanEvent(short_link_id=link_id, scanned_at=clock()))

        async with sql_session_maker() as session:
            found = await SQLLinkStore(session).get_by_code("Ab3dEf9h")
            assert found.scan_count == 2
