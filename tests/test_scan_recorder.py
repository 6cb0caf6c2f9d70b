"""Tests for background scan recording."""

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest

from qrlink.db.models import ScanEvent, ShortLink
from qrlink.services.scan_recorder import ScanRecorder


@pytest.fixture
def link(fake_store, clock) -> ShortLink:
    return fake_store.add(ShortLink(
        code="Ab3dEf9h",
        display_name="QR-001",
        payload="https://example.com",
        created_at=clock(),
        expires_at=clock() + timedelta(hours=1),
    ))


class TestScanRecorder:
    """Test best-effort, time-bounded visit writes."""

    @pytest.mark.asyncio
    async def test_successful_write(self, fake_recorder, fake_store, link, clock):
        event = ScanEvent(short_link_id=link.id, user_agent="ua", scanned_at=clock())

        assert await fake_recorder.record(link.id, event) is True
        assert link.scan_count == 1
        assert fake_store.scans == [event]

    @pytest.mark.asyncio
    async def test_failed_write_is_swallowed(self, fake_recorder, fake_store, link, clock):
        fake_store.fail_scans = True
        event = ScanEvent(short_link_id=link.id, scanned_at=clock())

        assert await fake_recorder.record(link.id, event) is False
        assert link.scan_count == 0

    @pytest.mark.asyncio
    async def test_slow_write_times_out(self, fake_store, link, clock):
        @asynccontextmanager
        async def stalled_scope():
            await asyncio.sleep(5)
            yield fake_store

        recorder = ScanRecorder(stalled_scope, timeout=0.05)
        event = ScanEvent(short_link_id=link.id, scanned_at=clock())

        assert await recorder.record(link.id, event) is False
        assert link.scan_count == 0

    @pytest.mark.asyncio
    async def test_scope_failure_is_swallowed(self, link, clock):
        @asynccontextmanager
        async def broken_scope():
            raise ConnectionError("database unreachable")
            yield

        recorder = ScanRecorder(broken_scope)
        event = ScanEvent(short_link_id=link.id, scanned_at=clock())

        assert await recorder.record(link.id, event) is False
