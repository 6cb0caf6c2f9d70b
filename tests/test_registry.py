"""Tests for the Code Registry."""

from datetime import timedelta

import pytest

from qrlink.core.exceptions import AllocationExhaustedError, DatabaseError, ShortCodeNotFoundError
from qrlink.db.models import ShortLink
from qrlink.services.registry import (
    CODE_ALPHABET,
    CodeRegistry,
    generate_code,
    next_display_name_after,
)


def make_link(code: str, clock, minutes: int = 60, name: str = "QR-001", **overrides) -> ShortLink:
    fields = dict(
        code=code,
        display_name=name,
        content_kind="url",
        payload="https://example.com",
        created_at=clock(),
        expires_at=clock() + timedelta(minutes=minutes),
    )
    fields.update(overrides)
    return ShortLink(**fields)


class TestCodeGeneration:
    """Test random short code generation."""

    def test_alphabet_has_62_symbols(self):
        assert len(CODE_ALPHABET) == 62
        assert len(set(CODE_ALPHABET)) == 62

    def test_codes_are_eight_alphanumeric_characters(self):
        for _ in range(200):
            code = generate_code()
            assert len(code) == 8
            assert all(char in CODE_ALPHABET for char in code)

    def test_codes_are_unique_in_practice(self):
        codes = {generate_code() for _ in range(1000)}
        assert len(codes) == 1000


class TestDisplayNames:
    """Test QR-### sequencing."""

    def test_first_name(self):
        assert next_display_name_after(None) == "QR-001"

    def test_increments_and_pads(self):
        assert next_display_name_after("QR-001") == "QR-002"
        assert next_display_name_after("QR-041") == "QR-042"
        assert next_display_name_after("QR-999") == "QR-1000"

    def test_unparseable_name_restarts(self):
        assert next_display_name_after("poster") == "QR-001"
        assert next_display_name_after("") == "QR-001"

    @pytest.mark.asyncio
    async def test_reads_latest_entry(self, registry, fake_store, clock):
        fake_store.add(make_link("AAAAAAAA", clock, name="QR-006"))
        clock.advance(minutes=1)
        fake_store.add(make_link("BBBBBBBB", clock, name="QR-007"))

        assert await registry.next_display_name() == "QR-008"


class TestRegister:
    """Test allocate-and-insert with conflict retry."""

    @pytest.mark.asyncio
    async def test_register_persists_link(self, registry, fake_store, clock):
        link = await registry.register(lambda code: make_link(code, clock))

        assert fake_store.links[link.code] is link
        assert len(link.code) == 8
        assert link.id is not None

    @pytest.mark.asyncio
    async def test_retries_after_conflict(self, fake_store, clock):
        fake_store.add(make_link("TAKEN000", clock))
        candidates = iter(["TAKEN000", "TAKEN000", "FREE0000"])
        registry = CodeRegistry(fake_store, code_generator=lambda _: next(candidates), clock=clock)

        link = await registry.register(lambda code: make_link(code, clock))

        assert link.code == "FREE0000"
        assert fake_store.insert_attempts == 3

    @pytest.mark.asyncio
    async def test_exhaustion_raises_instead_of_duplicating(self, fake_store, clock):
        fake_store.add(make_link("TAKEN000", clock))
        registry = CodeRegistry(fake_store, code_generator=lambda _: "TAKEN000", clock=clock)

        with pytest.raises(AllocationExhaustedError) as exc_info:
            await registry.register(lambda code: make_link(code, clock))

        assert exc_info.value.attempts == 10
        assert fake_store.insert_attempts == 10
        assert len(fake_store.links) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_retried(self, fake_store, clock):
        async def broken_insert(link):
            fake_store.insert_attempts += 1
            raise DatabaseError("disk full")

        fake_store.insert_link = broken_insert
        registry = CodeRegistry(fake_store, clock=clock)

        with pytest.raises(DatabaseError):
            await registry.register(lambda code: make_link(code, clock))
        assert fake_store.insert_attempts == 1


class TestExpirySweep:
    """Test the inline expiry sweep."""

    @pytest.mark.asyncio
    async def test_sweep_deactivates_only_expired(self, registry, fake_store, clock):
        fake_store.add(make_link("SHORT001", clock, minutes=5))
        fake_store.add(make_link("LONG0001", clock, minutes=120))
        clock.advance(minutes=10)

        swept = await registry.sweep_expired()

        assert swept == 1
        assert fake_store.links["SHORT001"].is_active is False
        assert fake_store.links["LONG0001"].is_active is True

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, registry, fake_store, clock):
        fake_store.add(make_link("SHORT001", clock, minutes=5))
        clock.advance(minutes=10)

        assert await registry.sweep_expired() == 1
        assert await registry.sweep_expired() == 0

    @pytest.mark.asyncio
    async def test_list_active_excludes_expired_and_deleted(self, registry, fake_store, clock):
        fake_store.add(make_link("KEEP0001", clock, minutes=60))
        fake_store.add(make_link("GONE0001", clock, minutes=60))
        fake_store.add(make_link("OLD00001", clock, minutes=1))
        await registry.deactivate("GONE0001")
        clock.advance(minutes=2)

        codes = [link.code for link in await registry.list_active()]

        assert codes == ["KEEP0001"]


class TestGetLive:
    """Test live-link lookup."""

    @pytest.mark.asyncio
    async def test_live_link(self, registry, fake_store, clock):
        fake_store.add(make_link("KEEP0001", clock))

        link = await registry.get_live("KEEP0001")

        assert link.code == "KEEP0001"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["ZZZZZZZZ", "GONE0001", "OLD00001"])
    async def test_unknown_deleted_and_expired(self, registry, fake_store, clock, code):
        fake_store.add(make_link("GONE0001", clock))
        fake_store.add(make_link("OLD00001", clock, minutes=1))
        await registry.deactivate("GONE0001")
        clock.advance(minutes=2)

        with pytest.raises(ShortCodeNotFoundError) as exc_info:
            await registry.get_live(code)
        assert exc_info.value.short_code == code
