"""Tests for the link service."""

import asyncio

import pytest

from shortener.database.memory import InMemoryLinkStore
from shortener.database.models import Link
from shortener.errors import (
    BadInputError,
    ConflictError,
    InternalError,
    NotFoundError,
)
from shortener.geoip import GeoResolver
from shortener.service import LinkService
from shortener.sweeper import ExpirySweeper


NOW = 1000000000


class FixedCodeGenerator:
    """Always returns the same code."""
    
    def __init__(self, code="fixed1"):
        self.code = code
        self.calls = 0
    
    def generate(self):
        self.calls += 1
        return self.code


class BrokenStore(InMemoryLinkStore):
    """Store whose writes and reads fail."""
    
    async def insert(self, *args, **kwargs):
        raise ConnectionError("connection refused")
    
    async def get(self, code):
        raise ConnectionError("connection refused")


class BrokenVisitStore(InMemoryLinkStore):
    
    async def insert_visit(self, *args, **kwargs):
        raise ConnectionError("visits table unavailable")


class FakeCache:
    """In-process stand-in for RedisCache."""
    
    def __init__(self):
        self.entries = {}
        self.deleted = []
    
    async def get_link(self, code):
        return self.entries.get(code)
    
    async def set_link(self, link, now):
        self.entries[link.code] = link
        return True
    
    async def delete(self, code):
        self.deleted.append(code)
        return self.entries.pop(code, None) is not None
    
    async def ping(self):
        return True
    
    async def close(self):
        pass


class StaticGeo(GeoResolver):
    
    def resolve(self, ip):
        return ("US", "Boston") if ip == "203.0.113.7" else (None, None)


@pytest.mark.asyncio
class TestCreate:
    """Test link creation."""
    
    async def test_create_with_ttl(self, service):
        """Pinned clock: 1h TTL expires exactly 3600s later."""
        link = await service.create("https://example.com", ttl="1h", now=NOW)
        
        assert 6 <= len(link.code) <= 8
        assert link.created_at == NOW
        assert link.expires_at == 1000003600
        assert link.original_url == "https://example.com"
    
    async def test_default_ttl(self, service):
        link = await service.create("https://example.com", now=NOW)
        
        assert link.expires_at == NOW + 604800
    
    async def test_custom_code(self, service, test_db):
        link = await service.create("https://example.com", custom_code="my-link_1", now=NOW)
        
        assert link.code == "my-link_1"
        assert await test_db.exists("my-link_1")
    
    async def test_duplicate_custom_code_conflicts(self, service, test_db):
        await service.create("https://example.com/a", custom_code="taken", now=NOW)
        
        with pytest.raises(ConflictError, match="already exists"):
            await service.create("https://example.com/b", custom_code="taken", now=NOW)
        
        assert (await test_db.get("taken")).original_url == "https://example.com/a"
    
    @pytest.mark.parametrize("url", ["ftp://x", "https://localhost", "https://127.0.0.1", ""])
    async def test_invalid_url(self, service, url):
        with pytest.raises(BadInputError, match="^Invalid URL: "):
            await service.create(url)
    
    @pytest.mark.parametrize("ttl", ["4m", "31d", "abc", "5w"])
    async def test_invalid_ttl(self, service, ttl):
        with pytest.raises(BadInputError, match="^Invalid TTL: "):
            await service.create("https://example.com", ttl=ttl)
    
    @pytest.mark.parametrize("code", ["", "a" * 33, "bad code", "bad/code"])
    async def test_invalid_code(self, service, code):
        with pytest.raises(BadInputError, match="^Invalid code: "):
            await service.create("https://example.com", custom_code=code)
    
    async def test_validation_does_not_write(self, service, test_db):
        with pytest.raises(BadInputError):
            await service.create("https://example.com", custom_code="ok", ttl="1m")
        
        assert not await test_db.exists("ok")
    
    async def test_generation_retries_on_collision(self, test_db, logger):
        await test_db.insert("fixed1", "https://example.com", NOW + 60, NOW)
        
        codes = iter(["fixed1", "fixed1", "fresh2"])
        
        class SequenceGenerator:
            def generate(self):
                return next(codes)
        
        service = LinkService(test_db, short_code_generator=SequenceGenerator(), logger=logger)
        link = await service.create("https://example.com/x", now=NOW)
        
        assert link.code == "fresh2"
    
    async def test_generation_exhaustion(self, test_db, logger):
        await test_db.insert("fixed1", "https://example.com", NOW + 60, NOW)
        generator = FixedCodeGenerator("fixed1")
        service = LinkService(test_db, short_code_generator=generator, logger=logger)
        
        with pytest.raises(InternalError, match="Failed to generate unique code"):
            await service.create("https://example.com/x", now=NOW)
        
        assert generator.calls == LinkService.MAX_GENERATION_ATTEMPTS
    
    async def test_store_failure_is_internal(self, logger):
        service = LinkService(BrokenStore(logger=logger), logger=logger)
        
        with pytest.raises(InternalError, match="Failed to save link"):
            await service.create("https://example.com")
    
    async def test_insert_race_on_custom_code_conflicts(self, test_db, logger):
        """The loser of an exists/insert race still gets Conflict."""
        
        class RacingStore(InMemoryLinkStore):
            async def exists(self, code):
                return False
        
        store = RacingStore(logger=logger)
        await store.insert("race", "https://example.com/first", NOW + 60, NOW)
        service = LinkService(store, logger=logger)
        
        with pytest.raises(ConflictError):
            await service.create("https://example.com/second", custom_code="race", now=NOW)
        
        assert (await store.get("race")).original_url == "https://example.com/first"
    
    async def test_insert_race_on_generated_code_is_internal(self, logger):
        class RacingStore(InMemoryLinkStore):
            async def exists(self, code):
                return False
        
        store = RacingStore(logger=logger)
        await store.insert("fixed1", "https://example.com/first", NOW + 60, NOW)
        service = LinkService(store, short_code_generator=FixedCodeGenerator(), logger=logger)
        
        with pytest.raises(InternalError):
            await service.create("https://example.com/second", now=NOW)


@pytest.mark.asyncio
class TestResolve:
    """Test code resolution."""
    
    async def test_resolve_roundtrip(self, service):
        link = await service.create("https://example.com/page", ttl="1h", now=NOW)
        
        assert await service.resolve(link.code, now=NOW) == "https://example.com/page"
        assert await service.resolve(link.code, now=link.expires_at) == "https://example.com/page"
    
    async def test_unknown_code(self, service):
        with pytest.raises(NotFoundError, match="Short link not found"):
            await service.resolve("missing", now=NOW)
    
    async def test_expired_is_not_found_and_deleted(self, service, test_db):
        link = await service.create("https://example.com", ttl="5m", now=NOW)
        
        with pytest.raises(NotFoundError, match="Short link not found"):
            await service.resolve(link.code, now=link.expires_at + 1)
        
        await service.drain()
        assert not await test_db.exists(link.code)
        
        with pytest.raises(NotFoundError):
            await service.resolve(link.code, now=link.expires_at + 2)
    
    async def test_expired_visit_not_recorded(self, service, test_db):
        link = await service.create("https://example.com", ttl="5m", now=NOW)
        
        with pytest.raises(NotFoundError):
            await service.resolve(link.code, now=link.expires_at + 1)
        
        await service.drain()
        assert await test_db.count_visits(link.code) == 0
    
    async def test_pathological_codes_skip_store(self, logger):
        service = LinkService(BrokenStore(logger=logger), logger=logger)
        
        # A store lookup would raise InternalError
        with pytest.raises(NotFoundError):
            await service.resolve("")
        with pytest.raises(NotFoundError):
            await service.resolve("x" * 33)
    
    async def test_lookup_failure_is_internal(self, logger):
        service = LinkService(BrokenStore(logger=logger), logger=logger)
        
        with pytest.raises(InternalError, match="Database error"):
            await service.resolve("abc123")
    
    async def test_visit_recorded(self, service, test_db):
        link = await service.create("https://example.com", now=NOW)
        
        await service.resolve(
            link.code,
            now=NOW + 5,
            ip="203.0.113.7",
            user_agent="curl/8.0",
            referer="https://news.example",
        )
        await service.drain()
        
        visits = await test_db.recent_visits(link.code)
        assert len(visits) == 1
        visit = visits[0]
        assert visit.visited_at == NOW + 5
        assert visit.ip == "203.0.113.7"
        assert visit.user_agent == "curl/8.0"
        assert visit.referer == "https://news.example"
        assert visit.country is None and visit.city is None
    
    async def test_visit_geo(self, test_db, logger):
        service = LinkService(test_db, geo_resolver=StaticGeo(), logger=logger)
        link = await service.create("https://example.com", now=NOW)
        
        await service.resolve(link.code, now=NOW, ip="203.0.113.7")
        await service.resolve(link.code, now=NOW, ip="198.51.100.1")
        await service.drain()
        
        # Equal counts: named values sort before NULL
        assert await test_db.visits_by_country(link.code) == [("US", 1), (None, 1)]
        rows = [v.city for v in await test_db.recent_visits(link.code)]
        assert "Boston" in rows
    
    async def test_visit_failure_is_swallowed(self, logger):
        store = BrokenVisitStore(logger=logger)
        service = LinkService(store, logger=logger)
        link = await service.create("https://example.com", now=NOW)
        
        assert await service.resolve(link.code, now=NOW) == "https://example.com"
        await service.drain()


@pytest.mark.asyncio
class TestCache:
    """Test cache interplay."""
    
    async def test_create_populates_cache(self, test_db, logger):
        cache = FakeCache()
        service = LinkService(test_db, cache=cache, logger=logger)
        
        link = await service.create("https://example.com", now=NOW)
        
        assert cache.entries[link.code] == link
    
    async def test_cache_hit_skips_store(self, logger):
        cache = FakeCache()
        cache.entries["cached"] = Link("cached", "https://cached.example", NOW, NOW + 600)
        service = LinkService(BrokenStore(logger=logger), cache=cache, logger=logger)
        
        assert await service.get_live_link("cached", now=NOW) == cache.entries["cached"]
    
    async def test_cached_expired_link_is_not_found(self, test_db, logger):
        cache = FakeCache()
        service = LinkService(test_db, cache=cache, logger=logger)
        link = await service.create("https://example.com", ttl="5m", now=NOW)
        
        with pytest.raises(NotFoundError):
            await service.resolve(link.code, now=link.expires_at + 1)
        await service.drain()
        
        assert link.code in cache.deleted
        assert link.code not in cache.entries
        assert not await test_db.exists(link.code)
    
    async def test_store_hit_fills_cache(self, test_db, logger):
        cache = FakeCache()
        service = LinkService(test_db, cache=cache, logger=logger)
        await test_db.insert("abc", "https://example.com", NOW + 600, NOW)
        
        await service.get_live_link("abc", now=NOW)
        
        assert "abc" in cache.entries


@pytest.mark.asyncio
class TestHealth:
    
    async def test_health(self, service):
        health = await service.health_check()
        assert health == {"database": True, "cache": True, "overall": True}
    
    async def test_close_drains_background_work(self, service, test_db):
        link = await service.create("https://example.com", now=NOW)
        await service.resolve(link.code, now=NOW)
        
        await service.close()
        
        assert await test_db.count_visits(link.code) == 1


@pytest.mark.asyncio
async def test_invalid_characters_skip_store(logger):
    service = LinkService(BrokenStore(logger=logger), logger=logger)
    
    with pytest.raises(NotFoundError):
        await service.resolve("bad code!")


class SlowDeleteStore(InMemoryLinkStore):
    """Lazy deletes take a store round-trip to land."""
    
    async def delete_if_expired(self, code, now):
        await asyncio.sleep(0.05)
        return await super().delete_if_expired(code, now)


class GatedInsertStore(InMemoryLinkStore):
    """Insert blocks until released, so a caller can be cancelled mid-write."""
    
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.insert_started = asyncio.Event()
        self.release = asyncio.Event()
        self.insert_done = asyncio.Event()
    
    async def insert(self, *args, **kwargs):
        self.insert_started.set()
        await self.release.wait()
        await super().insert(*args, **kwargs)
        self.insert_done.set()


@pytest.mark.asyncio
class TestLifecycleRaces:
    
    async def test_lazy_delete_spares_recreated_code(self, logger):
        """A late lazy delete must not remove a link re-created under the same code."""
        store = SlowDeleteStore(logger=logger)
        service = LinkService(store, logger=logger)
        sweeper = ExpirySweeper(store, logger=logger)
        
        old = await service.create("https://example.com/old", custom_code="promo", ttl="5m", now=NOW)
        expired_at = old.expires_at + 1
        
        with pytest.raises(NotFoundError):
            await service.resolve("promo", now=expired_at)
        
        assert await sweeper.sweep_once(now=expired_at) == 1
        await service.create("https://example.com/new", custom_code="promo", ttl="1h", now=expired_at)
        await service.drain()
        
        assert await service.resolve("promo", now=expired_at + 1) == "https://example.com/new"
    
    async def test_lazy_delete_removes_expired_link(self, logger):
        store = SlowDeleteStore(logger=logger)
        service = LinkService(store, logger=logger)
        link = await service.create("https://example.com", custom_code="stale", ttl="5m", now=NOW)
        
        with pytest.raises(NotFoundError):
            await service.resolve("stale", now=link.expires_at + 1)
        await service.drain()
        
        assert not await store.exists("stale")
    
    async def test_cancelled_create_still_persists_link(self, logger):
        """Cancelling the caller mid-insert leaves a complete link, never a partial one."""
        store = GatedInsertStore(logger=logger)
        service = LinkService(store, logger=logger)
        
        task = asyncio.create_task(
            service.create("https://example.com/cancel", custom_code="survivor", ttl="1h", now=NOW)
        )
        await store.insert_started.wait()
        task.cancel()
        
        with pytest.raises(asyncio.CancelledError):
            await task
        
        store.release.set()
        await asyncio.wait_for(store.insert_done.wait(), timeout=1)
        
        assert await store.get("survivor") == Link(
            code="survivor",
            original_url="https://example.com/cancel",
            created_at=NOW,
            expires_at=NOW + 3600,
        )
