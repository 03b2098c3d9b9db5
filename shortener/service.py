"""Business logic service for URL shortener."""

import asyncio
import logging
from typing import Any, Awaitable, Dict, Optional, Set

from .shortcode import ShortCodeGenerator
from .geoip import GeoResolver
from .errors import (
    BadInputError,
    ConflictError,
    InternalError,
    NotFoundError,
    ShortenerError,
)
from .database.base import LinkStoreBase, DuplicateCodeError
from .database.cache import RedisCache
from .database.models import Link
from .common.timeutil import now_unix
from .common.validators import (
    DEFAULT_TTL_SECONDS,
    is_valid_code,
    parse_ttl,
    validate_code,
    validate_url,
)


class LinkService:
    """Link lifecycle: creation, resolution and expiry enforcement."""

    MAX_GENERATION_ATTEMPTS = 10

    def __init__(
        self,
        db: LinkStoreBase,
        cache: Optional[RedisCache] = None,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        geo_resolver: Optional[GeoResolver] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize link service.

        Args:
            db: Link store
            cache: Optional link cache
            short_code_generator: Optional short code generator
            geo_resolver: Optional GeoIP lookup for visits
            logger: Optional logger
        """
        self.db = db
        self.cache = cache
        self.generator = short_code_generator or ShortCodeGenerator()
        self.geo_resolver = geo_resolver
        self.logger = logger or logging.getLogger(__name__)
        self._background_tasks: Set[asyncio.Task] = set()

    async def create(
        self,
        url: str,
        custom_code: Optional[str] = None,
        ttl: Optional[str] = None,
        now: Optional[int] = None,
    ) -> Link:
        """Create a new short link.

        Args:
            url: The original long URL
            custom_code: Optional custom short code
            ttl: Optional TTL spec (e.g. "1h"); defaults to 7 days
            now: Creation time in Unix seconds (defaults to current time)

        Returns:
            The created link

        Raises:
            BadInputError: URL, code or TTL rejected
            ConflictError: Custom code already taken
            InternalError: Store failure or code space exhausted
        """
        now = now_unix() if now is None else now

        try:
            validate_url(url)
        except BadInputError as e:
            raise BadInputError(f"Invalid URL: {e.message}") from e

        if ttl is not None:
            try:
                ttl_seconds = parse_ttl(ttl)
            except BadInputError as e:
                raise BadInputError(f"Invalid TTL: {e.message}") from e
        else:
            ttl_seconds = DEFAULT_TTL_SECONDS

        if custom_code is not None:
            try:
                validate_code(custom_code)
            except BadInputError as e:
                raise BadInputError(f"Invalid code: {e.message}") from e

            if await self._store_call("exists", self.db.exists(custom_code)):
                raise ConflictError(f"Code '{custom_code}' already exists")

            code = custom_code
        else:
            code = await self._generate_unique_code()

        expires_at = now + ttl_seconds

        try:
            # Shielded so a cancelled request still lets the insert finish
            await asyncio.shield(self.db.insert(code, url, expires_at, now))
        except DuplicateCodeError as e:
            # Lost an insert race for the same code
            if custom_code is not None:
                raise ConflictError(f"Code '{code}' already exists") from e
            self.logger.error(f"Generated code {code} was taken between check and insert")
            raise InternalError("Failed to save link: generated code collided") from e
        except Exception as e:
            self.logger.error(f"Failed to save link {code}: {e}")
            raise InternalError(f"Failed to save link: {e}") from e

        link = Link(code=code, original_url=url, created_at=now, expires_at=expires_at)

        if self.cache:
            await self.cache.set_link(link, now)

        self.logger.info(f"Created short link: {code} -> {url} (expires_at={expires_at})")
        return link

    async def resolve(
        self,
        code: str,
        now: Optional[int] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> str:
        """Resolve a code to its target URL and record the visit.

        Expired links are deleted in the background and reported exactly
        like unknown codes. Visit recording is fire-and-forget: its outcome
        never affects the returned URL.

        Args:
            code: The short code
            now: Lookup time in Unix seconds (defaults to current time)
            ip: Client IP for the visit record
            user_agent: Client User-Agent
            referer: Client Referer

        Returns:
            The original URL

        Raises:
            NotFoundError: Code absent or expired
            InternalError: Store failure during lookup
        """
        now = now_unix() if now is None else now

        link = await self.get_live_link(code, now, delete_expired=True)

        self._spawn(
            self._record_visit(code, now, ip, user_agent, referer),
            f"record visit for {code}",
        )

        self.logger.debug(f"Redirecting {code} to {link.original_url}")
        return link.original_url

    async def get_live_link(
        self,
        code: str,
        now: Optional[int] = None,
        delete_expired: bool = False,
    ) -> Link:
        """Look up a link that has not expired.

        Args:
            code: The short code
            now: Lookup time in Unix seconds
            delete_expired: Schedule deletion of an expired link

        Returns:
            The live link

        Raises:
            NotFoundError: Code absent, malformed or expired
        """
        now = now_unix() if now is None else now

        # Pathological path segments never reach the store
        if not is_valid_code(code):
            raise NotFoundError("Short link not found")

        link = await self._lookup(code, now)
        if link is None:
            raise NotFoundError("Short link not found")

        if link.is_expired(now):
            if delete_expired:
                self._spawn(self._delete_expired(code, now), f"delete expired link {code}")
            raise NotFoundError("Short link not found")

        return link

    async def _lookup(self, code: str, now: int) -> Optional[Link]:
        if self.cache:
            cached = await self.cache.get_link(code)
            if cached is not None:
                self.logger.debug(f"Cache hit for {code}")
                return cached

        link = await self._store_call("get", self.db.get(code))

        if link is not None and self.cache and not link.is_expired(now):
            await self.cache.set_link(link, now)

        return link

    async def _generate_unique_code(self) -> str:
        """Generate a code not present in the store.

        Raises:
            InternalError: If every attempt collides
        """
        for attempt in range(self.MAX_GENERATION_ATTEMPTS):
            code = self.generator.generate()

            if not await self._store_call("exists", self.db.exists(code)):
                if attempt:
                    self.logger.debug(f"Generated code after {attempt + 1} attempts: {code}")
                return code

        self.logger.error(
            f"Code space exhausted: {self.MAX_GENERATION_ATTEMPTS} consecutive "
            "collisions while generating a short code"
        )
        raise InternalError("Failed to generate unique code after multiple attempts")

    async def _record_visit(
        self,
        code: str,
        visited_at: int,
        ip: Optional[str],
        user_agent: Optional[str],
        referer: Optional[str],
    ) -> None:
        try:
            country, city = None, None
            if self.geo_resolver and ip:
                country, city = self.geo_resolver.resolve(ip)

            await self.db.insert_visit(
                code,
                visited_at,
                ip=ip,
                country=country,
                city=city,
                user_agent=user_agent,
                referer=referer,
            )
        except Exception as e:
            self.logger.warning(f"Failed to record visit for {code}: {e}")

    async def _delete_expired(self, code: str, now: int) -> None:
        try:
            if self.cache:
                await self.cache.delete(code)
            # Conditional: the code may have been swept and re-created since
            if await self.db.delete_if_expired(code, now):
                self.logger.info(f"Deleted expired link: {code}")
        except Exception as e:
            self.logger.warning(f"Failed to delete expired link {code}: {e}")

    async def _store_call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        """Await a store call, converting failures into InternalError."""
        try:
            return await awaitable
        except ShortenerError:
            raise
        except Exception as e:
            self.logger.error(f"Database error during {operation}: {e}")
            raise InternalError(f"Database error: {e}") from e

    def _spawn(self, coro: Awaitable[None], description: str) -> None:
        task = asyncio.create_task(coro)
        task.set_name(description)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def drain(self) -> None:
        """Wait for in-flight best-effort tasks (visits, lazy deletes)."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        db_healthy = await self.db.health_check()
        cache_healthy = await self.cache.ping() if self.cache else True

        return {
            "database": db_healthy,
            "cache": cache_healthy,
            "overall": db_healthy and cache_healthy,
        }

    async def close(self) -> None:
        """Finish background work and close connections."""
        await self.drain()
        await self.db.close()
        if self.cache:
            await self.cache.close()
        if self.geo_resolver:
            self.geo_resolver.close()
