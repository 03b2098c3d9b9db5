"""In-process link store.

Holds links and visits in dictionaries guarded by an asyncio lock. Used
for ``memory://`` deployments (single process, nothing persisted) and by
the test-suite.
"""

import asyncio
import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple

from ..common.timeutil import now_unix, unix_to_date
from .base import LinkStoreBase, DuplicateCodeError
from .models import Link, Visit


def _ranked(counter: Counter) -> List[Tuple[Optional[str], int]]:
    # Count descending; ties by value with NULL last so output is stable
    return sorted(
        counter.items(),
        key=lambda item: (-item[1], item[0] is None, item[0] or ""),
    )


class InMemoryLinkStore(LinkStoreBase):
    """Dictionary-backed implementation of the link store contract."""

    def __init__(
        self,
        db_config: str = "memory://",
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(db_config)
        self.logger = logger or logging.getLogger(__name__)
        self._links: Dict[str, Link] = {}
        self._visits: List[Visit] = []
        self._next_visit_id = 1
        self._lock = asyncio.Lock()

    async def exists(self, code: str) -> bool:
        return code in self._links

    async def insert(
        self,
        code: str,
        original_url: str,
        expires_at: int,
        created_at: int,
    ) -> None:
        async with self._lock:
            if code in self._links:
                raise DuplicateCodeError(code)
            self._links[code] = Link(
                code=code,
                original_url=original_url,
                created_at=created_at,
                expires_at=expires_at,
            )

    async def get(self, code: str) -> Optional[Link]:
        return self._links.get(code)

    async def delete(self, code: str) -> bool:
        async with self._lock:
            return self._links.pop(code, None) is not None

    async def delete_if_expired(self, code: str, now: int) -> bool:
        async with self._lock:
            link = self._links.get(code)
            if link is None or link.expires_at >= now:
                return False
            del self._links[code]
            return True

    async def delete_expired(self, now: int) -> int:
        async with self._lock:
            expired = [c for c, link in self._links.items() if link.expires_at < now]
            for code in expired:
                del self._links[code]
            return len(expired)

    async def insert_visit(
        self,
        code: str,
        visited_at: int,
        ip: Optional[str] = None,
        country: Optional[str] = None,
        city: Optional[str] = None,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> None:
        async with self._lock:
            self._visits.append(
                Visit(
                    id=self._next_visit_id,
                    code=code,
                    visited_at=visited_at,
                    ip=ip,
                    country=country,
                    city=city,
                    user_agent=user_agent,
                    referer=referer,
                )
            )
            self._next_visit_id += 1

    def _visits_for(self, code: str) -> List[Visit]:
        return [v for v in self._visits if v.code == code]

    async def count_visits(self, code: str) -> int:
        return len(self._visits_for(code))

    async def visits_by_country(self, code: str) -> List[Tuple[Optional[str], int]]:
        return _ranked(Counter(v.country for v in self._visits_for(code)))

    async def visits_by_referer(self, code: str) -> List[Tuple[Optional[str], int]]:
        return _ranked(Counter(v.referer for v in self._visits_for(code)))

    async def visits_daily(
        self,
        code: str,
        window_days: int = 30,
        now: Optional[int] = None,
    ) -> List[Tuple[str, int]]:
        now = now_unix() if now is None else now
        since = now - window_days * 24 * 60 * 60
        days = Counter(
            unix_to_date(v.visited_at)
            for v in self._visits_for(code)
            if v.visited_at >= since
        )
        return sorted(days.items(), key=lambda item: item[0], reverse=True)

    async def recent_visits(self, code: str, limit: int = 20) -> List[Visit]:
        visits = sorted(
            self._visits_for(code),
            key=lambda v: (v.visited_at, v.id),
            reverse=True,
        )
        return visits[:limit]

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self.logger.debug("In-memory store closed")
