"""Visit analytics for a single short link."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .common.timeutil import now_unix
from .database.models import Link, Visit
from .errors import InternalError
from .service import LinkService


DAILY_WINDOW_DAYS = 30
RECENT_VISITS_LIMIT = 20


@dataclass
class AnalyticsReport:
    link: Link
    total_visits: int
    countries: List[Dict[str, Any]] = field(default_factory=list)
    referers: List[Dict[str, Any]] = field(default_factory=list)
    daily: List[Dict[str, Any]] = field(default_factory=list)
    recent_visits: List[Visit] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.link.code,
            "original_url": self.link.original_url,
            "created_at": self.link.created_at,
            "expires_at": self.link.expires_at,
            "total_visits": self.total_visits,
            "countries": self.countries,
            "referers": self.referers,
            "daily": self.daily,
            "recent_visits": [visit.to_row() for visit in self.recent_visits],
        }


class AnalyticsAggregator:
    """Read-only summaries of the visits recorded for a code.

    The aggregations are independent reads issued together; they reflect
    roughly the same instant but are not a consistent snapshot.
    """

    def __init__(self, service: LinkService, logger: Optional[logging.Logger] = None):
        self.service = service
        self.db = service.db
        self.logger = logger or logging.getLogger(__name__)

    async def summarize(self, code: str, now: Optional[int] = None) -> AnalyticsReport:
        """Summarize visits for a live link.

        Args:
            code: The short code
            now: Reference time in Unix seconds (defaults to current time)

        Returns:
            Analytics report

        Raises:
            NotFoundError: Link absent or expired
            InternalError: Store failure
        """
        now = now_unix() if now is None else now

        link = await self.service.get_live_link(code, now)

        try:
            total, countries, referers, daily, recent = await asyncio.gather(
                self.db.count_visits(code),
                self.db.visits_by_country(code),
                self.db.visits_by_referer(code),
                self.db.visits_daily(code, window_days=DAILY_WINDOW_DAYS, now=now),
                self.db.recent_visits(code, limit=RECENT_VISITS_LIMIT),
            )
        except Exception as e:
            self.logger.error(f"Database error while summarizing {code}: {e}")
            raise InternalError(f"Database error: {e}") from e

        self.logger.debug(f"Analytics for {code}: {total} visits")

        return AnalyticsReport(
            link=link,
            total_visits=total,
            countries=[{"value": value, "count": count} for value, count in countries],
            referers=[{"value": value, "count": count} for value, count in referers],
            daily=[{"date": date, "count": count} for date, count in daily],
            recent_visits=recent,
        )
