"""Link lifecycle engine for the URL shortener."""

from .shortcode import ShortCodeGenerator
from .service import LinkService
from .sweeper import ExpirySweeper
from .rate_limiter import RateLimiter
from .analytics import AnalyticsAggregator, AnalyticsReport

__all__ = [
    "ShortCodeGenerator",
    "LinkService",
    "ExpirySweeper",
    "RateLimiter",
    "AnalyticsAggregator",
    "AnalyticsReport",
]
