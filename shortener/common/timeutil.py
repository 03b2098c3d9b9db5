"""Time helpers. All engine timestamps are integer Unix seconds (UTC)."""

import time
from datetime import datetime, timezone


def now_unix() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())


def unix_to_date(ts: int) -> str:
    """Format a Unix timestamp as a UTC ``YYYY-MM-DD`` day bucket."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")
