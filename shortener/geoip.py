"""GeoIP lookup for visit recording."""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import maxminddb


GeoResult = Tuple[Optional[str], Optional[str]]


class GeoResolver(ABC):
    """Resolves an IP address to ``(country, city)``; either may be None."""

    @abstractmethod
    def resolve(self, ip: str) -> GeoResult:
        pass

    def close(self) -> None:
        pass


class MaxMindGeoResolver(GeoResolver):
    """Lookups against a MaxMind GeoLite2/GeoIP2 City ``.mmdb`` database."""

    def __init__(self, db_path: str, logger: Optional[logging.Logger] = None):
        self.db_path = db_path
        self.logger = logger or logging.getLogger(__name__)
        self._reader = maxminddb.open_database(db_path)

    def resolve(self, ip: str) -> GeoResult:
        try:
            record = self._reader.get(ip)
        except ValueError:
            # Not an IP address (e.g. a hostname from a Forwarded header)
            return None, None

        if not record:
            return None, None

        country = (record.get("country") or {}).get("iso_code")
        city = ((record.get("city") or {}).get("names") or {}).get("en")
        return country, city

    def close(self) -> None:
        self._reader.close()


def load_geo_resolver(
    db_path: Optional[str],
    logger: Optional[logging.Logger] = None,
) -> Optional[GeoResolver]:
    """Open the GeoIP database if one is configured.

    A missing or unreadable database disables GeoIP with a warning instead
    of failing startup.

    Args:
        db_path: Path to the ``.mmdb`` file, or None
        logger: Optional logger

    Returns:
        Resolver, or None when GeoIP is unavailable
    """
    logger = logger or logging.getLogger(__name__)

    if not db_path:
        logger.info("GeoIP disabled (no database configured)")
        return None

    try:
        resolver = MaxMindGeoResolver(db_path, logger=logger)
    except (OSError, maxminddb.InvalidDatabaseError) as e:
        logger.warning(f"Could not load GeoIP database: {e}")
        return None

    logger.info(f"GeoIP database loaded from {db_path}")
    return resolver
