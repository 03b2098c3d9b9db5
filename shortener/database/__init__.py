"""Database layer for URL shortener."""

import logging
from typing import Optional
from urllib.parse import urlparse

from .base import LinkStoreBase, DuplicateCodeError
from .models import Link, Visit
from .memory import InMemoryLinkStore
from .postgres import PostgresLinkStore
from .cache import RedisCache


def create_store(
    database_url: str,
    create_tables: bool = True,
    logger: Optional[logging.Logger] = None,
) -> LinkStoreBase:
    """Build the store implementation selected by the URL scheme.

    Args:
        database_url: ``memory://`` or ``postgresql://...``
        create_tables: Create the schema on first use (Postgres)
        logger: Optional logger

    Returns:
        Link store instance
    """
    scheme = urlparse(database_url).scheme.lower()

    if scheme == "memory":
        return InMemoryLinkStore(database_url, logger=logger)

    if scheme in ("postgres", "postgresql"):
        return PostgresLinkStore(
            database_url,
            create_tables=create_tables,
            logger=logger,
        )

    raise ValueError(f"Unsupported database URL scheme: '{scheme}'")


__all__ = [
    "LinkStoreBase",
    "DuplicateCodeError",
    "Link",
    "Visit",
    "InMemoryLinkStore",
    "PostgresLinkStore",
    "RedisCache",
    "create_store",
]
