"""Abstract base class for link store implementations."""

from abc import ABC, abstractmethod
from typing import Optional, List, Tuple

from .models import Link, Visit


class DuplicateCodeError(Exception):
    """Raised by ``insert`` when the code is already taken."""

    def __init__(self, code: str):
        super().__init__(f"Code '{code}' already exists")
        self.code = code


class LinkStoreBase(ABC):
    """Abstract base class for link and visit persistence.

    The store's primary-key constraint on ``code`` is the final arbiter of
    uniqueness: ``insert`` must never overwrite an existing link.
    """

    def __init__(self, db_config: str):
        """Initialize store.

        Args:
            db_config: Database connection string
        """
        self.db_config = db_config

    @abstractmethod
    async def exists(self, code: str) -> bool:
        """Check if a code is already taken.

        Args:
            code: The short code to check

        Returns:
            True if a link with this code exists (live or not yet swept)
        """
        pass

    @abstractmethod
    async def insert(
        self,
        code: str,
        original_url: str,
        expires_at: int,
        created_at: int,
    ) -> None:
        """Insert a new link atomically.

        Args:
            code: The short code
            original_url: Target URL
            expires_at: Expiry (Unix seconds)
            created_at: Creation time (Unix seconds)

        Raises:
            DuplicateCodeError: If the code already exists
        """
        pass

    @abstractmethod
    async def get(self, code: str) -> Optional[Link]:
        """Get the link for a code, or None."""
        pass

    @abstractmethod
    async def delete(self, code: str) -> bool:
        """Delete a link.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def delete_if_expired(self, code: str, now: int) -> bool:
        """Delete one link only if it is still expired (``expires_at < now``).

        A code swept and re-created in the meantime is left untouched.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def delete_expired(self, now: int) -> int:
        """Delete every link with ``expires_at < now``.

        Returns:
            Number of links deleted
        """
        pass

    @abstractmethod
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
        """Record a visit. The store assigns the sequence id."""
        pass

    @abstractmethod
    async def count_visits(self, code: str) -> int:
        """Total visits recorded for a code."""
        pass

    @abstractmethod
    async def visits_by_country(self, code: str) -> List[Tuple[Optional[str], int]]:
        """Visit counts grouped by country, descending by count."""
        pass

    @abstractmethod
    async def visits_by_referer(self, code: str) -> List[Tuple[Optional[str], int]]:
        """Visit counts grouped by referer, descending by count."""
        pass

    @abstractmethod
    async def visits_daily(
        self,
        code: str,
        window_days: int = 30,
        now: Optional[int] = None,
    ) -> List[Tuple[str, int]]:
        """Per-day (UTC ``YYYY-MM-DD``) counts for the trailing window.

        Days without visits are absent. Ordered descending by date.
        """
        pass

    @abstractmethod
    async def recent_visits(self, code: str, limit: int = 20) -> List[Visit]:
        """Most recent visits, newest first."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is reachable.

        Returns:
            True if healthy, False otherwise
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections."""
        pass
