"""Background removal of expired links."""

import asyncio
import logging
from typing import Optional

from .common.timeutil import now_unix
from .database.base import LinkStoreBase


class ExpirySweeper:
    """Periodically deletes every link with ``expires_at < now``.

    Runs for the lifetime of the process. A failing tick is logged and the
    loop carries on with the next one.
    """

    DEFAULT_INTERVAL_SECONDS = 60

    def __init__(
        self,
        db: LinkStoreBase,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize sweeper.

        Args:
            db: Store shared with the request handlers
            interval_seconds: Period between sweeps
            logger: Optional logger
        """
        self.db = db
        self.interval_seconds = interval_seconds
        self.logger = logger or logging.getLogger(__name__)
        self._task: Optional[asyncio.Task] = None
        self._shutdown = False

    async def sweep_once(self, now: Optional[int] = None) -> int:
        """Delete expired links once.

        Args:
            now: Reference time in Unix seconds (defaults to current time)

        Returns:
            Number of links deleted
        """
        now = now_unix() if now is None else now
        count = await self.db.delete_expired(now)
        if count > 0:
            self.logger.info(f"Cleaned up {count} expired links")
        else:
            self.logger.debug("No expired links to clean up")
        return count

    async def _run(self) -> None:
        # First sweep runs at startup, then once per interval
        while not self._shutdown:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error(f"Failed to cleanup expired links: {e}", exc_info=True)
            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break

    def start(self) -> None:
        """Start the background loop (no-op if already running)."""
        if self._task is None or self._task.done():
            self._shutdown = False
            self._task = asyncio.create_task(self._run())
            self.logger.info(f"Expiry sweeper started (interval={self.interval_seconds}s)")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        """Stop the background loop and wait for it to exit."""
        self._shutdown = True
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.logger.info("Expiry sweeper stopped")
