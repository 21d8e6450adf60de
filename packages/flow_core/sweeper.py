"""Background expiry of idle sessions."""

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import structlog
from flow_runtime import utcnow

if TYPE_CHECKING:
    from .engine import SessionEngine

logger = structlog.get_logger(__name__)


class ExpirySweeper:
    """Periodically expires idle sessions and drops old finished ones.

    Each candidate is expired through the engine, which takes the session's
    lock and re-checks the status, so a session that received input while
    the sweep was running is left alone. Completed, terminated and expired
    sessions stay readable for ``retention_seconds`` and are then removed
    from the store.
    """

    def __init__(
        self,
        engine: "SessionEngine",
        interval_seconds: float = 60.0,
        retention_seconds: Optional[int] = None,
    ):
        """Initialize the sweeper.

        Args:
            engine: Engine that owns the sessions
            interval_seconds: Time between sweeps
            retention_seconds: How long finished sessions are kept (defaults
                to the engine's ``session_retention_seconds``)
        """
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.retention_seconds = (
            retention_seconds
            if retention_seconds is not None
            else engine.settings.session_retention_seconds
        )
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the sweep loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info("expiry_sweeper_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the sweep loop."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("expiry_sweeper_stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error("expiry_sweep_failed", error=str(e))

    async def sweep_once(self, now: Optional[datetime] = None) -> int:
        """Expire every active session that is past its expiry.

        Finished sessions older than the retention window are removed in the
        same pass.

        Args:
            now: Reference time (defaults to the current time)

        Returns:
            Number of sessions expired
        """
        now = now or utcnow()
        expired = 0
        for session_id in self.engine.store.find_expired(now):
            if await self.engine.expire_session(session_id, now):
                expired += 1

        removed = self.engine.store.remove_finished(self.retention_seconds, now)

        if expired or removed:
            logger.info("expiry_sweep_complete", count=expired, removed=len(removed))
        return expired
