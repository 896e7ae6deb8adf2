"""
Periodic removal of dead credentials.

Refresh-token rows normally outlive their JWT: once the token's exp passes
the client can no longer present it, so refresh() never reaches the row.
Unredeemed reset tokens are the same. CleanupTaskManager sweeps both on an
interval from the application lifespan.
"""

import asyncio
import logging
from typing import Callable

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.refresh_token import RefreshToken
from app.models.reset_token import ResetToken
from app.utils.security import utcnow

logger = logging.getLogger(__name__)


class SessionCleanupService:

    def purge_expired_sessions(self, db: Session) -> dict:
        """Bulk-delete expired refresh-token and reset-token rows; returns counts."""
        now = utcnow()
        sessions = db.query(RefreshToken).filter(RefreshToken.expiresAt < now).delete(
            synchronize_session=False,
        )
        reset_tokens = db.query(ResetToken).filter(ResetToken.expiresAt < now).delete(
            synchronize_session=False,
        )
        db.commit()

        if sessions or reset_tokens:
            logger.info(f"Purged {sessions} expired sessions and {reset_tokens} expired reset tokens")
        return {"sessions": sessions, "resetTokens": reset_tokens}


session_cleanup_service = SessionCleanupService()


class CleanupTaskManager:
    """
    Runs purge_expired_sessions every interval_seconds on the event loop.
    The database work itself happens in a worker thread with its own session.
    """

    def __init__(self, interval_seconds: float, session_factory: Callable[[], Session] = SessionLocal):
        self.interval_seconds = interval_seconds
        self._session_factory = session_factory
        self._task: asyncio.Task | None = None
        self.runs = 0

    def run_once(self) -> dict:
        db = self._session_factory()
        try:
            return session_cleanup_service.purge_expired_sessions(db)
        finally:
            db.close()

    async def _cleanup_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                await asyncio.to_thread(self.run_once)
                self.runs += 1
            except asyncio.CancelledError:
                logger.info("Session cleanup task cancelled")
                break
            except Exception as e:
                # Keep sweeping; the next run retries whatever failed
                logger.error(f"Session cleanup failed: {e}")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._cleanup_loop())
            logger.info(f"Session cleanup task started (every {self.interval_seconds:g}s)")
        return self._task

    def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
