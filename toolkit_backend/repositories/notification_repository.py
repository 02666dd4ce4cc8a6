"""
Repository layer for Notification persistence.
All SQL for the `notifications` table lives here.
"""
import sqlite3
from datetime import datetime, timezone
from typing import Optional
import logging

from toolkit_backend.core.logging_config import log_db_timing
from toolkit_backend.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Data access layer for in-app notification records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Store the database connection for query execution."""
        logger.trace("Initializing NotificationRepository")
        self._conn = conn

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @log_db_timing
    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        """Return a notification by id, or None if missing."""
        row = self._conn.execute(
            "SELECT * FROM notifications WHERE id = ?", (notification_id,)
        ).fetchone()
        return Notification.from_row(row) if row else None

    @log_db_timing
    def list_recent(self, limit: int = 50) -> list[Notification]:
        """Return the most recent notifications first."""
        logger.trace("Listing notifications limit=%s", limit)
        rows = self._conn.execute(
            "SELECT * FROM notifications ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [Notification.from_row(r) for r in rows]

    @log_db_timing
    def list_since(self, since: datetime) -> list[Notification]:
        """Return notifications created at or after ``since``, newest first."""
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        logger.trace("Listing notifications since=%s", since)
        rows = self._conn.execute(
            """
            SELECT * FROM notifications
             WHERE created_at >= ?
             ORDER BY created_at DESC, id DESC
            """,
            (since.astimezone(timezone.utc).isoformat(),),
        ).fetchall()
        return [Notification.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @log_db_timing
    def create(
        self,
        title: str,
        description: str,
        priority: str,
        source_id: Optional[str] = None,
        time: Optional[datetime] = None,
    ) -> Notification:
        """Insert a notification and return the stored row."""
        logger.info("Creating notification title=%s", title)
        now = datetime.now(tz=timezone.utc)
        cursor = self._conn.execute(
            """
            INSERT INTO notifications (title, description, priority, source_id, time, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                title,
                description,
                priority,
                source_id,
                (time or now).isoformat(),
                now.isoformat(),
            ),
        )
        return self.get_by_id(cursor.lastrowid)  # type: ignore[return-value]
