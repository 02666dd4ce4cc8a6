"""
Notification services.

``NotificationDispatcher`` is the fire-and-forget collaborator used by the
stock ledger. It exposes the two entry points the ledger calls:

  - ``create_notification``       – store an in-app notification record.
  - ``send_general_notification`` – push a message to the configured
                                     gateway (PUSH_WEBHOOK_URL).

Both hand the work to a small thread pool and return immediately. Failures
are logged and never propagated to the caller; HTTP pushes are bounded by
NOTIFICATION_TIMEOUT_SECONDS and NOTIFICATION_MAX_ATTEMPTS.

``NotificationService`` is the read side behind the notifications endpoints.
"""
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Optional
import logging
import sqlite3
import threading

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from toolkit_backend.core.config import settings
from toolkit_backend.db.database import get_db
from toolkit_backend.models.notification import Notification
from toolkit_backend.repositories.notification_repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Best-effort dispatcher for in-app records and push messages."""

    def __init__(
        self,
        executor: Optional[Executor] = None,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.NOTIFICATION_WORKERS,
            thread_name_prefix="notify",
        )
        self._webhook_url = settings.PUSH_WEBHOOK_URL if webhook_url is None else webhook_url
        self._timeout = timeout or settings.NOTIFICATION_TIMEOUT_SECONDS
        self._max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def create_notification(self, payload: dict[str, Any]) -> Optional[Future]:
        """
        Queue an in-app notification.

        ``payload`` keys: title, description, priority, sourceId, time.
        """
        return self._submit(self._store, payload)

    def send_general_notification(
        self,
        recipient: Optional[str],
        title: str,
        description: str,
        priority: str = "high",
        type: str = "normal",
    ) -> Optional[Future]:
        """Queue a push message; ``recipient=None`` broadcasts to everyone."""
        body = {
            "recipient": recipient,
            "title": title,
            "description": description,
            "priority": priority,
            "type": type,
        }
        return self._submit(self._push, body)

    def shutdown(self, wait: bool = True) -> None:
        logger.info("Shutting down notification dispatcher")
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Jobs (run on the executor)
    # ------------------------------------------------------------------

    def _store(self, payload: dict[str, Any]) -> Notification:
        with get_db() as conn:
            notification = NotificationRepository(conn).create(
                title=payload["title"],
                description=payload.get("description", ""),
                priority=payload.get("priority", "medium"),
                source_id=payload.get("sourceId"),
                time=payload.get("time"),
            )
        logger.info("Stored notification id=%s", notification.id)
        return notification

    def _push(self, body: dict[str, Any]) -> Optional[int]:
        if not self._webhook_url:
            logger.trace("Push webhook not configured; skipping '%s'", body["title"])
            return None

        @retry(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.5, max=self._timeout),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
            reraise=True,
        )
        def _request() -> httpx.Response:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self._webhook_url, json=body)
                response.raise_for_status()
                return response

        response = _request()
        logger.info("Push notification delivered status=%s", response.status_code)
        return response.status_code

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _submit(self, job: Callable[[dict], Any], data: dict[str, Any]) -> Optional[Future]:
        if not settings.NOTIFICATIONS_ENABLED:
            logger.trace("Notifications disabled; dropping '%s'", data.get("title"))
            return None
        try:
            return self._executor.submit(self._guarded, job, data)
        except RuntimeError:
            logger.warning("Notification executor unavailable; dropping '%s'", data.get("title"))
            return None

    @staticmethod
    def _guarded(job: Callable[[dict], Any], data: dict[str, Any]) -> Any:
        try:
            return job(data)
        except (httpx.HTTPError, sqlite3.Error, KeyError) as exc:
            logger.error("Notification job %s failed: %s", job.__name__, exc)
        except Exception:
            logger.error("Unexpected notification failure in %s", job.__name__, exc_info=True)
        return None


_dispatcher: Optional[NotificationDispatcher] = None
_dispatcher_lock = threading.Lock()


def get_dispatcher() -> NotificationDispatcher:
    """Return the process-wide dispatcher, creating it on first use."""
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = NotificationDispatcher()
        return _dispatcher


def shutdown_dispatcher() -> None:
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is not None:
            _dispatcher.shutdown()
            _dispatcher = None


class NotificationService:
    """Read access to stored notifications."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        logger.trace("Initializing NotificationService")
        self._repo = NotificationRepository(conn)

    def list_notifications(self, limit: int = 50) -> list[Notification]:
        logger.info("Listing notifications limit=%s", limit)
        return self._repo.list_recent(limit=limit)

    def list_pending(self, since: datetime) -> list[Notification]:
        """Return notifications raised since the client last polled."""
        logger.info("Listing pending notifications since=%s", since)
        return self._repo.list_since(since)
