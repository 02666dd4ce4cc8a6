"""
FastAPI dependency injection helpers.
"""
from typing import Generator

import logging

from toolkit_backend.db.database import get_db
from toolkit_backend.services.notification_service import NotificationDispatcher, get_dispatcher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DB dependency
# ---------------------------------------------------------------------------

def db_dependency() -> Generator:
    """Yield a database connection for the duration of a request."""
    logger.trace("Creating database dependency connection")
    with get_db() as conn:
        yield conn


# ---------------------------------------------------------------------------
# Notification dependency
# ---------------------------------------------------------------------------

def notifier_dependency() -> NotificationDispatcher:
    """Return the process-wide notification dispatcher."""
    return get_dispatcher()
