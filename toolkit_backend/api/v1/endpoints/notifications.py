"""
Notification feed endpoints:
  GET    /notifications                 – Most recent notifications
  GET    /notifications/pending?since=  – Notifications raised since a timestamp
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query
import logging

from toolkit_backend.core.dependencies import db_dependency
from toolkit_backend.schemas.envelope import ApiResponse
from toolkit_backend.schemas.notification import NotificationResponse
from toolkit_backend.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=ApiResponse[list[NotificationResponse]],
    summary="List recent notifications",
)
def list_notifications(
    limit: int = Query(50, ge=1, le=500),
    conn=Depends(db_dependency),
):
    """Return the most recent notifications, newest first."""
    logger.info("Listing notifications limit=%s", limit)
    service = NotificationService(conn)
    notifications = [
        NotificationResponse.model_validate(n) for n in service.list_notifications(limit)
    ]
    return ApiResponse.ok("Notifications retrieved successfully", notifications)


@router.get(
    "/pending",
    response_model=ApiResponse[list[NotificationResponse]],
    summary="List notifications since a timestamp",
)
def list_pending_notifications(
    since: datetime = Query(..., description="ISO-8601 timestamp of the last poll"),
    conn=Depends(db_dependency),
):
    """Return notifications created at or after ``since``, newest first."""
    logger.info("Listing pending notifications since=%s", since)
    service = NotificationService(conn)
    notifications = [
        NotificationResponse.model_validate(n) for n in service.list_pending(since)
    ]
    return ApiResponse.ok("Pending notifications retrieved successfully", notifications)
