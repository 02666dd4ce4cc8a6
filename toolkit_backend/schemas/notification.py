"""
Pydantic schemas for Notification responses.
"""
from datetime import datetime
from typing import Optional

from toolkit_backend.schemas.envelope import CamelModel


class NotificationResponse(CamelModel):
    id: int
    title: str
    description: str
    priority: str
    source_id: Optional[str]
    time: datetime
    created_at: datetime
