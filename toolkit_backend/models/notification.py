"""
Domain model representing a notifications row from the DB.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Notification:
    id: int
    title: str
    description: str
    priority: str
    source_id: Optional[str]
    time: datetime
    created_at: datetime

    @classmethod
    def from_row(cls, row) -> "Notification":
        """Build a Notification from a sqlite3.Row object."""
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            priority=row["priority"],
            source_id=row["source_id"],
            time=datetime.fromisoformat(row["time"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
