"""
Domain model for the append-only stock history of a variant.

Each entry records one stock-count change. Entries are immutable once
appended and are only ever removed together with their owning variant.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import uuid

from toolkit_backend.core.config import settings


def utcnow() -> datetime:
    """Timezone-aware current time used for every ledger timestamp."""
    return datetime.now(tz=timezone.utc)


def new_id() -> str:
    """Opaque identifier for toolkits, variants and history entries."""
    return uuid.uuid4().hex


class StockAction(str, Enum):
    INITIAL = "initial"
    ADDED = "added"
    UPDATED = "updated"
    REDUCED = "reduced"


@dataclass(frozen=True)
class StockHistoryEntry:
    id: str
    sequence: int
    action: StockAction
    previous_stock: int
    new_stock: int
    change_amount: int
    reason: str
    updated_by: str
    timestamp: datetime
    person: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "StockHistoryEntry":
        """Build a StockHistoryEntry from a sqlite3.Row object."""
        return cls(
            id=row["id"],
            sequence=row["sequence"],
            action=StockAction(row["action"]),
            previous_stock=row["previous_stock"],
            new_stock=row["new_stock"],
            change_amount=row["change_amount"],
            reason=row["reason"],
            updated_by=row["updated_by"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            person=row["person"],
        )


class StockHistoryLedger:
    """Append/query operations over a variant's ``stock_history`` list."""

    @staticmethod
    def append(
        variant,
        action: StockAction,
        previous_stock: int,
        new_stock: int,
        reason: str = "",
        updated_by: Optional[str] = None,
        person: Optional[str] = None,
    ) -> StockHistoryEntry:
        """Push a new immutable entry onto the variant's history and return it."""
        previous_stock = int(previous_stock or 0)
        new_stock = int(new_stock or 0)
        entry = StockHistoryEntry(
            id=new_id(),
            sequence=len(variant.stock_history),
            action=action,
            previous_stock=previous_stock,
            new_stock=new_stock,
            change_amount=new_stock - previous_stock,
            reason=reason or "",
            updated_by=updated_by or settings.DEFAULT_UPDATED_BY,
            timestamp=utcnow(),
            person=person,
        )
        variant.stock_history.append(entry)
        return entry

    @staticmethod
    def query(variant) -> list[StockHistoryEntry]:
        """Return the variant's history, most recent first."""
        return sorted(
            variant.stock_history,
            key=lambda entry: (entry.timestamp, entry.sequence),
            reverse=True,
        )
