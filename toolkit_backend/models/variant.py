"""
Domain model for a toolkit variant (one size/color combination) and the
store that manages the variants of a single toolkit.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from toolkit_backend.core.config import settings
from toolkit_backend.models.stock_history import (
    StockAction,
    StockHistoryEntry,
    StockHistoryLedger,
    new_id,
    utcnow,
)

NOT_APPLICABLE = "N/A"


class StockStatus(str, Enum):
    AVAILABLE = "available"
    LOW = "low"
    OUT = "out"


def derive_variant_status(stock_count: int, min_stock_level: int) -> StockStatus:
    """Status is a pure function of the current stock and its low-stock threshold."""
    if stock_count <= 0:
        return StockStatus.OUT
    if stock_count < min_stock_level:
        return StockStatus.LOW
    return StockStatus.AVAILABLE


def _key_part(value: Optional[str]) -> str:
    return (value or "").strip().lower() or NOT_APPLICABLE.lower()


def variant_key(size: Optional[str], color: Optional[str]) -> tuple[str, str]:
    """Normalized (size, color) natural key; blank parts compare as N/A."""
    return _key_part(size), _key_part(color)


@dataclass
class Variant:
    id: str
    size: str
    color: str
    stock_count: int
    min_stock_level: int
    status: StockStatus
    inuse: bool
    first_added_date: datetime
    last_updated_date: datetime
    stock_history: list[StockHistoryEntry] = field(default_factory=list)

    def matches(self, size: Optional[str], color: Optional[str]) -> bool:
        """Case-insensitive comparison against a (size, color) natural key."""
        return variant_key(self.size, self.color) == variant_key(size, color)

    def refresh_status(self) -> StockStatus:
        self.status = derive_variant_status(self.stock_count, self.min_stock_level)
        return self.status

    @classmethod
    def from_row(cls, row, history: list[StockHistoryEntry]) -> "Variant":
        """Build a Variant from a sqlite3.Row object and its loaded history."""
        return cls(
            id=row["id"],
            size=row["size"],
            color=row["color"],
            stock_count=row["stock_count"],
            min_stock_level=row["min_stock_level"],
            status=StockStatus(row["status"]),
            inuse=bool(row["inuse"]),
            first_added_date=datetime.fromisoformat(row["first_added_date"]),
            last_updated_date=datetime.fromisoformat(row["last_updated_date"]),
            stock_history=history,
        )


class VariantStore:
    """
    Operations on the variants of one toolkit.

    The store works on the toolkit's own list so that insertion order is
    preserved as display order. Status is not recomputed here; the owning
    toolkit derives it on every save.
    """

    def __init__(self, variants: list[Variant]) -> None:
        self._variants = variants

    def __iter__(self):
        return iter(self._variants)

    def __len__(self) -> int:
        return len(self._variants)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_by_key(self, size: Optional[str], color: Optional[str]) -> Optional[Variant]:
        """Return the variant whose size and color match case-insensitively."""
        return next((v for v in self._variants if v.matches(size, color)), None)

    def find_by_id(self, variant_id: str) -> Optional[Variant]:
        return next((v for v in self._variants if v.id == variant_id), None)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_new(
        self,
        size: Optional[str],
        color: Optional[str],
        stock_count: int,
        min_stock_level: Optional[int] = None,
        reason: str = "",
        updated_by: Optional[str] = None,
    ) -> Variant:
        """Create a variant, stock it with an ``initial`` ledger entry and append it."""
        now = utcnow()
        min_stock_level = min_stock_level or settings.DEFAULT_MIN_STOCK_LEVEL
        variant = Variant(
            id=new_id(),
            size=(size or "").strip() or NOT_APPLICABLE,
            color=(color or "").strip() or NOT_APPLICABLE,
            stock_count=stock_count,
            min_stock_level=min_stock_level,
            status=derive_variant_status(stock_count, min_stock_level),
            inuse=False,
            first_added_date=now,
            last_updated_date=now,
        )
        StockHistoryLedger.append(
            variant, StockAction.INITIAL, 0, stock_count, reason, updated_by
        )
        self._variants.append(variant)
        return variant

    def apply_delta(
        self,
        variant: Variant,
        new_stock_count: int,
        reason: str = "",
        updated_by: Optional[str] = None,
        person: Optional[str] = None,
    ) -> StockHistoryEntry:
        """Set a new absolute stock count and ledger it as ``added`` or ``reduced``."""
        previous = variant.stock_count
        action = StockAction.ADDED if new_stock_count > previous else StockAction.REDUCED
        entry = StockHistoryLedger.append(
            variant, action, previous, new_stock_count, reason, updated_by, person
        )
        variant.stock_count = new_stock_count
        variant.last_updated_date = entry.timestamp
        return entry

    def merge(
        self,
        variant: Variant,
        amount: int,
        reason: str = "",
        updated_by: Optional[str] = None,
    ) -> StockHistoryEntry:
        """Additively merge incoming stock into an existing variant."""
        previous = variant.stock_count
        entry = StockHistoryLedger.append(
            variant, StockAction.UPDATED, previous, previous + amount, reason, updated_by
        )
        variant.stock_count = previous + amount
        variant.last_updated_date = entry.timestamp
        return entry

    def remove(self, variant: Variant) -> None:
        self._variants.remove(variant)
