"""
Toolkit aggregate: one named equipment type and the variants it owns.

All stock mutations go through this class so that the derived fields
(variant status, ``total_stock`` and ``overall_status``) are recomputed by a
single function, ``Toolkit.recompute``, before every save.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional

from toolkit_backend.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from toolkit_backend.models.stock_history import StockHistoryEntry, utcnow
from toolkit_backend.models.variant import StockStatus, Variant, VariantStore, variant_key

# Variant fields a caller may change directly; stock_count is ledgered separately.
MUTABLE_VARIANT_FIELDS = ("size", "color", "min_stock_level", "inuse")


class InsertOutcome(str, Enum):
    CREATED = "created"
    VARIANT_ADDED = "variant_added"
    VARIANT_MERGED = "variant_merged"


def derive_overall_status(total_stock: int, statuses: Iterable[StockStatus]) -> StockStatus:
    """Canonical toolkit status derivation used on every write path."""
    if total_stock <= 0:
        return StockStatus.OUT
    if any(status == StockStatus.LOW for status in statuses):
        return StockStatus.LOW
    return StockStatus.AVAILABLE


def name_key(name: str) -> str:
    """Normalized form of a toolkit name used for case-insensitive uniqueness."""
    return name.strip().lower()


@dataclass
class Toolkit:
    id: str
    name: str
    type: str
    created_at: datetime
    updated_at: datetime
    variants: list[Variant] = field(default_factory=list)
    total_stock: int = 0
    overall_status: StockStatus = StockStatus.OUT
    version: int = 0

    @property
    def store(self) -> VariantStore:
        return VariantStore(self.variants)

    @property
    def name_key(self) -> str:
        return name_key(self.name)

    @property
    def is_new(self) -> bool:
        """True until the repository has persisted the toolkit once."""
        return self.version == 0

    @classmethod
    def from_row(cls, row, variants: list[Variant]) -> "Toolkit":
        """Build a Toolkit from a sqlite3.Row object and its loaded variants."""
        return cls(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            variants=variants,
            total_stock=row["total_stock"],
            overall_status=StockStatus(row["overall_status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            version=row["version"],
        )

    # ------------------------------------------------------------------
    # Creation / merge-on-insert
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        toolkit_id: str,
        name: str,
        type: str,
        size: Optional[str],
        color: Optional[str],
        stock_count: int,
        min_stock_level: Optional[int] = None,
        reason: str = "",
        updated_by: Optional[str] = None,
    ) -> "Toolkit":
        """Start a new toolkit whose first variant carries the initial stock."""
        if not name or not name.strip():
            raise ValidationError("Equipment name is required")
        if not type or not type.strip():
            raise ValidationError("Equipment type is required")
        now = utcnow()
        toolkit = cls(
            id=toolkit_id,
            name=name.strip(),
            type=type.strip(),
            created_at=now,
            updated_at=now,
        )
        toolkit.store.add_new(
            size,
            color,
            stock_count,
            min_stock_level,
            reason or f"Initial stock for new toolkit: {toolkit.name}",
            updated_by,
        )
        toolkit.recompute(now)
        return toolkit

    def insert_or_merge(
        self,
        size: Optional[str],
        color: Optional[str],
        stock_count: int,
        min_stock_level: Optional[int] = None,
        reason: str = "",
        updated_by: Optional[str] = None,
    ) -> tuple[InsertOutcome, Variant]:
        """
        Merge incoming stock into this existing toolkit.

        A matching (size, color) variant has the amount added to its stock;
        otherwise a new variant is appended.
        """
        store = self.store
        variant = store.find_by_key(size or "N/A", color or "N/A")
        if variant is None:
            variant = store.add_new(
                size,
                color,
                stock_count,
                min_stock_level,
                reason or f"New variant added: {size or 'N/A'} - {color or 'N/A'}",
                updated_by,
            )
            return InsertOutcome.VARIANT_ADDED, variant

        store.merge(
            variant,
            stock_count,
            reason or f"Stock updated: Added {stock_count} items",
            updated_by,
        )
        if min_stock_level:
            variant.min_stock_level = min_stock_level
        return InsertOutcome.VARIANT_MERGED, variant

    # ------------------------------------------------------------------
    # Variant operations
    # ------------------------------------------------------------------

    def get_variant(self, variant_id: str) -> Variant:
        variant = self.store.find_by_id(variant_id)
        if variant is None:
            raise NotFoundError(f"Variant with ID {variant_id} not found")
        return variant

    def update_variant(
        self,
        variant_id: str,
        changes: dict[str, Any],
        reason: str = "",
        updated_by: Optional[str] = None,
    ) -> tuple[Variant, Optional[StockHistoryEntry]]:
        """
        Apply allow-listed field changes to one variant.

        A changed ``stock_count`` is ledgered as ``added`` or ``reduced``;
        unknown keys are ignored.
        """
        variant = self.get_variant(variant_id)
        return variant, self._apply_variant_changes(variant, changes, reason, updated_by)

    def reduce_stock(
        self,
        variant_id: str,
        quantity: int,
        reason: str = "",
        updated_by: Optional[str] = None,
        person: Optional[str] = None,
    ) -> tuple[Variant, StockHistoryEntry]:
        """Debit stock; refuses without side effects when the stock is too low."""
        if quantity is None or quantity <= 0:
            raise ValidationError("Valid quantity is required")
        variant = self.get_variant(variant_id)
        if quantity > variant.stock_count:
            raise InsufficientStockError(variant.stock_count, quantity)
        entry = self.store.apply_delta(
            variant,
            variant.stock_count - quantity,
            reason or f"Stock reduced: {quantity} items used",
            updated_by,
            person,
        )
        return variant, entry

    def delete_variant(self, variant_id: str) -> Variant:
        variant = self.get_variant(variant_id)
        self.store.remove(variant)
        return variant

    # ------------------------------------------------------------------
    # Toolkit-level update
    # ------------------------------------------------------------------

    def update_details(self, name: Optional[str] = None, type: Optional[str] = None) -> None:
        if name is not None:
            if not name.strip():
                raise ValidationError("Equipment name is required")
            self.name = name.strip()
        if type is not None:
            if not type.strip():
                raise ValidationError("Equipment type is required")
            self.type = type.strip()

    def reconcile_variants(
        self,
        specs: list[dict[str, Any]],
        reason: str = "",
        updated_by: Optional[str] = None,
    ) -> None:
        """
        Replace the variant set with ``specs`` without losing ledger history.

        Specs carrying an ``id`` update that variant, specs without one add a
        new variant, and stored variants not referenced are dropped. Retained
        variants keep their position; new ones are appended.
        """
        if not specs:
            raise ValidationError("A toolkit must keep at least one variant")

        referenced = [spec["id"] for spec in specs if spec.get("id")]
        if len(referenced) != len(set(referenced)):
            raise ValidationError("Variant ids must not repeat")

        # Keys are checked against the final set so that kept variants may swap keys.
        seen = set()
        for spec in specs:
            current = self.get_variant(spec["id"]) if spec.get("id") else None
            size, color = spec.get("size"), spec.get("color")
            if current is not None:
                size = current.size if size is None else size
                color = current.color if color is None else color
            key = variant_key(size, color)
            if key in seen:
                raise ValidationError(
                    f"Variant Size:{size or 'N/A'} - Color:{color or 'N/A'} "
                    f"already exists in {self.name}"
                )
            seen.add(key)

        for variant in [v for v in self.variants if v.id not in referenced]:
            self.store.remove(variant)

        for spec in specs:
            changes = {key: value for key, value in spec.items() if key != "id"}
            if spec.get("id"):
                self._apply_variant_changes(
                    self.get_variant(spec["id"]), changes, reason, updated_by, check_key=False
                )
                continue
            size, color = changes.get("size"), changes.get("color")
            stock_count = changes.get("stock_count") or 0
            variant = self.store.add_new(
                size,
                color,
                stock_count,
                changes.get("min_stock_level"),
                reason or f"New variant added: {size or 'N/A'} - {color or 'N/A'}",
                updated_by,
            )
            if changes.get("inuse") is not None:
                variant.inuse = bool(changes["inuse"])

    # ------------------------------------------------------------------
    # Derived fields
    # ------------------------------------------------------------------

    def recompute(self, now: Optional[datetime] = None) -> None:
        """Refresh every derived field; called by the repository before each save."""
        statuses = [variant.refresh_status() for variant in self.variants]
        self.total_stock = sum(variant.stock_count for variant in self.variants)
        self.overall_status = derive_overall_status(self.total_stock, statuses)
        self.updated_at = now or utcnow()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply_variant_changes(
        self,
        variant: Variant,
        changes: dict[str, Any],
        reason: str,
        updated_by: Optional[str],
        check_key: bool = True,
    ) -> Optional[StockHistoryEntry]:
        new_stock = changes.get("stock_count")
        if new_stock is not None and new_stock < 0:
            raise ValidationError("Stock count cannot be negative")
        min_level = changes.get("min_stock_level")
        if min_level is not None and min_level < 1:
            raise ValidationError("Minimum stock level must be at least 1")

        new_size = changes.get("size")
        new_color = changes.get("color")
        if check_key and (new_size is not None or new_color is not None):
            size = (new_size.strip() or "N/A") if new_size is not None else variant.size
            color = (new_color.strip() or "N/A") if new_color is not None else variant.color
            clash = self.store.find_by_key(size, color)
            if clash is not None and clash is not variant:
                raise ValidationError(
                    f"Variant Size:{size} - Color:{color} already exists in {self.name}"
                )

        entry = None
        if new_stock is not None and new_stock != variant.stock_count:
            delta = abs(new_stock - variant.stock_count)
            action = "added" if new_stock > variant.stock_count else "reduced"
            entry = self.store.apply_delta(
                variant,
                new_stock,
                reason or f"Stock {action}: {delta} items",
                updated_by,
            )

        touched = entry is not None
        for key in MUTABLE_VARIANT_FIELDS:
            value = changes.get(key)
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip() or "N/A"
            if getattr(variant, key) != value:
                setattr(variant, key, value)
                touched = True

        if touched:
            variant.last_updated_date = utcnow()
        return entry
