"""
Toolkit inventory service.

Business rules:
  - Toolkit names are unique regardless of case; inserting stock for an
    existing name merges into that toolkit instead of creating a new one.
  - Inserting an existing (size, color) variant adds to its stock.
  - Every stock change is written to the variant's append-only ledger.
  - Stock can never be reduced below zero.
  - Deleting the last variant of a toolkit deletes the toolkit.

Every mutation is load → mutate → save. Saves are version-checked; when
another request saved the same toolkit in between, the whole operation is
replayed against fresh state (up to SAVE_RETRY_LIMIT times).
"""
import sqlite3
from typing import Callable, Optional, Protocol, TypeVar
import logging

from toolkit_backend.core.config import settings
from toolkit_backend.core.exceptions import (
    ConcurrentUpdateError,
    NotFoundError,
    StaleToolkitError,
    ValidationError,
)
from toolkit_backend.models.stock_history import StockHistoryLedger, utcnow
from toolkit_backend.models.toolkit import InsertOutcome, Toolkit
from toolkit_backend.repositories.toolkit_repository import InventoryRepository
from toolkit_backend.schemas.toolkit import (
    ReduceStockRequest,
    ToolkitCreate,
    ToolkitUpdate,
    VariantUpdate,
)
from toolkit_backend.services.notification_service import get_dispatcher

logger = logging.getLogger(__name__)

R = TypeVar("R")

STOCK_ALERT_TITLE = "Safety items update"


class Notifier(Protocol):
    def create_notification(self, payload: dict): ...

    def send_general_notification(
        self,
        recipient: Optional[str],
        title: str,
        description: str,
        priority: str = "high",
        type: str = "normal",
    ): ...


class ToolkitService:
    """Business logic for the toolkit inventory and its stock ledger."""

    def __init__(self, conn: sqlite3.Connection, notifier: Optional[Notifier] = None) -> None:
        """Initialize the repository and notification collaborator."""
        logger.trace("Initializing ToolkitService")
        self._repo = InventoryRepository(conn)
        self._notifier = notifier if notifier is not None else get_dispatcher()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_toolkit(self, toolkit_id: str) -> Toolkit:
        """Fetch a toolkit by id or raise a 404 error."""
        logger.info("Fetching toolkit id=%s", toolkit_id)
        toolkit = self._repo.get_by_id(toolkit_id)
        if not toolkit:
            logger.warning("Toolkit id=%s not found", toolkit_id)
            raise NotFoundError(f"Toolkit with ID {toolkit_id} not found")
        return toolkit

    def list_toolkits(self) -> list[Toolkit]:
        """Return all toolkits, newest first."""
        logger.info("Listing toolkits")
        return self._repo.list_all()

    def search_toolkits(self, term: Optional[str]) -> list[Toolkit]:
        """Case-insensitive substring search on toolkit names."""
        if not term or not term.strip():
            logger.warning("Rejected toolkit search without a term")
            raise ValidationError("Search query is required", message="Search query is required")
        logger.info("Searching toolkits term=%s", term)
        return self._repo.search_by_name(term)

    def get_stock_history(self, toolkit_id: str, variant_id: str) -> dict:
        """Return one variant's ledger, newest entry first."""
        logger.info("Fetching stock history toolkit_id=%s variant_id=%s", toolkit_id, variant_id)
        toolkit = self.get_toolkit(toolkit_id)
        variant = toolkit.get_variant(variant_id)
        return {
            "toolkit": toolkit,
            "variant": _variant_summary(variant),
            "stock_history": StockHistoryLedger.query(variant),
        }

    def get_toolkit_stock_history(self, toolkit_id: str) -> dict:
        """Return the ledger of every variant of a toolkit, each newest first."""
        logger.info("Fetching toolkit stock history toolkit_id=%s", toolkit_id)
        toolkit = self.get_toolkit(toolkit_id)
        return {
            "toolkit": toolkit,
            "variants": [
                {**_variant_summary(variant), "stock_history": StockHistoryLedger.query(variant)}
                for variant in toolkit.variants
            ],
        }

    # ------------------------------------------------------------------
    # Create / merge
    # ------------------------------------------------------------------

    def add_toolkit(self, data: ToolkitCreate) -> tuple[Toolkit, InsertOutcome]:
        """Insert stock: create the toolkit, add a variant, or merge into a variant."""
        logger.info("Adding stock for toolkit name=%s", data.name)
        updated_by = data.updated_by or settings.DEFAULT_UPDATED_BY

        for attempt in range(1, settings.SAVE_RETRY_LIMIT + 1):
            toolkit = self._repo.get_by_name(data.name)
            if toolkit is None:
                toolkit = Toolkit.create(
                    toolkit_id=self._repo.next_id(),
                    name=data.name,
                    type=data.type,
                    size=data.size,
                    color=data.color,
                    stock_count=data.stock_count,
                    min_stock_level=data.min_stock_level,
                    reason=data.reason or "",
                    updated_by=updated_by,
                )
                outcome = InsertOutcome.CREATED
            else:
                outcome, _ = toolkit.insert_or_merge(
                    size=data.size,
                    color=data.color,
                    stock_count=data.stock_count,
                    min_stock_level=data.min_stock_level,
                    reason=data.reason or "",
                    updated_by=updated_by,
                )
            try:
                self._repo.save(toolkit)
            except StaleToolkitError:
                logger.warning(
                    "Retrying insert for toolkit name=%s (attempt %s)", data.name, attempt
                )
                continue

            logger.info("Toolkit id=%s stock inserted outcome=%s", toolkit.id, outcome.value)
            description = f"New {data.stock_count} {toolkit.name} added to stock"
            self._notify("New Safety items Added", description, "high", toolkit.id)
            return toolkit, outcome

        raise ConcurrentUpdateError(
            f"Toolkit '{data.name}' kept changing; retry the request"
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_variant(self, toolkit_id: str, variant_id: str, data: VariantUpdate) -> Toolkit:
        """Apply allow-listed changes to a variant, ledgering stock changes."""
        logger.info("Updating variant toolkit_id=%s variant_id=%s", toolkit_id, variant_id)

        def mutate(toolkit: Toolkit):
            return toolkit.update_variant(
                variant_id,
                data.changes(),
                reason=data.reason or "",
                updated_by=data.updated_by or settings.DEFAULT_UPDATED_BY,
            )

        toolkit, (variant, entry) = self._mutate(toolkit_id, mutate)
        logger.info("Variant updated toolkit_id=%s variant_id=%s", toolkit_id, variant_id)

        if entry is not None:
            description = (
                f"{abs(entry.change_amount)} items {entry.action.value} in "
                f"Size:{variant.size} - Color:{variant.color} - {toolkit.name}"
            )
            self._notify(STOCK_ALERT_TITLE, description, "high", toolkit.id)
        else:
            description = (
                f"Details updated for Size:{variant.size} - Color:{variant.color} - {toolkit.name}"
            )
            self._notify(STOCK_ALERT_TITLE, description, "medium", toolkit.id)
        return toolkit

    def reduce_stock(self, toolkit_id: str, variant_id: str, data: ReduceStockRequest) -> Toolkit:
        """Hand stock out of a variant; refuses when the stock is insufficient."""
        logger.info(
            "Reducing stock toolkit_id=%s variant_id=%s quantity=%s",
            toolkit_id,
            variant_id,
            data.quantity,
        )
        if data.quantity is None or data.quantity <= 0:
            raise ValidationError("Valid quantity is required", message="Valid quantity is required")

        def mutate(toolkit: Toolkit):
            return toolkit.reduce_stock(
                variant_id,
                data.quantity,
                reason=data.reason or "",
                updated_by=data.updated_by or settings.DEFAULT_UPDATED_BY,
                person=data.person,
            )

        toolkit, (variant, _) = self._mutate(toolkit_id, mutate)
        logger.info(
            "Stock reduced toolkit_id=%s variant_id=%s new_stock=%s",
            toolkit_id,
            variant_id,
            variant.stock_count,
        )

        recipient = f"handed over to {data.person}" if data.person else "issued from stock"
        description = (
            f"{data.quantity} Size:{variant.size} Color:{variant.color} {toolkit.name} {recipient}"
        )
        self._notify(STOCK_ALERT_TITLE, description, "high", toolkit.id)
        return toolkit

    def update_toolkit(self, toolkit_id: str, data: ToolkitUpdate) -> Toolkit:
        """Update toolkit details and optionally reconcile its variant list."""
        logger.info("Updating toolkit id=%s", toolkit_id)
        if data.name is not None:
            clash = self._repo.get_by_name(data.name)
            if clash is not None and clash.id != toolkit_id:
                logger.warning("Duplicate toolkit name on update: %s", data.name)
                raise ValidationError(f"Toolkit with name '{data.name}' already exists")

        specs = data.variant_specs()

        def mutate(toolkit: Toolkit):
            toolkit.update_details(name=data.name, type=data.type)
            if specs is not None:
                toolkit.reconcile_variants(
                    specs,
                    reason=data.reason or "",
                    updated_by=data.updated_by or settings.DEFAULT_UPDATED_BY,
                )

        toolkit, _ = self._mutate(toolkit_id, mutate)
        logger.info("Toolkit updated id=%s", toolkit_id)
        self._notify("Safety items details updated", f"{toolkit.name} was updated", "medium", toolkit.id)
        return toolkit

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_toolkit(self, toolkit_id: str) -> Toolkit:
        """Delete a toolkit with all of its variants and history."""
        logger.info("Deleting toolkit id=%s", toolkit_id)
        toolkit = self.get_toolkit(toolkit_id)
        if not self._repo.delete(toolkit_id):
            logger.warning("Toolkit id=%s vanished before deletion", toolkit_id)
            raise NotFoundError(f"Toolkit with ID {toolkit_id} not found")
        logger.info("Toolkit deleted id=%s", toolkit_id)
        self._notify("Safety items removed", f"{toolkit.name} was removed from stock", "medium", toolkit.id)
        return toolkit

    def delete_variant(self, toolkit_id: str, variant_id: str) -> Optional[Toolkit]:
        """
        Remove a variant from a toolkit.

        Returns the updated toolkit, or None when the removed variant was the
        last one and the toolkit itself was deleted.
        """
        logger.info("Deleting variant toolkit_id=%s variant_id=%s", toolkit_id, variant_id)
        for attempt in range(1, settings.SAVE_RETRY_LIMIT + 1):
            toolkit = self.get_toolkit(toolkit_id)
            variant = toolkit.delete_variant(variant_id)
            try:
                if toolkit.variants:
                    self._repo.save(toolkit)
                else:
                    self._repo.delete(toolkit_id, expected_version=toolkit.version)
            except StaleToolkitError:
                logger.warning(
                    "Retrying variant delete toolkit_id=%s (attempt %s)", toolkit_id, attempt
                )
                continue

            description = f"Size:{variant.size} - Color:{variant.color} removed from {toolkit.name}"
            self._notify("Safety items removed", description, "medium", toolkit.id)
            if not toolkit.variants:
                logger.info("Toolkit id=%s deleted as no variants remain", toolkit_id)
                return None
            logger.info("Variant deleted toolkit_id=%s variant_id=%s", toolkit_id, variant_id)
            return toolkit

        raise ConcurrentUpdateError(f"Toolkit with ID {toolkit_id} kept changing; retry the request")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _mutate(self, toolkit_id: str, mutation: Callable[[Toolkit], R]) -> tuple[Toolkit, R]:
        """Run load → mutate → save, replaying the mutation on version conflicts."""
        for attempt in range(1, settings.SAVE_RETRY_LIMIT + 1):
            toolkit = self.get_toolkit(toolkit_id)
            result = mutation(toolkit)
            try:
                self._repo.save(toolkit)
            except StaleToolkitError:
                logger.warning(
                    "Retrying mutation toolkit_id=%s (attempt %s)", toolkit_id, attempt
                )
                continue
            return toolkit, result

        logger.error("Gave up on toolkit id=%s after %s attempts", toolkit_id, settings.SAVE_RETRY_LIMIT)
        raise ConcurrentUpdateError(f"Toolkit with ID {toolkit_id} kept changing; retry the request")

    def _notify(self, title: str, description: str, priority: str, source_id: str) -> None:
        """Fire-and-forget notification; never fails the calling operation."""
        try:
            self._notifier.create_notification(
                {
                    "title": title,
                    "description": description,
                    "priority": priority,
                    "sourceId": source_id,
                    "time": utcnow(),
                }
            )
            self._notifier.send_general_notification(None, title, description, priority, "normal")
        except Exception:
            logger.error("Failed to dispatch notification '%s'", title, exc_info=True)


def _variant_summary(variant) -> dict:
    return {
        "id": variant.id,
        "size": variant.size,
        "color": variant.color,
        "current_stock": variant.stock_count,
        "first_added_date": variant.first_added_date,
        "last_updated_date": variant.last_updated_date,
    }
