"""
Repository layer for Toolkit aggregate persistence.
All SQL for the `toolkits`, `variants` and `stock_history` tables lives here.

Design rules enforced at DB level:
  - name_key is UNIQUE            →  one toolkit per case-insensitive name.
  - stock_count >= 0               →  enforced by a CHECK constraint.
  - (variant_id, sequence) UNIQUE  →  history rows are only ever appended.

A save writes the whole aggregate in one transaction and is guarded by the
toolkit's ``version`` column (optimistic concurrency).
"""
import sqlite3
from collections import defaultdict
from typing import Optional
import logging

from toolkit_backend.core.exceptions import PersistenceError, StaleToolkitError
from toolkit_backend.core.logging_config import log_db_timing
from toolkit_backend.models.stock_history import StockHistoryEntry, new_id
from toolkit_backend.models.toolkit import Toolkit, name_key
from toolkit_backend.models.variant import Variant

logger = logging.getLogger(__name__)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# Stays under the 999 bound-parameter limit of older SQLite builds.
HYDRATE_BATCH_SIZE = 500


def _batched(ids: list[str]) -> list[list[str]]:
    return [ids[i:i + HYDRATE_BATCH_SIZE] for i in range(0, len(ids), HYDRATE_BATCH_SIZE)]


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


class InventoryRepository:
    """Data access layer for toolkit aggregates."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Store the database connection for query execution."""
        logger.trace("Initializing InventoryRepository")
        self._conn = conn

    def next_id(self) -> str:
        """Generate an identifier for a toolkit that has not been saved yet."""
        return new_id()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @log_db_timing
    def get_by_id(self, toolkit_id: str) -> Optional[Toolkit]:
        """Return a fully hydrated toolkit by id, or None if missing."""
        logger.trace("Fetching toolkit id=%s", toolkit_id)
        row = self._conn.execute(
            "SELECT * FROM toolkits WHERE id = ?", (toolkit_id,)
        ).fetchone()
        return self._hydrate([row])[0] if row else None

    @log_db_timing
    def get_by_name(self, name: str) -> Optional[Toolkit]:
        """Return the toolkit whose name matches case-insensitively."""
        logger.trace("Fetching toolkit by name=%s", name)
        row = self._conn.execute(
            "SELECT * FROM toolkits WHERE name_key = ?", (name_key(name),)
        ).fetchone()
        return self._hydrate([row])[0] if row else None

    @log_db_timing
    def list_all(self) -> list[Toolkit]:
        """Return every toolkit, newest created first."""
        logger.trace("Listing toolkits")
        rows = self._conn.execute(
            "SELECT * FROM toolkits ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
        return self._hydrate(rows)

    @log_db_timing
    def search_by_name(self, term: str) -> list[Toolkit]:
        """Case-insensitive substring search on the toolkit name, newest first."""
        logger.trace("Searching toolkits term=%s", term)
        rows = self._conn.execute(
            """
            SELECT * FROM toolkits
             WHERE name_key LIKE ? ESCAPE '\\'
             ORDER BY created_at DESC, rowid DESC
            """,
            (f"%{_escape_like(term.strip().lower())}%",),
        ).fetchall()
        return self._hydrate(rows)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @log_db_timing
    def save(self, toolkit: Toolkit) -> Toolkit:
        """
        Persist the whole aggregate atomically.

        Derived fields are recomputed first. Raises StaleToolkitError when
        another writer saved the toolkit (or claimed its name) since it was
        loaded, and PersistenceError for any other storage failure.
        """
        toolkit.recompute()
        expected_version = toolkit.version
        try:
            with self._conn:
                if toolkit.is_new:
                    self._insert_toolkit(toolkit)
                else:
                    self._update_toolkit(toolkit, expected_version)
                self._write_variants(toolkit)
        except sqlite3.IntegrityError as exc:
            if toolkit.is_new and "name_key" in str(exc):
                logger.warning("Toolkit name '%s' was claimed concurrently", toolkit.name)
                raise StaleToolkitError(toolkit.id) from exc
            logger.error("Integrity error saving toolkit id=%s: %s", toolkit.id, exc)
            raise PersistenceError(str(exc), message="Failed to save toolkit") from exc
        except sqlite3.Error as exc:
            logger.error("Storage error saving toolkit id=%s: %s", toolkit.id, exc)
            raise PersistenceError(str(exc), message="Failed to save toolkit") from exc

        toolkit.version = expected_version + 1
        logger.info("Saved toolkit id=%s version=%s", toolkit.id, toolkit.version)
        return toolkit

    @log_db_timing
    def delete(self, toolkit_id: str, expected_version: Optional[int] = None) -> bool:
        """
        Remove a toolkit and, through cascades, its variants and history.

        With ``expected_version`` the delete only happens if nobody saved the
        toolkit in between; a lost race raises StaleToolkitError.
        """
        logger.info("Deleting toolkit id=%s", toolkit_id)
        try:
            with self._conn:
                if expected_version is None:
                    cursor = self._conn.execute(
                        "DELETE FROM toolkits WHERE id = ?", (toolkit_id,)
                    )
                else:
                    cursor = self._conn.execute(
                        "DELETE FROM toolkits WHERE id = ? AND version = ?",
                        (toolkit_id, expected_version),
                    )
        except sqlite3.Error as exc:
            logger.error("Storage error deleting toolkit id=%s: %s", toolkit_id, exc)
            raise PersistenceError(str(exc), message="Failed to delete toolkit") from exc
        logger.info("Toolkit delete affected %s rows", cursor.rowcount)
        if cursor.rowcount == 0 and expected_version is not None:
            raise StaleToolkitError(toolkit_id)
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _insert_toolkit(self, toolkit: Toolkit) -> None:
        self._conn.execute(
            """
            INSERT INTO toolkits (
                id, name, name_key, type, total_stock, overall_status,
                version, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)
            """,
            (
                toolkit.id,
                toolkit.name,
                toolkit.name_key,
                toolkit.type,
                toolkit.total_stock,
                toolkit.overall_status.value,
                toolkit.created_at.isoformat(),
                toolkit.updated_at.isoformat(),
            ),
        )

    def _update_toolkit(self, toolkit: Toolkit, expected_version: int) -> None:
        cursor = self._conn.execute(
            """
            UPDATE toolkits
               SET name = ?, name_key = ?, type = ?, total_stock = ?,
                   overall_status = ?, updated_at = ?, version = version + 1
             WHERE id = ? AND version = ?
            """,
            (
                toolkit.name,
                toolkit.name_key,
                toolkit.type,
                toolkit.total_stock,
                toolkit.overall_status.value,
                toolkit.updated_at.isoformat(),
                toolkit.id,
                expected_version,
            ),
        )
        if cursor.rowcount == 0:
            logger.warning(
                "Version check failed for toolkit id=%s expected=%s",
                toolkit.id,
                expected_version,
            )
            raise StaleToolkitError(toolkit.id)

    def _write_variants(self, toolkit: Toolkit) -> None:
        variant_ids = [variant.id for variant in toolkit.variants]
        placeholders = ", ".join("?" for _ in variant_ids)
        if variant_ids:
            self._conn.execute(
                f"DELETE FROM variants WHERE toolkit_id = ? AND id NOT IN ({placeholders})",
                (toolkit.id, *variant_ids),
            )
        else:
            self._conn.execute("DELETE FROM variants WHERE toolkit_id = ?", (toolkit.id,))

        for position, variant in enumerate(toolkit.variants):
            self._conn.execute(
                """
                INSERT INTO variants (
                    id, toolkit_id, position, size, color, stock_count,
                    min_stock_level, status, inuse, first_added_date, last_updated_date
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    position = excluded.position,
                    size = excluded.size,
                    color = excluded.color,
                    stock_count = excluded.stock_count,
                    min_stock_level = excluded.min_stock_level,
                    status = excluded.status,
                    inuse = excluded.inuse,
                    last_updated_date = excluded.last_updated_date
                """,
                (
                    variant.id,
                    toolkit.id,
                    position,
                    variant.size,
                    variant.color,
                    variant.stock_count,
                    variant.min_stock_level,
                    variant.status.value,
                    int(variant.inuse),
                    variant.first_added_date.isoformat(),
                    variant.last_updated_date.isoformat(),
                ),
            )
            self._append_history(variant)

    def _append_history(self, variant: Variant) -> None:
        # Existing rows are never updated; only entries not yet stored are inserted.
        self._conn.executemany(
            """
            INSERT OR IGNORE INTO stock_history (
                id, variant_id, sequence, action, previous_stock, new_stock,
                change_amount, reason, updated_by, person, timestamp
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    entry.id,
                    variant.id,
                    entry.sequence,
                    entry.action.value,
                    entry.previous_stock,
                    entry.new_stock,
                    entry.change_amount,
                    entry.reason,
                    entry.updated_by,
                    entry.person,
                    entry.timestamp.isoformat(),
                )
                for entry in variant.stock_history
            ],
        )

    def _hydrate(self, rows: list[sqlite3.Row]) -> list[Toolkit]:
        """Load variants and history for the given toolkit rows in bulk."""
        if not rows:
            return []

        variant_rows = []
        for batch in _batched([row["id"] for row in rows]):
            variant_rows.extend(
                self._conn.execute(
                    f"""
                    SELECT * FROM variants
                     WHERE toolkit_id IN ({_placeholders(batch)})
                     ORDER BY toolkit_id, position
                    """,
                    batch,
                ).fetchall()
            )

        history: dict[str, list[StockHistoryEntry]] = defaultdict(list)
        for batch in _batched([row["id"] for row in variant_rows]):
            history_rows = self._conn.execute(
                f"""
                SELECT * FROM stock_history
                 WHERE variant_id IN ({_placeholders(batch)})
                 ORDER BY variant_id, sequence
                """,
                batch,
            ).fetchall()
            for history_row in history_rows:
                history[history_row["variant_id"]].append(
                    StockHistoryEntry.from_row(history_row)
                )

        variants: dict[str, list[Variant]] = defaultdict(list)
        for variant_row in variant_rows:
            variants[variant_row["toolkit_id"]].append(
                Variant.from_row(variant_row, history[variant_row["id"]])
            )

        return [Toolkit.from_row(row, variants[row["id"]]) for row in rows]
