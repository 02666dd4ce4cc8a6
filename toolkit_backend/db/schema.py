"""
SQL DDL statements for all application tables.
Tables are created in dependency order so foreign keys resolve correctly.

A toolkit is stored as one row in `toolkits` plus its `variants` and their
`stock_history` rows; deleting the toolkit cascades through the subtree.

Migration helpers run ALTER TABLE only when a column does not yet exist,
making them safe to call on every startup (idempotent).
"""
from toolkit_backend.db.database import get_connection

# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

CREATE_TOOLKITS_TABLE = """
CREATE TABLE IF NOT EXISTS toolkits (
    id              TEXT    PRIMARY KEY,
    name            TEXT    NOT NULL,
    name_key        TEXT    NOT NULL UNIQUE,
    type            TEXT    NOT NULL,
    total_stock     INTEGER NOT NULL DEFAULT 0,
    overall_status  TEXT    NOT NULL DEFAULT 'out'
                            CHECK(overall_status IN ('available', 'low', 'out')),
    version         INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL
);
"""

CREATE_VARIANTS_TABLE = """
CREATE TABLE IF NOT EXISTS variants (
    id                  TEXT    PRIMARY KEY,
    toolkit_id          TEXT    NOT NULL REFERENCES toolkits(id) ON DELETE CASCADE,
    position            INTEGER NOT NULL,
    size                TEXT    NOT NULL DEFAULT 'N/A',
    color               TEXT    NOT NULL DEFAULT 'N/A',
    stock_count         INTEGER NOT NULL DEFAULT 0
                                CHECK(stock_count >= 0),
    min_stock_level     INTEGER NOT NULL DEFAULT 5
                                CHECK(min_stock_level >= 1),
    status              TEXT    NOT NULL DEFAULT 'available'
                                CHECK(status IN ('available', 'low', 'out')),
    inuse               INTEGER NOT NULL DEFAULT 0,
    first_added_date    TEXT    NOT NULL,
    last_updated_date   TEXT    NOT NULL
);
"""

CREATE_STOCK_HISTORY_TABLE = """
CREATE TABLE IF NOT EXISTS stock_history (
    id              TEXT    PRIMARY KEY,
    variant_id      TEXT    NOT NULL REFERENCES variants(id) ON DELETE CASCADE,
    sequence        INTEGER NOT NULL,
    action          TEXT    NOT NULL
                            CHECK(action IN ('initial', 'added', 'updated', 'reduced')),
    previous_stock  INTEGER NOT NULL DEFAULT 0,
    new_stock       INTEGER NOT NULL,
    change_amount   INTEGER NOT NULL,
    reason          TEXT    NOT NULL DEFAULT '',
    updated_by      TEXT    NOT NULL DEFAULT 'System',
    person          TEXT,
    timestamp       TEXT    NOT NULL,
    UNIQUE (variant_id, sequence)
);
"""

CREATE_NOTIFICATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS notifications (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       TEXT    NOT NULL,
    description TEXT    NOT NULL DEFAULT '',
    priority    TEXT    NOT NULL DEFAULT 'medium',
    source_id   TEXT,
    time        TEXT    NOT NULL,
    created_at  TEXT    NOT NULL
);
"""

CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_toolkits_created_at ON toolkits (created_at)",
    "CREATE INDEX IF NOT EXISTS idx_variants_toolkit ON variants (toolkit_id, position)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_created_at ON notifications (created_at)",
]

# ---------------------------------------------------------------------------
# Incremental migrations (idempotent – safe to run every startup)
# ---------------------------------------------------------------------------

MIGRATIONS = [
    # Hand-over recipient was added to the ledger after the first release
    ("stock_history", "person", "ALTER TABLE stock_history ADD COLUMN person TEXT"),
]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ALL_TABLES = [
    CREATE_TOOLKITS_TABLE,
    CREATE_VARIANTS_TABLE,
    CREATE_STOCK_HISTORY_TABLE,
    CREATE_NOTIFICATIONS_TABLE,
]


def _column_exists(conn, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return any(r["name"] == column for r in rows)


def create_tables() -> None:
    """Create all tables and apply incremental migrations."""
    conn = get_connection()
    try:
        cursor = conn.cursor()

        # 1. Create tables (IF NOT EXISTS – safe on every restart)
        for ddl in ALL_TABLES:
            cursor.execute(ddl)
        for ddl in CREATE_INDEXES:
            cursor.execute(ddl)

        # 2. Run migrations only when the column is missing
        for table, column, alter_sql in MIGRATIONS:
            if not _column_exists(conn, table, column):
                cursor.execute(alter_sql)

        conn.commit()
    finally:
        conn.close()
