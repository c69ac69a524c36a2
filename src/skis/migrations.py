"""Schema migration framework for skis.

Migrations are version-keyed functions that transform the database schema
from one version to the next. Each receives a raw sqlite3.Connection and
runs inside the transaction the runner opens for it, so a failing step
leaves the store exactly at the previous version.

The migration runner:
  1. Reads the current schema version via PRAGMA user_version
  2. Applies each pending migration in ascending order
  3. Bumps user_version inside the same transaction as the migration
  4. Rolls back and raises MigrationError if a step fails

Adding a migration:
  1. Increment CURRENT_SCHEMA_VERSION in db_schema.py
  2. Add ``def migrate_v<N>_to_v<N+1>(conn) -> None`` here
  3. Register it in MIGRATIONS under key N
  4. Update SCHEMA_SQL to match the post-migration state
  5. Add a test in tests/test_migrations.py

Use the helpers below instead of raw DDL where one fits: they are safe to
re-run. Never call ``conn.commit()`` or ``executescript()`` inside a
migration; both end the runner's transaction early.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Protocol

from skis.errors import SchemaVersionError, StoreError

logger = logging.getLogger(__name__)


class MigrationFn(Protocol):
    """Protocol for migration functions."""

    def __call__(self, conn: sqlite3.Connection) -> None: ...


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

_LEGACY_TIMESTAMP_GLOB = "[0-9][0-9][0-9][0-9]-[0-9][0-9]-[0-9][0-9] [0-9][0-9]:[0-9][0-9]:[0-9][0-9]"

_TIMESTAMP_COLUMNS: dict[str, tuple[str, ...]] = {
    "issues": ("created_at", "updated_at", "closed_at", "deleted_at"),
    "comments": ("created_at", "updated_at"),
    "issue_links": ("created_at",),
}


def migrate_v1_to_v2(conn: sqlite3.Connection) -> None:
    """v1 → v2: application-stamped timestamps and engine-side guards.

    Changes:
      - drop trigger issues_update_timestamp (writers set updated_at themselves)
      - issues_au re-indexes FTS only when title or body change
      - 'YYYY-MM-DD HH:MM:SS' timestamps rewritten as ISO-8601 with +00:00
      - new triggers issues_guard_insert / issues_guard_update rejecting blank
        titles and unknown state_reason values
      - new index idx_issue_labels_label on issue_labels(label_id)
    """
    # Drop both triggers first so the timestamp rewrite below does not re-fire them.
    drop_trigger(conn, "issues_update_timestamp")
    drop_trigger(conn, "issues_au")
    conn.execute("""\
        CREATE TRIGGER IF NOT EXISTS issues_au AFTER UPDATE OF title, body ON issues BEGIN
            INSERT INTO issues_fts(issues_fts, rowid, title, body) VALUES ('delete', old.id, old.title, old.body);
            INSERT INTO issues_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
        END""")

    for table, columns in _TIMESTAMP_COLUMNS.items():
        for column in columns:
            # S608: table/column names are module constants
            conn.execute(
                f"UPDATE {table} SET {column} = replace({column}, ' ', 'T') || '+00:00' "  # noqa: S608
                f"WHERE {column} GLOB ?",
                (_LEGACY_TIMESTAMP_GLOB,),
            )

    for event, when in (("INSERT", "BEFORE INSERT"), ("UPDATE", "BEFORE UPDATE OF title, state_reason")):
        conn.execute(f"""\
            CREATE TRIGGER IF NOT EXISTS issues_guard_{event.lower()} {when} ON issues BEGIN
                SELECT CASE
                    WHEN trim(new.title) = '' THEN RAISE(ABORT, 'CHECK constraint failed: issue title must not be empty')
                    WHEN new.state_reason IS NOT NULL AND new.state_reason NOT IN ('completed', 'not_planned')
                        THEN RAISE(ABORT, 'CHECK constraint failed: invalid state_reason')
                END;
            END""")

    add_index(conn, "idx_issue_labels_label", "issue_labels", ["label_id"])


# Keys are the version being migrated FROM (the current user_version).
MIGRATIONS: dict[int, MigrationFn] = {
    1: migrate_v1_to_v2,
}


# ---------------------------------------------------------------------------
# Migration runner
# ---------------------------------------------------------------------------


class MigrationError(StoreError):
    """Raised when a migration fails."""

    def __init__(self, from_version: int, to_version: int, cause: Exception) -> None:
        self.from_version = from_version
        self.to_version = to_version
        self.cause = cause
        super().__init__(f"Migration v{from_version} → v{to_version} failed: {cause}")


def apply_pending_migrations(
    conn: sqlite3.Connection,
    target_version: int,
    migrations: dict[int, MigrationFn] | None = None,
) -> int:
    """Apply all pending migrations from the current version up to target_version.

    Args:
        conn: Open SQLite connection with no transaction in progress.
        target_version: CURRENT_SCHEMA_VERSION from db_schema.py.
        migrations: Registry override (tests); defaults to MIGRATIONS.

    Returns:
        Number of migrations applied (0 if already up to date).

    Raises:
        MigrationError: A step failed; the store stays at the last good version.
        SchemaVersionError: The store is newer than target_version.
    """
    registry = MIGRATIONS if migrations is None else migrations
    current: int = conn.execute("PRAGMA user_version").fetchone()[0]

    if current == target_version:
        return 0
    if current > target_version:
        raise SchemaVersionError(current, target_version)

    applied = 0
    for version in range(current, target_version):
        migration = registry.get(version)
        if migration is None:
            msg = f"No migration registered for v{version} → v{version + 1}"
            raise MigrationError(version, version + 1, KeyError(msg))

        logger.info("Applying migration v%d → v%d ...", version, version + 1)
        try:
            conn.execute("BEGIN IMMEDIATE")
            # Another process may have migrated while we waited for the lock.
            if conn.execute("PRAGMA user_version").fetchone()[0] != version:
                conn.rollback()
                continue
            migration(conn)
            conn.execute(f"PRAGMA user_version = {version + 1}")
            conn.commit()
        except Exception as exc:
            conn.rollback()
            raise MigrationError(version, version + 1, exc) from exc
        applied += 1
        logger.info("Migration v%d → v%d complete.", version, version + 1)

    return applied


# ---------------------------------------------------------------------------
# SQLite migration helpers
# ---------------------------------------------------------------------------


def add_index(
    conn: sqlite3.Connection,
    index_name: str,
    table: str,
    columns: list[str],
    *,
    unique: bool = False,
) -> None:
    unique_kw = "UNIQUE " if unique else ""
    conn.execute(f"CREATE {unique_kw}INDEX IF NOT EXISTS {index_name} ON {table}({', '.join(columns)})")


def drop_trigger(conn: sqlite3.Connection, trigger_name: str) -> None:
    conn.execute(f"DROP TRIGGER IF EXISTS {trigger_name}")
