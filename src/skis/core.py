"""Core database handle for the skis issue store.

Single source of truth for all SQLite operations. The CLI (and any other
front end) imports ``SkisDB`` from here. No daemon, no sync; direct SQLite
with WAL mode.

Convention-based discovery: each repository has a `.skis/` directory at its
root containing `issues.db` (SQLite) and, optionally, `config.json`. The
schema version lives inside the database (PRAGMA user_version), so copying
`issues.db` is enough to move a repository.
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from skis.db_base import translate_sqlite_error
from skis.db_comments import CommentsMixin
from skis.db_issues import IssuesMixin
from skis.db_labels import LabelsMixin
from skis.db_links import LinksMixin
from skis.db_schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from skis.db_search import SearchMixin
from skis.errors import AlreadyInitialized, NotARepository, StoreUnavailable
from skis.migrations import apply_pending_migrations
from skis.types.core import ProjectConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

SKIS_DIR_NAME = ".skis"
DB_FILENAME = "issues.db"
CONFIG_FILENAME = "config.json"
DEFAULT_BUSY_TIMEOUT_MS = 5000


def find_skis_root(start: Path) -> Path:
    """Walk up from start looking for a .skis/ directory.

    Returns the .skis/ directory path (not the repository root). Only
    ``start`` and its ancestors are examined.
    """
    current = Path(start).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / SKIS_DIR_NAME
        if candidate.is_dir():
            return candidate
    raise NotARepository(current)


def init_repository(path: Path) -> Path:
    """Create .skis/ at exactly ``path`` (no upward search). Returns the new directory."""
    skis_dir = Path(path).resolve() / SKIS_DIR_NAME
    if skis_dir.exists():
        raise AlreadyInitialized(skis_dir)
    try:
        skis_dir.mkdir(parents=True)
    except FileExistsError as exc:
        raise AlreadyInitialized(skis_dir) from exc
    return skis_dir


def read_config(skis_dir: Path) -> ProjectConfig:
    """Read .skis/config.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(version=1, busy_timeout_ms=DEFAULT_BUSY_TIMEOUT_MS)
    config_path = skis_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        loaded = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(loaded, dict):
        logger.warning("Ignoring %s: expected a JSON object", config_path)
        return defaults
    timeout = loaded.get("busy_timeout_ms", DEFAULT_BUSY_TIMEOUT_MS)
    if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout < 0:
        logger.warning("Invalid busy_timeout_ms %r in %s, using %d", timeout, config_path, DEFAULT_BUSY_TIMEOUT_MS)
        timeout = DEFAULT_BUSY_TIMEOUT_MS
    return ProjectConfig(version=loaded.get("version", 1), busy_timeout_ms=timeout)


def write_config(skis_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .skis/config.json."""
    config_path = skis_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


# ---------------------------------------------------------------------------
# SkisDB: the facade
# ---------------------------------------------------------------------------


class SkisDB(IssuesMixin, LabelsMixin, CommentsMixin, LinksMixin, SearchMixin):
    """One handle over one issue store.

    Every public method is a single transaction. A handle may be shared
    between threads: it owns one connection and serializes all access to it
    with an internal re-entrant lock. Other processes may open the same
    store; SQLite's locking arbitrates, and a lock that outlasts the busy
    timeout surfaces as ``StoreUnavailable``.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        check_same_thread: bool = False,
    ) -> None:
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: sqlite3.Connection | None = None
        self._check_same_thread = check_same_thread
        self._lock = threading.RLock()
        self._txn_depth = 0

    @classmethod
    def init(cls, path: Path) -> SkisDB:
        """Create a new repository at ``path`` and return an open handle on it."""
        skis_dir = init_repository(path)
        db = cls(skis_dir / DB_FILENAME)
        try:
            db.initialize()
        except Exception:
            db.close()
            raise
        logger.info("Initialized skis repository at %s", skis_dir)
        return db

    @classmethod
    def open(cls, start: Path) -> SkisDB:
        """Discover .skis/ from ``start`` upward and open its store.

        Raises NotARepository if no .skis/ is found or it holds no database.
        """
        skis_dir = find_skis_root(start)
        db_path = skis_dir / DB_FILENAME
        if not db_path.is_file():
            raise NotARepository(Path(start))
        config = read_config(skis_dir)
        db = cls(db_path, busy_timeout_ms=config.get("busy_timeout_ms", DEFAULT_BUSY_TIMEOUT_MS))
        try:
            db.initialize()
        except Exception:
            db.close()
            raise
        return db

    @property
    def skis_dir(self) -> Path:
        return self.db_path.parent

    def __enter__(self) -> SkisDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=self.busy_timeout_ms / 1000,
                    isolation_level="DEFERRED",
                    check_same_thread=self._check_same_thread,
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA foreign_keys=ON")
                conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
            except sqlite3.Error as exc:
                raise translate_sqlite_error(exc) from exc
            self._conn = conn
        return self._conn

    def initialize(self) -> None:
        """Create tables (if new) or migrate (if existing).

        A fresh database (user_version == 0) gets SCHEMA_SQL and the current
        version stamp in one transaction. An existing database is brought up
        to CURRENT_SCHEMA_VERSION one migration at a time. Already-current
        stores are left untouched.
        """
        with self._lock:
            try:
                if self.get_schema_version() == 0:
                    self._create_schema()
                else:
                    applied = apply_pending_migrations(self.conn, CURRENT_SCHEMA_VERSION)
                    if applied:
                        logger.info("Migrated %s to schema v%d", self.db_path, CURRENT_SCHEMA_VERSION)
            except sqlite3.Error as exc:
                raise translate_sqlite_error(exc) from exc

    def _create_schema(self) -> None:
        conn = self.conn
        try:
            # executescript() commits first, so the transaction lives in the script itself.
            conn.executescript(
                f"BEGIN IMMEDIATE;\n{SCHEMA_SQL}\nPRAGMA user_version = {CURRENT_SCHEMA_VERSION};\nCOMMIT;\n"
            )
        except sqlite3.Error:
            if conn.in_transaction:
                conn.rollback()
            raise
        logger.info("Created schema v%d in %s", CURRENT_SCHEMA_VERSION, self.db_path)

    def get_schema_version(self) -> int:
        """Return the current schema version from PRAGMA user_version."""
        with self._lock:
            result: int = self.conn.execute("PRAGMA user_version").fetchone()[0]
            return result

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @contextlib.contextmanager
    def _transaction(self, *, write: bool = True) -> Iterator[sqlite3.Connection]:
        """Run the enclosed block as one transaction.

        Writes take the database write lock up front (BEGIN IMMEDIATE) so a
        check-then-write sequence cannot interleave with another writer.
        Nested use joins the outer transaction. sqlite3 failures are
        translated into the skis error taxonomy after rollback.
        """
        with self._lock:
            conn = self.conn
            if self._txn_depth:
                self._txn_depth += 1
                try:
                    yield conn
                finally:
                    self._txn_depth -= 1
                return

            try:
                conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            except sqlite3.Error as exc:
                err = translate_sqlite_error(exc)
                if isinstance(err, StoreUnavailable):
                    logger.warning("Store %s unavailable: %s", self.db_path, exc)
                raise err from exc

            self._txn_depth = 1
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                err = translate_sqlite_error(exc)
                if isinstance(err, StoreUnavailable):
                    logger.warning("Store %s unavailable: %s", self.db_path, exc)
                raise err from exc
            except BaseException:
                conn.rollback()
                raise
            finally:
                self._txn_depth = 0
