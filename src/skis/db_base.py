"""Shared utilities and Protocol for DB mixins."""

from __future__ import annotations

import sqlite3
from contextlib import AbstractContextManager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from skis.errors import ConstraintViolation, StoreError, StoreUnavailable

if TYPE_CHECKING:
    from skis.models import Issue

_UNAVAILABLE_MARKERS = (
    "database is locked",
    "database is busy",
    "database table is locked",
    "disk i/o error",
    "unable to open database",
    "readonly database",
)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


def translate_sqlite_error(exc: sqlite3.Error) -> StoreError | ConstraintViolation:
    """Map a raw sqlite3 failure onto the skis error taxonomy."""
    if isinstance(exc, sqlite3.IntegrityError):
        return ConstraintViolation(str(exc))
    text = str(exc).lower()
    if isinstance(exc, sqlite3.OperationalError) and any(m in text for m in _UNAVAILABLE_MARKERS):
        return StoreUnavailable(str(exc))
    return StoreError(str(exc))


def placeholders(count: int) -> str:
    return ",".join("?" * count)


class DBMixinProtocol(Protocol):
    """Shared attributes and methods that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check self.conn,
    self._transaction(), etc. Actual implementations are provided by
    SkisDB at composition time.
    """

    db_path: Path
    _conn: sqlite3.Connection | None

    @property
    def conn(self) -> sqlite3.Connection: ...

    def _transaction(self, *, write: bool = True) -> AbstractContextManager[sqlite3.Connection]: ...

    def _require_issue(self, conn: sqlite3.Connection, issue_id: int) -> sqlite3.Row: ...

    def _build_issues(self, conn: sqlite3.Connection, issue_ids: list[int]) -> list[Issue]: ...
