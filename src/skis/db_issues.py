"""IssuesMixin: issue CRUD, the open/closed state machine, soft delete, and issue labels.

All methods access ``self._transaction()`` and the other mixins' helpers via
Python's MRO when composed into ``SkisDB``.
"""

from __future__ import annotations

import sqlite3
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from skis.db_base import DBMixinProtocol, _now_iso, placeholders
from skis.errors import InvalidStateTransition, IssueNotFound, ValidationError
from skis.models import Issue, IssueState, IssueType, Label, StateReason
from skis.validation import sanitize_body, sanitize_title

if TYPE_CHECKING:
    from skis.models import Comment


class IssuesMixin(DBMixinProtocol):
    """Issue Store.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``SkisDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:

        def _resolve_label_ids(self, conn: sqlite3.Connection, names: list[str]) -> list[int]: ...
        def _insert_comment(self, conn: sqlite3.Connection, issue_id: int, body: str, now: str) -> Comment: ...

    # -- Row helpers ---------------------------------------------------------

    def _require_issue(self, conn: sqlite3.Connection, issue_id: int) -> sqlite3.Row:
        row: sqlite3.Row | None = conn.execute("SELECT * FROM issues WHERE id = ?", (issue_id,)).fetchone()
        if row is None:
            raise IssueNotFound(issue_id)
        return row

    def _build_issues(self, conn: sqlite3.Connection, issue_ids: list[int]) -> list[Issue]:
        """Load issues with their label names, preserving the order of ``issue_ids``."""
        if not issue_ids:
            return []
        marks = placeholders(len(issue_ids))
        rows = conn.execute(f"SELECT * FROM issues WHERE id IN ({marks})", issue_ids).fetchall()
        labels: defaultdict[int, list[str]] = defaultdict(list)
        label_rows = conn.execute(
            f"SELECT il.issue_id, l.name FROM issue_labels il JOIN labels l ON l.id = il.label_id "
            f"WHERE il.issue_id IN ({marks}) ORDER BY l.name COLLATE NOCASE, l.id",
            issue_ids,
        ).fetchall()
        for lr in label_rows:
            labels[lr["issue_id"]].append(lr["name"])
        by_id = {row["id"]: Issue.from_row(row, labels.get(row["id"])) for row in rows}
        return [by_id[i] for i in issue_ids if i in by_id]

    def _load_issue(self, conn: sqlite3.Connection, issue_id: int) -> Issue:
        issues = self._build_issues(conn, [issue_id])
        if not issues:
            raise IssueNotFound(issue_id)
        return issues[0]

    # -- CRUD ----------------------------------------------------------------

    def create_issue(
        self,
        title: str,
        *,
        body: str | None = None,
        type: str | IssueType = IssueType.TASK,
        labels: list[str] | None = None,
    ) -> Issue:
        """Create an open issue. Every label must already exist, or nothing is created."""
        clean_title, err = sanitize_title(title)
        if err:
            raise ValidationError(err)
        clean_body, err = sanitize_body(body)
        if err:
            raise ValidationError(err)
        issue_type = IssueType.parse(type)
        now = _now_iso()

        with self._transaction() as conn:
            label_ids = self._resolve_label_ids(conn, list(labels or []))
            cursor = conn.execute(
                "INSERT INTO issues (title, body, type, state, created_at, updated_at) VALUES (?, ?, ?, 'open', ?, ?)",
                (clean_title, clean_body, issue_type.value, now, now),
            )
            issue_id = cursor.lastrowid
            if issue_id is None:  # pragma: no cover
                msg = "INSERT did not produce a lastrowid"
                raise RuntimeError(msg)
            conn.executemany(
                "INSERT OR IGNORE INTO issue_labels (issue_id, label_id) VALUES (?, ?)",
                [(issue_id, label_id) for label_id in label_ids],
            )
            return self._load_issue(conn, issue_id)

    def get_issue(self, issue_id: int) -> Issue:
        """Return an issue whether or not it is soft-deleted."""
        with self._transaction(write=False) as conn:
            return self._load_issue(conn, issue_id)

    def update_issue(
        self,
        issue_id: int,
        *,
        title: str | None = None,
        body: str | None = None,
        type: str | IssueType | None = None,
    ) -> Issue:
        """Update only the supplied fields.

        ``body=""`` clears the body. Supplying any field refreshes ``updated_at``
        once, even when the value is unchanged; a call with no fields is a no-op.
        """
        clean_title: str | None = None
        if title is not None:
            clean_title, err = sanitize_title(title)
            if err:
                raise ValidationError(err)
        clean_body, err = sanitize_body(body)
        if err:
            raise ValidationError(err)
        issue_type = IssueType.parse(type) if type is not None else None

        with self._transaction() as conn:
            self._require_issue(conn, issue_id)
            updates: dict[str, Any] = {}
            if clean_title is not None:
                updates["title"] = clean_title
            if body is not None:
                updates["body"] = clean_body
            if issue_type is not None:
                updates["type"] = issue_type.value

            if updates:
                updates["updated_at"] = _now_iso()
                set_clause = ", ".join(f"{col} = ?" for col in updates)
                conn.execute(f"UPDATE issues SET {set_clause} WHERE id = ?", [*updates.values(), issue_id])
            return self._load_issue(conn, issue_id)

    # -- State machine -------------------------------------------------------

    def close_issue(
        self,
        issue_id: int,
        reason: str | StateReason = StateReason.COMPLETED,
        *,
        comment: str | None = None,
    ) -> Issue:
        """Close an open issue, optionally adding a closing comment in the same transaction."""
        state_reason = StateReason.parse(reason)
        closing_comment = comment if comment is not None and comment.strip() else None
        now = _now_iso()

        with self._transaction() as conn:
            current = self._require_issue(conn, issue_id)
            if current["state"] == IssueState.CLOSED:
                raise InvalidStateTransition(issue_id, IssueState.CLOSED.value)
            conn.execute(
                "UPDATE issues SET state = 'closed', state_reason = ?, closed_at = ?, updated_at = ? WHERE id = ?",
                (state_reason.value, now, now, issue_id),
            )
            if closing_comment is not None:
                self._insert_comment(conn, issue_id, closing_comment, now)
            return self._load_issue(conn, issue_id)

    def reopen_issue(self, issue_id: int) -> Issue:
        """Reopen a closed issue, clearing state_reason and closed_at together."""
        with self._transaction() as conn:
            current = self._require_issue(conn, issue_id)
            if current["state"] == IssueState.OPEN:
                raise InvalidStateTransition(issue_id, IssueState.OPEN.value)
            conn.execute(
                "UPDATE issues SET state = 'open', state_reason = NULL, closed_at = NULL, updated_at = ? WHERE id = ?",
                (_now_iso(), issue_id),
            )
            return self._load_issue(conn, issue_id)

    # -- Soft delete ---------------------------------------------------------

    def delete_issue(self, issue_id: int) -> Issue:
        """Soft-delete an issue. Deleting an already-deleted issue changes nothing."""
        now = _now_iso()
        with self._transaction() as conn:
            self._require_issue(conn, issue_id)
            conn.execute(
                "UPDATE issues SET deleted_at = ?, updated_at = ? WHERE id = ? AND deleted_at IS NULL",
                (now, now, issue_id),
            )
            return self._load_issue(conn, issue_id)

    def restore_issue(self, issue_id: int) -> Issue:
        """Clear deleted_at. Restoring a live issue is a no-op."""
        with self._transaction() as conn:
            self._require_issue(conn, issue_id)
            conn.execute(
                "UPDATE issues SET deleted_at = NULL, updated_at = ? WHERE id = ? AND deleted_at IS NOT NULL",
                (_now_iso(), issue_id),
            )
            return self._load_issue(conn, issue_id)

    # -- Issue labels --------------------------------------------------------

    def add_label(self, issue_id: int, name: str) -> bool:
        """Attach an existing label. Returns False if it was already attached."""
        with self._transaction() as conn:
            self._require_issue(conn, issue_id)
            (label_id,) = self._resolve_label_ids(conn, [name])
            cursor = conn.execute(
                "INSERT OR IGNORE INTO issue_labels (issue_id, label_id) VALUES (?, ?)",
                (issue_id, label_id),
            )
            return cursor.rowcount > 0

    def remove_label(self, issue_id: int, name: str) -> bool:
        """Detach a label. Returns False if it was not attached (or does not exist)."""
        with self._transaction() as conn:
            self._require_issue(conn, issue_id)
            cursor = conn.execute(
                "DELETE FROM issue_labels WHERE issue_id = ? AND label_id IN (SELECT id FROM labels WHERE name = ?)",
                (issue_id, name.strip()),
            )
            return cursor.rowcount > 0

    def get_issue_labels(self, issue_id: int) -> list[Label]:
        with self._transaction(write=False) as conn:
            self._require_issue(conn, issue_id)
            rows = conn.execute(
                "SELECT l.* FROM labels l JOIN issue_labels il ON il.label_id = l.id "
                "WHERE il.issue_id = ? ORDER BY l.name COLLATE NOCASE, l.id",
                (issue_id,),
            ).fetchall()
            return [Label.from_row(r) for r in rows]
