"""CommentsMixin: comments owned by an issue."""

from __future__ import annotations

import sqlite3

from skis.db_base import DBMixinProtocol, _now_iso
from skis.errors import CommentNotFound, ValidationError
from skis.models import Comment
from skis.validation import sanitize_comment_body


class CommentsMixin(DBMixinProtocol):
    """Comment Store. A comment's timestamps never touch its issue's updated_at."""

    def _insert_comment(self, conn: sqlite3.Connection, issue_id: int, body: str, now: str) -> Comment:
        cursor = conn.execute(
            "INSERT INTO comments (issue_id, body, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (issue_id, body, now, now),
        )
        comment_id = cursor.lastrowid
        if comment_id is None:  # pragma: no cover
            msg = "INSERT did not produce a lastrowid"
            raise RuntimeError(msg)
        return Comment(id=comment_id, issue_id=issue_id, body=body, created_at=now, updated_at=now)

    def _require_comment(self, conn: sqlite3.Connection, comment_id: int) -> sqlite3.Row:
        row: sqlite3.Row | None = conn.execute("SELECT * FROM comments WHERE id = ?", (comment_id,)).fetchone()
        if row is None:
            raise CommentNotFound(comment_id)
        return row

    def add_comment(self, issue_id: int, body: str) -> Comment:
        text, err = sanitize_comment_body(body)
        if err:
            raise ValidationError(err)
        with self._transaction() as conn:
            self._require_issue(conn, issue_id)
            return self._insert_comment(conn, issue_id, text, _now_iso())

    def get_comment(self, comment_id: int) -> Comment:
        with self._transaction(write=False) as conn:
            return Comment.from_row(self._require_comment(conn, comment_id))

    def list_comments(self, issue_id: int) -> list[Comment]:
        """Comments on an issue, oldest first."""
        with self._transaction(write=False) as conn:
            self._require_issue(conn, issue_id)
            rows = conn.execute(
                "SELECT * FROM comments WHERE issue_id = ? ORDER BY created_at, id",
                (issue_id,),
            ).fetchall()
            return [Comment.from_row(r) for r in rows]

    def update_comment(self, comment_id: int, body: str) -> Comment:
        text, err = sanitize_comment_body(body)
        if err:
            raise ValidationError(err)
        with self._transaction() as conn:
            self._require_comment(conn, comment_id)
            conn.execute(
                "UPDATE comments SET body = ?, updated_at = ? WHERE id = ?",
                (text, _now_iso(), comment_id),
            )
            return Comment.from_row(self._require_comment(conn, comment_id))

    def delete_comment(self, comment_id: int) -> None:
        with self._transaction() as conn:
            self._require_comment(conn, comment_id)
            conn.execute("DELETE FROM comments WHERE id = ?", (comment_id,))
