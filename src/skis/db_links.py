"""LinksMixin: symmetric, untyped links between issues.

Every entry point normalizes its two ids through ``LinkPair.of`` before
touching the table, so (a, b) and (b, a) always address the same row.
"""

from __future__ import annotations

import sqlite3

from skis.db_base import DBMixinProtocol, _now_iso
from skis.errors import DuplicateLink
from skis.models import Issue, IssueLink, LinkPair


class LinksMixin(DBMixinProtocol):
    """Link Store."""

    def add_link(self, a: int, b: int) -> IssueLink:
        pair = LinkPair.of(a, b)
        now = _now_iso()
        with self._transaction() as conn:
            self._require_issue(conn, a)
            self._require_issue(conn, b)
            existing = conn.execute(
                "SELECT 1 FROM issue_links WHERE issue_a_id = ? AND issue_b_id = ?",
                (pair.low, pair.high),
            ).fetchone()
            if existing is not None:
                raise DuplicateLink(pair.low, pair.high)
            try:
                conn.execute(
                    "INSERT INTO issue_links (issue_a_id, issue_b_id, created_at) VALUES (?, ?, ?)",
                    (pair.low, pair.high, now),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateLink(pair.low, pair.high) from exc
        return IssueLink(issue_a_id=pair.low, issue_b_id=pair.high, created_at=now)

    def remove_link(self, a: int, b: int) -> bool:
        """Remove a link. Returns False (no error) when no such link exists."""
        pair = LinkPair.of(a, b)
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM issue_links WHERE issue_a_id = ? AND issue_b_id = ?",
                (pair.low, pair.high),
            )
            return cursor.rowcount > 0

    def _linked_ids(self, conn: sqlite3.Connection, issue_id: int) -> set[int]:
        rows = conn.execute(
            "SELECT issue_b_id AS other FROM issue_links WHERE issue_a_id = ? "
            "UNION SELECT issue_a_id AS other FROM issue_links WHERE issue_b_id = ?",
            (issue_id, issue_id),
        ).fetchall()
        return {r["other"] for r in rows}

    def linked_ids(self, issue_id: int) -> set[int]:
        """Ids linked to ``issue_id`` from either side of the stored pair."""
        with self._transaction(write=False) as conn:
            self._require_issue(conn, issue_id)
            return self._linked_ids(conn, issue_id)

    def get_issue_links(self, issue_id: int) -> list[IssueLink]:
        with self._transaction(write=False) as conn:
            self._require_issue(conn, issue_id)
            rows = conn.execute(
                "SELECT * FROM issue_links WHERE issue_a_id = ? OR issue_b_id = ? ORDER BY issue_a_id, issue_b_id",
                (issue_id, issue_id),
            ).fetchall()
            return [IssueLink.from_row(r) for r in rows]

    def get_linked_issues(self, issue_id: int) -> list[Issue]:
        """Linked issues (soft-deleted ones included), ordered by id."""
        with self._transaction(write=False) as conn:
            self._require_issue(conn, issue_id)
            return self._build_issues(conn, sorted(self._linked_ids(conn, issue_id)))
