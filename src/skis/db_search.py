"""SearchMixin: filtered listing and full-text search over issues.

The FTS5 table ``issues_fts`` is an external-content index over
``issues(title, body)``; triggers keep it in step with every insert, update,
and delete inside the writing transaction, so a search always sees the
latest committed text.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Any

from skis.db_base import DBMixinProtocol, placeholders
from skis.models import Issue, IssueFilter, SortField, SortOrder

_NON_WORD = re.compile(r"[^\w\s]")


def fts_match_expression(query: str) -> str | None:
    """Turn free text into a safe FTS5 MATCH expression.

    Punctuation is dropped, each remaining token is quoted and prefix-matched,
    and tokens are ANDed. Returns None when nothing searchable is left.
    """
    tokens = _NON_WORD.sub(" ", query).split()
    if not tokens:
        return None
    return " AND ".join(f'"{t}"*' for t in tokens)


def build_filter_clause(flt: IssueFilter) -> tuple[str, list[Any]]:
    """Compose the WHERE clause for a filter (alias ``i`` for issues).

    Order: state, type, labels (AND), soft-delete visibility, full text.
    """
    conditions: list[str] = []
    params: list[Any] = []

    if flt.state is not None:
        conditions.append("i.state = ?")
        params.append(flt.state.value)
    if flt.type is not None:
        conditions.append("i.type = ?")
        params.append(flt.type.value)
    if flt.labels:
        conditions.append(
            "i.id IN (SELECT il.issue_id FROM issue_labels il JOIN labels l ON l.id = il.label_id "
            f"WHERE l.name IN ({placeholders(len(flt.labels))}) "
            "GROUP BY il.issue_id HAVING COUNT(DISTINCT l.id) = ?)"
        )
        params.extend(flt.labels)
        params.append(len(flt.labels))
    if not flt.include_deleted:
        conditions.append("i.deleted_at IS NULL")
    if flt.query is not None:
        match = fts_match_expression(flt.query)
        if match is None:
            conditions.append("0")
        else:
            conditions.append("i.id IN (SELECT rowid FROM issues_fts WHERE issues_fts MATCH ?)")
            params.append(match)

    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params


def build_order_clause(flt: IssueFilter) -> str:
    """ORDER BY for a filter; ties on the sort key fall back to id ascending."""
    direction = "ASC" if flt.order is SortOrder.ASC else "DESC"
    if flt.sort_by is SortField.ID:
        return f" ORDER BY i.id {direction}"
    return f" ORDER BY i.{flt.sort_by.column} {direction}, i.id ASC"


def _coerce_filter(flt: IssueFilter | None, criteria: dict[str, Any]) -> IssueFilter:
    base = flt if flt is not None else IssueFilter()
    return dataclasses.replace(base, **criteria) if criteria else base


class SearchMixin(DBMixinProtocol):
    """Search & Filter Engine."""

    def list_issues(self, filter: IssueFilter | None = None, **criteria: Any) -> list[Issue]:
        """List issues matching a filter.

        Pass an ``IssueFilter``, keyword criteria (``state="closed"``,
        ``labels=["bug"]``, ``include_deleted=True`` ...), or both; keywords
        override the filter's fields. Defaults: open, not deleted, most
        recently updated first, 30 per page.
        """
        flt = _coerce_filter(filter, criteria)
        where, params = build_filter_clause(flt)
        order = build_order_clause(flt)
        with self._transaction(write=False) as conn:
            rows = conn.execute(
                f"SELECT i.id FROM issues i{where}{order} LIMIT ? OFFSET ?",
                [*params, flt.limit, flt.offset],
            ).fetchall()
            return self._build_issues(conn, [r["id"] for r in rows])

    def search_issues(self, query: str, filter: IssueFilter | None = None, **criteria: Any) -> list[Issue]:
        """Full-text search over title and body, intersected with the filter."""
        flt = dataclasses.replace(_coerce_filter(filter, criteria), query=query)
        return self.list_issues(flt)
