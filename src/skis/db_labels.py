"""LabelsMixin: label definitions, looked up by case-insensitive name."""

from __future__ import annotations

import sqlite3

from skis.db_base import DBMixinProtocol
from skis.errors import DuplicateLabel, InvalidColor, LabelNotFound, ValidationError
from skis.models import Label
from skis.validation import is_valid_color, sanitize_label_name


class LabelsMixin(DBMixinProtocol):
    """Label Store.

    Names compare with the column's COLLATE NOCASE, so every ``name = ?``
    lookup below is case-insensitive.
    """

    def _find_label_row(self, conn: sqlite3.Connection, name: str) -> sqlite3.Row | None:
        row: sqlite3.Row | None = conn.execute("SELECT * FROM labels WHERE name = ?", (name.strip(),)).fetchone()
        return row

    def _resolve_label_ids(self, conn: sqlite3.Connection, names: list[str]) -> list[int]:
        """Map label names to ids, failing on the first unknown name."""
        ids: list[int] = []
        for name in names:
            row = self._find_label_row(conn, name)
            if row is None:
                raise LabelNotFound(name.strip())
            if row["id"] not in ids:
                ids.append(row["id"])
        return ids

    def create_label(
        self,
        name: str,
        *,
        description: str | None = None,
        color: str | None = None,
    ) -> Label:
        clean_name, err = sanitize_label_name(name)
        if err:
            raise ValidationError(err)
        if color is not None and not is_valid_color(color):
            raise InvalidColor(color)
        clean_description = description if description is not None and description.strip() else None

        with self._transaction() as conn:
            if self._find_label_row(conn, clean_name) is not None:
                raise DuplicateLabel(clean_name)
            try:
                cursor = conn.execute(
                    "INSERT INTO labels (name, description, color) VALUES (?, ?, ?)",
                    (clean_name, clean_description, color),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateLabel(clean_name) from exc
            label_id = cursor.lastrowid
            if label_id is None:  # pragma: no cover
                msg = "INSERT did not produce a lastrowid"
                raise RuntimeError(msg)
        return Label(id=label_id, name=clean_name, description=clean_description, color=color)

    def get_label(self, name: str) -> Label:
        with self._transaction(write=False) as conn:
            row = self._find_label_row(conn, name)
            if row is None:
                raise LabelNotFound(name.strip())
            return Label.from_row(row)

    def list_labels(self) -> list[Label]:
        """All labels, ordered by name (case-insensitive), then id."""
        with self._transaction(write=False) as conn:
            rows = conn.execute("SELECT * FROM labels ORDER BY name COLLATE NOCASE, id").fetchall()
            return [Label.from_row(r) for r in rows]

    def delete_label(self, name: str) -> Label:
        """Delete a label; its issue associations go with it (ON DELETE CASCADE)."""
        with self._transaction() as conn:
            row = self._find_label_row(conn, name)
            if row is None:
                raise LabelNotFound(name.strip())
            conn.execute("DELETE FROM labels WHERE id = ?", (row["id"],))
            return Label.from_row(row)
