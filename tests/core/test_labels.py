"""Tests for the label store."""

from __future__ import annotations

import pytest

from skis.core import SkisDB
from skis.errors import DuplicateLabel, InvalidColor, LabelNotFound, ValidationError


class TestCreateLabel:
    def test_create_label(self, db: SkisDB) -> None:
        label = db.create_label("bug", description="Something is broken", color="ff0000")
        assert label.id == 1
        assert label.name == "bug"
        assert label.description == "Something is broken"
        assert label.color == "ff0000"

    def test_optional_fields_absent(self, db: SkisDB) -> None:
        label = db.create_label("plain")
        assert label.description is None
        assert label.color is None

    def test_uppercase_hex_accepted(self, db: SkisDB) -> None:
        assert db.create_label("loud", color="FF00AA").color == "FF00AA"

    @pytest.mark.parametrize("color", ["#ff0000", "ff000", "ff00000", "gg0000", "", "ff 000", "ＦＦ0000"])
    def test_invalid_color(self, db: SkisDB, color: str) -> None:
        with pytest.raises(InvalidColor) as exc_info:
            db.create_label("bad", color=color)
        assert exc_info.value.color == color
        assert db.list_labels() == []

    def test_case_insensitive_duplicate(self, db: SkisDB) -> None:
        db.create_label("Bug")
        with pytest.raises(DuplicateLabel) as exc_info:
            db.create_label("bug")
        assert exc_info.value.name == "bug"
        assert [lbl.name for lbl in db.list_labels()] == ["Bug"]

    def test_empty_name_rejected(self, db: SkisDB) -> None:
        with pytest.raises(ValidationError):
            db.create_label("   ")

    def test_name_is_trimmed(self, db: SkisDB) -> None:
        assert db.create_label("  frontend ").name == "frontend"


class TestListAndGet:
    def test_list_ordered_by_name_case_insensitive(self, db: SkisDB) -> None:
        for name in ["zeta", "Alpha", "beta"]:
            db.create_label(name)
        assert [lbl.name for lbl in db.list_labels()] == ["Alpha", "beta", "zeta"]

    def test_get_label(self, db: SkisDB) -> None:
        created = db.create_label("Docs", color="0000ff")
        assert db.get_label("docs") == created

    def test_get_missing_label(self, db: SkisDB) -> None:
        with pytest.raises(LabelNotFound) as exc_info:
            db.get_label("nope")
        assert exc_info.value.name == "nope"


class TestDeleteLabel:
    def test_delete_label(self, db: SkisDB) -> None:
        db.create_label("temp")
        deleted = db.delete_label("TEMP")
        assert deleted.name == "temp"
        assert db.list_labels() == []

    def test_delete_cascades_to_issues(self, db: SkisDB) -> None:
        db.create_label("temp")
        db.create_label("keep")
        issue = db.create_issue("Tagged", labels=["temp", "keep"])
        db.delete_label("temp")
        assert db.get_issue(issue.id).labels == ["keep"]
        assert db.conn.execute("SELECT COUNT(*) FROM issue_labels").fetchone()[0] == 1

    def test_delete_missing_label(self, db: SkisDB) -> None:
        with pytest.raises(LabelNotFound):
            db.delete_label("ghost")

    def test_name_reusable_after_delete(self, db: SkisDB) -> None:
        db.create_label("again")
        db.delete_label("again")
        assert db.create_label("Again").name == "Again"
