"""Tests for the comment store."""

from __future__ import annotations

import pytest

from skis.core import SkisDB
from skis.errors import CommentNotFound, IssueNotFound, ValidationError


class TestAddAndList:
    def test_add_comment(self, db: SkisDB) -> None:
        issue = db.create_issue("Discuss")
        comment = db.add_comment(issue.id, "First!")
        assert comment.issue_id == issue.id
        assert comment.body == "First!"
        assert comment.created_at == comment.updated_at

    def test_add_to_missing_issue(self, db: SkisDB) -> None:
        with pytest.raises(IssueNotFound):
            db.add_comment(404, "Hello?")

    @pytest.mark.parametrize("body", ["", "   ", "\n\t"])
    def test_blank_body_rejected(self, db: SkisDB, body: str) -> None:
        issue = db.create_issue("Discuss")
        with pytest.raises(ValidationError, match="cannot be empty"):
            db.add_comment(issue.id, body)

    def test_comment_on_deleted_issue_allowed(self, db: SkisDB) -> None:
        issue = db.create_issue("Gone")
        db.delete_issue(issue.id)
        assert db.add_comment(issue.id, "Why was this removed?").issue_id == issue.id

    def test_list_oldest_first(self, db: SkisDB) -> None:
        issue = db.create_issue("Discuss")
        for text in ["one", "two", "three"]:
            db.add_comment(issue.id, text)
        assert [c.body for c in db.list_comments(issue.id)] == ["one", "two", "three"]

    def test_list_scoped_to_issue(self, db: SkisDB) -> None:
        a = db.create_issue("A")
        b = db.create_issue("B")
        db.add_comment(a.id, "on a")
        db.add_comment(b.id, "on b")
        assert [c.body for c in db.list_comments(b.id)] == ["on b"]

    def test_list_missing_issue(self, db: SkisDB) -> None:
        with pytest.raises(IssueNotFound):
            db.list_comments(5)

    def test_comments_do_not_touch_issue_updated_at(self, db: SkisDB) -> None:
        issue = db.create_issue("Discuss")
        comment = db.add_comment(issue.id, "note")
        db.update_comment(comment.id, "edited")
        assert db.get_issue(issue.id).updated_at == issue.updated_at


class TestUpdateAndDelete:
    def test_update_comment(self, db: SkisDB, monkeypatch: pytest.MonkeyPatch) -> None:
        issue = db.create_issue("Discuss")
        comment = db.add_comment(issue.id, "typo")
        monkeypatch.setattr("skis.db_comments._now_iso", lambda: "2099-01-01T00:00:00.000000+00:00")
        updated = db.update_comment(comment.id, "fixed")
        assert updated.body == "fixed"
        assert updated.created_at == comment.created_at
        assert updated.updated_at == "2099-01-01T00:00:00.000000+00:00"
        assert db.get_comment(comment.id) == updated

    def test_update_missing_comment(self, db: SkisDB) -> None:
        with pytest.raises(CommentNotFound) as exc_info:
            db.update_comment(77, "text")
        assert exc_info.value.comment_id == 77
        assert str(exc_info.value) == "Comment #77 not found"

    def test_update_blank_body_rejected(self, db: SkisDB) -> None:
        issue = db.create_issue("Discuss")
        comment = db.add_comment(issue.id, "keep me")
        with pytest.raises(ValidationError):
            db.update_comment(comment.id, " ")
        assert db.get_comment(comment.id).body == "keep me"

    def test_delete_comment(self, db: SkisDB) -> None:
        issue = db.create_issue("Discuss")
        first = db.add_comment(issue.id, "one")
        db.add_comment(issue.id, "two")
        db.delete_comment(first.id)
        assert [c.body for c in db.list_comments(issue.id)] == ["two"]
        with pytest.raises(CommentNotFound):
            db.get_comment(first.id)

    def test_delete_missing_comment(self, db: SkisDB) -> None:
        with pytest.raises(CommentNotFound):
            db.delete_comment(1)

    def test_comments_cascade_with_issue_row(self, db: SkisDB) -> None:
        issue = db.create_issue("Hard removal")
        db.add_comment(issue.id, "bye")
        db.conn.execute("DELETE FROM issues WHERE id = ?", (issue.id,))
        db.conn.commit()
        assert db.conn.execute("SELECT COUNT(*) FROM comments").fetchone()[0] == 0
