"""Tests for filtered listing, sorting, pagination, and full-text search."""

from __future__ import annotations

import pytest

from skis.core import SkisDB
from skis.errors import InvalidEnumValue, InvalidIssueType
from skis.models import IssueFilter, IssueState, SortField, SortOrder


def _ids(issues: list) -> list[int]:  # type: ignore[type-arg]
    return [i.id for i in issues]


def _set_times(db: SkisDB, issue_id: int, *, created: str, updated: str) -> None:
    db.conn.execute("UPDATE issues SET created_at = ?, updated_at = ? WHERE id = ?", (created, updated, issue_id))
    db.conn.commit()


class TestListFilters:
    def test_default_is_open_and_not_deleted(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert set(_ids(populated_db.list_issues())) == {ids["a"], ids["b"]}

    def test_state_closed(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert _ids(populated_db.list_issues(state="closed")) == [ids["c"]]

    @pytest.mark.parametrize("state", [None, "all", "ALL"])
    def test_state_all(self, populated_db: SkisDB, state: str | None) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert set(_ids(populated_db.list_issues(state=state))) == {ids["a"], ids["b"], ids["c"]}

    def test_include_deleted(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        issues = populated_db.list_issues(state="all", include_deleted=True)
        assert set(_ids(issues)) == set(ids.values())

    def test_type_filter(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert _ids(populated_db.list_issues(type="bug")) == [ids["a"]]
        assert _ids(populated_db.list_issues(type="epic")) == []
        assert _ids(populated_db.list_issues(type="epic", include_deleted=True)) == [ids["d"]]

    def test_single_label(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert set(_ids(populated_db.list_issues(labels=["bug"]))) == {ids["a"], ids["b"]}

    def test_labels_use_and_logic(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert _ids(populated_db.list_issues(labels=["bug", "urgent"])) == [ids["a"]]
        assert _ids(populated_db.list_issues(labels=["urgent", "BUG"])) == [ids["a"]]

    def test_and_logic_never_matches_either_alone(self, db: SkisDB) -> None:
        db.create_label("x")
        db.create_label("y")
        only_x = db.create_issue("only x", labels=["x"]).id
        only_y = db.create_issue("only y", labels=["y"]).id
        both = db.create_issue("both", labels=["x", "y"]).id
        result = _ids(db.list_issues(labels=["x", "y"]))
        assert result == [both]
        assert only_x not in result
        assert only_y not in result

    def test_duplicate_label_names_in_filter(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert set(_ids(populated_db.list_issues(labels=["bug", "Bug"]))) == {ids["a"], ids["b"]}

    def test_non_ascii_case_variants_are_distinct_labels(self, db: SkisDB) -> None:
        db.create_label("Äpfel")
        db.create_label("äpfel")
        upper_only = db.create_issue("upper only", labels=["Äpfel"]).id
        both = db.create_issue("both", labels=["Äpfel", "äpfel"]).id
        assert _ids(db.list_issues(labels=["Äpfel", "äpfel"])) == [both]
        assert set(_ids(db.list_issues(labels=["ÄPFEL"]))) == {upper_only, both}

    def test_unknown_label_matches_nothing(self, populated_db: SkisDB) -> None:
        assert populated_db.list_issues(labels=["nonexistent"]) == []

    def test_filter_object_and_criteria_combine(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        flt = IssueFilter(state=IssueState.CLOSED)
        assert _ids(populated_db.list_issues(flt)) == [ids["c"]]
        assert _ids(populated_db.list_issues(flt, state="open", type="bug")) == [ids["a"]]

    def test_invalid_filter_values(self, db: SkisDB) -> None:
        with pytest.raises(InvalidEnumValue):
            db.list_issues(state="pending")
        with pytest.raises(InvalidIssueType):
            db.list_issues(type="story")
        with pytest.raises(InvalidEnumValue):
            db.list_issues(sort_by="priority")
        with pytest.raises(InvalidEnumValue):
            db.list_issues(order="sideways")

    def test_listed_issues_carry_labels(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        by_id = {i.id: i for i in populated_db.list_issues()}
        assert by_id[ids["a"]].labels == ["bug", "urgent"]


class TestSortAndPaginate:
    @pytest.fixture
    def timed(self, db: SkisDB) -> dict[str, int]:
        first = db.create_issue("first").id
        second = db.create_issue("second").id
        third = db.create_issue("third").id
        _set_times(db, first, created="2024-01-01T00:00:00+00:00", updated="2024-03-01T00:00:00+00:00")
        _set_times(db, second, created="2024-01-02T00:00:00+00:00", updated="2024-02-01T00:00:00+00:00")
        _set_times(db, third, created="2024-01-03T00:00:00+00:00", updated="2024-04-01T00:00:00+00:00")
        return {"first": first, "second": second, "third": third}

    def test_default_sort_updated_desc(self, db: SkisDB, timed: dict[str, int]) -> None:
        assert _ids(db.list_issues()) == [timed["third"], timed["first"], timed["second"]]

    def test_sort_created_asc(self, db: SkisDB, timed: dict[str, int]) -> None:
        result = db.list_issues(sort_by=SortField.CREATED, order=SortOrder.ASC)
        assert _ids(result) == [timed["first"], timed["second"], timed["third"]]

    def test_sort_id_desc(self, db: SkisDB, timed: dict[str, int]) -> None:
        assert _ids(db.list_issues(sort_by="id")) == [timed["third"], timed["second"], timed["first"]]

    def test_ties_break_on_id_ascending(self, db: SkisDB) -> None:
        ids = [db.create_issue(f"tie {n}").id for n in range(4)]
        for issue_id in ids:
            _set_times(db, issue_id, created="2024-01-01T00:00:00+00:00", updated="2024-01-01T00:00:00+00:00")
        assert _ids(db.list_issues()) == ids
        assert _ids(db.list_issues(order="asc")) == ids

    def test_limit_and_offset(self, db: SkisDB, timed: dict[str, int]) -> None:
        assert _ids(db.list_issues(limit=2)) == [timed["third"], timed["first"]]
        assert _ids(db.list_issues(limit=2, offset=2)) == [timed["second"]]
        assert db.list_issues(offset=10) == []

    def test_default_limit_is_30(self, db: SkisDB) -> None:
        for n in range(35):
            db.create_issue(f"bulk {n}")
        assert len(db.list_issues()) == 30
        assert len(db.list_issues(offset=30)) == 5

    def test_negative_paging_falls_back_to_defaults(self, db: SkisDB, timed: dict[str, int]) -> None:
        assert len(db.list_issues(limit=-1, offset=-5)) == 3


class TestSearch:
    def test_search_title(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert _ids(populated_db.search_issues("login")) == [ids["a"]]

    def test_search_body(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert _ids(populated_db.search_issues("database")) == [ids["b"]]

    def test_search_prefix(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert _ids(populated_db.search_issues("sess")) == [ids["b"]]

    def test_search_tokens_are_anded(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert _ids(populated_db.search_issues("login safari")) == [ids["a"]]
        assert populated_db.search_issues("login database") == []

    def test_search_respects_filter(self, populated_db: SkisDB) -> None:
        assert populated_db.search_issues("dark") == []
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert _ids(populated_db.search_issues("dark", state="all")) == [ids["c"]]

    def test_search_hides_deleted_by_default(self, populated_db: SkisDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert populated_db.search_issues("roadmap") == []
        assert _ids(populated_db.search_issues("roadmap", include_deleted=True)) == [ids["d"]]

    def test_body_update_reindexes(self, db: SkisDB) -> None:
        issue = db.create_issue("Plain title", body="nothing special")
        assert db.search_issues("xylophone") == []
        db.update_issue(issue.id, body="now mentions xylophone")
        assert _ids(db.search_issues("xylophone")) == [issue.id]
        db.update_issue(issue.id, body="gone again")
        assert db.search_issues("xylophone") == []

    def test_title_update_reindexes(self, db: SkisDB) -> None:
        issue = db.create_issue("Original wording")
        db.update_issue(issue.id, title="Replacement wording")
        assert db.search_issues("original") == []
        assert _ids(db.search_issues("replacement")) == [issue.id]

    def test_state_changes_keep_index_intact(self, db: SkisDB) -> None:
        issue = db.create_issue("Indexed title", body="indexed body")
        db.close_issue(issue.id)
        db.reopen_issue(issue.id)
        db.delete_issue(issue.id)
        db.restore_issue(issue.id)
        assert _ids(db.search_issues("indexed")) == [issue.id]
        # raises SQLITE_CORRUPT_VTAB if the index drifted from the content table
        db.conn.execute("INSERT INTO issues_fts(issues_fts, rank) VALUES ('integrity-check', 1)")
        db.conn.commit()

    @pytest.mark.parametrize("query", ['"', "AND", "NEAR(", "title:login", "*", "login)"])
    def test_fts_syntax_is_neutralized(self, populated_db: SkisDB, query: str) -> None:
        populated_db.search_issues(query)

    def test_query_without_tokens_matches_nothing(self, populated_db: SkisDB) -> None:
        assert populated_db.search_issues("   ") == []
        assert populated_db.search_issues("!!!") == []
