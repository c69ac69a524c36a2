"""Shared pytest fixtures for skis tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from skis.core import SkisDB


@pytest.fixture
def db(tmp_path: Path) -> Generator[SkisDB, None, None]:
    """Fresh SkisDB on a bare store file for each test."""
    d = SkisDB(tmp_path / "issues.db")
    d.initialize()
    yield d
    d.close()


@pytest.fixture
def repo(tmp_path: Path) -> Generator[SkisDB, None, None]:
    """A SkisDB created through SkisDB.init() at tmp_path (so .skis/ exists)."""
    d = SkisDB.init(tmp_path)
    yield d
    d.close()


@pytest.fixture
def populated_db(db: SkisDB) -> SkisDB:
    """SkisDB pre-populated with a representative issue set.

    Creates:
    - labels "bug" (ff0000) and "urgent"
    - A: open bug, labels ["bug", "urgent"]
    - B: open task, label ["bug"], body mentions "database"
    - C: closed request (not_planned)
    - D: open epic, soft-deleted
    - link A <-> B, one comment on B
    """
    db.create_label("bug", color="ff0000")
    db.create_label("urgent", description="Drop everything")
    a = db.create_issue("Login fails on Safari", type="bug", labels=["bug", "urgent"])
    b = db.create_issue("Refactor session store", body="Move sessions into the database", labels=["bug"])
    c = db.create_issue("Dark mode", type="request")
    db.close_issue(c.id, "not_planned")
    d = db.create_issue("Q3 roadmap", type="epic")
    db.delete_issue(d.id)
    db.add_link(a.id, b.id)
    db.add_comment(b.id, "Started on this")
    db._test_ids: dict[str, int] = {"a": a.id, "b": b.id, "c": c.id, "d": d.id}  # type: ignore[attr-defined]
    return db


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()
