"""Database schema definitions for the skis issue store.

Contains the canonical SQL schema, the legacy V1 schema (for migration tests),
and the current schema version constant.

Engine-level guarantees (CHECK, UNIQUE COLLATE NOCASE, guard triggers):
  - issue type and state are members of their closed sets
  - an open issue has no state_reason and no closed_at
  - state_reason is completed / not_planned / NULL, titles are never blank
  - label names are unique case-insensitively
  - a link row always stores the lower issue id first
"""

from __future__ import annotations

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS issues (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    title        TEXT NOT NULL,
    body         TEXT,
    type         TEXT NOT NULL DEFAULT 'task' CHECK (type IN ('epic', 'task', 'bug', 'request')),
    state        TEXT NOT NULL DEFAULT 'open' CHECK (state IN ('open', 'closed')),
    state_reason TEXT CHECK (state_reason IN ('completed', 'not_planned', NULL)),
    created_at   TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at   TEXT NOT NULL DEFAULT (datetime('now')),
    closed_at    TEXT,
    deleted_at   TEXT,
    CHECK ((state = 'open' AND state_reason IS NULL AND closed_at IS NULL) OR state = 'closed')
);

CREATE INDEX IF NOT EXISTS idx_issues_type ON issues(type);
CREATE INDEX IF NOT EXISTS idx_issues_state ON issues(state);
CREATE INDEX IF NOT EXISTS idx_issues_deleted ON issues(deleted_at);
CREATE INDEX IF NOT EXISTS idx_issues_created ON issues(created_at);
CREATE INDEX IF NOT EXISTS idx_issues_updated ON issues(updated_at);

-- NULL inside IN (...) lets any state_reason through the CHECK above
CREATE TRIGGER IF NOT EXISTS issues_guard_insert BEFORE INSERT ON issues BEGIN
    SELECT CASE
        WHEN trim(new.title) = '' THEN RAISE(ABORT, 'CHECK constraint failed: issue title must not be empty')
        WHEN new.state_reason IS NOT NULL AND new.state_reason NOT IN ('completed', 'not_planned')
            THEN RAISE(ABORT, 'CHECK constraint failed: invalid state_reason')
    END;
END;

CREATE TRIGGER IF NOT EXISTS issues_guard_update BEFORE UPDATE OF title, state_reason ON issues BEGIN
    SELECT CASE
        WHEN trim(new.title) = '' THEN RAISE(ABORT, 'CHECK constraint failed: issue title must not be empty')
        WHEN new.state_reason IS NOT NULL AND new.state_reason NOT IN ('completed', 'not_planned')
            THEN RAISE(ABORT, 'CHECK constraint failed: invalid state_reason')
    END;
END;

CREATE TABLE IF NOT EXISTS labels (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL UNIQUE COLLATE NOCASE,
    description TEXT,
    color       TEXT
);

CREATE TABLE IF NOT EXISTS issue_labels (
    issue_id INTEGER NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    label_id INTEGER NOT NULL REFERENCES labels(id) ON DELETE CASCADE,
    PRIMARY KEY (issue_id, label_id)
);

CREATE INDEX IF NOT EXISTS idx_issue_labels_label ON issue_labels(label_id);

CREATE TABLE IF NOT EXISTS comments (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    issue_id   INTEGER NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    body       TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_comments_issue ON comments(issue_id);

CREATE TABLE IF NOT EXISTS issue_links (
    issue_a_id INTEGER NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    issue_b_id INTEGER NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (issue_a_id, issue_b_id),
    CHECK (issue_a_id < issue_b_id)
);

CREATE INDEX IF NOT EXISTS idx_issue_links_a ON issue_links(issue_a_id);
CREATE INDEX IF NOT EXISTS idx_issue_links_b ON issue_links(issue_b_id);

-- Full-text search over title/body, kept in sync by triggers

CREATE VIRTUAL TABLE IF NOT EXISTS issues_fts USING fts5(
    title,
    body,
    content='issues',
    content_rowid='id'
);

CREATE TRIGGER IF NOT EXISTS issues_ai AFTER INSERT ON issues BEGIN
    INSERT INTO issues_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
END;

CREATE TRIGGER IF NOT EXISTS issues_ad AFTER DELETE ON issues BEGIN
    INSERT INTO issues_fts(issues_fts, rowid, title, body) VALUES ('delete', old.id, old.title, old.body);
END;

CREATE TRIGGER IF NOT EXISTS issues_au AFTER UPDATE OF title, body ON issues BEGIN
    INSERT INTO issues_fts(issues_fts, rowid, title, body) VALUES ('delete', old.id, old.title, old.body);
    INSERT INTO issues_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
END;
"""

# ---------------------------------------------------------------------------
# Legacy V1 schema (for migration testing)
#
# Stores created before explicit timestamps: engine-side updated_at trigger,
# FTS re-index on every update, SQLite 'YYYY-MM-DD HH:MM:SS' timestamps.
# ---------------------------------------------------------------------------

SCHEMA_V1_SQL = """\
CREATE TABLE issues (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    body TEXT,
    type TEXT NOT NULL DEFAULT 'task' CHECK (type IN ('epic', 'task', 'bug', 'request')),
    state TEXT NOT NULL DEFAULT 'open' CHECK (state IN ('open', 'closed')),
    state_reason TEXT CHECK (state_reason IN ('completed', 'not_planned', NULL)),
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    closed_at TEXT,
    deleted_at TEXT,
    CHECK ((state = 'open' AND state_reason IS NULL AND closed_at IS NULL) OR state = 'closed')
);

CREATE TRIGGER issues_update_timestamp AFTER UPDATE ON issues BEGIN
    UPDATE issues SET updated_at = datetime('now') WHERE id = new.id;
END;

CREATE TABLE labels (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    description TEXT,
    color TEXT
);

CREATE TABLE issue_labels (
    issue_id INTEGER NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    label_id INTEGER NOT NULL REFERENCES labels(id) ON DELETE CASCADE,
    PRIMARY KEY (issue_id, label_id)
);

CREATE TABLE comments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    issue_id INTEGER NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    body TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE issue_links (
    issue_a_id INTEGER NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    issue_b_id INTEGER NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (issue_a_id, issue_b_id),
    CHECK (issue_a_id < issue_b_id)
);

CREATE VIRTUAL TABLE issues_fts USING fts5(
    title,
    body,
    content='issues',
    content_rowid='id'
);

CREATE TRIGGER issues_ai AFTER INSERT ON issues BEGIN
    INSERT INTO issues_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
END;

CREATE TRIGGER issues_ad AFTER DELETE ON issues BEGIN
    INSERT INTO issues_fts(issues_fts, rowid, title, body) VALUES('delete', old.id, old.title, old.body);
END;

CREATE TRIGGER issues_au AFTER UPDATE ON issues BEGIN
    INSERT INTO issues_fts(issues_fts, rowid, title, body) VALUES('delete', old.id, old.title, old.body);
    INSERT INTO issues_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
END;

CREATE INDEX idx_issues_type ON issues(type);
CREATE INDEX idx_issues_state ON issues(state);
CREATE INDEX idx_issues_deleted ON issues(deleted_at);
CREATE INDEX idx_issues_created ON issues(created_at);
CREATE INDEX idx_issues_updated ON issues(updated_at);
CREATE INDEX idx_comments_issue ON comments(issue_id);
CREATE INDEX idx_issue_links_a ON issue_links(issue_a_id);
CREATE INDEX idx_issue_links_b ON issue_links(issue_b_id);
"""

CURRENT_SCHEMA_VERSION = 2
