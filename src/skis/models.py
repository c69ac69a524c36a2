"""Domain records and closed value sets for skis.

Enumerated text (issue type, state, state reason, sort field and order) is
parsed in exactly one place per set: the ``parse`` classmethod on each enum.
"""

from __future__ import annotations

import sqlite3
import string
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TypeVar

from skis.errors import InvalidEnumValue, InvalidIssueType, InvalidStateReason, SelfLink
from skis.types.core import CommentDict, IssueDict, IssueLinkDict, ISOTimestamp, LabelDict

DEFAULT_LIMIT = 30

_E = TypeVar("_E", bound=StrEnum)


def _lookup(cls: type[_E], value: str | _E, aliases: dict[str, str] | None = None) -> _E | None:
    if isinstance(value, cls):
        return value
    key = str(value).strip().lower()
    if aliases:
        key = aliases.get(key, key)
    try:
        return cls(key)
    except ValueError:
        return None


def _choices(cls: type[StrEnum]) -> list[str]:
    return [m.value for m in cls]


class IssueType(StrEnum):
    EPIC = "epic"
    TASK = "task"
    BUG = "bug"
    REQUEST = "request"

    @classmethod
    def parse(cls, value: str | IssueType) -> IssueType:
        member = _lookup(cls, value)
        if member is None:
            raise InvalidIssueType(str(value), _choices(cls))
        return member


class IssueState(StrEnum):
    OPEN = "open"
    CLOSED = "closed"

    @classmethod
    def parse(cls, value: str | IssueState) -> IssueState:
        member = _lookup(cls, value)
        if member is None:
            raise InvalidEnumValue("state", str(value), _choices(cls))
        return member


class StateReason(StrEnum):
    COMPLETED = "completed"
    NOT_PLANNED = "not_planned"

    @classmethod
    def parse(cls, value: str | StateReason) -> StateReason:
        member = _lookup(cls, value, {"notplanned": "not_planned", "not-planned": "not_planned"})
        if member is None:
            raise InvalidStateReason(str(value), _choices(cls))
        return member


class SortField(StrEnum):
    UPDATED = "updated"
    CREATED = "created"
    ID = "id"

    @classmethod
    def parse(cls, value: str | SortField) -> SortField:
        member = _lookup(cls, value)
        if member is None:
            raise InvalidEnumValue("sort field", str(value), _choices(cls))
        return member

    @property
    def column(self) -> str:
        return {"updated": "updated_at", "created": "created_at", "id": "id"}[self.value]


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | SortOrder) -> SortOrder:
        member = _lookup(cls, value, {"ascending": "asc", "descending": "desc"})
        if member is None:
            raise InvalidEnumValue("sort order", str(value), _choices(cls))
        return member


def parse_state_filter(value: str | IssueState | None) -> IssueState | None:
    """Parse a state filter; ``None`` and ``"all"`` mean no state predicate."""
    if value is None:
        return None
    if not isinstance(value, IssueState) and str(value).strip().lower() == "all":
        return None
    return IssueState.parse(value)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class Issue:
    id: int
    title: str
    body: str | None = None
    type: IssueType = IssueType.TASK
    state: IssueState = IssueState.OPEN
    state_reason: StateReason | None = None
    created_at: str = ""
    updated_at: str = ""
    closed_at: str | None = None
    deleted_at: str | None = None
    # Computed (not stored on the issue row)
    labels: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: sqlite3.Row, labels: list[str] | None = None) -> Issue:
        return cls(
            id=row["id"],
            title=row["title"],
            body=row["body"],
            type=IssueType(row["type"]),
            state=IssueState(row["state"]),
            state_reason=StateReason(row["state_reason"]) if row["state_reason"] else None,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            closed_at=row["closed_at"],
            deleted_at=row["deleted_at"],
            labels=list(labels or []),
        )

    @property
    def is_open(self) -> bool:
        return self.state is IssueState.OPEN

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> IssueDict:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "type": self.type.value,
            "state": self.state.value,
            "state_reason": self.state_reason.value if self.state_reason else None,
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
            "closed_at": ISOTimestamp(self.closed_at) if self.closed_at else None,
            "deleted_at": ISOTimestamp(self.deleted_at) if self.deleted_at else None,
            "labels": list(self.labels),
        }


@dataclass
class Label:
    id: int
    name: str
    description: str | None = None
    color: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Label:
        return cls(id=row["id"], name=row["name"], description=row["description"], color=row["color"])

    def to_dict(self) -> LabelDict:
        return {"id": self.id, "name": self.name, "description": self.description, "color": self.color}


@dataclass
class Comment:
    id: int
    issue_id: int
    body: str
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Comment:
        return cls(
            id=row["id"],
            issue_id=row["issue_id"],
            body=row["body"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> CommentDict:
        return {
            "id": self.id,
            "issue_id": self.issue_id,
            "body": self.body,
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
        }


@dataclass(frozen=True)
class LinkPair:
    """Canonical (low, high) identity of a link between two issues.

    Build with ``LinkPair.of(a, b)``; argument order never matters.
    """

    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low == self.high:
            raise SelfLink(self.low)
        if self.low > self.high:
            msg = f"LinkPair requires low < high, got ({self.low}, {self.high}); use LinkPair.of()"
            raise ValueError(msg)

    @classmethod
    def of(cls, a: int, b: int) -> LinkPair:
        if a == b:
            raise SelfLink(a)
        return cls(min(a, b), max(a, b))

    def other(self, issue_id: int) -> int:
        return self.high if issue_id == self.low else self.low


@dataclass
class IssueLink:
    issue_a_id: int
    issue_b_id: int
    created_at: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> IssueLink:
        return cls(issue_a_id=row["issue_a_id"], issue_b_id=row["issue_b_id"], created_at=row["created_at"])

    @property
    def pair(self) -> LinkPair:
        return LinkPair(self.issue_a_id, self.issue_b_id)

    def to_dict(self) -> IssueLinkDict:
        return {
            "issue_a_id": self.issue_a_id,
            "issue_b_id": self.issue_b_id,
            "created_at": ISOTimestamp(self.created_at),
        }


# ---------------------------------------------------------------------------
# Query filter
# ---------------------------------------------------------------------------


@dataclass
class IssueFilter:
    """Criteria for ``list_issues`` / ``search_issues``.

    String values are accepted for every enumerated field and parsed on
    construction, so an invalid filter never reaches the query builder.
    """

    state: IssueState | None = IssueState.OPEN
    type: IssueType | None = None
    labels: list[str] = field(default_factory=list)
    include_deleted: bool = False
    query: str | None = None
    sort_by: SortField = SortField.UPDATED
    order: SortOrder = SortOrder.DESC
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def __post_init__(self) -> None:
        self.state = parse_state_filter(self.state)
        if self.type is not None:
            self.type = IssueType.parse(self.type)
        self.labels = _clean_names(self.labels)
        self.sort_by = SortField.parse(self.sort_by)
        self.order = SortOrder.parse(self.order)
        if self.limit < 0:
            self.limit = DEFAULT_LIMIT
        if self.offset < 0:
            self.offset = 0


_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def _nocase_key(name: str) -> str:
    """Fold case the way SQLite COLLATE NOCASE does: ASCII letters only."""
    return name.translate(_ASCII_LOWER)


def _clean_names(names: Iterable[str] | str | None) -> list[str]:
    if names is None:
        return []
    if isinstance(names, str):
        names = [names]
    seen: set[str] = set()
    cleaned: list[str] = []
    for name in names:
        stripped = name.strip()
        if stripped and _nocase_key(stripped) not in seen:
            seen.add(_nocase_key(stripped))
            cleaned.append(stripped)
    return cleaned
