"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .skis/config.json."""

    version: int
    busy_timeout_ms: int


class IssueDict(TypedDict):
    id: int
    title: str
    body: str | None
    type: str
    state: str
    state_reason: str | None
    created_at: ISOTimestamp
    updated_at: ISOTimestamp
    closed_at: ISOTimestamp | None
    deleted_at: ISOTimestamp | None
    labels: list[str]


class LabelDict(TypedDict):
    id: int
    name: str
    description: str | None
    color: str | None


class CommentDict(TypedDict):
    id: int
    issue_id: int
    body: str
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class IssueLinkDict(TypedDict):
    issue_a_id: int
    issue_b_id: int
    created_at: ISOTimestamp
