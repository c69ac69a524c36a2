"""Typed failures raised by the skis storage engine.

Every public operation either returns a value or raises a subclass of
``SkisError``. The exceptions carry the offending id or name as attributes
so callers (CLI, GUI) can build their own messages.

Lookup misses also subclass ``KeyError`` and rejected input also subclasses
``ValueError``, so generic handlers keep working.
"""

from __future__ import annotations

from pathlib import Path


class SkisError(Exception):
    """Base class for all skis failures."""


# -- Repository ---------------------------------------------------------------


class NotARepository(SkisError):
    def __init__(self, start: Path) -> None:
        self.start = start
        super().__init__("Not a skis repository (or any parent up to /)")


class AlreadyInitialized(SkisError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Already initialized: {path}")


# -- Lookup misses ------------------------------------------------------------


class NotFound(SkisError, KeyError):
    """An issue, label, or comment lookup found nothing."""

    entity = "record"

    def __init__(self, key: int | str, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"{self.entity.capitalize()} {key!r} not found")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class IssueNotFound(NotFound):
    entity = "issue"

    def __init__(self, issue_id: int) -> None:
        self.issue_id = issue_id
        super().__init__(issue_id, f"Issue #{issue_id} not found")


class LabelNotFound(NotFound):
    entity = "label"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name, f"Label '{name}' not found")


class CommentNotFound(NotFound):
    entity = "comment"

    def __init__(self, comment_id: int) -> None:
        self.comment_id = comment_id
        super().__init__(comment_id, f"Comment #{comment_id} not found")


# -- Rejected input -----------------------------------------------------------


class ValidationError(SkisError, ValueError):
    """Input rejected before anything was written."""


class InvalidStateTransition(ValidationError):
    def __init__(self, issue_id: int, state: str) -> None:
        self.issue_id = issue_id
        self.state = state
        super().__init__(f"Issue #{issue_id} is already {state}")


class InvalidColor(ValidationError):
    def __init__(self, color: str) -> None:
        self.color = color
        super().__init__(f"Invalid color '{color}': must be 6 hex characters (e.g., ff0000)")


class InvalidEnumValue(ValidationError):
    """Free text did not name a member of a closed set."""

    def __init__(self, kind: str, value: str, allowed: list[str]) -> None:
        self.kind = kind
        self.value = value
        self.allowed = allowed
        super().__init__(f"Invalid {kind} '{value}': must be {_one_of(allowed)}")


class InvalidIssueType(InvalidEnumValue):
    def __init__(self, value: str, allowed: list[str]) -> None:
        super().__init__("issue type", value, allowed)


class InvalidStateReason(InvalidEnumValue):
    def __init__(self, value: str, allowed: list[str]) -> None:
        super().__init__("state reason", value, allowed)


class DuplicateLabel(ValidationError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Label '{name}' already exists")


class DuplicateLink(ValidationError):
    def __init__(self, low: int, high: int) -> None:
        self.low = low
        self.high = high
        super().__init__(f"Link already exists between issues #{low} and #{high}")


class SelfLink(ValidationError):
    def __init__(self, issue_id: int) -> None:
        self.issue_id = issue_id
        super().__init__("Cannot link issue to itself")


class ConstraintViolation(SkisError):
    """The storage engine rejected a row the application checks let through."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Constraint violation: {detail}")


# -- Store --------------------------------------------------------------------


class StoreError(SkisError):
    """Generic, unrecoverable store failure."""


class StoreUnavailable(StoreError):
    """The store is busy, locked, or cannot be read or written."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Store unavailable: {detail}")


class SchemaVersionError(StoreError):
    def __init__(self, found: int, expected: int) -> None:
        self.found = found
        self.expected = expected
        super().__init__(
            f"Database schema v{found} is newer than this version of skis (expects v{expected}). "
            "Downgrade is not supported."
        )


def _one_of(allowed: list[str]) -> str:
    if len(allowed) <= 2:
        return " or ".join(allowed)
    return f"{', '.join(allowed[:-1])}, or {allowed[-1]}"
