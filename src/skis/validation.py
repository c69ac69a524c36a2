"""Shared validation functions for all entry points.

Pure functions with no database or Click dependencies. Each returns
``(cleaned_value, None)`` on success or ``(fallback, error_message)`` on failure.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

_COLOR_RE = re.compile(r"[0-9a-fA-F]{6}")
_MAX_LABEL_NAME_LENGTH = 64


def sanitize_title(value: Any) -> tuple[str, str | None]:
    """Validate an issue title. Strips whitespace; must be non-empty text."""
    if not isinstance(value, str):
        return ("", "title must be a string")
    cleaned = value.strip()
    if not cleaned:
        return ("", "Title cannot be empty")
    return (cleaned, None)


def sanitize_body(value: Any) -> tuple[str | None, str | None]:
    """Normalize optional issue body text. Blank bodies are stored as absent."""
    if value is None:
        return (None, None)
    if not isinstance(value, str):
        return (None, "body must be a string")
    if not value.strip():
        return (None, None)
    return (value, None)


def sanitize_comment_body(value: Any) -> tuple[str, str | None]:
    """Comment bodies must be non-empty after trimming; the text itself is kept as given."""
    if not isinstance(value, str):
        return ("", "comment body must be a string")
    if not value.strip():
        return ("", "Comment body cannot be empty")
    return (value, None)


def sanitize_label_name(value: Any) -> tuple[str, str | None]:
    """Validate a label name: non-empty, bounded length, no control characters."""
    if not isinstance(value, str):
        return ("", "label name must be a string")
    for ch in value:
        if unicodedata.category(ch).startswith("C"):
            return ("", f"label name must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", "Label name cannot be empty")
    if len(cleaned) > _MAX_LABEL_NAME_LENGTH:
        return ("", f"label name must be at most {_MAX_LABEL_NAME_LENGTH} characters")
    return (cleaned, None)


def is_valid_color(value: str) -> bool:
    """Exactly six ASCII hex digits, no leading '#'."""
    return isinstance(value, str) and _COLOR_RE.fullmatch(value) is not None
