# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, db_base.py, or any mixin; this prevents circular imports.
"""Typed plain-record contracts for skis to_dict() returns."""

from __future__ import annotations

from skis.types.core import (
    CommentDict,
    IssueDict,
    IssueLinkDict,
    ISOTimestamp,
    LabelDict,
    ProjectConfig,
)

__all__ = [
    "CommentDict",
    "ISOTimestamp",
    "IssueDict",
    "IssueLinkDict",
    "LabelDict",
    "ProjectConfig",
]
