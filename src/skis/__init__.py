"""skis: a local, offline issue tracker stored in a single SQLite file."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("skis")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from skis.core import SkisDB
from skis.errors import SkisError
from skis.models import Comment, Issue, IssueFilter, IssueLink, IssueState, IssueType, Label, StateReason

__all__ = [
    "Comment",
    "Issue",
    "IssueFilter",
    "IssueLink",
    "IssueState",
    "IssueType",
    "Label",
    "SkisDB",
    "SkisError",
    "StateReason",
    "__version__",
]
