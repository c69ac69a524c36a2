"""Shared CLI helpers.

Provides ``get_db()`` and the output helpers used by ``cli.py`` and the
``cli_commands/*`` modules, without circular imports.
"""

from __future__ import annotations

import json as json_mod
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, NoReturn

import click

from skis.core import SkisDB
from skis.errors import LabelNotFound, NotARepository, SkisError
from skis.logging import setup_logging

logger = logging.getLogger(__name__)


def get_db() -> SkisDB:
    """Discover .skis/ from the current directory and return an open SkisDB."""
    try:
        db = SkisDB.open(Path.cwd())
    except NotARepository:
        click.echo("Not a skis repository (or any parent up to /). Run 'skis init' to create one.", err=True)
        sys.exit(1)
    except SkisError as e:
        fail(e, as_json=False)
    setup_logging(db.skis_dir)
    return db


def fail(error: Exception, *, as_json: bool) -> NoReturn:
    """Report a failure the way every command does, then exit 1."""
    message = str(error)
    if isinstance(error, LabelNotFound):
        message = f"{message}. Create it with: skis label create {error.name}"
    logger.info("Command failed", extra={"error": message})
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def echo_json(data: Any) -> None:
    click.echo(json_mod.dumps(data, indent=2, default=str))


def format_relative_time(timestamp: str, now: datetime | None = None) -> str:
    """Render an ISO timestamp as "5 minutes ago" when recent, else as a date.

    Anything older than 30 days is shown as ``YYYY-MM-DD``.
    """
    try:
        then = datetime.fromisoformat(timestamp)
    except ValueError:
        return timestamp
    if then.tzinfo is None:
        then = then.replace(tzinfo=UTC)
    seconds = int(((now or datetime.now(UTC)) - then).total_seconds())
    if seconds < 0:
        return "just now"
    for limit, unit_seconds, unit in ((60, 1, "second"), (3600, 60, "minute"), (86400, 3600, "hour")):
        if seconds < limit:
            count = seconds // unit_seconds
            return f"{count} {unit}{'' if count == 1 else 's'} ago"
    days = seconds // 86400
    if days <= 30:
        return f"{days} day{'' if days == 1 else 's'} ago"
    return then.strftime("%Y-%m-%d")
