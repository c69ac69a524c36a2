"""CLI for the skis issue tracker.

Convention-based: discovers .skis/ by walking up from cwd.

Usage:
    skis init                                     # Initialize .skis/ in cwd
    skis issue create -t "Login fails" -T bug     # Create issue
    skis issue list --state all -l bug            # List issues
    skis issue view 1 --comments                  # Show issue details
    skis issue edit 1 --add-label urgent          # Edit issue
    skis issue close 1 -r not_planned             # Close issue
    skis issue reopen 1                           # Reopen closed issue
    skis issue delete 1 --yes                     # Soft-delete issue
    skis issue restore 1                          # Restore deleted issue
    skis issue comment 1 -b "text"                # Add comment
    skis issue link 1 2                           # Link two issues
    skis issue search "login"                     # Full-text search
    skis comment list 1                           # List comments
    skis comment edit 3 -b "text"                 # Edit a comment
    skis label create bug -c ff0000               # Create label
    skis label list                               # List labels
    skis log-path                                 # Where the log lives
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import click

from skis import __version__
from skis.cli_commands import comments as _comments_cmds
from skis.cli_commands import issues as _issues_cmds
from skis.cli_commands import labels as _labels_cmds
from skis.cli_common import fail, get_db
from skis.core import SkisDB
from skis.errors import SkisError
from skis.logging import log_path, setup_logging

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="skis")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """skis: local issue tracking in a single SQLite file."""
    started = time.monotonic()
    command = ctx.invoked_subcommand

    def _log_finished() -> None:
        duration_ms = round((time.monotonic() - started) * 1000, 1)
        logger.info("Command finished", extra={"command": command, "duration_ms": duration_ms})

    ctx.call_on_close(_log_finished)


@cli.command()
def init() -> None:
    """Initialize .skis/ in the current directory."""
    cwd = Path.cwd()
    try:
        db = SkisDB.init(cwd)
    except SkisError as e:
        fail(e, as_json=False)
    with db:
        setup_logging(db.skis_dir)
        click.echo(f"Initialized skis repository in {db.skis_dir}")
        click.echo(f"  Database: {db.db_path}")


@cli.command("log-path")
def log_path_cmd() -> None:
    """Print the path of the skis log file."""
    with get_db() as db:
        click.echo(str(log_path(db.skis_dir)))


cli.add_command(_issues_cmds.issue)
cli.add_command(_labels_cmds.label)
cli.add_command(_comments_cmds.comment)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
