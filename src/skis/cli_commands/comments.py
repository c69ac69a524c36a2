"""CLI commands for existing comments: list, edit, delete."""

from __future__ import annotations

import click

from skis.cli_common import echo_json, fail, format_relative_time, get_db
from skis.errors import SkisError


@click.group()
def comment() -> None:
    """Manage comments."""


@comment.command("list")
@click.argument("issue_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_cmd(issue_id: int, as_json: bool) -> None:
    """List comments on an issue, oldest first."""
    with get_db() as db:
        try:
            comments = db.list_comments(issue_id)
        except SkisError as e:
            fail(e, as_json=as_json)
    if as_json:
        echo_json([c.to_dict() for c in comments])
        return
    if not comments:
        click.echo("No comments")
        return
    for c in comments:
        click.echo(f"[#{c.id} {format_relative_time(c.created_at)}]")
        click.echo(c.body)
        click.echo()


@comment.command()
@click.argument("comment_id", type=int)
@click.option("--body", "-b", required=True, help="New comment body")
def edit(comment_id: int, body: str) -> None:
    """Replace a comment's body."""
    with get_db() as db:
        try:
            db.update_comment(comment_id, body)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Updated comment #{comment_id}")


@comment.command()
@click.argument("comment_id", type=int)
def delete(comment_id: int) -> None:
    """Delete a comment."""
    with get_db() as db:
        try:
            db.delete_comment(comment_id)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Deleted comment #{comment_id}")
