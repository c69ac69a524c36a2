"""CLI commands for labels: create, list, delete."""

from __future__ import annotations

import click

from skis.cli_common import echo_json, fail, get_db
from skis.errors import SkisError


@click.group()
def label() -> None:
    """Manage labels."""


@label.command()
@click.argument("name")
@click.option("--description", "-d", default=None, help="Label description")
@click.option("--color", "-c", default=None, help="Color as 6 hex characters (e.g., ff0000)")
def create(name: str, description: str | None, color: str | None) -> None:
    """Create a new label."""
    with get_db() as db:
        try:
            created = db.create_label(name, description=description, color=color)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Created label '{created.name}'")


@label.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_cmd(as_json: bool) -> None:
    """List all labels."""
    with get_db() as db:
        labels = db.list_labels()
    if as_json:
        echo_json([lbl.to_dict() for lbl in labels])
        return
    if not labels:
        click.echo("No labels found")
        return
    for lbl in labels:
        line = f"{lbl.name:<20}"
        if lbl.color:
            line += f" #{lbl.color}"
        if lbl.description:
            line += f"  {lbl.description}"
        click.echo(line.rstrip())


@label.command()
@click.argument("name")
@click.option("--yes", is_flag=True, help="Skip confirmation")
def delete(name: str, yes: bool) -> None:
    """Delete a label and detach it from every issue."""
    if not yes and not click.confirm(f"Delete label '{name}'?", default=False, err=True):
        click.echo("Cancelled")
        return
    with get_db() as db:
        try:
            deleted = db.delete_label(name)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Deleted label '{deleted.name}'")
