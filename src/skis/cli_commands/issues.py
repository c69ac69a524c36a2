"""CLI commands for issues: create, list, view, edit, close, reopen, delete, restore, comment, link, unlink, search."""

from __future__ import annotations

from typing import Any

import click

from skis.cli_common import echo_json, fail, format_relative_time, get_db
from skis.core import SkisDB
from skis.errors import SkisError
from skis.models import DEFAULT_LIMIT, Issue, IssueFilter


@click.group()
def issue() -> None:
    """Manage issues."""


def _filter_options(func: Any) -> Any:
    """Options shared by ``list`` and ``search``."""
    options = [
        click.option("--state", "-s", default="open", show_default=True, help="open, closed, or all"),
        click.option("--type", "-T", "issue_type", default=None, help="epic, task, bug, or request"),
        click.option("--label", "-l", "labels", multiple=True, help="Require label (repeatable, AND logic)"),
        click.option("--sort", default="updated", show_default=True, help="updated, created, or id"),
        click.option("--order", default="desc", show_default=True, help="asc or desc"),
        click.option("--limit", "-L", default=DEFAULT_LIMIT, type=int, show_default=True, help="Maximum issues"),
        click.option("--offset", default=0, type=int, show_default=True, help="Skip the first N issues"),
        click.option("--deleted", is_flag=True, help="Include soft-deleted issues"),
        click.option("--json", "as_json", is_flag=True, help="Output as JSON"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _print_issue_table(issues: list[Issue]) -> None:
    if not issues:
        click.echo("No issues found")
        return
    click.echo(f"{'ID':<6} {'TYPE':<8} {'STATE':<8} {'LABELS':<20} TITLE")
    click.echo("-" * 80)
    for i in issues:
        labels = ",".join(i.labels) if i.labels else "-"
        deleted = " (deleted)" if i.is_deleted else ""
        click.echo(f"{'#' + str(i.id):<6} {i.type.value:<8} {i.state.value:<8} {labels:<20} {i.title}{deleted}")


def _run_query(
    query: str | None,
    state: str,
    issue_type: str | None,
    labels: tuple[str, ...],
    sort: str,
    order: str,
    limit: int,
    offset: int,
    deleted: bool,
    as_json: bool,
) -> None:
    with get_db() as db:
        try:
            flt = IssueFilter(
                state=state,
                type=issue_type,
                labels=list(labels),
                include_deleted=deleted,
                sort_by=sort,
                order=order,
                limit=limit,
                offset=offset,
            )
            issues = db.search_issues(query, flt) if query is not None else db.list_issues(flt)
        except SkisError as e:
            fail(e, as_json=as_json)
    if as_json:
        echo_json([i.to_dict() for i in issues])
    else:
        _print_issue_table(issues)


@issue.command()
@click.option("--title", "-t", required=True, help="Issue title")
@click.option("--body", "-b", default=None, help="Issue body")
@click.option("--type", "-T", "issue_type", default="task", show_default=True, help="epic, task, bug, or request")
@click.option("--label", "-l", "labels", multiple=True, help="Label (repeatable); must already exist")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def create(title: str, body: str | None, issue_type: str, labels: tuple[str, ...], as_json: bool) -> None:
    """Create a new issue."""
    with get_db() as db:
        try:
            new = db.create_issue(title, body=body, type=issue_type, labels=list(labels))
        except SkisError as e:
            fail(e, as_json=as_json)
    if as_json:
        echo_json(new.to_dict())
    else:
        click.echo(f"Created issue #{new.id}: {new.title}")


@issue.command("list")
@_filter_options
def list_cmd(**kwargs: Any) -> None:
    """List issues (open ones, most recently updated first, by default)."""
    _run_query(None, **kwargs)


@issue.command()
@click.argument("query")
@_filter_options
def search(query: str, **kwargs: Any) -> None:
    """Full-text search over issue titles and bodies."""
    _run_query(query, **kwargs)


def _print_issue_view(db: SkisDB, i: Issue, show_comments: bool) -> None:
    click.echo(f"#{i.id} {i.title}")
    click.echo(f"Type: {i.type.value}  State: {i.state.value}")
    if i.state_reason is not None:
        click.echo(f"Closed: {i.state_reason.value}")
    if i.is_deleted:
        click.echo(f"Deleted: {format_relative_time(i.deleted_at or '')}")
    click.echo(f"Created: {format_relative_time(i.created_at)}")
    click.echo(f"Updated: {format_relative_time(i.updated_at)}")
    if i.labels:
        click.echo(f"Labels: {', '.join(i.labels)}")
    linked = sorted(db.linked_ids(i.id))
    if linked:
        click.echo(f"Linked: {', '.join(f'#{n}' for n in linked)}")
    if i.body:
        click.echo(f"\n{i.body}")
    if show_comments:
        comments = db.list_comments(i.id)
        if comments:
            click.echo("\nComments:")
            click.echo("-" * 40)
            for c in comments:
                click.echo(f"[#{c.id} {format_relative_time(c.created_at)}]")
                click.echo(c.body)
                click.echo()


@issue.command()
@click.argument("issue_id", type=int)
@click.option("--comments", "show_comments", is_flag=True, help="Include comments")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def view(issue_id: int, show_comments: bool, as_json: bool) -> None:
    """Show issue details."""
    with get_db() as db:
        try:
            found = db.get_issue(issue_id)
            if as_json:
                data: dict[str, Any] = dict(found.to_dict())
                data["labels"] = [lbl.to_dict() for lbl in db.get_issue_labels(issue_id)]
                data["linked_issues"] = [{"id": li.id, "title": li.title} for li in db.get_linked_issues(issue_id)]
                if show_comments:
                    data["comments"] = [c.to_dict() for c in db.list_comments(issue_id)]
                echo_json(data)
                return
            _print_issue_view(db, found, show_comments)
        except SkisError as e:
            fail(e, as_json=as_json)


@issue.command()
@click.argument("issue_id", type=int)
@click.option("--title", "-t", default=None, help="Set new title")
@click.option("--body", "-b", default=None, help="Set new body (empty string clears it)")
@click.option("--type", "-T", "issue_type", default=None, help="Change issue type")
@click.option("--add-label", "add_labels", multiple=True, help="Add label (repeatable)")
@click.option("--remove-label", "remove_labels", multiple=True, help="Remove label (repeatable)")
def edit(
    issue_id: int,
    title: str | None,
    body: str | None,
    issue_type: str | None,
    add_labels: tuple[str, ...],
    remove_labels: tuple[str, ...],
) -> None:
    """Edit an issue's fields and labels."""
    with get_db() as db:
        try:
            updated = db.update_issue(issue_id, title=title, body=body, type=issue_type)
            for name in add_labels:
                db.add_label(issue_id, name)
            for name in remove_labels:
                db.remove_label(issue_id, name)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Updated issue #{updated.id}")


@issue.command()
@click.argument("issue_id", type=int)
@click.option("--reason", "-r", default="completed", show_default=True, help="completed or not_planned")
@click.option("--comment", "-c", default=None, help="Closing comment")
def close(issue_id: int, reason: str, comment: str | None) -> None:
    """Close an issue."""
    with get_db() as db:
        try:
            closed = db.close_issue(issue_id, reason, comment=comment)
        except SkisError as e:
            fail(e, as_json=False)
    reason_text = closed.state_reason.value if closed.state_reason else reason
    click.echo(f"Closed issue #{closed.id} as {reason_text}")


@issue.command()
@click.argument("issue_id", type=int)
def reopen(issue_id: int) -> None:
    """Reopen a closed issue."""
    with get_db() as db:
        try:
            reopened = db.reopen_issue(issue_id)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Reopened issue #{reopened.id}")


@issue.command()
@click.argument("issue_id", type=int)
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
def delete(issue_id: int, yes: bool) -> None:
    """Soft-delete an issue."""
    if not yes and not click.confirm(f"Delete issue #{issue_id}?", default=False, err=True):
        click.echo("Cancelled")
        return
    with get_db() as db:
        try:
            db.delete_issue(issue_id)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Deleted issue #{issue_id}")


@issue.command()
@click.argument("issue_id", type=int)
def restore(issue_id: int) -> None:
    """Restore a soft-deleted issue."""
    with get_db() as db:
        try:
            restored = db.restore_issue(issue_id)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Restored issue #{restored.id}")


@issue.command()
@click.argument("issue_id", type=int)
@click.option("--body", "-b", required=True, help="Comment body")
def comment(issue_id: int, body: str) -> None:
    """Add a comment to an issue."""
    with get_db() as db:
        try:
            added = db.add_comment(issue_id, body)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Added comment #{added.id} to issue #{issue_id}")


@issue.command()
@click.argument("issue_a", type=int)
@click.argument("issue_b", type=int)
def link(issue_a: int, issue_b: int) -> None:
    """Link two issues."""
    with get_db() as db:
        try:
            db.add_link(issue_a, issue_b)
        except SkisError as e:
            fail(e, as_json=False)
    click.echo(f"Linked issue #{issue_a} and #{issue_b}")


@issue.command()
@click.argument("issue_a", type=int)
@click.argument("issue_b", type=int)
def unlink(issue_a: int, issue_b: int) -> None:
    """Unlink two issues."""
    with get_db() as db:
        try:
            removed = db.remove_link(issue_a, issue_b)
        except SkisError as e:
            fail(e, as_json=False)
    if removed:
        click.echo(f"Unlinked issue #{issue_a} and #{issue_b}")
    else:
        click.echo(f"No link between issue #{issue_a} and #{issue_b}")
