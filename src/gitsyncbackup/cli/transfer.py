"""Collect and restore commands for the gsb CLI.

Commands:
- collect: Copy local items into the repository (and commit)
- restore: Copy repository items to their local paths
"""

from __future__ import annotations

import sys

import click

from gitsyncbackup.cli.config import load_workspace
from gitsyncbackup.sync import operations
from gitsyncbackup.sync.types import BatchResult, Direction, TransferStatus

jobs_option = click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum concurrent transfers (default: CPU count).",
)


def display_summary(result: BatchResult) -> None:
    """Display a batch summary, including skipped and failed items."""
    if result.skipped:
        click.echo(click.style("\nSkipped:", fg="yellow"))
        for skipped in result.skipped:
            click.echo(f"  - {skipped.path_in_repo} ({skipped.reason.value})")

    if result.errors:
        click.echo(click.style("\nErrors:", fg="red"))
        for error in result.errors:
            click.echo(f"  ✗ {error}")

    verb = "collected" if result.direction is Direction.COLLECT else "restored"
    if not result.results and not result.errors:
        click.echo(f"\nNothing {verb}: no item applies to this device.")
    else:
        click.echo(
            f"\n{result.direction.value.capitalize()} complete: "
            f"{len(result.changed)} {verb}, "
            f"{len(result.with_status(TransferStatus.UNCHANGED))} unchanged, "
            f"{len(result.skipped)} skipped, "
            f"{len(result.errors)} failed"
        )

    if result.commit_error is not None:
        click.echo(click.style(f"Commit failed: {result.commit_error}", fg="red"))


def _finish(result: BatchResult) -> None:
    display_summary(result)
    if not result.ok:
        sys.exit(1)


@click.command()
@click.option(
    "--commit/--no-commit",
    default=True,
    show_default=True,
    help="Commit the repository after collecting.",
)
@jobs_option
@click.pass_obj
def collect(obj: dict[str, object], commit: bool, jobs: int | None) -> None:
    """Collect all configured items into the git repository."""
    workspace = load_workspace(obj.get("repo"))  # type: ignore[arg-type]
    result = operations.collect(workspace, autocommit=commit, max_workers=jobs)
    _finish(result)


@click.command()
@jobs_option
@click.pass_obj
def restore(obj: dict[str, object], jobs: int | None) -> None:
    """Restore all configured items from the git repository to local paths."""
    workspace = load_workspace(obj.get("repo"))  # type: ignore[arg-type]
    result = operations.restore(workspace, max_workers=jobs)
    _finish(result)
