"""Command-line interface for git-sync-backup.

This module provides the main CLI entry point and assembles all commands.

Commands (short alias in brackets):
- collect [c]: Collect all items into the git repository
- restore [r]: Restore all items from the git repository
- sync [s]: Continuously fetch and restore
- device [d]: Print the id of this device
"""

from __future__ import annotations

from pathlib import Path

import click

from gitsyncbackup.cli.config import (
    REPO_ENV_VAR,
    get_log_level,
    get_repo_root,
    load_workspace,
    setup_logging,
)
from gitsyncbackup.cli.device_cmd import device
from gitsyncbackup.cli.sync_cmd import sync
from gitsyncbackup.cli.transfer import collect, display_summary, restore

COMMAND_ALIASES = {
    "c": "collect",
    "r": "restore",
    "s": "sync",
    "d": "device",
}


class AliasedGroup(click.Group):
    """Command group accepting the short command aliases."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, COMMAND_ALIASES.get(cmd_name, cmd_name))

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        _, command, args = super().resolve_command(ctx, args)
        return (command.name if command else None), command, args


@click.group(cls=AliasedGroup)
@click.version_option(package_name="git-sync-backup")
@click.option(
    "--repo",
    type=click.Path(file_okay=False, path_type=Path),
    envvar=REPO_ENV_VAR,
    default=None,
    help="Repository root (default: search upwards for .gsb.config.toml).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages.")
@click.option("--quiet", "-q", is_flag=True, help="Only log warnings and errors.")
@click.pass_context
def cli(ctx: click.Context, repo: Path | None, verbose: bool, quiet: bool) -> None:
    """gsb - Synchronize and back up files/folders using Git, cross-device."""
    setup_logging(get_log_level(verbose=verbose, quiet=quiet))
    ctx.obj = {"repo": repo}


cli.add_command(collect)
cli.add_command(restore)
cli.add_command(sync)
cli.add_command(device)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Helpers
    "display_summary",
    "get_log_level",
    "get_repo_root",
    "load_workspace",
    "setup_logging",
]
