"""Sync command for the gsb CLI.

Commands:
- sync: Run in the foreground, periodically fetching and restoring
"""

from __future__ import annotations

import signal

import click

from gitsyncbackup.cli.config import load_workspace
from gitsyncbackup.cli.transfer import jobs_option
from gitsyncbackup.sync.daemon import SyncDaemon


@click.command()
@click.option(
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between cycles (default: sync_interval from the config).",
)
@jobs_option
@click.pass_obj
def sync(obj: dict[str, object], interval: float | None, jobs: int | None) -> None:
    """Run in background, continuously fetch and restore updates.

    Stops at the end of the current cycle on Ctrl+C or SIGTERM.
    """
    workspace = load_workspace(obj.get("repo"))  # type: ignore[arg-type]
    daemon = SyncDaemon(workspace, interval=interval, max_workers=jobs)

    def signal_handler(signum: int, frame: object) -> None:
        click.echo("\nStopping...")
        daemon.stop()

    previous = {
        signum: signal.signal(signum, signal_handler)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }

    sync_config = workspace.config.sync
    click.echo(
        f"Syncing {workspace.repo_root} from {sync_config.git_remote}/{sync_config.git_branch} "
        f"every {daemon.interval}s as {workspace.device_label}"
    )
    try:
        daemon.run()
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
