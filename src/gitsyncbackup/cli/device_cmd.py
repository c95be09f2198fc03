"""Device command for the gsb CLI.

Commands:
- device: Print the id of this device, for use in the config file
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from gitsyncbackup.cli.config import get_repo_root
from gitsyncbackup.core.config import load_config
from gitsyncbackup.core.device import IdentityUnavailableError
from gitsyncbackup.core.types import GsbError
from gitsyncbackup.sync import operations

logger = logging.getLogger(__name__)


def _find_alias(repo: Path | None, device_id: str) -> str | None:
    try:
        config = load_config(get_repo_root(repo))
    except GsbError as e:
        logger.debug(f"No config to look up aliases: {e}")
        return None
    return config.aliases.alias_for(device_id)


@click.command()
@click.pass_obj
def device(obj: dict[str, object]) -> None:
    """Print the device id of this machine.

    Use the id as a key in `sources`, `ignore_*` or `[alias]`.
    """
    try:
        device_id = operations.device()
    except IdentityUnavailableError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(device_id)
    alias = _find_alias(obj.get("repo"), device_id)  # type: ignore[arg-type]
    if alias:
        click.echo(f"Alias: {alias}")
