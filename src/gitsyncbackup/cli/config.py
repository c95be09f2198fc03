"""Configuration utilities for the gsb CLI.

This module provides shared helpers used across CLI commands: logging
setup and workspace loading with user-facing error reporting.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import click

from gitsyncbackup.core.config import find_repo_root
from gitsyncbackup.core.types import GsbError
from gitsyncbackup.sync.operations import Workspace

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_ENV_VAR = "GSB_LOG"
REPO_ENV_VAR = "GSB_REPO"


def get_log_level(verbose: bool = False, quiet: bool = False) -> int:
    """Get the log level from flags, or from GSB_LOG when set.

    Args:
        verbose: Log debug messages.
        quiet: Only log warnings and errors.

    Returns:
        A logging level (INFO by default).
    """
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING

    name = os.environ.get(LOG_ENV_VAR, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: int) -> None:
    """Configure the gitsyncbackup logger to write to stderr.

    Replaces any handler installed by a previous call.
    """
    package_logger = logging.getLogger("gitsyncbackup")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)


def get_repo_root(repo: Path | None) -> Path:
    """Get the repository root: the --repo option, else search upwards from cwd.

    Raises:
        RepoRootNotFoundError: If no config file is found.
    """
    if repo is not None:
        return repo.expanduser().resolve()
    return find_repo_root()


def load_workspace(repo: Path | None) -> Workspace:
    """Load the workspace, exiting with status 1 on any error."""
    try:
        return Workspace.open(get_repo_root(repo))
    except GsbError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
