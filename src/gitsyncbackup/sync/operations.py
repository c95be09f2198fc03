"""Collect, restore and device entry points.

Each entry point follows the same pipeline:

    Config + device id -> SyncPlanner -> hardlink check -> TransferPool
                                                         -> (collect) commit

Plan, transfer and commit run under the repository lock, so a concurrent
fetch or commit on the same tree waits for the whole sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from gitsyncbackup.core.config import Config, load_config
from gitsyncbackup.core.device import IdentityUnavailableError, current_device_id
from gitsyncbackup.core.types import DeviceId
from gitsyncbackup.repository import GitRepository, GitTransportError
from gitsyncbackup.sync.planner import SyncPlanner, check_hardlink_targets
from gitsyncbackup.sync.pool import TransferPool
from gitsyncbackup.sync.resolver import ItemResolver
from gitsyncbackup.sync.types import BatchResult, Direction, SyncPlan

logger = logging.getLogger(__name__)


def resolve_device() -> DeviceId | None:
    """Get the current device id, or None if it cannot be read.

    Without an id only ``default_source`` paths apply and no ignore
    entry matches, which keeps collect and restore usable.
    """
    try:
        return current_device_id()
    except IdentityUnavailableError as e:
        logger.warning(f"Device id unavailable, using default sources only: {e}")
        return None


def device() -> DeviceId:
    """Get the current device id for display.

    Raises:
        IdentityUnavailableError: If the machine id cannot be read.
    """
    return current_device_id()


@dataclass
class Workspace:
    """Everything one command needs: config, repository and device.

    Attributes:
        repo_root: Repository work tree holding the config file.
        config: Validated configuration, loaded once per process.
        repository: Git access to repo_root.
        device: Current device id, None if unavailable.
    """

    repo_root: Path
    config: Config
    repository: GitRepository
    device: DeviceId | None

    @classmethod
    def open(cls, repo_root: Path) -> Workspace:
        """Load config, open the repository and identify the device.

        Raises:
            ConfigError: If the config is missing or invalid.
            GitTransportError: If the repository cannot be opened.
        """
        config = load_config(repo_root)
        repository = GitRepository.init_or_open(repo_root, initial_branch=config.sync.git_branch)
        return cls(
            repo_root=repo_root,
            config=config,
            repository=repository,
            device=resolve_device(),
        )

    @property
    def device_label(self) -> str:
        """Get the alias (or id) of the device for messages."""
        return self.config.aliases.display_name(self.device)

    def planner(self) -> SyncPlanner:
        """Create a planner for this workspace."""
        return SyncPlanner(ItemResolver(self.config.aliases), self.repo_root)

    def plan(self, direction: Direction) -> SyncPlan:
        """Plan a direction for the current device (no I/O)."""
        return self.planner().plan(self.config.items, self.device, direction)


def execute_plan(plan: SyncPlan, max_workers: int | None = None) -> BatchResult:
    """Check hardlink targets, then run every action of a plan.

    Args:
        plan: Plan from SyncPlanner.
        max_workers: Maximum concurrent transfers.

    Returns:
        The aggregate result; failed items do not stop the others.
    """
    checked = check_hardlink_targets(plan)
    for skipped in checked.skipped:
        logger.info(
            f"Skipping {plan.direction.value} for '{skipped.path_in_repo}': "
            f"{skipped.reason.value}"
        )

    results = TransferPool(max_workers=max_workers).run(checked.actions)
    return BatchResult(
        direction=plan.direction,
        results=results,
        skipped=list(checked.skipped),
        rejected=list(checked.rejected),
    )


def commit_message(label: str, now: datetime | None = None) -> str:
    """Build the commit message of a collect."""
    timestamp = (now or datetime.now(UTC)).isoformat(timespec="seconds")
    return f"gsb collect on {label} at {timestamp}"


def collect(
    workspace: Workspace,
    autocommit: bool = True,
    max_workers: int | None = None,
) -> BatchResult:
    """Copy local state into the repository.

    A failed commit does not raise. It is recorded in the result's
    ``commit_error`` and the transfer outcome is still returned.

    Args:
        workspace: Loaded workspace.
        autocommit: Commit the work tree afterwards (even if some items failed,
            so that successful items are kept).
        max_workers: Maximum concurrent transfers.

    Returns:
        The aggregate result.
    """
    logger.info(f"Starting collection on {workspace.device_label}...")
    with workspace.repository.lock:
        result = execute_plan(workspace.plan(Direction.COLLECT), max_workers)
        if autocommit:
            try:
                workspace.repository.commit_all(commit_message(workspace.device_label))
            except GitTransportError as e:
                logger.error(f"Failed to commit collected items: {e}")
                result.commit_error = e
    logger.info("Collection process finished.")
    return result


def restore(workspace: Workspace, max_workers: int | None = None) -> BatchResult:
    """Copy repository state into local paths.

    Args:
        workspace: Loaded workspace.
        max_workers: Maximum concurrent transfers.

    Returns:
        The aggregate result.
    """
    logger.info(f"Starting restore on {workspace.device_label}...")
    with workspace.repository.lock:
        result = execute_plan(workspace.plan(Direction.RESTORE), max_workers)
    logger.info("Restore process finished.")
    return result
