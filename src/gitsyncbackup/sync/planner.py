"""Sync planning.

This module provides:
- SyncPlanner: Resolve every item and build the action list for a direction
- check_hardlink_targets: Pre-flight check of hardlink items against the tree

Planning never touches the filesystem. The hardlink check is kept apart
because it has to look at the repository tree.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from gitsyncbackup.core.config import Item
from gitsyncbackup.core.types import DeviceId
from gitsyncbackup.sync.resolver import ItemResolver
from gitsyncbackup.sync.types import (
    Direction,
    InvalidHardlinkTargetError,
    PlannedAction,
    SkippedItem,
    SkipReason,
    SyncPlan,
)

logger = logging.getLogger(__name__)


class SyncPlanner:
    """Build SyncPlans for a repository.

    Usage:
        planner = SyncPlanner(ItemResolver(config.aliases), repo_root)
        plan = planner.plan(config.items, device_id, Direction.RESTORE)
    """

    def __init__(self, resolver: ItemResolver, repo_root: Path) -> None:
        self._resolver = resolver
        self._repo_root = repo_root

    def plan(
        self,
        items: Iterable[Item],
        device: DeviceId | None,
        direction: Direction,
    ) -> SyncPlan:
        """Plan the transfers for a device.

        An item yields an action only when it has a local path on this device
        and the device does not ignore it for the direction.

        Args:
            items: Configured items.
            device: Current device id, or None if unknown.
            direction: Collect or restore.

        Returns:
            The plan, with actions in item order.
        """
        actions: list[PlannedAction] = []
        skipped: list[SkippedItem] = []

        for item in items:
            resolved = self._resolver.resolve(item, device)
            if resolved.local_path is None:
                skipped.append(SkippedItem(item.path_in_repo, SkipReason.NO_LOCAL_PATH))
                continue
            if resolved.skips(direction):
                skipped.append(SkippedItem(item.path_in_repo, SkipReason.IGNORED))
                continue

            actions.append(
                PlannedAction(
                    path_in_repo=resolved.repo_path,
                    repo_path=self._repo_root / resolved.repo_path,
                    local_path=resolved.local_path,
                    is_hardlink=resolved.is_hardlink,
                    direction=direction,
                )
            )

        return SyncPlan(direction=direction, actions=tuple(actions), skipped=tuple(skipped))


def check_hardlink_targets(plan: SyncPlan) -> SyncPlan:
    """Reject hardlink actions whose repository path is a directory.

    Args:
        plan: A plan from SyncPlanner.

    Returns:
        A plan without the invalid actions, which are listed in ``rejected``.
    """
    valid: list[PlannedAction] = []
    rejected = list(plan.rejected)
    for action in plan.actions:
        if action.is_hardlink and action.repo_path.is_dir():
            error = InvalidHardlinkTargetError(
                action.path_in_repo, "is_hardlink is set but the repository path is a directory"
            )
            logger.error(str(error))
            rejected.append(error)
        else:
            valid.append(action)

    return SyncPlan(
        direction=plan.direction,
        actions=tuple(valid),
        skipped=plan.skipped,
        rejected=tuple(rejected),
    )
