"""Shared types and dataclasses for sync operations.

This module provides:
- Direction: Collect (local -> repository) or Restore (repository -> local)
- ResolvedItem: One item resolved for one device
- PlannedAction, SkippedItem, SyncPlan: Output of the planner
- TransferStatus, TransferResult, BatchResult: Output of the transfer engine
- TransferError, SourceMissingError, InvalidHardlinkTargetError,
  HardlinkFailedError: Per-item, non-fatal errors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from pathlib import Path

from gitsyncbackup.core.types import GsbError


class Direction(Enum):
    """Direction of a transfer."""

    COLLECT = "collect"
    RESTORE = "restore"


class TransferError(GsbError):
    """A single item failed to transfer.

    Attributes:
        path_in_repo: The item that failed.
    """

    def __init__(self, path_in_repo: str, message: str) -> None:
        self.path_in_repo = path_in_repo
        super().__init__(f"{path_in_repo}: {message}")


class SourceMissingError(TransferError):
    """The side being copied from does not exist."""


class InvalidHardlinkTargetError(TransferError):
    """A hardlink item's repository path is a directory.

    This is a configuration error, but it is only detectable against the
    tree on disk, so it is reported per item and only that item is skipped.
    """


class HardlinkFailedError(TransferError):
    """The hardlink could not be created (e.g., across filesystems)."""


# =============================================================================
# Planning Types
# =============================================================================


@dataclass(frozen=True)
class ResolvedItem:
    """An item resolved for one device.

    Attributes:
        repo_path: Normalized path relative to the repository root.
        local_path: Local path on this device, None if not configured.
        skip_collect: This device must not collect the item.
        skip_restore: This device must not restore the item.
        is_hardlink: Repository and local copies are the same file.
    """

    repo_path: str
    local_path: Path | None
    skip_collect: bool
    skip_restore: bool
    is_hardlink: bool

    def skips(self, direction: Direction) -> bool:
        """Check whether the item is skipped for a direction."""
        if direction is Direction.COLLECT:
            return self.skip_collect
        return self.skip_restore


class SkipReason(Enum):
    """Why an item produced no action."""

    NO_LOCAL_PATH = "no path configured for this device"
    IGNORED = "ignored on this device"


@dataclass(frozen=True)
class SkippedItem:
    """An item left out of a plan (not an error)."""

    path_in_repo: str
    reason: SkipReason


@dataclass(frozen=True)
class PlannedAction:
    """One transfer to execute.

    Attributes:
        path_in_repo: Item path relative to the repository root (for reporting).
        repo_path: Absolute path of the item inside the repository.
        local_path: Absolute local path on this device.
        is_hardlink: Repository and local copies are the same file.
        direction: Which way to copy.
    """

    path_in_repo: str
    repo_path: Path
    local_path: Path
    is_hardlink: bool
    direction: Direction

    @property
    def source(self) -> Path:
        """Path copied from."""
        return self.local_path if self.direction is Direction.COLLECT else self.repo_path

    @property
    def destination(self) -> Path:
        """Path copied to."""
        return self.repo_path if self.direction is Direction.COLLECT else self.local_path


@dataclass(frozen=True)
class SyncPlan:
    """Ordered actions for one direction, plus what was left out.

    Attributes:
        direction: Direction of every action.
        actions: Transfers to execute.
        skipped: Items with nothing to do on this device.
        rejected: Items whose configuration is invalid against the tree.
    """

    direction: Direction
    actions: tuple[PlannedAction, ...] = ()
    skipped: tuple[SkippedItem, ...] = ()
    rejected: tuple[TransferError, ...] = ()

    def __len__(self) -> int:
        return len(self.actions)


# =============================================================================
# Transfer Types
# =============================================================================


class TransferStatus(IntEnum):
    """Outcome of one transfer."""

    COPIED = auto()  # Content was written
    LINKED = auto()  # Hardlink was (re)created
    UNCHANGED = auto()  # Destination already up to date
    FAILED = auto()


@dataclass
class TransferResult:
    """Result of executing one PlannedAction."""

    action: PlannedAction
    status: TransferStatus
    error: TransferError | None = None
    elapsed_time: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the transfer succeeded."""
        return self.status != TransferStatus.FAILED


@dataclass
class BatchResult:
    """Aggregate result of executing a plan.

    A batch with any failure is a failed batch, even though every other
    item was still processed.
    """

    direction: Direction
    results: list[TransferResult] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)
    rejected: list[TransferError] = field(default_factory=list)
    commit_error: GsbError | None = None

    @property
    def errors(self) -> list[TransferError]:
        """Get every per-item error (rejected items first)."""
        failed = [r.error for r in self.results if r.error is not None]
        return [*self.rejected, *failed]

    @property
    def ok(self) -> bool:
        """Check if no item failed and the commit (if any) succeeded."""
        return not self.errors and self.commit_error is None

    def with_status(self, status: TransferStatus) -> list[str]:
        """Get the item paths that ended with a status."""
        return sorted(r.action.path_in_repo for r in self.results if r.status == status)

    @property
    def changed(self) -> list[str]:
        """Get the item paths whose destination was written."""
        return sorted(
            r.action.path_in_repo
            for r in self.results
            if r.status in (TransferStatus.COPIED, TransferStatus.LINKED)
        )
