"""Path resolution and reconciliation engine.

Architecture:
    ItemResolver → SyncPlanner → TransferPool(TransferEngine) → BatchResult

Components:
- **ItemResolver**: Resolves one item for one device (local path, ignores)
- **SyncPlanner**: Builds the action list of a direction; pure
- **TransferEngine**: Copies or hardlinks one item
- **TransferPool**: Runs a plan's actions on a bounded set of threads
- **operations**: collect / restore / device entry points
- **SyncDaemon**: Periodic fetch + restore loop

All public symbols are re-exported here.
"""

from gitsyncbackup.sync.daemon import DaemonState, SyncDaemon
from gitsyncbackup.sync.operations import (
    Workspace,
    collect,
    commit_message,
    device,
    execute_plan,
    resolve_device,
    restore,
)
from gitsyncbackup.sync.planner import SyncPlanner, check_hardlink_targets
from gitsyncbackup.sync.pool import TransferPool
from gitsyncbackup.sync.resolver import ItemResolver, expand_local_path
from gitsyncbackup.sync.transfer import TransferEngine, copy_file, copy_tree
from gitsyncbackup.sync.types import (
    BatchResult,
    Direction,
    HardlinkFailedError,
    InvalidHardlinkTargetError,
    PlannedAction,
    ResolvedItem,
    SkippedItem,
    SkipReason,
    SourceMissingError,
    SyncPlan,
    TransferError,
    TransferResult,
    TransferStatus,
)

__all__ = [
    # Types
    "BatchResult",
    "Direction",
    "PlannedAction",
    "ResolvedItem",
    "SkippedItem",
    "SkipReason",
    "SyncPlan",
    "TransferResult",
    "TransferStatus",
    # Errors
    "HardlinkFailedError",
    "InvalidHardlinkTargetError",
    "SourceMissingError",
    "TransferError",
    # Resolution and planning
    "ItemResolver",
    "SyncPlanner",
    "check_hardlink_targets",
    "expand_local_path",
    # Transfers
    "TransferEngine",
    "TransferPool",
    "copy_file",
    "copy_tree",
    # Operations
    "Workspace",
    "collect",
    "commit_message",
    "device",
    "execute_plan",
    "resolve_device",
    "restore",
    # Daemon
    "DaemonState",
    "SyncDaemon",
]
