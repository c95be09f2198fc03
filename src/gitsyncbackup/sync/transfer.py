"""Transfer engine.

Executes one PlannedAction: copies a file or directory between the
repository and its local path, or establishes a hardlink on restore.

Copies only write files whose content differs, so repeating a transfer on
an unchanged tree writes nothing. Existing destination files are unlinked
before being replaced, never written through, so a plain copy can never
modify another hardlink of the same file. The one exception is a local
path that is itself a symlink: restore writes into its target, keeping the
link in place.
"""

from __future__ import annotations

import filecmp
import logging
import os
import shutil
import time
from pathlib import Path

from gitsyncbackup.sync.types import (
    Direction,
    HardlinkFailedError,
    InvalidHardlinkTargetError,
    PlannedAction,
    SourceMissingError,
    TransferError,
    TransferResult,
    TransferStatus,
)

logger = logging.getLogger(__name__)


def _exists(path: Path) -> bool:
    return path.is_symlink() or path.exists()


def _is_real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree if present."""
    if _is_real_dir(path):
        shutil.rmtree(path)
    elif _exists(path):
        path.unlink()


def same_file(a: Path, b: Path) -> bool:
    """Check whether two paths are the same underlying file."""
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def copy_symlink(src: Path, dst: Path) -> bool:
    """Recreate a symlink as-is. Returns True if dst was written."""
    target = os.readlink(src)
    if dst.is_symlink() and os.readlink(dst) == target:
        return False
    remove_path(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(target, dst)
    return True


def copy_file(src: Path, dst: Path) -> bool:
    """Copy a file unless dst already holds the same bytes.

    Returns:
        True if dst was written.
    """
    if _is_real_dir(dst) or dst.is_symlink():
        remove_path(dst)
    elif dst.exists():
        if same_file(src, dst) or filecmp.cmp(src, dst, shallow=False):
            return False
        dst.unlink()

    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)
    return True


def copy_tree(src: Path, dst: Path, prune: bool) -> bool:
    """Copy a directory tree file by file.

    Args:
        src: Directory to copy from.
        dst: Directory to copy to (created if missing).
        prune: Remove entries of dst that are not in src.

    Returns:
        True if anything under dst was written or removed.
    """
    changed = False
    if _exists(dst) and not _is_real_dir(dst):
        remove_path(dst)
        changed = True
    if not dst.exists():
        dst.mkdir(parents=True)
        changed = True

    names: set[str] = set()
    for entry in src.iterdir():
        names.add(entry.name)
        target = dst / entry.name
        if entry.is_symlink():
            changed |= copy_symlink(entry, target)
        elif entry.is_dir():
            changed |= copy_tree(entry, target, prune)
        else:
            changed |= copy_file(entry, target)

    if prune:
        for entry in list(dst.iterdir()):
            if entry.name not in names:
                remove_path(entry)
                changed = True
    return changed


class TransferEngine:
    """Execute planned actions one at a time.

    The engine has no mutable state, so one instance can be shared by
    every worker of a pool.
    """

    def execute(self, action: PlannedAction) -> TransferStatus:
        """Execute one action.

        Args:
            action: The transfer to perform.

        Returns:
            COPIED, LINKED or UNCHANGED.

        Raises:
            SourceMissingError: If the side copied from does not exist.
            InvalidHardlinkTargetError: If a hardlink item is a directory.
            HardlinkFailedError: If the hardlink cannot be created.
            TransferError: On any other filesystem error.
        """
        if action.is_hardlink and action.direction is Direction.COLLECT:
            # Already the same file as the repository copy
            if not same_file(action.local_path, action.repo_path):
                logger.warning(
                    f"'{action.path_in_repo}' is not hardlinked to {action.local_path}; "
                    f"run restore to link it"
                )
            return TransferStatus.UNCHANGED

        source, destination = action.source, action.destination
        if action.direction is Direction.RESTORE and destination.is_symlink():
            # Collect reads through the link, so restore writes through it
            destination = destination.resolve()
        if not _exists(source):
            raise SourceMissingError(action.path_in_repo, f"source path does not exist: {source}")

        try:
            if action.is_hardlink:
                return self._link(action)

            verb = "Collecting" if action.direction is Direction.COLLECT else "Restoring"
            logger.info(f"{verb} '{source}' -> '{destination}'")
            if source.is_dir():
                changed = copy_tree(source, destination, prune=action.direction is Direction.COLLECT)
            else:
                changed = copy_file(source, destination)
        except OSError as e:
            raise TransferError(action.path_in_repo, f"{type(e).__name__}: {e}") from e

        return TransferStatus.COPIED if changed else TransferStatus.UNCHANGED

    def _link(self, action: PlannedAction) -> TransferStatus:
        repo_path, local_path = action.repo_path, action.local_path
        if repo_path.is_dir():
            raise InvalidHardlinkTargetError(
                action.path_in_repo, "is_hardlink is set but the repository path is a directory"
            )
        if local_path.exists() and same_file(local_path, repo_path):
            return TransferStatus.UNCHANGED

        logger.info(f"Linking (hardlink) '{repo_path}' -> '{local_path}'")
        local_path.parent.mkdir(parents=True, exist_ok=True)
        staging = local_path.with_name(f".{local_path.name}.gsb-link")
        remove_path(staging)
        try:
            os.link(repo_path, staging)
        except OSError as e:
            raise HardlinkFailedError(
                action.path_in_repo,
                f"cannot hardlink {repo_path} to {local_path} "
                f"(different filesystems/partitions?): {e}",
            ) from e

        try:
            if _is_real_dir(local_path):
                shutil.rmtree(local_path)
            os.replace(staging, local_path)
        except OSError:
            remove_path(staging)
            raise
        return TransferStatus.LINKED

    def run(self, action: PlannedAction) -> TransferResult:
        """Execute one action and capture its outcome instead of raising."""
        start = time.monotonic()
        try:
            status = self.execute(action)
        except TransferError as e:
            logger.error(f"Failed to {action.direction.value} {e}")
            return TransferResult(
                action=action,
                status=TransferStatus.FAILED,
                error=e,
                elapsed_time=time.monotonic() - start,
            )
        return TransferResult(action=action, status=status, elapsed_time=time.monotonic() - start)
