"""Continuous sync daemon.

States:
    IDLE -> FETCHING -> APPLYING -> SLEEPING -> FETCHING -> ...
                     -> SLEEPING (fetch failed or nothing new)
    any  -> STOPPED (stop() honored at the next cycle boundary)

A fetch failure never ends the loop: it is logged and retried on the next
cycle, after a full interval of sleep.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum, auto

from gitsyncbackup.repository import GitTransportError
from gitsyncbackup.sync.operations import Workspace, restore
from gitsyncbackup.sync.types import BatchResult

logger = logging.getLogger(__name__)


class DaemonState(Enum):
    """State of the sync daemon."""

    IDLE = auto()
    FETCHING = auto()
    APPLYING = auto()
    SLEEPING = auto()
    STOPPED = auto()


class SyncDaemon:
    """Periodically fetch the remote branch and restore what changed.

    One cycle runs at a time; the repository lock is held from fetch to the
    end of the restore so no other git operation sees a half-updated tree.

    Usage:
        daemon = SyncDaemon(workspace)
        signal.signal(signal.SIGTERM, lambda *_: daemon.stop())
        daemon.run()
    """

    def __init__(
        self,
        workspace: Workspace,
        interval: float | None = None,
        max_workers: int | None = None,
        wait: Callable[[float], object] | None = None,
    ) -> None:
        """Initialize the daemon.

        Args:
            workspace: Loaded workspace.
            interval: Seconds between cycles (default: config sync_interval).
            max_workers: Maximum concurrent transfers per restore.
            wait: Sleep function taking seconds; defaults to an interruptible
                wait on the stop event.
        """
        self._workspace = workspace
        self._interval = interval if interval is not None else workspace.config.sync.sync_interval
        self._max_workers = max_workers

        self._stop_event = threading.Event()
        self._wait = wait or self._stop_event.wait
        self._state = DaemonState.IDLE

        # Stats
        self.cycles = 0
        self.failed_fetches = 0
        self.last_result: BatchResult | None = None

    @property
    def state(self) -> DaemonState:
        """Get current daemon state."""
        return self._state

    @property
    def interval(self) -> float:
        """Get the sleep interval in seconds."""
        return self._interval

    @property
    def stop_requested(self) -> bool:
        """Check if stop() was called."""
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request the loop to end at the next cycle boundary."""
        logger.info("Sync daemon stopping...")
        self._stop_event.set()

    def run_cycle(self) -> BatchResult | None:
        """Run one fetch -> apply cycle.

        Returns:
            The restore result, or None if the fetch failed or brought
            no changes (the apply phase is then skipped).
        """
        sync = self._workspace.config.sync
        repository = self._workspace.repository

        with repository.lock:
            self._state = DaemonState.FETCHING
            try:
                changed = repository.fetch(sync.git_remote, sync.git_branch)
                if changed:
                    changed = repository.fast_forward_or_merge(sync.git_branch)
            except GitTransportError as e:
                self.failed_fetches += 1
                logger.error(f"Failed to pull from remote: {e}")
                return None

            if not changed:
                logger.info("No remote changes, nothing to restore.")
                return None

            self._state = DaemonState.APPLYING
            logger.info("Pull successful, now restoring files...")
            result = restore(self._workspace, self._max_workers)

        for error in result.errors:
            logger.error(f"Failed to restore after pull: {error}")
        self.last_result = result
        return result

    def run(self, max_cycles: int | None = None) -> None:
        """Run cycles until stopped.

        Args:
            max_cycles: Stop after this many cycles (default: run forever).
        """
        logger.info(f"Starting sync process. Interval: {self._interval} seconds.")
        try:
            while not self.stop_requested:
                logger.info("Running sync cycle...")
                self.run_cycle()
                self.cycles += 1
                if max_cycles is not None and self.cycles >= max_cycles:
                    break
                if self.stop_requested:
                    break

                self._state = DaemonState.SLEEPING
                logger.info(f"Sync cycle finished. Sleeping for {self._interval}s...")
                self._wait(self._interval)
        finally:
            self._state = DaemonState.STOPPED
            logger.info("Sync daemon stopped")
