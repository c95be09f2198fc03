"""Worker pool for concurrent transfers.

This module provides:
- TransferPool: Runs the actions of one plan on a bounded set of threads

Items of a plan have disjoint paths, so workers share nothing but the
result sink, which is append-only and guarded by a lock.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections.abc import Callable, Sequence

from gitsyncbackup.sync.transfer import TransferEngine
from gitsyncbackup.sync.types import (
    PlannedAction,
    TransferError,
    TransferResult,
    TransferStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


class TransferPool:
    """Bounded pool of worker threads for one batch at a time.

    Usage:
        pool = TransferPool(TransferEngine(), max_workers=4)
        results = pool.run(plan.actions)
    """

    def __init__(
        self,
        engine: TransferEngine | None = None,
        max_workers: int | None = None,
        on_result: Callable[[TransferResult], None] | None = None,
    ) -> None:
        """Initialize the pool.

        Args:
            engine: Engine executing each action.
            max_workers: Maximum concurrent transfers. Defaults to CPU count,
                capped at DEFAULT_MAX_WORKERS.
            on_result: Optional callback invoked (from a worker) per result.
        """
        self._engine = engine or TransferEngine()
        self._max_workers = max_workers or min(os.cpu_count() or 4, DEFAULT_MAX_WORKERS)
        self._on_result = on_result

        self._lock = threading.Lock()
        self._results: list[TransferResult] = []

    @property
    def max_workers(self) -> int:
        """Get the maximum number of concurrent transfers."""
        return self._max_workers

    def run(self, actions: Sequence[PlannedAction]) -> list[TransferResult]:
        """Execute actions concurrently and wait for all of them.

        One failing action never stops the others.

        Args:
            actions: Actions to execute. No ordering is kept between them.

        Returns:
            One result per action, in completion order.
        """
        if not actions:
            return []

        with self._lock:
            self._results = []

        tasks: queue.Queue[PlannedAction | None] = queue.Queue()
        for action in actions:
            tasks.put(action)

        worker_count = min(self._max_workers, len(actions))
        for _ in range(worker_count):
            tasks.put(None)  # Poison pill

        workers = [
            threading.Thread(
                target=self._worker_loop,
                args=(tasks,),
                name=f"TransferPool-{i}",
                daemon=True,
            )
            for i in range(worker_count)
        ]
        logger.debug(f"Running {len(actions)} transfers on {worker_count} workers")
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        with self._lock:
            return list(self._results)

    def _worker_loop(self, tasks: queue.Queue[PlannedAction | None]) -> None:
        while True:
            action = tasks.get()
            if action is None:
                break

            try:
                result = self._engine.run(action)
            except Exception as e:
                logger.exception(f"Unexpected error transferring {action.path_in_repo}")
                result = TransferResult(
                    action=action,
                    status=TransferStatus.FAILED,
                    error=TransferError(action.path_in_repo, f"unexpected error: {e}"),
                )
            logger.debug(
                f"{action.path_in_repo}: {result.status.name} in {result.elapsed_time:.3f}s"
            )
            with self._lock:
                self._results.append(result)
            if self._on_result:
                try:
                    self._on_result(result)
                except Exception:
                    logger.exception("Result callback failed")
