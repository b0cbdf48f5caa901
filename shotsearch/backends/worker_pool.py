"""
Worker-pool backend.

Shards shots across a fixed-size pool of worker processes (or threads). Each
work unit runs the full stage list for its shots independently, so stage
callables and signals must be picklable when processes are used: define them
at module level rather than as closures or lambdas.

If a worker dies the pool breaks and every unfinished shard is re-queued on a
fresh pool, up to ``max_retries`` times.
"""

import concurrent.futures
import logging
import os
from typing import List, Optional, Tuple

from ..config import get_default
from ..core import ResultSet
from ..errors import BackendError
from ..pipeline import Stage
from .base import Backend, Shard, make_shards, process_shard

logger = logging.getLogger(__name__)

EXECUTOR_TYPES = {
    'process': concurrent.futures.ProcessPoolExecutor,
    'thread': concurrent.futures.ThreadPoolExecutor,
}


class WorkerPoolBackend(Backend):
    """Parallel execution on a local process or thread pool."""

    NAME = "worker_pool"

    def __init__(self, num_workers: Optional[int] = None, executor: str = 'process',
                 chunksize: Optional[int] = None, max_retries: Optional[int] = None):
        """
        Args:
            num_workers: Pool size (default: config 'num_workers', else os.cpu_count())
            executor: 'process' or 'thread'
            chunksize: Shots per work unit (default: config 'chunksize')
            max_retries: Pool restarts allowed after a worker crash (default: config 'max_retries')
        """
        if executor not in EXECUTOR_TYPES:
            raise ValueError(f"Unknown executor '{executor}'. Available: {list(EXECUTOR_TYPES)}")
        self.num_workers = num_workers or get_default('num_workers') or os.cpu_count() or 1
        self.executor = executor
        self.chunksize = chunksize or get_default('chunksize', 1)
        self.max_retries = max_retries if max_retries is not None else get_default('max_retries', 2)

    def _execute(self, stages: Tuple[Stage, ...], shots: Tuple[int, ...]) -> ResultSet:
        results = ResultSet()
        pending: List[Shard] = list(make_shards(shots, self.chunksize))
        attempt = 0

        while pending:
            failed, last_error = self._run_round(stages, pending, results)
            if not failed:
                break

            attempt += 1
            if attempt > self.max_retries:
                raise BackendError(
                    f"{len(failed)} shard(s) still failing after {self.max_retries} "
                    f"retries: {last_error}"
                ) from last_error

            logger.warning(
                "Worker pool failure (%s); re-queueing %d shard(s), retry %d/%d",
                last_error, len(failed), attempt, self.max_retries
            )
            pending = failed

        return results

    def _run_round(self, stages: Tuple[Stage, ...], shards: List[Shard],
                   results: ResultSet) -> Tuple[List[Shard], Optional[BaseException]]:
        """Submit shards to a fresh pool; return the shards that did not complete."""
        failed: List[Shard] = []
        last_error = None
        workers = min(self.num_workers, len(shards))

        with EXECUTOR_TYPES[self.executor](max_workers=workers) as pool:
            futures = {pool.submit(process_shard, stages, shard): shard for shard in shards}
            for future in concurrent.futures.as_completed(futures):
                try:
                    outcomes = future.result()
                except Exception as e:
                    failed.append(futures[future])
                    last_error = e
                    continue
                for outcome in outcomes:
                    results.add(outcome)

        return failed, last_error

    def __repr__(self):
        return (f"WorkerPoolBackend(num_workers={self.num_workers}, executor={self.executor!r}, "
                f"chunksize={self.chunksize})")
