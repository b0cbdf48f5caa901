"""
Distributed backend.

Same contract as the worker pool, generalised to any concurrent.futures
Executor supplied by a cluster scheduler, e.g.:

    from dask.distributed import Client
    client = Client('scheduler:8786')
    backend = DistributedBackend(executor_factory=client.get_executor)

    from mpi4py.futures import MPIPoolExecutor
    backend = DistributedBackend(executor_factory=MPIPoolExecutor)

Shards are retried individually as soon as they fail, while the rest of the
run keeps going. A broken executor is replaced once and the affected shards
are resubmitted to the replacement.
"""

import concurrent.futures
import logging
from collections import defaultdict
from typing import Callable, Dict, Optional, Tuple

from ..config import get_default
from ..core import ResultSet
from ..errors import BackendError
from ..pipeline import Stage
from .base import Backend, Shard, make_shards, process_shard

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[], concurrent.futures.Executor]


def default_executor_factory() -> concurrent.futures.Executor:
    return concurrent.futures.ProcessPoolExecutor(max_workers=get_default('num_workers'))


class DistributedBackend(Backend):
    """Cluster execution through an injected Executor factory."""

    NAME = "distributed"

    def __init__(self, executor_factory: Optional[ExecutorFactory] = None,
                 max_retries: Optional[int] = None, chunksize: Optional[int] = None):
        """
        Args:
            executor_factory: Zero-argument callable returning an Executor (default: local process pool)
            max_retries: Resubmissions allowed per shard (default: config 'max_retries')
            chunksize: Shots per work unit (default: config 'chunksize')
        """
        self.executor_factory = executor_factory or default_executor_factory
        self.max_retries = max_retries if max_retries is not None else get_default('max_retries', 2)
        self.chunksize = chunksize or get_default('chunksize', 1)

    def _execute(self, stages: Tuple[Stage, ...], shots: Tuple[int, ...]) -> ResultSet:
        results = ResultSet()
        attempts: Dict[Shard, int] = defaultdict(int)
        executor = self.executor_factory()
        retired = []

        # future -> (shard, executor it was submitted to)
        futures: Dict[concurrent.futures.Future, Tuple[Shard, concurrent.futures.Executor]] = {}

        def count_failure(shard: Shard, error: BaseException):
            attempts[shard] += 1
            if attempts[shard] > self.max_retries:
                raise BackendError(
                    f"Shard {list(shard)} failed {attempts[shard]} time(s): {error}"
                ) from error

        def replace_executor(error: BaseException):
            nonlocal executor
            logger.warning("Executor broke (%s); starting a replacement", error)
            retired.append(executor)
            executor = self.executor_factory()

        def submit(shard: Shard):
            # An executor can already be broken before its failed futures are collected
            while True:
                try:
                    future = executor.submit(process_shard, stages, shard)
                except concurrent.futures.BrokenExecutor as e:
                    count_failure(shard, e)
                    replace_executor(e)
                    continue
                futures[future] = (shard, executor)
                return

        try:
            for shard in make_shards(shots, self.chunksize):
                submit(shard)

            while futures:
                done, _ = concurrent.futures.wait(futures, return_when=concurrent.futures.FIRST_COMPLETED)
                for future in done:
                    shard, owner = futures.pop(future)
                    try:
                        outcomes = future.result()
                    except Exception as e:
                        count_failure(shard, e)
                        if isinstance(e, concurrent.futures.BrokenExecutor) and owner is executor:
                            replace_executor(e)

                        logger.warning(
                            "Shard %s failed (%s); resubmitting, retry %d/%d",
                            list(shard), e, attempts[shard], self.max_retries
                        )
                        submit(shard)
                        continue

                    for outcome in outcomes:
                        results.add(outcome)
        finally:
            for old in retired:
                old.shutdown(wait=False)
            executor.shutdown(wait=True)

        return results

    def __repr__(self):
        return f"DistributedBackend(max_retries={self.max_retries}, chunksize={self.chunksize})"
