"""
Base class for execution backends.

A backend takes a built Pipeline and produces a ResultSet by running the
pipeline's stage list against every shot. Backends differ only in where the
per-shot work runs and how infrastructure failures are recovered; the set of
completed, dropped and failed shots is the same for all of them.

Subclass contract:
    NAME = "sequential"     # registry name used by create_backend()

    def _execute(self, stages, shots) -> ResultSet:
        ...
"""

import logging
import time
from typing import Iterator, List, Optional, Sequence, Tuple

from ..core import ResultSet, ShotOutcome
from ..pipeline import Pipeline, Stage, normalize_shots, process_shot

logger = logging.getLogger(__name__)

Shard = Tuple[int, ...]


def process_shard(stages: Sequence[Stage], shard: Shard) -> List[ShotOutcome]:
    """Run the full stage list for every shot of one work unit."""
    return [process_shot(stages, shot) for shot in shard]


def make_shards(shots: Sequence[int], chunksize: int) -> Iterator[Shard]:
    """Split shots into consecutive work units of at most ``chunksize`` shots."""
    if chunksize < 1:
        raise ValueError(f"chunksize must be >= 1, got {chunksize}")
    for i in range(0, len(shots), chunksize):
        yield tuple(shots[i:i + chunksize])


class Backend:
    """Base class for all execution backends."""

    # Subclasses should override
    NAME: str = None

    def run(self, pipeline: Pipeline, shots: Optional[Sequence[int]] = None) -> ResultSet:
        """
        Execute ``pipeline`` over ``shots``.

        Args:
            pipeline: Pipeline to run; its stage list is snapshotted before any work starts
            shots: Shots to process (default: the pipeline's shots)

        Returns:
            ResultSet of completed Records plus failure and dropped listings

        Raises:
            BackendError: If the execution infrastructure fails beyond its retries
        """
        stages = pipeline.stages
        shots = pipeline.shots if shots is None else normalize_shots(shots)

        logger.info("%s: running %d stage(s) over %d shot(s)", self.NAME, len(stages), len(shots))
        start_time = time.time()

        results = self._execute(stages, shots)

        logger.info(
            "%s: finished in %.2fs - completed=%d failed=%d dropped=%d",
            self.NAME, time.time() - start_time,
            len(results.successes), len(results.failures), len(results.dropped)
        )
        for shot, failure in results.failures.items():
            logger.warning("Shot %d failed: %s", shot, failure.reason)
        return results

    def _execute(self, stages: Tuple[Stage, ...], shots: Tuple[int, ...]) -> ResultSet:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"
