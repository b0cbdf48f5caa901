"""
Sequential backend - the reference implementation.

Processes shots one at a time, in input order, in the calling process.
"""

import logging
from typing import Tuple

from ..core import ResultSet
from ..errors import BackendError
from ..pipeline import Stage, process_shot
from .base import Backend

logger = logging.getLogger(__name__)


class SequentialBackend(Backend):
    """Deterministic in-process execution, used for debugging and as the equivalence reference."""

    NAME = "sequential"

    def _execute(self, stages: Tuple[Stage, ...], shots: Tuple[int, ...]) -> ResultSet:
        results = ResultSet()
        for shot in shots:
            try:
                outcome = process_shot(stages, shot)
            except Exception as e:
                # Per-shot errors are contained by the stages; anything else is fatal here
                raise BackendError(f"Processing shot {shot} failed outside the stage contract: {e}") from e
            results.add(outcome)
        return results
