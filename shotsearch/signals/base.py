"""
Base class for Signal descriptors.

A Signal describes where a measurable quantity lives (expression + tree, or a
store path). It never embeds a shot number: the same instance is resolved
against every shot of a Pipeline, possibly from several worker processes, so
subclasses must stay immutable and picklable.

Subclass contract:
    TYPE = "mds"                     # tag used by SignalFactory and catalogues

    def _params(self) -> dict:        # descriptor fields, used for repr/eq/hash
        ...

    def _fetch(self, shot) -> tuple:  # (data, times or None, units dict)
        ...

resolve() wraps _fetch(): it applies the optional timeout, validates the
payload into a SignalResult and converts every failure into a FetchError.
"""

import concurrent.futures
import logging
from typing import Any, Dict, Optional, Tuple

from ..core import SignalResult
from ..errors import FetchError

logger = logging.getLogger(__name__)

RawPayload = Tuple[Any, Optional[Any], Dict[str, str]]


class Signal:
    """Base class for all signal descriptors."""

    # Subclasses should override
    TYPE: str = None

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def _params(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _fetch(self, shot: int) -> RawPayload:
        raise NotImplementedError

    def descriptor(self) -> str:
        """Short human-readable description used in errors and logs."""
        params = ', '.join(f"{k}={v!r}" for k, v in self._params().items())
        return f"{type(self).__name__}({params})"

    def resolve(self, shot: int) -> SignalResult:
        """
        Fetch this signal for one shot.

        Args:
            shot: Shot number

        Returns:
            Validated SignalResult

        Raises:
            FetchError: On any failure, including timeout and malformed shapes
        """
        try:
            data, times, units = self._fetch_with_timeout(shot)
            return SignalResult(data=data, times=times, units=units)
        except FetchError:
            raise
        except Exception as e:
            logger.debug("Fetch of %s failed for shot %d: %s", self.descriptor(), shot, e)
            raise FetchError(shot, self.descriptor(), e) from e

    def _fetch_with_timeout(self, shot: int) -> RawPayload:
        if not self.timeout:
            return self._fetch(shot)

        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(self._fetch, shot)
            try:
                return future.result(timeout=self.timeout)
            except concurrent.futures.TimeoutError as e:
                raise FetchError(
                    shot, self.descriptor(), f"TimeoutError: no response within {self.timeout}s"
                ) from e
        finally:
            # Do not wait for a hung fetch
            pool.shutdown(wait=False, cancel_futures=True)

    def _key(self):
        return (type(self).__name__, repr(sorted(self._params().items())))

    def __eq__(self, other):
        if not isinstance(other, Signal):
            return NotImplemented
        return self._key() == other._key() and self.timeout == other.timeout

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return self.descriptor()
