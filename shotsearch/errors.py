"""
Error taxonomy for shotsearch.

Per-shot errors (FetchError, StageError) are stored on the Record and never
abort a batch. Only BackendError propagates out of Pipeline.compute().

All payloads are plain values (int shot, str descriptor, str cause) so errors
survive pickling between worker processes.
"""


def describe_exception(exc: BaseException) -> str:
    """Render an exception as '<ExcType>: <message>'."""
    message = str(exc)
    if message:
        return f"{type(exc).__name__}: {message}"
    return type(exc).__name__


class ShotSearchError(RuntimeError):
    """Base class for all shotsearch errors."""


class FetchError(ShotSearchError):
    """
    Signal resolution failed for one shot.

    Raised when the remote store has no such expression/tree/path for the shot,
    when the connection cannot be established, when the fetch times out, or
    when the returned shape is malformed.
    """

    def __init__(self, shot: int, signal: str, cause):
        if isinstance(cause, BaseException):
            cause = describe_exception(cause)
        super().__init__(shot, signal, cause)
        self.shot = shot
        self.signal = signal
        self.cause = cause

    def __str__(self):
        return f"shot {self.shot}: failed to fetch {self.signal}: {self.cause}"


class StageError(ShotSearchError):
    """A map or where user function raised while processing one shot."""

    def __init__(self, shot: int, stage: str, cause):
        if isinstance(cause, BaseException):
            cause = describe_exception(cause)
        super().__init__(shot, stage, cause)
        self.shot = shot
        self.stage = stage
        self.cause = cause

    def __str__(self):
        return f"shot {self.shot}: stage {self.stage} raised {self.cause}"


class BackendError(ShotSearchError):
    """Infrastructure failure (worker crash, unreachable scheduler) after retries."""
