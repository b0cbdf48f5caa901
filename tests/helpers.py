"""
Deterministic in-memory signals and stage callables for tests.

Everything here is defined at module level so it pickles by reference and
can be shipped to worker processes.
"""

import concurrent.futures
import os
import time
from pathlib import Path

import numpy as np

from shotsearch.signals.base import Signal


class RampSignal(Signal):
    """data = scale * shot * times on n points in [0, 1]; fails for fail_shots."""

    TYPE = "ramp"

    def __init__(self, n=5, scale=1.0, fail_shots=(), units=None, timeout=None):
        super().__init__(timeout=timeout)
        self.n = n
        self.scale = scale
        self.fail_shots = tuple(fail_shots)
        self.units = dict(units) if units is not None else {'data': 'A', 'times': 's'}

    def _params(self):
        return {'n': self.n, 'scale': self.scale, 'fail_shots': self.fail_shots}

    def _fetch(self, shot):
        if shot in self.fail_shots:
            raise ConnectionError(f"no data for shot {shot}")
        times = np.linspace(0.0, 1.0, self.n)
        return self.scale * shot * times, times, dict(self.units)


class ScalarSignal(Signal):
    """0-d value equal to the shot number, no time axis."""

    TYPE = "scalar"

    def _params(self):
        return {}

    def _fetch(self, shot):
        return np.float64(shot), None, {'data': 'count'}


class MalformedSignal(Signal):
    """Returns data and times of different lengths."""

    TYPE = "malformed"

    def _params(self):
        return {}

    def _fetch(self, shot):
        return np.zeros(5), np.zeros(4), {}


class SlowSignal(Signal):
    """Sleeps before answering; used with a timeout."""

    TYPE = "slow"

    def __init__(self, delay, timeout=None):
        super().__init__(timeout=timeout)
        self.delay = delay

    def _params(self):
        return {'delay': self.delay}

    def _fetch(self, shot):
        time.sleep(self.delay)
        return np.ones(3), np.arange(3.0), {}


# ============================================================================
# Stage callables
# ============================================================================

def add_peak(rec):
    rec.set('peak', float(np.max(rec['a']['data'])))


def has_x(rec):
    return rec.get('x') is not None


def no_errors(rec):
    return not rec.errors


def odd_shots(rec):
    return rec.shot % 2 == 1


def raise_on_even(rec):
    if rec.shot % 2 == 0:
        raise ValueError("even shot")


def broken_predicate(rec):
    raise ZeroDivisionError("bad predicate")


def mark_visited(rec):
    rec.set('visited', True)


class CrashOnce:
    """Kills the worker process the first time ``shot`` is processed."""

    def __init__(self, marker_dir, shot):
        self.marker_dir = str(marker_dir)
        self.shot = shot

    def __call__(self, rec):
        if rec.shot != self.shot:
            return
        marker = Path(self.marker_dir) / f"crashed_{self.shot}"
        if not marker.exists():
            marker.touch()
            os._exit(1)


class CrashAlways:
    """Kills the worker process every time ``shot`` is processed."""

    def __init__(self, shot):
        self.shot = shot

    def __call__(self, rec):
        if rec.shot == self.shot:
            os._exit(1)


def positive_samples(rec):
    """Returns an element-wise array; its truth value is ambiguous."""
    return rec['a']['data'] > 0


class BrokenSubmitExecutor(concurrent.futures.ThreadPoolExecutor):
    """Executor that is already broken when work is submitted to it."""

    def submit(self, fn, *args, **kwargs):
        raise concurrent.futures.BrokenExecutor("executor lost before submit")
