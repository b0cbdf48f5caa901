"""
Shared pytest fixtures and utilities for shotsearch tests.

This file is automatically discovered by pytest and makes fixtures available
to all test files in this directory.
"""

import pytest
from concurrent.futures import ThreadPoolExecutor

from shotsearch import (
    DistributedBackend, Pipeline, ResultSet, SequentialBackend, WorkerPoolBackend,
)
from tests.helpers import RampSignal


# Reference shot for tests that talk to a real MDSplus server
REFERENCE_SHOT = 165920

# Shots used by the in-memory tests
TEST_SHOTS = [1, 2, 3, 4, 5, 6]


# ============================================================================
# Backends
# ============================================================================

def thread_executor_factory():
    return ThreadPoolExecutor(max_workers=3)


BACKEND_FACTORIES = {
    'sequential': lambda: SequentialBackend(),
    'threads': lambda: WorkerPoolBackend(num_workers=3, executor='thread'),
    'processes': lambda: WorkerPoolBackend(num_workers=2, executor='process', chunksize=2),
    'distributed': lambda: DistributedBackend(executor_factory=thread_executor_factory),
}


@pytest.fixture(params=list(BACKEND_FACTORIES))
def backend(request):
    """Every backend variant, one test run each."""
    return BACKEND_FACTORIES[request.param]()


@pytest.fixture
def sequential():
    return SequentialBackend()


# ============================================================================
# Signals and pipelines
# ============================================================================

@pytest.fixture
def ramp():
    """Deterministic signal that succeeds for every shot."""
    return RampSignal(n=5)


@pytest.fixture
def pipeline_factory():
    """
    Factory fixture building a Pipeline over TEST_SHOTS (or the given shots).

    Usage:
        pipe = pipeline_factory()
        pipe = pipeline_factory([1, 2, 3])
    """
    def _make(shots=None):
        return Pipeline(TEST_SHOTS if shots is None else shots)
    return _make


# ============================================================================
# Utility Functions
# ============================================================================

def summarize(results: ResultSet):
    """
    Reduce a ResultSet to comparable plain sets.

    Returns:
        Tuple of (completed shots, failed shots, dropped shots)
    """
    return (
        set(rec.shot for rec in results.successes),
        set(results.failures),
        set(results.dropped),
    )


def records_by_shot(results: ResultSet):
    return {rec.shot: rec for rec in results.successes}
