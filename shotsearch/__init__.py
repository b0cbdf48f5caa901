"""
shotsearch - shot-indexed data pipelines for fusion experiments.

Public API:
    Pipeline: Declarative fetch/map/where/keep/discard stages over a shot list
    Record: Per-shot accumulator of fields and errors
    ResultSet: Completed Records plus failure listing
    MdsSignal, PtDataSignal, ZarrSignal: Signal descriptors
    SequentialBackend, WorkerPoolBackend, DistributedBackend: Execution backends
"""

from .core import Record, ResultSet, ShotFailure, ShotStatus, SignalResult
from .errors import BackendError, FetchError, ShotSearchError, StageError
from .signals import MdsSignal, PtDataSignal, Signal, SignalFactory, ZarrSignal, load_signal_catalog
from .pipeline import Pipeline
from .backends import (
    Backend, DistributedBackend, SequentialBackend, WorkerPoolBackend,
    available_backends, create_backend,
)
from .config import configure_logging

__version__ = "0.1.0"

__all__ = [
    'Pipeline', 'Record', 'ResultSet', 'ShotFailure', 'ShotStatus', 'SignalResult',
    'Signal', 'MdsSignal', 'PtDataSignal', 'ZarrSignal', 'SignalFactory', 'load_signal_catalog',
    'Backend', 'SequentialBackend', 'WorkerPoolBackend', 'DistributedBackend',
    'available_backends', 'create_backend',
    'ShotSearchError', 'FetchError', 'StageError', 'BackendError',
    'configure_logging',
]
