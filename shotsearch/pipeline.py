"""
Pipeline - ordered, reusable declaration of per-shot stages.

A Pipeline holds a fixed list of shots and an append-only list of stages.
Building it performs no I/O; compute() hands a snapshot of the stages to an
execution backend, which runs process_shot() once per shot.

Usage:
    pipe = Pipeline([165920, 165921, 165922])
    pipe.add_fetch('ip', MdsSignal(r'\\ipmhd', 'efit01'))

    def peak_current(rec):
        rec.set('ip_max', float(np.max(np.abs(rec['ip']['data']))))

    pipe.add_map(peak_current)
    pipe.add_where(lambda rec: rec.get('ip_max', 0) > 1e6)
    pipe.add_keep(['ip_max'])

    results = pipe.compute('worker_pool')
    for rec in results:
        print(rec.shot, rec['ip_max'])
    print(results.failures)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import xarray as xr
from scipy.interpolate import interp1d

from .core import Record, ShotOutcome, ShotStatus, SignalResult, RESERVED_FIELDS
from .errors import FetchError, StageError
from .signals.base import Signal

__all__ = ['Pipeline', 'process_shot', 'normalize_shots', 'Fetch', 'FetchDataset', 'Map', 'Where', 'Keep', 'Discard']

logger = logging.getLogger(__name__)


def _callable_name(fn: Callable) -> str:
    return getattr(fn, '__qualname__', None) or getattr(fn, '__name__', None) or repr(fn)


def _check_field_name(name: str):
    if not isinstance(name, str) or not name:
        raise ValueError(f"Field names must be non-empty strings, got {name!r}")
    if name in RESERVED_FIELDS:
        raise ValueError(f"'{name}' is a reserved field name")


def normalize_shots(shots: Iterable[int]) -> Tuple[int, ...]:
    """
    Validate shot numbers and drop duplicates, keeping first occurrence order.

    Raises:
        TypeError: If a shot is not an integer
    """
    unique: List[int] = []
    seen = set()
    for shot in shots:
        if isinstance(shot, bool) or not isinstance(shot, (int, np.integer)):
            raise TypeError(f"Shot numbers must be integers, got {shot!r}")
        shot = int(shot)
        if shot not in seen:
            seen.add(shot)
            unique.append(shot)
    return tuple(unique)


def _check_names(names: Iterable[str]) -> Tuple[str, ...]:
    if isinstance(names, str):
        raise TypeError(f"Expected a list of field names, got the string {names!r}")
    names = tuple(names)
    for name in names:
        _check_field_name(name)
    return names


# ============================================================================
# Stages
# ============================================================================
#
# Stage.apply(record) returns None to continue with the next stage, or a
# (status, reason) pair that ends processing of the shot.

StageResult = Optional[Tuple[ShotStatus, str]]


@dataclass(frozen=True)
class Fetch:
    name: str
    signal: Signal

    def describe(self) -> str:
        return f"fetch:{self.name}"

    def apply(self, record: Record) -> StageResult:
        try:
            result = self.signal.resolve(record.shot)
        except FetchError as e:
            record.set_error(self.name, e)
            return None
        record.set(self.name, result.as_dict())
        return None


@dataclass(frozen=True)
class FetchDataset:
    """
    Fetch several signals into one xarray Dataset.

    Without ``align_with`` the variables are outer-joined on their 'times'
    coordinate. With ``align_with`` every other variable is interpolated onto
    that member's time base (NaN outside its range).
    """
    name: str
    signals: Tuple[Tuple[str, Signal], ...]
    align_with: Optional[str] = None

    def describe(self) -> str:
        return f"fetch_dataset:{self.name}"

    def apply(self, record: Record) -> StageResult:
        results: Dict[str, SignalResult] = {}
        for var, signal in self.signals:
            try:
                results[var] = signal.resolve(record.shot)
            except FetchError as e:
                record.set_error(self.name, e)
                return None

        try:
            dataset = self._build(results)
        except Exception as e:
            record.set_error(self.name, FetchError(record.shot, self.describe(), e))
            return None
        record.set(self.name, dataset)
        return None

    def _build(self, results: Dict[str, SignalResult]) -> xr.Dataset:
        base_times = None
        if self.align_with is not None:
            base_times = results[self.align_with].times
            if base_times is None:
                raise ValueError(f"'{self.align_with}' has no times axis to align with")

        arrays = []
        for var, result in results.items():
            data, times = result.data, result.times
            if base_times is not None and times is not None and var != self.align_with:
                data = interp1d(times, data, axis=0, bounds_error=False,
                                fill_value=np.nan)(base_times)
                times = base_times

            if times is None:
                dims = [f"{var}_dim_{i}" for i in range(data.ndim)]
                coords = {}
            else:
                dims = ['times'] + [f"{var}_dim_{i}" for i in range(1, data.ndim)]
                coords = {'times': ('times', times, _unit_attrs(result.units, 'times'))}
            arrays.append(xr.DataArray(data, dims=dims, coords=coords, name=var,
                                       attrs=_unit_attrs(result.units, 'data')))

        return xr.merge(arrays, join='outer', combine_attrs='drop_conflicts')


def _unit_attrs(units: Dict[str, str], axis: str) -> Dict[str, str]:
    return {'units': units[axis]} if axis in units else {}


@dataclass(frozen=True)
class Map:
    fn: Callable[[Record], Any]

    def describe(self) -> str:
        return f"map:{_callable_name(self.fn)}"

    def apply(self, record: Record) -> StageResult:
        try:
            self.fn(record)
        except Exception as e:
            stage = self.describe()
            record.set_error(stage, StageError(record.shot, stage, e))
            return ShotStatus.FAILED, stage
        return None


@dataclass(frozen=True)
class Where:
    predicate: Callable[[Record], Any]

    def describe(self) -> str:
        return f"where:{_callable_name(self.predicate)}"

    def apply(self, record: Record) -> StageResult:
        stage = self.describe()
        try:
            # Truth testing can raise too (numpy arrays, pandas objects)
            keep = bool(self.predicate(record))
        except Exception as e:
            record.set_error(stage, StageError(record.shot, stage, e))
            return ShotStatus.FAILED, stage
        if not keep:
            return ShotStatus.DROPPED, stage
        return None


@dataclass(frozen=True)
class Keep:
    names: Tuple[str, ...]

    def describe(self) -> str:
        return f"keep:{','.join(self.names)}"

    def apply(self, record: Record) -> StageResult:
        record.keep(self.names)
        return None


@dataclass(frozen=True)
class Discard:
    names: Tuple[str, ...]

    def describe(self) -> str:
        return f"discard:{','.join(self.names)}"

    def apply(self, record: Record) -> StageResult:
        record.discard(self.names)
        return None


Stage = Union[Fetch, FetchDataset, Map, Where, Keep, Discard]


def process_shot(stages: Sequence[Stage], shot: int) -> ShotOutcome:
    """
    Run every stage, in declaration order, against a fresh Record for one shot.

    Args:
        stages: Stage list (a Pipeline snapshot)
        shot: Shot number

    Returns:
        ShotOutcome with status COMPLETED, DROPPED or FAILED. A shot that reaches
        the end of the stage list with errors on its Record is FAILED.
    """
    record = Record(shot)
    for stage in stages:
        stop = stage.apply(record)
        if stop is not None:
            status, reason = stop
            logger.debug("Shot %d %s at %s", shot, status.value, reason)
            return ShotOutcome(shot=shot, status=status, record=record, reason=reason)

    if record.errors:
        reason = '; '.join(str(err) for err in record.errors.values())
        logger.debug("Shot %d failed: %s", shot, reason)
        return ShotOutcome(shot=shot, status=ShotStatus.FAILED, record=record, reason=reason)

    return ShotOutcome(shot=shot, status=ShotStatus.COMPLETED, record=record)


# ============================================================================
# Pipeline
# ============================================================================

class Pipeline:
    """
    Ordered declaration of fetch/transform/filter/prune stages over a fixed shot set.

    Every add_* method appends one stage and returns the Pipeline so calls can
    be chained. The Pipeline holds no execution state and can be computed any
    number of times.
    """

    def __init__(self, shots: Iterable[int]):
        """
        Args:
            shots: Shot numbers. Duplicates are dropped, keeping first occurrence order.

        Raises:
            TypeError: If a shot is not an integer
        """
        self._shots: Tuple[int, ...] = normalize_shots(shots)
        self._stages: List[Stage] = []

    @property
    def shots(self) -> Tuple[int, ...]:
        return self._shots

    @property
    def stages(self) -> Tuple[Stage, ...]:
        """Snapshot of the current stage list."""
        return tuple(self._stages)

    def _append(self, stage: Stage) -> "Pipeline":
        self._stages.append(stage)
        return self

    def add_fetch(self, name: str, signal: Signal) -> "Pipeline":
        """Resolve ``signal`` for each shot and store the result mapping as ``name``."""
        _check_field_name(name)
        if not isinstance(signal, Signal):
            raise TypeError(f"Expected a Signal for '{name}', got {type(signal).__name__}")
        return self._append(Fetch(name, signal))

    def add_fetch_dataset(self, name: str, signals: Dict[str, Signal],
                          align_with: Optional[str] = None) -> "Pipeline":
        """
        Resolve several signals and store them as one xarray Dataset named ``name``.

        Args:
            name: Field name for the Dataset
            signals: Mapping of variable name -> Signal
            align_with: Optional variable whose time base every other variable is interpolated onto
        """
        _check_field_name(name)
        if not signals:
            raise ValueError(f"fetch_dataset '{name}' needs at least one signal")
        for var, signal in signals.items():
            if not isinstance(signal, Signal):
                raise TypeError(f"Expected a Signal for '{name}.{var}', got {type(signal).__name__}")
        if align_with is not None and align_with not in signals:
            raise ValueError(f"align_with '{align_with}' is not one of {list(signals)}")
        return self._append(FetchDataset(name, tuple(signals.items()), align_with))

    def add_map(self, fn: Callable[[Record], Any]) -> "Pipeline":
        """Call ``fn(record)`` for its side effects on the Record."""
        if not callable(fn):
            raise TypeError(f"map expects a callable, got {type(fn).__name__}")
        return self._append(Map(fn))

    def add_where(self, predicate: Callable[[Record], Any]) -> "Pipeline":
        """Drop shots for which ``predicate(record)`` is falsy."""
        if not callable(predicate):
            raise TypeError(f"where expects a callable, got {type(predicate).__name__}")
        return self._append(Where(predicate))

    def add_keep(self, names: Iterable[str]) -> "Pipeline":
        """Prune each Record's fields to exactly ``names``."""
        return self._append(Keep(_check_names(names)))

    def add_discard(self, names: Iterable[str]) -> "Pipeline":
        """Remove ``names`` from each Record's fields."""
        return self._append(Discard(_check_names(names)))

    def compute(self, backend=None):
        """
        Run the pipeline.

        Args:
            backend: Backend instance, registered backend name ('sequential',
                     'worker_pool', 'distributed'), or None for the configured default

        Returns:
            ResultSet of completed Records with the failure and dropped listings

        Raises:
            BackendError: If the execution infrastructure fails beyond its retries
        """
        from .backends import create_backend

        if backend is None or isinstance(backend, str):
            backend = create_backend(backend)
        return backend.run(self)

    def compute_serial(self):
        """Run the pipeline one shot at a time in this process."""
        return self.compute('sequential')

    def compute_multiprocessing(self, num_workers: Optional[int] = None):
        """Run the pipeline on a pool of worker processes."""
        from .backends import WorkerPoolBackend
        return self.compute(WorkerPoolBackend(num_workers=num_workers, executor='process'))

    def compute_threads(self, num_workers: Optional[int] = None):
        """Run the pipeline on a pool of threads (I/O bound fetches, unpicklable callables)."""
        from .backends import WorkerPoolBackend
        return self.compute(WorkerPoolBackend(num_workers=num_workers, executor='thread'))

    def __len__(self):
        return len(self._stages)

    def __repr__(self):
        stages = ', '.join(stage.describe() for stage in self._stages)
        return f"Pipeline(shots={len(self._shots)}, stages=[{stages}])"
