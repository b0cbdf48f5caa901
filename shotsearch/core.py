from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional
from enum import Enum

import awkward as ak
import numpy as np

from .errors import ShotSearchError

RESERVED_FIELDS = frozenset({'shot'})
UNIT_AXES = ('data', 'times')


class ShotStatus(Enum):
    COMPLETED = "completed"
    DROPPED = "dropped"
    FAILED = "failed"


@dataclass
class SignalResult:
    """
    Value produced by resolving a Signal against one shot.

    ``times``, when present, is the independent axis of ``data`` and must be
    1-d with ``len(times) == data.shape[0]``. ``units`` only carries labels for
    axes that exist.
    """
    data: Any
    times: Optional[Any] = None
    units: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.data = np.asarray(self.data)
        units = dict(self.units or {})

        unknown = set(units) - set(UNIT_AXES)
        if unknown:
            raise ValueError(f"Unknown unit axes {sorted(unknown)}; expected a subset of {UNIT_AXES}")

        if self.times is not None:
            self.times = np.asarray(self.times)
            if self.times.ndim != 1:
                raise ValueError(f"times must be 1-d, got shape {self.times.shape}")
            if self.data.ndim == 0:
                raise ValueError("Scalar data cannot have a times axis")
            if self.data.shape[0] != self.times.shape[0]:
                raise ValueError(
                    f"data and times length mismatch: {self.data.shape[0]} != {self.times.shape[0]}"
                )
        elif 'times' in units:
            raise ValueError("times unit given for a signal without a times axis")

        # Empty labels carry no information
        self.units = {axis: str(label) for axis, label in units.items() if label not in (None, '')}

    def as_dict(self) -> Dict[str, Any]:
        """Return the boundary mapping {'data', 'times'?, 'units'}."""
        result = {'data': self.data}
        if self.times is not None:
            result['times'] = self.times
        result['units'] = dict(self.units)
        return result


def _values_equal(a: Any, b: Any) -> bool:
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(_values_equal(a[k], b[k]) for k in a)
    if isinstance(a, ShotSearchError) or isinstance(b, ShotSearchError):
        return type(a) is type(b) and a.args == b.args
    if isinstance(a, (np.ndarray, list, tuple)) or isinstance(b, (np.ndarray, list, tuple)):
        try:
            return bool(np.array_equal(a, b, equal_nan=True))
        except TypeError:
            # equal_nan is not defined for string/object arrays
            return bool(np.array_equal(a, b))
    if hasattr(a, 'equals'):
        # xarray and pandas objects
        return bool(a.equals(b))
    return bool(a == b)


class Record:
    """
    Per-shot accumulator of fetched/derived fields and errors.

    A field name is never in ``fields`` and ``errors`` at the same time.
    Access goes through the mapping API; ``rec['shot']`` returns the shot.
    """

    def __init__(self, shot: int):
        self._shot = shot
        self.fields: Dict[str, Any] = {}
        self.errors: Dict[str, ShotSearchError] = {}

    @property
    def shot(self) -> int:
        return self._shot

    @staticmethod
    def _check_name(name: str):
        if not isinstance(name, str) or not name:
            raise ValueError(f"Field names must be non-empty strings, got {name!r}")
        if name in RESERVED_FIELDS:
            raise ValueError(f"'{name}' is a reserved field name")

    def get(self, name: str, default: Any = None) -> Any:
        if name == 'shot':
            return self._shot
        return self.fields.get(name, default)

    def set(self, name: str, value: Any):
        self._check_name(name)
        self.errors.pop(name, None)
        self.fields[name] = value

    def set_error(self, name: str, error: ShotSearchError):
        self._check_name(name)
        self.fields.pop(name, None)
        self.errors[name] = error

    def has_error(self, name: str) -> bool:
        return name in self.errors

    def keep(self, names: Iterable[str]):
        """Prune fields to exactly ``names`` (missing names are ignored). Errors are untouched."""
        wanted = set(names)
        self.fields = {k: v for k, v in self.fields.items() if k in wanted}

    def discard(self, names: Iterable[str]):
        """Remove ``names`` from fields. Errors are untouched."""
        for name in names:
            self.fields.pop(name, None)

    def keys(self) -> List[str]:
        return list(self.fields.keys())

    def to_dict(self) -> Dict[str, Any]:
        result = {'shot': self._shot}
        result.update(self.fields)
        return result

    def __getitem__(self, name: str) -> Any:
        if name == 'shot':
            return self._shot
        if name in self.errors:
            raise KeyError(f"{name!r} failed for shot {self._shot}: {self.errors[name]}")
        return self.fields[name]

    def __contains__(self, name: str) -> bool:
        return name == 'shot' or name in self.fields

    def __eq__(self, other):
        if not isinstance(other, Record):
            return NotImplemented
        return (
            self._shot == other._shot
            and _values_equal(self.fields, other.fields)
            and _values_equal(self.errors, other.errors)
        )

    __hash__ = None

    def __repr__(self):
        return f"Record(shot={self._shot}, fields={sorted(self.fields)}, errors={sorted(self.errors)})"


@dataclass
class ShotFailure:
    """Why a shot is absent from the successes of a ResultSet."""
    shot: int
    status: ShotStatus
    reason: str
    errors: Dict[str, ShotSearchError] = field(default_factory=dict)
    record: Optional[Record] = field(default=None, repr=False, compare=False)


@dataclass
class ShotOutcome:
    """Terminal state of one shot as reported by process_shot()."""
    shot: int
    status: ShotStatus
    record: Record
    reason: str = ''

    def as_failure(self) -> ShotFailure:
        return ShotFailure(
            shot=self.shot,
            status=self.status,
            reason=self.reason,
            errors=dict(self.record.errors),
            record=self.record,
        )


class ResultSet:
    """
    Completed Records of one compute() call plus the failure listing.

    Order of ``successes`` is unspecified; use sorted() for shot order.
    """

    def __init__(self, successes: Optional[List[Record]] = None,
                 failures: Optional[Dict[int, ShotFailure]] = None,
                 dropped: Optional[Dict[int, ShotFailure]] = None):
        self.successes: List[Record] = list(successes or [])
        self.failures: Dict[int, ShotFailure] = dict(failures or {})
        self.dropped: Dict[int, ShotFailure] = dict(dropped or {})

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[ShotOutcome]) -> "ResultSet":
        result = cls()
        for outcome in outcomes:
            result.add(outcome)
        return result

    def add(self, outcome: ShotOutcome):
        if outcome.status == ShotStatus.COMPLETED:
            self.successes.append(outcome.record)
        elif outcome.status == ShotStatus.DROPPED:
            self.dropped[outcome.shot] = outcome.as_failure()
        else:
            self.failures[outcome.shot] = outcome.as_failure()

    def shots(self) -> List[int]:
        """Sorted shots of the completed Records."""
        return sorted(rec.shot for rec in self.successes)

    def status(self, shot: int) -> Optional[ShotStatus]:
        """Terminal status of ``shot``, or None if it was not part of the run."""
        if shot in self.failures:
            return ShotStatus.FAILED
        if shot in self.dropped:
            return ShotStatus.DROPPED
        if any(rec.shot == shot for rec in self.successes):
            return ShotStatus.COMPLETED
        return None

    def sorted(self) -> "ResultSet":
        return ResultSet(
            successes=sorted(self.successes, key=lambda rec: rec.shot),
            failures=dict(sorted(self.failures.items())),
            dropped=dict(sorted(self.dropped.items())),
        )

    def to_awkward(self, name: str, key: Optional[str] = 'data') -> ak.Array:
        """
        Collect one field across completed Records as a ragged array.

        Args:
            name: Field name
            key: Entry of a SignalResult mapping to extract ('data', 'times'),
                 or None to take the field value as is. Records whose field is
                 not a mapping holding ``key`` (e.g. an xarray Dataset from
                 add_fetch_dataset) are skipped.

        Returns:
            awkward Array with one entry per Record carrying the field, ordered by shot
        """
        values = []
        for rec in sorted(self.successes, key=lambda r: r.shot):
            if name not in rec.fields:
                continue
            value = rec.fields[name]
            if key is not None:
                if not isinstance(value, dict) or key not in value:
                    continue
                value = value[key]
            values.append(value.tolist() if isinstance(value, np.ndarray) else value)
        return ak.Array(values)

    def __len__(self):
        return len(self.successes)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.successes)

    def __getitem__(self, index: int) -> Record:
        return self.successes[index]

    def __repr__(self):
        return (f"ResultSet(successes={len(self.successes)}, failures={len(self.failures)}, "
                f"dropped={len(self.dropped)})")
