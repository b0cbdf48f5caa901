"""
MDSplus signals fetched through OMAS mdsvalue.

One round trip per resolve(): the data expression, its time base and both unit
labels are sent as a single TDI dictionary.
"""

from typing import Any, Dict, Optional

import numpy as np

from ..config import get_default
from .base import Signal, RawPayload

# Optional OMAS import, only needed when a signal is actually resolved
try:
    from omas import mdsvalue
    OMAS_AVAILABLE = True
except ImportError:
    OMAS_AVAILABLE = False
    mdsvalue = None


def _label(value: Any) -> str:
    """Normalize an MDSplus units_of() result to a plain string."""
    if value is None or isinstance(value, Exception):
        return ''
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='replace')
    if isinstance(value, np.ndarray):
        value = value.item() if value.size == 1 else ''
        return _label(value)
    return str(value).strip()


def query_mdsplus(server: str, tree: Optional[str], shot: int, tdi: Dict[str, str]) -> Dict[str, Any]:
    """
    Run a dictionary of TDI expressions against one tree/shot.

    Args:
        server: MDSplus server name or address (e.g., 'd3d')
        tree: Tree name, or None for tree-less expressions such as ptdata2()
        shot: Shot number
        tdi: Mapping of result key -> TDI expression

    Returns:
        Mapping of result key -> value; failed entries hold the exception instance

    Raises:
        RuntimeError: If OMAS is not available
    """
    if not OMAS_AVAILABLE:
        raise RuntimeError(
            "OMAS is required to fetch MDSplus signals but is not installed. "
            "Install OMAS or use a different Signal type."
        )
    result = mdsvalue(server, treename=tree, pulse=shot, TDI=tdi)
    return result.raw()


def orient_time_first(data: np.ndarray, times: Optional[np.ndarray]) -> np.ndarray:
    """
    Put the time axis first.

    MDSplus dimension 0 maps to the last numpy axis of multi-dimensional data.
    """
    if times is None or data.ndim < 2:
        return data
    n_time = times.shape[0]
    if data.shape[0] != n_time and data.shape[-1] == n_time:
        return np.moveaxis(data, -1, 0)
    return data


class MdsSignal(Signal):
    """
    Signal stored in an MDSplus tree.

    Examples:
        >>> ip = MdsSignal(r'\\ipmhd', 'efit01')
        >>> result = ip.resolve(165920)
        >>> result.as_dict()['units']
        {'data': 'A', 'times': 'ms'}
    """

    TYPE = "mds"

    def __init__(self, expression: str, tree: Optional[str], server: Optional[str] = None,
                 fetch_units: bool = True, timeout: Optional[float] = None):
        """
        Args:
            expression: TDI expression or node path (e.g., '\\ipmhd')
            tree: Tree name (e.g., 'efit01'); None for tree-less expressions
            server: MDSplus server; defaults to config 'mds_server'
            fetch_units: Also query units_of() for data and time base
            timeout: Per-fetch timeout in seconds; defaults to config 'fetch_timeout'
        """
        if not isinstance(expression, str) or not expression:
            raise ValueError(f"expression must be a non-empty string, got {expression!r}")
        super().__init__(timeout=timeout if timeout is not None else get_default('fetch_timeout'))
        self.expression = expression
        self.tree = tree
        self.server = server or get_default('mds_server', 'd3d')
        self.fetch_units = fetch_units

    def _params(self) -> Dict[str, Any]:
        return {'expression': self.expression, 'tree': self.tree, 'server': self.server}

    def _expression_for(self, shot: int) -> str:
        return self.expression

    def _time_expression(self, expr: str) -> str:
        return f"dim_of({expr})"

    def _fetch(self, shot: int) -> RawPayload:
        expr = self._expression_for(shot)
        time_expr = self._time_expression(expr)

        tdi = {'data': expr, 'times': time_expr}
        if self.fetch_units:
            tdi['data_units'] = f"units_of({expr})"
            tdi['times_units'] = f"units_of({time_expr})"

        raw = query_mdsplus(self.server, self.tree, shot, tdi)

        data = raw.get('data')
        if isinstance(data, Exception):
            raise data
        if data is None:
            raise KeyError(f"No data returned for {expr}")
        data = np.asarray(data)

        # A failed dim_of() means the node has no time base
        times = raw.get('times')
        if isinstance(times, Exception) or times is None or data.ndim == 0:
            times = None
        else:
            times = np.atleast_1d(np.asarray(times))
            data = orient_time_first(data, times)

        units = {'data': _label(raw.get('data_units'))}
        if times is not None:
            units['times'] = _label(raw.get('times_units'))

        return data, times, units
