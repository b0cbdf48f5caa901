"""
Signals stored in shot-addressed Zarr stores.

Each shot lives in its own store (local directory or object storage URL built
from a template such as 's3://bucket/{shot}.zarr'). Arrays follow the xarray
convention: dimension names come from the '_ARRAY_DIMENSIONS' attribute
(Zarr v2) or the array's dimension_names metadata (Zarr v3), and the first
dimension's coordinate array, when present, is the time axis.
"""

from typing import Any, Dict, Optional

import fsspec
import numpy as np
import zarr

from ..config import get_default
from .base import Signal, RawPayload


def open_store(url: str, storage_options: Optional[Dict[str, Any]] = None):
    """
    Open a Zarr hierarchy read-only, preferring consolidated metadata.

    Args:
        url: Local path or fsspec URL of the store
        storage_options: Options passed to the fsspec filesystem (credentials, endpoint, ...)

    Returns:
        Root zarr Group
    """
    if storage_options or '://' in url:
        store = fsspec.get_mapper(url, **(storage_options or {}))
    else:
        store = url
    try:
        return zarr.open_consolidated(store, mode='r')
    except Exception:
        return zarr.open_group(store, mode='r')


def dimension_names(array) -> Optional[list]:
    dims = array.attrs.get('_ARRAY_DIMENSIONS')
    if dims:
        return list(dims)
    dims = getattr(getattr(array, 'metadata', None), 'dimension_names', None)
    if dims and all(dims):
        return list(dims)
    return None


class ZarrSignal(Signal):
    """
    Array inside a per-shot Zarr store.

    Examples:
        >>> te = ZarrSignal('thomson/te', store='s3://fusion-data/{shot}.zarr',
        ...                 storage_options={'anon': True})
        >>> te.resolve(30420).as_dict()['units']
        {'data': 'eV', 'times': 's'}
    """

    TYPE = "zarr"

    def __init__(self, path: str, storage_options: Optional[Dict[str, Any]] = None,
                 store: Optional[str] = None, timeout: Optional[float] = None):
        """
        Args:
            path: Array path inside the shot store (e.g., 'thomson/te')
            storage_options: fsspec options for the store
            store: Store URL template containing '{shot}'; defaults to config 'zarr_store'
            timeout: Per-fetch timeout in seconds
        """
        if not isinstance(path, str) or not path.strip('/'):
            raise ValueError(f"path must be a non-empty string, got {path!r}")
        super().__init__(timeout=timeout if timeout is not None else get_default('fetch_timeout'))
        self.path = path.strip('/')
        self.storage_options = dict(storage_options or {})
        self.store = store or get_default('zarr_store', '{shot}.zarr')
        if '{shot}' not in self.store:
            raise ValueError(f"store template must contain '{{shot}}', got {self.store!r}")

    def _params(self) -> Dict[str, Any]:
        return {'path': self.path, 'store': self.store, 'storage_options': self.storage_options}

    def store_url(self, shot: int) -> str:
        return self.store.format(shot=shot)

    def _fetch(self, shot: int) -> RawPayload:
        root = open_store(self.store_url(shot), self.storage_options)
        if self.path not in root:
            raise KeyError(f"'{self.path}' not found in {self.store_url(shot)}")

        array = root[self.path]
        data = np.asarray(array[...])
        units = {'data': array.attrs.get('units', '')}

        times = None
        dims = dimension_names(array)
        if dims and data.ndim > 0:
            parent = self.path.rpartition('/')[0]
            time_path = f"{parent}/{dims[0]}" if parent else dims[0]
            if time_path != self.path and time_path in root:
                time_array = root[time_path]
                times = np.asarray(time_array[...])
                units['times'] = time_array.attrs.get('units', '')

        return data, times, units
