"""
Signal descriptors.

Signal variants:
    MdsSignal: MDSplus expression + tree
    PtDataSignal: DIII-D PTDATA point name
    ZarrSignal: array path inside a per-shot Zarr store
"""

from .base import Signal
from .mds_signal import MdsSignal
from .pt_data_signal import PtDataSignal
from .zarr_signal import ZarrSignal
from .factory import SignalFactory, load_signal_catalog

__all__ = ['Signal', 'MdsSignal', 'PtDataSignal', 'ZarrSignal', 'SignalFactory', 'load_signal_catalog']
