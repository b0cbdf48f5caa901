"""
DIII-D PTDATA point-name signals.

PTDATA is not stored in a tree; the TDI call needs the shot number, so the
expression is built at resolve time and the descriptor stays shot-free.
"""

from typing import Any, Dict, Optional

from .mds_signal import MdsSignal


class PtDataSignal(MdsSignal):
    """Signal read with ptdata2("POINTNAME", shot)."""

    TYPE = "pt_data"

    def __init__(self, pointname: str, server: Optional[str] = None,
                 fetch_units: bool = True, timeout: Optional[float] = None):
        """
        Args:
            pointname: PTDATA point name (e.g., 'VLOOP')
            server: MDSplus server; defaults to config 'mds_server'
            fetch_units: Also query units_of() for data and time base
            timeout: Per-fetch timeout in seconds
        """
        if not isinstance(pointname, str) or not pointname:
            raise ValueError(f"pointname must be a non-empty string, got {pointname!r}")
        super().__init__(pointname, None, server=server, fetch_units=fetch_units, timeout=timeout)
        self.pointname = pointname

    def _params(self) -> Dict[str, Any]:
        return {'pointname': self.pointname, 'server': self.server}

    def _expression_for(self, shot: int) -> str:
        return f'ptdata2("{self.pointname}",{shot})'

    def _time_expression(self, expr: str) -> str:
        return f"dim_of({expr},0)"
