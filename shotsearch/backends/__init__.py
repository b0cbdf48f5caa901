"""
Execution backends.

- sequential: in-process, in input order (reference implementation)
- worker_pool: local process or thread pool
- distributed: any concurrent.futures Executor from a cluster scheduler
"""

from typing import Dict, List, Optional, Type

from ..config import get_default
from .base import Backend
from .sequential import SequentialBackend
from .worker_pool import WorkerPoolBackend
from .distributed import DistributedBackend

BACKENDS: Dict[str, Type[Backend]] = {
    backend.NAME: backend
    for backend in (SequentialBackend, WorkerPoolBackend, DistributedBackend)
}


def available_backends() -> List[str]:
    return list(BACKENDS)


def create_backend(name: Optional[str] = None, **kwargs) -> Backend:
    """
    Create a backend by registry name.

    Args:
        name: 'sequential', 'worker_pool' or 'distributed' (default: config 'default_backend')
        **kwargs: Passed to the backend constructor

    Raises:
        ValueError: If the name is not registered
    """
    name = name or get_default('default_backend', 'sequential')
    if name not in BACKENDS:
        raise ValueError(f"Unknown backend '{name}'. Available: {available_backends()}")
    return BACKENDS[name](**kwargs)


__all__ = [
    'Backend', 'SequentialBackend', 'WorkerPoolBackend', 'DistributedBackend',
    'available_backends', 'create_backend',
]
