"""Background execution of backend calls."""

from .worker_pool import DEFAULT_WORKERS, WorkerPool

__all__ = ["DEFAULT_WORKERS", "WorkerPool"]
