"""Workers module."""

from .worker import DEFAULT_WATCH, Worker, WorkerContext

__all__ = ["DEFAULT_WATCH", "Worker", "WorkerContext"]
