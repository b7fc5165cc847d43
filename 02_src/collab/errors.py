"""Error taxonomy for the collaboration core."""


class CollabError(Exception):
    """Base class for collaboration errors."""


class AssignmentError(CollabError):
    """Task breakdown is empty or invalid; the request is not scheduled."""


class WorkerNotFoundError(CollabError):
    """A subtask references a worker that is not registered."""

    def __init__(self, worker_id: str):
        super().__init__(f"Worker not found: {worker_id}")
        self.worker_id = worker_id


class CompletionError(CollabError):
    """The completion service failed (provider, network or quota)."""


class RoutingWarning(UserWarning):
    """A message was addressed to an unknown or unregistered id."""
