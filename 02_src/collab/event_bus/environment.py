"""Environment: in-memory message bus with per-worker routing and bounded history."""

import warnings
from collections import deque
from typing import Any, Iterable, Protocol

from ..errors import RoutingWarning
from ..logging_config import get_logger
from ..models import CauseBy, Message, Role, recipients

logger = get_logger(__name__)


class IObservableWorker(Protocol):
    """What the bus needs from a registered worker."""

    @property
    def worker_id(self) -> str:
        """Registry key."""
        ...

    @property
    def is_idle(self) -> bool:
        """True when the worker has nothing left to respond to."""
        ...

    def receive(self, message: Message) -> None:
        """Enqueue a message into the worker's mailbox."""
        ...


class IEnvironment(Protocol):
    """Routing table plus message history shared by all workers."""

    def register(self, worker: IObservableWorker) -> None:
        """Add a worker to the routing table."""
        ...

    def unregister(self, worker_id: str) -> bool:
        """Remove a worker. Returns whether it was present."""
        ...

    def publish(self, message: Message, sender: str | None = None) -> bool:
        """Record a message in history and route it to its recipients."""
        ...

    def history(self, limit: int | None = None) -> list[Message]:
        """Most recent messages, oldest first."""
        ...

    def conversation_between(self, worker_a: str, worker_b: str) -> list[Message]:
        """Messages exchanged directly between two ids."""
        ...


class Environment:
    """Single-process message bus.

    Mutation happens synchronously inside ``publish``; with one event loop
    no locking is required.
    """

    def __init__(self, max_history: int = 10000):
        self._workers: dict[str, IObservableWorker] = {}
        self._history: deque[Message] = deque(maxlen=max_history)

    # Registry

    def register(self, worker: IObservableWorker) -> None:
        """Add a worker to the routing table (replaces an existing one with the same id)."""
        self._workers[worker.worker_id] = worker
        logger.info("Worker %s joined environment", worker.worker_id)

    def unregister(self, worker_id: str) -> bool:
        """Remove a worker from the routing table. Idempotent."""
        removed = self._workers.pop(worker_id, None) is not None
        if removed:
            logger.info("Worker %s left environment", worker_id)
        return removed

    def get(self, worker_id: str) -> IObservableWorker | None:
        return self._workers.get(worker_id)

    def __contains__(self, worker_id: object) -> bool:
        return worker_id in self._workers

    @property
    def workers(self) -> list[IObservableWorker]:
        """Registered workers in registration order."""
        return list(self._workers.values())

    @property
    def worker_ids(self) -> list[str]:
        return list(self._workers)

    # Messaging

    def publish(self, message: Message, sender: str | None = None) -> bool:
        """Append to history, then route.

        If ``sender`` is given it overrides ``message.sent_from``.
        """
        if sender is not None:
            message = message.stamped(sender)

        self._history.append(message)
        delivered = self._route(message)

        logger.debug(
            "Message published: %s -> %s (%d delivered)",
            message.sent_from,
            ", ".join(sorted(message.send_to)),
            delivered,
        )
        return True

    def _route(self, message: Message) -> int:
        delivered = 0

        if message.is_broadcast:
            for worker_id, worker in self._workers.items():
                if worker_id != message.sent_from:
                    worker.receive(message)
                    delivered += 1
        else:
            for target_id in sorted(message.send_to):
                worker = self._workers.get(target_id)
                if worker is None:
                    self._warn_unroutable(target_id, message)
                    continue
                worker.receive(message)
                delivered += 1

        if delivered == 0:
            logger.warning("Message %s found no recipients: %.50s", message.id, message.content)
        return delivered

    @staticmethod
    def _warn_unroutable(target_id: str, message: Message) -> None:
        logger.warning(
            "Target worker not registered: %s",
            target_id,
            extra={"context": {"message_id": message.id, "sent_from": message.sent_from}},
        )
        warnings.warn(
            f"Message {message.id} addressed to unregistered id {target_id!r}",
            RoutingWarning,
            stacklevel=4,
        )

    def create_message(
        self,
        content: str,
        sent_from: str,
        send_to: str | Iterable[str],
        cause_by: CauseBy | str = CauseBy.USER_REQUIREMENT,
        role: Role = "assistant",
    ) -> Message:
        """Build a message; ``send_to`` may be an id, a list or a set."""
        return Message(
            content=content,
            sent_from=sent_from,
            send_to=recipients(send_to),
            cause_by=CauseBy.parse(cause_by),
            role=role,
        )

    # History

    def history(self, limit: int | None = None) -> list[Message]:
        """The most recent ``limit`` messages, or everything retained."""
        if limit:
            return list(self._history)[-limit:]
        return list(self._history)

    def conversation_between(self, worker_a: str, worker_b: str) -> list[Message]:
        """Messages exchanged directly between two ids, either direction."""
        return [
            m
            for m in self._history
            if (m.sent_from == worker_a and worker_b in m.send_to)
            or (m.sent_from == worker_b and worker_a in m.send_to)
        ]

    # State

    def is_idle(self) -> bool:
        """True iff every registered worker reports idle."""
        return all(worker.is_idle for worker in self._workers.values())

    def status(self) -> dict[str, Any]:
        return {
            "worker_count": len(self._workers),
            "message_count": len(self._history),
            "is_idle": self.is_idle(),
            "workers": list(self._workers),
        }

    def clear(self) -> None:
        """Drop all workers and history."""
        self._workers.clear()
        self._history.clear()
        logger.info("Environment cleared")
