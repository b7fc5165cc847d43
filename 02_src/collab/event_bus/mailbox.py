"""Mailbox implementation: bounded, lossy FIFO of Messages."""

from collections import deque
from typing import Callable, Iterator

from ..models import Message

MessagePredicate = Callable[[Message], bool]


class Mailbox:
    """Per-worker FIFO. When full, the oldest message is evicted to admit the newest."""

    def __init__(self, max_size: int = 1000):
        if max_size < 1:
            raise ValueError("Mailbox max_size must be positive")
        self._queue: deque[Message] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._queue.maxlen or 0

    def push(self, message: Message) -> None:
        """Append a message, evicting the oldest if at capacity."""
        self._queue.append(message)

    def pop(self) -> Message | None:
        """Remove and return the oldest message, or None if empty."""
        return self._queue.popleft() if self._queue else None

    def pop_all(self) -> list[Message]:
        """Drain the mailbox, oldest first."""
        drained = list(self._queue)
        self._queue.clear()
        return drained

    def peek(self) -> Message | None:
        return self._queue[0] if self._queue else None

    def is_empty(self) -> bool:
        return not self._queue

    def size(self) -> int:
        return len(self._queue)

    def clear(self) -> None:
        self._queue.clear()

    def filter(self, predicate: MessagePredicate) -> list[Message]:
        """Messages matching predicate, without removing them."""
        return [m for m in self._queue if predicate(m)]

    def find(self, predicate: MessagePredicate) -> Message | None:
        return next((m for m in self._queue if predicate(m)), None)

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._queue))
