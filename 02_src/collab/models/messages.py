"""Message-related data models."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Literal

# Reserved recipient meaning "every registered worker except the sender"
BROADCAST = "<all>"

Role = Literal["user", "assistant", "system"]


class CauseBy(str, Enum):
    """Event kind that triggered a message."""

    USER_REQUIREMENT = "UserRequirement"
    TASK_ASSIGNMENT = "TaskAssignment"
    AGENT_RESPONSE = "AgentResponse"
    BROADCAST = "Broadcast"
    DIRECT_COMMUNICATION = "DirectCommunication"
    ERROR = "Error"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: "str | CauseBy") -> "CauseBy":
        """Map a free-form tag onto the closed set; unrecognised tags become UNKNOWN."""
        if isinstance(value, CauseBy):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Message:
    """A unit of communication between workers. Immutable once created."""

    content: str
    send_to: frozenset[str]
    sent_from: str = ""
    role: Role = "assistant"
    cause_by: CauseBy = CauseBy.USER_REQUIREMENT
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        if isinstance(self.send_to, str):
            object.__setattr__(self, "send_to", frozenset([self.send_to]))
        elif not isinstance(self.send_to, frozenset):
            object.__setattr__(self, "send_to", frozenset(self.send_to))
        if not self.send_to:
            raise ValueError("Message.send_to must name at least one recipient")
        object.__setattr__(self, "cause_by", CauseBy.parse(self.cause_by))

    @property
    def is_broadcast(self) -> bool:
        return BROADCAST in self.send_to

    def addressed_to(self, *names: str) -> bool:
        """True if any of the given ids/names is an explicit recipient."""
        return any(name in self.send_to for name in names if name)

    def stamped(self, sender: str) -> "Message":
        """Copy of this message with sent_from set to sender."""
        return replace(self, sent_from=sender)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "role": self.role,
            "cause_by": self.cause_by.value,
            "sent_from": self.sent_from,
            "send_to": sorted(self.send_to),
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp.isoformat(),
        }


def recipients(send_to: "str | Iterable[str]") -> frozenset[str]:
    """Normalize a recipient spec (single id, list or set) into a frozenset."""
    if isinstance(send_to, str):
        return frozenset([send_to])
    return frozenset(send_to)


@dataclass
class ChatTurn:
    """A neutral transcript entry passed to the completion service."""

    role: Literal["user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}
