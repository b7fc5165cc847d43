"""Message bus module."""

from .environment import Environment, IEnvironment, IObservableWorker
from .mailbox import Mailbox

__all__ = ["Environment", "IEnvironment", "IObservableWorker", "Mailbox"]
