"""Infrastructure: in-memory stores, notification dispatch and per-bid locks."""

from tea_workflow.infrastructure.locks import KeyedLock
from tea_workflow.infrastructure.memory_store import (
    InMemoryBidStore,
    InMemoryEventLog,
    InMemoryInflowStore,
)
from tea_workflow.infrastructure.notifications import (
    LoggingNotificationDispatcher,
    Notification,
)

__all__ = [
    "KeyedLock",
    "InMemoryBidStore",
    "InMemoryEventLog",
    "InMemoryInflowStore",
    "LoggingNotificationDispatcher",
    "Notification",
]
