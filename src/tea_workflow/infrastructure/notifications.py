"""Notification dispatch for automation rule actions.

Real delivery (e-mail, SMS, push) is out of scope. The dispatcher here logs
each notification and keeps it in memory so callers and the simulation can
inspect what automation raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tea_workflow.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    topic: str
    bid_id: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)


class LoggingNotificationDispatcher:
    """Records notifications and writes them to the structured log."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def notify(self, topic: str, bid_id: str, message: str, **context: Any) -> None:
        notification = Notification(topic=topic, bid_id=bid_id, message=message, context=context)
        self.sent.append(notification)
        logger.info("notification.sent", topic=topic, bid_id=bid_id, message=message, **context)

    def topics(self) -> list[str]:
        return [n.topic for n in self.sent]
