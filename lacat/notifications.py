"""
Notifications - transaction lifecycle events for the presentation layer.

The sink fans each event out to every subscriber queue and keeps a short
history so polling clients (GET /notifications) can catch up.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional

logger = logging.getLogger("lacat.notifications")


class NotificationKind(str, Enum):
    CANCELLED = "cancelled"
    SUBMITTED = "submitted"
    CONFIRMED_DEPOSIT = "confirmed-deposit"
    CONFIRMED_WITHDRAWAL = "confirmed-withdrawal"
    CONFIRMED_MONTHLY_WITHDRAWAL = "confirmed-monthly-withdrawal"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str
    severity: Severity
    tx_hash: str = ""
    deposit_id: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        d["severity"] = self.severity.value
        return d


class NotificationSink:

    def __init__(self, history_size: int = 100):
        self._subscribers: list[asyncio.Queue] = []
        self._history: deque[Notification] = deque(maxlen=history_size)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def emit(self, notification: Notification) -> None:
        self._history.append(notification)
        logger.info(f"[{notification.kind.value}] {notification.message}")
        for queue in self._subscribers:
            queue.put_nowait(notification)

    def recent(self, limit: int = 20) -> list[Notification]:
        if limit <= 0:
            return []
        return list(self._history)[-limit:]
