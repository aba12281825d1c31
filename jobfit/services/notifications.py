"""In-process notification channel for user-visible pipeline messages."""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Deque, List, Literal, Optional

from pydantic import BaseModel, Field

from jobfit.models.job import utc_now

logger = logging.getLogger(__name__)

NotificationLevel = Literal["info", "success", "warning", "error"]

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notification(BaseModel):
    """A toast-level message about a job."""

    level: NotificationLevel
    message: str
    job_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class NotificationChannel:
    """Fans notifications out to subscriber queues and keeps a short backlog."""

    def __init__(self, backlog_size: int = 100) -> None:
        self._subscribers: List[asyncio.Queue] = []
        self._backlog: Deque[Notification] = deque(maxlen=backlog_size)

    def publish(
        self,
        level: NotificationLevel,
        message: str,
        job_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(level=level, message=message, job_id=job_id)
        logger.log(_LOG_LEVELS[level], f"[{level}] {message}" + (f" (job {job_id})" if job_id else ""))
        self._backlog.append(notification)
        for queue in self._subscribers:
            queue.put_nowait(notification)
        return notification

    def info(self, message: str, job_id: Optional[str] = None) -> Notification:
        return self.publish("info", message, job_id)

    def success(self, message: str, job_id: Optional[str] = None) -> Notification:
        return self.publish("success", message, job_id)

    def warning(self, message: str, job_id: Optional[str] = None) -> Notification:
        return self.publish("warning", message, job_id)

    def error(self, message: str, job_id: Optional[str] = None) -> Notification:
        return self.publish("error", message, job_id)

    def subscribe(self) -> "asyncio.Queue[Notification]":
        """Register a queue that receives every later notification."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def drain(self) -> List[Notification]:
        """Return and clear the backlog."""
        pending = list(self._backlog)
        self._backlog.clear()
        return pending
