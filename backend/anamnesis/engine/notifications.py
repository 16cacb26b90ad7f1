"""User-facing notifications (toasts) raised by the engine."""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    level: str
    title: str
    description: Optional[str] = None


class Notifier:
    """
    Collects notifications for the UI layer and logs each one.

    A UI binds to ``history`` (or subclasses and overrides ``notify``); the
    engine only ever calls ``success`` and ``error``.
    """

    def __init__(self, max_history: int = 50):
        self.history: Deque[Notification] = deque(maxlen=max_history)

    def notify(self, notification: Notification) -> None:
        self.history.append(notification)
        level = logging.ERROR if notification.level == "error" else logging.INFO
        logger.log(level, "%s: %s", notification.title, notification.description or "")

    def success(self, title: str, description: Optional[str] = None) -> None:
        self.notify(Notification("success", title, description))

    def error(self, title: str, description: Optional[str] = None) -> None:
        self.notify(Notification("error", title, description))

    @property
    def errors(self) -> List[Notification]:
        return [n for n in self.history if n.level == "error"]
