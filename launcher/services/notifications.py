from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List
from enum import Enum
import logging
import threading

from PySide6.QtCore import QObject, Signal

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class NotificationType(Enum):
    SUCCESS = ("success", logging.INFO)
    WARNING = ("warning", logging.WARNING)
    ERROR = ("error", logging.ERROR)
    INFO = ("info", logging.INFO)

    def __init__(self, key: str, log_level: int) -> None:
        self.key = key
        self.log_level = log_level


@dataclass
class Notification:
    title: str
    description: str
    type: NotificationType = field(default=NotificationType.SUCCESS)
    duration: int = field(default=3000)

    def __post_init__(self) -> None:
        if not self.title and not self.description:
            raise ValueError(
                "Notification must have either title or description")
        if self.duration < 0:
            raise ValueError("Duration cannot be negative")


class NotificationCenter(QObject):
    """Collects notifications from any thread.

    Signals are only emitted from drain(), so receivers run on the thread
    that ticks the launcher.
    """

    notificationPosted = Signal(object)

    HISTORY_SIZE = 100

    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._pending: Deque[Notification] = deque()
        self._history: Deque[Notification] = deque(maxlen=self.HISTORY_SIZE)

    def post(self, notification: Notification) -> None:
        logger.log(
            notification.type.log_level,
            "%s: %s", notification.title, notification.description,
        )
        with self._lock:
            self._pending.append(notification)
            self._history.append(notification)

    def notify(
        self,
        title: str,
        description: str = "",
        notification_type: NotificationType = NotificationType.SUCCESS,
        duration: int = 3000,
    ) -> None:
        self.post(Notification(title, description, notification_type, duration))

    def success(self, title: str, description: str = "") -> None:
        self.notify(title, description, NotificationType.SUCCESS)

    def info(self, title: str, description: str = "") -> None:
        self.notify(title, description, NotificationType.INFO)

    def error(self, title: str, description: str = "") -> None:
        # errors stay until dismissed
        self.notify(title, description, NotificationType.ERROR, duration=0)

    def drain(self) -> List[Notification]:
        with self._lock:
            pending = list(self._pending)
            self._pending.clear()

        for notification in pending:
            self.notificationPosted.emit(notification)
        return pending

    @property
    def history(self) -> List[Notification]:
        with self._lock:
            return list(self._history)
