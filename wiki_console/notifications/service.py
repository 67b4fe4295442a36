from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from wiki_console.notifications.schemas import Notification, NotificationKind

logger = structlog.get_logger()

MAX_BUFFERED = 50


class Notifier(ABC):
    @abstractmethod
    def show(self, message: str, kind: NotificationKind, duration_seconds: int) -> None: ...

    def show_after(
        self,
        message: str,
        kind: NotificationKind,
        duration_seconds: int,
        action: Callable[[], None],
    ) -> None:
        """Run ``action`` and show the message once it has returned.

        If the action raises, nothing is shown and the error propagates.
        """
        action()
        self.show(message, kind, duration_seconds)


class BufferedNotifier(Notifier):
    """Holds notifications until the front end drains them."""

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._pending: deque[Notification] = deque(maxlen=MAX_BUFFERED)

    def show(self, message: str, kind: NotificationKind, duration_seconds: int) -> None:
        self._pending.append(
            Notification(
                message=message,
                kind=kind,
                duration_seconds=duration_seconds,
                # Errors stay until dismissed.
                auto_close=kind != NotificationKind.error,
                created_at=datetime.now(UTC).isoformat(),
            )
        )
        logger.info("notification_queued", owner=self._owner, kind=kind, message=message)

    def drain(self) -> list[Notification]:
        drained = list(self._pending)
        self._pending.clear()
        return drained


class NotificationCenter:
    def __init__(self) -> None:
        self._notifiers: dict[str, BufferedNotifier] = {}

    def notifier_for(self, owner: str) -> BufferedNotifier:
        if owner not in self._notifiers:
            self._notifiers[owner] = BufferedNotifier(owner)
        return self._notifiers[owner]

    def drain(self, owner: str) -> list[Notification]:
        return self.notifier_for(owner).drain()
