"""Background job overlay, backed by its own long-lived synchronizer."""

import asyncio
from collections.abc import AsyncGenerator

import structlog

from wiki_console.config import settings
from wiki_console.job_status.feed import JobStatusFeed
from wiki_console.job_status.synchronizer import JobStatusSynchronizer
from wiki_console.system_status.schemas import SystemStatusView

logger = structlog.get_logger()


class SystemStatusOverlay:
    """Shows which job queues are busy, for as long as the application runs.

    The status feed ends once every queue is idle, or gives up after a failure
    when polling is off. Either way the overlay re-subscribes after
    ``idle_refresh_seconds``, or sooner when the page regains focus.
    """

    def __init__(
        self,
        feed: JobStatusFeed,
        *,
        idle_refresh_seconds: float | None = None,
        synchronizer: JobStatusSynchronizer | None = None,
    ) -> None:
        self._sync = synchronizer or JobStatusSynchronizer(feed, name="system-status")
        self._idle_refresh = idle_refresh_seconds or settings.overlay_idle_refresh_seconds
        self._attached = False
        self._subscribers: set[asyncio.Queue[SystemStatusView | None]] = set()
        self._sync.add_listener(self._on_change)

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def synchronizer(self) -> JobStatusSynchronizer:
        return self._sync

    def attach(self) -> None:
        if self._attached:
            return
        self._attached = True
        self._sync.start()
        logger.info("system_status_attached")

    def detach(self) -> None:
        self._attached = False
        self._sync.stop()
        for queue in list(self._subscribers):
            self._offer(queue, None)
        logger.info("system_status_detached")

    def refocus(self) -> None:
        """Debounced refresh, e.g. when the tab regains focus or the overlay is hovered."""
        if self._attached:
            self._sync.request_reload()

    def view(self) -> SystemStatusView:
        snapshot = self._sync.snapshot
        active = snapshot.active_queues if snapshot else []
        return SystemStatusView(
            visible=bool(active),
            summary=", ".join(f"{queue.name}: {queue.jobs_remaining}" for queue in active),
            active_queues=active,
            disconnected=self._sync.disconnected,
            state=self._sync.state,
        )

    async def updates(self) -> AsyncGenerator[SystemStatusView, None]:
        """Yield the current view, then every change until the overlay is detached.

        A slow consumer only ever sees the latest view.
        """
        queue: asyncio.Queue[SystemStatusView | None] = asyncio.Queue(maxsize=1)
        self._subscribers.add(queue)
        try:
            yield self.view()
            while True:
                view = await queue.get()
                if view is None:
                    return
                yield view
        finally:
            self._subscribers.discard(queue)

    def _on_change(self, sync: JobStatusSynchronizer) -> None:
        if not self._attached:
            return
        run_over = sync.completed or (sync.disconnected and not sync.running)
        if run_over and not sync.reload_pending:
            sync.request_reload(self._idle_refresh)
        view = self.view()
        for queue in list(self._subscribers):
            self._offer(queue, view)

    @staticmethod
    def _offer(queue: asyncio.Queue[SystemStatusView | None], view: SystemStatusView | None) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(view)
