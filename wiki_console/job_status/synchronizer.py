"""Live view of named job queues: push subscription first, timed polling as fallback."""

import asyncio
from collections.abc import Callable
from contextlib import aclosing

import structlog

from wiki_console.config import settings
from wiki_console.error_classification import ClassifiedError, classify_error
from wiki_console.exceptions import CancellationError, StreamError
from wiki_console.job_status.feed import JobStatusFeed
from wiki_console.job_status.schemas import JobStatusSnapshot, SyncState

logger = structlog.get_logger()

Listener = Callable[["JobStatusSynchronizer"], None]


class JobStatusSynchronizer:
    """Keeps one consumer's view of the job queues current.

    A single task runs either the push subscription or, once that has failed,
    the polling loop, never both. ``stop()`` cancels that task and bumps the
    generation counter so that any snapshot still in flight is discarded.
    """

    def __init__(
        self,
        feed: JobStatusFeed,
        *,
        name: str = "job-status",
        update_interval_ms: int | None = None,
        poll_interval_seconds: float | None = None,
        debounce_seconds: float | None = None,
        fallback_polling: bool | None = None,
    ) -> None:
        self._feed = feed
        self._name = name
        self._update_interval_ms = update_interval_ms or settings.stream_update_interval_ms
        self._poll_interval = poll_interval_seconds or settings.fallback_poll_interval_seconds
        self._debounce_seconds = (
            settings.reload_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self._fallback_polling = (
            settings.fallback_polling_enabled if fallback_polling is None else fallback_polling
        )

        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._reload_handle: asyncio.TimerHandle | None = None
        self._listeners: list[Listener] = []

        self._state = SyncState.IDLE
        self._snapshot: JobStatusSnapshot | None = None
        self._disconnected = False
        self._completed = False
        self._last_error: ClassifiedError | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def snapshot(self) -> JobStatusSnapshot | None:
        if self._snapshot is None:
            return None
        return self._snapshot.model_copy(deep=True)

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    @property
    def completed(self) -> bool:
        """True once the current run ended on its own because every queue went idle."""
        return self._completed

    @property
    def last_error(self) -> ClassifiedError | None:
        return self._last_error

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def reload_pending(self) -> bool:
        return self._reload_handle is not None

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback fired on every snapshot and state change."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def start(self) -> None:
        """Open a fresh push subscription, replacing any live one."""
        self._cancel_task()
        self._generation += 1
        self._disconnected = False
        self._completed = False
        self._last_error = None
        self._set_state(SyncState.SUBSCRIBING)
        logger.debug("job_status_subscribe", synchronizer=self._name, generation=self._generation)
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._generation), name=f"{self._name}-{self._generation}"
        )
        self._task.add_done_callback(self._on_run_done)

    def stop(self) -> None:
        """Cancel the subscription, polling and any pending reload. Safe to call repeatedly."""
        self._cancel_reload()
        was_running = self._cancel_task()
        self._generation += 1
        self._completed = False
        self._set_state(SyncState.IDLE)
        if was_running:
            logger.debug("job_status_stopped", synchronizer=self._name)

    def request_reload(self, delay_seconds: float | None = None) -> None:
        """Restart the subscription after a quiet period.

        Re-arming drops the pending trigger, so a burst of calls yields one restart.
        """
        self._cancel_reload()
        delay = self._debounce_seconds if delay_seconds is None else delay_seconds
        self._reload_handle = asyncio.get_running_loop().call_later(delay, self._fire_reload)

    async def wait(self) -> None:
        """Wait until the current run finishes or is stopped, following restarts."""
        while True:
            task = self._task
            if task is None:
                return
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
            if self._task is None or self._task is task:
                return

    def _fire_reload(self) -> None:
        self._reload_handle = None
        logger.debug("job_status_reload", synchronizer=self._name)
        self.start()

    def _on_run_done(self, task: asyncio.Task[None]) -> None:
        # Listeners see ``running`` turn False for the current run, however it ended.
        if task is self._task and not task.cancelled():
            self._notify()

    def _cancel_reload(self) -> None:
        if self._reload_handle is not None:
            self._reload_handle.cancel()
            self._reload_handle = None

    def _cancel_task(self) -> bool:
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def _run(self, generation: int) -> None:
        try:
            await self._stream(generation)
        except Exception as exc:
            # Only the owner's stop() or restart moves the generation on.
            if generation != self._generation:
                logger.debug("job_status_stream_cancelled", synchronizer=self._name)
                return
            error: Exception = exc
            if isinstance(exc, CancellationError):
                error = StreamError("Job status stream was cancelled while still subscribed")
                error.__cause__ = exc
            self._mark_disconnected(error)
            if self._fallback_polling:
                await self._poll(generation)
            return

        if generation == self._generation:
            self._finish()
            logger.info("job_status_stream_completed", synchronizer=self._name)

    async def _stream(self, generation: int) -> None:
        async with aclosing(self._feed.stream(self._update_interval_ms)) as snapshots:
            async for snapshot in snapshots:
                if generation != self._generation:
                    return
                self._apply(snapshot, SyncState.STREAMING)

    async def _poll(self, generation: int) -> None:
        self._set_state(SyncState.POLLING)
        logger.info(
            "job_status_polling_started",
            synchronizer=self._name,
            interval_seconds=self._poll_interval,
        )
        while generation == self._generation:
            try:
                snapshot = await self._feed.fetch()
            except Exception as exc:
                if generation != self._generation:
                    return
                logger.warning("job_status_poll_failed", synchronizer=self._name, error=str(exc))
            else:
                if generation != self._generation:
                    return
                self._apply(snapshot, SyncState.POLLING)
                if snapshot.all_idle:
                    self._finish()
                    logger.info("job_status_polling_completed", synchronizer=self._name)
                    return
            await asyncio.sleep(self._poll_interval)

    def _apply(self, snapshot: JobStatusSnapshot, state: SyncState) -> None:
        self._snapshot = snapshot
        self._state = state
        self._notify()

    def _finish(self) -> None:
        self._completed = True
        self._state = SyncState.IDLE
        self._notify()

    def _mark_disconnected(self, error: Exception) -> None:
        self._disconnected = True
        self._last_error = classify_error(error, "stream job status")
        logger.warning(
            "job_status_stream_failed",
            synchronizer=self._name,
            error=str(error),
            fallback_polling=self._fallback_polling,
        )
        self._set_state(SyncState.DISCONNECTED)

    def _set_state(self, state: SyncState) -> None:
        if state == self._state:
            return
        self._state = state
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as exc:
                logger.error("job_status_listener_failed", synchronizer=self._name, error=str(exc))
