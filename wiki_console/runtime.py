from dataclasses import dataclass

import httpx
import structlog

from wiki_console.clients.connect import ConnectClient
from wiki_console.clients.page_import import ConnectPageImportBackend
from wiki_console.clients.system_info import ConnectJobStatusFeed
from wiki_console.config import settings
from wiki_console.imports.backend import PageImportBackend
from wiki_console.imports.service import ImportSessionRegistry
from wiki_console.job_status.feed import JobStatusFeed
from wiki_console.notifications.service import NotificationCenter
from wiki_console.system_status.overlay import SystemStatusOverlay

logger = structlog.get_logger()


@dataclass
class Runtime:
    backend: PageImportBackend
    feed: JobStatusFeed
    notifications: NotificationCenter
    imports: ImportSessionRegistry
    overlay: SystemStatusOverlay
    http: httpx.AsyncClient | None = None


_runtime: Runtime | None = None


def build_runtime(backend: PageImportBackend, feed: JobStatusFeed) -> Runtime:
    notifications = NotificationCenter()
    return Runtime(
        backend=backend,
        feed=feed,
        notifications=notifications,
        imports=ImportSessionRegistry(backend, feed, notifications),
        overlay=SystemStatusOverlay(feed),
    )


async def init_runtime(runtime: Runtime | None = None) -> Runtime:
    """Wire the wiki backend clients and start the status overlay."""
    global _runtime
    if runtime is None:
        http = httpx.AsyncClient(
            base_url=settings.wiki_base_url,
            timeout=httpx.Timeout(settings.request_timeout_seconds, read=None),
        )
        client = ConnectClient(http)
        runtime = build_runtime(ConnectPageImportBackend(client), ConnectJobStatusFeed(client))
        runtime.http = http

    runtime.overlay.attach()
    _runtime = runtime
    logger.info("runtime_initialized", wiki_base_url=settings.wiki_base_url)
    return runtime


async def close_runtime() -> None:
    global _runtime
    if _runtime is not None:
        _runtime.imports.close_all()
        _runtime.overlay.detach()
        if _runtime.http is not None:
            await _runtime.http.aclose()
        _runtime = None
        logger.info("runtime_closed")


def get_runtime() -> Runtime:
    if _runtime is None:
        raise RuntimeError("Runtime not initialized. Call init_runtime() first.")
    return _runtime
