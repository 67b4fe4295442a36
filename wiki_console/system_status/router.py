"""System status endpoints: current view, live SSE stream and refresh trigger."""

from collections.abc import AsyncGenerator

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse

from wiki_console.dependencies import APIKey, OverlayDep
from wiki_console.system_status.overlay import SystemStatusOverlay
from wiki_console.system_status.schemas import SystemStatusView

router = APIRouter()


async def _status_events(overlay: SystemStatusOverlay) -> AsyncGenerator[dict, None]:
    async for view in overlay.updates():
        yield {"event": "status", "data": view.model_dump_json()}


@router.get("/status", response_model=SystemStatusView)
async def get_status(overlay: OverlayDep, _api_key: APIKey) -> SystemStatusView:
    return overlay.view()


@router.get("/status/stream", response_class=EventSourceResponse)
async def stream_status(overlay: OverlayDep, _api_key: APIKey) -> EventSourceResponse:
    """Stream overlay views via Server-Sent Events."""
    return EventSourceResponse(_status_events(overlay))


@router.post("/status/refresh", status_code=202)
async def refresh_status(overlay: OverlayDep, _api_key: APIKey) -> dict:
    overlay.refocus()
    return {"status": "scheduled"}
