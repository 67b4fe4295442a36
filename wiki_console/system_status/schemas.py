from pydantic import BaseModel

from wiki_console.job_status.schemas import JobQueueStatus, SyncState


class SystemStatusView(BaseModel):
    visible: bool
    summary: str
    active_queues: list[JobQueueStatus]
    disconnected: bool
    state: SyncState
