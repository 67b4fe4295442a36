from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class JobQueueStatus(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    jobs_remaining: int = Field(default=0, ge=0)
    high_water_mark: int = Field(default=0, ge=0)
    is_active: bool = False

    @model_validator(mode="after")
    def _remaining_within_high_water_mark(self) -> "JobQueueStatus":
        # The backend resets the mark to 0 once a queue drains.
        if self.high_water_mark > 0 and self.jobs_remaining > self.high_water_mark:
            raise ValueError(
                f"jobs_remaining ({self.jobs_remaining}) exceeds high_water_mark ({self.high_water_mark})"
            )
        return self


class JobStatusSnapshot(BaseModel):
    """One complete view of every monitored queue. Each snapshot replaces the last."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    job_queues: list[JobQueueStatus] = Field(default_factory=list)

    def find_queue(self, name: str) -> JobQueueStatus | None:
        return next((queue for queue in self.job_queues if queue.name == name), None)

    @property
    def active_queues(self) -> list[JobQueueStatus]:
        return [queue for queue in self.job_queues if queue.is_active]

    @property
    def all_idle(self) -> bool:
        return not self.active_queues


class SyncState(StrEnum):
    IDLE = "idle"
    SUBSCRIBING = "subscribing"
    STREAMING = "streaming"
    DISCONNECTED = "disconnected"
    POLLING = "polling"
