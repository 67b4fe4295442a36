from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

from wiki_console.job_status.schemas import JobStatusSnapshot


class JobStatusFeed(ABC):
    @abstractmethod
    def stream(self, update_interval_ms: int) -> AsyncGenerator[JobStatusSnapshot, None]:
        """Yield full snapshots until every queue is idle or the caller cancels."""
        ...

    @abstractmethod
    async def fetch(self) -> JobStatusSnapshot:
        """Return a single snapshot, used for fallback polling."""
        ...
