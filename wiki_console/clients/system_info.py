from collections.abc import AsyncGenerator
from contextlib import aclosing

import pydantic

from wiki_console.clients.connect import ConnectClient
from wiki_console.exceptions import StreamError
from wiki_console.job_status.feed import JobStatusFeed
from wiki_console.job_status.schemas import JobStatusSnapshot

STREAM_JOB_STATUS = "api.v1.SystemInfoService/StreamJobStatus"
GET_JOB_STATUS = "api.v1.SystemInfoService/GetJobStatus"


class ConnectJobStatusFeed(JobStatusFeed):
    def __init__(self, client: ConnectClient) -> None:
        self._client = client

    async def stream(self, update_interval_ms: int) -> AsyncGenerator[JobStatusSnapshot, None]:
        request = {"updateIntervalMs": update_interval_ms}
        async with aclosing(self._client.server_stream(STREAM_JOB_STATUS, request)) as messages:
            async for message in messages:
                try:
                    snapshot = JobStatusSnapshot.model_validate(message)
                except pydantic.ValidationError as exc:
                    raise StreamError(f"Malformed job status message: {exc.error_count()} error(s)") from exc
                yield snapshot

    async def fetch(self) -> JobStatusSnapshot:
        data = await self._client.unary(GET_JOB_STATUS, {})
        return JobStatusSnapshot.model_validate(data)
