"""Pytest configuration and shared fakes for the wiki backend."""

import asyncio
import os

os.environ.setdefault("WIKI_CONSOLE_AUTH_PASSWORD", "test-password")
os.environ.setdefault("WIKI_CONSOLE_JWT_SECRET", "test-secret-key-that-is-long-enough-123")

import pytest  # noqa: E402

from wiki_console.imports.backend import PageImportBackend  # noqa: E402
from wiki_console.imports.schemas import (  # noqa: E402
    ArrayOperation,
    ArrayOpType,
    ImportRecord,
    ParsePreviewResult,
    StartImportResult,
)
from wiki_console.job_status.feed import JobStatusFeed  # noqa: E402
from wiki_console.job_status.schemas import JobQueueStatus, JobStatusSnapshot  # noqa: E402

END = object()


def make_record(identifier: str, *, errors: list[str] | None = None, exists: bool = False, **kwargs):
    return ImportRecord(
        identifier=identifier,
        page_exists=exists,
        validation_errors=errors or [],
        **kwargs,
    )


def make_preview(records: list[ImportRecord], parsing_errors: list[str] | None = None) -> ParsePreviewResult:
    errors = sum(1 for record in records if record.validation_errors)
    valid = [record for record in records if not record.validation_errors]
    return ParsePreviewResult(
        records=records,
        parsing_errors=parsing_errors or [],
        total_records=len(records),
        error_count=errors,
        update_count=sum(1 for record in valid if record.page_exists),
        create_count=sum(1 for record in valid if not record.page_exists),
    )


def snapshot(*queues: JobQueueStatus) -> JobStatusSnapshot:
    return JobStatusSnapshot(job_queues=list(queues))


def import_queue(remaining: int, high_water_mark: int, active: bool = True) -> JobQueueStatus:
    return JobQueueStatus(
        name="PageImportJob",
        jobs_remaining=remaining,
        high_water_mark=high_water_mark,
        is_active=active,
    )


IDLE = snapshot(import_queue(0, 0, active=False))


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeBackend(PageImportBackend):
    def __init__(
        self,
        preview: ParsePreviewResult | Exception | None = None,
        start: StartImportResult | Exception | None = None,
    ) -> None:
        self.preview = preview if preview is not None else make_preview([])
        self.start = start if start is not None else StartImportResult(success=True, record_count=1)
        self.parse_calls: list[str] = []
        self.start_calls: list[str] = []
        self.parse_gate: asyncio.Event | None = None

    async def parse_preview(self, csv_content: str) -> ParsePreviewResult:
        self.parse_calls.append(csv_content)
        if self.parse_gate is not None:
            await self.parse_gate.wait()
        if isinstance(self.preview, Exception):
            raise self.preview
        return self.preview

    async def start_import_job(self, csv_content: str) -> StartImportResult:
        self.start_calls.append(csv_content)
        if isinstance(self.start, Exception):
            raise self.start
        return self.start


class QueueFeed(JobStatusFeed):
    """Stream driven step by step by the test through ``push``.

    Push a snapshot to deliver it, an exception to fail the stream, or ``END``
    to finish it. Cancelling the consumer surfaces as ``cancel_error`` when set.
    """

    def __init__(self, polls: list | None = None, cancel_error: Exception | None = None) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.polls = list(polls or [])
        self.cancel_error = cancel_error
        self.stream_calls = 0
        self.fetch_calls = 0
        self.closed = 0
        self.intervals: list[int] = []

    def push(self, item) -> None:
        self.queue.put_nowait(item)

    async def stream(self, update_interval_ms: int):
        self.stream_calls += 1
        self.intervals.append(update_interval_ms)
        try:
            while True:
                try:
                    item = await self.queue.get()
                except asyncio.CancelledError:
                    if self.cancel_error is not None:
                        raise self.cancel_error from None
                    raise
                if item is END:
                    return
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self.closed += 1

    async def fetch(self) -> JobStatusSnapshot:
        self.fetch_calls += 1
        if not self.polls:
            raise RuntimeError("no poll results scripted")
        item = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
        if isinstance(item, BaseException):
            raise item
        return item


class ScriptedFeed(JobStatusFeed):
    """Stream that replays a fixed list of snapshots and then ends."""

    def __init__(self, script: list[JobStatusSnapshot] | None = None) -> None:
        self.script = list(script or [])
        self.stream_calls = 0

    async def stream(self, update_interval_ms: int):
        self.stream_calls += 1
        for item in self.script:
            await asyncio.sleep(0)
            yield item

    async def fetch(self) -> JobStatusSnapshot:
        return self.script[-1] if self.script else IDLE


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def feed() -> QueueFeed:
    return QueueFeed()


@pytest.fixture
def five_records() -> list[ImportRecord]:
    """Five records, three of them invalid."""
    return [
        make_record("apple", errors=["identifier already used"]),
        make_record("banana", exists=True, frontmatter={"title": "Banana"}),
        make_record("cherry", errors=["bad field path"]),
        make_record(
            "date",
            frontmatter={"inventory": {"container": "pantry"}},
            array_ops=[ArrayOperation(field_path="tags", operation=ArrayOpType.ENSURE_EXISTS, value="fruit")],
        ),
        make_record("elderberry", errors=["missing identifier"]),
    ]
