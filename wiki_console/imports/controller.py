"""Import dialog workflow: upload, validating, preview, importing, complete."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from wiki_console.config import settings
from wiki_console.error_classification import ClassifiedError, classify_error
from wiki_console.exceptions import ConflictError, ParseError, SubmissionError, ValidationError
from wiki_console.imports.backend import PageImportBackend
from wiki_console.imports.preview import RecordPreview, record_view
from wiki_console.imports.progress import (
    STARTING_MESSAGE,
    format_import_progress,
    importing_pages_message,
)
from wiki_console.imports.schemas import ImportRecord, ImportSessionView, ImportStats
from wiki_console.job_status.feed import JobStatusFeed
from wiki_console.job_status.schemas import JobQueueStatus, SyncState
from wiki_console.job_status.synchronizer import JobStatusSynchronizer
from wiki_console.notifications.schemas import NotificationKind
from wiki_console.notifications.service import Notifier

logger = structlog.get_logger()

COMPLETING_MESSAGE = "Completing import"


class DialogState(StrEnum):
    upload = "upload"
    validating = "validating"
    preview = "preview"
    importing = "importing"
    complete = "complete"


DIALOG_TITLES = {
    DialogState.upload: "Import Pages from CSV",
    DialogState.validating: "Validating CSV",
    DialogState.preview: "Preview Import",
    DialogState.importing: "Importing Pages",
    DialogState.complete: "Import Complete",
}


def _pages(count: int) -> str:
    return f"{count} page{'' if count == 1 else 's'}"


@dataclass(frozen=True)
class ImportFile:
    filename: str
    content: bytes

    def text(self) -> str:
        try:
            return self.content.decode("utf-8")
        except UnicodeDecodeError:
            return self.content.decode("latin-1")


@dataclass
class ImportSession:
    dialog_state: DialogState = DialogState.upload
    file: ImportFile | None = None
    preview: RecordPreview = field(default_factory=RecordPreview)
    error: ClassifiedError | None = None
    stats: ImportStats = field(default_factory=ImportStats)
    imported_count: int = 0
    parsing_errors: list[str] = field(default_factory=list)
    progress_message: str | None = None
    job_queue_status: JobQueueStatus | None = None
    streaming_disconnected: bool = False

    @property
    def records(self) -> list[ImportRecord]:
        return self.preview.records

    @property
    def current_record_index(self) -> int:
        return self.preview.current_index

    @property
    def show_errors_only(self) -> bool:
        return self.preview.show_errors_only


class ImportWorkflowController:
    """Owns one user's import session and drives it through the dialog states.

    Every open/close bumps a generation counter. Async steps capture the
    generation they started under and drop their results if it moved on, so a
    closed dialog is never updated by a request that was still in flight.
    Closing only stops client-side monitoring; a submitted job keeps running.
    """

    def __init__(
        self,
        backend: PageImportBackend,
        feed: JobStatusFeed,
        notifier: Notifier,
        *,
        owner: str = "anonymous",
        queue_name: str | None = None,
        report_url: str | None = None,
        synchronizer_factory: Callable[[], JobStatusSynchronizer] | None = None,
    ) -> None:
        self._backend = backend
        self._notifier = notifier
        self._owner = owner
        self._queue_name = queue_name or settings.import_queue_name
        self._report_url = report_url or settings.import_report_url
        self._synchronizer_factory = synchronizer_factory or (
            lambda: JobStatusSynchronizer(feed, name=f"import-{owner}")
        )

        self._session = ImportSession()
        self._is_open = False
        self._generation = 0
        self._synchronizer: JobStatusSynchronizer | None = None
        self._submit_task: asyncio.Task[None] | None = None

    @property
    def session(self) -> ImportSession:
        return self._session

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def synchronizer(self) -> JobStatusSynchronizer | None:
        return self._synchronizer

    @property
    def valid_record_count(self) -> int:
        return self._session.stats.valid

    @property
    def can_import(self) -> bool:
        # Import is allowed while at least one record is valid. Records with
        # validation errors are skipped by the backend job rather than blocking
        # the whole batch.
        return self.valid_record_count > 0

    @property
    def import_label(self) -> str:
        return f"Import {_pages(self.valid_record_count)}"

    def open(self) -> None:
        self._reset()
        self._is_open = True
        logger.info("import_dialog_opened", owner=self._owner)

    def close(self) -> None:
        was_open = self._is_open
        self._reset()
        self._is_open = False
        if was_open:
            logger.info("import_dialog_closed", owner=self._owner)

    async def select_file(self, filename: str, content: bytes) -> None:
        """Accept a dropped or picked file and validate it straight away."""
        self._require_open()
        self._require_state(DialogState.upload)
        if not filename.lower().endswith(".csv"):
            self._session.error = classify_error(ValidationError("Please select a CSV file"), "validate file")
            logger.info("import_file_rejected", owner=self._owner, filename=filename)
            return

        self._session.file = ImportFile(filename=filename, content=content)
        self._session.error = None
        await self.validate()

    async def validate(self) -> None:
        self._require_open()
        session = self._session
        if session.file is None:
            return
        self._require_state(DialogState.upload)

        generation = self._generation
        session.dialog_state = DialogState.validating
        session.error = None
        session.parsing_errors = []

        try:
            csv_content = session.file.text()
            if not csv_content.strip():
                raise ParseError(f"'{session.file.filename}' is empty")
            result = await self._backend.parse_preview(csv_content)
            stats = result.stats
        except Exception as exc:
            if generation != self._generation:
                return
            session.error = classify_error(exc, "parse CSV")
            session.dialog_state = DialogState.upload
            logger.warning(
                "import_parse_failed", owner=self._owner, filename=session.file.filename, error=str(exc)
            )
            return

        if generation != self._generation:
            logger.debug("import_parse_result_discarded", owner=self._owner)
            return

        session.preview.load(result.records, show_errors_only=stats.errors > 0)
        session.parsing_errors = list(result.parsing_errors)
        session.stats = stats
        session.dialog_state = DialogState.preview
        logger.info(
            "import_preview_ready",
            owner=self._owner,
            total=stats.total,
            errors=stats.errors,
            creates=stats.creates,
            updates=stats.updates,
        )

    def set_show_errors_only(self, show_errors_only: bool) -> None:
        self._require_state(DialogState.preview)
        self._session.preview.set_show_errors_only(show_errors_only)

    def toggle_show_errors_only(self) -> None:
        self._require_state(DialogState.preview)
        self._session.preview.toggle_show_errors_only()

    def previous_record(self) -> None:
        self._require_state(DialogState.preview)
        self._session.preview.previous()

    def next_record(self) -> None:
        self._require_state(DialogState.preview)
        self._session.preview.next()

    async def submit(self) -> None:
        """Start the import job and follow it until the import queue drains."""
        generation = self._begin_submit()
        await self._run_submit(generation)

    def submit_in_background(self) -> asyncio.Task[None]:
        """Like ``submit`` but returns once the dialog has moved to importing."""
        generation = self._begin_submit()
        task = asyncio.get_running_loop().create_task(
            self._run_submit(generation), name=f"import-submit-{self._owner}"
        )
        task.add_done_callback(self._log_submit_outcome)
        self._submit_task = task
        return task

    def view(self) -> ImportSessionView:
        session = self._session
        preview = session.preview
        record = preview.current_record
        return ImportSessionView(
            open=self._is_open,
            state=session.dialog_state,
            title=DIALOG_TITLES[session.dialog_state],
            filename=session.file.filename if session.file else None,
            stats=session.stats,
            stats_summary=session.stats.summary,
            parsing_errors=list(session.parsing_errors),
            show_errors_only=preview.show_errors_only,
            filtered_count=len(preview.filtered_records),
            current_index=preview.current_index,
            navigation_label=preview.navigation_label,
            has_previous=preview.has_previous,
            has_next=preview.has_next,
            record=record_view(record) if record else None,
            empty_message=preview.empty_message,
            can_import=self.can_import,
            import_label=self.import_label,
            progress_message=session.progress_message,
            streaming_disconnected=session.streaming_disconnected,
            imported_count=session.imported_count,
            report_url=self._report_url if session.dialog_state == DialogState.complete else None,
            error=session.error,
        )

    def _begin_submit(self) -> int:
        self._require_open()
        self._require_state(DialogState.preview)
        if not self.can_import:
            raise ConflictError("There are no valid records to import")
        session = self._session
        if session.file is None:
            raise ConflictError("No file selected")

        session.dialog_state = DialogState.importing
        session.error = None
        session.progress_message = STARTING_MESSAGE
        return self._generation

    async def _run_submit(self, generation: int) -> None:
        session = self._session
        try:
            result = await self._backend.start_import_job(session.file.text())
            if not result.success:
                raise SubmissionError(result.error or "Import failed")
        except Exception as exc:
            if generation != self._generation:
                return
            session.error = classify_error(exc, "import pages")
            session.dialog_state = DialogState.preview
            session.progress_message = None
            logger.warning("import_submit_failed", owner=self._owner, error=str(exc))
            return

        if generation != self._generation:
            logger.info("import_submitted_after_close", owner=self._owner, records=result.record_count)
            return

        session.imported_count = result.record_count
        session.progress_message = importing_pages_message(result.record_count)
        logger.info("import_submitted", owner=self._owner, records=result.record_count)

        await self._follow_job(generation)

    async def _follow_job(self, generation: int) -> None:
        synchronizer = self._synchronizer_factory()
        self._synchronizer = synchronizer
        synchronizer.add_listener(lambda sync: self._on_job_status(sync, generation))
        synchronizer.start()
        await synchronizer.wait()

        if generation != self._generation:
            return

        self._notifier.show_after(
            f"Imported {_pages(self._session.imported_count)}",
            NotificationKind.success,
            settings.notification_duration_seconds,
            lambda: self._complete(synchronizer),
        )

    def _complete(self, synchronizer: JobStatusSynchronizer) -> None:
        synchronizer.stop()
        self._synchronizer = None
        session = self._session
        session.dialog_state = DialogState.complete
        logger.info(
            "import_completed",
            owner=self._owner,
            records=session.imported_count,
            disconnected=session.streaming_disconnected,
        )

    def _on_job_status(self, synchronizer: JobStatusSynchronizer, generation: int) -> None:
        if generation != self._generation:
            return
        session = self._session
        session.streaming_disconnected = synchronizer.disconnected
        if synchronizer.state == SyncState.DISCONNECTED:
            session.progress_message = COMPLETING_MESSAGE
            return

        snapshot = synchronizer.snapshot
        if snapshot is None:
            return
        queue = snapshot.find_queue(self._queue_name)
        if queue is not None:
            session.job_queue_status = queue
        message = format_import_progress(queue)
        if message is not None:
            session.progress_message = message

    def _log_submit_outcome(self, task: asyncio.Task[None]) -> None:
        if self._submit_task is task:
            self._submit_task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("import_submit_crashed", owner=self._owner, error=str(exc))

    def _reset(self) -> None:
        if self._synchronizer is not None:
            self._synchronizer.stop()
            self._synchronizer = None
        self._generation += 1
        self._session = ImportSession()

    def _require_open(self) -> None:
        if not self._is_open:
            raise ConflictError("The import dialog is not open")

    def _require_state(self, *states: DialogState) -> None:
        if self._session.dialog_state not in states:
            allowed = ", ".join(states)
            raise ConflictError(
                f"Import is in state '{self._session.dialog_state}', expected one of: {allowed}"
            )
