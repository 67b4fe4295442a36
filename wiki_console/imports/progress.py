from wiki_console.job_status.schemas import JobQueueStatus

STARTING_MESSAGE = "Starting import"
REPORT_MESSAGE = "Generating import report"
FINALIZING_MESSAGE = "Finalizing import"


def importing_pages_message(count: int) -> str:
    return f"Importing {count} page{'' if count == 1 else 's'}"


def format_import_progress(queue: JobQueueStatus | None) -> str | None:
    """Describe import progress from the import queue's status.

    Every page is one job and the run ends with one report job, so the high
    water mark counts ``pages + 1``. Returns ``None`` when the queue is not in
    the snapshot, in which case the previous message should stand.
    """
    if queue is None:
        return None
    if not queue.is_active:
        return FINALIZING_MESSAGE

    total = queue.high_water_mark
    remaining = queue.jobs_remaining
    completed = total - remaining

    if total == 0:
        return STARTING_MESSAGE
    # Nothing left but the queue has not flipped to inactive yet.
    if remaining == 0:
        return FINALIZING_MESSAGE

    page_total = total - 1
    pages_completed = min(completed, page_total)

    if pages_completed >= page_total and remaining > 0:
        return REPORT_MESSAGE
    return f"Importing page {pages_completed + 1} of {page_total}"
