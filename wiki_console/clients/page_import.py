import structlog

from wiki_console.clients.connect import ConnectClient
from wiki_console.imports.backend import PageImportBackend
from wiki_console.imports.schemas import ParsePreviewResult, StartImportResult

logger = structlog.get_logger()

PARSE_CSV_PREVIEW = "api.v1.PageImportService/ParseCSVPreview"
START_PAGE_IMPORT_JOB = "api.v1.PageImportService/StartPageImportJob"


class ConnectPageImportBackend(PageImportBackend):
    def __init__(self, client: ConnectClient) -> None:
        self._client = client

    async def parse_preview(self, csv_content: str) -> ParsePreviewResult:
        data = await self._client.unary(PARSE_CSV_PREVIEW, {"csvContent": csv_content})
        result = ParsePreviewResult.model_validate(data)
        logger.info(
            "csv_preview_parsed",
            total=result.total_records,
            errors=result.error_count,
            parsing_errors=len(result.parsing_errors),
        )
        return result

    async def start_import_job(self, csv_content: str) -> StartImportResult:
        data = await self._client.unary(START_PAGE_IMPORT_JOB, {"csvContent": csv_content})
        result = StartImportResult.model_validate(data)
        logger.info("page_import_job_requested", success=result.success, records=result.record_count)
        return result
