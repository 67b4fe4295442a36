from abc import ABC, abstractmethod

from wiki_console.imports.schemas import ParsePreviewResult, StartImportResult


class PageImportBackend(ABC):
    @abstractmethod
    async def parse_preview(self, csv_content: str) -> ParsePreviewResult:
        """Parse and validate CSV content without changing any page."""
        ...

    @abstractmethod
    async def start_import_job(self, csv_content: str) -> StartImportResult:
        """Enqueue the import job for CSV content. Fire-once, never retried."""
        ...
