from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from wiki_console.error_classification import ClassifiedError


class WireModel(BaseModel):
    """Accepts the backend's camelCase JSON as well as snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArrayOpType(StrEnum):
    ENSURE_EXISTS = "ENSURE_EXISTS"
    REMOVE = "REMOVE"


# Proto3 JSON may carry the enum by name (with or without its type prefix) or by number.
_ARRAY_OP_ALIASES: dict[str, ArrayOpType] = {
    "ENSURE_EXISTS": ArrayOpType.ENSURE_EXISTS,
    "REMOVE": ArrayOpType.REMOVE,
    "DELETE_VALUE": ArrayOpType.REMOVE,
    "1": ArrayOpType.ENSURE_EXISTS,
    "2": ArrayOpType.REMOVE,
}


class ArrayOperation(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    field_path: str
    operation: ArrayOpType
    value: str = ""

    @field_validator("operation", mode="before")
    @classmethod
    def _normalize_operation(cls, raw: Any) -> Any:
        if isinstance(raw, ArrayOpType):
            return raw
        key = str(raw).upper().removeprefix("ARRAY_OP_TYPE_")
        if key not in _ARRAY_OP_ALIASES:
            raise ValueError(f"Unknown array operation: '{raw}'")
        return _ARRAY_OP_ALIASES[key]


class ImportRecord(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    identifier: str
    page_exists: bool = False
    template: str | None = None
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    fields_to_delete: list[str] = Field(default_factory=list)
    array_ops: list[ArrayOperation] = Field(default_factory=list)
    validation_errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @field_validator("template", mode="before")
    @classmethod
    def _empty_template_is_none(cls, raw: Any) -> Any:
        return raw or None

    @property
    def has_errors(self) -> bool:
        return len(self.validation_errors) > 0


class ImportStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    updates: int = Field(default=0, ge=0)
    creates: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _errors_within_total(self) -> "ImportStats":
        if self.errors > self.total:
            raise ValueError(f"errors ({self.errors}) cannot exceed total ({self.total})")
        return self

    @property
    def valid(self) -> int:
        return self.total - self.errors

    @property
    def summary(self) -> str:
        parts = [f"{self.total} total", f"{self.creates} new", f"{self.updates} update"]
        if self.errors > 0:
            parts.append(f"{self.errors} err")
        return ", ".join(parts)


class ParsePreviewResult(WireModel):
    records: list[ImportRecord] = Field(default_factory=list)
    parsing_errors: list[str] = Field(default_factory=list)
    total_records: int = 0
    error_count: int = 0
    update_count: int = 0
    create_count: int = 0

    @property
    def stats(self) -> ImportStats:
        return ImportStats(
            total=self.total_records,
            errors=self.error_count,
            updates=self.update_count,
            creates=self.create_count,
        )


class StartImportResult(WireModel):
    success: bool = False
    record_count: int = 0
    error: str | None = None


class FieldEntryKind(StrEnum):
    VALUE = "value"
    DELETE = "delete"
    ENSURE = "ensure"
    REMOVE = "remove"


class FieldEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    kind: FieldEntryKind
    display: str


class RecordView(BaseModel):
    identifier: str
    badge: str
    template: str | None
    fields: list[FieldEntry]
    warnings: list[str]
    validation_errors: list[str]


class ImportSessionView(BaseModel):
    """What the front end needs to draw the import dialog for the current state."""

    open: bool
    state: str
    title: str
    filename: str | None
    stats: ImportStats
    stats_summary: str
    parsing_errors: list[str]
    show_errors_only: bool
    filtered_count: int
    current_index: int
    navigation_label: str | None
    has_previous: bool
    has_next: bool
    record: RecordView | None
    empty_message: str | None
    can_import: bool
    import_label: str
    progress_message: str | None
    streaming_disconnected: bool
    imported_count: int
    report_url: str | None
    error: ClassifiedError | None


class FilterRequest(BaseModel):
    show_errors_only: bool
