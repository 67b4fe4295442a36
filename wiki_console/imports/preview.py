"""Record preview: filtering, navigation and the per-record field diff."""

from collections.abc import Mapping, Sequence
from typing import Any

from wiki_console.imports.schemas import (
    ArrayOpType,
    FieldEntry,
    FieldEntryKind,
    ImportRecord,
    RecordView,
)


def _display_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_frontmatter(tree: Mapping[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    """Flatten nested frontmatter into ``(dotted.path, display value)`` pairs.

    Nulls and arrays are skipped; array changes are described by the record's
    array operations instead.

    >>> flatten_frontmatter({"inventory": {"container": "drawer"}})
    [('inventory.container', 'drawer')]
    """
    result: list[tuple[str, str]] = []
    for key, value in tree.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if value is None or isinstance(value, list | tuple):
            continue
        if isinstance(value, Mapping):
            result.extend(flatten_frontmatter(value, full_key))
        else:
            result.append((full_key, _display_scalar(value)))
    return result


def field_entries(record: ImportRecord) -> list[FieldEntry]:
    """Merge scalar values, deletions and array ops into one list sorted by key."""
    entries = [
        FieldEntry(key=key, kind=FieldEntryKind.VALUE, display=value)
        for key, value in flatten_frontmatter(record.frontmatter)
    ]
    entries.extend(
        FieldEntry(key=field, kind=FieldEntryKind.DELETE, display="DELETE")
        for field in record.fields_to_delete
    )
    for op in record.array_ops:
        if op.operation == ArrayOpType.ENSURE_EXISTS:
            kind, display = FieldEntryKind.ENSURE, f'+ENSURE "{op.value}"'
        else:
            kind, display = FieldEntryKind.REMOVE, f'-REMOVE "{op.value}"'
        entries.append(FieldEntry(key=f"{op.field_path}[]", kind=kind, display=display))
    return sorted(entries, key=lambda entry: entry.key)


def record_badge(record: ImportRecord) -> str:
    return "update" if record.page_exists else "new"


def record_view(record: ImportRecord) -> RecordView:
    return RecordView(
        identifier=record.identifier,
        badge=record_badge(record),
        template=record.template,
        fields=field_entries(record),
        warnings=list(record.warnings),
        validation_errors=list(record.validation_errors),
    )


class RecordPreview:
    """Filtered view over parsed records with clamped previous/next navigation.

    ``current_index`` always satisfies ``0 <= current_index < len(filtered_records)``
    when there are filtered records, and is ``0`` otherwise.
    """

    def __init__(self) -> None:
        self._records: list[ImportRecord] = []
        self._show_errors_only = False
        self._index = 0

    @property
    def records(self) -> list[ImportRecord]:
        return list(self._records)

    @property
    def show_errors_only(self) -> bool:
        return self._show_errors_only

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def filtered_records(self) -> list[ImportRecord]:
        if not self._show_errors_only:
            return list(self._records)
        return [record for record in self._records if record.has_errors]

    @property
    def current_record(self) -> ImportRecord | None:
        filtered = self.filtered_records
        if not filtered:
            return None
        return filtered[self._index]

    @property
    def has_previous(self) -> bool:
        return self._index > 0

    @property
    def has_next(self) -> bool:
        return self._index < len(self.filtered_records) - 1

    @property
    def navigation_label(self) -> str | None:
        filtered = self.filtered_records
        if not filtered:
            return None
        label = "Error" if self._show_errors_only else "Record"
        return f"{label} {self._index + 1} of {len(filtered)}"

    @property
    def empty_message(self) -> str | None:
        if self.filtered_records:
            return None
        return "No errors to display" if self._show_errors_only else "No records to display"

    def load(self, records: Sequence[ImportRecord], show_errors_only: bool) -> None:
        self._records = list(records)
        self._show_errors_only = show_errors_only
        self._index = 0

    def clear(self) -> None:
        self.load([], show_errors_only=False)

    def set_show_errors_only(self, show_errors_only: bool) -> None:
        self._show_errors_only = show_errors_only
        self._index = 0

    def toggle_show_errors_only(self) -> None:
        self.set_show_errors_only(not self._show_errors_only)

    def previous(self) -> None:
        if self._index > 0:
            self._index -= 1

    def next(self) -> None:
        if self._index < len(self.filtered_records) - 1:
            self._index += 1
