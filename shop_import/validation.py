"""Run the cleaning pipeline over whole files and roll up the results."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .cleaners import NAME_SPLIT_MESSAGE, clean_field, reclean_cell
from .models import (
    ROW_FIELDS,
    CanonicalField,
    CleanedCell,
    CleanedRow,
    CleaningStatus,
    FieldMapping,
    ParsedFile,
    ValidationSummary,
)

LOGGER = logging.getLogger(__name__)

_PHONE_REQUIRED = "Phone number is required"
_FIRST_NAME_REQUIRED = "First name is required"


def _active_mappings(mappings: Sequence[FieldMapping]) -> List[FieldMapping]:
    active = [mapping for mapping in mappings if mapping.target_field is not CanonicalField.SKIP]
    # Composite fields fan out first so that a dedicated column for the same
    # part always wins.
    return sorted(active, key=lambda mapping: not mapping.target_field.is_composite)


def _column_of(mapping: FieldMapping, headers: Sequence[str]) -> Optional[int]:
    # Detected mappings carry their position; repeated headers resolve by it.
    index = mapping.column_index
    if index is not None and index < len(headers) and headers[index] == mapping.source_header:
        return index
    try:
        return list(headers).index(mapping.source_header)
    except ValueError:
        return None


def build_row(
    raw_row: Sequence[str],
    row_index: int,
    headers: Sequence[str],
    mappings: Sequence[FieldMapping],
) -> CleanedRow:
    """Clean every mapped cell of a single source row."""

    cells: Dict[CanonicalField, CleanedCell] = {}
    active = _active_mappings(mappings)
    for mapping in active:
        column = _column_of(mapping, headers)
        if column is None:
            LOGGER.warning("Mapped header %r is not present in the file", mapping.source_header)
            continue
        raw_value = raw_row[column] if column < len(raw_row) else ""
        for target, result in clean_field(mapping.target_field, raw_value).items():
            cells[target] = CleanedCell.from_result(target, result)

    targets = {mapping.target_field for mapping in active}
    if CanonicalField.FIRST_NAME not in cells and CanonicalField.FULL_NAME not in targets:
        cells[CanonicalField.FIRST_NAME] = _missing(CanonicalField.FIRST_NAME, _FIRST_NAME_REQUIRED)
    if CanonicalField.PHONE not in cells:
        cells[CanonicalField.PHONE] = _missing(CanonicalField.PHONE, _PHONE_REQUIRED)
    for target in ROW_FIELDS:
        cells.setdefault(target, CleanedCell.empty(target))

    row = CleanedRow(cells={target: cells[target] for target in ROW_FIELDS}, row_index=row_index)
    row.refresh_flags()
    return row


def _missing(target: CanonicalField, message: str) -> CleanedCell:
    return CleanedCell(value="", original="", status=CleaningStatus.ERROR, message=message, field=target)


def clean_rows(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    mappings: Sequence[FieldMapping],
) -> Tuple[List[CleanedRow], ValidationSummary]:
    """Produce the cleaned rows and their summary in one pass."""

    cleaned = [build_row(raw_row, index, headers, mappings) for index, raw_row in enumerate(rows)]
    summary = summarize(cleaned)
    LOGGER.info(
        "Cleaned %s rows: %s clean, %s with warnings, %s with errors",
        summary.total_rows,
        summary.clean_rows,
        summary.warning_rows,
        summary.error_rows,
    )
    return cleaned, summary


def clean_parsed_file(parsed: ParsedFile, mappings: Sequence[FieldMapping]) -> Tuple[List[CleanedRow], ValidationSummary]:
    return clean_rows(parsed.headers, parsed.rows, mappings)


def summarize(rows: Sequence[CleanedRow]) -> ValidationSummary:
    """Recount the file level summary from scratch."""

    summary = ValidationSummary(total_rows=len(rows))
    for row in rows:
        if row.has_error:
            summary.error_rows += 1
        elif row.has_warning:
            summary.warning_rows += 1
        else:
            summary.clean_rows += 1

        for target, cell in row.cells.items():
            if cell.status is not CleaningStatus.FIXED:
                continue
            summary.fixed_cells += 1
            if target is CanonicalField.PHONE:
                summary.phones_cleaned += 1
            elif target is CanonicalField.FIRST_NAME and cell.message == NAME_SPLIT_MESSAGE:
                summary.names_split += 1
            elif target is CanonicalField.LAST_SERVICE_DATE:
                summary.dates_normalized += 1
    return summary


def find_row(rows: Sequence[CleanedRow], row_index: int) -> CleanedRow:
    for row in rows:
        if row.row_index == row_index:
            return row
    raise KeyError(f"No cleaned row with index {row_index}")


def update_cell(
    rows: Sequence[CleanedRow],
    row_index: int,
    target: CanonicalField,
    value: str,
) -> Tuple[CleanedCell, ValidationSummary]:
    """Re-clean one edited cell in place and recount the summary.

    Only the touched row's flags are recomputed; the summary is always a full
    recount across ``rows``.
    """

    row = find_row(rows, row_index)
    cell = reclean_cell(target, value)
    row.cells[target] = cell
    row.refresh_flags()
    return cell, summarize(rows)


def accepted_rows(rows: Sequence[CleanedRow]) -> List[CleanedRow]:
    """Rows without blocking errors, in original order."""

    return [row for row in rows if not row.has_error]


__all__ = [
    "accepted_rows",
    "build_row",
    "clean_parsed_file",
    "clean_rows",
    "find_row",
    "summarize",
    "update_cell",
]
