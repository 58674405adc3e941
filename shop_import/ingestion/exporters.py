"""Export utilities for cleaned import rows and downloadable templates."""
from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Dict, List, MutableMapping, Optional, Sequence, Tuple, Union

import pandas as pd

from ..models import FIELD_LABELS, ROW_FIELDS, CleanedRow

PathLike = Union[str, Path]

TEMPLATES: Dict[str, Tuple[List[str], List[str]]] = {
    "standard": (
        [
            "firstName",
            "lastName",
            "phone",
            "email",
            "vehicleYear",
            "vehicleMake",
            "vehicleModel",
            "licensePlate",
            "lastServiceDate",
            "lastServiceMileage",
        ],
        ["John", "Doe", "(555) 123-4567", "john@example.com", "2020", "Toyota", "Camry", "ABC123", "2025-01-15", "45000"],
    ),
    "shop": (
        ["Full Name", "Phone", "Year/Make/Model", "VIN Code", "Current Mileage", "Repair Description"],
        ["John Doe", "5551234567", "2020 Toyota Camry", "1HGBH41JXMN109186", "45000", "Oil Change 5W-30"],
    ),
}


def template_csv(kind: str) -> str:
    """Return the CSV template of ``kind`` (``standard`` or ``shop``)."""

    try:
        headers, example = TEMPLATES[kind]
    except KeyError as exc:
        raise KeyError(f"Unknown template '{kind}'. Available: {sorted(TEMPLATES)}") from exc

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerow(example)
    return buffer.getvalue()


def cleaned_rows_to_dataframe(rows: Sequence[CleanedRow], *, include_messages: bool = True) -> pd.DataFrame:
    """Flatten cleaned rows into one column per field plus a status column."""

    records = [_row_to_record(row, include_messages=include_messages) for row in rows]
    columns = ["row", "status"] + [FIELD_LABELS[target] for target in ROW_FIELDS]
    if include_messages:
        columns.append("messages")
    return pd.DataFrame(records, columns=columns)


def _row_to_record(row: CleanedRow, *, include_messages: bool) -> MutableMapping[str, object]:
    if row.has_error:
        status = "error"
    elif row.has_warning:
        status = "warning"
    else:
        status = "clean"

    record: MutableMapping[str, object] = {"row": row.row_index + 1, "status": status}
    for target in ROW_FIELDS:
        record[FIELD_LABELS[target]] = row.value(target)

    if include_messages:
        notes = [
            f"{FIELD_LABELS[target]}: {row.cells[target].message}"
            for target in ROW_FIELDS
            if target in row.cells and row.cells[target].message
        ]
        record["messages"] = "; ".join(notes)
    return record


def export_cleaned_rows(
    rows: Sequence[CleanedRow],
    path: PathLike,
    *,
    sheet_name: str = "Cleaned",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write cleaned rows to a CSV or Excel file."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(cleaned_rows_to_dataframe(rows), output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xlsx", ".xlsm"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["TEMPLATES", "cleaned_rows_to_dataframe", "export_cleaned_rows", "template_csv"]
