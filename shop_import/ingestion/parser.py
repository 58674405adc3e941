"""Turn uploaded CSV and spreadsheet files into a :class:`ParsedFile`."""
from __future__ import annotations

import csv
import io
import logging
import zipfile
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable, List, Sequence, Union

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.datetime import to_excel
from openpyxl.utils.exceptions import InvalidFileException

from ..models import FileKind, ParsedFile

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

_TEXT_SUFFIXES = {"", ".csv", ".txt", ".tsv"}
_OPENPYXL_SUFFIXES = {".xlsx", ".xlsm", ".xltx", ".xltm"}
_LEGACY_EXCEL_SUFFIXES = {".xls"}
_ENCODINGS = ("utf-8-sig", "utf-8", "latin-1")


class ParseError(ValueError):
    """Raised when an uploaded file cannot be turned into rows."""


class UnsupportedFileTypeError(ParseError):
    """Raised when the file extension is neither delimited text nor a spreadsheet."""


def parse_file(file_name: str, content: bytes) -> ParsedFile:
    """Parse ``content`` according to the extension of ``file_name``."""

    suffix = Path(file_name).suffix.lower()
    if not content:
        raise ParseError("File is empty")

    if suffix in _OPENPYXL_SUFFIXES:
        table = _read_workbook(content)
        kind = FileKind.XLSX
    elif suffix in _LEGACY_EXCEL_SUFFIXES:
        table = _read_legacy_workbook(content)
        kind = FileKind.XLSX
    elif suffix in _TEXT_SUFFIXES:
        delimiter = "\t" if suffix == ".tsv" else ","
        table = split_delimited(_decode(content), delimiter=delimiter)
        kind = FileKind.CSV
    else:
        raise UnsupportedFileTypeError(f"Unsupported file extension: {suffix}")

    parsed = _build_parsed_file(table, file_name, kind)
    LOGGER.info("Parsed %s (%s) with %s columns and %s rows", file_name, kind.value, len(parsed.headers), parsed.total_rows)
    return parsed


def parse_path(path: PathLike) -> ParsedFile:
    """Convenience wrapper reading ``path`` from disk."""

    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(file_path)
    return parse_file(file_path.name, file_path.read_bytes())


def split_delimited(text: str, *, delimiter: str = ",") -> List[List[str]]:
    """Split delimited text into records, honouring double-quoted fields.

    Rows may be ragged; blank lines come back as empty records.
    """

    try:
        return [list(record) for record in csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)]
    except csv.Error as exc:
        raise ParseError(f"Could not read delimited text: {exc}") from exc


def _decode(content: bytes) -> str:
    for encoding in _ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ParseError("Could not decode file content")  # pragma: no cover - latin-1 always decodes


def _read_workbook(content: bytes) -> List[List[str]]:
    try:
        workbook = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise ParseError(f"Could not read spreadsheet: {exc}") from exc

    try:
        if not workbook.sheetnames:
            raise ParseError("Spreadsheet has no sheets")
        sheet = workbook.worksheets[0]
        return [[cell_to_text(value) for value in row] for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _read_legacy_workbook(content: bytes) -> List[List[str]]:
    try:
        frame = pd.read_excel(io.BytesIO(content), sheet_name=0, header=None, dtype=object, engine="xlrd")
    except Exception as exc:  # xlrd raises its own error types for corrupt workbooks
        raise ParseError(f"Could not read spreadsheet: {exc}") from exc
    return [[cell_to_text(value) for value in values] for values in frame.itertuples(index=False, name=None)]


def cell_to_text(value: Any) -> str:
    """Render a spreadsheet cell the way it would appear in a CSV export.

    Dates become Excel serial numbers so that the date cleaner sees the same
    input regardless of the file kind.
    """

    if value is None:
        return ""
    if not isinstance(value, str) and pd.api.types.is_scalar(value) and pd.isna(value):
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime, date, time)):
        return cell_to_text(to_excel(value))
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _row_is_blank(cells: Iterable[str]) -> bool:
    return all(not str(cell).strip() for cell in cells)


def _build_parsed_file(table: Sequence[Sequence[str]], file_name: str, kind: FileKind) -> ParsedFile:
    records = [list(record) for record in table if not _row_is_blank(record)]
    if len(records) < 2:
        raise ParseError("File is empty or has no data rows")

    headers = [str(cell).strip() for cell in records[0]]
    width = len(headers)
    rows: List[List[str]] = []
    for record in records[1:]:
        if len(record) > width:
            LOGGER.debug("Dropping %s cells beyond the header width", len(record) - width)
        rows.append([str(cell) for cell in record[:width]] + [""] * max(0, width - len(record)))

    return ParsedFile(headers=headers, rows=rows, file_name=file_name, file_kind=kind)


__all__ = [
    "ParseError",
    "UnsupportedFileTypeError",
    "cell_to_text",
    "parse_file",
    "parse_path",
    "split_delimited",
]
