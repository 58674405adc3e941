"""Field specific cleaners that normalise and validate raw cell values.

Every cleaner is a pure function of the raw string and returns a
:class:`CleaningResult`. Bad data is reported through the result status,
never raised.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, Mapping, Optional, Tuple

from .models import CanonicalField, CleanedCell, CleaningResult, CleaningStatus

Cleaner = Callable[[str], CleaningResult]

CLEAN = CleaningStatus.CLEAN
FIXED = CleaningStatus.FIXED
WARNING = CleaningStatus.WARNING
ERROR = CleaningStatus.ERROR

PHONE_DIGITS = 10
MAX_MILEAGE = 500_000
MIN_VEHICLE_YEAR = 1900
MAX_VEHICLE_YEAR = 2100
VIN_LENGTH = 17
TWO_DIGIT_YEAR_PIVOT = 50
EXCEL_SERIAL_MIN = 25569  # 1970-01-01
EXCEL_SERIAL_MAX = 73051  # 2099-12-31
EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
MS_PER_DAY = 86_400_000
NAME_SPLIT_MESSAGE = "Name split from full name"

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_NUMERIC_DATE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})$")
_SHORT_YEAR_DATE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2})$")
_MONTH_DAY_YEAR = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})[- ]([A-Za-z]+)[- ](\d{4}|\d{2})$")
_MILEAGE_UNIT = re.compile(r"(miles|mi|km)$", re.IGNORECASE)
_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NON_VIN = re.compile(r"[^A-HJ-NPR-Z0-9]")

_MONTHS: Mapping[str, int] = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6, "jul": 7, "july": 7,
    "aug": 8, "august": 8, "sep": 9, "sept": 9, "september": 9, "oct": 10,
    "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
}


def title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split())


def _result(cleaned: str, raw: str, status: CleaningStatus = CLEAN, message: str = "") -> CleaningResult:
    return CleaningResult(cleaned=cleaned, original=raw, status=status, message=message)


# --- Contact fields ---

def clean_phone(raw: str) -> CleaningResult:
    digits = re.sub(r"\D", "", raw)
    if not digits:
        return _result("", raw, ERROR, "Phone number is required")

    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != PHONE_DIGITS:
        return _result(digits, raw, ERROR, f"Invalid: {len(digits)} digits (need {PHONE_DIGITS})")

    if digits == raw.strip():
        return _result(digits, raw)
    return _result(digits, raw, FIXED, "Phone normalized")


def clean_first_name(raw: str) -> CleaningResult:
    trimmed = raw.strip()
    if not trimmed:
        return _result("", raw, ERROR, "First name is required")
    return _format_name(trimmed, raw)


def clean_last_name(raw: str) -> CleaningResult:
    trimmed = raw.strip()
    if not trimmed:
        return _result("", raw)
    return _format_name(trimmed, raw)


def _format_name(trimmed: str, raw: str) -> CleaningResult:
    cleaned = title_case(trimmed)
    if cleaned == trimmed:
        return _result(cleaned, raw)
    return _result(cleaned, raw, FIXED, "Name formatted")


def split_full_name(raw: str) -> Tuple[CleaningResult, CleaningResult]:
    """Split a full name into ``(first, last)`` results.

    ``"Last, First"`` is recognised by the comma; otherwise the first token is
    the first name and the rest is the last name.
    """

    trimmed = raw.strip()
    if not trimmed:
        failure = _result("", raw, ERROR, "Name is required")
        return failure, failure

    comma_form = "," in trimmed
    if comma_form:
        last_part, _, first_part = trimmed.partition(",")
        first = title_case(first_part)
        last = title_case(last_part)
    else:
        tokens = trimmed.split()
        first = title_case(tokens[0])
        last = title_case(" ".join(tokens[1:]))

    if not first:
        return _result("", raw, ERROR, "First name is required"), _result(last, raw, FIXED, NAME_SPLIT_MESSAGE)

    modified = comma_form or first != trimmed
    status = FIXED if modified else CLEAN
    message = NAME_SPLIT_MESSAGE if modified else ""
    return _result(first, raw, status, message), _result(last, raw, status, message)


def clean_email(raw: str) -> CleaningResult:
    trimmed = raw.strip()
    if not trimmed:
        return _result("", raw)

    cleaned = trimmed.lower()
    if not _EMAIL.match(cleaned):
        return _result(cleaned, raw, ERROR, "Invalid email format")
    if cleaned != trimmed:
        return _result(cleaned, raw, FIXED, "Email lowercased")
    return _result(cleaned, raw)


# --- Service fields ---

def _calendar_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _expand_year(short_year: str) -> int:
    value = int(short_year)
    return 1900 + value if value > TWO_DIGIT_YEAR_PIVOT else 2000 + value


def excel_serial_to_date(serial: float) -> date:
    """Convert a spreadsheet serial day number using the 1899-12-30 epoch."""

    return (EXCEL_EPOCH + timedelta(milliseconds=serial * MS_PER_DAY)).date()


def clean_date(raw: str) -> CleaningResult:
    trimmed = raw.strip()
    if not trimmed:
        return _result("", raw)

    match = _ISO_DATE.match(trimmed)
    if match:
        parsed = _calendar_date(*(int(part) for part in match.groups()))
        if parsed is not None:
            iso = parsed.isoformat()
            if iso == trimmed:
                return _result(iso, raw)
            return _result(iso, raw, FIXED, "Date normalized to ISO")

    match = _NUMERIC_DATE.match(trimmed)
    if match:
        first, second, year = (int(part) for part in match.groups())
        if 1 <= first <= 12 and 1 <= second <= 31:
            parsed = _calendar_date(year, first, second)
            if parsed is not None:
                return _result(parsed.isoformat(), raw, FIXED, "Date normalized to ISO")
        if first > 12 and second <= 12:
            parsed = _calendar_date(year, second, first)
            if parsed is not None:
                return _result(parsed.isoformat(), raw, WARNING, "Interpreted as DD/MM/YYYY")

    match = _SHORT_YEAR_DATE.match(trimmed)
    if match:
        month, day = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12 and 1 <= day <= 31:
            parsed = _calendar_date(_expand_year(match.group(3)), month, day)
            if parsed is not None:
                return _result(parsed.isoformat(), raw, FIXED, "Date normalized")

    if _NUMBER.match(trimmed):
        serial = float(trimmed)
        if EXCEL_SERIAL_MIN <= serial <= EXCEL_SERIAL_MAX:
            return _result(excel_serial_to_date(serial).isoformat(), raw, FIXED, "Converted from Excel serial")

    named = _parse_named_month(trimmed)
    if named is not None:
        return _result(named.isoformat(), raw, FIXED, "Date normalized from named month")

    return _result(trimmed, raw, ERROR, "Unrecognized date format")


def _parse_named_month(text: str) -> Optional[date]:
    match = _MONTH_DAY_YEAR.match(text)
    if match:
        month = _MONTHS.get(match.group(1).lower())
        if month:
            return _calendar_date(int(match.group(3)), month, int(match.group(2)))

    match = _DAY_MONTH_YEAR.match(text)
    if match:
        month = _MONTHS.get(match.group(2).lower())
        year_text = match.group(3)
        year = _expand_year(year_text) if len(year_text) == 2 else int(year_text)
        if month:
            return _calendar_date(year, month, int(match.group(1)))
    return None


def clean_mileage(raw: str) -> CleaningResult:
    trimmed = raw.strip()
    if not trimmed:
        return _result("", raw)

    stripped = _MILEAGE_UNIT.sub("", re.sub(r"[,\s]", "", trimmed))
    if not _NUMBER.match(stripped):
        return _result("", raw, ERROR, "Not a valid number")

    mileage = int(float(stripped))
    cleaned = str(mileage)
    if mileage < 0:
        return _result(cleaned, raw, ERROR, "Mileage cannot be negative")
    if mileage > MAX_MILEAGE:
        return _result(cleaned, raw, WARNING, "Unusually high mileage")
    if cleaned != trimmed:
        return _result(cleaned, raw, FIXED, "Mileage cleaned")
    return _result(cleaned, raw)


# --- Vehicle fields ---

def _parse_year(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


def clean_year(raw: str) -> CleaningResult:
    trimmed = raw.strip()
    if not trimmed:
        return _result("", raw)

    year = _parse_year(trimmed)
    if year is None:
        return _result("", raw, ERROR, "Not a valid year")
    if not MIN_VEHICLE_YEAR <= year <= MAX_VEHICLE_YEAR:
        return _result(str(year), raw, ERROR, f"Year out of range ({MIN_VEHICLE_YEAR}-{MAX_VEHICLE_YEAR})")
    return _result(str(year), raw)


def clean_vin(raw: str) -> CleaningResult:
    trimmed = raw.strip()
    if not trimmed:
        return _result("", raw)

    cleaned = _NON_VIN.sub("", trimmed.upper())
    if len(cleaned) != VIN_LENGTH:
        return _result(cleaned, raw, WARNING, f"VIN has {len(cleaned)} chars (expected {VIN_LENGTH})")
    if cleaned != trimmed:
        return _result(cleaned, raw, FIXED, "VIN uppercased")
    return _result(cleaned, raw)


def split_year_make_model(raw: str) -> Optional[Tuple[CleaningResult, CleaningResult, CleaningResult]]:
    """Split ``"2018 Honda Civic LX"`` into year, make and model results.

    Returns ``None`` when the text does not start with a plausible year
    followed by a make and a model.
    """

    tokens = raw.split()
    if len(tokens) < 3:
        return None
    year = _parse_year(tokens[0])
    if year is None or not MIN_VEHICLE_YEAR <= year <= MAX_VEHICLE_YEAR:
        return None

    make_text = tokens[1]
    model_text = " ".join(tokens[2:])
    return (
        _result(str(year), raw),
        _capitalised(make_text, raw),
        _capitalised(model_text, raw),
    )


def _capitalised(part: str, raw: str) -> CleaningResult:
    cleaned = title_case(part)
    if cleaned == part:
        return _result(cleaned, raw)
    return _result(cleaned, raw, FIXED, "Capitalization normalized")


def clean_text(raw: str) -> CleaningResult:
    cleaned = raw.strip()
    if raw and cleaned != raw:
        return _result(cleaned, raw, FIXED, "Whitespace trimmed")
    return _result(cleaned, raw)


# --- Dispatch ---

SCALAR_CLEANERS: Dict[CanonicalField, Cleaner] = {
    CanonicalField.FIRST_NAME: clean_first_name,
    CanonicalField.LAST_NAME: clean_last_name,
    CanonicalField.PHONE: clean_phone,
    CanonicalField.EMAIL: clean_email,
    CanonicalField.VEHICLE_YEAR: clean_year,
    CanonicalField.VEHICLE_MAKE: clean_text,
    CanonicalField.VEHICLE_MODEL: clean_text,
    CanonicalField.VIN: clean_vin,
    CanonicalField.LICENSE_PLATE: clean_text,
    CanonicalField.LAST_SERVICE_DATE: clean_date,
    CanonicalField.LAST_SERVICE_MILEAGE: clean_mileage,
    CanonicalField.REPAIR_DESCRIPTION: clean_text,
}


def clean_field(target: CanonicalField, raw: str) -> Dict[CanonicalField, CleaningResult]:
    """Clean ``raw`` for ``target``, fanning composite fields out to their parts."""

    if target is CanonicalField.FULL_NAME:
        first, last = split_full_name(raw)
        return {CanonicalField.FIRST_NAME: first, CanonicalField.LAST_NAME: last}

    if target is CanonicalField.YEAR_MAKE_MODEL:
        parts = split_year_make_model(raw)
        if parts is not None:
            year, make, model = parts
            return {
                CanonicalField.VEHICLE_YEAR: year,
                CanonicalField.VEHICLE_MAKE: make,
                CanonicalField.VEHICLE_MODEL: model,
            }
        if raw.strip():
            return {CanonicalField.VEHICLE_YEAR: _result("", raw, ERROR, "Could not parse Year/Make/Model")}
        return {}

    if target is CanonicalField.SKIP:
        return {}
    return {target: SCALAR_CLEANERS[target](raw)}


def reclean_cell(target: CanonicalField, value: str) -> CleanedCell:
    """Run the cleaner for ``target`` on an edited value."""

    try:
        cleaner = SCALAR_CLEANERS[target]
    except KeyError:
        raise ValueError(f"Field '{target.value}' has no per-cell cleaner") from None
    return CleanedCell.from_result(target, cleaner(value))


__all__ = [
    "SCALAR_CLEANERS",
    "clean_date",
    "clean_email",
    "clean_field",
    "clean_first_name",
    "clean_last_name",
    "clean_mileage",
    "clean_phone",
    "clean_text",
    "clean_vin",
    "clean_year",
    "excel_serial_to_date",
    "reclean_cell",
    "split_full_name",
    "split_year_make_model",
    "title_case",
]
