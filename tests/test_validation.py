"""Tests for row level cleaning and summary aggregation."""
from __future__ import annotations

import pytest

from shop_import.mapping import detect_mappings
from shop_import.models import ROW_FIELDS, CanonicalField, CleaningStatus, FieldMapping
from shop_import.validation import accepted_rows, build_row, clean_rows, summarize, update_cell


@pytest.fixture()
def shop_file():
    headers = ["Full Name", "Phone", "Year/Make/Model", "Last Visit", "Miles"]
    rows = [
        ["Smith, John", "(555) 123-4567", "2018 honda civic", "1/15/2024", "45,000"],
        ["Jane Roe", "555-999-0000", "2020 Toyota Camry", "13/05/2024", "30000"],
        ["Bob", "555", "", "", "-5"],
    ]
    return headers, rows


def test_clean_rows_produces_every_row_field(shop_file):
    headers, rows = shop_file
    cleaned, _ = clean_rows(headers, rows, detect_mappings(headers, rows))

    assert [row.row_index for row in cleaned] == [0, 1, 2]
    for row in cleaned:
        assert list(row.cells) == ROW_FIELDS
    first = cleaned[0]
    assert first.value(CanonicalField.FIRST_NAME) == "John"
    assert first.value(CanonicalField.LAST_NAME) == "Smith"
    assert first.value(CanonicalField.PHONE) == "5551234567"
    assert first.value(CanonicalField.VEHICLE_MAKE) == "Honda"
    assert first.value(CanonicalField.LAST_SERVICE_DATE) == "2024-01-15"
    assert first.value(CanonicalField.LAST_SERVICE_MILEAGE) == "45000"
    assert first.display_name == "John Smith"


def test_summary_counts_rows_once_with_error_dominance(shop_file):
    headers, rows = shop_file
    cleaned, summary = clean_rows(headers, rows, detect_mappings(headers, rows))

    assert [row.has_error for row in cleaned] == [False, False, True]
    assert [row.has_warning for row in cleaned] == [False, True, False]
    assert summary.total_rows == 3
    assert (summary.clean_rows, summary.warning_rows, summary.error_rows) == (1, 1, 1)
    assert summary.clean_rows + summary.warning_rows + summary.error_rows == summary.total_rows
    assert summary.phones_cleaned == 2
    assert summary.names_split == 2
    assert summary.dates_normalized == 1
    assert summary.fixed_cells >= 6


def test_missing_phone_mapping_marks_every_row():
    headers = ["First Name"]
    row = build_row(["John"], 0, headers, [FieldMapping("First Name", CanonicalField.FIRST_NAME, 100)])

    assert row.has_error
    assert row.cells[CanonicalField.PHONE].status is CleaningStatus.ERROR
    assert row.cells[CanonicalField.PHONE].message == "Phone number is required"


def test_missing_name_mapping_marks_first_name():
    row = build_row(["5551234567"], 0, ["Phone"], [FieldMapping("Phone", CanonicalField.PHONE, 100)])

    assert row.cells[CanonicalField.FIRST_NAME].message == "First name is required"
    assert row.has_error


def test_dedicated_column_overrides_composite_part():
    headers = ["Customer", "First", "Phone"]
    mappings = [
        FieldMapping("Customer", CanonicalField.FULL_NAME, 100),
        FieldMapping("First", CanonicalField.FIRST_NAME, 100),
        FieldMapping("Phone", CanonicalField.PHONE, 100),
    ]

    row = build_row(["Doe, Johnny", "John", "5551234567"], 0, headers, mappings)

    assert row.value(CanonicalField.FIRST_NAME) == "John"
    assert row.value(CanonicalField.LAST_NAME) == "Doe"


def test_skipped_columns_are_ignored():
    headers = ["Name", "Phone", "Notes"]
    mappings = [
        FieldMapping("Name", CanonicalField.FULL_NAME, 100),
        FieldMapping("Phone", CanonicalField.PHONE, 100),
        FieldMapping("Notes", CanonicalField.SKIP, 0),
    ]

    row = build_row(["John Doe", "5551234567", "VIP"], 0, headers, mappings)

    assert not row.has_error
    assert row.value(CanonicalField.REPAIR_DESCRIPTION) == ""


def test_update_cell_recleans_one_cell_and_recounts(shop_file):
    headers, rows = shop_file
    cleaned, summary = clean_rows(headers, rows, detect_mappings(headers, rows))
    untouched = cleaned[0].cells

    cell, _ = update_cell(cleaned, 2, CanonicalField.PHONE, "(555) 222-3333")
    assert cell.status is CleaningStatus.FIXED
    assert cleaned[2].has_error  # mileage is still negative

    cell, summary = update_cell(cleaned, 2, CanonicalField.LAST_SERVICE_MILEAGE, "5000")

    assert cell.value == "5000"
    assert not cleaned[2].has_error
    assert cleaned[0].cells is untouched
    assert (summary.clean_rows, summary.warning_rows, summary.error_rows) == (2, 1, 0)
    assert summary == summarize(cleaned)


def test_update_cell_unknown_row_raises(shop_file):
    headers, rows = shop_file
    cleaned, _ = clean_rows(headers, rows, detect_mappings(headers, rows))

    with pytest.raises(KeyError):
        update_cell(cleaned, 99, CanonicalField.PHONE, "5551234567")


def test_accepted_rows_excludes_errors(shop_file):
    headers, rows = shop_file
    cleaned, _ = clean_rows(headers, rows, detect_mappings(headers, rows))

    assert [row.row_index for row in accepted_rows(cleaned)] == [0, 1]


def test_repeated_headers_resolve_by_column_position():
    headers = ["Phone", "Notes", "Notes"]
    mappings = [
        FieldMapping("Phone", CanonicalField.PHONE, 100, column_index=0),
        FieldMapping("Notes", CanonicalField.SKIP, 0, column_index=1),
        FieldMapping("Notes", CanonicalField.REPAIR_DESCRIPTION, 100, column_index=2),
    ]

    row = build_row(["5551234567", "call after 5", "Oil change"], 0, headers, mappings)

    assert row.value(CanonicalField.REPAIR_DESCRIPTION) == "Oil change"


def test_detected_mappings_record_their_column():
    headers = ["First Name", "Phone", "Notes"]

    mappings = detect_mappings(headers, [["John", "5551234567", "VIP"]])

    assert [mapping.column_index for mapping in mappings] == [0, 1, 2]
