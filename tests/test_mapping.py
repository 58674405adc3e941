"""Tests for header to canonical field detection."""
from __future__ import annotations

import pytest

from shop_import.mapping import (
    CONTAINS_SCORE,
    EXACT_MATCH_SCORE,
    NORMALIZED_MATCH_SCORE,
    PREFIX_SCORE,
    MappingConflictError,
    detect_format,
    detect_mappings,
    mapping_counts,
    mapping_options,
    missing_required_fields,
    override_mapping,
    score_alias,
    score_data_shape,
)
from shop_import.models import CanonicalField, FieldMapping


def _targets(mappings):
    return {mapping.source_header: mapping.target_field for mapping in mappings}


def test_score_alias_tiers():
    assert score_alias("Phone", "phone") == EXACT_MATCH_SCORE
    assert score_alias("Phone_Number", "phone number") == NORMALIZED_MATCH_SCORE
    assert score_alias("Phone (home)", "phone") == PREFIX_SCORE
    assert score_alias("Customer Phone", "phone") == CONTAINS_SCORE
    assert score_alias("", "phone") == 0
    assert score_alias("Odometer", "email") == 0


def test_score_data_shape_uses_first_ten_non_blank_values():
    phones = ["", "5551234567", "(555) 999-0000", "x", ""]

    assert score_data_shape(phones, CanonicalField.PHONE) > 0
    assert score_data_shape(["a", "b", "c", "5551234567"], CanonicalField.PHONE) == 0
    assert score_data_shape([], CanonicalField.EMAIL) == 0
    assert score_data_shape(["1HGBH41JXMN109186"], CanonicalField.VIN) > 0


def test_detects_standard_export_headers():
    headers = ["First Name", "Last Name", "Phone", "Email", "Vehicle Year", "Make", "Model", "Mileage"]
    rows = [["John", "Doe", "5551234567", "john@example.com", "2018", "Honda", "Civic", "45000"]]

    mappings = detect_mappings(headers, rows)

    assert _targets(mappings) == {
        "First Name": CanonicalField.FIRST_NAME,
        "Last Name": CanonicalField.LAST_NAME,
        "Phone": CanonicalField.PHONE,
        "Email": CanonicalField.EMAIL,
        "Vehicle Year": CanonicalField.VEHICLE_YEAR,
        "Make": CanonicalField.VEHICLE_MAKE,
        "Model": CanonicalField.VEHICLE_MODEL,
        "Mileage": CanonicalField.LAST_SERVICE_MILEAGE,
    }
    assert [mapping.source_header for mapping in mappings] == headers
    assert mappings[2].sample_value == "5551234567"


def test_detects_shop_export_headers_including_misspelling():
    headers = ["Full Name", "Phone", "Year/Make/Model", "VIN Code", "Current Milleage", "Repair Description"]
    rows = [["John Doe", "5551234567", "2020 Toyota Camry", "1HGBH41JXMN109186", "45000", "Oil Change"]]

    targets = _targets(detect_mappings(headers, rows))

    assert targets["Full Name"] is CanonicalField.FULL_NAME
    assert targets["Year/Make/Model"] is CanonicalField.YEAR_MAKE_MODEL
    assert targets["VIN Code"] is CanonicalField.VIN
    assert targets["Current Milleage"] is CanonicalField.LAST_SERVICE_MILEAGE
    assert targets["Repair Description"] is CanonicalField.REPAIR_DESCRIPTION


def test_data_shape_identifies_unlabelled_phone_column():
    headers = ["Name", "Column B"]
    rows = [["John Doe", "(555) 123-4567"], ["Jane Roe", "555.999.0000"]]

    targets = _targets(detect_mappings(headers, rows))

    assert targets["Column B"] is CanonicalField.PHONE


@pytest.mark.parametrize(
    "headers",
    [
        ["Phone", "Phone Number", "Mobile", "Cell"],
        ["Name", "Customer Name", "Full Name", "Client"],
        ["Date", "Service Date", "Last Service Date"],
        ["Year", "Vehicle Year", "Car Year", "Vehicle"],
    ],
)
def test_no_two_headers_share_a_field(headers):
    rows = [["5551234567"] * len(headers)]

    mappings = detect_mappings(headers, rows)

    used = [mapping.target_field for mapping in mappings if mapping.target_field is not CanonicalField.SKIP]
    assert len(used) == len(set(used))


def test_unmatched_headers_are_skipped_with_zero_confidence():
    mappings = detect_mappings(["Internal Code"], [["X-1"]])

    assert mappings[0].target_field is CanonicalField.SKIP
    assert mappings[0].confidence == 0


def _sample_mappings():
    return [
        FieldMapping("Name", CanonicalField.FULL_NAME, 100),
        FieldMapping("Cell", CanonicalField.PHONE, 100),
        FieldMapping("Other", CanonicalField.SKIP, 0),
    ]


def test_override_releases_previous_owner():
    updated = override_mapping(_sample_mappings(), "Other", CanonicalField.PHONE)

    assert _targets(updated) == {
        "Name": CanonicalField.FULL_NAME,
        "Cell": CanonicalField.SKIP,
        "Other": CanonicalField.PHONE,
    }
    assert updated[2].confidence == 100
    assert updated[2].user_override


def test_strict_override_raises_on_conflict():
    with pytest.raises(MappingConflictError):
        override_mapping(_sample_mappings(), "Other", CanonicalField.PHONE, strict=True)


def test_override_unknown_header_raises():
    with pytest.raises(KeyError):
        override_mapping(_sample_mappings(), "Missing", CanonicalField.EMAIL)


def test_mapping_options_mark_used_fields():
    options = {option.field: option for option in mapping_options(_sample_mappings(), "Other")}

    assert options[CanonicalField.PHONE].used
    assert options[CanonicalField.PHONE].label == "Phone (used)"
    assert not options[CanonicalField.EMAIL].used
    own = {option.field: option for option in mapping_options(_sample_mappings(), "Cell")}
    assert not own[CanonicalField.PHONE].used


def test_missing_required_fields():
    assert missing_required_fields(_sample_mappings()) == []
    assert missing_required_fields([FieldMapping("Email", CanonicalField.EMAIL)]) == [
        "Phone",
        "First Name or Full Name",
    ]


def test_mapping_counts_and_format():
    mappings = override_mapping(_sample_mappings(), "Other", CanonicalField.EMAIL)

    assert mapping_counts(mappings) == {"mapped": 3, "skipped": 0, "auto_detected": 2}
    assert detect_format(mappings) == "shop"
    assert detect_format([FieldMapping("First", CanonicalField.FIRST_NAME)]) == "standard"
