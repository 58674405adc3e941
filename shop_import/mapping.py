"""Heuristic detection of which source column holds which canonical field."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .models import CanonicalField, FieldMapping, ParsedFile

LOGGER = logging.getLogger(__name__)

# Alias scores. Tuned against QuickBooks and shop-management exports.
EXACT_MATCH_SCORE = 100
NORMALIZED_MATCH_SCORE = 95
CONTAINS_SCORE = 60
PREFIX_SCORE = 40
MIN_CANDIDATE_SCORE = 20
MAX_CONFIDENCE = 100
OVERRIDE_CONFIDENCE = 100

DATA_SAMPLE_SIZE = 10
PHONE_SHAPE_BONUS, PHONE_SHAPE_SHARE = 30, 0.6
EMAIL_SHAPE_BONUS, EMAIL_SHAPE_SHARE = 30, 0.5
YEAR_SHAPE_BONUS, YEAR_SHAPE_SHARE = 25, 0.5
MILEAGE_SHAPE_BONUS, MILEAGE_SHAPE_SHARE = 20, 0.5
VIN_SHAPE_BONUS, VIN_SHAPE_SHARE = 25, 0.4

FIELD_ALIASES: Mapping[CanonicalField, Sequence[str]] = {
    CanonicalField.PHONE: (
        "phone", "phone number", "telephone", "mobile", "cell", "main phone",
        "contact number", "phone#", "cell phone", "mobile phone", "tel",
    ),
    CanonicalField.FIRST_NAME: ("first name", "firstname", "fname", "given name", "first"),
    CanonicalField.LAST_NAME: ("last name", "lastname", "lname", "surname", "family name", "last"),
    CanonicalField.FULL_NAME: (
        "full name", "fullname", "customer name", "name", "display name",
        "customer", "contact name", "client name", "client",
    ),
    CanonicalField.EMAIL: ("email", "email address", "e-mail", "emailaddress", "main email"),
    CanonicalField.VEHICLE_YEAR: ("vehicle year", "vehicleyear", "year", "car year", "auto year"),
    CanonicalField.VEHICLE_MAKE: ("vehicle make", "vehiclemake", "make", "car make", "manufacturer"),
    CanonicalField.VEHICLE_MODEL: ("vehicle model", "vehiclemodel", "model", "car model"),
    CanonicalField.YEAR_MAKE_MODEL: (
        "year/make/model", "yearmakemodel", "ymm", "vehicle", "year make model", "vehicle info",
    ),
    CanonicalField.VIN: (
        "vin", "vin code", "vin number", "vehicle identification number", "vin#", "vincode",
    ),
    CanonicalField.LICENSE_PLATE: (
        "license plate", "licenseplate", "plate", "plate number", "tag", "license", "plate#", "tag number",
    ),
    CanonicalField.LAST_SERVICE_DATE: (
        "last service date", "lastservicedate", "service date", "last visit",
        "date of service", "last service", "dos", "date",
    ),
    CanonicalField.LAST_SERVICE_MILEAGE: (
        "last service mileage", "lastservicemileage", "mileage", "current mileage",
        "current milleage", "odometer", "miles", "mileage at service", "service mileage",
    ),
    CanonicalField.REPAIR_DESCRIPTION: (
        "repair description", "service description", "description", "repair",
        "service type", "service performed", "work performed", "notes", "service notes",
    ),
}

REQUIRED_NAME_FIELDS = (CanonicalField.FIRST_NAME, CanonicalField.FULL_NAME)
SHOP_FORMAT_FIELDS = (CanonicalField.FULL_NAME, CanonicalField.YEAR_MAKE_MODEL)


class MappingConflictError(ValueError):
    """Raised by strict overrides that would map two headers onto one field."""


@dataclass(frozen=True)
class MappingOption:
    """A selectable target for one header in the mapping stage."""

    field: CanonicalField
    label: str
    used: bool = False


def _alphanumeric(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text)


def score_alias(header: str, alias: str) -> int:
    candidate = header.lower().strip()
    target = alias.lower()
    if not candidate:
        return 0
    if candidate == target:
        return EXACT_MATCH_SCORE
    if _alphanumeric(candidate) and _alphanumeric(candidate) == _alphanumeric(target):
        return NORMALIZED_MATCH_SCORE
    if candidate.startswith(target) or target.startswith(candidate):
        return PREFIX_SCORE
    if target in candidate or candidate in target:
        return CONTAINS_SCORE
    return 0


def _share(matches: int, total: int, threshold: float) -> bool:
    return matches >= total * threshold


def _looks_like_int(text: str, low: int, high: int) -> bool:
    try:
        value = int(text)
    except ValueError:
        return False
    return low <= value <= high


def score_data_shape(values: Sequence[str], target: CanonicalField) -> int:
    """Bonus for columns whose content looks like ``target``."""

    sample = [value.strip() for value in values if value.strip()][:DATA_SAMPLE_SIZE]
    if not sample:
        return 0
    total = len(sample)

    if target is CanonicalField.PHONE:
        hits = sum(1 for value in sample if 10 <= len(re.sub(r"\D", "", value)) <= 11)
        return PHONE_SHAPE_BONUS if _share(hits, total, PHONE_SHAPE_SHARE) else 0
    if target is CanonicalField.EMAIL:
        hits = sum(1 for value in sample if "@" in value)
        return EMAIL_SHAPE_BONUS if _share(hits, total, EMAIL_SHAPE_SHARE) else 0
    if target is CanonicalField.VEHICLE_YEAR:
        hits = sum(1 for value in sample if len(value) == 4 and value.isdigit() and 1970 <= int(value) <= 2100)
        return YEAR_SHAPE_BONUS if _share(hits, total, YEAR_SHAPE_SHARE) else 0
    if target is CanonicalField.LAST_SERVICE_MILEAGE:
        hits = sum(1 for value in sample if _looks_like_int(re.sub(r"[,\s]", "", value), 100, 500_000))
        return MILEAGE_SHAPE_BONUS if _share(hits, total, MILEAGE_SHAPE_SHARE) else 0
    if target is CanonicalField.VIN:
        hits = sum(1 for value in sample if len(re.sub(r"\s", "", value)) == 17)
        return VIN_SHAPE_BONUS if _share(hits, total, VIN_SHAPE_SHARE) else 0
    return 0


def _first_non_blank(values: Sequence[str]) -> str:
    return next((value for value in values if value.strip()), "")


def detect_mappings(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> List[FieldMapping]:
    """Propose one :class:`FieldMapping` per header, in header order.

    Candidates are ranked by alias score plus data-shape bonus and assigned
    greedily, so no two headers ever share a non-skip field.
    """

    columns: Dict[int, List[str]] = {
        index: [row[index] if index < len(row) else "" for row in rows] for index in range(len(headers))
    }
    candidates: List[Tuple[int, int, CanonicalField]] = []
    for index, header in enumerate(headers):
        for target, aliases in FIELD_ALIASES.items():
            alias_score = max(score_alias(header, alias) for alias in aliases)
            score = alias_score + score_data_shape(columns[index], target)
            if score >= MIN_CANDIDATE_SCORE:
                candidates.append((score, index, target))

    candidates.sort(key=lambda candidate: candidate[0], reverse=True)

    assigned: Dict[int, Tuple[CanonicalField, int]] = {}
    used_fields: Set[CanonicalField] = set()
    for score, index, target in candidates:
        if index in assigned or target in used_fields:
            continue
        assigned[index] = (target, min(score, MAX_CONFIDENCE))
        used_fields.add(target)
        LOGGER.debug("Mapped column %r to %s (score %s)", headers[index], target.value, score)

    mappings: List[FieldMapping] = []
    for index, header in enumerate(headers):
        target, confidence = assigned.get(index, (CanonicalField.SKIP, 0))
        mappings.append(
            FieldMapping(
                source_header=header,
                target_field=target,
                confidence=confidence,
                sample_value=_first_non_blank(columns[index]),
                column_index=index,
            )
        )
    return mappings


def detect_file_mappings(parsed: ParsedFile) -> List[FieldMapping]:
    return detect_mappings(parsed.headers, parsed.rows)


def override_mapping(
    mappings: Sequence[FieldMapping],
    source_header: str,
    target: CanonicalField,
    *,
    strict: bool = False,
) -> List[FieldMapping]:
    """Reassign ``source_header`` to ``target`` with full confidence.

    A header already holding ``target`` is released to ``skip``; with
    ``strict=True`` a conflict raises :class:`MappingConflictError` instead.
    """

    if not any(mapping.source_header == source_header for mapping in mappings):
        raise KeyError(source_header)

    owner = _owner_of(mappings, target, exclude=source_header)
    if owner is not None and strict:
        raise MappingConflictError(f"'{target.label}' is already mapped from '{owner}'")

    updated: List[FieldMapping] = []
    for mapping in mappings:
        if mapping.source_header == source_header:
            updated.append(replace(mapping, target_field=target, confidence=OVERRIDE_CONFIDENCE, user_override=True))
        elif owner is not None and mapping.source_header == owner:
            updated.append(replace(mapping, target_field=CanonicalField.SKIP, confidence=0, user_override=True))
        else:
            updated.append(mapping)
    return updated


def _owner_of(mappings: Sequence[FieldMapping], target: CanonicalField, *, exclude: str) -> Optional[str]:
    if target is CanonicalField.SKIP:
        return None
    for mapping in mappings:
        if mapping.target_field is target and mapping.source_header != exclude:
            return mapping.source_header
    return None


def mapping_options(mappings: Sequence[FieldMapping], source_header: str) -> List[MappingOption]:
    """List every target for ``source_header``, marking ones used elsewhere."""

    options: List[MappingOption] = []
    for target in CanonicalField:
        used = _owner_of(mappings, target, exclude=source_header) is not None
        label = f"{target.label} (used)" if used else target.label
        options.append(MappingOption(field=target, label=label, used=used))
    return options


def missing_required_fields(mappings: Sequence[FieldMapping]) -> List[str]:
    """Return human readable names of required targets nobody maps to."""

    targets = {mapping.target_field for mapping in mappings}
    missing: List[str] = []
    if CanonicalField.PHONE not in targets:
        missing.append(CanonicalField.PHONE.label)
    if not targets.intersection(REQUIRED_NAME_FIELDS):
        missing.append(f"{CanonicalField.FIRST_NAME.label} or {CanonicalField.FULL_NAME.label}")
    return missing


def mapping_counts(mappings: Sequence[FieldMapping]) -> Dict[str, int]:
    mapped = sum(1 for mapping in mappings if mapping.target_field is not CanonicalField.SKIP)
    auto = sum(
        1
        for mapping in mappings
        if mapping.target_field is not CanonicalField.SKIP and mapping.confidence > 0 and not mapping.user_override
    )
    return {"mapped": mapped, "skipped": len(mappings) - mapped, "auto_detected": auto}


def detect_format(mappings: Sequence[FieldMapping]) -> str:
    """Label the export style: ``"shop"`` for combined name/vehicle columns."""

    if any(mapping.target_field in SHOP_FORMAT_FIELDS for mapping in mappings):
        return "shop"
    return "standard"


__all__ = [
    "FIELD_ALIASES",
    "MappingConflictError",
    "MappingOption",
    "detect_file_mappings",
    "detect_format",
    "detect_mappings",
    "mapping_counts",
    "mapping_options",
    "missing_required_fields",
    "override_mapping",
    "score_alias",
    "score_data_shape",
]
