"""Detect phone numbers repeated within a file or already on record."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Set

from .cleaners import PHONE_DIGITS
from .models import CanonicalField, CleanedRow, DuplicateInfo, DuplicateType

LOGGER = logging.getLogger(__name__)

PhoneLookup = Callable[[List[str]], Iterable[str]]


@dataclass(slots=True)
class DuplicateReport:
    """Both duplicate checks for one set of cleaned rows."""

    internal: List[DuplicateInfo] = field(default_factory=list)
    existing: List[DuplicateInfo] = field(default_factory=list)

    @property
    def all(self) -> List[DuplicateInfo]:
        return [*self.internal, *self.existing]

    @property
    def row_indexes(self) -> Set[int]:
        return {info.row_index for info in self.all}

    def __len__(self) -> int:
        return len(self.internal) + len(self.existing)


def find_internal_duplicates(rows: Sequence[CleanedRow]) -> List[DuplicateInfo]:
    """Report every repeat of a phone after its first occurrence."""

    seen: Set[str] = set()
    duplicates: List[DuplicateInfo] = []
    for row in rows:
        phone = row.value(CanonicalField.PHONE)
        if not phone:
            continue
        if phone in seen:
            duplicates.append(
                DuplicateInfo(phone=phone, row_index=row.row_index, name=row.display_name, type=DuplicateType.INTERNAL)
            )
        else:
            seen.add(phone)
    return duplicates


def candidate_phones(rows: Sequence[CleanedRow]) -> List[str]:
    """Distinct phones long enough to look up, in first-seen order."""

    phones: List[str] = []
    seen: Set[str] = set()
    for row in rows:
        phone = row.value(CanonicalField.PHONE)
        if len(phone) >= PHONE_DIGITS and phone not in seen:
            seen.add(phone)
            phones.append(phone)
    return phones


def find_existing_duplicates(rows: Sequence[CleanedRow], lookup: PhoneLookup) -> List[DuplicateInfo]:
    """Flag rows whose phone ``lookup`` reports as already stored.

    ``lookup`` is called once with every candidate phone and returns the
    subset that exists for the current tenant.
    """

    phones = candidate_phones(rows)
    if not phones:
        return []
    existing = set(lookup(phones))
    LOGGER.debug("%s of %s phones already exist", len(existing), len(phones))
    return [
        DuplicateInfo(
            phone=row.value(CanonicalField.PHONE),
            row_index=row.row_index,
            name=row.display_name,
            type=DuplicateType.EXISTING,
        )
        for row in rows
        if row.value(CanonicalField.PHONE) in existing
    ]


def detect_duplicates(rows: Sequence[CleanedRow], lookup: Optional[PhoneLookup] = None) -> DuplicateReport:
    """Run the internal check and, when ``lookup`` is given, the existing check."""

    report = DuplicateReport(internal=find_internal_duplicates(rows))
    if lookup is not None:
        report.existing = find_existing_duplicates(rows, lookup)
    LOGGER.info("Found %s internal and %s existing duplicates", len(report.internal), len(report.existing))
    return report


def filter_lookup_phones(phones: Iterable[object], limit: int) -> List[str]:
    """Truncate to ``limit`` entries, then keep string phones of ten or more characters."""

    limited = list(phones)[: max(limit, 0)]
    return [phone for phone in limited if isinstance(phone, str) and len(phone) >= PHONE_DIGITS]


__all__ = [
    "DuplicateReport",
    "PhoneLookup",
    "candidate_phones",
    "detect_duplicates",
    "filter_lookup_phones",
    "find_existing_duplicates",
    "find_internal_duplicates",
]
