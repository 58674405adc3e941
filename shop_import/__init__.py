"""Bulk customer import pipeline for auto-repair shop CRMs."""

from . import models  # noqa: F401
from .config import ConfigurationError, ImportSettings
from .ingestion import ParseError, UnsupportedFileTypeError, parse_file
from .mapping import MappingConflictError, detect_mappings
from .models import (
    CanonicalField,
    CleanedCell,
    CleanedRow,
    CleaningStatus,
    DuplicateInfo,
    FieldMapping,
    ImportResultData,
    ImportRow,
    ParsedFile,
    ValidationSummary,
)
from .orchestrator import ImportCommitter, ImportWizard, WizardStage, WizardTransitionError
from .repositories import DuplicateCustomerError, InMemoryCustomerRepository
from .validation import clean_rows

__all__ = [
    "CanonicalField",
    "CleanedCell",
    "CleanedRow",
    "CleaningStatus",
    "ConfigurationError",
    "DuplicateCustomerError",
    "DuplicateInfo",
    "FieldMapping",
    "ImportCommitter",
    "ImportResultData",
    "ImportRow",
    "ImportSettings",
    "ImportWizard",
    "InMemoryCustomerRepository",
    "MappingConflictError",
    "ParseError",
    "ParsedFile",
    "UnsupportedFileTypeError",
    "ValidationSummary",
    "WizardStage",
    "WizardTransitionError",
    "clean_rows",
    "detect_mappings",
    "parse_file",
    "api",
    "ingestion",
    "orchestrator",
    "repositories",
]
