"""Linear upload → mapping → cleaning → review workflow for one import session."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..config import ImportSettings
from ..duplicates import detect_duplicates
from ..ingestion.parser import parse_file
from ..mapping import (
    MappingOption,
    detect_file_mappings,
    detect_format,
    mapping_counts,
    mapping_options,
    missing_required_fields,
    override_mapping,
)
from ..models import (
    CanonicalField,
    CleanedCell,
    CleanedRow,
    DuplicateInfo,
    FieldMapping,
    ImportResultData,
    ParsedFile,
    ValidationSummary,
)
from ..repositories import CustomerRepository
from ..validation import accepted_rows, clean_parsed_file, update_cell
from .committer import ImportCommitter, failed_result

LOGGER = logging.getLogger(__name__)


class WizardStage(str, Enum):
    UPLOAD = "upload"
    MAPPING = "mapping"
    CLEANING = "cleaning"
    REVIEW = "review"


STAGE_ORDER: List[WizardStage] = [WizardStage.UPLOAD, WizardStage.MAPPING, WizardStage.CLEANING, WizardStage.REVIEW]

# Edits to these cells make cached duplicate results stale.
_DUPLICATE_FIELDS = frozenset({CanonicalField.PHONE, CanonicalField.FIRST_NAME, CanonicalField.LAST_NAME})


class WizardTransitionError(RuntimeError):
    """Raised when a gate refuses a move or an action runs in the wrong stage."""


@dataclass
class WizardState:
    """Everything the wizard knows about the current import session."""

    stage: WizardStage = WizardStage.UPLOAD
    parsed_file: Optional[ParsedFile] = None
    mappings: List[FieldMapping] = field(default_factory=list)
    cleaned_rows: List[CleanedRow] = field(default_factory=list)
    summary: Optional[ValidationSummary] = None
    internal_duplicates: List[DuplicateInfo] = field(default_factory=list)
    existing_duplicates: List[DuplicateInfo] = field(default_factory=list)
    duplicates_checked: bool = False
    sms_consent: bool = False
    is_importing: bool = False
    import_result: Optional[ImportResultData] = None

    @property
    def is_committed(self) -> bool:
        return self.import_result is not None

    def clear_cleaning(self) -> None:
        self.cleaned_rows = []
        self.summary = None
        self.clear_duplicates()

    def clear_duplicates(self) -> None:
        self.internal_duplicates = []
        self.existing_duplicates = []
        self.duplicates_checked = False


# --- Transition table ---

def _has_file(state: WizardState) -> bool:
    return state.parsed_file is not None


def _has_required_mappings(state: WizardState) -> bool:
    return not missing_required_fields(state.mappings)


def _has_cleaned_rows(state: WizardState) -> bool:
    return bool(state.cleaned_rows)


def _can_commit(state: WizardState) -> bool:
    return not state.is_importing and not state.is_committed


EXIT_GATES: Dict[WizardStage, Callable[[WizardState], bool]] = {
    WizardStage.UPLOAD: _has_file,
    WizardStage.MAPPING: _has_required_mappings,
    WizardStage.CLEANING: _has_cleaned_rows,
    WizardStage.REVIEW: _can_commit,
}


def next_stage(state: WizardState) -> WizardStage:
    """Return the stage after ``state.stage`` or raise if its gate is closed."""

    position = STAGE_ORDER.index(state.stage)
    if position == len(STAGE_ORDER) - 1:
        raise WizardTransitionError("Review is the last stage; commit the import instead")
    if not EXIT_GATES[state.stage](state):
        raise WizardTransitionError(f"Cannot leave the {state.stage.value} stage yet")
    return STAGE_ORDER[position + 1]


def previous_stage(state: WizardState) -> WizardStage:
    if state.is_committed:
        raise WizardTransitionError("The import has been committed; start a new import instead")
    position = STAGE_ORDER.index(state.stage)
    if position == 0:
        raise WizardTransitionError("Already at the first stage")
    return STAGE_ORDER[position - 1]


class ImportWizard:
    """Drives one import session for ``tenant_id`` through the four stages."""

    def __init__(
        self,
        repository: CustomerRepository,
        tenant_id: str,
        settings: Optional[ImportSettings] = None,
    ) -> None:
        self._repository = repository
        self._tenant_id = tenant_id
        self._settings = settings or ImportSettings()
        self._lock = threading.Lock()
        self.state = WizardState()

    @property
    def stage(self) -> WizardStage:
        return self.state.stage

    # --- Navigation ---

    def can_go_next(self) -> bool:
        return self.state.stage is not WizardStage.REVIEW and EXIT_GATES[self.state.stage](self.state)

    def go_next(self) -> WizardStage:
        self._enter(next_stage(self.state))
        return self.state.stage

    def go_back(self) -> WizardStage:
        self._enter(previous_stage(self.state))
        return self.state.stage

    def go_to(self, stage: WizardStage) -> WizardStage:
        """Move to ``stage``, passing every gate on the way when moving forward."""

        target = STAGE_ORDER.index(WizardStage(stage))
        while STAGE_ORDER.index(self.state.stage) < target:
            self.go_next()
        while STAGE_ORDER.index(self.state.stage) > target:
            self.go_back()
        return self.state.stage

    def _enter(self, stage: WizardStage) -> None:
        LOGGER.info("Import wizard moving from %s to %s", self.state.stage.value, stage.value)
        self.state.stage = stage
        if stage is WizardStage.MAPPING and not self.state.mappings:
            self.detect_mappings()
        elif stage is WizardStage.CLEANING and not self.state.cleaned_rows:
            self.run_cleaning()
        elif stage is WizardStage.REVIEW and not self.state.duplicates_checked:
            self.check_duplicates()

    def _require(self, stage: WizardStage) -> None:
        if self.state.stage is not stage:
            raise WizardTransitionError(f"Only allowed in the {stage.value} stage (currently {self.state.stage.value})")

    # --- Upload ---

    def upload(self, file_name: str, content: bytes) -> ParsedFile:
        """Parse a new file and discard everything derived from the previous one."""

        self._require(WizardStage.UPLOAD)
        parsed = parse_file(file_name, content)
        self.state = WizardState(parsed_file=parsed, sms_consent=self.state.sms_consent)
        return parsed

    # --- Mapping ---

    def detect_mappings(self) -> List[FieldMapping]:
        if self.state.parsed_file is None:
            raise WizardTransitionError("No file has been uploaded")
        self.state.mappings = detect_file_mappings(self.state.parsed_file)
        self.state.clear_cleaning()
        return self.state.mappings

    def override_mapping(self, source_header: str, target: CanonicalField) -> List[FieldMapping]:
        self._require(WizardStage.MAPPING)
        self.state.mappings = override_mapping(self.state.mappings, source_header, CanonicalField(target))
        self.state.clear_cleaning()
        return self.state.mappings

    def mapping_options(self, source_header: str) -> List[MappingOption]:
        return mapping_options(self.state.mappings, source_header)

    def mapping_counts(self) -> Dict[str, int]:
        return mapping_counts(self.state.mappings)

    def missing_fields(self) -> List[str]:
        return missing_required_fields(self.state.mappings)

    # --- Cleaning ---

    def run_cleaning(self) -> ValidationSummary:
        if self.state.parsed_file is None:
            raise WizardTransitionError("No file has been uploaded")
        rows, summary = clean_parsed_file(self.state.parsed_file, self.state.mappings)
        self.state.cleaned_rows = rows
        self.state.summary = summary
        self.state.clear_duplicates()
        return summary

    def edit_cell(self, row_index: int, target: CanonicalField, value: str) -> CleanedCell:
        """Re-clean a single edited cell; only that row and the summary change."""

        self._require(WizardStage.CLEANING)
        target = CanonicalField(target)
        cell, summary = update_cell(self.state.cleaned_rows, row_index, target, value)
        self.state.summary = summary
        if target in _DUPLICATE_FIELDS:
            self.state.clear_duplicates()
        return cell

    # --- Review & commit ---

    def check_duplicates(self) -> List[DuplicateInfo]:
        report = detect_duplicates(
            self.state.cleaned_rows,
            lambda phones: self._repository.find_existing_phones(self._tenant_id, phones),
        )
        self.state.internal_duplicates = report.internal
        self.state.existing_duplicates = report.existing
        self.state.duplicates_checked = True
        return report.all

    def review_counts(self) -> Dict[str, int]:
        summary = self.state.summary or ValidationSummary()
        return {
            "ready": len(accepted_rows(self.state.cleaned_rows)),
            "errors": summary.error_rows,
            "duplicates": len(self.state.internal_duplicates) + len(self.state.existing_duplicates),
            "clean": summary.clean_rows,
        }

    def set_sms_consent(self, consent: bool) -> None:
        self.state.sms_consent = bool(consent)

    def commit(
        self,
        *,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> ImportResultData:
        """Commit the accepted rows; failures become a terminal error result."""

        self._require(WizardStage.REVIEW)
        with self._lock:
            if not _can_commit(self.state):
                raise WizardTransitionError("An import is already running or has completed")
            self.state.is_importing = True

        import_format = detect_format(self.state.mappings)
        committer = ImportCommitter(self._repository, self._settings)
        try:
            result = committer.commit(
                self.state.cleaned_rows,
                self._tenant_id,
                self.state.sms_consent,
                cancel_event=cancel_event,
                progress_callback=progress_callback,
                import_format=import_format,
            )
        except Exception:
            LOGGER.exception("Import for tenant %s failed", self._tenant_id)
            result = failed_result(import_format)
        finally:
            self.state.is_importing = False

        self.state.import_result = result
        return result

    def reset(self) -> None:
        """Start a new import from scratch."""

        LOGGER.info("Import wizard reset")
        self.state = WizardState()


__all__ = [
    "EXIT_GATES",
    "ImportWizard",
    "STAGE_ORDER",
    "WizardStage",
    "WizardState",
    "WizardTransitionError",
    "next_stage",
    "previous_stage",
]
