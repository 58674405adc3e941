"""Data models shared by the import pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional


class CanonicalField(str, Enum):
    """Semantic target a source column can be mapped onto."""

    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    FULL_NAME = "fullName"
    PHONE = "phone"
    EMAIL = "email"
    VEHICLE_YEAR = "vehicleYear"
    VEHICLE_MAKE = "vehicleMake"
    VEHICLE_MODEL = "vehicleModel"
    YEAR_MAKE_MODEL = "yearMakeModel"
    VIN = "vin"
    LICENSE_PLATE = "licensePlate"
    LAST_SERVICE_DATE = "lastServiceDate"
    LAST_SERVICE_MILEAGE = "lastServiceMileage"
    REPAIR_DESCRIPTION = "repairDescription"
    SKIP = "skip"

    @property
    def label(self) -> str:
        return FIELD_LABELS[self]

    @property
    def is_composite(self) -> bool:
        return self in (CanonicalField.FULL_NAME, CanonicalField.YEAR_MAKE_MODEL)


FIELD_LABELS: Dict[CanonicalField, str] = {
    CanonicalField.FIRST_NAME: "First Name",
    CanonicalField.LAST_NAME: "Last Name",
    CanonicalField.FULL_NAME: "Full Name",
    CanonicalField.PHONE: "Phone",
    CanonicalField.EMAIL: "Email",
    CanonicalField.VEHICLE_YEAR: "Vehicle Year",
    CanonicalField.VEHICLE_MAKE: "Vehicle Make",
    CanonicalField.VEHICLE_MODEL: "Vehicle Model",
    CanonicalField.YEAR_MAKE_MODEL: "Year/Make/Model",
    CanonicalField.VIN: "VIN",
    CanonicalField.LICENSE_PLATE: "License Plate",
    CanonicalField.LAST_SERVICE_DATE: "Last Service Date",
    CanonicalField.LAST_SERVICE_MILEAGE: "Last Service Mileage",
    CanonicalField.REPAIR_DESCRIPTION: "Repair Description",
    CanonicalField.SKIP: "Skip",
}

# Fields a cleaned row always carries a cell for. Composite fields expand into
# these and never appear as keys of their own.
ROW_FIELDS: List[CanonicalField] = [
    CanonicalField.FIRST_NAME,
    CanonicalField.LAST_NAME,
    CanonicalField.PHONE,
    CanonicalField.EMAIL,
    CanonicalField.VEHICLE_YEAR,
    CanonicalField.VEHICLE_MAKE,
    CanonicalField.VEHICLE_MODEL,
    CanonicalField.VIN,
    CanonicalField.LICENSE_PLATE,
    CanonicalField.LAST_SERVICE_DATE,
    CanonicalField.LAST_SERVICE_MILEAGE,
    CanonicalField.REPAIR_DESCRIPTION,
]


class CleaningStatus(str, Enum):
    CLEAN = "clean"
    FIXED = "fixed"
    WARNING = "warning"
    ERROR = "error"


class FileKind(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"


class DuplicateType(str, Enum):
    INTERNAL = "internal"
    EXISTING = "existing"


class RowStatus(str, Enum):
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    UPDATED = "updated"
    ERROR = "error"


# --- Parsing & Mapping ---

@dataclass(frozen=True)
class ParsedFile:
    """Uniform tabular view of an uploaded file."""

    headers: List[str]
    rows: List[List[str]]
    file_name: str
    file_kind: FileKind

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    def column(self, header: str) -> List[str]:
        """Return every cell of ``header`` in row order."""
        index = self.headers.index(header)
        return [row[index] for row in self.rows]


@dataclass(slots=True)
class FieldMapping:
    """Assignment of one source column to a canonical field."""

    source_header: str
    target_field: CanonicalField
    confidence: int = 0
    sample_value: str = ""
    user_override: bool = False
    column_index: Optional[int] = None


# --- Cleaning ---

@dataclass(frozen=True)
class CleaningResult:
    """Outcome of running a single cleaner over one raw value."""

    cleaned: str
    original: str
    status: CleaningStatus = CleaningStatus.CLEAN
    message: str = ""


@dataclass(frozen=True)
class CleanedCell:
    value: str
    original: str
    status: CleaningStatus
    message: str
    field: CanonicalField

    @classmethod
    def from_result(cls, target: CanonicalField, result: CleaningResult) -> "CleanedCell":
        return cls(
            value=result.cleaned,
            original=result.original,
            status=result.status,
            message=result.message,
            field=target,
        )

    @classmethod
    def empty(cls, target: CanonicalField) -> "CleanedCell":
        return cls(value="", original="", status=CleaningStatus.CLEAN, message="", field=target)


@dataclass(slots=True)
class CleanedRow:
    """All cleaned cells of one source row, keyed by canonical field."""

    cells: Dict[CanonicalField, CleanedCell]
    row_index: int
    has_error: bool = False
    has_warning: bool = False

    def value(self, target: CanonicalField) -> str:
        cell = self.cells.get(target)
        return cell.value if cell is not None else ""

    @property
    def display_name(self) -> str:
        first = self.value(CanonicalField.FIRST_NAME)
        last = self.value(CanonicalField.LAST_NAME)
        return f"{first} {last}".strip()

    def refresh_flags(self) -> None:
        """Recompute ``has_error``/``has_warning`` from the current cells."""
        statuses = {cell.status for cell in self.cells.values()}
        self.has_error = CleaningStatus.ERROR in statuses
        self.has_warning = not self.has_error and CleaningStatus.WARNING in statuses


@dataclass(slots=True)
class ValidationSummary:
    total_rows: int = 0
    clean_rows: int = 0
    warning_rows: int = 0
    error_rows: int = 0
    fixed_cells: int = 0
    phones_cleaned: int = 0
    names_split: int = 0
    dates_normalized: int = 0


# --- Duplicates & Commit ---

_IMPORT_ROW_ATTRIBUTES: Dict[CanonicalField, str] = {
    CanonicalField.FIRST_NAME: "first_name",
    CanonicalField.LAST_NAME: "last_name",
    CanonicalField.PHONE: "phone",
    CanonicalField.EMAIL: "email",
    CanonicalField.VEHICLE_YEAR: "vehicle_year",
    CanonicalField.VEHICLE_MAKE: "vehicle_make",
    CanonicalField.VEHICLE_MODEL: "vehicle_model",
    CanonicalField.VIN: "vin",
    CanonicalField.LICENSE_PLATE: "license_plate",
    CanonicalField.LAST_SERVICE_DATE: "last_service_date",
    CanonicalField.LAST_SERVICE_MILEAGE: "last_service_mileage",
    CanonicalField.REPAIR_DESCRIPTION: "repair_description",
}


@dataclass(slots=True)
class ImportRow:
    """Cleaned string values of one accepted row, as handed to the committer."""

    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""
    vehicle_year: str = ""
    vehicle_make: str = ""
    vehicle_model: str = ""
    vin: str = ""
    license_plate: str = ""
    last_service_date: str = ""
    last_service_mileage: str = ""
    repair_description: str = ""

    @classmethod
    def from_cleaned_row(cls, row: "CleanedRow") -> "ImportRow":
        return cls(**{attribute: row.value(target) for target, attribute in _IMPORT_ROW_ATTRIBUTES.items()})

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "ImportRow":
        """Build a row from a ``{fieldName: value}`` map; missing keys are blank."""
        values: Dict[str, str] = {}
        for target, attribute in _IMPORT_ROW_ATTRIBUTES.items():
            value = payload.get(target.value)
            values[attribute] = "" if value is None else str(value).strip()
        return cls(**values)

    def as_payload(self) -> Dict[str, str]:
        return {target.value: getattr(self, attribute) for target, attribute in _IMPORT_ROW_ATTRIBUTES.items()}


@dataclass(frozen=True)
class DuplicateInfo:
    phone: str
    row_index: int
    name: str
    type: DuplicateType


@dataclass(slots=True)
class RowOutcome:
    """Result of committing a single row."""

    status: RowStatus
    message: str = ""
    customer_created: bool = False
    vehicle_created: bool = False
    service_record_created: bool = False


@dataclass(slots=True)
class ImportResultData:
    """Aggregate outcome of a commit run."""

    success: int = 0
    duplicates: int = 0
    errors: int = 0
    message: str = ""
    updated: int = 0
    vehicles_created: int = 0
    service_records_created: int = 0
    details: List[str] = field(default_factory=list)
    format: Optional[str] = None
    cancelled: bool = False

    def as_dict(self) -> Dict[str, object]:
        """Return the wire representation used by the commit endpoint."""
        payload: Dict[str, object] = {
            "success": self.success,
            "errors": self.errors,
            "duplicates": self.duplicates,
            "updated": self.updated,
            "message": self.message,
            "vehiclesCreated": self.vehicles_created,
            "serviceRecordsCreated": self.service_records_created,
        }
        if self.details:
            payload["details"] = list(self.details)
        if self.format:
            payload["format"] = self.format
        if self.cancelled:
            payload["cancelled"] = True
        return payload


# --- Persistence boundary ---

@dataclass(slots=True)
class NewServiceRecord:
    service_date: date
    mileage: int
    service_type: str
    next_due_date: date
    next_due_mileage: int
    notes: Optional[str] = None


@dataclass(slots=True)
class NewVehicle:
    year: int
    make: str
    model: str
    vin: Optional[str] = None
    license_plate: Optional[str] = None
    mileage_at_last_service: Optional[int] = None
    service_record: Optional[NewServiceRecord] = None


@dataclass(slots=True)
class NewCustomer:
    """Everything needed to create a customer and its optional vehicle."""

    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    sms_consent: bool = False
    sms_consent_at: Optional[datetime] = None
    vehicle: Optional[NewVehicle] = None


@dataclass(slots=True)
class VehicleRecord:
    id: str
    customer_id: str
    year: int
    make: str
    model: str
    service_mileages: List[int] = field(default_factory=list)


@dataclass(slots=True)
class CustomerRecord:
    id: str
    tenant_id: str
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    sms_consent: bool = False
    sms_consent_at: Optional[datetime] = None
    vehicles: List[VehicleRecord] = field(default_factory=list)


__all__ = [
    "CanonicalField",
    "CleanedCell",
    "CleanedRow",
    "CleaningResult",
    "CleaningStatus",
    "CustomerRecord",
    "DuplicateInfo",
    "DuplicateType",
    "FIELD_LABELS",
    "FieldMapping",
    "FileKind",
    "ImportResultData",
    "ImportRow",
    "NewCustomer",
    "NewServiceRecord",
    "NewVehicle",
    "ParsedFile",
    "ROW_FIELDS",
    "RowOutcome",
    "RowStatus",
    "ValidationSummary",
    "VehicleRecord",
]
