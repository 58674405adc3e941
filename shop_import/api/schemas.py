"""Request and response bodies for the import endpoints."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckDuplicatesRequest(BaseModel):
    # Items are validated by the endpoint, which ignores anything but strings.
    phones: List[Any] = Field(default_factory=list)


class CheckDuplicatesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    existing_phones: List[str] = Field(default_factory=list, alias="existingPhones")


class ImportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rows: List[Dict[str, Any]] = Field(default_factory=list)
    sms_consent: bool = Field(False, alias="smsConsent")
    format: Optional[str] = None


class ImportResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: int
    errors: int
    duplicates: int
    updated: int = 0
    message: str
    vehicles_created: int = Field(0, alias="vehiclesCreated")
    service_records_created: int = Field(0, alias="serviceRecordsCreated")
    details: Optional[List[str]] = None
    format: Optional[str] = None


class MappingPreview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_header: str = Field(alias="sourceHeader")
    target_field: str = Field(alias="targetField")
    confidence: int
    sample_value: str = Field("", alias="sampleValue")


class SummaryPreview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_rows: int = Field(alias="totalRows")
    clean_rows: int = Field(alias="cleanRows")
    warning_rows: int = Field(alias="warningRows")
    error_rows: int = Field(alias="errorRows")
    fixed_cells: int = Field(alias="fixedCells")
    phones_cleaned: int = Field(alias="phonesCleaned")
    names_split: int = Field(alias="namesSplit")
    dates_normalized: int = Field(alias="datesNormalized")


class PreviewResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    file_kind: str = Field(alias="fileKind")
    headers: List[str]
    total_rows: int = Field(alias="totalRows")
    format: str
    mappings: List[MappingPreview]
    missing_fields: List[str] = Field(default_factory=list, alias="missingFields")
    summary: Optional[SummaryPreview] = None


__all__ = [
    "CheckDuplicatesRequest",
    "CheckDuplicatesResponse",
    "ImportRequest",
    "ImportResponse",
    "MappingPreview",
    "PreviewResponse",
    "SummaryPreview",
]
