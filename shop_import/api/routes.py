"""FastAPI router exposing duplicate checks, commits, previews and templates."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Header, HTTPException, Request, Response, UploadFile, status

from ..config import ImportSettings
from ..duplicates import filter_lookup_phones
from ..ingestion.exporters import template_csv
from ..ingestion.parser import ParseError, parse_file
from ..mapping import detect_file_mappings, detect_format, missing_required_fields
from ..orchestrator.committer import ImportCommitter, payload_to_rows
from ..repositories import CustomerRepository
from ..validation import clean_parsed_file
from .schemas import (
    CheckDuplicatesRequest,
    CheckDuplicatesResponse,
    ImportRequest,
    ImportResponse,
    MappingPreview,
    PreviewResponse,
    SummaryPreview,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["import"])


# --- Dependencies ---

def get_tenant_id(x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-ID")) -> str:
    if not x_tenant_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return x_tenant_id


def get_repository(request: Request) -> CustomerRepository:
    return request.app.state.repository


def get_settings(request: Request) -> ImportSettings:
    return request.app.state.settings


# --- Endpoints ---

@router.post("/check-duplicates", response_model=CheckDuplicatesResponse)
def check_duplicates(
    body: CheckDuplicatesRequest,
    tenant_id: str = Depends(get_tenant_id),
    repository: CustomerRepository = Depends(get_repository),
    settings: ImportSettings = Depends(get_settings),
) -> CheckDuplicatesResponse:
    phones = filter_lookup_phones(body.phones, settings.duplicate_check_limit)
    if not phones:
        return CheckDuplicatesResponse(existing_phones=[])
    try:
        existing = repository.find_existing_phones(tenant_id, phones)
    except Exception as exc:
        LOGGER.exception("Duplicate check failed for tenant %s", tenant_id)
        raise HTTPException(status_code=500, detail="Failed to check duplicates") from exc
    return CheckDuplicatesResponse(existing_phones=list(existing))


@router.post("", response_model=ImportResponse, response_model_exclude_none=True)
def import_customers(
    body: ImportRequest,
    tenant_id: str = Depends(get_tenant_id),
    repository: CustomerRepository = Depends(get_repository),
    settings: ImportSettings = Depends(get_settings),
) -> ImportResponse:
    if not body.rows:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No data to import")

    committer = ImportCommitter(repository, settings)
    try:
        result = committer.commit(payload_to_rows(body.rows), tenant_id, body.sms_consent, import_format=body.format)
    except Exception as exc:
        LOGGER.exception("Import failed for tenant %s", tenant_id)
        raise HTTPException(status_code=500, detail="Failed to import customers") from exc
    return ImportResponse.model_validate(result.as_dict())


@router.post("/preview", response_model=PreviewResponse, response_model_exclude_none=True)
def preview_file(file: UploadFile = File(...), tenant_id: str = Depends(get_tenant_id)) -> PreviewResponse:
    content = file.file.read()
    try:
        parsed = parse_file(file.filename or "", content)
    except ParseError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    mappings = detect_file_mappings(parsed)
    missing = missing_required_fields(mappings)
    summary = None
    if not missing:
        _, validation = clean_parsed_file(parsed, mappings)
        summary = SummaryPreview(
            total_rows=validation.total_rows,
            clean_rows=validation.clean_rows,
            warning_rows=validation.warning_rows,
            error_rows=validation.error_rows,
            fixed_cells=validation.fixed_cells,
            phones_cleaned=validation.phones_cleaned,
            names_split=validation.names_split,
            dates_normalized=validation.dates_normalized,
        )
    LOGGER.debug("Previewed %s for tenant %s", parsed.file_name, tenant_id)
    return PreviewResponse(
        file_name=parsed.file_name,
        file_kind=parsed.file_kind.value,
        headers=parsed.headers,
        total_rows=parsed.total_rows,
        format=detect_format(mappings),
        mappings=[
            MappingPreview(
                source_header=mapping.source_header,
                target_field=mapping.target_field.value,
                confidence=mapping.confidence,
                sample_value=mapping.sample_value,
            )
            for mapping in mappings
        ],
        missing_fields=missing,
        summary=summary,
    )


@router.get("/templates/{kind}")
def download_template(kind: str) -> Response:
    try:
        content = template_csv(kind)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown template '{kind}'") from exc
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="customer-import-{kind}.csv"'},
    )


def create_app(repository: CustomerRepository, settings: Optional[ImportSettings] = None) -> FastAPI:
    """Build an application serving the import router against ``repository``."""

    app = FastAPI(title="Shop customer import")
    app.state.repository = repository
    app.state.settings = settings or ImportSettings()
    app.include_router(router)
    return app


__all__ = ["create_app", "get_tenant_id", "router"]
