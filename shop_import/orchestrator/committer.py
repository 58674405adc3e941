"""Commit accepted import rows into the customer repository."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Union

from ..cleaners import clean_phone
from ..config import ImportSettings
from ..models import (
    CleanedRow,
    CleaningStatus,
    CustomerRecord,
    ImportResultData,
    ImportRow,
    NewCustomer,
    NewServiceRecord,
    NewVehicle,
    RowOutcome,
    RowStatus,
    VehicleRecord,
)
from ..repositories import CONSENT_OPT_IN, CustomerRepository, DuplicateCustomerError
from ..scheduling import infer_service_type
from ..validation import accepted_rows

LOGGER = logging.getLogger(__name__)

IMPORT_FAILED_MESSAGE = "Import failed. Please try again."

RowLike = Union[CleanedRow, ImportRow]


@dataclass(frozen=True)
class _RowFacts:
    """Typed values derived from one row's cleaned strings."""

    year: Optional[int]
    mileage: Optional[int]
    service_date: Optional[date]
    service_type: str


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _derive_facts(row: ImportRow) -> _RowFacts:
    return _RowFacts(
        year=_parse_int(row.vehicle_year) if row.vehicle_year else None,
        mileage=_parse_int(row.last_service_mileage) if row.last_service_mileage else None,
        service_date=_parse_date(row.last_service_date) if row.last_service_date else None,
        service_type=infer_service_type(row.repair_description),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImportCommitter:
    """Creates one customer per accepted row, sequentially and in file order.

    Rows are committed independently; a failing row is recorded as an error
    and the remaining rows still run.
    """

    def __init__(
        self,
        repository: CustomerRepository,
        settings: Optional[ImportSettings] = None,
        *,
        raise_on_error: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._settings = settings or ImportSettings()
        self._schedule = self._settings.service_schedule()
        self._raise_on_error = raise_on_error
        self._clock = clock

    @property
    def settings(self) -> ImportSettings:
        return self._settings

    def commit(
        self,
        rows: Iterable[RowLike],
        tenant_id: str,
        sms_consent: bool,
        *,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        result_callback: Optional[Callable[[int, RowOutcome], None]] = None,
        import_format: Optional[str] = None,
    ) -> ImportResultData:
        """Commit ``rows`` and return the aggregate result.

        Cleaned rows carrying errors are left out. Setting ``cancel_event``
        stops the run between rows; rows already committed stay committed.
        """

        import_rows = _as_import_rows(rows)
        total = len(import_rows)
        result = ImportResultData(format=import_format)
        if total == 0 and progress_callback:
            progress_callback(0, 0)

        for index, row in enumerate(import_rows, start=1):
            if cancel_event and cancel_event.is_set():
                result.cancelled = True
                break
            outcome = self.process_row(row, tenant_id, sms_consent)
            self._tally(result, index, outcome)
            LOGGER.debug("Row %s of %s: %s %s", index, total, outcome.status.value, outcome.message)
            if result_callback:
                result_callback(index - 1, outcome)
            if progress_callback:
                progress_callback(index, total)

        result.message = _summary_message(result)
        LOGGER.info(
            "Import for tenant %s finished: %s created, %s updated, %s duplicates, %s errors",
            tenant_id,
            result.success,
            result.updated,
            result.duplicates,
            result.errors,
        )
        return result

    def _tally(self, result: ImportResultData, index: int, outcome: RowOutcome) -> None:
        if outcome.status is RowStatus.SUCCESS:
            result.success += 1
        elif outcome.status is RowStatus.UPDATED:
            result.updated += 1
        elif outcome.status is RowStatus.DUPLICATE:
            result.duplicates += 1
        else:
            result.errors += 1
            if len(result.details) < self._settings.max_error_details:
                result.details.append(f"Row {index}: {outcome.message}")
        if outcome.vehicle_created:
            result.vehicles_created += 1
        if outcome.service_record_created:
            result.service_records_created += 1

    # --- Single row ---

    def process_row(self, row: ImportRow, tenant_id: str, sms_consent: bool) -> RowOutcome:
        phone = clean_phone(row.phone)
        if phone.status is CleaningStatus.ERROR:
            return RowOutcome(RowStatus.ERROR, "Invalid phone number")
        row = replace(row, phone=phone.cleaned)
        if not row.first_name:
            return RowOutcome(RowStatus.ERROR, "Missing first name")

        try:
            existing = self._repository.find_by_tenant_and_phone(tenant_id, row.phone)
            facts = _derive_facts(row)
            if existing is not None:
                if self._settings.enrich_existing:
                    return self._enrich(tenant_id, existing, row, facts)
                return RowOutcome(RowStatus.DUPLICATE, "Customer already exists")
            return self._create(tenant_id, row, facts, sms_consent)
        except DuplicateCustomerError:
            return RowOutcome(RowStatus.DUPLICATE, "Customer already exists")
        except Exception as exc:
            LOGGER.exception("Failed to import customer with phone %s", row.phone)
            if self._raise_on_error:
                raise
            return RowOutcome(RowStatus.ERROR, f"Failed to save: {exc}")

    def _service_record(self, row: ImportRow, facts: _RowFacts) -> Optional[NewServiceRecord]:
        service_date, mileage = facts.service_date, facts.mileage
        if service_date is None or mileage is None:
            return None
        return NewServiceRecord(
            service_date=service_date,
            mileage=mileage,
            service_type=facts.service_type,
            next_due_date=self._schedule.next_due_date(service_date, facts.service_type),
            next_due_mileage=self._schedule.next_due_mileage(mileage, facts.service_type),
            notes=row.repair_description or None,
        )

    def _vehicle(self, row: ImportRow, facts: _RowFacts) -> Optional[NewVehicle]:
        """Vehicle described by the row; make, model and a parseable year are required."""
        year = facts.year
        if year is None or not (row.vehicle_make and row.vehicle_model):
            return None
        return NewVehicle(
            year=year,
            make=row.vehicle_make,
            model=row.vehicle_model,
            vin=row.vin or None,
            license_plate=row.license_plate or None,
            mileage_at_last_service=facts.mileage,
            service_record=self._service_record(row, facts),
        )

    def _create(self, tenant_id: str, row: ImportRow, facts: _RowFacts, sms_consent: bool) -> RowOutcome:
        vehicle = self._vehicle(row, facts)
        customer = self._repository.create_customer(
            tenant_id,
            NewCustomer(
                first_name=row.first_name,
                last_name=row.last_name,
                phone=row.phone,
                email=row.email or None,
                sms_consent=sms_consent,
                sms_consent_at=self._clock() if sms_consent else None,
                vehicle=vehicle,
            ),
        )
        if sms_consent:
            self._repository.log_consent_event(tenant_id, customer.id, CONSENT_OPT_IN, self._settings.consent_source)
        return RowOutcome(
            RowStatus.SUCCESS,
            "Imported successfully",
            customer_created=True,
            vehicle_created=vehicle is not None,
            service_record_created=vehicle is not None and vehicle.service_record is not None,
        )

    def _enrich(self, tenant_id: str, customer: CustomerRecord, row: ImportRow, facts: _RowFacts) -> RowOutcome:
        vehicle = self._vehicle(row, facts)
        if vehicle is None:
            return RowOutcome(RowStatus.DUPLICATE, "No new data to add")

        match = _matching_vehicle(customer.vehicles, vehicle.year, vehicle.make, vehicle.model)
        if match is None:
            self._repository.add_vehicle(tenant_id, customer.id, vehicle)
            return RowOutcome(
                RowStatus.UPDATED,
                "Enriched existing customer with new vehicle",
                vehicle_created=True,
                service_record_created=vehicle.service_record is not None,
            )

        record = self._service_record(row, facts)
        if record is None or record.mileage in match.service_mileages:
            return RowOutcome(RowStatus.DUPLICATE, "Vehicle already exists")
        self._repository.add_service_record(tenant_id, match.id, record)
        return RowOutcome(
            RowStatus.UPDATED,
            "Added service record to existing vehicle",
            service_record_created=True,
        )


def _matching_vehicle(
    vehicles: Sequence[VehicleRecord], year: Optional[int], make: str, model: str
) -> Optional[VehicleRecord]:
    for vehicle in vehicles:
        if vehicle.year == year and vehicle.make.lower() == make.lower() and vehicle.model.lower() == model.lower():
            return vehicle
    return None


def _as_import_rows(rows: Iterable[RowLike]) -> List[ImportRow]:
    items = list(rows)
    cleaned = [row for row in items if isinstance(row, CleanedRow)]
    direct = [row for row in items if isinstance(row, ImportRow)]
    if cleaned and direct:
        raise TypeError("Cannot mix cleaned rows and import rows in one commit")
    if cleaned:
        return [ImportRow.from_cleaned_row(row) for row in accepted_rows(cleaned)]
    return direct


def _summary_message(result: ImportResultData) -> str:
    if result.errors > 0:
        message = f"Imported {result.success} customers with {result.errors} errors"
    else:
        message = f"Successfully imported {result.success} customers"
    if result.updated:
        message += f", updated {result.updated} existing customers"
    if result.cancelled:
        message = f"Import cancelled. {message}"
    return message


def failed_result(import_format: Optional[str] = None) -> ImportResultData:
    """Terminal result reported when a commit run raises."""

    return ImportResultData(success=0, errors=1, message=IMPORT_FAILED_MESSAGE, format=import_format)


# --- Wire conversion ---

def rows_to_payload(rows: Sequence[CleanedRow]) -> List[dict]:
    """Serialise the accepted cleaned rows into commit request maps."""

    return [ImportRow.from_cleaned_row(row).as_payload() for row in accepted_rows(rows)]


def payload_to_rows(payload: Iterable[Mapping[str, object]]) -> List[ImportRow]:
    """Rebuild committer input from request maps; missing keys become blank."""

    return [ImportRow.from_payload(item) for item in payload]


__all__ = [
    "IMPORT_FAILED_MESSAGE",
    "ImportCommitter",
    "failed_result",
    "payload_to_rows",
    "rows_to_payload",
]
