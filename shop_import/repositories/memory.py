"""Repository implementation that keeps customers in process memory."""
from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import CustomerRecord, NewCustomer, NewServiceRecord, NewVehicle, VehicleRecord
from .base import DuplicateCustomerError


@dataclass(frozen=True)
class ConsentEvent:
    tenant_id: str
    customer_id: str
    action: str
    source: str


class InMemoryCustomerRepository:
    """Thread-safe store used by the CLI, tests and local development.

    The tenant and phone pair is unique, mirroring the constraint a real
    database would enforce.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._customers: Dict[Tuple[str, str], CustomerRecord] = {}
        self._vehicles: Dict[str, VehicleRecord] = {}
        self.service_records: List[Tuple[str, NewServiceRecord]] = []
        self.consent_events: List[ConsentEvent] = []
        self.create_calls = 0

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    # --- Queries ---

    def find_by_tenant_and_phone(self, tenant_id: str, phone: str) -> Optional[CustomerRecord]:
        with self._lock:
            record = self._customers.get((tenant_id, phone))
            return None if record is None else replace(record, vehicles=list(record.vehicles))

    def find_existing_phones(self, tenant_id: str, phones: Iterable[str]) -> List[str]:
        with self._lock:
            return [phone for phone in phones if (tenant_id, phone) in self._customers]

    def customers(self, tenant_id: Optional[str] = None) -> List[CustomerRecord]:
        with self._lock:
            return [
                record
                for (tenant, _), record in self._customers.items()
                if tenant_id is None or tenant == tenant_id
            ]

    # --- Writes ---

    def seed(self, tenant_id: str, phone: str, first_name: str = "Existing", last_name: str = "") -> CustomerRecord:
        """Insert a pre-existing customer without counting it as a create call."""

        record = CustomerRecord(
            id=self._next_id("cust"), tenant_id=tenant_id, first_name=first_name, last_name=last_name, phone=phone
        )
        with self._lock:
            self._customers[(tenant_id, phone)] = record
        return record

    def create_customer(self, tenant_id: str, customer: NewCustomer) -> CustomerRecord:
        with self._lock:
            self.create_calls += 1
            key = (tenant_id, customer.phone)
            if key in self._customers:
                raise DuplicateCustomerError(tenant_id, customer.phone)
            record = CustomerRecord(
                id=self._next_id("cust"),
                tenant_id=tenant_id,
                first_name=customer.first_name,
                last_name=customer.last_name,
                phone=customer.phone,
                email=customer.email,
                sms_consent=customer.sms_consent,
                sms_consent_at=customer.sms_consent_at,
            )
            self._customers[key] = record
            if customer.vehicle is not None:
                self._store_vehicle(record, customer.vehicle)
            return record

    def add_vehicle(self, tenant_id: str, customer_id: str, vehicle: NewVehicle) -> VehicleRecord:
        with self._lock:
            return self._store_vehicle(self._customer_by_id(tenant_id, customer_id), vehicle)

    def add_service_record(self, tenant_id: str, vehicle_id: str, record: NewServiceRecord) -> None:
        with self._lock:
            vehicle = self._vehicles.get(vehicle_id)
            if vehicle is None:
                raise KeyError(f"Unknown vehicle '{vehicle_id}' for tenant '{tenant_id}'")
            self._store_service_record(vehicle, record)

    def log_consent_event(self, tenant_id: str, customer_id: str, action: str, source: str) -> None:
        with self._lock:
            self.consent_events.append(ConsentEvent(tenant_id, customer_id, action, source))

    # --- Helpers (lock held) ---

    def _customer_by_id(self, tenant_id: str, customer_id: str) -> CustomerRecord:
        for (tenant, _), record in self._customers.items():
            if tenant == tenant_id and record.id == customer_id:
                return record
        raise KeyError(f"Unknown customer '{customer_id}' for tenant '{tenant_id}'")

    def _store_vehicle(self, customer: CustomerRecord, vehicle: NewVehicle) -> VehicleRecord:
        record = VehicleRecord(
            id=self._next_id("veh"),
            customer_id=customer.id,
            year=vehicle.year,
            make=vehicle.make,
            model=vehicle.model,
        )
        self._vehicles[record.id] = record
        customer.vehicles.append(record)
        if vehicle.service_record is not None:
            self._store_service_record(record, vehicle.service_record)
        return record

    def _store_service_record(self, vehicle: VehicleRecord, record: NewServiceRecord) -> None:
        vehicle.service_mileages.append(record.mileage)
        self.service_records.append((vehicle.id, record))


__all__ = ["ConsentEvent", "InMemoryCustomerRepository"]
