"""Persistence boundary consumed by the import committer."""
from __future__ import annotations

from typing import Iterable, List, Optional, Protocol

from ..models import CustomerRecord, NewCustomer, NewServiceRecord, NewVehicle, VehicleRecord

CONSENT_OPT_IN = "opt_in"


class DuplicateCustomerError(RuntimeError):
    """Raised when a tenant already has a customer with the given phone."""

    def __init__(self, tenant_id: str, phone: str) -> None:
        super().__init__(f"Customer with phone {phone} already exists")
        self.tenant_id = tenant_id
        self.phone = phone


class CustomerRepository(Protocol):
    """Storage operations the import pipeline relies on."""

    def find_by_tenant_and_phone(self, tenant_id: str, phone: str) -> Optional[CustomerRecord]:  # pragma: no cover - runtime protocol
        """Return the tenant's customer with ``phone`` if one exists."""

    def find_existing_phones(self, tenant_id: str, phones: Iterable[str]) -> List[str]:  # pragma: no cover - runtime protocol
        """Return the subset of ``phones`` already stored for the tenant."""

    def create_customer(self, tenant_id: str, customer: NewCustomer) -> CustomerRecord:  # pragma: no cover - runtime protocol
        """Create a customer together with its optional vehicle and service record.

        Implementations enforcing phone uniqueness raise
        :class:`DuplicateCustomerError` on conflict.
        """

    def add_vehicle(self, tenant_id: str, customer_id: str, vehicle: NewVehicle) -> VehicleRecord:  # pragma: no cover - runtime protocol
        """Attach a vehicle (and its optional service record) to an existing customer."""

    def add_service_record(
        self, tenant_id: str, vehicle_id: str, record: NewServiceRecord
    ) -> None:  # pragma: no cover - runtime protocol
        """Attach a service record to an existing vehicle."""

    def log_consent_event(
        self, tenant_id: str, customer_id: str, action: str, source: str
    ) -> None:  # pragma: no cover - runtime protocol
        """Record a consent change for auditing."""


__all__ = ["CONSENT_OPT_IN", "CustomerRepository", "DuplicateCustomerError"]
