"""Customer storage backends used by the import committer."""

from .base import CONSENT_OPT_IN, CustomerRepository, DuplicateCustomerError
from .memory import InMemoryCustomerRepository

__all__ = [
    "CONSENT_OPT_IN",
    "CustomerRepository",
    "DuplicateCustomerError",
    "InMemoryCustomerRepository",
]
