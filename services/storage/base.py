"""Abstract persistence collaborators for the supplier registry and the ledger.

The core only relies on these contracts; concrete backends are chosen via
``services.storage.factory``. Backend failures propagate unmodified so the
caller can decide on retries.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod
from typing import Any

from services.closures.schema import JournalEntry, RegisterType
from services.suppliers.schema import SupplierPayload, SupplierRecord


class StorageError(Exception):
    """Base class for persistence collaborator failures."""


class DuplicateSupplierError(StorageError):
    """Raised when a supplier with the same VAT number already exists."""

    def __init__(self, vat_number: str) -> None:
        super().__init__(f"Supplier with VAT number {vat_number} already exists")
        self.vat_number = vat_number


class RecordNotFoundError(StorageError):
    """Raised when a record addressed by id does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class SupplierRegistry(ABC):
    """Keyed store of supplier records.

    Implementations must enforce uniqueness of non-empty VAT numbers.
    """

    @abstractmethod
    def find_by_vat_number(self, vat_number: str) -> SupplierRecord | None:
        """Return the active supplier stored with exactly this VAT number."""

    @abstractmethod
    def find_by_fiscal_code(self, fiscal_code: str) -> SupplierRecord | None:
        """Return the active supplier stored with this fiscal code (case-insensitive)."""

    @abstractmethod
    def get(self, supplier_id: str) -> SupplierRecord | None:
        pass

    @abstractmethod
    def create(
        self, payload: SupplierPayload, default_account_ref: str | None = None
    ) -> SupplierRecord:
        """Insert a new supplier.

        Raises:
            DuplicateSupplierError: If the VAT number is already stored
        """

    @abstractmethod
    def update(self, supplier_id: str, fields: dict[str, Any]) -> SupplierRecord:
        """Update the given fields of a supplier.

        Raises:
            RecordNotFoundError: If no supplier has this id
        """

    @abstractmethod
    def delete(self, supplier_id: str) -> bool:
        pass


class LedgerStore(ABC):
    """Append/delete-by-reference store of journal entries."""

    @abstractmethod
    def add_entries(self, entries: list[JournalEntry]) -> int:
        """Persist a batch of entries atomically: all of them or none.

        Returns:
            Number of entries written
        """

    @abstractmethod
    def delete_by_closure(self, closure_ref: str) -> int:
        """Delete every entry generated by a closure.

        Returns:
            Number of entries removed (0 when there were none)
        """

    @abstractmethod
    def list_entries(
        self,
        closure_ref: str | None = None,
        register_type: RegisterType | None = None,
    ) -> list[JournalEntry]:
        """Return entries in insertion order, optionally filtered."""
