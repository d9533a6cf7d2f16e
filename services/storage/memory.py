"""In-process record stores.

Reference backends for tests and single-instance deployments. Each store
guards its state with a lock, so batch writes are atomic and the VAT number
uniqueness check cannot interleave with another insert. State is not shared
across processes.
"""

import logging
import threading
import uuid
from typing import Any

from services.closures.schema import JournalEntry, RegisterType
from services.storage.base import (
    DuplicateSupplierError,
    LedgerStore,
    RecordNotFoundError,
    SupplierRegistry,
)
from services.suppliers.schema import SupplierPayload, SupplierRecord

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "vat_number",
        "fiscal_code",
        "address",
        "city",
        "province",
        "postal_code",
        "default_account_ref",
        "is_active",
    }
)


class InMemorySupplierRegistry(SupplierRegistry):
    """Dict-backed supplier registry keyed by record id."""

    def __init__(self) -> None:
        self._records: dict[str, SupplierRecord] = {}
        self._lock = threading.Lock()

    def find_by_vat_number(self, vat_number: str) -> SupplierRecord | None:
        if not vat_number:
            return None
        with self._lock:
            for record in self._records.values():
                if record.is_active and record.vat_number == vat_number:
                    return record.model_copy()
        return None

    def find_by_fiscal_code(self, fiscal_code: str) -> SupplierRecord | None:
        if not fiscal_code:
            return None
        wanted = fiscal_code.upper()
        with self._lock:
            for record in self._records.values():
                if record.is_active and (record.fiscal_code or "").upper() == wanted:
                    return record.model_copy()
        return None

    def get(self, supplier_id: str) -> SupplierRecord | None:
        with self._lock:
            record = self._records.get(supplier_id)
            return record.model_copy() if record else None

    def create(
        self, payload: SupplierPayload, default_account_ref: str | None = None
    ) -> SupplierRecord:
        with self._lock:
            if payload.vat_number and any(
                r.vat_number == payload.vat_number for r in self._records.values()
            ):
                raise DuplicateSupplierError(payload.vat_number)

            record = SupplierRecord(
                id=str(uuid.uuid4()),
                default_account_ref=default_account_ref,
                **payload.model_dump(),
            )
            self._records[record.id] = record

        logger.debug(f"Stored supplier {record.id} ({record.name})")
        return record.model_copy()

    def update(self, supplier_id: str, fields: dict[str, Any]) -> SupplierRecord:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        with self._lock:
            record = self._records.get(supplier_id)
            if record is None:
                raise RecordNotFoundError("Supplier", supplier_id)

            new_vat = fields.get("vat_number")
            if new_vat and new_vat != record.vat_number:
                if any(r.vat_number == new_vat for r in self._records.values()):
                    raise DuplicateSupplierError(new_vat)

            updated = record.model_copy(update=fields)
            self._records[supplier_id] = updated
            return updated.model_copy()

    def delete(self, supplier_id: str) -> bool:
        with self._lock:
            return self._records.pop(supplier_id, None) is not None


class InMemoryLedgerStore(LedgerStore):
    """List-backed journal; insertion order is preserved."""

    def __init__(self) -> None:
        self._entries: list[JournalEntry] = []
        self._lock = threading.Lock()

    def add_entries(self, entries: list[JournalEntry]) -> int:
        batch = [entry.model_copy() for entry in entries]
        with self._lock:
            self._entries.extend(batch)
        return len(batch)

    def delete_by_closure(self, closure_ref: str) -> int:
        with self._lock:
            kept = [e for e in self._entries if e.closure_ref != closure_ref]
            removed = len(self._entries) - len(kept)
            self._entries = kept
        return removed

    def list_entries(
        self,
        closure_ref: str | None = None,
        register_type: RegisterType | None = None,
    ) -> list[JournalEntry]:
        with self._lock:
            entries = list(self._entries)
        return [
            entry.model_copy()
            for entry in entries
            if (closure_ref is None or entry.closure_ref == closure_ref)
            and (register_type is None or entry.register_type == register_type)
        ]
