"""Reconciliation of parsed supplier parties with the supplier registry.

"Not found" is not a failure: it is what triggers the creation path.
Creation re-checks the registry immediately before inserting; the
registry's VAT number uniqueness constraint remains the final guard
against two concurrent imports of the same new supplier.
"""

import logging

from services.einvoice.schema import ParsedInvoice
from services.shared.config import Settings
from services.storage.base import RecordNotFoundError, SupplierRegistry
from services.suppliers.identifiers import (
    DEFAULT_COUNTRY,
    DEFAULT_VAT_LENGTH,
    normalize_fiscal_code,
    normalize_vat_number,
    vat_lookup_variants,
)
from services.suppliers.schema import SupplierMatchResult, SupplierPayload, SupplierRecord

logger = logging.getLogger(__name__)

# Registry fields that update_supplier_from_payload may fill in
_FILLABLE_FIELDS = ("fiscal_code", "address", "city", "province", "postal_code")


class SupplierMatcher:
    """Matches invoice suppliers against a registry and creates missing ones.

    Attributes:
        registry: Persistence collaborator holding supplier records
        vat_length: Domestic VAT number length
        domestic_country: Country prefix treated as domestic
    """

    def __init__(self, registry: SupplierRegistry, settings: Settings | None = None) -> None:
        self.registry = registry
        self.vat_length = settings.vat_number_length if settings else DEFAULT_VAT_LENGTH
        self.domestic_country = settings.domestic_country_code if settings else DEFAULT_COUNTRY

    def _normalize_vat(self, value: str | None) -> str | None:
        normalized = normalize_vat_number(
            value, length=self.vat_length, domestic_country=self.domestic_country
        )
        return normalized or None

    def find_existing(
        self, vat_number: str | None, fiscal_code: str | None = None
    ) -> SupplierRecord | None:
        """Look up an active supplier by VAT number, then by fiscal code.

        Every stored spelling of the VAT number is tried (canonical and
        without leading zeros) before falling back to the fiscal code.
        """
        for variant in vat_lookup_variants(
            vat_number, length=self.vat_length, domestic_country=self.domestic_country
        ):
            found = self.registry.find_by_vat_number(variant)
            if found:
                logger.debug(f"Supplier {found.id} matched on VAT number {variant}")
                return found

        normalized_cf = normalize_fiscal_code(fiscal_code)
        if normalized_cf:
            found = self.registry.find_by_fiscal_code(normalized_cf)
            if found:
                logger.debug(f"Supplier {found.id} matched on fiscal code")
                return found

        return None

    def build_payload(self, invoice: ParsedInvoice) -> SupplierPayload:
        """Derive registry fields from the invoice's supplier party."""
        party = invoice.supplier
        return SupplierPayload(
            name=party.denomination,
            vat_number=self._normalize_vat(party.tax_id),
            fiscal_code=normalize_fiscal_code(party.fiscal_code),
            address=party.address.street or None,
            city=party.address.city or None,
            province=party.address.province or None,
            postal_code=party.address.postal_code or None,
        )

    def match_supplier(self, invoice: ParsedInvoice) -> SupplierMatchResult:
        """Match the invoice supplier and prepare a creation payload.

        Returns:
            SupplierMatchResult with the matched record (if any) and the
            suggested creation payload
        """
        suggested = self.build_payload(invoice)
        existing = self.find_existing(invoice.supplier.tax_id, invoice.supplier.fiscal_code)
        return SupplierMatchResult(
            matched=existing is not None,
            supplier=existing,
            suggested=suggested,
        )

    def create_supplier_from_payload(
        self,
        payload: SupplierPayload,
        default_account_ref: str | None = None,
    ) -> SupplierRecord:
        """Create a supplier unless one already matches.

        Identifiers are normalized before the existence re-check and the
        insert, so stored rows are always in canonical form.

        Returns:
            The existing matching record, or the newly created one

        Raises:
            DuplicateSupplierError: If a concurrent import inserted the same
                VAT number between the re-check and the insert
        """
        normalized = payload.model_copy(
            update={
                "vat_number": self._normalize_vat(payload.vat_number),
                "fiscal_code": normalize_fiscal_code(payload.fiscal_code),
            }
        )

        existing = self.find_existing(normalized.vat_number, normalized.fiscal_code)
        if existing:
            logger.info(f"Supplier already registered as {existing.id}, skipping creation")
            return existing

        record = self.registry.create(normalized, default_account_ref)
        logger.info(f"Created supplier {record.id} ({record.name})")
        return record

    def update_supplier_from_payload(
        self, supplier_id: str, payload: SupplierPayload
    ) -> SupplierRecord:
        """Fill fields the stored supplier lacks; never overwrite existing values.

        Raises:
            RecordNotFoundError: If no supplier has this id
        """
        supplier = self.registry.get(supplier_id)
        if supplier is None:
            raise RecordNotFoundError("Supplier", supplier_id)

        updates: dict[str, str] = {}
        for field in _FILLABLE_FIELDS:
            incoming = getattr(payload, field)
            if incoming and not getattr(supplier, field):
                updates[field] = incoming
        if updates.get("fiscal_code"):
            updates["fiscal_code"] = normalize_fiscal_code(updates["fiscal_code"]) or ""

        if not updates:
            return supplier

        logger.info(f"Filling {', '.join(sorted(updates))} on supplier {supplier_id}")
        return self.registry.update(supplier_id, updates)
