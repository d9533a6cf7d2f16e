"""Supplier registry records and match results."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class SupplierPayload(BaseModel):
    """Registry fields suggested from a parsed supplier party."""

    name: str
    vat_number: str | None = None
    fiscal_code: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None


class SupplierRecord(BaseModel):
    """A supplier registry row as stored by the persistence collaborator."""

    id: str
    name: str
    vat_number: str | None = None
    fiscal_code: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    default_account_ref: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SupplierMatchResult(BaseModel):
    """Outcome of matching a parsed supplier against the registry.

    Attributes:
        matched: Whether an active registry entry was found
        supplier: The matched entry, if any
        suggested: Creation payload derived from the parsed party
    """

    matched: bool
    supplier: SupplierRecord | None = None
    suggested: SupplierPayload
