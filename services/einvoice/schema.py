"""Typed records produced from an electronic invoice document.

Field names follow the business meaning, not the element names of the
markup; the mapper owns the correspondence.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class PostalAddress(BaseModel):
    """Registered office of a party."""

    street: str = ""
    postal_code: str = ""
    city: str = ""
    province: str | None = None
    country: str = "IT"


class PartyIdentity(BaseModel):
    """Supplier or customer identity as declared in the document.

    ``tax_id`` is either empty or a fixed-length numeric string for domestic
    parties; foreign identifiers are kept as given, prefixed with their
    country code.
    """

    denomination: str = Field("", description="Company name or 'first last' for individuals")
    country_code: str | None = Field(None, description="Country of the tax identifier")
    tax_id: str = Field("", description="Normalized VAT number")
    fiscal_code: str | None = Field(None, description="Fiscal code")
    address: PostalAddress = Field(default_factory=PostalAddress)


class TransmissionData(BaseModel):
    """Transmission metadata from the document header."""

    sequence_number: str = ""
    transmission_format: str = ""
    recipient_code: str | None = None
    recipient_pec: str | None = None


class ArticleCode(BaseModel):
    code_type: str
    code_value: str


class LineItem(BaseModel):
    """A single goods/services line."""

    line_number: int = 0
    description: str = ""
    quantity: Decimal | None = None
    unit: str | None = None
    unit_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    vat_rate: Decimal = Decimal("0")
    article_code: ArticleCode | None = None


class VatSummaryRow(BaseModel):
    """Per-rate aggregation of taxable and tax amounts."""

    vat_rate: Decimal = Decimal("0")
    taxable_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    nature: str | None = Field(None, description="Exemption reason, required at 0% rate")


class Installment(BaseModel):
    """One payment detail of the payment schedule."""

    payment_method: str = ""
    due_date: str | None = None
    amount: Decimal = Decimal("0")
    financial_institution: str | None = None
    iban: str | None = None


class PaymentSchedule(BaseModel):
    payment_terms: str = ""
    installments: list[Installment] = Field(default_factory=list)


class StampDuty(BaseModel):
    virtual_stamp: str | None = None
    amount: Decimal | None = None


class TransportDocumentRef(BaseModel):
    number: str = ""
    date: str = ""
    line_numbers: list[int] | None = None


class DocumentRef(BaseModel):
    """Reference to an order, contract, agreement or linked invoice."""

    document_id: str = ""
    date: str | None = None
    item_number: str | None = None
    job_code: str | None = None
    cup_code: str | None = None
    cig_code: str | None = None


class DocumentReferences(BaseModel):
    transport_documents: list[TransportDocumentRef] = Field(default_factory=list)
    purchase_orders: list[DocumentRef] = Field(default_factory=list)
    contracts: list[DocumentRef] = Field(default_factory=list)
    agreements: list[DocumentRef] = Field(default_factory=list)
    linked_invoices: list[DocumentRef] = Field(default_factory=list)

    def has_references(self) -> bool:
        return bool(
            self.transport_documents
            or self.purchase_orders
            or self.contracts
            or self.agreements
            or self.linked_invoices
        )


class ParsedInvoice(BaseModel):
    """Structured invoice produced per upload.

    Transient: downstream records are derived from it, it is never stored as is.
    """

    transmission: TransmissionData = Field(default_factory=TransmissionData)
    supplier: PartyIdentity = Field(default_factory=PartyIdentity)
    customer: PartyIdentity = Field(default_factory=PartyIdentity)

    document_type: str = ""
    currency: str = "EUR"
    issue_date: str = ""
    document_number: str = ""
    causale: list[str] | None = None

    total_amount: Decimal = Decimal("0")
    rounding: Decimal | None = None

    line_items: list[LineItem] = Field(default_factory=list)
    vat_summary: list[VatSummaryRow] = Field(default_factory=list)
    payment: PaymentSchedule | None = None
    stamp_duty: StampDuty | None = None
    references: DocumentReferences = Field(default_factory=DocumentReferences)

    body_count: int = Field(1, description="Number of bodies in the file; only the first is mapped")
    source_text: str | None = Field(None, description="Raw document text kept for audit")
    file_name: str | None = None

    def causale_text(self) -> str | None:
        """Causale lines joined for a single text column."""
        if not self.causale:
            return None
        return " | ".join(self.causale)


class ParseIssue(BaseModel):
    """A structured parse error or warning.

    Attributes:
        code: Machine-readable issue code (e.g. MISSING_VAT)
        message: Human-readable description
        path: Element path the issue refers to
        value: Offending value, when useful for review
    """

    code: str
    message: str
    path: str | None = None
    value: str | None = None


class ParseResult(BaseModel):
    """Outcome of safe parsing; ``data`` is set only when ``success`` is True."""

    success: bool
    data: ParsedInvoice | None = None
    errors: list[ParseIssue] = Field(default_factory=list)
    warnings: list[ParseIssue] = Field(default_factory=list)


class InvoiceAmounts(BaseModel):
    net_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal


class DueInstallment(BaseModel):
    """A payment due derived from the document."""

    due_date: date | None
    amount: Decimal
    payment_method: str
    iban: str | None = None

