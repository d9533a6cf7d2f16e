"""Amount reconciliation and payment due dates for parsed invoices."""

from datetime import date
from decimal import Decimal

from services.einvoice.codes import UNSPECIFIED_PAYMENT_METHOD
from services.einvoice.schema import DueInstallment, InvoiceAmounts, ParsedInvoice

CENT = Decimal("0.01")


def compute_amounts(invoice: ParsedInvoice) -> InvoiceAmounts:
    """Compute net, VAT and total amounts of an invoice.

    The declared document total is authoritative when present and positive,
    even if the VAT summary rows round slightly differently; net and VAT
    always come from the summary rows. Without a declared total, the total
    is the summary rows plus any rounding adjustment.
    """
    net_amount = sum((row.taxable_amount for row in invoice.vat_summary), Decimal("0"))
    vat_amount = sum((row.tax_amount for row in invoice.vat_summary), Decimal("0"))

    if invoice.total_amount > 0:
        total_amount = invoice.total_amount
    else:
        total_amount = net_amount + vat_amount + (invoice.rounding or Decimal("0"))

    return InvoiceAmounts(net_amount=net_amount, vat_amount=vat_amount, total_amount=total_amount)


def _to_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def extract_installments(invoice: ParsedInvoice) -> list[DueInstallment]:
    """Derive the payment dues of an invoice.

    Without payment data (or with a payment block listing no details) a
    single due is synthesized for the full total at the issue date.
    Otherwise each installment is kept as declared, with a missing due
    date falling back to the issue date.
    """
    issue_date = _to_date(invoice.issue_date)

    if invoice.payment is None or not invoice.payment.installments:
        return [
            DueInstallment(
                due_date=issue_date,
                amount=compute_amounts(invoice).total_amount,
                payment_method=UNSPECIFIED_PAYMENT_METHOD,
            )
        ]

    return [
        DueInstallment(
            due_date=_to_date(installment.due_date) or issue_date,
            amount=installment.amount,
            payment_method=installment.payment_method,
            iban=installment.iban,
        )
        for installment in invoice.payment.installments
    ]


def installments_match_total(invoice: ParsedInvoice, tolerance: Decimal = CENT) -> bool:
    """Check that the installment amounts add up to the invoice total."""
    total = compute_amounts(invoice).total_amount
    scheduled = sum((due.amount for due in extract_installments(invoice)), Decimal("0"))
    return abs(scheduled - total) <= tolerance
