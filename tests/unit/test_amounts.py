"""Unit tests for invoice amounts and payment dues."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal

from services.einvoice.amounts import (
    compute_amounts,
    extract_installments,
    installments_match_total,
)
from services.einvoice.codes import UNSPECIFIED_PAYMENT_METHOD
from services.einvoice.schema import (
    Installment,
    ParsedInvoice,
    PaymentSchedule,
    VatSummaryRow,
)
from services.einvoice.validator import parse


def _row(rate: str, taxable: str, tax: str, nature: str | None = None) -> VatSummaryRow:
    return VatSummaryRow(
        vat_rate=Decimal(rate),
        taxable_amount=Decimal(taxable),
        tax_amount=Decimal(tax),
        nature=nature,
    )


EXAMPLE_ROWS = [
    _row("10", "39.00", "3.90"),
    _row("22", "360.00", "79.20"),
    _row("0", "0.75", "0.00", nature="N1"),
]


def _invoice(**fields: object) -> ParsedInvoice:
    defaults: dict[str, object] = {
        "issue_date": "2024-03-15",
        "document_number": "FT-1",
        "vat_summary": EXAMPLE_ROWS,
    }
    defaults.update(fields)
    return ParsedInvoice.model_validate(defaults)


class TestComputeAmounts:
    """Test amount reconciliation."""

    def test_declared_total_is_authoritative(self) -> None:
        amounts = compute_amounts(_invoice(total_amount=Decimal("482.85")))

        assert amounts.total_amount == Decimal("482.85")
        assert amounts.net_amount == Decimal("399.75")
        assert amounts.vat_amount == Decimal("83.10")

    def test_declared_total_wins_over_rounded_rows(self) -> None:
        amounts = compute_amounts(_invoice(total_amount=Decimal("482.86")))

        assert amounts.total_amount == Decimal("482.86")
        assert amounts.net_amount + amounts.vat_amount == Decimal("482.85")

    def test_total_derived_without_declared_total(self) -> None:
        amounts = compute_amounts(_invoice())
        assert amounts.total_amount == Decimal("482.85")

    def test_rounding_applies_to_derived_total(self) -> None:
        amounts = compute_amounts(_invoice(rounding=Decimal("0.15")))
        assert amounts.total_amount == Decimal("483.00")

    def test_no_summary_rows(self) -> None:
        amounts = compute_amounts(_invoice(vat_summary=[]))

        assert amounts.total_amount == Decimal("0")
        assert amounts.net_amount == Decimal("0")
        assert amounts.vat_amount == Decimal("0")

    def test_parsed_document(self, invoice_xml: str) -> None:
        amounts = compute_amounts(parse(invoice_xml))

        assert amounts.total_amount == Decimal("482.85")
        assert amounts.net_amount == Decimal("399.75")
        assert amounts.vat_amount == Decimal("83.10")


class TestExtractInstallments:
    """Test derivation of payment dues."""

    def test_synthetic_installment_without_payment_data(self) -> None:
        dues = extract_installments(_invoice(total_amount=Decimal("482.85")))

        assert len(dues) == 1
        assert dues[0].due_date == date(2024, 3, 15)
        assert dues[0].amount == Decimal("482.85")
        assert dues[0].payment_method == UNSPECIFIED_PAYMENT_METHOD

    def test_synthetic_installment_uses_derived_total(self) -> None:
        dues = extract_installments(_invoice())
        assert dues[0].amount == Decimal("482.85")

    def test_empty_payment_block_is_treated_as_absent(self) -> None:
        payment = PaymentSchedule(payment_terms="TP02")
        invoice = _invoice(total_amount=Decimal("100"), payment=payment)
        dues = extract_installments(invoice)

        assert len(dues) == 1
        assert dues[0].amount == Decimal("100")

    def test_three_installments_sum_to_total(self) -> None:
        payment = PaymentSchedule(
            payment_terms="TP01",
            installments=[
                Installment(payment_method="MP05", due_date="2024-04-15", amount=Decimal("160.95")),
                Installment(payment_method="MP05", due_date="2024-05-15", amount=Decimal("160.95")),
                Installment(payment_method="MP05", due_date="2024-06-15", amount=Decimal("160.95")),
            ],
        )
        invoice = _invoice(total_amount=Decimal("482.85"), payment=payment)
        dues = extract_installments(invoice)

        assert len(dues) == 3
        assert [d.due_date for d in dues] == [
            date(2024, 4, 15),
            date(2024, 5, 15),
            date(2024, 6, 15),
        ]
        assert sum(d.amount for d in dues) == Decimal("482.85")
        assert installments_match_total(invoice) is True

    def test_missing_due_date_defaults_to_issue_date(self) -> None:
        payment = PaymentSchedule(
            installments=[Installment(payment_method="MP01", amount=Decimal("50"), iban=None)]
        )
        dues = extract_installments(_invoice(payment=payment))

        assert dues[0].due_date == date(2024, 3, 15)
        assert dues[0].payment_method == "MP01"

    def test_unparseable_dates_give_none(self) -> None:
        dues = extract_installments(_invoice(issue_date="15/03/2024"))
        assert dues[0].due_date is None

    def test_parsed_document(self, invoice_xml: str) -> None:
        invoice = parse(invoice_xml)
        dues = extract_installments(invoice)

        assert len(dues) == 1
        assert dues[0].due_date == date(2024, 4, 15)
        assert dues[0].iban == "IT60X0542811101000000123456"
        assert installments_match_total(invoice) is True

    def test_mismatched_schedule(self, make_invoice_xml: Callable[..., str]) -> None:
        payment = (
            "<DatiPagamento><CondizioniPagamento>TP02</CondizioniPagamento>"
            "<DettaglioPagamento><ModalitaPagamento>MP05</ModalitaPagamento>"
            "<ImportoPagamento>400.00</ImportoPagamento></DettaglioPagamento></DatiPagamento>"
        )
        invoice = parse(make_invoice_xml(payment=payment))

        assert installments_match_total(invoice) is False
