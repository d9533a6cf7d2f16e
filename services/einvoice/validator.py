"""Strict and safe parsing of electronic invoice documents.

Strict parsing (``parse``) raises InvoiceParseError on the first blocking
defect and suits callers that only handle already-validated documents.
Safe parsing (``parse_safe``) never raises: every defect is classified as
an error (import blocked) or a warning (import proceeds, flagged for review).
"""

import logging
import re

from services.einvoice import errors as codes
from services.einvoice.codes import DOCUMENT_TYPES, PAYMENT_METHODS
from services.einvoice.decoder import decode_root
from services.einvoice.errors import InvoiceParseError
from services.einvoice.mapper import map_invoice
from services.einvoice.schema import ParsedInvoice, ParseIssue, ParseResult
from services.suppliers.identifiers import (
    DEFAULT_COUNTRY,
    DEFAULT_VAT_LENGTH,
    is_canonical_vat_number,
)

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_PREVIEW_CHARS = 200


def _as_text(raw: str | bytes) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    # Lone surrogates cannot be stored in issue values or serialized
    return raw.encode("utf-8", errors="replace").decode("utf-8")


def mandatory_errors(invoice: ParsedInvoice) -> list[ParseIssue]:
    """Blocking defects of a mapped invoice, in priority order.

    Order: supplier tax identifier or fiscal code, document number, issue date.
    """
    issues: list[ParseIssue] = []
    if not invoice.supplier.tax_id and not invoice.supplier.fiscal_code:
        issues.append(
            ParseIssue(
                code=codes.MISSING_VAT,
                message="Supplier VAT number or fiscal code not found",
                path="CedentePrestatore/DatiAnagrafici/IdFiscaleIVA",
            )
        )
    if not invoice.document_number:
        issues.append(
            ParseIssue(
                code=codes.MISSING_DOCUMENT_NUMBER,
                message="Document number not found",
                path="DatiGeneraliDocumento/Numero",
            )
        )
    if not invoice.issue_date:
        issues.append(
            ParseIssue(
                code=codes.MISSING_DATE,
                message="Issue date not found",
                path="DatiGeneraliDocumento/Data",
            )
        )
    return issues


def review_warnings(
    invoice: ParsedInvoice,
    *,
    root_key: str = "",
    vat_length: int = DEFAULT_VAT_LENGTH,
) -> list[ParseIssue]:
    """Non-blocking findings that flag an invoice for review."""
    warnings: list[ParseIssue] = []

    if ":" in root_key:
        warnings.append(
            ParseIssue(
                code=codes.NAMESPACE_PREFIXED_ROOT,
                message=f"Root element carries a namespace prefix: {root_key}",
                path="root",
                value=root_key,
            )
        )

    if invoice.body_count > 1:
        warnings.append(
            ParseIssue(
                code=codes.MULTIPLE_BODIES,
                message=f"File contains {invoice.body_count} invoices, only the first is parsed",
                path="FatturaElettronicaBody",
                value=str(invoice.body_count),
            )
        )

    tax_id = invoice.supplier.tax_id
    if tax_id and not is_canonical_vat_number(tax_id, vat_length):
        warnings.append(
            ParseIssue(
                code=codes.VAT_NON_STANDARD_LENGTH,
                message=f"Supplier VAT number is not a {vat_length}-digit number",
                path="CedentePrestatore/DatiAnagrafici/IdFiscaleIVA/IdCodice",
                value=tax_id,
            )
        )

    if invoice.issue_date and not _ISO_DATE_RE.match(invoice.issue_date):
        warnings.append(
            ParseIssue(
                code=codes.NON_ISO_DATE,
                message=f"Issue date is not in YYYY-MM-DD format: {invoice.issue_date}",
                path="DatiGeneraliDocumento/Data",
                value=invoice.issue_date,
            )
        )

    if invoice.document_type and invoice.document_type not in DOCUMENT_TYPES:
        warnings.append(
            ParseIssue(
                code=codes.UNKNOWN_DOCUMENT_TYPE,
                message=f"Unrecognized document type: {invoice.document_type}",
                path="DatiGeneraliDocumento/TipoDocumento",
                value=invoice.document_type,
            )
        )

    if not invoice.line_items:
        warnings.append(
            ParseIssue(
                code=codes.EMPTY_LINE_ITEMS,
                message="Document has no line items",
                path="DatiBeniServizi/DettaglioLinee",
            )
        )

    if invoice.total_amount == 0:
        warnings.append(
            ParseIssue(
                code=codes.MISSING_TOTAL_AMOUNT,
                message="Document total missing or zero, it will be derived from VAT summary rows",
                path="DatiGeneraliDocumento/ImportoTotaleDocumento",
            )
        )

    for row in invoice.vat_summary:
        if row.vat_rate == 0 and not row.nature:
            warnings.append(
                ParseIssue(
                    code=codes.MISSING_NATURE_CODE,
                    message="Zero-rate VAT summary row has no nature code",
                    path="DatiBeniServizi/DatiRiepilogo/Natura",
                )
            )

    if invoice.payment:
        for installment in invoice.payment.installments:
            method = installment.payment_method
            if method and method not in PAYMENT_METHODS:
                warnings.append(
                    ParseIssue(
                        code=codes.UNKNOWN_PAYMENT_METHOD,
                        message=f"Unrecognized payment method: {method}",
                        path="DatiPagamento/DettaglioPagamento/ModalitaPagamento",
                        value=method,
                    )
                )

    return warnings


def parse(
    raw: str | bytes,
    file_name: str | None = None,
    *,
    vat_length: int = DEFAULT_VAT_LENGTH,
    domestic_country: str = DEFAULT_COUNTRY,
) -> ParsedInvoice:
    """Parse a document, failing fast on the first blocking defect.

    Args:
        raw: Document markup (already unwrapped from any signature envelope)
        file_name: Original file name, for diagnostics and audit
        vat_length: Domestic VAT number length
        domestic_country: Country prefix treated as domestic

    Returns:
        Mapped invoice

    Raises:
        InvoiceParseError: Malformed markup, missing root, or the first
            missing mandatory field
    """
    _, root = decode_root(raw, file_name)
    invoice = map_invoice(
        root,
        source_text=_as_text(raw),
        file_name=file_name,
        vat_length=vat_length,
        domestic_country=domestic_country,
    )

    problems = mandatory_errors(invoice)
    if problems:
        first = problems[0]
        raise InvoiceParseError(first.code, first.message, first.path)
    return invoice


def parse_safe(
    raw: str | bytes,
    file_name: str | None = None,
    *,
    vat_length: int = DEFAULT_VAT_LENGTH,
    domestic_country: str = DEFAULT_COUNTRY,
) -> ParseResult:
    """Parse a document without raising.

    Returns:
        ParseResult; on success ``data`` holds the invoice and ``warnings``
        the review findings, otherwise ``errors`` lists the blocking defects
        in priority order
    """
    label = file_name or "<upload>"
    try:
        root_key, root = decode_root(raw, file_name)
    except InvoiceParseError as e:
        issue = ParseIssue(code=e.code, message=e.message, path=e.path)
        if e.code == codes.INVALID_XML:
            issue.value = _as_text(raw)[:_PREVIEW_CHARS]
        logger.warning(f"Rejected {label}: {e}")
        return ParseResult(success=False, errors=[issue])

    try:
        invoice = map_invoice(
            root,
            source_text=_as_text(raw),
            file_name=file_name,
            vat_length=vat_length,
            domestic_country=domestic_country,
        )
    except Exception as e:
        logger.exception(f"Unexpected failure mapping {label}")
        return ParseResult(
            success=False,
            errors=[
                ParseIssue(
                    code=codes.INVALID_XML,
                    message=f"Unexpected error while parsing: {e}",
                    path="root",
                )
            ],
        )

    warnings = review_warnings(invoice, root_key=root_key, vat_length=vat_length)
    errors = mandatory_errors(invoice)
    if errors:
        logger.warning(f"Rejected {label}: {', '.join(issue.code for issue in errors)}")
        return ParseResult(success=False, errors=errors, warnings=warnings)

    if warnings:
        logger.info(f"Parsed {label} with warnings: {', '.join(w.code for w in warnings)}")
    return ParseResult(success=True, data=invoice, warnings=warnings)
