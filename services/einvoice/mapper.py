"""Mapping of a decoded invoice tree into a ParsedInvoice.

Three helpers absorb the schema variance of the source format so the
section mappers never check node shapes themselves:

- ``as_list``: repeatable elements always come back as a list
- ``text_of``: bare values and ``#text``-carrying nodes resolve to one string
- ``parse_decimal``: ``,`` or ``.`` decimal separators, ``0`` on garbage
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from services.einvoice.decoder import TEXT_KEY, Tree
from services.einvoice.schema import (
    ArticleCode,
    DocumentRef,
    DocumentReferences,
    Installment,
    LineItem,
    ParsedInvoice,
    PartyIdentity,
    PaymentSchedule,
    PostalAddress,
    StampDuty,
    TransmissionData,
    TransportDocumentRef,
    VatSummaryRow,
)
from services.suppliers.identifiers import normalize_fiscal_code, normalize_vat_number

logger = logging.getLogger(__name__)

_NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
_ZERO = Decimal("0")


def as_list(value: Any) -> list[Any]:
    """Coerce a possibly-collapsed repeatable element into a list."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def text_of(node: Any) -> str:
    """Resolve a bare value or a ``#text``-carrying node to its text."""
    if node is None:
        return ""
    if isinstance(node, str):
        return node.strip()
    if isinstance(node, bool):
        return ""
    if isinstance(node, (int, float, Decimal)):
        return str(node)
    if isinstance(node, dict):
        return text_of(node.get(TEXT_KEY))
    return ""


def _child(node: Any, key: str) -> Tree:
    """Return an object-valued child, or an empty dict."""
    if isinstance(node, dict):
        value = node.get(key)
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict):
            return value
    return {}


def parse_decimal(value: Any) -> Decimal:
    """Parse a numeric-looking value into a Decimal.

    Either ``,`` or ``.`` may be the decimal separator; when both occur the
    right-most one is taken as decimal separator and the other as grouping.
    Missing, non-numeric and non-finite values yield ``0``.
    """
    if isinstance(value, Decimal):
        return value if value.is_finite() else _ZERO
    if isinstance(value, bool):
        return _ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if value == value and abs(value) != float("inf") else _ZERO

    text = text_of(value).replace(" ", "")
    if not text:
        return _ZERO

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    else:
        text = text.replace(",", ".")

    if not _NUMERIC_RE.match(text):
        return _ZERO
    try:
        return Decimal(text)
    except InvalidOperation:
        return _ZERO


def _optional_decimal(value: Any) -> Decimal | None:
    return parse_decimal(value) if text_of(value) else None


def _parse_int(value: Any) -> int:
    text = text_of(value)
    try:
        return int(text)
    except ValueError:
        return int(parse_decimal(text))


def _optional_text(node: Any) -> str | None:
    return text_of(node) or None


def map_party(data: Tree, *, vat_length: int = 11, domestic_country: str = "IT") -> PartyIdentity:
    """Map a supplier/customer block (CedentePrestatore / CessionarioCommittente)."""
    registry_data = _child(data, "DatiAnagrafici")
    vat_block = _child(registry_data, "IdFiscaleIVA")
    personal = _child(registry_data, "Anagrafica")
    office = _child(data, "Sede")

    country_code = _optional_text(vat_block.get("IdPaese"))
    tax_code = text_of(vat_block.get("IdCodice"))
    if country_code and country_code.upper() != domestic_country.upper():
        # Foreign identifiers keep their country prefix
        prefix = country_code.upper()
        code = tax_code.replace(" ", "").upper()
        tax_code = code if not code or code.startswith(prefix) else f"{prefix}{code}"
    tax_id = normalize_vat_number(tax_code, length=vat_length, domestic_country=domestic_country)

    denomination = text_of(personal.get("Denominazione"))
    if not denomination:
        names = [text_of(personal.get("Nome")), text_of(personal.get("Cognome"))]
        denomination = " ".join(name for name in names if name)

    return PartyIdentity(
        denomination=denomination,
        country_code=country_code,
        tax_id=tax_id,
        fiscal_code=normalize_fiscal_code(text_of(registry_data.get("CodiceFiscale"))),
        address=PostalAddress(
            street=text_of(office.get("Indirizzo")),
            postal_code=text_of(office.get("CAP")),
            city=text_of(office.get("Comune")),
            province=_optional_text(office.get("Provincia")),
            country=text_of(office.get("Nazione")) or "IT",
        ),
    )


def map_transmission(header: Tree) -> TransmissionData:
    data = _child(header, "DatiTrasmissione")
    return TransmissionData(
        sequence_number=text_of(data.get("ProgressivoInvio")),
        transmission_format=text_of(data.get("FormatoTrasmissione")),
        recipient_code=_optional_text(data.get("CodiceDestinatario")),
        recipient_pec=_optional_text(data.get("PECDestinatario")),
    )


def _map_article_code(value: Any) -> ArticleCode | None:
    codes = [c for c in as_list(value) if isinstance(c, dict)]
    if not codes:
        return None
    first = codes[0]
    return ArticleCode(
        code_type=text_of(first.get("CodiceTipo")),
        code_value=text_of(first.get("CodiceValore")),
    )


def map_line_items(goods: Tree) -> list[LineItem]:
    items: list[LineItem] = []
    for line in as_list(goods.get("DettaglioLinee")):
        if not isinstance(line, dict):
            continue
        items.append(
            LineItem(
                line_number=_parse_int(line.get("NumeroLinea")),
                description=text_of(line.get("Descrizione")),
                quantity=_optional_decimal(line.get("Quantita")),
                unit=_optional_text(line.get("UnitaMisura")),
                unit_price=parse_decimal(line.get("PrezzoUnitario")),
                total_price=parse_decimal(line.get("PrezzoTotale")),
                vat_rate=parse_decimal(line.get("AliquotaIVA")),
                article_code=_map_article_code(line.get("CodiceArticolo")),
            )
        )
    return items


def map_vat_summary(goods: Tree) -> list[VatSummaryRow]:
    rows: list[VatSummaryRow] = []
    for row in as_list(goods.get("DatiRiepilogo")):
        if not isinstance(row, dict):
            continue
        rows.append(
            VatSummaryRow(
                vat_rate=parse_decimal(row.get("AliquotaIVA")),
                taxable_amount=parse_decimal(row.get("ImponibileImporto")),
                tax_amount=parse_decimal(row.get("Imposta")),
                nature=_optional_text(row.get("Natura")),
            )
        )
    return rows


def map_payment(value: Any) -> PaymentSchedule | None:
    """Map the first payment-data block; further blocks are ignored."""
    blocks = [b for b in as_list(value) if isinstance(b, dict)]
    if not blocks:
        return None
    block = blocks[0]

    installments = [
        Installment(
            payment_method=text_of(detail.get("ModalitaPagamento")),
            due_date=_optional_text(detail.get("DataScadenzaPagamento")),
            amount=parse_decimal(detail.get("ImportoPagamento")),
            financial_institution=_optional_text(detail.get("IstitutoFinanziario")),
            iban=_optional_text(detail.get("IBAN")),
        )
        for detail in as_list(block.get("DettaglioPagamento"))
        if isinstance(detail, dict)
    ]
    return PaymentSchedule(
        payment_terms=text_of(block.get("CondizioniPagamento")),
        installments=installments,
    )


def map_stamp_duty(document: Tree) -> StampDuty | None:
    if "DatiBollo" not in document:
        return None
    stamp = _child(document, "DatiBollo")
    return StampDuty(
        virtual_stamp=_optional_text(stamp.get("BolloVirtuale")),
        amount=_optional_decimal(stamp.get("ImportoBollo")),
    )


def _map_document_ref(data: Tree) -> DocumentRef:
    return DocumentRef(
        document_id=text_of(data.get("IdDocumento")),
        date=_optional_text(data.get("Data")),
        item_number=_optional_text(data.get("NumItem")),
        job_code=_optional_text(data.get("CodiceCommessaConvenzione")),
        cup_code=_optional_text(data.get("CodiceCUP")),
        cig_code=_optional_text(data.get("CodiceCIG")),
    )


def _map_transport_document(data: Tree) -> TransportDocumentRef:
    line_numbers = None
    if data.get("RiferimentoNumeroLinea"):
        numbers = [_parse_int(n) for n in as_list(data.get("RiferimentoNumeroLinea"))]
        line_numbers = [n for n in numbers if n > 0]
    return TransportDocumentRef(
        number=text_of(data.get("NumeroDDT")),
        date=text_of(data.get("DataDDT")),
        line_numbers=line_numbers,
    )


def map_references(general: Tree) -> DocumentReferences:
    """Map transport documents, orders, contracts, agreements and linked invoices."""

    def refs(key: str) -> list[DocumentRef]:
        return [_map_document_ref(d) for d in as_list(general.get(key)) if isinstance(d, dict)]

    return DocumentReferences(
        transport_documents=[
            _map_transport_document(d)
            for d in as_list(general.get("DatiDDT"))
            if isinstance(d, dict)
        ],
        purchase_orders=refs("DatiOrdineAcquisto"),
        contracts=refs("DatiContratto"),
        agreements=refs("DatiConvenzione"),
        linked_invoices=refs("DatiFattureCollegate"),
    )


def map_invoice(
    root: Tree,
    *,
    source_text: str | None = None,
    file_name: str | None = None,
    vat_length: int = 11,
    domestic_country: str = "IT",
) -> ParsedInvoice:
    """Map a resolved invoice root into a ParsedInvoice.

    No mandatory-field checks happen here; see the validator.

    Args:
        root: Root node returned by the decoder
        source_text: Raw document text kept for audit
        file_name: Original file name
        vat_length: Domestic VAT number length
        domestic_country: Country prefix treated as domestic

    Returns:
        Mapped invoice (first body only)
    """
    header = _child(root, "FatturaElettronicaHeader")
    bodies = [b for b in as_list(root.get("FatturaElettronicaBody")) if isinstance(b, dict)]
    body = bodies[0] if bodies else {}

    general = _child(body, "DatiGenerali")
    document = _child(general, "DatiGeneraliDocumento")
    goods = _child(body, "DatiBeniServizi")

    causale_raw = document.get("Causale")
    causale = [text_of(c) for c in as_list(causale_raw)] if causale_raw else None

    party_options = {"vat_length": vat_length, "domestic_country": domestic_country}

    invoice = ParsedInvoice(
        transmission=map_transmission(header),
        supplier=map_party(_child(header, "CedentePrestatore"), **party_options),
        customer=map_party(_child(header, "CessionarioCommittente"), **party_options),
        document_type=text_of(document.get("TipoDocumento")),
        currency=text_of(document.get("Divisa")) or "EUR",
        issue_date=text_of(document.get("Data")),
        document_number=text_of(document.get("Numero")),
        causale=causale,
        total_amount=parse_decimal(document.get("ImportoTotaleDocumento")),
        rounding=_optional_decimal(document.get("Arrotondamento")),
        line_items=map_line_items(goods),
        vat_summary=map_vat_summary(goods),
        payment=map_payment(body.get("DatiPagamento")),
        stamp_duty=map_stamp_duty(document),
        references=map_references(general),
        body_count=len(bodies),
        source_text=source_text,
        file_name=file_name,
    )

    logger.debug(
        f"Mapped invoice {invoice.document_number or '?'} with "
        f"{len(invoice.line_items)} lines, {len(invoice.vat_summary)} VAT rows"
    )
    return invoice
