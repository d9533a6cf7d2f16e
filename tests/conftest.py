"""Shared fixtures: electronic invoice samples and in-memory stores."""

from collections.abc import Callable

import pytest

from services.shared.config import Settings
from services.storage.memory import InMemoryLedgerStore, InMemorySupplierRegistry

INVOICE_NAMESPACE = "http://ivaservizi.agenziaentrate.gov.it/docs/xsd/fatture/v1.2"

DEFAULT_LINES = """
      <DettaglioLinee>
        <NumeroLinea>1</NumeroLinea>
        <CodiceArticolo>
          <CodiceTipo>EAN</CodiceTipo>
          <CodiceValore>8001234567890</CodiceValore>
        </CodiceArticolo>
        <Descrizione>Farina tipo 00</Descrizione>
        <Quantita>10.00</Quantita>
        <UnitaMisura>KG</UnitaMisura>
        <PrezzoUnitario>3.90</PrezzoUnitario>
        <PrezzoTotale>39.00</PrezzoTotale>
        <AliquotaIVA>10.00</AliquotaIVA>
      </DettaglioLinee>
      <DettaglioLinee>
        <NumeroLinea>2</NumeroLinea>
        <Descrizione>Olio extravergine di oliva</Descrizione>
        <Quantita>24.00</Quantita>
        <UnitaMisura>LT</UnitaMisura>
        <PrezzoUnitario>15.00</PrezzoUnitario>
        <PrezzoTotale>360.00</PrezzoTotale>
        <AliquotaIVA>22.00</AliquotaIVA>
      </DettaglioLinee>
      <DettaglioLinee>
        <NumeroLinea>3</NumeroLinea>
        <Descrizione>Spese di incasso</Descrizione>
        <PrezzoUnitario>0.75</PrezzoUnitario>
        <PrezzoTotale>0.75</PrezzoTotale>
        <AliquotaIVA>0.00</AliquotaIVA>
        <Natura>N1</Natura>
      </DettaglioLinee>"""

DEFAULT_SUMMARY = """
      <DatiRiepilogo>
        <AliquotaIVA>10.00</AliquotaIVA>
        <ImponibileImporto>39.00</ImponibileImporto>
        <Imposta>3.90</Imposta>
        <EsigibilitaIVA>I</EsigibilitaIVA>
      </DatiRiepilogo>
      <DatiRiepilogo>
        <AliquotaIVA>22.00</AliquotaIVA>
        <ImponibileImporto>360.00</ImponibileImporto>
        <Imposta>79.20</Imposta>
        <EsigibilitaIVA>I</EsigibilitaIVA>
      </DatiRiepilogo>
      <DatiRiepilogo>
        <AliquotaIVA>0.00</AliquotaIVA>
        <Natura>N1</Natura>
        <ImponibileImporto>0.75</ImponibileImporto>
        <Imposta>0.00</Imposta>
      </DatiRiepilogo>"""

DEFAULT_PAYMENT = """
    <DatiPagamento>
      <CondizioniPagamento>TP02</CondizioniPagamento>
      <DettaglioPagamento>
        <ModalitaPagamento>MP05</ModalitaPagamento>
        <DataScadenzaPagamento>2024-04-15</DataScadenzaPagamento>
        <ImportoPagamento>482.85</ImportoPagamento>
        <IstitutoFinanziario>Banca Popolare</IstitutoFinanziario>
        <IBAN>IT60X0542811101000000123456</IBAN>
      </DettaglioPagamento>
    </DatiPagamento>"""


def _element(tag: str, value: str | None) -> str:
    if value is None:
        return ""
    return f"<{tag}>{value}</{tag}>"


def render_invoice(
    *,
    root_tag: str = "p:FatturaElettronica",
    supplier_name: str = "Molino Rossi S.r.l.",
    supplier_country: str = "IT",
    supplier_vat: str | None = "01234567890",
    supplier_fiscal_code: str | None = None,
    document_type: str | None = "TD01",
    issue_date: str | None = "2024-03-15",
    number: str | None = "FT-2024/042",
    total: str | None = "482.85",
    rounding: str | None = None,
    lines: str = DEFAULT_LINES,
    summary: str = DEFAULT_SUMMARY,
    payment: str = DEFAULT_PAYMENT,
    document_extra: str = "",
    general_extra: str = "",
    bodies: int = 1,
) -> str:
    """Render a FatturaPA document; ``None`` omits the element entirely."""
    if ":" in root_tag:
        prefix = root_tag.split(":", 1)[0]
        root_open = f'<{root_tag} xmlns:{prefix}="{INVOICE_NAMESPACE}" versione="FPR12">'
    else:
        root_open = f'<{root_tag} versione="FPR12">'

    vat_block = ""
    if supplier_vat is not None:
        vat_block = (
            f"<IdFiscaleIVA><IdPaese>{supplier_country}</IdPaese>"
            f"<IdCodice>{supplier_vat}</IdCodice></IdFiscaleIVA>"
        )

    body = f"""
  <FatturaElettronicaBody>
    <DatiGenerali>
      <DatiGeneraliDocumento>
        {_element("TipoDocumento", document_type)}
        <Divisa>EUR</Divisa>
        {_element("Data", issue_date)}
        {_element("Numero", number)}
        {_element("Arrotondamento", rounding)}
        {_element("ImportoTotaleDocumento", total)}
        <Causale>Fornitura prodotti alimentari</Causale>
        {document_extra}
      </DatiGeneraliDocumento>
      {general_extra}
    </DatiGenerali>
    <DatiBeniServizi>{lines}{summary}
    </DatiBeniServizi>{payment}
  </FatturaElettronicaBody>"""

    return f"""<?xml version="1.0" encoding="UTF-8"?>
{root_open}
  <FatturaElettronicaHeader>
    <DatiTrasmissione>
      <IdTrasmittente><IdPaese>IT</IdPaese><IdCodice>01234567890</IdCodice></IdTrasmittente>
      <ProgressivoInvio>00042</ProgressivoInvio>
      <FormatoTrasmissione>FPR12</FormatoTrasmissione>
      <CodiceDestinatario>0000000</CodiceDestinatario>
      <PECDestinatario>fatture@trattoriaalporto.it</PECDestinatario>
    </DatiTrasmissione>
    <CedentePrestatore>
      <DatiAnagrafici>
        {vat_block}
        {_element("CodiceFiscale", supplier_fiscal_code)}
        <Anagrafica><Denominazione>{supplier_name}</Denominazione></Anagrafica>
        <RegimeFiscale>RF01</RegimeFiscale>
      </DatiAnagrafici>
      <Sede>
        <Indirizzo>Via Roma 1</Indirizzo>
        <CAP>20121</CAP>
        <Comune>Milano</Comune>
        <Provincia>MI</Provincia>
        <Nazione>IT</Nazione>
      </Sede>
    </CedentePrestatore>
    <CessionarioCommittente>
      <DatiAnagrafici>
        <IdFiscaleIVA><IdPaese>IT</IdPaese><IdCodice>09876543210</IdCodice></IdFiscaleIVA>
        <Anagrafica><Denominazione>Trattoria Al Porto S.r.l.</Denominazione></Anagrafica>
      </DatiAnagrafici>
      <Sede>
        <Indirizzo>Fondamenta Nuove 12</Indirizzo>
        <CAP>30121</CAP>
        <Comune>Venezia</Comune>
        <Provincia>VE</Provincia>
        <Nazione>IT</Nazione>
      </Sede>
    </CessionarioCommittente>
  </FatturaElettronicaHeader>{body * bodies}
</{root_tag}>
"""


@pytest.fixture
def make_invoice_xml() -> Callable[..., str]:
    """Builder for invoice documents with per-test overrides."""
    return render_invoice


@pytest.fixture
def invoice_xml() -> str:
    """A complete, valid invoice: total 482.85 over three VAT rows."""
    return render_invoice()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def supplier_registry() -> InMemorySupplierRegistry:
    return InMemorySupplierRegistry()


@pytest.fixture
def ledger_store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()
