"""FastAPI application for invoice import and closure posting.

Thin HTTP layer over the core operations:
- Health and readiness checks for Kubernetes
- Electronic invoice upload with safe parsing and supplier matching
- Supplier creation and completion
- Daily closure totals, ledger posting and reversal
- Prometheus metrics for monitoring

Authorization is not handled here; the acting user travels in the request body.

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import time
from decimal import Decimal

from fastapi import FastAPI, File, HTTPException, Request, Response, UploadFile, status
from pydantic import BaseModel, Field

from services.api import metrics
from services.closures.calculations import compute_closure_totals
from services.closures.ledger import (
    LedgerLine,
    LedgerTotals,
    calculate_running_balances,
    calculate_totals,
)
from services.closures.posting import LedgerPostingEngine
from services.closures.schema import (
    CashStation,
    ClosureTotals,
    DailyClosure,
    Expense,
    PostingResult,
    RegisterType,
)
from services.einvoice.amounts import (
    compute_amounts,
    extract_installments,
    installments_match_total,
)
from services.einvoice.schema import DueInstallment, InvoiceAmounts, ParseIssue, ParsedInvoice
from services.einvoice.validator import parse_safe
from services.shared.config import get_settings
from services.storage.base import DuplicateSupplierError, RecordNotFoundError
from services.storage.factory import create_ledger_store, create_supplier_registry
from services.suppliers.matcher import SupplierMatcher
from services.suppliers.schema import SupplierMatchResult, SupplierPayload, SupplierRecord

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="E-Invoice Ledger",
    description="Electronic invoice import and daily cash closure posting API",
    version=settings.service_version,
)

supplier_registry = create_supplier_registry(settings)
ledger_store = create_ledger_store(settings)
supplier_matcher = SupplierMatcher(supplier_registry, settings)
posting_engine = LedgerPostingEngine(ledger_store)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


class InvoiceImportResponse(BaseModel):
    """Invoice parse response.

    On failure only ``errors`` (and possibly ``warnings``) are populated.
    """

    success: bool
    file_name: str
    invoice: ParsedInvoice | None = None
    amounts: InvoiceAmounts | None = None
    installments: list[DueInstallment] = Field(default_factory=list)
    installments_match_total: bool | None = None
    supplier_match: SupplierMatchResult | None = None
    errors: list[ParseIssue] = Field(default_factory=list)
    warnings: list[ParseIssue] = Field(default_factory=list)


class CreateSupplierRequest(BaseModel):
    payload: SupplierPayload
    default_account_ref: str | None = None


class ClosureTotalsRequest(BaseModel):
    stations: list[CashStation] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    vat_rate: Decimal | None = Field(None, ge=0, description="Defaults to APP_DEFAULT_VAT_RATE")


class PostClosureRequest(BaseModel):
    closure: DailyClosure
    actor_id: str = Field(..., min_length=1)


class ReversalResponse(BaseModel):
    closure_id: str
    entries_removed: int


class ClosureEntriesResponse(BaseModel):
    closure_id: str
    totals: LedgerTotals
    lines: list[LedgerLine]


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe.

    Returns:
        Health status information
    """
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe.

    Returns:
        Readiness status
    """
    return ReadinessResponse(ready=True)


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


def _record_issues(errors: list[ParseIssue], warnings: list[ParseIssue]) -> None:
    for issue in errors:
        metrics.invoice_parse_issues_total.labels(severity="error", code=issue.code).inc()
    for issue in warnings:
        metrics.invoice_parse_issues_total.labels(severity="warning", code=issue.code).inc()


@app.post(
    "/api/v1/invoices/parse",
    response_model=InvoiceImportResponse,
    tags=["Invoices"],
    responses={422: {"model": InvoiceImportResponse}},
)
async def parse_invoice(
    response: Response,
    file: UploadFile = File(..., description="Electronic invoice XML document"),  # noqa: B008
) -> InvoiceImportResponse:
    """Parse an uploaded electronic invoice and match its supplier.

    The document is parsed safely: blocking defects come back as ``errors``
    with status 422, review findings as ``warnings`` alongside the data.
    Nothing is persisted; creating a missing supplier is a separate call
    using ``supplier_match.suggested``.

    ## Usage Example

    ```bash
    curl -X POST "http://localhost:8000/api/v1/invoices/parse" \\
      -F "file=@IT01234567890_FPR01.xml"
    ```

    Raises:
        HTTPException: 400 if the upload is missing, empty, or too large
    """
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No filename provided")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large: {len(content)} bytes (max {settings.max_upload_bytes})",
        )

    metrics.invoice_upload_size_bytes.observe(len(content))

    result = parse_safe(
        content,
        file.filename,
        vat_length=settings.vat_number_length,
        domestic_country=settings.domestic_country_code,
    )
    _record_issues(result.errors, result.warnings)

    if not result.success or result.data is None:
        metrics.invoices_parsed_total.labels(status="failed").inc()
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        return InvoiceImportResponse(
            success=False,
            file_name=file.filename,
            errors=result.errors,
            warnings=result.warnings,
        )

    metrics.invoices_parsed_total.labels(status="success").inc()
    invoice = result.data

    match = supplier_matcher.match_supplier(invoice)
    metrics.supplier_matches_total.labels(outcome="matched" if match.matched else "not_found").inc()

    return InvoiceImportResponse(
        success=True,
        file_name=file.filename,
        invoice=invoice,
        amounts=compute_amounts(invoice),
        installments=extract_installments(invoice),
        installments_match_total=installments_match_total(invoice),
        supplier_match=match,
        warnings=result.warnings,
    )


@app.post(
    "/api/v1/suppliers",
    response_model=SupplierRecord,
    status_code=status.HTTP_201_CREATED,
    tags=["Suppliers"],
)
def create_supplier(request: CreateSupplierRequest) -> SupplierRecord:
    """Create a supplier, or return the existing one matching its identifiers.

    Raises:
        HTTPException: 409 if a concurrent import registered the same VAT number
    """
    try:
        record = supplier_matcher.create_supplier_from_payload(
            request.payload, request.default_account_ref
        )
    except DuplicateSupplierError as e:
        logger.warning(f"Supplier creation conflict: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    metrics.supplier_create_requests_total.inc()
    return record


@app.patch("/api/v1/suppliers/{supplier_id}", response_model=SupplierRecord, tags=["Suppliers"])
def complete_supplier(supplier_id: str, payload: SupplierPayload) -> SupplierRecord:
    """Fill the stored supplier's missing fields from an invoice payload.

    Raises:
        HTTPException: 404 if the supplier does not exist
    """
    try:
        return supplier_matcher.update_supplier_from_payload(supplier_id, payload)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@app.post("/api/v1/closures/totals", response_model=ClosureTotals, tags=["Closures"])
def closure_totals(request: ClosureTotalsRequest) -> ClosureTotals:
    """Compute the totals of a closure without posting it."""
    vat_rate = request.vat_rate if request.vat_rate is not None else settings.default_vat_rate
    return compute_closure_totals(
        request.stations,
        request.expenses,
        vat_rate,
        settings.cash_difference_threshold,
    )


@app.post("/api/v1/closures/post", response_model=PostingResult, tags=["Closures"])
def post_closure(request: PostClosureRequest) -> PostingResult:
    """Post a closure to the cash and bank registers.

    Posting twice without a reversal in between double-posts; the caller
    owns the closure's draft/posted state.
    """
    result = posting_engine.post_closure_to_ledger(request.closure, request.actor_id)

    metrics.ledger_entries_posted_total.inc(result.entries_created)

    return result


@app.get(
    "/api/v1/closures/{closure_id}/entries",
    response_model=ClosureEntriesResponse,
    tags=["Closures"],
)
def closure_entries(
    closure_id: str, register: RegisterType | None = None
) -> ClosureEntriesResponse:
    """List a closure's journal entries with totals and running balance."""
    entries = ledger_store.list_entries(closure_ref=closure_id, register_type=register)
    return ClosureEntriesResponse(
        closure_id=closure_id,
        totals=calculate_totals(entries),
        lines=calculate_running_balances(entries),
    )


@app.delete(
    "/api/v1/closures/{closure_id}/entries",
    response_model=ReversalResponse,
    tags=["Closures"],
)
def reverse_closure(closure_id: str) -> ReversalResponse:
    """Remove every entry posted for a closure; zero when none exist."""
    removed = posting_engine.reverse_closure_posting(closure_id)
    metrics.closure_reversals_total.inc()
    return ReversalResponse(closure_id=closure_id, entries_removed=removed)
