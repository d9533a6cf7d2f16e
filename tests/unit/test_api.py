"""Unit tests for the invoice import and closure posting API.

Tests cover:
- Health check endpoints
- Invoice upload validation and parsing
- Supplier creation and completion
- Closure totals, posting, listing and reversal
- Prometheus metrics endpoint
"""

import uuid
from collections.abc import Callable
from decimal import Decimal
from unittest.mock import patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from services.api.main import app
from services.storage.base import DuplicateSupplierError


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


def _closure_body(closure_id: str) -> dict:
    return {
        "closure": {
            "id": closure_id,
            "closure_date": "2024-03-15",
            "venue_ref": "venue-1",
            "stations": [
                {"name": "Bar", "cash_amount": "400", "pos_amount": "200"},
                {"name": "Sala", "cash_amount": "150", "pos_amount": "100"},
            ],
            "expenses": [{"amount": "50", "payee": "Ortofrutta Bianchi"}],
            "bank_deposit": "300",
        },
        "actor_id": "user-7",
    }


def test_health_check(client: TestClient) -> None:
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert "service" in data


def test_readiness_check(client: TestClient) -> None:
    """Test readiness check endpoint."""
    response = client.get("/ready")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["ready"] is True


def test_parse_valid_invoice(client: TestClient, make_invoice_xml: Callable[..., str]) -> None:
    """Test uploading a well-formed invoice."""
    xml = make_invoice_xml(supplier_vat="07777777771")
    files = {"file": ("IT07777777771_00042.xml", xml.encode(), "application/xml")}

    response = client.post("/api/v1/invoices/parse", files=files)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["file_name"] == "IT07777777771_00042.xml"
    assert data["invoice"]["document_number"] == "FT-2024/042"
    assert data["invoice"]["supplier"]["tax_id"] == "07777777771"
    assert Decimal(data["amounts"]["total_amount"]) == Decimal("482.85")
    assert Decimal(data["amounts"]["net_amount"]) == Decimal("399.75")
    assert len(data["installments"]) == 1
    assert data["installments"][0]["due_date"] == "2024-04-15"
    assert data["installments_match_total"] is True
    assert data["supplier_match"]["matched"] is False
    assert data["supplier_match"]["suggested"]["vat_number"] == "07777777771"
    assert data["errors"] == []


def test_parse_reports_warnings(client: TestClient, make_invoice_xml: Callable[..., str]) -> None:
    """Test that review findings accompany a successful parse."""
    xml = make_invoice_xml(bodies=2)
    files = {"file": ("multi.xml", xml.encode(), "application/xml")}

    response = client.post("/api/v1/invoices/parse", files=files)

    assert response.status_code == status.HTTP_200_OK
    codes = [w["code"] for w in response.json()["warnings"]]
    assert "MULTIPLE_BODIES" in codes


def test_parse_malformed_xml(client: TestClient) -> None:
    """Test that a broken document is rejected with structured errors."""
    files = {"file": ("broken.xml", b"<FatturaElettronica><unclosed>", "application/xml")}

    response = client.post("/api/v1/invoices/parse", files=files)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    data = response.json()
    assert data["success"] is False
    assert data["invoice"] is None
    assert data["errors"][0]["code"] == "INVALID_XML"


def test_parse_missing_mandatory_fields(
    client: TestClient, make_invoice_xml: Callable[..., str]
) -> None:
    """Test that every blocking defect is reported."""
    xml = make_invoice_xml(supplier_vat=None, number=None)
    files = {"file": ("incomplete.xml", xml.encode(), "application/xml")}

    response = client.post("/api/v1/invoices/parse", files=files)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    codes = [e["code"] for e in response.json()["errors"]]
    assert codes == ["MISSING_VAT", "MISSING_DOCUMENT_NUMBER"]


def test_parse_no_file(client: TestClient) -> None:
    """Test parse endpoint with no file."""
    response = client.post("/api/v1/invoices/parse")

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_parse_empty_file(client: TestClient) -> None:
    """Test parse endpoint with empty file."""
    files = {"file": ("empty.xml", b"", "application/xml")}

    response = client.post("/api/v1/invoices/parse", files=files)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "detail" in response.json()


def test_parse_file_too_large(client: TestClient) -> None:
    """Test that uploads above the configured limit are refused."""
    files = {"file": ("big.xml", b"<a/>", "application/xml")}

    with patch("services.api.main.settings.max_upload_bytes", 2):
        response = client.post("/api/v1/invoices/parse", files=files)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "too large" in response.json()["detail"]


def test_parse_metrics_recorded(client: TestClient, invoice_xml: str) -> None:
    """Test that parse outcomes are counted."""
    from services.api import metrics

    initial_success = metrics.invoices_parsed_total.labels(status="success")._value.get()
    initial_failed = metrics.invoices_parsed_total.labels(status="failed")._value.get()

    client.post("/api/v1/invoices/parse", files={"file": ("ok.xml", invoice_xml.encode())})
    client.post("/api/v1/invoices/parse", files={"file": ("ko.xml", b"not xml")})

    assert metrics.invoices_parsed_total.labels(status="success")._value.get() == (
        initial_success + 1
    )
    assert metrics.invoices_parsed_total.labels(status="failed")._value.get() == (
        initial_failed + 1
    )


def test_create_supplier_then_match(
    client: TestClient, make_invoice_xml: Callable[..., str]
) -> None:
    """Test that a created supplier is matched by the next import."""
    response = client.post(
        "/api/v1/suppliers",
        json={
            "payload": {"name": "Caseificio Verdi", "vat_number": "IT 5555555551"},
            "default_account_ref": "acc-dairy",
        },
    )

    assert response.status_code == status.HTTP_201_CREATED
    record = response.json()
    assert record["vat_number"] == "05555555551"
    assert record["default_account_ref"] == "acc-dairy"

    xml = make_invoice_xml(supplier_vat="05555555551")
    parsed = client.post("/api/v1/invoices/parse", files={"file": ("f.xml", xml.encode())})

    match = parsed.json()["supplier_match"]
    assert match["matched"] is True
    assert match["supplier"]["id"] == record["id"]


def test_create_supplier_returns_existing(client: TestClient) -> None:
    """Test that creating the same supplier twice yields one record."""
    body = {"payload": {"name": "Pescheria", "vat_number": "06666666661"}}

    first = client.post("/api/v1/suppliers", json=body)
    second = client.post("/api/v1/suppliers", json=body)

    assert first.json()["id"] == second.json()["id"]


def test_create_supplier_conflict(client: TestClient) -> None:
    """Test that a concurrent duplicate surfaces as 409."""
    with patch(
        "services.api.main.supplier_matcher.create_supplier_from_payload",
        side_effect=DuplicateSupplierError("01234567890"),
    ):
        response = client.post(
            "/api/v1/suppliers", json={"payload": {"name": "x", "vat_number": "01234567890"}}
        )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert "01234567890" in response.json()["detail"]


def test_complete_supplier(client: TestClient) -> None:
    """Test that completion only fills missing fields."""
    created = client.post(
        "/api/v1/suppliers", json={"payload": {"name": "Forno", "city": "Treviso"}}
    ).json()

    response = client.patch(
        f"/api/v1/suppliers/{created['id']}",
        json={"name": "Forno S.n.c.", "city": "Venezia", "province": "TV"},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["name"] == "Forno"
    assert data["city"] == "Treviso"
    assert data["province"] == "TV"


def test_complete_unknown_supplier(client: TestClient) -> None:
    """Test completion of a supplier that does not exist."""
    response = client.patch("/api/v1/suppliers/missing", json={"name": "x"})

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_closure_totals(client: TestClient) -> None:
    """Test totals computation with an explicit VAT rate."""
    response = client.post(
        "/api/v1/closures/totals",
        json={
            "stations": [{"cash_amount": "500", "pos_amount": "100", "counted_cash": "480"}],
            "expenses": [{"amount": "20"}],
            "vat_rate": "0.10",
        },
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert Decimal(data["cash_difference"]) == Decimal("-20")
    assert Decimal(data["sales_total"]) == Decimal("600")
    assert Decimal(data["estimated_vat"]) == Decimal("60")
    assert data["has_significant_difference"] is True


def test_post_list_and_reverse_closure(client: TestClient) -> None:
    """Test the posting lifecycle of a closure."""
    closure_id = f"closure-{uuid.uuid4()}"

    posted = client.post("/api/v1/closures/post", json=_closure_body(closure_id))

    assert posted.status_code == status.HTTP_200_OK
    result = posted.json()
    assert result["entries_created"] == 5
    assert Decimal(result["total_debits"]) == Decimal("1200")
    assert Decimal(result["total_credits"]) == Decimal("350")

    cash = client.get(f"/api/v1/closures/{closure_id}/entries", params={"register": "CASH"})
    assert cash.status_code == status.HTTP_200_OK
    lines = cash.json()["lines"]
    assert [Decimal(line["running_balance"]) for line in lines] == [
        Decimal("600"),
        Decimal("550"),
        Decimal("250"),
    ]

    everything = client.get(f"/api/v1/closures/{closure_id}/entries").json()
    assert Decimal(everything["totals"]["net_movement"]) == Decimal("850")

    reversed_ = client.delete(f"/api/v1/closures/{closure_id}/entries")
    assert reversed_.json() == {"closure_id": closure_id, "entries_removed": 5}

    again = client.delete(f"/api/v1/closures/{closure_id}/entries")
    assert again.json()["entries_removed"] == 0


def test_post_closure_with_negative_expense(client: TestClient) -> None:
    """Test that a correction larger than cash sales still posts."""
    body = _closure_body(f"closure-{uuid.uuid4()}")
    body["closure"]["stations"] = [{"cash_amount": "10", "pos_amount": "40"}]
    body["closure"]["expenses"] = [{"amount": "-20"}]
    body["closure"]["bank_deposit"] = None

    response = client.post("/api/v1/closures/post", json=body)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["entries_created"] == 1


def test_post_closure_requires_actor(client: TestClient) -> None:
    """Test that posting without an actor is rejected."""
    body = _closure_body(f"closure-{uuid.uuid4()}")
    body["actor_id"] = ""

    response = client.post("/api/v1/closures/post", json=body)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_metrics_endpoint(client: TestClient) -> None:
    """Test Prometheus metrics endpoint."""
    response = client.get("/metrics")

    assert response.status_code == status.HTTP_200_OK
    content_type = response.headers["content-type"]
    assert "openmetrics-text" in content_type or "text/plain" in content_type
    assert "invoices_parsed_total" in response.text


def test_metrics_recorded_on_requests(client: TestClient) -> None:
    """Test that metrics are recorded on API requests."""
    client.get("/health")

    response = client.get("/metrics")

    assert "http_requests_total" in response.text
