"""Prometheus metrics for API service.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Invoice parsing outcomes and issue codes
- Supplier matching and ledger posting activity

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Invoice parsing metrics
invoices_parsed_total = Counter(
    "invoices_parsed_total",
    "Total invoice documents parsed",
    ["status"],  # success, failed
)

invoice_upload_size_bytes = Histogram(
    "invoice_upload_size_bytes",
    "Invoice document size in bytes",
    buckets=(1024, 10240, 102400, 1048576, 5242880),  # 1KB to 5MB
)

invoice_parse_issues_total = Counter(
    "invoice_parse_issues_total",
    "Parse errors and warnings by code",
    ["severity", "code"],
)

# Supplier registry metrics
supplier_matches_total = Counter(
    "supplier_matches_total",
    "Supplier match lookups",
    ["outcome"],  # matched, not_found
)

supplier_create_requests_total = Counter(
    "supplier_create_requests_total",
    "Supplier creation requests, including ones resolved to an existing record",
)

# Ledger metrics
ledger_entries_posted_total = Counter(
    "ledger_entries_posted_total",
    "Journal entries written by closure postings",
)

closure_reversals_total = Counter(
    "closure_reversals_total",
    "Closure postings reversed",
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
