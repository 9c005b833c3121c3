"""
Prometheus metrics for the billing pipeline.

Exposed via the /metrics endpoint next to the HTTP metrics collected by
prometheus-fastapi-instrumentator.

Metrics include:
- Per-record bill generation outcomes and batch duration
- PDF rendition outcomes per fallback tier
- Artifact upload and ledger append outcomes
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Records processed by the batch orchestrator, by outcome (success/error)
bills_generated_total = Counter(
    "bills_generated_total",
    "Total number of LR records processed by bill generation",
    ["status"],
)

# Wall-clock time of a whole batch run
batch_duration_seconds = Histogram(
    "batch_duration_seconds",
    "Time spent generating a batch of bills in seconds",
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

# PDF renditions by fallback tier (office/browser/none) and outcome
pdf_renders_total = Counter(
    "pdf_renders_total",
    "PDF rendition attempts by tier and outcome",
    ["tier", "outcome"],
)

# Artifact uploads to object storage
artifact_uploads_total = Counter(
    "artifact_uploads_total",
    "Artifact uploads by status",
    ["status"],
)

# Aggregation ledger append passes
ledger_appends_total = Counter(
    "ledger_appends_total",
    "Final submission sheet append passes by status",
    ["status"],
)

# Application error counter with endpoint and error type
app_errors_total = Counter(
    "app_errors_total",
    "Application errors by endpoint and type",
    ["endpoint", "error_type"],
)


def get_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format.

    Returns:
        bytes: Prometheus-formatted metrics data.
    """
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
