"""
Structured JSON logging for the billing service (GCP Cloud Logging format).

This module provides:
- GCPJSONFormatter: one JSON object per record, with billing identifiers
  promoted to Cloud Logging labels so a batch or an LR can be filtered on
- setup_logging(): configures the root and uvicorn loggers
- RequestLoggingMiddleware: ASGI middleware logging each HTTP request
- get_logger(): module logger accessor
"""

import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Optional

# https://cloud.google.com/logging/docs/reference/v2/rest/v2/LogEntry#LogSeverity
SEVERITY_MAP = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARNING",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

# extra_fields keys copied into "logging.googleapis.com/labels"
LABEL_FIELDS = ("batch_id", "lr_no", "submission_date", "bill_no")


class GCPJSONFormatter(logging.Formatter):
    """
    Formatter that outputs JSON matching the GCP Cloud Logging structured format.

    Output format:
    {
        "severity": "INFO",
        "message": "Invoice rendered",
        "timestamp": "2025-11-05T10:30:00.000000+00:00",
        "serviceContext": {"service": "lr-billing"},
        "logging.googleapis.com/labels": {"lr_no": "MT/25-26/101"},
        "lr_no": "MT/25-26/101",
        ...
    }
    """

    def __init__(self, service_name: str = "lr-billing", project_id: Optional[str] = None):
        super().__init__()
        self.service_name = service_name
        self.project_id = project_id or os.getenv("GCP_PROJECT_ID", "")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "severity": SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "message": record.getMessage(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "logger": record.name,
            "serviceContext": {
                "service": self.service_name,
            },
            "logging.googleapis.com/sourceLocation": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        trace_id = getattr(record, "trace_id", None)
        if trace_id and self.project_id:
            log_entry["logging.googleapis.com/trace"] = f"projects/{self.project_id}/traces/{trace_id}"
        elif trace_id:
            log_entry["trace_id"] = trace_id

        http_request = getattr(record, "httpRequest", None)
        if http_request:
            log_entry["httpRequest"] = http_request

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields and isinstance(extra_fields, dict):
            labels = {key: str(extra_fields[key]) for key in LABEL_FIELDS if extra_fields.get(key)}
            if labels:
                log_entry["logging.googleapis.com/labels"] = labels
            log_entry.update(extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(
    service_name: str = "lr-billing",
    level: int = logging.INFO,
    project_id: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root logger with GCP-compatible JSON formatting.

    Args:
        service_name: Name of the service (shown in logs)
        level: Logging level (default: INFO)
        project_id: GCP project ID for trace correlation

    Returns:
        Configured root logger
    """
    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(GCPJSONFormatter(service_name=service_name, project_id=project_id))
    logger.addHandler(handler)

    for uvicorn_logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        uvicorn_logger = logging.getLogger(uvicorn_logger_name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False

    # openpyxl warns on every template with data validation or unknown extensions
    logging.getLogger("openpyxl").setLevel(logging.ERROR)

    return logger


class RequestLoggingMiddleware:
    """
    ASGI middleware that logs HTTP requests with GCP-compatible format.

    Logs method, path, status code, latency and the trace ID taken from the
    X-Cloud-Trace-Context header.
    """

    def __init__(self, app, logger: Optional[logging.Logger] = None):
        self.app = app
        self.logger = logger or logging.getLogger(__name__)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()

        # Format: TRACE_ID/SPAN_ID;o=TRACE_TRUE
        trace_id = None
        headers = dict(scope.get("headers", []))
        trace_header = headers.get(b"x-cloud-trace-context", b"").decode("utf-8", errors="ignore")
        if trace_header:
            trace_id = trace_header.split("/")[0]

        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            path = scope.get("path", "/")
            method = scope.get("method", "UNKNOWN")

            if status_code >= 500:
                level = logging.ERROR
            elif status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO

            extra = {
                "httpRequest": {
                    "requestMethod": method,
                    "requestUrl": path,
                    "status": status_code,
                    "latency": f"{latency_ms / 1000:.3f}s",
                },
            }
            if trace_id:
                extra["trace_id"] = trace_id

            self.logger.log(level, f"{method} {path} {status_code} {latency_ms:.0f}ms", extra=extra)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

        logger = get_logger(__name__)
        logger.info("Ledger updated", extra={"extra_fields": {"submission_date": "2025-11-05"}})
    """
    return logging.getLogger(name)
