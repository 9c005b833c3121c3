import os
import logging
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from lr_billing.api.routes import router
from lr_billing.logging_config import setup_logging, RequestLoggingMiddleware, get_logger
from lr_billing.metrics import get_metrics, get_metrics_content_type, app_errors_total
import uvicorn

# Configure structured logging for GCP Cloud Logging
log_level = logging.DEBUG if os.getenv("DEBUG", "").lower() == "true" else logging.INFO
setup_logging(
    service_name=os.getenv("SERVICE_NAME", "lr-billing"),
    level=log_level,
    project_id=os.getenv("GCP_PROJECT_ID"),
)
logger = get_logger(__name__)

app = FastAPI(title="LR Billing API")

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
DEFAULT_ORIGINS = [
    "http://localhost:3000",  # Next.js dev server
    "http://localhost:8080",  # Local Docker
    "http://localhost",
    "http://127.0.0.1",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=DEFAULT_ORIGINS + ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added after CORS so only requests that reach the app are logged
app.add_middleware(RequestLoggingMiddleware, logger=logger)

app.include_router(router)

# HTTP request metrics land in the default registry served by /metrics
Instrumentator(
    should_group_status_codes=False,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health"],
).instrument(app)


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    app_errors_total.labels(
        endpoint=request.url.path,
        error_type="RequestValidationError"
    ).inc()
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler that tracks errors in Prometheus metrics.
    """
    app_errors_total.labels(
        endpoint=request.url.path,
        error_type=type(exc).__name__
    ).inc()

    logger.error(
        f"Unhandled exception: {exc}",
        extra={
            "extra_fields": {
                "endpoint": request.url.path,
                "error_type": type(exc).__name__,
                "method": request.method,
            }
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


@app.on_event("startup")
async def startup_event():
    logger.info(
        "Service started",
        extra={"extra_fields": {"event": "startup", "port": os.getenv("PORT", 8080)}},
    )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Service shutting down", extra={"extra_fields": {"event": "shutdown"}})


@app.get("/")
async def root():
    return {"message": "Welcome to the LR Billing API"}


@app.get("/health")
async def health_check():
    """Health check endpoint for Cloud Run and load balancers."""
    return {"status": "healthy", "service": "lr-billing"}


@app.get("/metrics")
async def metrics():
    """
    Expose Prometheus metrics.

    Includes bills_generated_total, batch_duration_seconds, pdf_renders_total,
    artifact_uploads_total and ledger_appends_total next to the HTTP metrics.
    """
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


if __name__ == "__main__":
    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
