from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from lr_billing.api.deps import get_orchestrator, get_template_store
from lr_billing.core.constants import ALL_TEMPLATES
from lr_billing.core.errors import ConfigurationError
from lr_billing.logging_config import get_logger
from lr_billing.metrics import app_errors_total
from lr_billing.schemas import (
    ArtifactKind,
    BillDocumentResult,
    BillRequest,
    GenerateBillsRequest,
)
from lr_billing.services.orchestrator import BatchOrchestrator
from lr_billing.services.templates import TemplateStore

router = APIRouter()
logger = get_logger(__name__)


@router.post("/generate-bills")
async def generate_bills(
    request: GenerateBillsRequest,
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """
    Generates shipment copies, invoices and the submission ledger for a batch of LRs.

    Responds 200 when at least one record succeeded (failures listed in `errors`),
    500 when every record failed.
    """
    ids = request.ids()
    if not ids or not request.submission_date:
        raise HTTPException(status_code=400, detail="LR numbers and submission date are required")

    try:
        result = await orchestrator.run(
            ids,
            request.submission_date,
            concurrency=request.concurrency,
            generate_pdf=request.generate_pdf,
            rework_bill_no=request.rework_bill_no,
            additional_bill_no=request.additional_bill_no,
        )
    except ConfigurationError as e:
        app_errors_total.labels(endpoint="/generate-bills", error_type=type(e).__name__).inc()
        logger.error(
            "Batch aborted",
            extra={"extra_fields": {"submission_date": request.submission_date, "error": str(e)}},
        )
        raise HTTPException(status_code=500, detail=f"Failed to generate bills: {e}")

    status_code = 500 if not result.results and result.errors else 200
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


async def _generate_bill(
    kind: ArtifactKind,
    request: BillRequest,
    orchestrator: BatchOrchestrator,
    endpoint: str,
) -> BillDocumentResult:
    if not request.bill_no or not request.submission_date or not request.entries:
        raise HTTPException(status_code=400, detail="Bill number, submission date and entries are required")

    try:
        return await orchestrator.generate_bill(kind, request.bill_no, request.entries, request.submission_date)
    except ConfigurationError as e:
        app_errors_total.labels(endpoint=endpoint, error_type=type(e).__name__).inc()
        raise HTTPException(status_code=500, detail=f"Failed to generate bill: {e}")


@router.post("/rework-bills/generate", response_model=BillDocumentResult)
async def generate_rework_bill(
    request: BillRequest,
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """
    Generates one combined rework bill over the given entries.
    """
    return await _generate_bill(ArtifactKind.REWORK_BILL, request, orchestrator, "/rework-bills/generate")


@router.post("/additional-bills/generate", response_model=BillDocumentResult)
async def generate_additional_bill(
    request: BillRequest,
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """
    Generates one combined additional-destination bill over the given entries.
    """
    return await _generate_bill(ArtifactKind.ADDITIONAL_BILL, request, orchestrator, "/additional-bills/generate")


@router.get("/health/templates")
async def template_health(store: TemplateStore = Depends(get_template_store)):
    """
    Reports which workbook templates are present in the templates directory.

    Responds 500 with status "missing" when any template is absent.
    """
    templates = []
    for name in ALL_TEMPLATES:
        path = store.directory / name
        exists = path.is_file()
        templates.append({"name": name, "exists": exists, "path": str(path.resolve()) if exists else None})

    all_ok = all(t["exists"] for t in templates)
    if not all_ok:
        logger.warning(
            "Templates missing",
            extra={"extra_fields": {"missing": [t["name"] for t in templates if not t["exists"]]}},
        )
    return JSONResponse(
        status_code=200 if all_ok else 500,
        content={
            "status": "ok" if all_ok else "missing",
            "templates": templates,
            "directory": str(store.directory),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
