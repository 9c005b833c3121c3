"""
Batch bill generation.

Example:
    orchestrator = BatchOrchestrator(records=store, storage=LocalObjectStorage(), templates=TemplateStore("templates"))
    result = await orchestrator.run(["MT/25-26/101", "MT/25-26/102"], "2025-11-05")

A batch runs in three phases:
  1. Preparation: every template is loaded (a missing one aborts the batch),
     the submission date's ledger lock is taken and the ledger is reset.
     Batches for the same date queue on that lock until phase 3 is done.
  2. Concurrent phase: a bounded pool of workers claims record indexes from a
     shared cursor and runs the per-record pipeline (fetch, classify, render,
     PDF, upload, status update). Any failure becomes that record's error entry.
  3. Serial phase: one ledger append over every billed record, in request
     order, then the optional combined rework/additional bills.
"""

import asyncio
import time
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from lr_billing.core.config import settings
from lr_billing.core.constants import ALL_TEMPLATES, STATUS_BILL_DONE
from lr_billing.core.errors import RecordError
from lr_billing.logging_config import get_logger
from lr_billing.metrics import batch_duration_seconds, bills_generated_total
from lr_billing.schemas import (
    ArtifactKind,
    BatchResult,
    BatchSummary,
    BillCategory,
    BillDocumentResult,
    BillEntry,
    ClassifiedRecord,
    GeneratedArtifact,
    ItemError,
    ItemSuccess,
    LedgerOutcome,
)
from lr_billing.services.classifier import classify
from lr_billing.services.ledger import AggregationLedger
from lr_billing.services.pdf_renderer import PdfRenderer
from lr_billing.services.records import RecordStore
from lr_billing.services.renderer import (
    BillRenderer,
    InvoiceRenderer,
    ShipmentCopyRenderer,
    additional_entry,
    rework_entry,
)
from lr_billing.services.storage import ObjectStorage
from lr_billing.services.templates import TemplateStore
from lr_billing.services.uploader import UploadDispatcher

logger = get_logger(__name__)


class WorkCursor:
    """Shared "next index" over a work list. Each index is handed out at most once."""

    def __init__(self, total: int):
        self.total = total
        self._next = 0
        self._lock = asyncio.Lock()

    async def claim(self) -> Optional[int]:
        async with self._lock:
            if self._next >= self.total:
                return None
            index = self._next
            self._next += 1
            return index


class BatchOrchestrator:
    def __init__(
        self,
        records: RecordStore,
        storage: ObjectStorage,
        templates: TemplateStore,
        output_dir: Union[str, Path, None] = None,
        pdf_renderer: Optional[PdfRenderer] = None,
        concurrency: Optional[int] = None,
        upload_concurrency: Optional[int] = None,
    ):
        output_dir = Path(output_dir or settings.INVOICES_DIR)
        self.records = records
        self.templates = templates
        self.concurrency = concurrency or settings.GENERATION_CONCURRENCY
        self.shipment_renderer = ShipmentCopyRenderer(templates, output_dir)
        self.invoice_renderer = InvoiceRenderer(templates, output_dir)
        self.bill_renderers = {
            ArtifactKind.REWORK_BILL: BillRenderer(templates, ArtifactKind.REWORK_BILL, output_dir),
            ArtifactKind.ADDITIONAL_BILL: BillRenderer(templates, ArtifactKind.ADDITIONAL_BILL, output_dir),
        }
        self.ledger = AggregationLedger(templates, output_dir)
        self.uploader = UploadDispatcher(storage, upload_concurrency)
        self.pdf_renderer = pdf_renderer or PdfRenderer()
        self._ledger_locks: Dict[str, asyncio.Lock] = {}

    # ---------- per record ----------

    async def _pdf_renditions(self, artifacts: Sequence[GeneratedArtifact]) -> Tuple[List[GeneratedArtifact], bool]:
        pdfs = []
        for artifact in artifacts:
            pdf_path = await self.pdf_renderer.to_pdf(artifact.path)
            if pdf_path is not None:
                pdfs.append(GeneratedArtifact(kind=ArtifactKind.PDF, path=str(pdf_path), source_kind=artifact.kind))
        return pdfs, len(pdfs) == len(artifacts)

    async def _mark_billed(self, lr_no: str, submission_date: str) -> None:
        # The documents are already delivered; a failed status write is only logged.
        try:
            updated = await self.records.update_record(
                lr_no,
                {"status": STATUS_BILL_DONE, "Bill Submission Date": submission_date},
            )
        except Exception as e:
            logger.warning(
                "Failed to update status, but files generated",
                extra={"extra_fields": {"lr_no": lr_no, "error": str(e)}},
            )
            return
        if not updated:
            logger.warning(
                "Status update matched no record",
                extra={"extra_fields": {"lr_no": lr_no}},
            )

    async def process_item(
        self,
        lr_no: str,
        submission_date: str,
        generate_pdf: bool = False,
    ) -> Tuple[ItemSuccess, ClassifiedRecord]:
        """
        Full pipeline for one record.

        Raises:
            RecordError: Record missing, unpriceable, or its artifacts failed to upload.
            Exception: Anything raised while rendering; the caller turns it into an error entry.
        """
        record = await self.records.get_record(lr_no)
        if record is None:
            raise RecordError("LR not found")

        classification = classify(record)
        if classification.needs_review:
            if classification.category == BillCategory.ADDITIONAL:
                raise RecordError("Missing Amount")
            raise RecordError("Missing Vehicle Type")
        item = ClassifiedRecord(record=record, classification=classification)

        shipment_copy = await asyncio.to_thread(self.shipment_renderer.render, item, submission_date)
        invoice = await asyncio.to_thread(self.invoice_renderer.render, item, submission_date)
        artifacts = [shipment_copy, invoice]

        pdf_available = None
        if generate_pdf:
            pdfs, pdf_available = await self._pdf_renditions([shipment_copy, invoice])
            artifacts.extend(pdfs)

        uploads = await self.uploader.upload_many([a.path for a in artifacts], submission_date)
        failed = [u for u in uploads if not u.success]
        if failed:
            raise RecordError(
                "Upload failed: " + "; ".join(f"{u.file}: {u.error}" for u in failed)
            )

        await self._mark_billed(lr_no, submission_date)

        success = ItemSuccess(
            lr_no=lr_no,
            category=classification.category,
            amount=classification.effective_amount,
            additional_amount=classification.additional_entry.amount if classification.additional_entry else None,
            files=artifacts,
            uploads=uploads,
            pdf_available=pdf_available,
        )
        return success, item

    # ---------- combined bills ----------

    async def generate_bill(
        self,
        kind: ArtifactKind,
        bill_no: str,
        entries: List[BillEntry],
        submission_date: str,
        update_status: bool = True,
    ) -> BillDocumentResult:
        """
        Render one combined rework/additional bill over `entries` and upload it.

        Args:
            kind: ArtifactKind.REWORK_BILL or ArtifactKind.ADDITIONAL_BILL.
            bill_no: Bill number printed in the banner and used in the file name.
            entries: Bill rows, in print order.
            submission_date: Folder the bill is saved and uploaded under.
            update_status: Mark every entry's record "Bill Done".

        Returns:
            BillDocumentResult with the local path, total and upload outcome.
        """
        renderer = self.bill_renderers[kind]
        artifact = await asyncio.to_thread(renderer.render, bill_no, entries, submission_date)
        upload = await self.uploader.upload_one(artifact.path, submission_date)

        if update_status:
            for entry in entries:
                await self._mark_billed(entry.lr_no, submission_date)

        return BillDocumentResult(
            bill_no=bill_no,
            kind=kind,
            path=artifact.path,
            total_amount=sum(e.amount for e in entries),
            entries=len(entries),
            upload=upload,
        )

    # ---------- batch ----------

    async def _append_ledger(self, items: List[ClassifiedRecord], submission_date: str) -> LedgerOutcome:
        ledger_items = [i for i in items if i.classification.category != BillCategory.ADDITIONAL]
        try:
            path = await asyncio.to_thread(self.ledger.append_batch, ledger_items, submission_date)
        except Exception as e:
            logger.error(
                "Ledger append failed",
                extra={"extra_fields": {"submission_date": submission_date, "error": str(e)}},
                exc_info=True,
            )
            return LedgerOutcome(path=str(self.ledger.path_for(submission_date)), error=str(e))

        if path is None:
            return LedgerOutcome(path=str(self.ledger.path_for(submission_date)), rows_appended=0)

        upload = await self.uploader.upload_one(path, submission_date)
        return LedgerOutcome(path=str(path), rows_appended=len(ledger_items), upload=upload)

    async def _combined_bills(
        self,
        items: List[ClassifiedRecord],
        submission_date: str,
        rework_bill_no: Optional[str],
        additional_bill_no: Optional[str],
    ) -> Tuple[List[BillDocumentResult], List[str]]:
        bills, errors = [], []
        wanted = []
        if rework_bill_no:
            entries = [rework_entry(i) for i in items if i.classification.category == BillCategory.REWORK]
            wanted.append((ArtifactKind.REWORK_BILL, rework_bill_no, entries))
        if additional_bill_no:
            entries = [e for e in (additional_entry(i) for i in items) if e is not None]
            wanted.append((ArtifactKind.ADDITIONAL_BILL, additional_bill_no, entries))

        for kind, bill_no, entries in wanted:
            if not entries:
                continue
            try:
                bills.append(
                    await self.generate_bill(kind, bill_no, entries, submission_date, update_status=False)
                )
            except Exception as e:
                logger.error(
                    "Combined bill failed",
                    extra={"extra_fields": {"kind": kind.value, "bill_no": bill_no, "error": str(e)}},
                    exc_info=True,
                )
                errors.append(f"{kind.value} {bill_no}: {e}")
        return bills, errors

    def _ledger_lock(self, submission_date: str) -> asyncio.Lock:
        lock = self._ledger_locks.get(submission_date)
        if lock is None:
            lock = self._ledger_locks[submission_date] = asyncio.Lock()
        return lock

    async def _run_locked(
        self,
        batch_id: str,
        ids: List[str],
        submission_date: str,
        limit: int,
        generate_pdf: bool,
        rework_bill_no: Optional[str],
        additional_bill_no: Optional[str],
    ) -> Tuple[List[ItemSuccess], List[ItemError], LedgerOutcome, List[BillDocumentResult], List[str]]:
        await asyncio.to_thread(self.ledger.reset, submission_date)

        outcomes: List[Union[Tuple[ItemSuccess, ClassifiedRecord], ItemError, None]] = [None] * len(ids)
        seen = set()
        for index, lr_no in enumerate(ids):
            if lr_no in seen:
                outcomes[index] = ItemError(lr_no=lr_no, error="Duplicate LR No in batch")
            seen.add(lr_no)

        cursor = WorkCursor(len(ids))

        async def worker() -> None:
            while True:
                index = await cursor.claim()
                if index is None:
                    return
                if outcomes[index] is not None:
                    continue
                lr_no = ids[index]
                try:
                    outcomes[index] = await self.process_item(lr_no, submission_date, generate_pdf)
                    bills_generated_total.labels(status="success").inc()
                except Exception as e:
                    bills_generated_total.labels(status="error").inc()
                    logger.error(
                        "Bill generation failed",
                        extra={
                            "extra_fields": {
                                "batch_id": batch_id,
                                "lr_no": lr_no,
                                "error_type": type(e).__name__,
                                "error": str(e),
                            }
                        },
                        exc_info=not isinstance(e, RecordError),
                    )
                    outcomes[index] = ItemError(lr_no=lr_no, error=str(e) or type(e).__name__)

        await asyncio.gather(*[worker() for _ in range(min(limit, len(ids)))])

        results, errors, billed = [], [], []
        for outcome in outcomes:
            if isinstance(outcome, ItemError):
                errors.append(outcome)
            elif outcome is not None:
                success, item = outcome
                results.append(success)
                billed.append(item)

        ledger = await self._append_ledger(billed, submission_date)
        bills, bill_errors = await self._combined_bills(billed, submission_date, rework_bill_no, additional_bill_no)
        return results, errors, ledger, bills, bill_errors

    async def run(
        self,
        record_ids: Sequence[str],
        submission_date: str,
        concurrency: Optional[int] = None,
        generate_pdf: Optional[bool] = None,
        rework_bill_no: Optional[str] = None,
        additional_bill_no: Optional[str] = None,
    ) -> BatchResult:
        """
        Generate bills for every record id under one submission date.

        Args:
            record_ids: LR numbers, in the order they should appear in the ledger.
            submission_date: Submission date; also the output and storage folder.
            concurrency: Worker pool size (defaults to GENERATION_CONCURRENCY).
            generate_pdf: Add PDF renditions (defaults to PDF_ENABLED).
            rework_bill_no: When set, also produce the combined rework bill.
            additional_bill_no: When set, also produce the combined additional bill.

        Returns:
            BatchResult with per-record successes and errors, the ledger outcome
            and any combined bills.

        Raises:
            ConfigurationError: A template is missing. Nothing has been generated.
        """
        batch_id = uuid.uuid4().hex[:12]
        start_time = time.time()
        ids = list(record_ids)
        limit = max(1, concurrency or self.concurrency)
        generate_pdf = settings.PDF_ENABLED if generate_pdf is None else generate_pdf

        logger.info(
            "Batch started",
            extra={
                "extra_fields": {
                    "batch_id": batch_id,
                    "submission_date": submission_date,
                    "records": len(ids),
                    "concurrency": limit,
                }
            },
        )

        await asyncio.to_thread(self.templates.preload, ALL_TEMPLATES)
        # the ledger for a date has one writer from reset to the final append
        async with self._ledger_lock(submission_date):
            results, errors, ledger, bills, bill_errors = await self._run_locked(
                batch_id, ids, submission_date, limit, generate_pdf, rework_bill_no, additional_bill_no,
            )

        duration = time.time() - start_time
        batch_duration_seconds.observe(duration)
        logger.info(
            "Batch finished",
            extra={
                "extra_fields": {
                    "batch_id": batch_id,
                    "submission_date": submission_date,
                    "succeeded": len(results),
                    "failed": len(errors),
                    "ledger_error": ledger.error,
                    "duration_seconds": duration,
                }
            },
        )

        return BatchResult(
            submission_date=submission_date,
            results=results,
            errors=errors,
            ledger=ledger,
            bills=bills,
            bill_errors=bill_errors,
            summary=BatchSummary(requested=len(ids), succeeded=len(results), failed=len(errors)),
        )
