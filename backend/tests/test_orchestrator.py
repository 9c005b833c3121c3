import asyncio
from pathlib import Path

import pytest
from openpyxl import load_workbook

from conftest import SUBMISSION_DATE, make_record
from lr_billing.core.constants import LEDGER_TEMPLATE, REWORK_BILL_TEMPLATE
from lr_billing.core.errors import ConfigurationError, LedgerSectionNotFoundError
from lr_billing.schemas import ArtifactKind, BillCategory, BillEntry, UploadResult
from lr_billing.services.ledger import find_section_row
from lr_billing.services.orchestrator import BatchOrchestrator, WorkCursor
from lr_billing.services.records import InMemoryRecordStore


class NoPdf:
    def __init__(self):
        self.calls = []

    async def to_pdf(self, document_path):
        self.calls.append(Path(document_path).name)
        return None


class FakePdf:
    async def to_pdf(self, document_path):
        output = Path(document_path).with_suffix(".pdf")
        output.write_bytes(b"%PDF-1.4")
        return output


class RejectingStorage:
    async def put(self, local_path, destination_folder):
        return UploadResult(file=Path(local_path).name, success=False, error="access denied")


def make_orchestrator(record_store, storage, template_store, output_dir, pdf_renderer=None, concurrency=4):
    return BatchOrchestrator(
        records=record_store,
        storage=storage,
        templates=template_store,
        output_dir=output_dir,
        pdf_renderer=pdf_renderer or NoPdf(),
        concurrency=concurrency,
        upload_concurrency=3,
    )


def test_work_cursor_hands_out_each_index_once():
    async def drain():
        cursor = WorkCursor(10)
        claimed = []

        async def worker():
            while True:
                index = await cursor.claim()
                if index is None:
                    return
                claimed.append(index)
                await asyncio.sleep(0)

        await asyncio.gather(*[worker() for _ in range(4)])
        return claimed

    assert sorted(asyncio.run(drain())) == list(range(10))


def test_mixed_batch_reports_successes_and_errors(records, storage, template_store, output_dir):
    record_store = InMemoryRecordStore(records + [make_record("MT/25-26/104", vehicle_type="")])
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir)

    ids = ["MT/25-26/101", "MT/25-26/404", "MT/25-26/102", "MT/25-26/104", "MT/25-26/103"]
    result = asyncio.run(orchestrator.run(ids, SUBMISSION_DATE))

    assert result.summary.requested == 5
    assert result.summary.succeeded == 3
    assert result.summary.failed == 2
    assert [r.lr_no for r in result.results] == ["MT/25-26/101", "MT/25-26/102", "MT/25-26/103"]
    assert {e.lr_no: e.error for e in result.errors} == {
        "MT/25-26/404": "LR not found",
        "MT/25-26/104": "Missing Vehicle Type",
    }

    by_lr = {r.lr_no: r for r in result.results}
    assert by_lr["MT/25-26/102"].category == BillCategory.REWORK
    assert by_lr["MT/25-26/102"].amount == 9987
    assert by_lr["MT/25-26/103"].additional_amount == 4800
    assert all(len(r.files) == 2 and all(u.success for u in r.uploads) for r in result.results)

    record = asyncio.run(record_store.get_record("MT/25-26/101"))
    assert record.status == "Bill Done"
    assert record.bill_submission_date == SUBMISSION_DATE
    assert asyncio.run(record_store.get_record("MT/25-26/104")).status is None


def test_ledger_lists_successes_in_request_order(records, storage, template_store, output_dir):
    record_store = InMemoryRecordStore(records + [make_record("MT/25-26/105", "PICKUP")])
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir, concurrency=3)

    ids = ["MT/25-26/105", "MT/25-26/102", "MT/25-26/101", "MT/25-26/103"]
    result = asyncio.run(orchestrator.run(ids, SUBMISSION_DATE))

    assert result.ledger.error is None
    assert result.ledger.rows_appended == 4
    assert result.ledger.upload.success

    ws = load_workbook(result.ledger.path).worksheets[0]
    pickup = find_section_row(ws, "PICKUP")
    assert [ws.cell(row=pickup + 2 + i, column=2).value for i in range(2)] == ["MT/25-26/105", "MT/25-26/101"]
    assert [ws.cell(row=pickup + 2 + i, column=1).value for i in range(2)] == [1, 2]
    truck = find_section_row(ws, "TRUCK")
    assert ws.cell(row=truck + 2, column=5).value == 9987


def test_rerun_resets_ledger(record_store, storage, template_store, output_dir):
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir)
    asyncio.run(orchestrator.run(["MT/25-26/101"], SUBMISSION_DATE))
    result = asyncio.run(orchestrator.run(["MT/25-26/101"], SUBMISSION_DATE))

    ws = load_workbook(result.ledger.path).worksheets[0]
    pickup = find_section_row(ws, "PICKUP")
    assert ws.cell(row=pickup + 2, column=2).value == "MT/25-26/101"
    assert ws.cell(row=pickup + 3, column=2).value is None


def ledger_lr_numbers(path):
    ws = load_workbook(path).worksheets[0]
    return {
        value
        for (value,) in ws.iter_rows(min_col=2, max_col=2, values_only=True)
        if isinstance(value, str) and value.startswith("MT/")
    }


def test_concurrent_runs_for_one_date_keep_a_whole_ledger(records, storage, template_store, output_dir):
    record_store = InMemoryRecordStore(records + [make_record("MT/25-26/105", "PICKUP")])
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir, concurrency=2)
    first_ids = ["MT/25-26/101", "MT/25-26/102"]
    second_ids = ["MT/25-26/103", "MT/25-26/105"]
    finished = []

    async def tracked(ids):
        result = await orchestrator.run(ids, SUBMISSION_DATE)
        finished.append(set(ids))
        return result

    async def both():
        return await asyncio.gather(tracked(first_ids), tracked(second_ids))

    first, second = asyncio.run(both())

    for result in (first, second):
        assert result.ledger.error is None
        assert result.ledger.rows_appended == 2
        assert result.summary.succeeded == 2
    assert ledger_lr_numbers(first.ledger.path) == finished[-1]
    assert not list(Path(first.ledger.path).parent.glob("*.tmp"))


def test_non_positive_concurrency_still_processes_every_record(record_store, storage, template_store, output_dir):
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir)
    result = asyncio.run(orchestrator.run(["MT/25-26/101", "MT/25-26/102"], SUBMISSION_DATE, concurrency=-1))

    assert result.summary.requested == 2
    assert result.summary.succeeded == 2
    assert result.errors == []


def test_ledger_failure_keeps_item_results(record_store, storage, template_store, output_dir, monkeypatch):
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir)

    def broken_append(items, submission_date):
        raise LedgerSectionNotFoundError("TRUCK")

    monkeypatch.setattr(orchestrator.ledger, "append_batch", broken_append)
    ids = ["MT/25-26/101", "MT/25-26/102", "MT/25-26/103"]
    result = asyncio.run(orchestrator.run(ids, SUBMISSION_DATE))

    assert "TRUCK heading not found" in result.ledger.error
    assert result.ledger.rows_appended == 0
    assert result.ledger.upload is None
    assert [r.lr_no for r in result.results] == ids
    assert result.errors == []
    for lr_no in ids:
        assert asyncio.run(record_store.get_record(lr_no)).status == "Bill Done"


def test_all_failed_batch_never_raises(storage, template_store, output_dir, templates_dir):
    orchestrator = make_orchestrator(InMemoryRecordStore(), storage, template_store, output_dir)
    result = asyncio.run(orchestrator.run(["X1", "X2"], SUBMISSION_DATE))

    assert result.results == []
    assert [e.error for e in result.errors] == ["LR not found", "LR not found"]
    assert result.ledger.rows_appended == 0
    ledger_path = Path(result.ledger.path)
    assert ledger_path.read_bytes() == (templates_dir / LEDGER_TEMPLATE).read_bytes()


def test_duplicate_ids_are_processed_once(record_store, storage, template_store, output_dir):
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir)
    result = asyncio.run(orchestrator.run(["MT/25-26/101", "MT/25-26/101"], SUBMISSION_DATE))

    assert result.summary.succeeded == 1
    assert result.errors[0].error == "Duplicate LR No in batch"


def test_missing_pdf_is_still_a_success(record_store, storage, template_store, output_dir):
    pdf = NoPdf()
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir, pdf_renderer=pdf)
    result = asyncio.run(orchestrator.run(["MT/25-26/101"], SUBMISSION_DATE, generate_pdf=True))

    assert result.summary.succeeded == 1
    assert result.results[0].pdf_available is False
    assert sorted(pdf.calls) == ["MT-25-26-101.xlsx", "inv_MT-25-26-101.xlsx"]


def test_pdf_renditions_are_uploaded(record_store, storage, template_store, output_dir):
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir, pdf_renderer=FakePdf())
    result = asyncio.run(orchestrator.run(["MT/25-26/101"], SUBMISSION_DATE, generate_pdf=True))

    item = result.results[0]
    assert item.pdf_available is True
    assert [f.kind for f in item.files] == [
        ArtifactKind.SHIPMENT_COPY, ArtifactKind.INVOICE, ArtifactKind.PDF, ArtifactKind.PDF,
    ]
    assert [u.file for u in item.uploads][-2:] == ["MT-25-26-101.pdf", "inv_MT-25-26-101.pdf"]


def test_failed_uploads_fail_the_item(record_store, template_store, output_dir):
    orchestrator = make_orchestrator(record_store, RejectingStorage(), template_store, output_dir)
    result = asyncio.run(orchestrator.run(["MT/25-26/101"], SUBMISSION_DATE))

    assert result.results == []
    assert result.errors[0].error.startswith("Upload failed")
    assert asyncio.run(record_store.get_record("MT/25-26/101")).status is None


def test_missing_template_aborts_batch(record_store, storage, template_store, templates_dir, output_dir):
    (templates_dir / REWORK_BILL_TEMPLATE).unlink()
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir)

    with pytest.raises(ConfigurationError):
        asyncio.run(orchestrator.run(["MT/25-26/101"], SUBMISSION_DATE))
    assert not (output_dir / SUBMISSION_DATE / "MT-25-26-101.xlsx").exists()


def test_combined_bills(records, storage, template_store, output_dir):
    record_store = InMemoryRecordStore(records + [make_record("ADDITIONAL-MT/25-26/110", "PICKUP", Amount=1800)])
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir)

    ids = ["MT/25-26/101", "MT/25-26/102", "MT/25-26/103", "ADDITIONAL-MT/25-26/110"]
    result = asyncio.run(orchestrator.run(
        ids, SUBMISSION_DATE, rework_bill_no="MT/25-26/R1", additional_bill_no="MT/25-26/A1",
    ))

    assert result.bill_errors == []
    bills = {b.kind: b for b in result.bills}
    assert bills[ArtifactKind.REWORK_BILL].entries == 1
    assert bills[ArtifactKind.REWORK_BILL].total_amount == 9987
    assert bills[ArtifactKind.ADDITIONAL_BILL].entries == 2
    assert bills[ArtifactKind.ADDITIONAL_BILL].total_amount == 4800 + 1800
    assert all(b.upload.success for b in result.bills)

    # standalone additional records stay out of the ledger
    assert result.ledger.rows_appended == 3


def test_generate_bill_marks_entries_billed(record_store, storage, template_store, output_dir):
    orchestrator = make_orchestrator(record_store, storage, template_store, output_dir)
    entries = [BillEntry(lr_no="MT/25-26/102", vehicle_type="TRUCK", amount=9987)]
    bill = asyncio.run(orchestrator.generate_bill(ArtifactKind.REWORK_BILL, "R9", entries, SUBMISSION_DATE))

    assert Path(bill.path).is_file()
    assert bill.total_amount == 9987
    assert asyncio.run(record_store.get_record("MT/25-26/102")).status == "Bill Done"
