import asyncio
import time

import pytest

from conftest import SUBMISSION_DATE, make_record
from lr_billing.schemas import ClassifiedRecord
from lr_billing.services.classifier import classify
from lr_billing.services.pdf_renderer import ConversionError, PdfRenderer, run_command
from lr_billing.services.renderer import InvoiceRenderer
from lr_billing.utils.excel_html import workbook_to_html


def rendered_invoice(template_store, output_dir):
    record = make_record("MT/25-26/101", "PICKUP")
    item = ClassifiedRecord(record=record, classification=classify(record))
    return InvoiceRenderer(template_store, output_dir).render(item, SUBMISSION_DATE).path


def test_missing_binaries_degrade_to_none(template_store, output_dir):
    source = rendered_invoice(template_store, output_dir)
    renderer = PdfRenderer(
        office_binary="no-such-office-binary",
        browser_binary="no-such-browser-binary",
        timeout_seconds=5,
    )
    assert asyncio.run(renderer.to_pdf(source)) is None


def hanging_binary(tmp_path):
    script = tmp_path / "hang.sh"
    script.write_text("#!/bin/sh\nexec sleep 5\n")
    script.chmod(0o755)
    return script


def test_run_command_kills_on_timeout(tmp_path):
    script = hanging_binary(tmp_path)
    started = time.monotonic()
    with pytest.raises(ConversionError, match="timed out"):
        asyncio.run(run_command([str(script)], 0.2))
    assert time.monotonic() - started < 3


def test_run_command_reports_exit_status(tmp_path):
    script = tmp_path / "fail.sh"
    script.write_text("#!/bin/sh\necho boom >&2\nexit 3\n")
    script.chmod(0o755)
    with pytest.raises(ConversionError, match="exited with 3: boom"):
        asyncio.run(run_command([str(script)], 5))


def test_hanging_converters_degrade_to_none(template_store, output_dir, tmp_path):
    source = rendered_invoice(template_store, output_dir)
    script = hanging_binary(tmp_path)
    renderer = PdfRenderer(office_binary=str(script), browser_binary=str(script), timeout_seconds=0.2)

    started = time.monotonic()
    assert asyncio.run(renderer.to_pdf(source)) is None
    assert time.monotonic() - started < 3


def test_browser_tier_used_when_office_fails(tmp_path, monkeypatch):
    renderer = PdfRenderer(timeout_seconds=5)
    output = tmp_path / "doc.pdf"
    calls = []

    async def office(source):
        calls.append("office")
        raise ConversionError("soffice exited with 1")

    async def browser(source):
        calls.append("browser")
        output.write_bytes(b"%PDF-1.4")
        return output

    monkeypatch.setattr(renderer, "convert_with_office", office)
    monkeypatch.setattr(renderer, "render_with_browser", browser)

    assert asyncio.run(renderer.to_pdf(tmp_path / "doc.xlsx")) == output
    assert calls == ["office", "browser"]


def test_office_tier_short_circuits(tmp_path, monkeypatch):
    renderer = PdfRenderer(timeout_seconds=5)

    async def office(source):
        return source.with_suffix(".pdf")

    async def browser(source):
        raise AssertionError("browser tier should not run")

    monkeypatch.setattr(renderer, "convert_with_office", office)
    monkeypatch.setattr(renderer, "render_with_browser", browser)

    assert asyncio.run(renderer.to_pdf(tmp_path / "doc.xlsx")) == tmp_path / "doc.pdf"


def test_unexpected_tier_errors_never_escape(tmp_path, monkeypatch):
    renderer = PdfRenderer(timeout_seconds=5)

    async def broken(source):
        raise OSError("disk full")

    monkeypatch.setattr(renderer, "convert_with_office", broken)
    monkeypatch.setattr(renderer, "render_with_browser", broken)

    assert asyncio.run(renderer.to_pdf(tmp_path / "doc.xlsx")) is None


def test_workbook_to_html_keeps_filled_cells(template_store, output_dir):
    document = workbook_to_html(rendered_invoice(template_store, output_dir))
    assert document.startswith("<!DOCTYPE html>")
    assert "MT/25-26/101" in document
    assert "FIVE THOUSAND FIVE HUNDRED RUPEES ONLY" in document
