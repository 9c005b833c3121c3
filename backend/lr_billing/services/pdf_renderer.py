"""
PDF renditions of rendered workbooks, with a fallback chain.

1. Office converter CLI (LibreOffice `soffice --convert-to pdf`) when installed.
2. HTML re-render of the workbook's cells, printed by a headless browser.
3. None: the spreadsheet is still the deliverable, so a missing PDF is only a
   degraded outcome and never an error.

Both external commands run under a timeout; a timeout counts as "unavailable".
"""

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from lr_billing.core.config import settings
from lr_billing.logging_config import get_logger
from lr_billing.metrics import pdf_renders_total
from lr_billing.utils.excel_html import workbook_to_html

logger = get_logger(__name__)


class ConversionError(RuntimeError):
    """Raised by a tier when it cannot produce a PDF."""


async def run_command(args: List[str], timeout: float) -> None:
    """
    Run an external command, killing it when `timeout` seconds pass.

    Raises:
        ConversionError: Non-zero exit status or timeout.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise ConversionError(f"{Path(args[0]).name} timed out after {timeout:.0f}s")

    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="ignore").strip()[-500:]
        raise ConversionError(f"{Path(args[0]).name} exited with {process.returncode}: {detail}")


class PdfRenderer:
    def __init__(
        self,
        office_binary: Optional[str] = None,
        browser_binary: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.office_binary = office_binary or settings.OFFICE_CONVERTER_BINARY
        self.browser_binary = browser_binary or settings.BROWSER_BINARY
        self.timeout_seconds = timeout_seconds or settings.PDF_TIMEOUT_SECONDS

    async def convert_with_office(self, source: Path) -> Path:
        binary = shutil.which(self.office_binary)
        if not binary:
            raise ConversionError(f"{self.office_binary} not installed")

        # soffice runs one process per profile directory
        with tempfile.TemporaryDirectory(prefix="lo-profile-") as profile:
            await run_command(
                [
                    binary,
                    f"-env:UserInstallation=file://{profile}",
                    "--headless",
                    "--convert-to",
                    "pdf",
                    "--outdir",
                    str(source.parent),
                    str(source),
                ],
                self.timeout_seconds,
            )

        output = source.with_suffix(".pdf")
        if not output.is_file():
            raise ConversionError(f"{self.office_binary} produced no output for {source.name}")
        return output

    async def render_with_browser(self, source: Path) -> Path:
        binary = shutil.which(self.browser_binary)
        if not binary:
            raise ConversionError(f"{self.browser_binary} not installed")

        document = await asyncio.to_thread(workbook_to_html, source)
        output = source.with_suffix(".pdf")
        with tempfile.TemporaryDirectory(prefix="pdf-html-") as workdir:
            html_path = Path(workdir) / f"{source.stem}.html"
            html_path.write_text(document, encoding="utf-8")
            await run_command(
                [
                    binary,
                    "--headless",
                    "--disable-gpu",
                    "--no-sandbox",
                    "--no-pdf-header-footer",
                    f"--user-data-dir={workdir}",
                    f"--print-to-pdf={output}",
                    html_path.as_uri(),
                ],
                self.timeout_seconds,
            )

        if not output.is_file():
            raise ConversionError(f"{self.browser_binary} produced no output for {source.name}")
        return output

    async def to_pdf(self, document_path: Union[str, Path]) -> Optional[Path]:
        """
        PDF rendition of a rendered workbook, or None when no tier succeeds.

        Never raises for conversion problems.

        Args:
            document_path: Path of the rendered .xlsx file.

        Returns:
            Path of the PDF next to the workbook, or None.
        """
        source = Path(document_path)
        tiers = (
            ("office", self.convert_with_office),
            ("browser", self.render_with_browser),
        )
        for tier, convert in tiers:
            try:
                output = await convert(source)
            except Exception as e:
                pdf_renders_total.labels(tier=tier, outcome="error").inc()
                logger.warning(
                    f"PDF {tier} tier failed",
                    extra={"extra_fields": {"document": source.name, "tier": tier, "error": str(e)}},
                )
                continue
            pdf_renders_total.labels(tier=tier, outcome="success").inc()
            logger.info(
                "PDF rendered",
                extra={"extra_fields": {"document": source.name, "tier": tier, "path": str(output)}},
            )
            return output

        pdf_renders_total.labels(tier="none", outcome="unavailable").inc()
        logger.warning(
            "PDF unavailable",
            extra={"extra_fields": {"document": source.name}},
        )
        return None
