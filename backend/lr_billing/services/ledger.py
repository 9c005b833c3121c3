"""
Final submission sheet: the per-submission-date aggregation ledger.

The ledger has one section per vehicle type (heading row, column-header row,
entry rows). Every entry is inserted as a new row, which pushes everything
below it down, so entries are written one after another in a single
open/save pass and never concurrently.
"""

from copy import copy
from pathlib import Path
from typing import Iterable, Optional, Union

from openpyxl import load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from lr_billing.core.config import settings
from lr_billing.core.constants import LEDGER_FILENAME, VEHICLE_TYPES
from lr_billing.core.errors import LedgerDateMismatchError, LedgerError, LedgerSectionNotFoundError
from lr_billing.core.layouts import LEDGER_COLUMNS, LEDGER_LAYOUT
from lr_billing.logging_config import get_logger
from lr_billing.metrics import ledger_appends_total
from lr_billing.schemas import ClassifiedRecord
from lr_billing.services.renderer import submission_folder
from lr_billing.services.templates import TemplateStore
from lr_billing.utils.formatting import format_display_date

logger = get_logger(__name__)


def _text(value) -> str:
    return "" if value is None else str(value).strip().upper()


def find_section_row(ws: Worksheet, vehicle_type: str) -> int:
    """Row of the section heading for `vehicle_type`, scanning column A top to bottom."""
    target = vehicle_type.strip().upper()
    if not target:
        raise LedgerSectionNotFoundError(vehicle_type)
    for row in range(1, ws.max_row + 1):
        if _text(ws.cell(row=row, column=1).value) == target:
            return row
    raise LedgerSectionNotFoundError(vehicle_type)


def find_insert_row(ws: Worksheet, heading_row: int) -> int:
    """
    First row after the section's column headers whose LR column is blank,
    or which is the heading of the next section.
    """
    row = heading_row + 2
    lr_column = LEDGER_COLUMNS["lr_no"]
    while row <= ws.max_row + 1:
        if _text(ws.cell(row=row, column=1).value) in VEHICLE_TYPES:
            break
        if ws.cell(row=row, column=lr_column).value in (None, ""):
            break
        row += 1
    return row


def copy_row_style(ws: Worksheet, source_row: int, target_row: int) -> None:
    """Copy cell styles of `source_row` onto `target_row`, with bold switched off."""
    for source in ws[source_row]:
        target = ws.cell(row=target_row, column=source.column)
        if not source.has_style:
            continue
        font = copy(source.font)
        font.bold = False
        target.font = font
        target.border = copy(source.border)
        target.fill = copy(source.fill)
        target.number_format = source.number_format
        target.alignment = copy(source.alignment)
        target.protection = copy(source.protection)

    height = ws.row_dimensions[source_row].height
    if height:
        ws.row_dimensions[target_row].height = height


def next_serial(ws: Worksheet, heading_row: int, insert_row: int) -> int:
    if insert_row <= heading_row + 2:
        return 1
    previous = ws.cell(row=insert_row - 1, column=LEDGER_COLUMNS["serial"]).value
    try:
        return int(previous) + 1
    except (TypeError, ValueError):
        return 1


class AggregationLedger:
    """
    Ledger writer for one invoices directory.

    State per submission date: absent -> reset -> appended.
    """

    def __init__(self, store: TemplateStore, output_dir: Union[str, Path, None] = None):
        self.store = store
        self.output_dir = Path(output_dir or settings.INVOICES_DIR)

    def path_for(self, submission_date: str) -> Path:
        return submission_folder(self.output_dir, submission_date) / LEDGER_FILENAME

    def reset(self, submission_date: str) -> Path:
        """Replace the ledger for `submission_date` with an untouched copy of the template."""
        path = self.path_for(submission_date)
        data = self.store.get_bytes(LEDGER_LAYOUT.template_name)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)
        logger.info(
            "Ledger reset",
            extra={"extra_fields": {"submission_date": submission_date, "path": str(path)}},
        )
        return path

    def append_row(self, ws: Worksheet, item: ClassifiedRecord) -> int:
        record, classification = item.record, item.classification
        vehicle_type = classification.vehicle_type or record.vehicle_type or ""
        heading_row = find_section_row(ws, vehicle_type)
        insert_row = find_insert_row(ws, heading_row)

        ws.insert_rows(insert_row)
        copy_row_style(ws, heading_row + 1, insert_row)
        serial = next_serial(ws, heading_row, insert_row)

        values = {
            "serial": serial,
            "lr_no": record.lr_no.upper(),
            "lr_date": format_display_date(record.lr_date),
            "vehicle_no": (record.vehicle_number or "").upper(),
            "amount": classification.effective_amount,
            "bill_no": record.lr_no.upper(),
        }
        for key, column in LEDGER_COLUMNS.items():
            ws.cell(row=insert_row, column=column, value=values[key])

        logger.debug(
            "Ledger row written",
            extra={
                "extra_fields": {
                    "lr_no": record.lr_no,
                    "vehicle_type": vehicle_type,
                    "row": insert_row,
                    "serial": serial,
                }
            },
        )
        return insert_row

    def append_batch(self, items: Iterable[ClassifiedRecord], submission_date: str) -> Optional[Path]:
        """
        Insert one ledger row per item, in iteration order, in a single pass.

        Opens the ledger once (copying the template first if the date has no
        ledger yet) and saves once after every row is in place. An empty batch
        leaves the file untouched.

        Args:
            items: Classified records to list.
            submission_date: Submission date the ledger belongs to.

        Returns:
            Path of the saved ledger, or None when there was nothing to append.

        Raises:
            LedgerError: Missing section, a ledger holding another submission
                date, or an unreadable ledger file.
        """
        items = list(items)
        if not items:
            return None

        path = self.path_for(submission_date)
        if not path.exists():
            self.reset(submission_date)

        try:
            wb = load_workbook(path)
        except Exception as e:
            ledger_appends_total.labels(status="error").inc()
            raise LedgerError(f"Failed to open ledger {path}: {e}") from e

        ws = wb.worksheets[0]
        banner = LEDGER_LAYOUT.cells["submission_date"]
        existing = ws[banner].value
        if existing not in (None, "") and str(existing) != submission_date:
            ledger_appends_total.labels(status="error").inc()
            raise LedgerDateMismatchError(str(existing), submission_date)

        try:
            for item in items:
                self.append_row(ws, item)
        except LedgerError:
            ledger_appends_total.labels(status="error").inc()
            raise

        ws[banner] = submission_date
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        wb.save(tmp_path)
        tmp_path.replace(path)
        ledger_appends_total.labels(status="success").inc()
        logger.info(
            "Ledger updated",
            extra={
                "extra_fields": {
                    "submission_date": submission_date,
                    "rows": len(items),
                    "path": str(path),
                }
            },
        )
        return path

