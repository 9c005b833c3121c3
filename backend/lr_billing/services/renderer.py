"""
Document renderers: fill a template's fixed cells and save the result.

Each renderer takes a fresh workbook from the TemplateStore, writes the values
of one classified record (or one bill's entries) into the coordinates of its
layout, and saves it under `<invoices dir>/<submission date>/`.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from lr_billing.core.config import settings
from lr_billing.core.constants import ADDITIONAL_RECORD_PREFIX
from lr_billing.core.layouts import (
    ADDITIONAL_BILL_LAYOUT,
    BILL_COLUMNS,
    BILL_FIRST_ENTRY_ROW,
    INVOICE_LAYOUT,
    MULTI_VALUE_LINES,
    REWORK_BILL_LAYOUT,
    SHIPMENT_COPY_LAYOUT,
    DocumentLayout,
)
from lr_billing.logging_config import get_logger
from lr_billing.schemas import (
    ArtifactKind,
    BillEntry,
    BillCategory,
    ClassifiedRecord,
    GeneratedArtifact,
    ShipmentRecord,
)
from lr_billing.services.classifier import destination_locations
from lr_billing.services.templates import TemplateStore
from lr_billing.utils.formatting import (
    prefixed_lr_no,
    sanitize_filename,
    short_locations,
    split_names,
    today_display,
)
from lr_billing.utils.number_words import amount_in_words

logger = get_logger(__name__)

# Gate entry number printed when the consignment is not for KOEL.
NON_KOEL_GATE_ENTRY = "99"


def submission_folder(base_dir: Union[str, Path], submission_date: str) -> Path:
    folder = Path(base_dir) / sanitize_filename(submission_date)
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def write_if_present(ws: Worksheet, coordinate: str, value: Any) -> bool:
    """Write `value` unless it is empty, so the template's own content shows through."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return False
    ws[coordinate] = value
    return True


def write_lines(ws: Worksheet, column: str, first_row: int, values: Sequence[str]) -> int:
    """
    Write values one per row into a fixed run of MULTI_VALUE_LINES cells.

    Values beyond the run are dropped; the template has no room for them.

    Returns:
        int: Number of values written.
    """
    kept = list(values)[:MULTI_VALUE_LINES]
    for offset, value in enumerate(kept):
        ws[f"{column}{first_row + offset}"] = value
    return len(kept)


def _upper(value: Optional[str]) -> Optional[str]:
    return str(value).strip().upper() if value is not None and str(value).strip() else None


def _weight(value: Optional[str]) -> Optional[str]:
    text = _upper(value)
    if text is None:
        return None
    try:
        float(text)
    except ValueError:
        return text
    return f"{text} KG"


class ShipmentCopyRenderer:
    """Lorry receipt copy rendered from the SAMPLE template."""

    kind = ArtifactKind.SHIPMENT_COPY
    layout: DocumentLayout = SHIPMENT_COPY_LAYOUT

    def __init__(self, store: TemplateStore, output_dir: Union[str, Path, None] = None):
        self.store = store
        self.output_dir = Path(output_dir or settings.INVOICES_DIR)

    def field_values(self, record: ShipmentRecord) -> Dict[str, Optional[str]]:
        consignors = split_names(record.consignor)
        gate_entry = record.koel_gate_entry_no
        if not any("KOEL" in name.upper() for name in consignors):
            gate_entry = NON_KOEL_GATE_ENTRY

        return {
            "origin": _upper(record.origin),
            "to": _upper(short_locations(destination_locations(record))),
            "lr_date": _upper(record.lr_date),
            "material_supply_to": _upper(record.material_supply_to),
            "vehicle_type": _upper(record.vehicle_type),
            "vehicle_number": _upper(record.vehicle_number),
            "lr_no": _upper(record.lr_no),
            "koel_gate_entry_no": _upper(gate_entry),
            "koel_gate_entry_date": _upper(record.koel_gate_entry_date),
            "weightslip_no": _upper(record.weightslip_no),
            "loaded_weight": _weight(record.loaded_weight),
            "empty_weight": _weight(record.empty_weight),
            "total_no_of_invoices": _upper(record.total_no_of_invoices),
            "invoice_no": _upper(record.invoice_no),
            "grr_no": _upper(record.grr_no),
            "grr_date": _upper(record.grr_date),
        }

    def render(self, item: ClassifiedRecord, submission_date: str) -> GeneratedArtifact:
        record = item.record
        wb = self.store.get(self.layout.template_name)
        ws = wb.worksheets[0]

        for field_name, value in self.field_values(record).items():
            write_if_present(ws, self.layout.cells[field_name], value)
        ws[self.layout.cells["lr_no"]].font = Font(bold=True)

        for field_name, (column, first_row) in self.layout.runs.items():
            values = [v.upper() for v in split_names(getattr(record, field_name))]
            write_lines(ws, column, first_row, values)

        path = submission_folder(self.output_dir, submission_date) / f"{sanitize_filename(record.lr_no)}.xlsx"
        wb.save(path)
        logger.info(
            "Shipment copy rendered",
            extra={"extra_fields": {"lr_no": record.lr_no, "path": str(path)}},
        )
        return GeneratedArtifact(kind=self.kind, path=str(path))


class InvoiceRenderer:
    """Single-record billing invoice."""

    kind = ArtifactKind.INVOICE
    layout: DocumentLayout = INVOICE_LAYOUT

    def __init__(self, store: TemplateStore, output_dir: Union[str, Path, None] = None):
        self.store = store
        self.output_dir = Path(output_dir or settings.INVOICES_DIR)

    def render(self, item: ClassifiedRecord, submission_date: str) -> GeneratedArtifact:
        record, classification = item.record, item.classification
        amount = classification.effective_amount
        cells = self.layout.cells

        wb = self.store.get(self.layout.template_name)
        ws = wb.worksheets[0]

        write_if_present(ws, cells["invoice_no"], record.invoice_no)
        write_if_present(ws, cells["lr_no"], record.lr_no)
        ws[cells["bill_date"]] = today_display()
        write_if_present(ws, cells["vehicle_number"], _upper(record.vehicle_number))
        write_if_present(ws, cells["vehicle_type"], classification.vehicle_type)
        ws[cells["amount"]] = amount
        ws[cells["total"]] = amount
        ws[cells["amount_words"]] = amount_in_words(amount)

        path = submission_folder(self.output_dir, submission_date) / f"inv_{sanitize_filename(record.lr_no)}.xlsx"
        wb.save(path)
        logger.info(
            "Invoice rendered",
            extra={
                "extra_fields": {
                    "lr_no": record.lr_no,
                    "category": classification.category.value,
                    "amount": amount,
                    "path": str(path),
                }
            },
        )
        return GeneratedArtifact(kind=self.kind, path=str(path))


class BillRenderer:
    """
    Combined rework or additional bill: one row per entry plus a batch total.

    Unlike the per-record invoice, the amount and amount-in-words are the sum of
    every entry on the bill.
    """

    def __init__(
        self,
        store: TemplateStore,
        kind: ArtifactKind,
        output_dir: Union[str, Path, None] = None,
    ):
        if kind == ArtifactKind.REWORK_BILL:
            self.layout, self.file_prefix = REWORK_BILL_LAYOUT, "REWORK_BILL"
        elif kind == ArtifactKind.ADDITIONAL_BILL:
            self.layout, self.file_prefix = ADDITIONAL_BILL_LAYOUT, "ADDITIONAL_BILL"
        else:
            raise ValueError(f"Not a bill kind: {kind}")
        self.kind = kind
        self.store = store
        self.output_dir = Path(output_dir or settings.INVOICES_DIR)

    def filename(self, bill_no: str) -> str:
        prefix = settings.LR_PREFIX
        bill_only = bill_no.replace(prefix, "", 1).replace("/", "_")
        return f"{self.file_prefix}_{prefix.rstrip('/').replace('/', '_')}_{sanitize_filename(bill_only)}.xlsx"

    def _destination(self, entry: BillEntry) -> str:
        if self.kind == ArtifactKind.ADDITIONAL_BILL:
            return short_locations(entry.delivery_locations) or (entry.destination or "")
        return entry.destination or ""

    def render(self, bill_no: str, entries: List[BillEntry], submission_date: str) -> GeneratedArtifact:
        wb = self.store.get(self.layout.template_name)
        ws = wb.worksheets[0]
        ws[self.layout.cells["bill_no"]] = bill_no

        row = BILL_FIRST_ENTRY_ROW
        total = 0
        for serial, entry in enumerate(entries, start=1):
            values = {
                "serial": serial,
                "lr_date": entry.lr_date or "",
                "lr_no": prefixed_lr_no(entry.lr_no, settings.LR_PREFIX),
                "vehicle_no": entry.vehicle_no or "",
                "vehicle_type": entry.vehicle_type or "",
                "origin": entry.origin or "",
                "destination": self._destination(entry),
                "amount": entry.amount,
            }
            for key, column in BILL_COLUMNS.items():
                ws.cell(row=row, column=column, value=values[key])
            total += entry.amount
            row += 1

        ws.cell(row=row, column=BILL_COLUMNS["destination"], value="TOTAL").font = Font(bold=True)
        total_cell = ws.cell(row=row, column=BILL_COLUMNS["amount"], value=total)
        total_cell.font = Font(bold=True)
        ws.cell(row=row + 1, column=BILL_COLUMNS["serial"], value=amount_in_words(total))

        path = submission_folder(self.output_dir, submission_date) / self.filename(bill_no)
        wb.save(path)
        logger.info(
            "Bill rendered",
            extra={
                "extra_fields": {
                    "kind": self.kind.value,
                    "bill_no": bill_no,
                    "entries": len(entries),
                    "total": total,
                    "path": str(path),
                }
            },
        )
        return GeneratedArtifact(kind=self.kind, path=str(path))


def rework_entry(item: ClassifiedRecord) -> BillEntry:
    record = item.record
    return BillEntry(
        lr_no=record.lr_no,
        lr_date=record.lr_date,
        vehicle_no=record.vehicle_number,
        vehicle_type=item.classification.vehicle_type,
        origin=record.origin,
        destination=record.destination,
        amount=item.classification.effective_amount,
    )


def additional_entry(item: ClassifiedRecord) -> Optional[BillEntry]:
    """Additional-bill row for a record, or None when it earns no surcharge."""
    record, classification = item.record, item.classification
    if classification.category == BillCategory.ADDITIONAL:
        locations = destination_locations(record)
        amount = classification.effective_amount
    elif classification.additional_entry is not None:
        locations = classification.additional_entry.locations
        amount = classification.additional_entry.amount
    else:
        return None
    return BillEntry(
        lr_no=record.lr_no[len(ADDITIONAL_RECORD_PREFIX):]
        if record.lr_no.startswith(ADDITIONAL_RECORD_PREFIX) else record.lr_no,
        lr_date=record.lr_date,
        vehicle_no=record.vehicle_number,
        vehicle_type=classification.vehicle_type,
        origin=record.origin,
        destination=record.destination,
        delivery_locations=locations,
        amount=amount,
    )
