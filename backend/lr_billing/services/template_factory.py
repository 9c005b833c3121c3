"""
Builds the starter billing templates with the fixed layouts in `core.layouts`.

Deployments normally ship their own branded templates with the same cell
coordinates; these are used for fresh installs and in the test-suite.
"""

from pathlib import Path
from typing import Dict, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from lr_billing.core.constants import VEHICLE_TYPES
from lr_billing.core.layouts import (
    ADDITIONAL_BILL_LAYOUT,
    BILL_CELLS,
    BILL_COLUMNS,
    INVOICE_LAYOUT,
    LEDGER_COLUMNS,
    LEDGER_LAYOUT,
    MULTI_VALUE_LINES,
    REWORK_BILL_LAYOUT,
    SHIPMENT_COPY_LAYOUT,
)

THIN = Side(style="thin")
BOX = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
HEADER_FILL = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
RUPEE_FORMAT = '0"/-RS"'

SHIPMENT_LABELS = {
    "origin": "FROM",
    "to": "TO",
    "lr_date": "LR DATE",
    "material_supply_to": "MATERIAL SUPPLY TO",
    "vehicle_type": "VEHICLE TYPE",
    "vehicle_number": "VEHICLE NUMBER",
    "lr_no": "LR NO",
    "koel_gate_entry_no": "KOEL GATE ENTRY NO",
    "koel_gate_entry_date": "KOEL GATE ENTRY DATE",
    "weightslip_no": "WEIGHTSLIP NO",
    "loaded_weight": "LOADED WEIGHT",
    "empty_weight": "EMPTY WEIGHT",
    "total_no_of_invoices": "TOTAL NO OF INVOICES",
    "invoice_no": "INVOICE NO",
    "grr_no": "GRR NO",
    "grr_date": "GRR DATE",
}

SHIPMENT_RUN_LABELS = {
    "consignor": "CONSIGNOR",
    "consignee": "CONSIGNEE",
    "description_of_goods": "DESCRIPTION OF GOODS",
    "quantity": "QUANTITY",
}

# Shown when the record leaves the field empty.
SHIPMENT_DEFAULTS = {
    "grr_no": "-",
    "grr_date": "-",
}

LEDGER_HEADERS = {
    "serial": "SR NO",
    "lr_no": "LR NO",
    "lr_date": "LR DATE",
    "vehicle_no": "VEHICLE NO",
    "amount": "AMOUNT",
    "bill_no": "BILL NO",
}

BILL_HEADERS = {
    "serial": "SR NO",
    "lr_date": "LR DATE",
    "lr_no": "LR NO",
    "vehicle_no": "VEHICLE NO",
    "vehicle_type": "VEHICLE TYPE",
    "origin": "FROM",
    "amount": "AMOUNT",
}


def _a4(ws) -> None:
    ws.page_setup.paperSize = ws.PAPERSIZE_A4
    ws.page_setup.orientation = ws.ORIENTATION_PORTRAIT
    ws.page_setup.fitToWidth = 1
    ws.sheet_properties.pageSetUpPr.fitToPage = True


def build_shipment_copy() -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = "LR"
    _a4(ws)
    ws["B2"] = "MANGESH TRANSPORT - LORRY RECEIPT"
    ws["B2"].font = Font(bold=True, size=14)

    for field_name, coordinate in SHIPMENT_COPY_LAYOUT.cells.items():
        row = ws[coordinate].row
        ws.cell(row=row, column=2, value=SHIPMENT_LABELS[field_name]).font = Font(bold=True)
        if field_name in SHIPMENT_DEFAULTS:
            ws[coordinate] = SHIPMENT_DEFAULTS[field_name]

    for field_name, (column, first_row) in SHIPMENT_COPY_LAYOUT.runs.items():
        label = ws[f"{column}{first_row - 1}"]
        label.value = SHIPMENT_RUN_LABELS[field_name]
        label.font = Font(bold=True)
        for offset in range(MULTI_VALUE_LINES):
            ws[f"{column}{first_row + offset}"].border = Border(bottom=THIN)

    ws.column_dimensions["B"].width = 28
    ws.column_dimensions["F"].width = 36
    return wb


def build_invoice() -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = "INVOICE"
    _a4(ws)
    cells = INVOICE_LAYOUT.cells
    ws["A2"] = "MANGESH TRANSPORT"
    ws["A2"].font = Font(bold=True, size=16)
    ws["A3"] = "BILLING INVOICE"
    labels = {
        "lr_no": "BILL NO",
        "bill_date": "DATE",
        "vehicle_number": "VEHICLE NO",
        "vehicle_type": "VEHICLE TYPE",
    }
    for field_name, label in labels.items():
        row = ws[cells[field_name]].row
        ws.cell(row=row, column=4, value=label).font = Font(bold=True)

    ws["A13"] = "SR NO"
    ws["B13"] = "PARTICULARS"
    ws["C13"] = "INVOICE NO"
    ws["E13"] = "AMOUNT"
    for coordinate in ("A13", "B13", "C13", "E13"):
        ws[coordinate].font = Font(bold=True)
        ws[coordinate].fill = HEADER_FILL
    ws["A14"] = 1
    ws["B14"] = "TRANSPORTATION CHARGES"
    ws.merge_cells("C14:D14")

    ws.merge_cells("A37:D37")
    ws["A36"] = "AMOUNT IN WORDS"
    ws["A36"].font = Font(bold=True)
    ws["D39"] = "TOTAL"
    ws["D39"].font = Font(bold=True)
    for coordinate in (cells["amount"], cells["total"]):
        ws[coordinate].number_format = RUPEE_FORMAT
    ws[cells["amount_words"]].alignment = Alignment(wrap_text=True)

    for column, width in (("A", 10), ("B", 30), ("C", 14), ("D", 16), ("E", 18)):
        ws.column_dimensions[column].width = width
    return wb


def build_bill(title: str, destination_header: str) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = "BILL"
    _a4(ws)
    ws["A1"] = title
    ws["A1"].font = Font(bold=True, size=14)
    banner = ws[BILL_CELLS["bill_no"]]
    label = ws.cell(row=banner.row, column=banner.column - 1, value="BILL NO")
    label.font = Font(bold=True)

    headers = dict(BILL_HEADERS, destination=destination_header)
    for key, column in BILL_COLUMNS.items():
        cell = ws.cell(row=3, column=column, value=headers[key])
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL
        cell.border = BOX
        ws.column_dimensions[get_column_letter(column)].width = 16
    return wb


def build_ledger() -> Workbook:
    """
    Final submission sheet: a banner plus one section per vehicle type.

    Each section is a heading row (vehicle type in column A), a column-header
    row, and one blank separator row where entries get inserted.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "SUBMISSION"
    _a4(ws)
    ws["A1"] = "FINAL SUBMISSION SHEET"
    ws["A1"].font = Font(bold=True, size=14)
    ws["A5"] = "SUBMISSION DATE"
    ws["A5"].font = Font(bold=True)

    row = 7
    for vehicle_type in VEHICLE_TYPES:
        ws.cell(row=row, column=1, value=vehicle_type).font = Font(bold=True, size=12)
        for key, column in LEDGER_COLUMNS.items():
            cell = ws.cell(row=row + 1, column=column, value=LEDGER_HEADERS[key])
            cell.font = Font(bold=True)
            cell.border = BOX
            cell.alignment = Alignment(horizontal="center")
        row += 3

    for column, width in zip("ABCDEF", (10, 22, 14, 16, 12, 22)):
        ws.column_dimensions[column].width = width
    return wb


def default_templates() -> Dict[str, Workbook]:
    return {
        SHIPMENT_COPY_LAYOUT.template_name: build_shipment_copy(),
        INVOICE_LAYOUT.template_name: build_invoice(),
        REWORK_BILL_LAYOUT.template_name: build_bill("REWORK BILL", "TO"),
        ADDITIONAL_BILL_LAYOUT.template_name: build_bill("ADDITIONAL BILL", "DESTINATION"),
        LEDGER_LAYOUT.template_name: build_ledger(),
    }


def build_default_templates(directory: Union[str, Path], overwrite: bool = False) -> Dict[str, Path]:
    """
    Write the starter templates into `directory`.

    Args:
        directory: Target folder, created if missing.
        overwrite: Replace templates that already exist.

    Returns:
        Mapping of template name to written (or existing) path.
    """
    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    written = {}
    for name, workbook in default_templates().items():
        path = target / name
        if overwrite or not path.exists():
            workbook.save(path)
        written[name] = path
    return written
