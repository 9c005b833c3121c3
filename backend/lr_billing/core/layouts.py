"""
Fixed cell layouts of the billing templates.

Coordinates are constants of the template files; nothing here is derived from
record data.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from lr_billing.core.constants import (
    ADDITIONAL_BILL_TEMPLATE,
    INVOICE_TEMPLATE,
    LEDGER_TEMPLATE,
    REWORK_BILL_TEMPLATE,
    SHIPMENT_COPY_TEMPLATE,
)

# Multi-value fields get this many consecutive lines; extra values are dropped.
MULTI_VALUE_LINES = 3


@dataclass(frozen=True)
class DocumentLayout:
    template_name: str
    version: int
    cells: Mapping[str, str]
    # field -> (column letter, first row) of a MULTI_VALUE_LINES run
    runs: Mapping[str, Tuple[str, int]] = field(default_factory=dict)


SHIPMENT_COPY_LAYOUT = DocumentLayout(
    template_name=SHIPMENT_COPY_TEMPLATE,
    version=1,
    cells=MappingProxyType({
        "origin": "F4",
        "to": "F6",
        "lr_date": "F8",
        "material_supply_to": "F10",
        "vehicle_type": "F12",
        "vehicle_number": "F14",
        "lr_no": "F18",
        "koel_gate_entry_no": "F20",
        "koel_gate_entry_date": "F22",
        "weightslip_no": "F24",
        "loaded_weight": "F26",
        "empty_weight": "F28",
        "total_no_of_invoices": "F30",
        "invoice_no": "F32",
        "grr_no": "F34",
        "grr_date": "F36",
    }),
    runs=MappingProxyType({
        "consignor": ("B", 39),
        "consignee": ("F", 39),
        "description_of_goods": ("B", 44),
        "quantity": ("F", 44),
    }),
)

INVOICE_LAYOUT = DocumentLayout(
    template_name=INVOICE_TEMPLATE,
    version=1,
    cells=MappingProxyType({
        "lr_no": "E7",
        "bill_date": "E8",
        "vehicle_number": "E10",
        "vehicle_type": "E11",
        "invoice_no": "C14",
        "amount": "E14",
        "amount_words": "A37",
        "total": "E39",
    }),
)

# Rework and additional bills share one grid: banner cell plus entry rows.
BILL_CELLS = MappingProxyType({
    "bill_no": "C2",
})
BILL_FIRST_ENTRY_ROW = 4
BILL_COLUMNS = MappingProxyType({
    "serial": 2,
    "lr_date": 3,
    "lr_no": 4,
    "vehicle_no": 5,
    "vehicle_type": 6,
    "origin": 7,
    "destination": 8,
    "amount": 9,
})

REWORK_BILL_LAYOUT = DocumentLayout(template_name=REWORK_BILL_TEMPLATE, version=1, cells=BILL_CELLS)
ADDITIONAL_BILL_LAYOUT = DocumentLayout(template_name=ADDITIONAL_BILL_TEMPLATE, version=1, cells=BILL_CELLS)

LEDGER_LAYOUT = DocumentLayout(
    template_name=LEDGER_TEMPLATE,
    version=1,
    cells=MappingProxyType({
        "submission_date": "B5",
    }),
)
LEDGER_COLUMNS = MappingProxyType({
    "serial": 1,
    "lr_no": 2,
    "lr_date": 3,
    "vehicle_no": 4,
    "amount": 5,
    "bill_no": 6,
})
