"""Rate tables, template names and fixed labels used by the billing pipeline."""

VEHICLE_TYPES = ("PICKUP", "TRUCK", "TOROUS")

# Unknown vehicle categories are billed at the lowest tier.
DEFAULT_VEHICLE_TYPE = "PICKUP"

VEHICLE_AMOUNTS = {
    "PICKUP": 5500,
    "TRUCK": 12484,
    "TOROUS": 26933,
}

ADDITIONAL_BILL_AMOUNTS = {
    "PICKUP": 1200,
    "TRUCK": 1800,
    "TOROUS": 2400,
}

DRIVER_PAYMENTS = {
    "PICKUP": 3500,
    "TRUCK": 8000,
    "TOROUS": 17000,
}

REWORK_DRIVER_PAYMENTS = {
    "PICKUP": 2800,
    "TRUCK": 6400,
    "TOROUS": 13600,
}

REWORK_REVENUE_MULTIPLIER = 0.8

ADDITIONAL_RECORD_PREFIX = "ADDITIONAL-"

STATUS_BILL_DONE = "Bill Done"

# Template file names
SHIPMENT_COPY_TEMPLATE = "SAMPLE.xlsx"
INVOICE_TEMPLATE = "MANGESH TRANSPORT BILLING INVOICE COPY-1.xlsx"
REWORK_BILL_TEMPLATE = "REWORK BILL Format.xlsx"
ADDITIONAL_BILL_TEMPLATE = "Additional Bill Format.xlsx"
LEDGER_TEMPLATE = "Final Submission Sheet.xlsx"

ALL_TEMPLATES = (
    SHIPMENT_COPY_TEMPLATE,
    INVOICE_TEMPLATE,
    REWORK_BILL_TEMPLATE,
    ADDITIONAL_BILL_TEMPLATE,
    LEDGER_TEMPLATE,
)

# The ledger keeps the template's file name inside each submission folder.
LEDGER_FILENAME = LEDGER_TEMPLATE

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_CONTENT_TYPE = "application/pdf"
