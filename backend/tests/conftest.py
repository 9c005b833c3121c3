import os
import sys

import pytest

# Add backend to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from lr_billing.schemas import ShipmentRecord
from lr_billing.services.records import InMemoryRecordStore
from lr_billing.services.storage import LocalObjectStorage
from lr_billing.services.template_factory import build_default_templates
from lr_billing.services.templates import TemplateStore

SUBMISSION_DATE = "2025-11-05"


def make_record(lr_no, vehicle_type="TRUCK", **fields) -> ShipmentRecord:
    data = {
        "LR No": lr_no,
        "LR Date": "2025-11-01",
        "Vehicle Type": vehicle_type,
        "Vehicle Number": "mh09 ab 1234",
        "FROM": "Kagal",
        "TO": "Pune",
        "Consignor": "KOEL KAGAL",
        "Consignee": "KASTURI STEELS PVT LTD",
        "Koel Gate Entry No": "GE-17",
        "Koel Gate Entry Date": "2025-11-01",
        "Weightslip No": "WS-5",
        "Loaded Weight": "12500",
        "Empty Weight": "4500",
        "Total No of Invoices": "1",
        "Invoice No": "INV-9",
    }
    data.update(fields)
    return ShipmentRecord.model_validate(data)


@pytest.fixture
def templates_dir(tmp_path):
    directory = tmp_path / "templates"
    build_default_templates(directory)
    return directory


@pytest.fixture
def template_store(templates_dir):
    return TemplateStore(templates_dir)


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "invoices"


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(tmp_path / "storage", public_url="https://files.example.com")


@pytest.fixture
def records():
    return [
        make_record("MT/25-26/101", "PICKUP"),
        make_record("MT/25-26/102", "TRUCK", FROM="Kolhapur", TO="Solapur"),
        make_record("MT/25-26/103", "TOROUS", Consignee="VP PLANT/KASTURI STEELS/ABC FORGE"),
    ]


@pytest.fixture
def record_store(records):
    return InMemoryRecordStore(records)
