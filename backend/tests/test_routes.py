import pytest
from fastapi.testclient import TestClient

from conftest import SUBMISSION_DATE
from lr_billing.api.deps import get_orchestrator, get_template_store
from lr_billing.core.constants import ALL_TEMPLATES, LEDGER_TEMPLATE
from lr_billing.main import app
from lr_billing.services.orchestrator import BatchOrchestrator
from lr_billing.services.templates import TemplateStore


class NoPdf:
    async def to_pdf(self, document_path):
        return None


@pytest.fixture
def client(record_store, storage, template_store, output_dir):
    orchestrator = BatchOrchestrator(
        records=record_store,
        storage=storage,
        templates=template_store,
        output_dir=output_dir,
        pdf_renderer=NoPdf(),
        concurrency=2,
    )
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_template_store] = lambda: template_store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_and_metrics(client):
    assert client.get("/health").json() == {"status": "healthy", "service": "lr-billing"}
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "bills_generated_total" in response.text


def test_generate_bills_full_success(client):
    response = client.post(
        "/generate-bills",
        json={"recordIds": ["MT/25-26/101", "MT/25-26/102"], "submissionDate": SUBMISSION_DATE},
    )
    assert response.status_code == 200
    body = response.json()
    assert [r["lr_no"] for r in body["results"]] == ["MT/25-26/101", "MT/25-26/102"]
    assert body["errors"] == []
    assert body["ledger"]["rows_appended"] == 2


def test_generate_bills_partial_success(client):
    response = client.post(
        "/generate-bills",
        json={"lrNumbers": ["MT/25-26/101", "MT/25-26/999"], "submissionDate": SUBMISSION_DATE},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == {"requested": 2, "succeeded": 1, "failed": 1}
    assert body["errors"] == [{"lr_no": "MT/25-26/999", "error": "LR not found"}]


def test_generate_bills_all_failed(client):
    response = client.post(
        "/generate-bills",
        json={"recordIds": ["MT/25-26/998", "MT/25-26/999"], "submissionDate": SUBMISSION_DATE},
    )
    assert response.status_code == 500
    assert len(response.json()["errors"]) == 2


@pytest.mark.parametrize(
    "payload",
    [
        {"recordIds": [], "submissionDate": SUBMISSION_DATE},
        {"recordIds": ["MT/25-26/101"]},
        {"recordIds": ["MT/25-26/101"], "submissionDate": SUBMISSION_DATE, "concurrency": 0},
        {"recordIds": "MT/25-26/101", "submissionDate": SUBMISSION_DATE},
    ],
)
def test_generate_bills_bad_request(client, payload):
    assert client.post("/generate-bills", json=payload).status_code == 400


def test_generate_bills_missing_template(client, record_store, storage, output_dir, tmp_path):
    broken = BatchOrchestrator(
        records=record_store,
        storage=storage,
        templates=TemplateStore(tmp_path / "empty"),
        output_dir=output_dir,
        pdf_renderer=NoPdf(),
    )
    app.dependency_overrides[get_orchestrator] = lambda: broken

    response = client.post(
        "/generate-bills",
        json={"recordIds": ["MT/25-26/101"], "submissionDate": SUBMISSION_DATE},
    )
    assert response.status_code == 500
    assert "Template not found" in response.json()["detail"]


def test_generate_rework_bill(client):
    response = client.post(
        "/rework-bills/generate",
        json={
            "submissionDate": SUBMISSION_DATE,
            "billNo": "MT/25-26/R1",
            "entries": [
                {"LR No": "MT/25-26/102", "Vehicle Type": "TRUCK", "FROM": "KOLHAPUR", "TO": "SOLAPUR", "Amount": 9987},
                {"LR No": "MT/25-26/110", "Vehicle Type": "PICKUP", "FROM": "KOLHAPUR", "TO": "SOLAPUR", "Amount": 4400},
            ],
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "rework-bill"
    assert body["total_amount"] == 14387
    assert body["entries"] == 2
    assert body["path"].endswith("REWORK_BILL_MT_25-26_R1.xlsx")


def test_generate_additional_bill_requires_entries(client):
    response = client.post(
        "/additional-bills/generate",
        json={"submissionDate": SUBMISSION_DATE, "billNo": "A1", "entries": []},
    )
    assert response.status_code == 400


def test_template_health_all_present(client):
    response = client.get("/health/templates")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert [t["name"] for t in body["templates"]] == list(ALL_TEMPLATES)
    assert all(t["exists"] and t["path"] for t in body["templates"])


def test_template_health_reports_missing(client, templates_dir):
    (templates_dir / LEDGER_TEMPLATE).unlink()

    response = client.get("/health/templates")
    assert response.status_code == 500
    body = response.json()
    assert body["status"] == "missing"
    missing = [t for t in body["templates"] if not t["exists"]]
    assert missing == [{"name": LEDGER_TEMPLATE, "exists": False, "path": None}]
