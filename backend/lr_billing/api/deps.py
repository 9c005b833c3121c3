from functools import lru_cache

from lr_billing.core.config import settings
from lr_billing.services.orchestrator import BatchOrchestrator
from lr_billing.services.pdf_renderer import PdfRenderer
from lr_billing.services.records import InMemoryRecordStore
from lr_billing.services.storage import LocalObjectStorage
from lr_billing.services.templates import TemplateStore


@lru_cache
def get_record_store() -> InMemoryRecordStore:
    if settings.RECORDS_FILE:
        return InMemoryRecordStore.from_json_file(settings.RECORDS_FILE)
    return InMemoryRecordStore()


@lru_cache
def get_template_store() -> TemplateStore:
    return TemplateStore(settings.TEMPLATES_DIR)


@lru_cache
def get_orchestrator() -> BatchOrchestrator:
    return BatchOrchestrator(
        records=get_record_store(),
        storage=LocalObjectStorage(settings.STORAGE_DIR, settings.STORAGE_PUBLIC_URL),
        templates=get_template_store(),
        output_dir=settings.INVOICES_DIR,
        pdf_renderer=PdfRenderer(),
    )
