from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BillCategory(str, Enum):
    REGULAR = "regular"
    REWORK = "rework"
    ADDITIONAL = "additional"


class ArtifactKind(str, Enum):
    SHIPMENT_COPY = "shipment-copy"
    INVOICE = "invoice"
    REWORK_BILL = "rework-bill"
    ADDITIONAL_BILL = "additional-bill"
    LEDGER = "ledger"
    PDF = "pdf"


class ShipmentRecord(BaseModel):
    """
    One Lorry Receipt as stored by the record store.

    Field aliases match the column names used by the record store so rows can be
    validated straight from its JSON.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    lr_no: str = Field(..., alias="LR No", description="Unique, immutable record number.")
    lr_date: Optional[str] = Field(None, alias="LR Date")
    vehicle_type: Optional[str] = Field(None, alias="Vehicle Type")
    vehicle_number: Optional[str] = Field(None, alias="Vehicle Number")
    origin: Optional[str] = Field(None, alias="FROM")
    destination: Optional[str] = Field(None, alias="TO")
    consignor: Optional[str] = Field(None, alias="Consignor", description="Slash-delimited consignor names.")
    consignee: Optional[str] = Field(
        None, alias="Consignee", description="Slash-delimited consignee names; order is significant."
    )
    material_supply_to: Optional[str] = Field(None, alias="Material Supply To")
    koel_gate_entry_no: Optional[str] = Field(None, alias="Koel Gate Entry No")
    koel_gate_entry_date: Optional[str] = Field(None, alias="Koel Gate Entry Date")
    weightslip_no: Optional[str] = Field(None, alias="Weightslip No")
    loaded_weight: Optional[str] = Field(None, alias="Loaded Weight")
    empty_weight: Optional[str] = Field(None, alias="Empty Weight")
    total_no_of_invoices: Optional[str] = Field(None, alias="Total No of Invoices")
    invoice_no: Optional[str] = Field(None, alias="Invoice No")
    grr_no: Optional[str] = Field(None, alias="GRR No")
    grr_date: Optional[str] = Field(None, alias="GRR Date")
    description_of_goods: Optional[str] = Field(None, alias="Description of Goods")
    quantity: Optional[str] = Field(None, alias="Quantity")
    amount: Optional[float] = Field(None, alias="Amount", description="Only set on standalone additional records.")
    status: Optional[str] = Field(None, alias="status")
    bill_submission_date: Optional[str] = Field(None, alias="Bill Submission Date")


class AdditionalEntry(BaseModel):
    """Surcharge for a consignment delivered to more than one destination."""
    amount: int
    destination_count: int
    locations: List[str] = Field(default_factory=list)


class BillClassification(BaseModel):
    category: BillCategory
    vehicle_type: Optional[str] = Field(None, description="Normalized vehicle category; None when missing.")
    base_amount: int = 0
    effective_amount: int = 0
    driver_payment: int = 0
    destination_count: int = 1
    additional_entry: Optional[AdditionalEntry] = None
    needs_review: bool = Field(False, description="Set when the record cannot be priced as it stands.")


class ClassifiedRecord(BaseModel):
    record: ShipmentRecord
    classification: BillClassification


class GeneratedArtifact(BaseModel):
    kind: ArtifactKind
    path: str
    source_kind: Optional[ArtifactKind] = Field(None, description="For PDF renditions, the document they render.")


class UploadResult(BaseModel):
    file: str
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


class ItemSuccess(BaseModel):
    lr_no: str
    success: bool = True
    category: BillCategory
    amount: int
    additional_amount: Optional[int] = None
    files: List[GeneratedArtifact]
    uploads: List[UploadResult] = Field(default_factory=list)
    pdf_available: Optional[bool] = None


class ItemError(BaseModel):
    lr_no: str
    error: str


class BillDocumentResult(BaseModel):
    bill_no: str
    kind: ArtifactKind
    path: str
    total_amount: int
    entries: int
    upload: Optional[UploadResult] = None


class LedgerOutcome(BaseModel):
    path: Optional[str] = None
    rows_appended: int = 0
    upload: Optional[UploadResult] = None
    error: Optional[str] = None


class BatchSummary(BaseModel):
    requested: int
    succeeded: int
    failed: int


class BatchResult(BaseModel):
    submission_date: str
    results: List[ItemSuccess] = Field(default_factory=list)
    errors: List[ItemError] = Field(default_factory=list)
    ledger: Optional[LedgerOutcome] = None
    bills: List[BillDocumentResult] = Field(default_factory=list)
    bill_errors: List[str] = Field(default_factory=list)
    summary: BatchSummary


class GenerateBillsRequest(BaseModel):
    """
    Body of the batch entry point. `lrNumbers` is accepted as an alias of `recordIds`.
    """
    model_config = ConfigDict(populate_by_name=True)

    record_ids: List[str] = Field(default_factory=list, alias="recordIds")
    lr_numbers: List[str] = Field(default_factory=list, alias="lrNumbers")
    submission_date: Optional[str] = Field(None, alias="submissionDate")
    concurrency: Optional[int] = Field(None, ge=1, le=32)
    generate_pdf: Optional[bool] = Field(None, alias="generatePdf")
    rework_bill_no: Optional[str] = Field(None, alias="reworkBillNo")
    additional_bill_no: Optional[str] = Field(None, alias="additionalBillNo")

    def ids(self) -> List[str]:
        return self.record_ids or self.lr_numbers


class BillEntry(BaseModel):
    """One row of a rework or additional bill."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    lr_no: str = Field(..., alias="LR No")
    lr_date: Optional[str] = Field(None, alias="LR Date")
    vehicle_no: Optional[str] = Field(None, alias="Vehicle No")
    vehicle_type: Optional[str] = Field(None, alias="Vehicle Type")
    origin: Optional[str] = Field(None, alias="FROM")
    destination: Optional[str] = Field(None, alias="TO")
    delivery_locations: List[str] = Field(default_factory=list, alias="Delivery Locations")
    amount: int = Field(0, alias="Amount")


class BillRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submission_date: Optional[str] = Field(None, alias="submissionDate")
    bill_no: Optional[str] = Field(None, alias="billNo")
    entries: List[BillEntry] = Field(default_factory=list)
