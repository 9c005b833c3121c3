"""
Bill classification and pricing for shipment records.

Pure functions, no I/O. `classify` never raises: a record that cannot be
priced comes back with `needs_review` set so one bad record cannot break a
batch.
"""

from typing import List, Optional

from lr_billing.core.config import settings
from lr_billing.core.constants import (
    ADDITIONAL_BILL_AMOUNTS,
    ADDITIONAL_RECORD_PREFIX,
    DEFAULT_VEHICLE_TYPE,
    DRIVER_PAYMENTS,
    REWORK_DRIVER_PAYMENTS,
    REWORK_REVENUE_MULTIPLIER,
    VEHICLE_AMOUNTS,
    VEHICLE_TYPES,
)
from lr_billing.schemas import AdditionalEntry, BillCategory, BillClassification, ShipmentRecord
from lr_billing.utils.formatting import split_names


def normalize_vehicle_type(value: Optional[str]) -> Optional[str]:
    """Upper-case a known vehicle type; unknown types fall back to the lowest tier, blanks to None."""
    if value is None or not str(value).strip():
        return None
    upper = str(value).strip().upper()
    return upper if upper in VEHICLE_TYPES else DEFAULT_VEHICLE_TYPE


def is_rework_route(origin: Optional[str], destination: Optional[str]) -> bool:
    f = (origin or "").strip().lower()
    t = (destination or "").strip().lower()
    return f == settings.REWORK_ORIGIN.lower() and t == settings.REWORK_DESTINATION.lower()


def rework_amount(base_amount: int) -> int:
    # half-up to whole rupees
    return int(base_amount * REWORK_REVENUE_MULTIPLIER + 0.5)


def destination_locations(record: ShipmentRecord) -> List[str]:
    """Delivery locations from the consignee list, or from the TO field when there is no consignee."""
    locations = split_names(record.consignee)
    if not locations:
        locations = split_names(record.destination)
    return locations


def additional_entry_for(vehicle_type: str, locations: List[str]) -> Optional[AdditionalEntry]:
    """Surcharge entry for multi-destination deliveries; a single destination never qualifies."""
    count = len(locations)
    if count < 2:
        return None
    rate = ADDITIONAL_BILL_AMOUNTS.get(vehicle_type, 0)
    return AdditionalEntry(amount=rate * (count - 1), destination_count=count, locations=locations)


def _standalone_additional(record: ShipmentRecord, vehicle_type: Optional[str], count: int) -> BillClassification:
    try:
        amount = int(round(float(record.amount or 0)))
    except (TypeError, ValueError):
        amount = 0
    return BillClassification(
        category=BillCategory.ADDITIONAL,
        vehicle_type=vehicle_type,
        base_amount=amount,
        effective_amount=amount,
        driver_payment=0,
        destination_count=count,
        needs_review=amount <= 0,
    )


def classify(record: ShipmentRecord) -> BillClassification:
    """
    Decide the bill category of a record and compute its amounts.

    Rules, in priority order:
      1. Rework: fixed origin/destination pair, billed at 80% of the base amount.
      2. Additional: two or more delivery locations add a surcharge entry,
         while the record is still billed regular at its base amount.
      3. Regular: base amount for the vehicle type.

    Records numbered ADDITIONAL-... are standalone surcharge records carrying
    their own amount.

    Args:
        record: The shipment record to classify.

    Returns:
        BillClassification: category, amounts and the optional additional entry.
    """
    vehicle_type = normalize_vehicle_type(record.vehicle_type)
    locations = destination_locations(record)
    count = max(len(locations), 1)

    if (record.lr_no or "").startswith(ADDITIONAL_RECORD_PREFIX):
        return _standalone_additional(record, vehicle_type, count)

    if vehicle_type is None:
        return BillClassification(
            category=BillCategory.REGULAR,
            vehicle_type=None,
            destination_count=count,
            needs_review=True,
        )

    base = VEHICLE_AMOUNTS[vehicle_type]

    if is_rework_route(record.origin, record.destination):
        return BillClassification(
            category=BillCategory.REWORK,
            vehicle_type=vehicle_type,
            base_amount=base,
            effective_amount=rework_amount(base),
            driver_payment=REWORK_DRIVER_PAYMENTS.get(vehicle_type, 0),
            destination_count=count,
        )

    return BillClassification(
        category=BillCategory.REGULAR,
        vehicle_type=vehicle_type,
        base_amount=base,
        effective_amount=base,
        driver_payment=DRIVER_PAYMENTS.get(vehicle_type, 0),
        destination_count=count,
        additional_entry=additional_entry_for(vehicle_type, locations),
    )

