"""Exception hierarchy for the billing pipeline."""


class BillingError(Exception):
    """Base class for all billing pipeline errors."""


class ConfigurationError(BillingError):
    """Deployment defect. Aborts the whole batch and is never retried."""


class TemplateNotFoundError(ConfigurationError):
    def __init__(self, template_name: str, path: str):
        super().__init__(f"Template not found: {template_name} ({path})")
        self.template_name = template_name
        self.path = path


class RecordError(BillingError):
    """Per-item failure: the record cannot be billed as it stands."""


class LedgerError(BillingError):
    """Raised when the aggregation ledger cannot be updated."""


class LedgerSectionNotFoundError(LedgerError):
    def __init__(self, vehicle_type: str):
        super().__init__(f"Vehicle type {vehicle_type} heading not found in Final Submission Sheet")
        self.vehicle_type = vehicle_type


class LedgerDateMismatchError(LedgerError):
    def __init__(self, existing: str, requested: str):
        super().__init__(
            f"Ledger already holds submission date {existing}; refusing to append entries for {requested}"
        )
        self.existing = existing
        self.requested = requested
