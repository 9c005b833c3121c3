import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Filesystem layout
    TEMPLATES_DIR: str = os.getenv("TEMPLATES_DIR", "templates")
    INVOICES_DIR: str = "invoices"

    # Object storage (local directory backed)
    STORAGE_DIR: str = "storage"
    STORAGE_PUBLIC_URL: str = ""

    # Optional JSON file seeding the bundled record store
    RECORDS_FILE: str = ""

    # Worker pools
    GENERATION_CONCURRENCY: int = 8
    UPLOAD_CONCURRENCY: int = 6

    # PDF renditions
    PDF_ENABLED: bool = False
    PDF_TIMEOUT_SECONDS: float = 60.0
    OFFICE_CONVERTER_BINARY: str = "soffice"
    BROWSER_BINARY: str = "chromium"

    # Billing rules
    REWORK_ORIGIN: str = "kolhapur"
    REWORK_DESTINATION: str = "solapur"
    LR_PREFIX: str = "MT/25-26/"

    class Config:
        env_file = ".env"

settings = Settings()
