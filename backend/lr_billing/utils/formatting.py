# lr_billing/utils/formatting.py

import re
from datetime import date, datetime
from typing import List, Optional

_PATH_HOSTILE = re.compile(r'[/\\:*?"<>|]')

DISPLAY_DATE_FORMAT = "%d-%m-%Y"


def sanitize_filename(value: str) -> str:
    """
    Replace characters that are unsafe in file names with '-'.
    Example: "MT/25-26/101" -> "MT-25-26-101"
    """
    return _PATH_HOSTILE.sub("-", value.strip())


def split_names(value: Optional[str]) -> List[str]:
    """Split a slash-delimited field into trimmed, non-empty tokens."""
    if not value:
        return []
    return [part.strip() for part in str(value).split("/") if part.strip()]


def extract_first_word(text: str) -> str:
    """
    First run of ASCII letters in `text`.
    Example: "KASTURI STEELS PVT LTD" -> "KASTURI", "12-VP Plant" -> "VP"
    """
    match = re.search(r"[A-Za-z]+", text or "")
    return match.group(0) if match else ""


def short_locations(names: List[str]) -> str:
    """Join the first word of each location with '/'."""
    words = [extract_first_word(name) for name in names]
    return "/".join(w for w in words if w)


def format_display_date(value: Optional[str]) -> str:
    """
    Render an ISO date (YYYY-MM-DD) as DD-MM-YYYY; anything else is upper-cased as-is.
    """
    if not value:
        return ""
    text = str(value).strip()
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").strftime(DISPLAY_DATE_FORMAT)
    except ValueError:
        return text.upper()


def today_display() -> str:
    """Today's date as DD/MM/YYYY."""
    return date.today().strftime("%d/%m/%Y")


def prefixed_lr_no(lr_no: str, prefix: str) -> str:
    """
    Ensure the LR number carries `prefix` exactly once.
    Example: ("MT/25-26/MT/25-26/101", "MT/25-26/") -> "MT/25-26/101"
    """
    clean = lr_no or ""
    while prefix and clean.startswith(prefix):
        clean = clean[len(prefix):]
    return f"{prefix}{clean}" if clean else ""
