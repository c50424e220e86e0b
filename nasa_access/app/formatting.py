"""
Date and size helpers shared by the endpoint operations.
"""

from datetime import date, datetime
from typing import Optional, Union

APOD_FIRST_DATE = date(1995, 6, 16)

DateLike = Union[date, datetime, str]


def _to_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def format_date_for_api(value: Optional[DateLike]) -> Optional[str]:
    """Return ``YYYY-MM-DD`` or None when the value is empty or unparseable."""
    parsed = _to_date(value)
    return parsed.isoformat() if parsed else None


def is_valid_apod_date(value: Optional[DateLike], today: Optional[date] = None) -> bool:
    """APOD exists for every day from 1995-06-16 through today."""
    parsed = _to_date(value)
    if parsed is None:
        return False
    return APOD_FIRST_DATE <= parsed <= (today or date.today())


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(size / (1024 ** exponent), 2)
    return f"{value:g} {units[exponent]}"
