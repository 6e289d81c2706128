"""
Timezone-aware timestamps for models and API responses
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Aware UTC now; used as the ``created_at`` column default"""
    return datetime.now(timezone.utc)


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    """
    ISO-8601 string for JSON output

    Naive values (SQLite drops the offset) are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
