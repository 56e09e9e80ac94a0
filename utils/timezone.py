"""UTC timestamps for every stored row. Stores stamp, services never do."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Stores call this for created_at/updated_at; nothing in the catalog
    should use datetime.now() directly.
    """
    return datetime.now(timezone.utc)
