from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now. SQLite DateTime columns drop tzinfo, so we never store it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
