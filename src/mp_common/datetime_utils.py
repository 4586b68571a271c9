"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def is_past(moment: datetime | None, now: datetime | None = None) -> bool:
    """True when ``moment`` is set and not later than ``now``.

    Naive datetimes are treated as UTC (asyncpg returns aware values for
    TIMESTAMPTZ, test doubles may not).
    """
    if moment is None:
        return False
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment <= (now or utc_now())
