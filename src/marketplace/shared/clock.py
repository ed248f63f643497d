"""Wall-clock helpers. Timestamps are stored in UTC; surge pricing uses local hours."""

import os
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Africa/Kampala"


def utcnow() -> datetime:
    return datetime.now(UTC)


def marketplace_timezone() -> ZoneInfo:
    return ZoneInfo(os.getenv("MARKETPLACE_TIMEZONE", DEFAULT_TIMEZONE))


def local_hour(moment: datetime | None = None) -> int:
    """Hour of day (0-23) of ``moment`` in the marketplace's timezone."""
    moment = moment or utcnow()
    return moment.astimezone(marketplace_timezone()).hour


def local_date(moment: datetime) -> str:
    """ISO calendar date of ``moment`` in the marketplace's timezone."""
    return moment.astimezone(marketplace_timezone()).date().isoformat()
