"""
Shop Time

Shop-local calendar helpers shared by the proxy and the panel.
"""

import os
from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo


def get_shop_timezone() -> tzinfo:
    """Shop timezone from SHOP_TIMEZONE (default America/New_York)"""
    return ZoneInfo(os.getenv("SHOP_TIMEZONE", "America/New_York"))


def local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def to_utc_iso(moment: datetime) -> str:
    """ISO-8601 in UTC with a Z suffix"""
    utc = moment.astimezone(timezone.utc).replace(microsecond=0)
    return utc.isoformat().replace("+00:00", "Z")


def parse_iso_datetime(value) -> datetime:
    """Parse ISO-8601 (accepts a trailing Z); naive values are taken as UTC"""
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
