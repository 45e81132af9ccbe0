"""
URL helpers

Repair order id resolution from the host page URL, and scheduler links.
"""

import re
from datetime import datetime
from typing import Optional
from urllib.parse import urlsplit, parse_qs, urlencode

from app.services.shop_time import to_utc_iso

RO_ID_QUERY_PARAM = "aaRoId"

_RO_PATH_PATTERN = re.compile(r"repair-orders/(\d+)")


def ro_id_from_path(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    match = _RO_PATH_PATTERN.search(urlsplit(url).path)
    return match.group(1) if match else None


def ro_id_from_query(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    values = parse_qs(urlsplit(url).query).get(RO_ID_QUERY_PARAM, [])
    if values and values[0].isdigit():
        return values[0]
    return None


def resolve_ro_id(url: Optional[str], fallback: Optional[str] = None) -> Optional[str]:
    """Path segment first, then the query parameter, then the persisted id"""
    return ro_id_from_path(url) or ro_id_from_query(url) or fallback


def page_origin(url: Optional[str]) -> str:
    if not url:
        return ""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def scheduler_url(origin: str, shop_id, moment: datetime, source_ro_id: Optional[str] = None) -> str:
    """Link to the shop's appointment calendar, carrying the RO id back to the panel"""
    params = {"date": to_utc_iso(moment)}
    if source_ro_id:
        params[RO_ID_QUERY_PARAM] = source_ro_id
    return f"{origin}/admin/shop/{shop_id}/appointments?{urlencode(params)}"
