"""
Response Envelopes

Tekmetric list endpoints answer in a few shapes. Records are taken from the
first shape that matches, in this order:

1. a bare list                      [...]
2. a Spring page                    {"content": [...]}
3. a data list                      {"data": [...]}
4. a data page                      {"data": {"content": [...]}}

Anything else yields no records.
"""

from typing import Any, Dict, List


def extract_records(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        records = payload
    elif not isinstance(payload, dict):
        records = []
    elif isinstance(payload.get("content"), list):
        records = payload["content"]
    elif isinstance(payload.get("data"), list):
        records = payload["data"]
    elif isinstance(payload.get("data"), dict) and isinstance(payload["data"].get("content"), list):
        records = payload["data"]["content"]
    else:
        records = []
    return [record for record in records if isinstance(record, dict)]


def total_pages(payload: Any) -> int:
    """Page count of a paged response (1 when not paged)"""
    if isinstance(payload, dict):
        page_info = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        pages = page_info.get("totalPages")
        if isinstance(pages, int) and pages > 0:
            return pages
    return 1
