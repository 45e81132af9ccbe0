"""URL helpers, envelopes and shop time."""

from datetime import date, datetime, timezone

import pytest

from app.panel.urls import page_origin, resolve_ro_id, scheduler_url
from app.services.envelopes import extract_records, total_pages
from app.services.shop_time import get_shop_timezone, local_midnight, parse_iso_datetime, to_utc_iso
from tests._helpers import SHOP_TZ


@pytest.mark.parametrize("url, fallback, expected", [
    ("https://shop.tekmetric.com/admin/shop/77/repair-orders/555/estimate", None, "555"),
    ("https://shop.tekmetric.com/admin/shop/77/repair-orders/555?aaRoId=999", None, "555"),
    ("https://shop.tekmetric.com/admin/shop/77/appointments?aaRoId=999", "555", "999"),
    ("https://shop.tekmetric.com/admin/shop/77/appointments?aaRoId=abc", "555", "555"),
    ("https://shop.tekmetric.com/admin/shop/77/appointments", "555", "555"),
    ("https://shop.tekmetric.com/admin/shop/77/appointments", None, None),
    (None, "555", "555"),
])
def test_resolve_ro_id(url, fallback, expected):
    assert resolve_ro_id(url, fallback) == expected


def test_page_origin():
    assert page_origin("https://shop.tekmetric.com/admin/shop/77?x=1") == "https://shop.tekmetric.com"
    assert page_origin("/repair-orders/555") == ""
    assert page_origin(None) == ""


def test_scheduler_url():
    url = scheduler_url("https://shop.tekmetric.com", 77, datetime(2026, 7, 15, 8, tzinfo=SHOP_TZ), "555")
    assert url == (
        "https://shop.tekmetric.com/admin/shop/77/appointments"
        "?date=2026-07-15T12%3A00%3A00Z&aaRoId=555"
    )
    assert "aaRoId" not in scheduler_url("https://shop.tekmetric.com", 77, datetime(2026, 7, 15, tzinfo=SHOP_TZ))


@pytest.mark.parametrize("payload, expected", [
    ([{"id": 1}, "x"], [{"id": 1}]),
    ({"content": [{"id": 2}]}, [{"id": 2}]),
    ({"data": [{"id": 3}]}, [{"id": 3}]),
    ({"data": {"content": [{"id": 4}]}}, [{"id": 4}]),
    ({"content": [{"id": 5}], "data": [{"id": 6}]}, [{"id": 5}]),
    ({"data": {"id": 7}}, []),
    ("nope", []),
    (None, []),
])
def test_extract_records(payload, expected):
    assert extract_records(payload) == expected


def test_total_pages():
    assert total_pages({"content": [], "totalPages": 3}) == 3
    assert total_pages({"data": {"content": [], "totalPages": 2}}) == 2
    assert total_pages({"content": []}) == 1
    assert total_pages([]) == 1


def test_shop_time(monkeypatch):
    monkeypatch.setenv("SHOP_TIMEZONE", "America/Chicago")
    chicago = get_shop_timezone()
    assert to_utc_iso(local_midnight(date(2026, 1, 15), chicago)) == "2026-01-15T06:00:00Z"

    assert parse_iso_datetime("2026-07-13T12:00:00Z") == datetime(2026, 7, 13, 12, tzinfo=timezone.utc)
    assert parse_iso_datetime("2026-07-13T12:00:00").tzinfo is timezone.utc
    with pytest.raises(ValueError):
        parse_iso_datetime("garbage")
