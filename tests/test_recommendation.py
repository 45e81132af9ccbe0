"""Smart recommendation and Mon-Fri date window."""

from datetime import date, timedelta

import pytest

from app.panel.recommendation import (
    add_months,
    date_key,
    five_day_window,
    format_miles,
    is_valid_mile_interval,
    is_valid_month_interval,
    mile_options,
    miles_for_month_interval,
    month_options,
    recommend,
    week_key,
)

TODAY = date(2026, 1, 15)


@pytest.mark.parametrize("months", range(3, 13))
def test_recommended_date_is_calendar_months_ahead(months):
    rec = recommend(months, 6000, 45000, TODAY)
    expected_year = 2026 + months // 12
    expected_month = months % 12 + 1
    assert rec.date == date(expected_year, expected_month, 15)


def test_recommended_mileage_adds_interval():
    assert recommend(6, 7000, 45000, TODAY).mileage == 52000
    assert recommend(6, 7000, 45123.7, TODAY).mileage == 52123


@pytest.mark.parametrize("mileage", [None, float("nan"), float("inf"), "45000", True])
def test_recommended_mileage_absent_without_finite_mileage(mileage):
    assert recommend(6, 6000, mileage, TODAY).mileage is None


def test_add_months_clamps_to_month_end():
    assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months(date(2027, 8, 31), 6) == date(2028, 2, 29)
    assert add_months(date(2026, 10, 31), 3) == date(2027, 1, 31)


def test_recommend_is_idempotent():
    assert recommend(9, 9000, 30000, TODAY) == recommend(9, 9000, 30000, TODAY)


@pytest.mark.parametrize("offset", range(14))
def test_window_is_monday_to_friday(offset):
    base = date(2026, 7, 13) + timedelta(days=offset)
    window = five_day_window(base)

    assert len(window) == 5
    assert window[0].weekday() == 0
    assert window[-1].weekday() == 4
    assert all((b - a).days == 1 for a, b in zip(window, window[1:]))
    # Anchored to the Monday of base's own week
    assert 0 <= (base - window[0]).days <= 6


def test_weekend_anchors_to_same_week_monday():
    saturday, sunday = date(2026, 7, 18), date(2026, 7, 19)
    assert five_day_window(saturday)[0] == date(2026, 7, 13)
    assert five_day_window(sunday)[0] == date(2026, 7, 13)
    assert sunday not in five_day_window(sunday)


def test_keys():
    window = five_day_window(date(2026, 7, 15))
    assert date_key(window[0]) == "2026-07-13"
    assert week_key(77, window) == "77:2026-07-13:2026-07-17"


def test_interval_ranges():
    assert month_options() == list(range(3, 13))
    assert mile_options()[0] == 3000 and mile_options()[-1] == 15000
    assert len(mile_options()) == 13

    assert is_valid_month_interval(3) and is_valid_month_interval(12)
    assert not is_valid_month_interval(2)
    assert not is_valid_month_interval(13)
    assert not is_valid_month_interval(True)

    assert is_valid_mile_interval(9000)
    assert not is_valid_mile_interval(9500)
    assert not is_valid_mile_interval(16000)

    assert miles_for_month_interval(9) == 9000


def test_format_miles():
    assert format_miles(51000) == "51,000"
    assert format_miles(6000) == "6,000"
