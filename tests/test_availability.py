from datetime import date

import pytest

from tcreative.domain.scheduling.availability import (
    BASE_SLOTS,
    DEFAULT_WORK_DAYS,
    day_of_week,
    get_available_slots,
    get_work_days,
)

TODAY = date(2030, 1, 1)  # Tuesday


def test_day_of_week_counts_from_sunday():
    assert day_of_week(date(2030, 1, 6)) == 0  # Sunday
    assert day_of_week(date(2030, 1, 7)) == 1
    assert day_of_week(date(2030, 1, 12)) == 6


def test_unknown_assistant_works_weekdays():
    assert get_work_days("Somebody") == DEFAULT_WORK_DAYS


def test_slots_for_known_date_and_assistant():
    slots = get_available_slots("2030-01-07", "Trini", today=TODAY)
    assert slots == ["09:00", "12:00", "13:30", "15:00", "16:30"]


def test_slots_are_stable_and_drawn_from_base_slots():
    first = get_available_slots("2030-01-09", "Jade", today=TODAY)
    second = get_available_slots("2030-01-09", "Jade", today=TODAY)
    assert first == second
    assert set(first) <= set(BASE_SLOTS)


def test_no_slots_on_days_off():
    # Maya only works Tuesdays and Thursdays
    assert get_available_slots("2030-01-07", "Maya", today=TODAY) == []
    # Nobody works Sundays by default
    assert get_available_slots("2030-01-06", "Somebody", today=TODAY) == []


def test_today_and_past_dates_are_closed():
    assert get_available_slots("2030-01-01", "Aaliyah", today=TODAY) == []
    assert get_available_slots("2029-12-31", "Trini", today=TODAY) == []


def test_malformed_date_raises():
    with pytest.raises(ValueError):
        get_available_slots("01/07/2030", "Trini", today=TODAY)


def test_slots_endpoint(client):
    response = client.get("/availability/slots", params={"date": "2099-01-05", "assistant": "Trini"})
    assert response.status_code == 200
    body = response.json()
    assert body["workDays"] == [1, 3, 5, 6]
    assert set(body["slots"]) <= set(BASE_SLOTS)


def test_slots_endpoint_rejects_bad_date(client):
    response = client.get("/availability/slots", params={"date": "tomorrow", "assistant": "Trini"})
    assert response.status_code == 400
