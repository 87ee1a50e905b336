"""
Slot availability for the client booking calendar.

Availability is derived, not stored: each assistant works fixed weekdays and a
stable pseudo-random subset of the studio's base slots is offered per day.
The same date and assistant always produce the same slots.
"""

from datetime import date, datetime
from typing import Optional

BASE_SLOTS = ["09:00", "10:30", "12:00", "13:30", "15:00", "16:30"]

# Day numbers count from Sunday = 0
WORK_DAYS: dict[str, list[int]] = {
    "Trini": [1, 3, 5, 6],  # Mon, Wed, Fri, Sat
    "Aaliyah": [2, 4, 6],  # Tue, Thu, Sat
    "Jade": [1, 3, 5, 6],  # Mon, Wed, Fri, Sat
    "Maya": [2, 4],  # Tue, Thu
}
DEFAULT_WORK_DAYS = [1, 2, 3, 4, 5]


def day_of_week(day: date) -> int:
    """Sunday-based weekday number (Sunday=0 ... Saturday=6)"""
    return (day.weekday() + 1) % 7


def get_work_days(assistant: str) -> list[int]:
    return WORK_DAYS.get(assistant, DEFAULT_WORK_DAYS)


def slot_seed(date_str: str, assistant: str) -> int:
    return sum(ord(ch) for ch in date_str + assistant)


def get_available_slots(date_str: str, assistant: str, today: Optional[date] = None) -> list[str]:
    """
    Return the open "HH:MM" slots for an assistant on a YYYY-MM-DD date.

    Past dates and today are never bookable. Raises ValueError for a
    malformed date string.
    """
    day = datetime.strptime(date_str, "%Y-%m-%d").date()
    if today is None:
        today = date.today()
    if day <= today:
        return []

    if day_of_week(day) not in get_work_days(assistant):
        return []

    seed = slot_seed(date_str, assistant)
    return [slot for i, slot in enumerate(BASE_SLOTS) if (seed * (i + 1)) % 7 > 1]
