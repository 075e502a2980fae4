"""Helpers for the MM-DD-YYYY dates used throughout the registration form."""

from __future__ import annotations

import re
from datetime import date

MMDDYYYY_RE = re.compile(r"^\d{2}-\d{2}-\d{4}$")
ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value: str) -> date | None:
    """Parse MM-DD-YYYY into a date, or None when it is not a real calendar date."""
    if not isinstance(value, str) or not MMDDYYYY_RE.match(value):
        return None
    month, day, year = (int(part) for part in value.split("-"))
    try:
        return date(year, month, day)
    except ValueError:
        return None


def is_valid_date(value: str) -> bool:
    return parse_date(value) is not None


def calculate_age(date_of_birth: str, today: date | None = None) -> int:
    """Age in whole years; 0 for an invalid date."""
    born = parse_date(date_of_birth)
    if born is None:
        return 0
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def today_mmddyyyy(today: date | None = None) -> str:
    return (today or date.today()).strftime("%m-%d-%Y")


def to_iso_date(value: str) -> str:
    """MM-DD-YYYY -> YYYY-MM-DD ("" when the input is not in MM-DD-YYYY form)."""
    if not isinstance(value, str) or not MMDDYYYY_RE.match(value):
        return ""
    month, day, year = value.split("-")
    return f"{year}-{month}-{day}"


def from_iso_date(value: str) -> str:
    """YYYY-MM-DD -> MM-DD-YYYY ("" when the input is not ISO)."""
    if not isinstance(value, str) or not ISO_RE.match(value):
        return ""
    year, month, day = value.split("-")
    return f"{month}-{day}-{year}"
