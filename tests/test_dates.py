from datetime import date

from registration.services import dates


def test_is_valid_date():
    assert dates.is_valid_date("02-29-2024")
    assert not dates.is_valid_date("02-29-2023")
    assert not dates.is_valid_date("13-01-2020")
    assert not dates.is_valid_date("2020-01-01")
    assert not dates.is_valid_date("")


def test_calculate_age_counts_birthday_boundary():
    today = date(2026, 10, 18)
    assert dates.calculate_age("10-18-2008", today) == 18
    assert dates.calculate_age("10-19-2008", today) == 17
    assert dates.calculate_age("not-a-date", today) == 0


def test_iso_conversions():
    assert dates.to_iso_date("03-22-2019") == "2019-03-22"
    assert dates.from_iso_date("2019-03-22") == "03-22-2019"
    assert dates.to_iso_date("2019-03-22") == ""
    assert dates.from_iso_date("03/22/2019") == ""


def test_today_mmddyyyy():
    assert dates.today_mmddyyyy(date(2026, 1, 5)) == "01-05-2026"
