from datetime import date, datetime, timezone

import pytest

from libs.search.dates import (
    end_of_day,
    find_relative_date,
    looks_like_date,
    named_range_start,
    parse_iso_date,
    resolve_relative_date,
    start_of_day,
)

TODAY = date(2024, 11, 10)


@pytest.mark.parametrize(
    "phrase, expected",
    [
        ("today", (date(2024, 11, 10), date(2024, 11, 10))),
        ("yesterday", (date(2024, 11, 9), date(2024, 11, 9))),
        ("this week", (date(2024, 11, 3), date(2024, 11, 10))),
        ("last week", (date(2024, 10, 27), date(2024, 11, 3))),
        ("this month", (date(2024, 11, 1), date(2024, 11, 10))),
        ("last month", (date(2024, 10, 1), date(2024, 10, 31))),
        ("Last  Month", (date(2024, 10, 1), date(2024, 10, 31))),
    ],
)
def test_resolve_relative_date(phrase, expected):
    assert resolve_relative_date(phrase, TODAY) == expected


def test_last_month_crosses_year_boundary():
    assert resolve_relative_date("last month", date(2024, 1, 15)) == (
        date(2023, 12, 1),
        date(2023, 12, 31),
    )


def test_unknown_phrase():
    assert resolve_relative_date("next decade", TODAY) is None


def test_find_relative_date_in_sentence():
    phrase, span = find_relative_date("videos I saved this week about AI", TODAY)
    assert phrase == "this week"
    assert span == (date(2024, 11, 3), date(2024, 11, 10))
    assert find_relative_date("videos about AI", TODAY) is None


@pytest.mark.parametrize(
    "term", ["2024-11-10", "11/10/2024", "7th", "Nov", "yesterday", "last week", "monday"]
)
def test_looks_like_date(term):
    assert looks_like_date(term)


@pytest.mark.parametrize("term", ["AI", "shoes", "python 3", "weekly digest"])
def test_not_a_date(term):
    assert not looks_like_date(term)


def test_parse_iso_date():
    assert parse_iso_date("2024-11-03") == date(2024, 11, 3)
    assert parse_iso_date("2024-11-03T10:00:00Z") == date(2024, 11, 3)
    assert parse_iso_date("null") is None
    assert parse_iso_date("2024-13-40") is None
    assert parse_iso_date(None) is None


def test_day_bounds_are_utc_and_inclusive():
    assert start_of_day(TODAY) == datetime(2024, 11, 10, tzinfo=timezone.utc)
    end = end_of_day(TODAY)
    assert end.tzinfo is timezone.utc
    assert (end.hour, end.minute, end.second, end.microsecond) == (23, 59, 59, 999999)


def test_named_range_start():
    now = datetime(2024, 11, 10, 15, 30, tzinfo=timezone.utc)
    assert named_range_start("today", now) == datetime(2024, 11, 10, tzinfo=timezone.utc)
    assert named_range_start("week", now) == datetime(2024, 11, 3, 15, 30, tzinfo=timezone.utc)
    assert named_range_start("month", now).date() == date(2024, 10, 11)
    assert named_range_start("year", now).date() == date(2023, 11, 11)
    assert named_range_start("all", now) is None
