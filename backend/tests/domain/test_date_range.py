"""DateRange normalisation and overlap rules."""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from sailingloc.domain.date_range import DateRange, contains, day_count, overlaps, to_day


def test_overlap_is_symmetric() -> None:
    cases = [
        (DateRange(date(2030, 7, 1), date(2030, 7, 5)), DateRange(date(2030, 7, 3), date(2030, 7, 9))),
        (DateRange(date(2030, 7, 1), date(2030, 7, 5)), DateRange(date(2030, 7, 6), date(2030, 7, 9))),
        (DateRange(date(2030, 7, 1), date(2030, 7, 31)), DateRange(date(2030, 7, 10), date(2030, 7, 11))),
    ]
    for a, b in cases:
        assert overlaps(a, b) == overlaps(b, a)


def test_shared_boundary_day_overlaps() -> None:
    booked = DateRange(date(2030, 7, 10), date(2030, 7, 15))
    assert overlaps(booked, DateRange(date(2030, 7, 15), date(2030, 7, 18)))
    assert overlaps(booked, DateRange(date(2030, 7, 5), date(2030, 7, 10)))
    assert not overlaps(booked, DateRange(date(2030, 7, 16), date(2030, 7, 18)))
    assert not overlaps(booked, DateRange(date(2030, 7, 1), date(2030, 7, 9)))


def test_contains_is_inclusive() -> None:
    window = DateRange(date(2030, 7, 10), date(2030, 7, 12))
    assert contains(window, date(2030, 7, 10))
    assert contains(window, date(2030, 7, 12))
    assert not contains(window, date(2030, 7, 13))
    assert window.contains("2030-07-11")


def test_day_count_counts_nights() -> None:
    assert day_count(DateRange(date(2030, 7, 10), date(2030, 7, 13))) == 3
    single = DateRange(date(2030, 7, 10), date(2030, 7, 10))
    assert single.day_count == 0
    assert list(single.days()) == [date(2030, 7, 10)]


def test_time_of_day_is_dropped_before_comparison() -> None:
    late_evening = datetime(2030, 7, 10, 23, 30)
    window = DateRange.of(late_evening, "2030-07-12T08:00:00")
    assert window.start == date(2030, 7, 10)
    assert window.end == date(2030, 7, 12)


def test_aware_datetimes_are_read_in_utc() -> None:
    paris_morning = datetime(2030, 7, 11, 1, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_day(paris_morning) == date(2030, 7, 10)
    assert to_day("2030-07-10T22:30:00Z") == date(2030, 7, 10)
    assert to_day(datetime(2030, 7, 10, 12, tzinfo=UTC)) == date(2030, 7, 10)


def test_start_after_end_is_rejected() -> None:
    with pytest.raises(ValueError):
        DateRange(date(2030, 7, 12), date(2030, 7, 10))


def test_str_uses_iso_days() -> None:
    assert str(DateRange(date(2030, 7, 1), date(2030, 7, 3))) == "2030-07-01 to 2030-07-03"
