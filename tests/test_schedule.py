from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from eventdesk.client.schedule import (
    WeekCursor,
    bucket_by_day,
    customer_label,
    venue_label,
    week_bounds,
)
from eventdesk.schemas.venue import BookingSchema

MONDAY = date(2024, 3, 4)
SUNDAY = date(2024, 3, 10)


def booking(booking_id, venue_id, start, status='confirmed', hours=2, **extra) -> BookingSchema:
    return BookingSchema(
        id=booking_id,
        venue_id=venue_id,
        customer_id=100 + booking_id,
        start_time=start,
        end_time=start + timedelta(hours=hours),
        status=status,
        **extra,
    )


def test_scenario_filter_by_venue_keeps_confirmed_only():
    bookings = [
        booking(1, 1, datetime(2024, 3, 4, 10, 0)),
        booking(2, 2, datetime(2024, 3, 4, 14, 0), status='pending'),
    ]
    buckets = bucket_by_day(bookings, MONDAY, SUNDAY, venue_filter='1')
    assert [b.id for b in buckets[0]] == [1]
    assert all(buckets[i] == [] for i in range(1, 7))


def test_every_day_present_even_when_empty():
    buckets = bucket_by_day([], MONDAY, SUNDAY)
    assert sorted(buckets) == list(range(7))
    assert all(day == [] for day in buckets.values())


def test_non_confirmed_statuses_never_returned():
    bookings = [
        booking(i, 1, datetime(2024, 3, 5, 9, 0), status=status)
        for i, status in enumerate(['pending', 'cancelled', 'completed', 'confirmed'])
    ]
    buckets = bucket_by_day(bookings, MONDAY, SUNDAY)
    returned = [b for day in buckets.values() for b in day]
    assert [b.status for b in returned] == ['confirmed']


def test_all_is_union_of_each_venue():
    bookings = [
        booking(1, 1, datetime(2024, 3, 4, 8, 0)),
        booking(2, 2, datetime(2024, 3, 4, 9, 0)),
        booking(3, 1, datetime(2024, 3, 6, 18, 0)),
        booking(4, 3, datetime(2024, 3, 10, 23, 30)),
        booking(5, 2, datetime(2024, 3, 11, 0, 0)),
    ]
    everything = bucket_by_day(bookings, MONDAY, SUNDAY, 'all')
    for index in range(7):
        per_venue_ids = {
            b.id for venue in ('1', '2', '3') for b in bucket_by_day(bookings, MONDAY, SUNDAY, venue)[index]
        }
        assert {b.id for b in everything[index]} == per_venue_ids
    assert [b.id for b in everything[6]] == [4]


def test_input_order_is_kept_within_a_day():
    bookings = [
        booking(1, 1, datetime(2024, 3, 7, 16, 0)),
        booking(2, 1, datetime(2024, 3, 7, 9, 0)),
        booking(3, 1, datetime(2024, 3, 7, 12, 0)),
    ]
    assert [b.id for b in bucket_by_day(bookings, MONDAY, SUNDAY)[3]] == [1, 2, 3]


def test_multi_day_booking_only_on_start_day():
    buckets = bucket_by_day([booking(1, 1, datetime(2024, 3, 8, 20, 0), hours=30)], MONDAY, SUNDAY)
    assert [b.id for b in buckets[4]] == [1]
    assert buckets[5] == []


def test_integer_venue_filter_compares_as_string():
    buckets = bucket_by_day([booking(1, 12, datetime(2024, 3, 4, 10, 0))], MONDAY, SUNDAY, venue_filter=12)
    assert [b.id for b in buckets[0]] == [1]


def test_aware_start_uses_local_calendar_day():
    # 22:30 UTC Monday is 02:30 Tuesday in Muscat (UTC+4).
    start = datetime(2024, 3, 4, 22, 30, tzinfo=timezone.utc)
    buckets = bucket_by_day([booking(1, 1, start)], MONDAY, SUNDAY, tz=ZoneInfo('Asia/Muscat'))
    assert buckets[0] == []
    assert [b.id for b in buckets[1]] == [1]


def test_week_must_span_seven_days():
    with pytest.raises(ValueError):
        bucket_by_day([], MONDAY, MONDAY + timedelta(days=5))


def test_week_bounds_run_monday_to_sunday():
    assert week_bounds(date(2024, 3, 6)) == (MONDAY, SUNDAY)
    assert week_bounds(datetime(2024, 3, 10, 23, 59)) == (MONDAY, SUNDAY)
    assert week_bounds(MONDAY) == (MONDAY, SUNDAY)


def test_cursor_navigation():
    cursor = WeekCursor.starting_at(date(2024, 3, 6))
    assert cursor.range_text == 'Mar 4 - Mar 10, 2024'

    cursor.next()
    assert cursor.bounds == (date(2024, 3, 11), date(2024, 3, 17))

    cursor.previous().previous()
    assert cursor.bounds == (date(2024, 2, 26), date(2024, 3, 3))
    assert cursor.range_text == 'Feb 26 - Mar 3, 2024'

    cursor.today(datetime(2024, 12, 31, 8, 0))
    assert cursor.range_text == 'Dec 30 - Jan 5, 2025'
    assert len(cursor.days) == 7


def test_labels_fall_back_to_ids():
    plain = booking(1, 9, datetime(2024, 3, 4, 10, 0))
    named = booking(2, 9, datetime(2024, 3, 4, 10, 0), venue_name='Main Hall', customer_name='Acme')
    assert venue_label(plain) == 'Venue #9'
    assert customer_label(plain) == 'Customer #101'
    assert venue_label(named) == 'Main Hall'
    assert customer_label(named) == 'Acme'
