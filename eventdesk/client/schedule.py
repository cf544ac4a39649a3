"""
Weekly venue schedule: confirmed bookings grouped by the calendar day they start on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

from eventdesk.client.api_client import EventDeskClient
from eventdesk.config import settings
from eventdesk.core.exceptions import AppError
from eventdesk.schemas.venue import BookingSchema, VenueSchema
from eventdesk.services.notification_service import Notifier

logger = logging.getLogger(__name__)

DAYS_IN_WEEK = 7
ALL_VENUES = "all"

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def week_bounds(reference: DateLike) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``reference``."""
    day = _as_date(reference)
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=DAYS_IN_WEEK - 1)


def week_days(week_start: DateLike, week_end: DateLike) -> list[date]:
    start, end = _as_date(week_start), _as_date(week_end)
    if (end - start).days != DAYS_IN_WEEK - 1:
        raise ValueError(f"A schedule week spans 7 days; got {start} to {end}")
    return [start + timedelta(days=offset) for offset in range(DAYS_IN_WEEK)]


def booking_day(start_time: datetime, tz: tzinfo | None = None) -> date:
    """Calendar day a booking starts on, in ``tz`` when the timestamp carries an offset."""
    if tz is not None and start_time.tzinfo is not None:
        start_time = start_time.astimezone(tz)
    return start_time.date()


def bucket_by_day(
    bookings: Iterable[BookingSchema],
    week_start: DateLike,
    week_end: DateLike,
    venue_filter: Union[str, int] = ALL_VENUES,
    tz: tzinfo | None = None,
) -> dict[int, list[BookingSchema]]:
    """Group confirmed bookings into day slots 0 (Monday) through 6 (Sunday).

    Only the start day counts; a booking running past midnight stays on the
    day it began. Input order is kept within each day.
    """
    days = week_days(week_start, week_end)
    index_by_day = {day: index for index, day in enumerate(days)}
    venue_key = str(venue_filter)

    buckets: dict[int, list[BookingSchema]] = {index: [] for index in range(DAYS_IN_WEEK)}
    for booking in bookings:
        if booking.status != "confirmed":
            continue
        if venue_key != ALL_VENUES and str(booking.venue_id) != venue_key:
            continue
        index = index_by_day.get(booking_day(booking.start_time, tz))
        if index is not None:
            buckets[index].append(booking)
    return buckets


@dataclass
class WeekCursor:
    """Reference date for the schedule view. Moving it never triggers a fetch."""

    reference: date

    @classmethod
    def starting_at(cls, now: DateLike) -> "WeekCursor":
        return cls(reference=_as_date(now))

    def previous(self) -> "WeekCursor":
        self.reference -= timedelta(weeks=1)
        return self

    def next(self) -> "WeekCursor":
        self.reference += timedelta(weeks=1)
        return self

    def today(self, now: DateLike) -> "WeekCursor":
        self.reference = _as_date(now)
        return self

    @property
    def bounds(self) -> tuple[date, date]:
        return week_bounds(self.reference)

    @property
    def days(self) -> list[date]:
        return week_days(*self.bounds)

    @property
    def range_text(self) -> str:
        start, end = self.bounds
        return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"


@dataclass
class WeekSchedule:
    week_start: date
    week_end: date
    range_text: str
    days: list[date]
    buckets: dict[int, list[BookingSchema]]

    def bookings_on(self, day: date) -> list[BookingSchema]:
        try:
            return self.buckets[self.days.index(day)]
        except ValueError:
            return []


@dataclass
class ScheduleLoader:
    """Loads the owner's venues and rentals once and renders any week from them."""

    client: EventDeskClient
    notifier: Notifier
    tz: Optional[tzinfo] = None
    venues: list[VenueSchema] = field(default_factory=list)
    rentals: list[BookingSchema] = field(default_factory=list)
    loaded: bool = False

    def __post_init__(self) -> None:
        if self.tz is None:
            self.tz = ZoneInfo(settings.display_timezone)

    async def load(self) -> bool:
        if self.loaded:
            return True
        try:
            venues = await self.client.get_venues()
            rentals = await self.client.get_rentals()
        except AppError as exc:
            logger.error("Error loading venue schedule: %s", exc)
            self.notifier.error("There was a problem loading your schedule. Please try again.")
            return False
        self.venues, self.rentals, self.loaded = venues, rentals, True
        return True

    def venue_options(self) -> list[tuple[str, str]]:
        """(value, label) pairs for the venue filter, "all" first."""
        return [(ALL_VENUES, "All Venues")] + [(str(v.id), v.name) for v in self.venues]

    def week(self, cursor: WeekCursor, venue_filter: Union[str, int] = ALL_VENUES) -> WeekSchedule:
        week_start, week_end = cursor.bounds
        return WeekSchedule(
            week_start=week_start,
            week_end=week_end,
            range_text=cursor.range_text,
            days=cursor.days,
            buckets=bucket_by_day(self.rentals, week_start, week_end, venue_filter, self.tz),
        )


def venue_label(booking: BookingSchema) -> str:
    return booking.venue_name or f"Venue #{booking.venue_id}"


def customer_label(booking: BookingSchema) -> str:
    return booking.customer_name or f"Customer #{booking.customer_id}"
