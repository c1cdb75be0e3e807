"""Calendar panel: date navigation over a month-keyed event cache, plus clock and weather."""

import calendar
import logging
import time
from collections.abc import Callable
from datetime import date, datetime, timedelta

from deskdash.clients.weather import Weather
from deskdash.db.calendar_cache import EventCache, month_key
from deskdash.panels.base import (
    Command,
    FetchMonthRequested,
    OpenUrlRequested,
    Signal,
)

logger = logging.getLogger(__name__)

# Minimum seconds between two fetch initiations
FETCH_COOLDOWN = 5.0

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/u/0/r"

SPINNER_FRAMES = ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷")


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def event_start_date(event: dict) -> date | None:
    """Calendar day an event starts on, or None when the start cannot be parsed.

    A precise ``dateTime`` is preferred; all-day events only carry ``date``.
    The timestamp's own offset decides the day.
    """
    start = event.get("start")
    if not isinstance(start, dict):
        return None
    try:
        raw_datetime = start.get("dateTime")
        if raw_datetime:
            return datetime.fromisoformat(raw_datetime.replace("Z", "+00:00")).date()
        raw_date = start.get("date")
        if raw_date:
            return date.fromisoformat(raw_date)
    except (TypeError, ValueError, AttributeError):
        return None
    return None


def filter_events_for_day(events: list[dict], day: date) -> list[dict]:
    """Events from a month's list that start on ``day``, in their original order."""
    return [event for event in events if event_start_date(event) == day]


class CalendarPanel:
    capturing = False

    def __init__(
        self,
        cache: EventCache,
        today: date | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cache = cache
        self.selected = today or date.today()
        self.events: list[dict] = []
        self.in_flight: set[str] = set()
        self.last_fetch_started: float | None = None
        self.ready = False
        self.error: str | None = None
        self.now = datetime.now()
        self.spinner_frame = 0
        self.weather: Weather | None = None
        self.weather_error: str | None = None
        self.weather_loading = True
        self._clock = clock
        self.refilter()

    @property
    def loading(self) -> bool:
        """True while the selected month has never been fetched."""
        return self.error is None and month_key(self.selected) not in self.cache

    def start(self) -> FetchMonthRequested | None:
        """Refetch the selected month on dashboard entry, bypassing the cache."""
        key = month_key(self.selected)
        if key in self.in_flight:
            return None
        self.in_flight.add(key)
        self.last_fetch_started = self._clock()
        return FetchMonthRequested(self.selected.replace(day=1))

    def request_month(self, day: date) -> FetchMonthRequested | None:
        """Decide whether navigating to ``day`` starts a fetch.

        Cached months never fetch. Otherwise a fetch starts only when the
        month is not already in flight and the cooldown since the last
        initiation has elapsed; a deferred month is retried on a later visit.
        """
        key = month_key(day)
        if key in self.cache or key in self.in_flight:
            return None
        now = self._clock()
        if (
            self.last_fetch_started is not None
            and now - self.last_fetch_started < FETCH_COOLDOWN
        ):
            return None
        self.in_flight.add(key)
        self.last_fetch_started = now
        return FetchMonthRequested(day.replace(day=1))

    def select(self, day: date) -> FetchMonthRequested | None:
        if day == self.selected:
            return None
        self.selected = day
        self.refilter()
        return self.request_month(day)

    def handle(self, command: Command) -> Signal | None:
        if command is Command.OPEN_CALENDAR:
            return OpenUrlRequested(GOOGLE_CALENDAR_URL)
        if not self.ready or self.error is not None:
            return None

        if command is Command.PREVIOUS_DAY:
            return self.select(self.selected - timedelta(days=1))
        if command is Command.NEXT_DAY:
            return self.select(self.selected + timedelta(days=1))
        if command is Command.PREVIOUS_WEEK:
            return self.select(self.selected - timedelta(days=7))
        if command is Command.NEXT_WEEK:
            return self.select(self.selected + timedelta(days=7))
        if command is Command.PREVIOUS_MONTH:
            return self.select(add_months(self.selected, -1))
        if command is Command.NEXT_MONTH:
            return self.select(add_months(self.selected, 1))
        return None

    def feed(self, key: str, character: str | None) -> Signal | None:
        return None

    def tick(self, now: datetime) -> None:
        self.now = now
        if self.loading or self.weather_loading:
            self.spinner_frame = (self.spinner_frame + 1) % len(SPINNER_FRAMES)

    @property
    def spinner(self) -> str:
        return SPINNER_FRAMES[self.spinner_frame]

    def refilter(self) -> None:
        month_events = self.cache.get(month_key(self.selected), [])
        self.events = filter_events_for_day(month_events, self.selected)

    def apply_events(self, key: str, events: list[dict]) -> None:
        self.cache[key] = list(events)
        self.in_flight.discard(key)
        self.ready = True
        self.refilter()

    def apply_auth_required(self, key: str) -> None:
        self.in_flight.discard(key)
        self.ready = False

    def apply_failure(self, key: str, message: str) -> None:
        self.in_flight.discard(key)
        self.error = message

    def begin_weather(self) -> None:
        self.weather_loading = True

    def apply_weather(self, weather: Weather) -> None:
        self.weather = weather
        self.weather_error = None
        self.weather_loading = False

    def apply_weather_error(self, message: str) -> None:
        self.weather_error = message
        self.weather_loading = False
