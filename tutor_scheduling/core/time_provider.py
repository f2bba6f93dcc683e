from __future__ import annotations

from datetime import date, datetime, timedelta

from tutor_scheduling.utils.time_utils import APP_ZONEINFO


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def today(self) -> date:
        return self.now().date()


def sunday_index(day: date) -> int:
    # Sunday=0 ... Saturday=6
    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=sunday_index(day))


def next_week_start(start: date) -> date:
    return start + timedelta(days=7)


def open_weeks(reference: date) -> tuple[date, date]:
    current = week_start(reference)
    return current, next_week_start(current)


def date_for_day_of_week(start_of_week: date, day_of_week: int) -> date:
    return start_of_week + timedelta(days=int(day_of_week))


default_time_provider = TimeProvider()
