from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from tutor_scheduling.config import settings


APP_ZONEINFO = ZoneInfo(settings.app_timezone or 'Asia/Jerusalem')


def parse_hhmm(value: str) -> time:
    raw = (value or '').strip()
    parts = raw.split(':')
    if len(parts) not in (2, 3):
        raise ValueError(f'Invalid time value: {value!r}')
    hour = int(parts[0])
    minute = int(parts[1])
    if hour < 0 or hour > 23 or minute < 0 or minute > 59:
        raise ValueError(f'Invalid time value: {value!r}')
    return time(hour=hour, minute=minute)


def normalize_hhmm(value: str) -> str:
    # '9:00', '09:00:00' -> '09:00'
    return parse_hhmm(value).strftime('%H:%M')


def parse_ymd(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def format_ymd(value: date) -> str:
    return value.strftime('%Y-%m-%d')


def combine_local(day: date, hhmm: str) -> datetime:
    return datetime.combine(day, parse_hhmm(hhmm))


def to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value
    return value.astimezone(APP_ZONEINFO).replace(tzinfo=None)


def resolve_datetime(day: date, time_or_iso: str) -> datetime:
    """Accepts 'HH:mm', 'HH:mm:ss' or a full ISO datetime."""
    raw = str(time_or_iso).strip()
    if 'T' in raw:
        return to_local_naive(datetime.fromisoformat(raw.replace('Z', '+00:00')))
    return combine_local(day, raw)


def minutes_between(start_hhmm: str, end_hhmm: str) -> int:
    start = parse_hhmm(start_hhmm)
    end = parse_hhmm(end_hhmm)
    delta = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    if delta <= 0:
        raise ValueError(f'End time {end_hhmm} must be after start time {start_hhmm}')
    return delta


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)
