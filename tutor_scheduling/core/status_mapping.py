"""Persisted status strings <-> internal enums.

Staff edit records in Hebrew; older rows and API callers use English. Both are
accepted on read, only the Hebrew form is written. Nothing outside the
persistence boundary should compare raw status strings.
"""

from __future__ import annotations

from enum import Enum


class SlotStatus(str, Enum):
    OPEN = 'open'
    CLOSED = 'closed'
    CANCELED = 'canceled'
    BLOCKED = 'blocked'


class LessonStatus(str, Enum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    PENDING = 'pending'
    NO_SHOW = 'no_show'
    PENDING_CANCEL = 'pending_cancel'


class SlotType(str, Enum):
    PRIVATE = 'private'
    PAIR = 'pair'
    GROUP = 'group'


INACTIVE_LESSON_STATUSES = frozenset({LessonStatus.CANCELLED, LessonStatus.PENDING_CANCEL})

_SLOT_STATUS_TO_STORED: dict[SlotStatus, str] = {
    SlotStatus.OPEN: 'פתוח',
    SlotStatus.CLOSED: 'סגור',
    SlotStatus.CANCELED: 'מבוטל',
    SlotStatus.BLOCKED: 'חסום ע"י מנהל',
}

_SLOT_STATUS_FROM_STORED: dict[str, SlotStatus] = {
    'פתוח': SlotStatus.OPEN,
    'open': SlotStatus.OPEN,
    'סגור': SlotStatus.CLOSED,
    'closed': SlotStatus.CLOSED,
    'booked': SlotStatus.CLOSED,
    'מבוטל': SlotStatus.CANCELED,
    'canceled': SlotStatus.CANCELED,
    'cancelled': SlotStatus.CANCELED,
    'חסום ע"י מנהל': SlotStatus.BLOCKED,
    'חסום': SlotStatus.BLOCKED,
    'blocked': SlotStatus.BLOCKED,
}

_LESSON_STATUS_TO_STORED: dict[LessonStatus, str] = {
    LessonStatus.SCHEDULED: 'מתוכנן',
    LessonStatus.COMPLETED: 'הסתיים',
    LessonStatus.CANCELLED: 'בוטל',
    LessonStatus.PENDING: 'ממתין',
    LessonStatus.NO_SHOW: 'לא הופיע',
    LessonStatus.PENDING_CANCEL: 'ממתין לאישור ביטול',
}

_LESSON_STATUS_FROM_STORED: dict[str, LessonStatus] = {
    **{stored: status for status, stored in _LESSON_STATUS_TO_STORED.items()},
    **{status.value: status for status in LessonStatus},
    'CANCELLED': LessonStatus.CANCELLED,
    'canceled': LessonStatus.CANCELLED,
}


def slot_status_from_stored(raw: object) -> SlotStatus:
    # Unknown or empty values read as open.
    if raw is None:
        return SlotStatus.OPEN
    if isinstance(raw, SlotStatus):
        return raw
    return _SLOT_STATUS_FROM_STORED.get(str(raw).strip(), SlotStatus.OPEN)


def slot_status_to_stored(status: SlotStatus | str) -> str:
    return _SLOT_STATUS_TO_STORED[slot_status_from_stored(status)]


def lesson_status_from_stored(raw: object) -> LessonStatus:
    if raw is None:
        return LessonStatus.SCHEDULED
    if isinstance(raw, LessonStatus):
        return raw
    return _LESSON_STATUS_FROM_STORED.get(str(raw).strip(), LessonStatus.SCHEDULED)


def lesson_status_to_stored(status: LessonStatus | str) -> str:
    return _LESSON_STATUS_TO_STORED[lesson_status_from_stored(status)]


def slot_type_from_stored(raw: object) -> SlotType | None:
    if raw is None or str(raw).strip() == '':
        return None
    try:
        return SlotType(str(raw).strip().lower())
    except ValueError:
        return None
