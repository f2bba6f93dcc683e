from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from tutor_scheduling.core.intervals import Interval, IntervalSource
from tutor_scheduling.core.status_mapping import INACTIVE_LESSON_STATUSES, LessonStatus, SlotStatus, SlotType
from tutor_scheduling.domain.errors import ValidationError
from tutor_scheduling.utils.time_utils import combine_local, format_ymd, normalize_hhmm, parse_ymd


NATURAL_KEY_SEPARATOR = '|'
DEFAULT_LESSON_LABEL = 'שיעור'
OPEN_SLOT_LABEL = 'חלון פתוח'


def build_natural_key(teacher_id: str, slot_date: date | str, start_time: str) -> str:
    if not teacher_id or not slot_date or not start_time:
        raise ValidationError(
            f'natural key needs teacher_id, date and start_time '
            f'(teacher_id={teacher_id!r}, date={slot_date!r}, start_time={start_time!r})'
        )
    day = parse_ymd(slot_date)
    return NATURAL_KEY_SEPARATOR.join((str(teacher_id), format_ymd(day), normalize_hhmm(start_time)))


def parse_natural_key(natural_key: str) -> tuple[str, date, str]:
    parts = (natural_key or '').split(NATURAL_KEY_SEPARATOR)
    if len(parts) != 3 or not all(parts):
        raise ValidationError(f'Malformed natural key: {natural_key!r}')
    teacher_id, day, start_time = parts
    return teacher_id, parse_ymd(day), normalize_hhmm(start_time)


@dataclass(frozen=True)
class LessonRecord:
    id: str
    teacher_id: str
    date: date
    start_time: str
    duration_minutes: int
    status: LessonStatus = LessonStatus.SCHEDULED
    student_name: str = ''

    @property
    def start(self) -> datetime:
        return combine_local(self.date, self.start_time)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=int(self.duration_minutes))

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_LESSON_STATUSES

    def to_interval(self) -> Interval:
        return Interval(
            record_id=self.id,
            source=IntervalSource.LESSON,
            start=self.start,
            end=self.end,
            label=self.student_name or DEFAULT_LESSON_LABEL,
        )


@dataclass(frozen=True)
class SlotInstance:
    id: str
    natural_key: str
    teacher_id: str
    date: date
    start_time: str
    end_time: str
    status: SlotStatus = SlotStatus.OPEN
    created_from_template_id: str | None = None
    is_locked: bool = False
    linked_lesson_ids: tuple[str, ...] = ()
    is_block: bool = False
    slot_type: SlotType | None = None

    @property
    def has_linked_lessons(self) -> bool:
        return len(self.linked_lesson_ids) > 0

    @property
    def is_protected(self) -> bool:
        return self.is_locked or self.has_linked_lessons or self.is_block

    @property
    def start(self) -> datetime:
        return combine_local(self.date, self.start_time)

    @property
    def end(self) -> datetime:
        return combine_local(self.date, self.end_time)

    def to_interval(self) -> Interval:
        return Interval(
            record_id=self.id,
            source=IntervalSource.SLOT,
            start=self.start,
            end=self.end,
            label=OPEN_SLOT_LABEL,
        )


@dataclass(frozen=True)
class WeeklyTemplate:
    id: str
    teacher_id: str
    day_of_week: int | None
    start_time: str
    end_time: str
    slot_type: SlotType | None = None
    duration_minutes: int | None = None
    is_active: bool = True
    is_fixed: bool = False
    reserved_for_student: str | None = None

    def missing_fields(self) -> list[str]:
        missing = []
        if not self.teacher_id:
            missing.append('teacher_id')
        if self.day_of_week is None or not 0 <= int(self.day_of_week) <= 6:
            missing.append('day_of_week')
        if not self.start_time:
            missing.append('start_time')
        if not self.end_time:
            missing.append('end_time')
        return missing


@dataclass(frozen=True)
class SlotDraft:
    natural_key: str
    teacher_id: str
    date: date
    start_time: str
    end_time: str
    created_from_template_id: str
    day_of_week: int
    slot_type: SlotType | None = None
    duration_minutes: int | None = None

    @property
    def start(self) -> datetime:
        return combine_local(self.date, self.start_time)

    @property
    def end(self) -> datetime:
        return combine_local(self.date, self.end_time)


@dataclass(frozen=True)
class SyncWindow:
    week_start: date
    days_ahead: int

    @property
    def end(self) -> date:
        return self.week_start + timedelta(days=int(self.days_ahead))


@dataclass(frozen=True)
class SlotUpdate:
    existing: SlotInstance
    draft: SlotDraft


@dataclass
class InventoryDiff:
    to_create: list[SlotDraft] = field(default_factory=list)
    to_update: list[SlotUpdate] = field(default_factory=list)
    to_deactivate: list[SlotInstance] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_deactivate)


@dataclass(frozen=True)
class SyncItemError:
    slot: str
    error: str


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    deactivated: int = 0
    errors: list[SyncItemError] = field(default_factory=list)
    overlaps: int = 0

    def as_dict(self) -> dict:
        return {
            'created': self.created,
            'updated': self.updated,
            'deactivated': self.deactivated,
            'errors': [{'slot': e.slot, 'error': e.error} for e in self.errors],
            'overlaps': self.overlaps,
        }
