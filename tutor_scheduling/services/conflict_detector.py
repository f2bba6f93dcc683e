from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from tutor_scheduling.core.intervals import Interval, find_conflicts
from tutor_scheduling.core.status_mapping import SlotStatus
from tutor_scheduling.domain.contracts import ConflictFetchers
from tutor_scheduling.domain.errors import ConflictCheckFailed, ValidationError
from tutor_scheduling.domain.records import LessonRecord, SlotInstance
from tutor_scheduling.metrics import timed_service
from tutor_scheduling.utils.time_utils import day_bounds, parse_ymd, resolve_datetime


logger = logging.getLogger(__name__)

CHECK_ENTITIES = ('lesson', 'slot_inventory')


@dataclass(frozen=True)
class ConflictCheckRequest:
    entity: str
    teacher_id: str
    date: date
    start: str
    end: str
    record_id: str | None = None
    linked_lesson_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConflictCheckResult:
    conflicts: list[Interval] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    def as_dict(self) -> dict:
        return {
            'hasConflicts': self.has_conflicts,
            'conflicts': [conflict_to_dict(c) for c in self.conflicts],
        }


def conflict_to_dict(conflict: Interval) -> dict:
    return {
        'source': conflict.source.value,
        'recordId': conflict.record_id,
        'start': conflict.start.isoformat(),
        'end': conflict.end.isoformat(),
        'label': conflict.label,
    }


def build_conflict_summary(conflicts: list[Interval]) -> str:
    return '; '.join(
        f"{c.source.value}:{c.record_id} {c.start.strftime('%H:%M')}-{c.end.strftime('%H:%M')}"
        for c in conflicts
    )


def _mask_teacher_id(teacher_id: str | None) -> str | None:
    if not teacher_id:
        return None
    return teacher_id if len(teacher_id) <= 6 else f'{teacher_id[:6]}…'


def _same_teacher(teacher_id: str | None, candidate_teacher_id: str | None) -> bool:
    if not teacher_id or not candidate_teacher_id:
        return True
    return str(candidate_teacher_id) == str(teacher_id)


def lesson_candidates(
    lessons: list[LessonRecord],
    *,
    teacher_id: str | None = None,
    exclude_record_id: str | None = None,
    exclude_linked_ids: tuple[str, ...] = (),
) -> list[Interval]:
    excluded = set(exclude_linked_ids or ())
    if exclude_record_id:
        excluded.add(exclude_record_id)
    return [
        lesson.to_interval()
        for lesson in lessons
        if lesson.is_active and lesson.id not in excluded and _same_teacher(teacher_id, lesson.teacher_id)
    ]


def slot_candidates(
    slots: list[SlotInstance],
    *,
    teacher_id: str | None = None,
    exclude_record_id: str | None = None,
) -> list[Interval]:
    return [
        slot.to_interval()
        for slot in slots
        if slot.status == SlotStatus.OPEN
        and not (exclude_record_id and slot.id == exclude_record_id)
        and _same_teacher(teacher_id, slot.teacher_id)
    ]


class ConflictDetector:
    def __init__(self, fetchers: ConflictFetchers, *, timeout_seconds: float | None = None) -> None:
        self.fetchers = fetchers
        self.timeout_seconds = timeout_seconds

    async def _fetch(self, call):
        if self.timeout_seconds:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        return await call

    @timed_service('conflict_check')
    async def check(self, request: ConflictCheckRequest) -> ConflictCheckResult:
        if request.entity not in CHECK_ENTITIES:
            raise ValidationError(f'Unknown conflict-check entity: {request.entity!r}')
        day = parse_ymd(request.date)
        try:
            proposed_start = resolve_datetime(day, request.start)
            proposed_end = resolve_datetime(day, request.end)
        except ValueError as exc:
            raise ValidationError(str(exc), record_id=request.record_id) from exc

        teacher_id = str(request.teacher_id or '') or None
        day_start, day_end = day_bounds(day)
        lessons, slots = await asyncio.gather(
            self._fetch(self.fetchers.get_lessons(day_start.isoformat(), day_end.isoformat(), teacher_id)),
            self._fetch(self.fetchers.get_open_slots(day_start.isoformat(), day_end.isoformat(), teacher_id)),
            return_exceptions=True,
        )
        failure = next((r for r in (lessons, slots) if isinstance(r, BaseException)), None)
        if failure is not None:
            logger.error(
                'conflict_check_fetch_failed entity=%s date=%s teacher_id=%s error=%s',
                request.entity,
                day.isoformat(),
                _mask_teacher_id(teacher_id),
                type(failure).__name__,
            )
            raise ConflictCheckFailed() from failure

        existing = lesson_candidates(
            lessons,
            teacher_id=teacher_id,
            exclude_record_id=request.record_id,
            exclude_linked_ids=tuple(request.linked_lesson_ids or ()),
        ) + slot_candidates(slots, teacher_id=teacher_id, exclude_record_id=request.record_id)
        return ConflictCheckResult(conflicts=find_conflicts(proposed_start, proposed_end, existing))

    async def find_lesson_conflicts(
        self,
        teacher_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_linked_ids: tuple[str, ...] = (),
    ) -> list[Interval]:
        day_start, day_end = day_bounds(start.date())
        try:
            lessons = await self._fetch(self.fetchers.get_lessons(day_start.isoformat(), day_end.isoformat(), teacher_id))
        except Exception as exc:
            logger.warning(
                'lesson_conflict_fetch_failed date=%s teacher_id=%s error=%s',
                start.date().isoformat(),
                _mask_teacher_id(teacher_id),
                type(exc).__name__,
            )
            raise ConflictCheckFailed() from exc
        candidates = lesson_candidates(lessons, teacher_id=teacher_id, exclude_linked_ids=exclude_linked_ids)
        return find_conflicts(start, end, candidates)
