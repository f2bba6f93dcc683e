from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from tutor_scheduling.core.status_mapping import (
    LessonStatus,
    SlotStatus,
    SlotType,
    lesson_status_from_stored,
    lesson_status_to_stored,
    slot_status_from_stored,
    slot_status_to_stored,
    slot_type_from_stored,
)
from tutor_scheduling.domain.errors import FetchError
from tutor_scheduling.domain.records import LessonRecord, SlotInstance, WeeklyTemplate
from tutor_scheduling.models import Lesson, SlotInventory, SlotLessonLink
from tutor_scheduling.models import WeeklyTemplate as WeeklyTemplateRow
from tutor_scheduling.utils.time_utils import normalize_hhmm, parse_ymd, to_local_naive


logger = logging.getLogger(__name__)


def _hhmm_or_raw(value: str | None) -> str:
    raw = (value or '').strip()
    try:
        return normalize_hhmm(raw)
    except ValueError:
        return raw


def _row_id(value: Any) -> int | None:
    if value is None or str(value).strip() == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _stored_slot_type(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, SlotType):
        return value.value
    parsed = slot_type_from_stored(value)
    return parsed.value if parsed else None


def _iso_date_range(start_iso: str, end_iso: str) -> tuple[date, date]:
    """Inclusive date range touched by [start_iso, end_iso)."""
    start = to_local_naive(datetime.fromisoformat(start_iso.replace('Z', '+00:00')))
    end = to_local_naive(datetime.fromisoformat(end_iso.replace('Z', '+00:00')))
    last = end.date()
    if end.time() == datetime.min.time() and end.date() > start.date():
        last -= timedelta(days=1)
    return start.date(), last


def template_to_record(row: WeeklyTemplateRow) -> WeeklyTemplate:
    return WeeklyTemplate(
        id=str(row.id),
        teacher_id=str(row.teacher_id or ''),
        day_of_week=row.day_of_week,
        start_time=_hhmm_or_raw(row.start_time),
        end_time=_hhmm_or_raw(row.end_time),
        slot_type=slot_type_from_stored(row.slot_type),
        duration_minutes=row.duration_minutes,
        is_active=bool(row.is_active),
        is_fixed=bool(row.is_fixed),
        reserved_for_student=row.reserved_for_student or None,
    )


def slot_to_record(row: SlotInventory) -> SlotInstance:
    status = slot_status_from_stored(row.status)
    return SlotInstance(
        id=str(row.id),
        natural_key=row.natural_key,
        teacher_id=str(row.teacher_id),
        date=row.slot_date,
        start_time=_hhmm_or_raw(row.start_time),
        end_time=_hhmm_or_raw(row.end_time),
        status=status,
        created_from_template_id=str(row.created_from_template_id) if row.created_from_template_id else None,
        is_locked=bool(row.is_locked),
        linked_lesson_ids=tuple(sorted(str(link.lesson_id) for link in row.lesson_links)),
        is_block=bool(row.is_block) or status == SlotStatus.BLOCKED,
        slot_type=slot_type_from_stored(row.slot_type),
    )


def lesson_to_record(row: Lesson) -> LessonRecord:
    return LessonRecord(
        id=str(row.id),
        teacher_id=str(row.teacher_id),
        date=row.lesson_date,
        start_time=_hhmm_or_raw(row.start_time),
        duration_minutes=int(row.duration_minutes or 0),
        status=lesson_status_from_stored(row.status),
        student_name=row.student_name or '',
    )


class SqlSchedulingRepository:
    """Templates, slot inventory and lessons over one SQLAlchemy database.

    Each async method runs its session work in a worker thread through
    `asyncio.to_thread`, so the event loop stays free and callers can put a
    deadline on the await. Every call opens and closes its own session.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except IntegrityError as exc:
            db.rollback()
            logger.warning('repository_integrity_error operation=%s error=%s', operation, exc.orig)
            raise FetchError(f'{operation} violates a uniqueness constraint: {exc.orig}', operation=operation) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error('repository_error operation=%s error=%s', operation, exc)
            raise FetchError(f'{operation} failed: {exc}', operation=operation) from exc
        finally:
            db.close()

    # templates

    def _list_templates(self, teacher_id: str | None) -> list[WeeklyTemplate]:
        with self._session('list_templates') as db:
            query = db.query(WeeklyTemplateRow)
            if teacher_id:
                query = query.filter(WeeklyTemplateRow.teacher_id == str(teacher_id))
            return [template_to_record(row) for row in query.order_by(WeeklyTemplateRow.id.asc()).all()]

    async def list_templates(self, teacher_id: str | None = None) -> list[WeeklyTemplate]:
        return await asyncio.to_thread(self._list_templates, teacher_id)

    def _create_template(self, fields: dict[str, Any]) -> WeeklyTemplate:
        with self._session('create_template') as db:
            row = WeeklyTemplateRow(
                teacher_id=str(fields['teacher_id']),
                day_of_week=fields.get('day_of_week'),
                start_time=fields.get('start_time') or '',
                end_time=fields.get('end_time') or '',
                slot_type=_stored_slot_type(fields.get('slot_type')) or SlotType.PRIVATE.value,
                duration_minutes=fields.get('duration_minutes'),
                is_active=bool(fields.get('is_active', True)),
                is_fixed=bool(fields.get('is_fixed', False)),
                reserved_for_student=fields.get('reserved_for_student'),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return template_to_record(row)

    async def create_template(self, fields: dict[str, Any]) -> WeeklyTemplate:
        return await asyncio.to_thread(self._create_template, fields)

    def _update_template(self, template_id: str, fields: dict[str, Any]) -> WeeklyTemplate:
        with self._session('update_template') as db:
            row = db.query(WeeklyTemplateRow).filter(WeeklyTemplateRow.id == _row_id(template_id)).first()
            if row is None:
                raise FetchError(f'Template {template_id} not found', operation='update_template')
            for name in ('day_of_week', 'start_time', 'end_time', 'duration_minutes', 'is_active', 'is_fixed', 'reserved_for_student'):
                if name in fields:
                    setattr(row, name, fields[name])
            if 'slot_type' in fields:
                row.slot_type = _stored_slot_type(fields['slot_type']) or SlotType.PRIVATE.value
            db.commit()
            db.refresh(row)
            return template_to_record(row)

    async def update_template(self, template_id: str, fields: dict[str, Any]) -> WeeklyTemplate:
        return await asyncio.to_thread(self._update_template, template_id, fields)

    # slot inventory

    def _slot_query(self, db: Session):
        return db.query(SlotInventory).options(selectinload(SlotInventory.lesson_links))

    def _list_inventory(self, start: date, end: date, teacher_id: str | None) -> list[SlotInstance]:
        with self._session('list_inventory') as db:
            query = self._slot_query(db).filter(
                SlotInventory.slot_date >= parse_ymd(start),
                SlotInventory.slot_date <= parse_ymd(end),
            )
            if teacher_id:
                query = query.filter(SlotInventory.teacher_id == str(teacher_id))
            rows = query.order_by(SlotInventory.slot_date.asc(), SlotInventory.start_time.asc(), SlotInventory.id.asc()).all()
            return [slot_to_record(row) for row in rows]

    async def list_inventory(self, start: date, end: date, teacher_id: str | None = None) -> list[SlotInstance]:
        return await asyncio.to_thread(self._list_inventory, start, end, teacher_id)

    def _find_instance_by_key(self, natural_key: str) -> SlotInstance | None:
        with self._session('find_instance_by_key') as db:
            row = self._slot_query(db).filter(SlotInventory.natural_key == natural_key).first()
            return slot_to_record(row) if row else None

    async def find_instance_by_key(self, natural_key: str) -> SlotInstance | None:
        return await asyncio.to_thread(self._find_instance_by_key, natural_key)

    def _get_instance(self, instance_id: str) -> SlotInstance | None:
        with self._session('get_instance') as db:
            row = self._slot_query(db).filter(SlotInventory.id == _row_id(instance_id)).first()
            return slot_to_record(row) if row else None

    async def get_instance(self, instance_id: str) -> SlotInstance | None:
        return await asyncio.to_thread(self._get_instance, instance_id)

    def _apply_slot_fields(self, row: SlotInventory, fields: dict[str, Any]) -> None:
        if 'teacher_id' in fields:
            row.teacher_id = str(fields['teacher_id'])
        if 'date' in fields:
            row.slot_date = parse_ymd(fields['date'])
        if 'start_time' in fields:
            row.start_time = normalize_hhmm(fields['start_time'])
        if 'end_time' in fields:
            row.end_time = normalize_hhmm(fields['end_time'])
        if 'status' in fields:
            row.status = slot_status_to_stored(fields['status'])
        if 'created_from_template_id' in fields:
            row.created_from_template_id = _row_id(fields['created_from_template_id'])
        if 'slot_type' in fields:
            row.slot_type = _stored_slot_type(fields['slot_type'])
        if 'is_locked' in fields:
            row.is_locked = bool(fields['is_locked'])
        if 'is_block' in fields:
            row.is_block = bool(fields['is_block'])
        if 'linked_lesson_ids' in fields:
            wanted = {lesson_id for lesson_id in (_row_id(v) for v in fields['linked_lesson_ids']) if lesson_id}
            kept = [link for link in row.lesson_links if link.lesson_id in wanted]
            present = {link.lesson_id for link in kept}
            row.lesson_links = kept + [SlotLessonLink(lesson_id=lesson_id) for lesson_id in sorted(wanted - present)]

    def _create_instance(self, fields: dict[str, Any]) -> SlotInstance:
        with self._session('create_instance') as db:
            row = SlotInventory(
                natural_key=fields['natural_key'],
                status=slot_status_to_stored(fields.get('status', SlotStatus.OPEN)),
                is_locked=False,
                is_block=False,
            )
            self._apply_slot_fields(row, {k: v for k, v in fields.items() if k not in ('natural_key', 'status')})
            db.add(row)
            db.commit()
            db.refresh(row)
            return slot_to_record(row)

    async def create_instance(self, fields: dict[str, Any]) -> SlotInstance:
        return await asyncio.to_thread(self._create_instance, fields)

    def _update_instance(self, instance_id: str, fields: dict[str, Any]) -> SlotInstance:
        with self._session('update_instance') as db:
            row = self._slot_query(db).filter(SlotInventory.id == _row_id(instance_id)).first()
            if row is None:
                raise FetchError(f'Slot {instance_id} not found', operation='update_instance')
            self._apply_slot_fields(row, fields)
            db.commit()
            db.refresh(row)
            return slot_to_record(row)

    async def update_instance(self, instance_id: str, fields: dict[str, Any]) -> SlotInstance:
        return await asyncio.to_thread(self._update_instance, instance_id, fields)

    def _find_instances_linking_lesson(self, lesson_id: str) -> list[SlotInstance]:
        row_id = _row_id(lesson_id)
        if row_id is None:
            return []
        with self._session('find_instances_linking_lesson') as db:
            rows = (
                self._slot_query(db)
                .join(SlotLessonLink, SlotLessonLink.slot_id == SlotInventory.id)
                .filter(SlotLessonLink.lesson_id == row_id)
                .order_by(SlotInventory.id.asc())
                .all()
            )
            return [slot_to_record(row) for row in rows]

    async def find_instances_linking_lesson(self, lesson_id: str) -> list[SlotInstance]:
        return await asyncio.to_thread(self._find_instances_linking_lesson, lesson_id)

    # lessons

    def _list_lessons(self, start: date, end: date, teacher_id: str | None) -> list[LessonRecord]:
        with self._session('list_lessons') as db:
            query = db.query(Lesson).filter(Lesson.lesson_date >= parse_ymd(start), Lesson.lesson_date <= parse_ymd(end))
            if teacher_id:
                query = query.filter(Lesson.teacher_id == str(teacher_id))
            rows = query.order_by(Lesson.lesson_date.asc(), Lesson.start_time.asc(), Lesson.id.asc()).all()
            return [lesson_to_record(row) for row in rows]

    async def list_lessons(self, start: date, end: date, teacher_id: str | None = None) -> list[LessonRecord]:
        return await asyncio.to_thread(self._list_lessons, start, end, teacher_id)

    def _get_lesson(self, lesson_id: str) -> LessonRecord | None:
        with self._session('get_lesson') as db:
            row = db.query(Lesson).filter(Lesson.id == _row_id(lesson_id)).first()
            return lesson_to_record(row) if row else None

    async def get_lesson(self, lesson_id: str) -> LessonRecord | None:
        return await asyncio.to_thread(self._get_lesson, lesson_id)

    def _create_lesson(self, fields: dict[str, Any]) -> LessonRecord:
        with self._session('create_lesson') as db:
            row = Lesson(
                teacher_id=str(fields['teacher_id']),
                lesson_date=parse_ymd(fields['date']),
                start_time=normalize_hhmm(fields['start_time']),
                duration_minutes=int(fields['duration_minutes']),
                status=lesson_status_to_stored(fields.get('status', LessonStatus.SCHEDULED)),
                student_name=fields.get('student_name') or '',
                created_from_template_id=_row_id(fields.get('created_from_template_id')),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return lesson_to_record(row)

    async def create_lesson(self, fields: dict[str, Any]) -> LessonRecord:
        return await asyncio.to_thread(self._create_lesson, fields)

    def _set_lesson_status(self, lesson_id: str, status: LessonStatus) -> LessonRecord | None:
        with self._session('set_lesson_status') as db:
            row = db.query(Lesson).filter(Lesson.id == _row_id(lesson_id)).first()
            if row is None:
                return None
            row.status = lesson_status_to_stored(status)
            db.commit()
            db.refresh(row)
            return lesson_to_record(row)

    async def set_lesson_status(self, lesson_id: str, status: LessonStatus) -> LessonRecord | None:
        return await asyncio.to_thread(self._set_lesson_status, lesson_id, status)

    # conflict fetchers

    async def get_lessons(self, start_iso: str, end_iso: str, teacher_id: str | None = None) -> list[LessonRecord]:
        first, last = _iso_date_range(start_iso, end_iso)
        return await self.list_lessons(first, last, teacher_id)

    async def get_open_slots(self, start_iso: str, end_iso: str, teacher_id: str | None = None) -> list[SlotInstance]:
        first, last = _iso_date_range(start_iso, end_iso)
        inventory = await self.list_inventory(first, last, teacher_id)
        return [slot for slot in inventory if slot.status == SlotStatus.OPEN]
