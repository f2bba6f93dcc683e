from __future__ import annotations

import logging
from datetime import date, timedelta

from tutor_scheduling.config import settings
from tutor_scheduling.core.status_mapping import LessonStatus
from tutor_scheduling.core.time_provider import date_for_day_of_week, week_start
from tutor_scheduling.domain.contracts import LessonRepository
from tutor_scheduling.domain.errors import ValidationError
from tutor_scheduling.domain.records import LessonRecord, WeeklyTemplate
from tutor_scheduling.services.template_expander import validate_template
from tutor_scheduling.utils.time_utils import minutes_between, normalize_hhmm


logger = logging.getLogger(__name__)


def fixed_lesson_duration(template: WeeklyTemplate) -> int:
    if template.duration_minutes:
        return int(template.duration_minutes)
    try:
        return minutes_between(template.start_time, template.end_time)
    except ValueError:
        return settings.default_lesson_minutes


def fixed_templates(templates: list[WeeklyTemplate]) -> list[WeeklyTemplate]:
    usable: list[WeeklyTemplate] = []
    for template in templates:
        if not (template.is_active and template.is_fixed and template.reserved_for_student):
            continue
        try:
            validate_template(template)
        except ValidationError as exc:
            logger.warning('fixed_template_skipped template_id=%s reason=%s', template.id, exc)
            continue
        usable.append(template)
    return sorted(usable, key=lambda t: (int(t.day_of_week), normalize_hhmm(t.start_time), str(t.id)))


async def materialize_fixed_lessons(
    templates: list[WeeklyTemplate],
    lessons: LessonRepository,
    target_week: date,
) -> list[LessonRecord]:
    """Create the week's lessons for fixed templates that reserve a student.

    A lesson already booked for the same teacher, date and start time is left
    alone, so running this twice for a week creates nothing the second time.
    """
    start = week_start(target_week)
    candidates = fixed_templates(templates)
    if not candidates:
        return []

    existing = await lessons.list_lessons(start, start + timedelta(days=6))
    taken = {(lesson.teacher_id, lesson.date, normalize_hhmm(lesson.start_time)) for lesson in existing}

    created: list[LessonRecord] = []
    for template in candidates:
        lesson_date = date_for_day_of_week(start, int(template.day_of_week))
        start_time = normalize_hhmm(template.start_time)
        key = (str(template.teacher_id), lesson_date, start_time)
        if key in taken:
            logger.info(
                'fixed_lesson_exists template_id=%s date=%s start=%s',
                template.id,
                lesson_date.isoformat(),
                start_time,
            )
            continue
        lesson = await lessons.create_lesson(
            {
                'teacher_id': str(template.teacher_id),
                'date': lesson_date,
                'start_time': start_time,
                'duration_minutes': fixed_lesson_duration(template),
                'status': LessonStatus.SCHEDULED,
                'student_name': template.reserved_for_student,
                'created_from_template_id': str(template.id),
            }
        )
        taken.add(key)
        created.append(lesson)
        logger.info('fixed_lesson_created template_id=%s lesson_id=%s date=%s', template.id, lesson.id, lesson_date.isoformat())
    return created
