from __future__ import annotations

import logging
from datetime import date, timedelta

from tutor_scheduling.core.time_provider import week_start
from tutor_scheduling.domain.errors import ValidationError
from tutor_scheduling.domain.records import SlotDraft, SyncWindow, WeeklyTemplate, build_natural_key
from tutor_scheduling.utils.time_utils import minutes_between, normalize_hhmm


logger = logging.getLogger(__name__)


def validate_template(template: WeeklyTemplate) -> None:
    missing = template.missing_fields()
    if missing:
        raise ValidationError(f"template missing required fields: {', '.join(missing)}", record_id=template.id)
    try:
        minutes_between(template.start_time, template.end_time)
    except ValueError as exc:
        raise ValidationError(str(exc), record_id=template.id) from exc


def expandable_templates(templates: list[WeeklyTemplate]) -> list[WeeklyTemplate]:
    usable: list[WeeklyTemplate] = []
    for template in templates:
        if not template.is_active or template.is_fixed:
            continue
        try:
            validate_template(template)
        except ValidationError as exc:
            logger.warning('template_skipped template_id=%s reason=%s', template.id, exc)
            continue
        usable.append(template)
    return usable


def _draft_order(draft: SlotDraft) -> tuple:
    return (draft.date, draft.start_time, draft.teacher_id, draft.created_from_template_id)


def generate_instances(templates: list[WeeklyTemplate], window_start: date, days_ahead: int = 14) -> list[SlotDraft]:
    window = SyncWindow(week_start=week_start(window_start), days_ahead=days_ahead)
    drafts: list[SlotDraft] = []
    for template in sorted(expandable_templates(templates), key=lambda t: str(t.id)):
        start_time = normalize_hhmm(template.start_time)
        end_time = normalize_hhmm(template.end_time)
        day_of_week = int(template.day_of_week)
        current = window.week_start + timedelta(days=day_of_week)
        while current <= window.end:
            drafts.append(
                SlotDraft(
                    natural_key=build_natural_key(template.teacher_id, current, start_time),
                    teacher_id=str(template.teacher_id),
                    date=current,
                    start_time=start_time,
                    end_time=end_time,
                    created_from_template_id=str(template.id),
                    day_of_week=day_of_week,
                    slot_type=template.slot_type,
                    duration_minutes=template.duration_minutes,
                )
            )
            current += timedelta(days=7)

    drafts.sort(key=_draft_order)
    unique: list[SlotDraft] = []
    seen: set[str] = set()
    for draft in drafts:
        if draft.natural_key in seen:
            logger.warning(
                'duplicate_template_occurrence natural_key=%s template_id=%s',
                draft.natural_key,
                draft.created_from_template_id,
            )
            continue
        seen.add(draft.natural_key)
        unique.append(draft)
    return unique
