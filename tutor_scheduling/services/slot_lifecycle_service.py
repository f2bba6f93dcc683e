"""Keeps slot status in step with the lessons booked into it.

Booking a lesson closes every open slot it overlaps and links the lesson to
it. Cancelling the lesson removes the link, and a slot whose link set empties
opens again. Both directions run inside the lesson flow, so they log per-slot
failures and carry on.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from tutor_scheduling.core.intervals import overlaps
from tutor_scheduling.core.status_mapping import SlotStatus
from tutor_scheduling.domain.contracts import ConflictFetchers, InventoryRepository
from tutor_scheduling.services.slot_opening_guard import ConfirmedConflict, SlotOpeningGuard
from tutor_scheduling.utils.time_utils import combine_local, day_bounds, parse_ymd


logger = logging.getLogger(__name__)


class SlotLifecycleService:
    def __init__(
        self,
        repository: InventoryRepository,
        fetchers: ConflictFetchers,
        *,
        opening_guard: SlotOpeningGuard | None = None,
    ) -> None:
        self.repository = repository
        self.fetchers = fetchers
        self.opening_guard = opening_guard

    async def reopen_slots_for_cancelled_lesson(self, lesson_id: str) -> list[str]:
        try:
            slots = await self.repository.find_instances_linking_lesson(lesson_id)
        except Exception as exc:
            logger.error('slot_reopen_lookup_failed lesson_id=%s error=%s', lesson_id, exc)
            return []

        reopened: list[str] = []
        for slot in slots:
            remaining = [linked for linked in slot.linked_lesson_ids if linked != lesson_id]
            fields: dict = {'linked_lesson_ids': remaining}
            if not remaining:
                if await self._may_reopen(slot.id, slot.teacher_id, slot.start, slot.end, lesson_id):
                    fields['status'] = SlotStatus.OPEN
            try:
                await self.repository.update_instance(slot.id, fields)
            except Exception as exc:
                logger.error('slot_reopen_failed slot_id=%s lesson_id=%s error=%s', slot.id, lesson_id, exc)
                continue
            if 'status' in fields:
                reopened.append(slot.id)

        logger.info(
            'slot_reopen_complete lesson_id=%s linked_slots=%s reopened=%s',
            lesson_id,
            len(slots),
            len(reopened),
        )
        return reopened

    async def _may_reopen(self, slot_id: str, teacher_id: str, start, end, lesson_id: str) -> bool:
        if self.opening_guard is None:
            return True
        decision = await self.opening_guard.evaluate(teacher_id, start, end, linked_lesson_ids=(lesson_id,))
        if isinstance(decision, ConfirmedConflict):
            logger.warning('slot_reopen_refused slot_id=%s lesson_ids=%s', slot_id, decision.lesson_ids)
            return False
        return True

    async def close_overlapping_open_slots(
        self,
        teacher_id: str,
        lesson_date: date | str,
        start_time: str,
        duration_minutes: int,
        lesson_id: str | None = None,
    ) -> list[str]:
        day = parse_ymd(lesson_date)
        lesson_start = combine_local(day, start_time)
        lesson_end = lesson_start + timedelta(minutes=int(duration_minutes))
        day_start, day_end = day_bounds(day)
        try:
            slots = await self.fetchers.get_open_slots(day_start.isoformat(), day_end.isoformat(), teacher_id)
        except Exception as exc:
            logger.error('slot_close_lookup_failed teacher_id=%s date=%s error=%s', teacher_id, day.isoformat(), exc)
            return []

        closed: list[str] = []
        for slot in slots:
            if slot.status != SlotStatus.OPEN or slot.has_linked_lessons or slot.teacher_id != str(teacher_id):
                continue
            if not overlaps(lesson_start, lesson_end, slot.start, slot.end):
                continue
            fields: dict = {'status': SlotStatus.CLOSED}
            if lesson_id:
                fields['linked_lesson_ids'] = [*slot.linked_lesson_ids, lesson_id]
            try:
                await self.repository.update_instance(slot.id, fields)
            except Exception as exc:
                logger.error('slot_close_failed slot_id=%s lesson_id=%s error=%s', slot.id, lesson_id, exc)
                continue
            closed.append(slot.id)

        if closed:
            logger.info('slot_close_complete teacher_id=%s date=%s closed=%s', teacher_id, day.isoformat(), closed)
        return closed
