from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date

from tutor_scheduling.config import settings
from tutor_scheduling.core.intervals import overlapping_pairs
from tutor_scheduling.core.status_mapping import SlotStatus
from tutor_scheduling.core.time_provider import TimeProvider, default_time_provider, week_start
from tutor_scheduling.domain.contracts import InventoryRepository
from tutor_scheduling.domain.errors import ConflictError, SyncLoadError
from tutor_scheduling.domain.records import (
    SlotDraft,
    SlotInstance,
    SlotUpdate,
    SyncItemError,
    SyncResult,
    SyncWindow,
)
from tutor_scheduling.metrics import timed_service
from tutor_scheduling.services.inventory_diff import diff_inventory
from tutor_scheduling.services.slot_opening_guard import CheckUnavailable, ConfirmedConflict, SlotOpeningGuard
from tutor_scheduling.services.template_expander import generate_instances


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryOverlap:
    first: SlotInstance
    second: SlotInstance

    @property
    def reason(self) -> str:
        return (
            f'{self.first.start_time}-{self.first.end_time} overlaps '
            f'{self.second.start_time}-{self.second.end_time}'
        )


def detect_overlapping_pairs(inventory: list[SlotInstance]) -> list[InventoryOverlap]:
    grouped: dict[tuple[str, date], list[SlotInstance]] = defaultdict(list)
    for instance in inventory:
        if instance.status in (SlotStatus.BLOCKED, SlotStatus.CANCELED):
            continue
        grouped[(instance.teacher_id, instance.date)].append(instance)

    found: list[InventoryOverlap] = []
    for key in sorted(grouped):
        by_id = {instance.id: instance for instance in grouped[key]}
        intervals = [instance.to_interval() for instance in grouped[key]]
        for first, second in overlapping_pairs(intervals):
            found.append(InventoryOverlap(first=by_id[first.record_id], second=by_id[second.record_id]))
    return found


def _draft_fields(draft: SlotDraft) -> dict:
    return {
        'teacher_id': draft.teacher_id,
        'date': draft.date,
        'start_time': draft.start_time,
        'end_time': draft.end_time,
        'created_from_template_id': draft.created_from_template_id,
        'slot_type': draft.slot_type,
    }


class SlotSyncService:
    """Brings the slot inventory for a window in line with the weekly templates.

    Items are applied one at a time. A failing item is recorded in
    `SyncResult.errors` and the run moves on; only a failure to load the
    templates or the inventory aborts the run.
    """

    def __init__(
        self,
        repository: InventoryRepository,
        opening_guard: SlotOpeningGuard | None = None,
        *,
        time_provider: TimeProvider = default_time_provider,
        timeout_seconds: float | None = None,
    ) -> None:
        self.repository = repository
        self.opening_guard = opening_guard
        self.time_provider = time_provider
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.fetch_timeout_seconds

    async def _call(self, coro):
        if self.timeout_seconds:
            return await asyncio.wait_for(coro, timeout=self.timeout_seconds)
        return await coro

    @timed_service('slot_sync')
    async def run(
        self,
        start_date: date | None = None,
        days_ahead: int | None = None,
        teacher_id: str | None = None,
    ) -> SyncResult:
        reference = start_date or self.time_provider.today()
        days = settings.sync_days_ahead if days_ahead is None else int(days_ahead)
        window = SyncWindow(week_start=week_start(reference), days_ahead=days)
        logger.info(
            'slot_sync_start week_start=%s end=%s teacher_id=%s',
            window.week_start.isoformat(),
            window.end.isoformat(),
            teacher_id or '*',
        )

        try:
            templates = await self._call(self.repository.list_templates(teacher_id))
            inventory = await self._call(self.repository.list_inventory(window.week_start, window.end, teacher_id))
        except Exception as exc:
            logger.error('slot_sync_load_failed week_start=%s error=%s', window.week_start.isoformat(), str(exc) or type(exc).__name__)
            raise SyncLoadError(f'Failed to load templates or inventory: {exc}', operation='slot_sync') from exc

        result = SyncResult()
        overlaps = detect_overlapping_pairs(inventory)
        for overlap in overlaps:
            logger.warning(
                'inventory_overlap teacher_id=%s date=%s first=%s second=%s reason=%s',
                overlap.first.teacher_id,
                overlap.first.date.isoformat(),
                overlap.first.natural_key,
                overlap.second.natural_key,
                overlap.reason,
            )
        result.overlaps = len(overlaps)

        active_template_ids = {t.id for t in templates if t.is_active}
        drafts = generate_instances(templates, window.week_start, days)
        diff = diff_inventory(inventory, drafts, active_template_ids)
        logger.info(
            'slot_sync_diff create=%s update=%s deactivate=%s',
            len(diff.to_create),
            len(diff.to_update),
            len(diff.to_deactivate),
        )

        for draft in diff.to_create:
            await self._apply(result, draft.natural_key, self._create(draft), 'created')
        for update in diff.to_update:
            await self._apply(result, update.existing.natural_key, self._update(update), 'updated')
        for instance in diff.to_deactivate:
            await self._apply(result, instance.natural_key, self._deactivate(instance), 'deactivated')

        logger.info(
            'slot_sync_complete created=%s updated=%s deactivated=%s errors=%s overlaps=%s',
            result.created,
            result.updated,
            result.deactivated,
            len(result.errors),
            result.overlaps,
        )
        return result

    async def _apply(self, result: SyncResult, natural_key: str, coro, counter: str) -> None:
        try:
            applied = await coro
        except ConflictError as exc:
            logger.warning('slot_open_refused natural_key=%s lesson_ids=%s', natural_key, [c.record_id for c in exc.conflicts])
            result.errors.append(SyncItemError(slot=natural_key, error=str(exc)))
            return
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            logger.error('slot_sync_item_failed natural_key=%s action=%s error=%s', natural_key, counter, reason)
            result.errors.append(SyncItemError(slot=natural_key, error=reason))
            return
        if applied:
            setattr(result, counter, getattr(result, counter) + 1)

    async def _check_opening(self, natural_key: str, teacher_id: str, start, end) -> None:
        if self.opening_guard is None:
            return
        decision = await self.opening_guard.evaluate(teacher_id, start, end)
        if isinstance(decision, ConfirmedConflict):
            raise ConflictError(natural_key, decision.conflicts)
        if isinstance(decision, CheckUnavailable):
            logger.warning('slot_open_unverified natural_key=%s reason=%s', natural_key, decision.reason)

    async def _create(self, draft: SlotDraft) -> bool:
        if await self._call(self.repository.find_instance_by_key(draft.natural_key)) is not None:
            logger.info('slot_already_exists natural_key=%s', draft.natural_key)
            return False
        await self._check_opening(draft.natural_key, draft.teacher_id, draft.start, draft.end)
        fields = _draft_fields(draft)
        fields['natural_key'] = draft.natural_key
        fields['status'] = SlotStatus.OPEN
        await self._call(self.repository.create_instance(fields))
        return True

    async def _update(self, update: SlotUpdate) -> bool:
        existing, draft = update.existing, update.draft
        moved = (existing.date, existing.start_time, existing.end_time) != (draft.date, draft.start_time, draft.end_time)
        if existing.status == SlotStatus.OPEN and moved:
            await self._check_opening(existing.natural_key, draft.teacher_id, draft.start, draft.end)
        await self._call(self.repository.update_instance(existing.id, _draft_fields(draft)))
        return True

    async def _deactivate(self, instance: SlotInstance) -> bool:
        await self._call(self.repository.update_instance(instance.id, {'status': SlotStatus.BLOCKED}))
        return True
