"""Generated drafts vs. live inventory.

Pure and deterministic: no storage access, no clock. Protected instances
(locked, booked or blocked) never appear in any of the result sets.
"""

from __future__ import annotations

from typing import Iterable

from tutor_scheduling.core.status_mapping import SlotStatus
from tutor_scheduling.domain.records import InventoryDiff, SlotDraft, SlotInstance, SlotUpdate


DEACTIVATED_STATUSES = frozenset({SlotStatus.BLOCKED, SlotStatus.CANCELED})


def is_protected(instance: SlotInstance) -> bool:
    return instance.is_locked or instance.has_linked_lessons or instance.is_block


def needs_update(existing: SlotInstance, draft: SlotDraft) -> bool:
    return (
        existing.teacher_id != draft.teacher_id
        or existing.date != draft.date
        or existing.start_time != draft.start_time
        or existing.end_time != draft.end_time
        or existing.created_from_template_id != draft.created_from_template_id
    )


def diff_inventory(
    existing_inventory: Iterable[SlotInstance],
    generated: Iterable[SlotDraft],
    active_template_ids: Iterable[str],
) -> InventoryDiff:
    existing_list = list(existing_inventory)
    drafts = list(generated)
    active_ids = {str(template_id) for template_id in active_template_ids}

    existing_by_key: dict[str, SlotInstance] = {}
    for instance in existing_list:
        existing_by_key.setdefault(instance.natural_key, instance)
    generated_keys = {draft.natural_key for draft in drafts}

    result = InventoryDiff()
    for draft in drafts:
        existing = existing_by_key.get(draft.natural_key)
        if existing is None:
            result.to_create.append(draft)
        elif not is_protected(existing) and needs_update(existing, draft):
            result.to_update.append(SlotUpdate(existing=existing, draft=draft))

    for instance in sorted(existing_list, key=lambda s: (s.date, s.start_time, s.natural_key, s.id)):
        if instance.natural_key in generated_keys:
            continue
        if not instance.created_from_template_id or instance.created_from_template_id in active_ids:
            continue
        if is_protected(instance) or instance.status in DEACTIVATED_STATUSES:
            continue
        result.to_deactivate.append(instance)
    return result
