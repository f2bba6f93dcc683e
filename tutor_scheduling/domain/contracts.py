"""Boundaries to the storage layer.

Implementations return canonical domain records; any source-specific field
shapes are normalised before records leave the implementation.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol

from tutor_scheduling.core.status_mapping import LessonStatus
from tutor_scheduling.domain.records import LessonRecord, SlotInstance, WeeklyTemplate


class ConflictFetchers(Protocol):
    async def get_lessons(self, start_iso: str, end_iso: str, teacher_id: str | None = None) -> list[LessonRecord]:
        ...

    async def get_open_slots(self, start_iso: str, end_iso: str, teacher_id: str | None = None) -> list[SlotInstance]:
        ...


class InventoryRepository(Protocol):
    async def list_templates(self, teacher_id: str | None = None) -> list[WeeklyTemplate]:
        ...

    async def list_inventory(self, start: date, end: date, teacher_id: str | None = None) -> list[SlotInstance]:
        ...

    async def find_instance_by_key(self, natural_key: str) -> SlotInstance | None:
        ...

    async def create_instance(self, fields: dict[str, Any]) -> SlotInstance:
        ...

    async def update_instance(self, instance_id: str, fields: dict[str, Any]) -> SlotInstance:
        ...

    async def find_instances_linking_lesson(self, lesson_id: str) -> list[SlotInstance]:
        ...


class LessonRepository(Protocol):
    async def list_lessons(self, start: date, end: date, teacher_id: str | None = None) -> list[LessonRecord]:
        ...

    async def create_lesson(self, fields: dict[str, Any]) -> LessonRecord:
        ...

    async def get_lesson(self, lesson_id: str) -> LessonRecord | None:
        ...

    async def set_lesson_status(self, lesson_id: str, status: LessonStatus) -> LessonRecord | None:
        ...
