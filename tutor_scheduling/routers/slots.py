from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from tutor_scheduling.core.status_mapping import LessonStatus
from tutor_scheduling.dependencies import build_lifecycle_service, build_sync_service, get_repository
from tutor_scheduling.domain.errors import SyncLoadError
from tutor_scheduling.repositories.sql_repository import SqlSchedulingRepository


router = APIRouter(prefix='/api', tags=['Slots'])


class SyncPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: date | None = Field(default=None, alias='startDate')
    days_ahead: int | None = Field(default=None, alias='daysAhead', ge=0, le=120)
    teacher_id: str | None = Field(default=None, alias='teacherId')


@router.post('/slots/sync')
async def api_sync_slots(
    payload: SyncPayload,
    repository: SqlSchedulingRepository = Depends(get_repository),
):
    service = build_sync_service(repository)
    try:
        result = await service.run(
            start_date=payload.start_date,
            days_ahead=payload.days_ahead,
            teacher_id=payload.teacher_id or None,
        )
    except SyncLoadError as exc:
        return JSONResponse(status_code=503, content={'message': str(exc)})
    return result.as_dict()


@router.post('/lessons/{lesson_id}/cancelled')
async def api_lesson_cancelled(
    lesson_id: str,
    repository: SqlSchedulingRepository = Depends(get_repository),
):
    lesson = await repository.set_lesson_status(lesson_id, LessonStatus.CANCELLED)
    if lesson is None:
        raise HTTPException(status_code=404, detail='Lesson not found')
    reopened = await build_lifecycle_service(repository).reopen_slots_for_cancelled_lesson(lesson.id)
    return {'lessonId': lesson.id, 'reopenedSlotIds': reopened}


@router.post('/lessons/{lesson_id}/booked')
async def api_lesson_booked(
    lesson_id: str,
    repository: SqlSchedulingRepository = Depends(get_repository),
):
    lesson = await repository.get_lesson(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail='Lesson not found')
    closed = await build_lifecycle_service(repository).close_overlapping_open_slots(
        lesson.teacher_id,
        lesson.date,
        lesson.start_time,
        lesson.duration_minutes,
        lesson_id=lesson.id,
    )
    return {'lessonId': lesson.id, 'closedSlotIds': closed}
