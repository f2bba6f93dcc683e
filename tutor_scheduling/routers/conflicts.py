from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from tutor_scheduling.dependencies import build_conflict_detector, get_repository
from tutor_scheduling.domain.errors import ConflictCheckFailed, ValidationError
from tutor_scheduling.repositories.sql_repository import SqlSchedulingRepository
from tutor_scheduling.services.conflict_detector import ConflictCheckRequest


router = APIRouter(prefix='/api/conflicts', tags=['Conflicts'])


class ConflictCheckPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entity: Literal['lesson', 'slot_inventory']
    record_id: str | None = Field(default=None, alias='recordId')
    linked_lesson_ids: list[str] = Field(default_factory=list, alias='linkedLessonIds')
    teacher_id: str = Field(alias='teacherId', min_length=1)
    date: date
    start: str = Field(min_length=1)
    end: str = Field(min_length=1)


@router.post('/check')
async def api_check_conflicts(
    payload: ConflictCheckPayload,
    repository: SqlSchedulingRepository = Depends(get_repository),
):
    detector = build_conflict_detector(repository)
    request = ConflictCheckRequest(
        entity=payload.entity,
        teacher_id=payload.teacher_id,
        date=payload.date,
        start=payload.start,
        end=payload.end,
        record_id=payload.record_id,
        linked_lesson_ids=tuple(payload.linked_lesson_ids),
    )
    try:
        result = await detector.check(request)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ConflictCheckFailed as exc:
        return JSONResponse(status_code=500, content={'message': str(exc)})
    return result.as_dict()
