from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from tutor_scheduling.core.time_provider import next_week_start
from tutor_scheduling.dependencies import build_rollover_scheduler, get_repository
from tutor_scheduling.domain.errors import SyncLoadError
from tutor_scheduling.repositories.sql_repository import SqlSchedulingRepository


router = APIRouter(prefix='/api/rollover', tags=['Rollover'])


class RolloverPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reference_date: date | None = Field(default=None, alias='referenceDate')
    dry_run: bool = Field(default=False, alias='dryRun')


@router.get('/open-weeks')
def api_open_weeks(
    date_value: date | None = Query(default=None, alias='date'),
    repository: SqlSchedulingRepository = Depends(get_repository),
):
    current, following = build_rollover_scheduler(repository).current_open_weeks(date_value)
    return {
        'openWeeks': [current.isoformat(), following.isoformat()],
        'nextWeek': next_week_start(following).isoformat(),
    }


@router.post('/run')
async def api_run_rollover(
    payload: RolloverPayload,
    repository: SqlSchedulingRepository = Depends(get_repository),
):
    scheduler = build_rollover_scheduler(repository)
    if payload.dry_run:
        return scheduler.plan(payload.reference_date).as_dict()
    try:
        summary = await scheduler.perform_rollover(payload.reference_date)
    except SyncLoadError as exc:
        return JSONResponse(status_code=503, content={'message': str(exc)})
    return summary.as_dict()
