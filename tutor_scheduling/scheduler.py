import asyncio
import logging

from apscheduler.schedulers.background import BackgroundScheduler

from tutor_scheduling.config import settings
from tutor_scheduling.dependencies import build_rollover_scheduler, build_sync_service, get_repository
from tutor_scheduling.metrics import run_timed_job


scheduler = BackgroundScheduler(timezone=settings.app_timezone)
logger = logging.getLogger(__name__)


def _run_job(label: str, task) -> None:
    run_timed_job(label, lambda: asyncio.run(task()))


def weekly_rollover_job():
    async def _job():
        summary = await build_rollover_scheduler(get_repository()).perform_rollover()
        logger.info('weekly_rollover_job_summary %s', summary.as_dict())

    _run_job('weekly_rollover', _job)


def slot_sync_job():
    async def _job():
        result = await build_sync_service(get_repository()).run(days_ahead=settings.sync_days_ahead)
        if result.errors:
            logger.warning('slot_sync_job_errors count=%s first=%s', len(result.errors), result.errors[0])

    _run_job('slot_sync', _job)


def start_scheduler():
    scheduler.add_job(
        weekly_rollover_job,
        'cron',
        day_of_week=settings.rollover_day_of_week,
        hour=settings.rollover_hour,
        minute=settings.rollover_minute,
        id='weekly_rollover',
        replace_existing=True,
    )
    scheduler.add_job(
        slot_sync_job,
        'cron',
        hour=settings.daily_sync_hour,
        minute=settings.daily_sync_minute,
        id='slot_sync',
        replace_existing=True,
    )

    if not scheduler.running:
        scheduler.start()


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
