from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from tutor_scheduling.core.time_provider import TimeProvider, default_time_provider, next_week_start, open_weeks
from tutor_scheduling.domain.contracts import InventoryRepository, LessonRepository
from tutor_scheduling.domain.records import SyncResult
from tutor_scheduling.metrics import timed_service
from tutor_scheduling.services.fixed_lesson_service import materialize_fixed_lessons
from tutor_scheduling.services.slot_sync_service import SlotSyncService


logger = logging.getLogger(__name__)

# days past the week start, inclusive: one Sunday..Saturday week
WEEK_SPAN_DAYS = 6


@dataclass
class RolloverSummary:
    reference_date: date
    open_weeks: tuple[date, date]
    closed_week: date
    opened_week: date
    dry_run: bool = False
    sync: SyncResult | None = None
    fixed_lessons_created: int = 0

    def as_dict(self) -> dict:
        return {
            'referenceDate': self.reference_date.isoformat(),
            'openWeeks': [w.isoformat() for w in self.open_weeks],
            'closedWeek': self.closed_week.isoformat(),
            'openedWeek': self.opened_week.isoformat(),
            'dryRun': self.dry_run,
            'sync': self.sync.as_dict() if self.sync else None,
            'fixedLessonsCreated': self.fixed_lessons_created,
        }


class RolloverScheduler:
    """Advances the two-week booking window by one week per call.

    Nothing is stored: the open weeks are derived from the reference date each
    time, and opening a week goes through the same idempotent sync as the
    nightly job, so repeated calls for the same date change nothing.
    """

    def __init__(
        self,
        sync_service: SlotSyncService,
        repository: InventoryRepository,
        lessons: LessonRepository,
        *,
        time_provider: TimeProvider = default_time_provider,
    ) -> None:
        self.sync_service = sync_service
        self.repository = repository
        self.lessons = lessons
        self.time_provider = time_provider

    def current_open_weeks(self, reference: date | None = None) -> tuple[date, date]:
        return open_weeks(reference or self.time_provider.today())

    def close_past_week(self, week: date) -> None:
        # Instances of the closed week are history and stay as they are.
        logger.info('rollover_close_week week_start=%s', week.isoformat())

    async def open_new_week(self, week: date) -> tuple[SyncResult, int]:
        logger.info('rollover_open_week week_start=%s', week.isoformat())
        sync_result = await self.sync_service.run(start_date=week, days_ahead=WEEK_SPAN_DAYS)
        templates = await self.repository.list_templates()
        created = await materialize_fixed_lessons(templates, self.lessons, week)
        return sync_result, len(created)

    def plan(self, reference_date: date | None = None) -> RolloverSummary:
        reference = reference_date or self.time_provider.today()
        current, following = self.current_open_weeks(reference)
        return RolloverSummary(
            reference_date=reference,
            open_weeks=(current, following),
            closed_week=current,
            opened_week=next_week_start(following),
            dry_run=True,
        )

    @timed_service('weekly_rollover')
    async def perform_rollover(self, reference_date: date | None = None) -> RolloverSummary:
        summary = self.plan(reference_date)
        summary.dry_run = False
        logger.info(
            'rollover_start reference=%s open_weeks=%s,%s new_week=%s',
            summary.reference_date.isoformat(),
            summary.open_weeks[0].isoformat(),
            summary.open_weeks[1].isoformat(),
            summary.opened_week.isoformat(),
        )
        self.close_past_week(summary.closed_week)
        summary.sync, summary.fixed_lessons_created = await self.open_new_week(summary.opened_week)
        logger.info(
            'rollover_complete new_week=%s created=%s updated=%s deactivated=%s errors=%s fixed_lessons=%s',
            summary.opened_week.isoformat(),
            summary.sync.created,
            summary.sync.updated,
            summary.sync.deactivated,
            len(summary.sync.errors),
            summary.fixed_lessons_created,
        )
        return summary
