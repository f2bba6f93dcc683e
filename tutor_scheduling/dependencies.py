from __future__ import annotations

from tutor_scheduling.config import settings
from tutor_scheduling.db import SessionLocal
from tutor_scheduling.repositories.sql_repository import SqlSchedulingRepository
from tutor_scheduling.services.conflict_detector import ConflictDetector
from tutor_scheduling.services.slot_lifecycle_service import SlotLifecycleService
from tutor_scheduling.services.slot_opening_guard import SlotOpeningGuard
from tutor_scheduling.services.slot_sync_service import SlotSyncService
from tutor_scheduling.services.weekly_rollover_service import RolloverScheduler


def get_repository() -> SqlSchedulingRepository:
    return SqlSchedulingRepository(SessionLocal)


def build_conflict_detector(repository: SqlSchedulingRepository) -> ConflictDetector:
    return ConflictDetector(repository, timeout_seconds=settings.fetch_timeout_seconds)


def build_opening_guard(repository: SqlSchedulingRepository) -> SlotOpeningGuard:
    return SlotOpeningGuard(build_conflict_detector(repository), timeout_seconds=settings.fetch_timeout_seconds)


def build_sync_service(repository: SqlSchedulingRepository) -> SlotSyncService:
    return SlotSyncService(repository, build_opening_guard(repository), timeout_seconds=settings.fetch_timeout_seconds)


def build_rollover_scheduler(repository: SqlSchedulingRepository) -> RolloverScheduler:
    return RolloverScheduler(build_sync_service(repository), repository, repository)


def build_lifecycle_service(repository: SqlSchedulingRepository) -> SlotLifecycleService:
    return SlotLifecycleService(repository, repository, opening_guard=build_opening_guard(repository))
