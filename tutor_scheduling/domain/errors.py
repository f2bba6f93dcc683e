from __future__ import annotations

from typing import Sequence

from tutor_scheduling.core.intervals import Interval


CONFLICT_CHECK_FAILED_MESSAGE = 'שגיאה בבדיקת חפיפות. נסה שוב.'


class SchedulingError(Exception):
    pass


class ValidationError(SchedulingError):
    def __init__(self, message: str, *, record_id: str | None = None) -> None:
        super().__init__(message)
        self.record_id = record_id


class FetchError(SchedulingError):
    def __init__(self, message: str, *, operation: str = '') -> None:
        super().__init__(message)
        self.operation = operation


class SyncLoadError(FetchError):
    pass


class ConflictError(SchedulingError):
    def __init__(self, natural_key: str, conflicts: Sequence[Interval]) -> None:
        self.natural_key = natural_key
        self.conflicts = list(conflicts)
        ids = ', '.join(c.record_id for c in self.conflicts)
        super().__init__(f'Slot {natural_key} overlaps existing lessons: {ids}')


class ConflictCheckFailed(SchedulingError):
    def __init__(self, message: str = CONFLICT_CHECK_FAILED_MESSAGE) -> None:
        super().__init__(message)
