"""Decides whether a slot may be opened over the teacher's booked lessons.

A confirmed overlap blocks the opening. Failing to verify does not: the
caller gets `CheckUnavailable` and decides for itself, which keeps transient
fetch failures from leaving availability closed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from tutor_scheduling.core.intervals import Interval
from tutor_scheduling.domain.errors import ConflictCheckFailed
from tutor_scheduling.services.conflict_detector import ConflictDetector


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class ConfirmedConflict:
    conflicts: list[Interval] = field(default_factory=list)

    @property
    def lesson_ids(self) -> list[str]:
        return [c.record_id for c in self.conflicts]


@dataclass(frozen=True)
class CheckUnavailable:
    reason: str


OpeningDecision = Clear | ConfirmedConflict | CheckUnavailable


def _describe(exc: BaseException) -> str:
    return f'{type(exc).__name__}: {exc}' if str(exc) else type(exc).__name__


class SlotOpeningGuard:
    def __init__(self, detector: ConflictDetector, *, timeout_seconds: float | None = None) -> None:
        self.detector = detector
        self.timeout_seconds = timeout_seconds

    async def evaluate(
        self,
        teacher_id: str,
        start: datetime,
        end: datetime,
        *,
        linked_lesson_ids: tuple[str, ...] = (),
    ) -> OpeningDecision:
        check = self.detector.find_lesson_conflicts(teacher_id, start, end, exclude_linked_ids=linked_lesson_ids)
        try:
            if self.timeout_seconds:
                conflicts = await asyncio.wait_for(check, timeout=self.timeout_seconds)
            else:
                conflicts = await check
        except ConflictCheckFailed as exc:
            return CheckUnavailable(reason=_describe(exc.__cause__) if exc.__cause__ else str(exc))
        except asyncio.TimeoutError as exc:
            logger.warning('slot_opening_check_timeout start=%s timeout_s=%s', start.isoformat(), self.timeout_seconds)
            return CheckUnavailable(reason=_describe(exc))
        if conflicts:
            return ConfirmedConflict(conflicts=conflicts)
        return Clear()
