import asyncio
import unittest
from datetime import date, datetime

from tutor_scheduling.core.status_mapping import LessonStatus, SlotStatus
from tutor_scheduling.domain.errors import CONFLICT_CHECK_FAILED_MESSAGE, ConflictCheckFailed, ValidationError
from tutor_scheduling.domain.records import LessonRecord, SlotInstance, build_natural_key
from tutor_scheduling.services.conflict_detector import (
    ConflictCheckRequest,
    ConflictDetector,
    build_conflict_summary,
)


DAY = date(2026, 10, 12)


def make_lesson(lesson_id, start_time, duration=60, *, teacher_id='T1', status=LessonStatus.SCHEDULED, student_name=''):
    return LessonRecord(
        id=lesson_id,
        teacher_id=teacher_id,
        date=DAY,
        start_time=start_time,
        duration_minutes=duration,
        status=status,
        student_name=student_name,
    )


def make_slot(slot_id, start_time, end_time, *, teacher_id='T1', status=SlotStatus.OPEN):
    return SlotInstance(
        id=slot_id,
        natural_key=build_natural_key(teacher_id, DAY, start_time),
        teacher_id=teacher_id,
        date=DAY,
        start_time=start_time,
        end_time=end_time,
        status=status,
    )


class FakeFetchers:
    def __init__(self, lessons=(), slots=(), *, lesson_error=None, slot_error=None, delay=0.0):
        self.lessons = list(lessons)
        self.slots = list(slots)
        self.lesson_error = lesson_error
        self.slot_error = slot_error
        self.delay = delay
        self.calls = []

    async def get_lessons(self, start_iso, end_iso, teacher_id=None):
        self.calls.append(('lessons', start_iso, end_iso, teacher_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.lesson_error:
            raise self.lesson_error
        return list(self.lessons)

    async def get_open_slots(self, start_iso, end_iso, teacher_id=None):
        self.calls.append(('slots', start_iso, end_iso, teacher_id))
        if self.slot_error:
            raise self.slot_error
        return list(self.slots)


class SlowSlotFetchers(FakeFetchers):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.slots_finished = False

    async def get_open_slots(self, start_iso, end_iso, teacher_id=None):
        await asyncio.sleep(0.05)
        self.slots_finished = True
        return await super().get_open_slots(start_iso, end_iso, teacher_id)


def request(entity='slot_inventory', start='10:30', end='11:30', **kwargs):
    return ConflictCheckRequest(entity=entity, teacher_id=kwargs.pop('teacher_id', 'T1'), date=DAY, start=start, end=end, **kwargs)


class ConflictDetectorTests(unittest.TestCase):
    def _check(self, fetchers, req, **kwargs):
        return asyncio.run(ConflictDetector(fetchers, **kwargs).check(req))

    def test_open_slot_over_existing_lesson_conflicts(self):
        fetchers = FakeFetchers(lessons=[make_lesson('L1', '10:00', student_name='Noa')])
        result = self._check(fetchers, request())

        self.assertTrue(result.has_conflicts)
        payload = result.as_dict()
        self.assertEqual(payload['hasConflicts'], True)
        self.assertEqual(
            payload['conflicts'],
            [
                {
                    'source': 'lessons',
                    'recordId': 'L1',
                    'start': '2026-10-12T10:00:00',
                    'end': '2026-10-12T11:00:00',
                    'label': 'Noa',
                }
            ],
        )

    def test_lesson_touching_open_slot_does_not_conflict(self):
        fetchers = FakeFetchers(slots=[make_slot('S1', '10:00', '11:00')])
        result = self._check(fetchers, request(entity='lesson', start='11:00', end='12:00'))
        self.assertFalse(result.has_conflicts)
        self.assertEqual(result.as_dict(), {'hasConflicts': False, 'conflicts': []})

    def test_fetchers_are_asked_for_the_whole_day(self):
        fetchers = FakeFetchers()
        self._check(fetchers, request())
        self.assertIn(('lessons', '2026-10-12T00:00:00', '2026-10-13T00:00:00', 'T1'), fetchers.calls)
        self.assertIn(('slots', '2026-10-12T00:00:00', '2026-10-13T00:00:00', 'T1'), fetchers.calls)

    def test_cancelled_and_pending_cancel_lessons_are_ignored(self):
        fetchers = FakeFetchers(
            lessons=[
                make_lesson('L1', '10:00', status=LessonStatus.CANCELLED),
                make_lesson('L2', '10:00', status=LessonStatus.PENDING_CANCEL),
                make_lesson('L3', '10:00', status=LessonStatus.COMPLETED),
            ]
        )
        result = self._check(fetchers, request())
        self.assertEqual([c.record_id for c in result.conflicts], ['L3'])

    def test_excluded_record_and_linked_lessons_are_ignored(self):
        fetchers = FakeFetchers(
            lessons=[make_lesson('L1', '10:00'), make_lesson('L2', '10:30')],
            slots=[make_slot('S1', '10:00', '11:00'), make_slot('S2', '11:00', '12:00')],
        )
        result = self._check(fetchers, request(record_id='S1', linked_lesson_ids=('L1',)))
        self.assertEqual([c.record_id for c in result.conflicts], ['L2', 'S2'])

    def test_other_teachers_and_closed_slots_are_ignored(self):
        fetchers = FakeFetchers(
            lessons=[make_lesson('L1', '10:00', teacher_id='T2')],
            slots=[make_slot('S1', '10:00', '11:00', status=SlotStatus.CLOSED), make_slot('S2', '10:00', '11:00', teacher_id='T2')],
        )
        result = self._check(fetchers, request())
        self.assertFalse(result.has_conflicts)

    def test_conflicts_are_sorted_by_start(self):
        fetchers = FakeFetchers(
            lessons=[make_lesson('L-late', '12:00'), make_lesson('L-early', '09:00')],
            slots=[make_slot('S-mid', '10:30', '11:00')],
        )
        result = self._check(fetchers, request(start='08:00', end='13:00'))
        self.assertEqual([c.record_id for c in result.conflicts], ['L-early', 'S-mid', 'L-late'])
        self.assertEqual(
            build_conflict_summary(result.conflicts),
            'lessons:L-early 09:00-10:00; slot_inventory:S-mid 10:30-11:00; lessons:L-late 12:00-13:00',
        )

    def test_iso_datetimes_are_accepted(self):
        fetchers = FakeFetchers(lessons=[make_lesson('L1', '10:00')])
        result = self._check(fetchers, request(start='2026-10-12T10:30:00', end='2026-10-12T11:30:00'))
        self.assertEqual([c.record_id for c in result.conflicts], ['L1'])

    def test_either_fetch_failing_fails_the_whole_check(self):
        for kwargs in ({'lesson_error': RuntimeError('lessons down')}, {'slot_error': RuntimeError('slots down')}):
            fetchers = FakeFetchers(lessons=[make_lesson('L1', '10:00')], **kwargs)
            with self.assertRaises(ConflictCheckFailed) as ctx:
                self._check(fetchers, request())
            self.assertEqual(str(ctx.exception), CONFLICT_CHECK_FAILED_MESSAGE)

    def test_failed_lesson_fetch_still_collects_the_slot_fetch(self):
        lessons_down = RuntimeError('lessons down')
        fetchers = SlowSlotFetchers(lesson_error=lessons_down)
        with self.assertRaises(ConflictCheckFailed) as ctx:
            self._check(fetchers, request())
        self.assertIs(ctx.exception.__cause__, lessons_down)
        self.assertTrue(fetchers.slots_finished)

    def test_slow_fetch_times_out_as_check_failure(self):
        fetchers = FakeFetchers(lessons=[make_lesson('L1', '10:00')], delay=1.0)
        with self.assertRaises(ConflictCheckFailed):
            self._check(fetchers, request(), timeout_seconds=0.05)

    def test_invalid_request_is_a_validation_error(self):
        with self.assertRaises(ValidationError):
            self._check(FakeFetchers(), request(entity='invoice'))
        with self.assertRaises(ValidationError):
            self._check(FakeFetchers(), request(start='25:00'))


class FindLessonConflictsTests(unittest.TestCase):
    def test_only_active_lessons_of_the_teacher_count(self):
        fetchers = FakeFetchers(
            lessons=[
                make_lesson('L1', '16:00'),
                make_lesson('L2', '16:30', status=LessonStatus.CANCELLED),
                make_lesson('L3', '16:00', teacher_id='T2'),
            ],
            slots=[make_slot('S1', '16:00', '17:00')],
        )
        detector = ConflictDetector(fetchers)
        conflicts = asyncio.run(detector.find_lesson_conflicts('T1', datetime(2026, 10, 12, 16), datetime(2026, 10, 12, 17)))
        self.assertEqual([c.record_id for c in conflicts], ['L1'])
        self.assertNotIn('slots', [call[0] for call in fetchers.calls])

    def test_fetch_failure_raises_check_failed(self):
        detector = ConflictDetector(FakeFetchers(lesson_error=TimeoutError()))
        with self.assertRaises(ConflictCheckFailed):
            asyncio.run(detector.find_lesson_conflicts('T1', datetime(2026, 10, 12, 16), datetime(2026, 10, 12, 17)))


if __name__ == '__main__':
    unittest.main()
