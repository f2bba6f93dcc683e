import unittest
from datetime import date

from tutor_scheduling.core.status_mapping import (
    LessonStatus,
    SlotStatus,
    SlotType,
    lesson_status_from_stored,
    lesson_status_to_stored,
    slot_status_from_stored,
    slot_status_to_stored,
    slot_type_from_stored,
)
from tutor_scheduling.domain.errors import ValidationError
from tutor_scheduling.domain.records import build_natural_key, parse_natural_key
from tutor_scheduling.utils.time_utils import normalize_hhmm, resolve_datetime


class StatusMappingTests(unittest.TestCase):
    def test_slot_statuses_accept_both_locales(self):
        self.assertEqual(slot_status_from_stored('פתוח'), SlotStatus.OPEN)
        self.assertEqual(slot_status_from_stored('closed'), SlotStatus.CLOSED)
        self.assertEqual(slot_status_from_stored('מבוטל'), SlotStatus.CANCELED)
        self.assertEqual(slot_status_from_stored('חסום ע"י מנהל'), SlotStatus.BLOCKED)

    def test_unknown_slot_status_reads_as_open(self):
        self.assertEqual(slot_status_from_stored(None), SlotStatus.OPEN)
        self.assertEqual(slot_status_from_stored('something else'), SlotStatus.OPEN)

    def test_statuses_are_written_in_hebrew(self):
        self.assertEqual(slot_status_to_stored(SlotStatus.CLOSED), 'סגור')
        self.assertEqual(slot_status_to_stored('blocked'), 'חסום ע"י מנהל')
        self.assertEqual(lesson_status_to_stored(LessonStatus.CANCELLED), 'בוטל')

    def test_every_status_survives_a_write_and_read(self):
        for status in SlotStatus:
            self.assertEqual(slot_status_from_stored(slot_status_to_stored(status)), status)
        for status in LessonStatus:
            self.assertEqual(lesson_status_from_stored(lesson_status_to_stored(status)), status)

    def test_lesson_statuses(self):
        self.assertEqual(lesson_status_from_stored('ממתין לאישור ביטול'), LessonStatus.PENDING_CANCEL)
        self.assertEqual(lesson_status_from_stored('canceled'), LessonStatus.CANCELLED)
        self.assertEqual(lesson_status_from_stored(''), LessonStatus.SCHEDULED)

    def test_slot_type(self):
        self.assertEqual(slot_type_from_stored('Group'), SlotType.GROUP)
        self.assertIsNone(slot_type_from_stored(''))
        self.assertIsNone(slot_type_from_stored('workshop'))


class NaturalKeyTests(unittest.TestCase):
    def test_canonical_form(self):
        self.assertEqual(build_natural_key('T1', date(2026, 10, 12), '9:00'), 'T1|2026-10-12|09:00')
        self.assertEqual(build_natural_key('T1', '2026-10-12', '09:00:00'), 'T1|2026-10-12|09:00')

    def test_parse_is_the_inverse(self):
        self.assertEqual(parse_natural_key('T1|2026-10-12|09:00'), ('T1', date(2026, 10, 12), '09:00'))

    def test_malformed_keys(self):
        with self.assertRaises(ValidationError):
            build_natural_key('', date(2026, 10, 12), '09:00')
        with self.assertRaises(ValidationError):
            parse_natural_key('T1_2026-10-12_09:00')


class TimeParsingTests(unittest.TestCase):
    def test_normalize(self):
        self.assertEqual(normalize_hhmm(' 7:05 '), '07:05')
        with self.assertRaises(ValueError):
            normalize_hhmm('7')

    def test_resolve_converts_aware_iso_to_local_wall_time(self):
        resolved = resolve_datetime(date(2026, 10, 12), '2026-10-12T07:30:00Z')
        self.assertEqual(resolved.tzinfo, None)
        self.assertEqual((resolved.hour, resolved.minute), (10, 30))


if __name__ == '__main__':
    unittest.main()
