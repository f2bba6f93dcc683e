import unittest
from datetime import date

from tutor_scheduling.domain.errors import ValidationError
from tutor_scheduling.domain.records import WeeklyTemplate
from tutor_scheduling.services.template_expander import expandable_templates, generate_instances, validate_template


MONDAY = date(2026, 10, 12)


def template(template_id='1', day_of_week=1, start='16:00', end='17:00', **kwargs):
    return WeeklyTemplate(
        id=template_id,
        teacher_id=kwargs.pop('teacher_id', 'T1'),
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        **kwargs,
    )


class GenerateInstancesTests(unittest.TestCase):
    def test_monday_template_over_two_weeks(self):
        drafts = generate_instances([template()], MONDAY, 14)

        self.assertEqual([d.natural_key for d in drafts], ['T1|2026-10-12|16:00', 'T1|2026-10-19|16:00'])
        self.assertEqual((drafts[1].date - drafts[0].date).days, 7)
        self.assertEqual(drafts[0].created_from_template_id, '1')
        self.assertEqual(drafts[0].end_time, '17:00')

    def test_window_starts_at_the_sunday_of_its_week(self):
        # Wednesday start: the Sunday of that week is included, window end is inclusive
        drafts = generate_instances([template(day_of_week=0)], date(2026, 10, 14), 14)
        self.assertEqual([d.date for d in drafts], [date(2026, 10, 11), date(2026, 10, 18), date(2026, 10, 25)])

    def test_identical_inputs_give_identical_ordered_output(self):
        templates = [
            template('3', day_of_week=3, start='09:00', end='10:00'),
            template('1', day_of_week=1),
            template('2', day_of_week=1, start='08:00', end='09:00', teacher_id='T2'),
        ]
        first = generate_instances(templates, MONDAY, 14)
        second = generate_instances(list(reversed(templates)), MONDAY, 14)
        self.assertEqual(first, second)
        self.assertEqual(
            [d.natural_key for d in first[:3]],
            ['T2|2026-10-12|08:00', 'T1|2026-10-12|16:00', 'T1|2026-10-14|09:00'],
        )

    def test_inactive_fixed_and_incomplete_templates_are_skipped(self):
        templates = [
            template('1', is_active=False),
            template('2', is_fixed=True, reserved_for_student='Dana'),
            template('3', teacher_id=''),
            template('4', day_of_week=None),
            template('5', start='17:00', end='16:00'),
            template('6', day_of_week=2),
        ]
        with self.assertLogs('tutor_scheduling.services.template_expander', level='WARNING') as logs:
            drafts = generate_instances(templates, MONDAY, 14)
        self.assertEqual({d.created_from_template_id for d in drafts}, {'6'})
        self.assertEqual(len([line for line in logs.output if 'template_skipped' in line]), 3)

    def test_start_times_are_normalised_before_keying(self):
        drafts = generate_instances([template(start='9:00', end='10:00:00')], MONDAY, 6)
        self.assertEqual([d.natural_key for d in drafts], ['T1|2026-10-12|09:00'])
        self.assertEqual(drafts[0].start_time, '09:00')
        self.assertEqual(drafts[0].end_time, '10:00')

    def test_templates_sharing_a_key_produce_one_draft(self):
        with self.assertLogs('tutor_scheduling.services.template_expander', level='WARNING'):
            drafts = generate_instances([template('2', end='18:00'), template('1')], MONDAY, 6)
        self.assertEqual(len(drafts), 1)
        self.assertEqual(drafts[0].created_from_template_id, '1')


class ValidateTemplateTests(unittest.TestCase):
    def test_reports_missing_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_template(template(start='', teacher_id=''))
        self.assertIn('teacher_id', str(ctx.exception))
        self.assertIn('start_time', str(ctx.exception))
        self.assertEqual(ctx.exception.record_id, '1')

    def test_expandable_keeps_valid_active_templates(self):
        usable = expandable_templates([template('1'), template('2', is_active=False)])
        self.assertEqual([t.id for t in usable], ['1'])


if __name__ == '__main__':
    unittest.main()
