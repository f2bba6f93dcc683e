import unittest
from dataclasses import replace
from datetime import date

from tutor_scheduling.core.status_mapping import SlotStatus
from tutor_scheduling.domain.records import SlotInstance, WeeklyTemplate, build_natural_key
from tutor_scheduling.services.inventory_diff import diff_inventory, is_protected
from tutor_scheduling.services.template_expander import generate_instances


MONDAY = date(2026, 10, 12)


def monday_template(template_id='1', start='16:00', end='17:00'):
    return WeeklyTemplate(id=template_id, teacher_id='T1', day_of_week=1, start_time=start, end_time=end)


def instance(slot_id, day, start='16:00', end='17:00', *, template_id='1', **kwargs):
    return SlotInstance(
        id=slot_id,
        natural_key=build_natural_key('T1', day, start),
        teacher_id='T1',
        date=day,
        start_time=start,
        end_time=end,
        created_from_template_id=template_id,
        **kwargs,
    )


class DiffInventoryTests(unittest.TestCase):
    def test_missing_instances_are_created(self):
        drafts = generate_instances([monday_template()], MONDAY, 14)
        existing = [instance('S1', MONDAY)]

        diff = diff_inventory(existing, drafts, {'1'})

        self.assertEqual([d.natural_key for d in diff.to_create], ['T1|2026-10-19|16:00'])
        self.assertEqual(diff.to_update, [])
        self.assertEqual(diff.to_deactivate, [])

    def test_matching_inventory_gives_empty_diff(self):
        drafts = generate_instances([monday_template()], MONDAY, 14)
        existing = [instance('S1', MONDAY), instance('S2', date(2026, 10, 19))]
        self.assertTrue(diff_inventory(existing, drafts, {'1'}).is_empty)

    def test_stale_unprotected_instance_is_updated(self):
        drafts = generate_instances([monday_template(end='17:30')], MONDAY, 6)
        existing = [instance('S1', MONDAY, end='17:00')]

        diff = diff_inventory(existing, drafts, {'1'})

        self.assertEqual(len(diff.to_update), 1)
        self.assertEqual(diff.to_update[0].existing.id, 'S1')
        self.assertEqual(diff.to_update[0].draft.end_time, '17:30')
        self.assertEqual(diff.to_create, [])

    def test_template_id_change_is_an_update(self):
        drafts = generate_instances([monday_template(template_id='7')], MONDAY, 6)
        diff = diff_inventory([instance('S1', MONDAY, template_id='1')], drafts, {'7'})
        self.assertEqual([u.existing.id for u in diff.to_update], ['S1'])
        self.assertEqual(diff.to_deactivate, [])

    def test_locked_instance_survives_template_change(self):
        drafts = generate_instances([monday_template(end='18:00')], MONDAY, 6)
        locked = instance('S1', MONDAY, end='17:00', is_locked=True)

        diff = diff_inventory([locked], drafts, {'1'})

        self.assertNotIn(locked, [u.existing for u in diff.to_update])
        self.assertNotIn(locked, diff.to_deactivate)
        self.assertEqual(diff.to_create, [])

    def test_orphans_of_inactive_templates_are_deactivated(self):
        orphan = instance('S1', MONDAY, template_id='9')
        diff = diff_inventory([orphan], [], set())
        self.assertEqual(diff.to_deactivate, [orphan])

    def test_instances_of_active_templates_are_not_deactivated(self):
        # template moved to 17:00; the 16:00 instance is no longer generated but its template is alive
        drafts = generate_instances([monday_template(start='17:00', end='18:00')], MONDAY, 6)
        old = instance('S1', MONDAY)
        diff = diff_inventory([old], drafts, {'1'})
        self.assertEqual(diff.to_deactivate, [])
        self.assertEqual([d.start_time for d in diff.to_create], ['17:00'])

    def test_manual_and_already_deactivated_instances_are_left_alone(self):
        manual = instance('S1', MONDAY, template_id=None)
        blocked = instance('S2', MONDAY, start='18:00', end='19:00', template_id='9', status=SlotStatus.BLOCKED)
        canceled = instance('S3', MONDAY, start='19:00', end='20:00', template_id='9', status=SlotStatus.CANCELED)
        self.assertTrue(diff_inventory([manual, blocked, canceled], [], set()).is_empty)

    def test_protected_instances_never_updated_or_deactivated(self):
        base = instance('S1', MONDAY, end='17:00', template_id='9')
        variants = [
            replace(base, is_locked=True),
            replace(base, linked_lesson_ids=('L1',)),
            replace(base, is_block=True),
        ]
        changed_templates = [
            [],
            [monday_template(template_id='9', end='18:00')],
            [monday_template(template_id='2', end='17:30')],
        ]
        for protected in variants:
            self.assertTrue(is_protected(protected))
            for templates in changed_templates:
                drafts = generate_instances(templates, MONDAY, 6)
                active = {t.id for t in templates}
                diff = diff_inventory([protected], drafts, active)
                self.assertEqual(diff.to_update, [], (protected, templates))
                self.assertEqual(diff.to_deactivate, [], (protected, templates))

    def test_deactivations_are_ordered_by_date_and_time(self):
        later = instance('S2', date(2026, 10, 19), template_id='9')
        earlier = instance('S1', MONDAY, template_id='9')
        diff = diff_inventory([later, earlier], [], set())
        self.assertEqual([s.id for s in diff.to_deactivate], ['S1', 'S2'])


if __name__ == '__main__':
    unittest.main()
