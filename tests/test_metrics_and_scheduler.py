import asyncio
import unittest

from tutor_scheduling.metrics import run_timed_job, timed_service
from tutor_scheduling.scheduler import scheduler, start_scheduler, stop_scheduler


class TimedServiceTests(unittest.TestCase):
    def test_slow_sync_call_is_logged(self):
        @timed_service('unit_sync', threshold_ms=0)
        def work(value):
            return value * 2

        with self.assertLogs('tutor_scheduling.metrics', level='INFO') as logs:
            self.assertEqual(work(21), 42)
        self.assertTrue(any('service_timer label=unit_sync' in line for line in logs.output))

    def test_slow_async_call_is_logged(self):
        @timed_service('unit_async', threshold_ms=0)
        async def work():
            return 'done'

        with self.assertLogs('tutor_scheduling.metrics', level='INFO') as logs:
            self.assertEqual(asyncio.run(work()), 'done')
        self.assertTrue(any('service_timer label=unit_async' in line for line in logs.output))

    def test_failed_job_is_logged_and_reraised(self):
        def boom():
            raise RuntimeError('job exploded')

        with self.assertLogs('tutor_scheduling.metrics', level='INFO') as logs:
            with self.assertRaises(RuntimeError):
                run_timed_job('unit_job', boom)
        joined = '\n'.join(logs.output)
        self.assertIn('job_start name=unit_job', joined)
        self.assertIn('job_failed name=unit_job', joined)
        self.assertIn('job_end name=unit_job status=failed', joined)


class SchedulerRegistrationTests(unittest.TestCase):
    def test_rollover_and_sync_jobs_are_registered(self):
        start_scheduler()
        try:
            registered = {job.id for job in scheduler.get_jobs()}
        finally:
            stop_scheduler()
        self.assertTrue({'weekly_rollover', 'slot_sync'} <= registered)


if __name__ == '__main__':
    unittest.main()
