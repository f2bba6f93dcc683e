import asyncio
import sys

from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic.runtime.migration import MigrationContext
from sqlalchemy import text

from tutor_scheduling.config import settings
from tutor_scheduling.core.intervals import overlaps
from tutor_scheduling.core.time_provider import default_time_provider, open_weeks
from tutor_scheduling.db import SessionLocal, engine
from tutor_scheduling.dependencies import build_conflict_detector, get_repository
from tutor_scheduling.models import SlotInventory, WeeklyTemplate
from tutor_scheduling.scheduler import scheduler, start_scheduler, stop_scheduler
from tutor_scheduling.utils.time_utils import day_bounds


EXPECTED_SCHEDULER_JOBS = {
    'weekly_rollover',
    'slot_sync',
}

GREEN = '\033[32m'
RED = '\033[31m'
RESET = '\033[0m'


def run_check(name, fn):
    try:
        message = fn() or ''
        suffix = f' - {message}' if message else ''
        print(f'{GREEN}PASS{RESET} {name}{suffix}')
        return True
    except Exception as exc:
        print(f'{RED}FAIL{RESET} {name} - {exc}')
        return False


def check_db_connectivity_and_write():
    with engine.begin() as conn:
        conn.execute(text('SELECT 1'))
        conn.execute(text('CREATE TABLE IF NOT EXISTS _healthcheck_probe (id INTEGER PRIMARY KEY, note TEXT)'))
        conn.execute(text("INSERT INTO _healthcheck_probe (note) VALUES ('probe')"))
        conn.execute(text("DELETE FROM _healthcheck_probe WHERE note='probe'"))
        conn.execute(text('DROP TABLE IF EXISTS _healthcheck_probe'))
    return 'connect + write ok'


def check_alembic_head():
    cfg = Config('alembic.ini')
    script = ScriptDirectory.from_config(cfg)
    heads = set(script.get_heads())
    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_revision()

    if current is None:
        raise RuntimeError('No migration version in DB (run alembic upgrade head)')
    if current not in heads:
        raise RuntimeError(f'DB revision {current} is not at head {sorted(heads)}')
    return f'current={current}'


def check_required_env():
    required = {
        'DATABASE_URL': settings.database_url,
        'APP_TIMEZONE': settings.app_timezone,
    }
    missing = [key for key, value in required.items() if not str(value).strip()]
    if missing:
        raise RuntimeError(f'Missing env vars: {", ".join(missing)}')
    return 'all required vars present'


def check_scheduler_jobs_registered():
    start_scheduler()
    try:
        registered = {job.id for job in scheduler.get_jobs()}
        missing = sorted(EXPECTED_SCHEDULER_JOBS - registered)
        if missing:
            raise RuntimeError(f'Missing jobs: {missing}')
        return f'jobs={sorted(registered)}'
    finally:
        stop_scheduler()


def check_scheduling_tables_accessible():
    db = SessionLocal()
    try:
        templates = db.query(WeeklyTemplate).filter(WeeklyTemplate.is_active.is_(True)).count()
        current, following = open_weeks(default_time_provider.today())
        slots = db.query(SlotInventory).filter(SlotInventory.slot_date >= current).count()
        return f'active_templates={templates} slots_from_{current.isoformat()}={slots} next_open={following.isoformat()}'
    finally:
        db.close()


def check_overlap_semantics():
    today = default_time_provider.today()
    start, end = day_bounds(today)
    if overlaps(start, end, end, end.replace(hour=1)):
        raise RuntimeError('touching ranges reported as overlapping')
    return 'half-open ok'


def check_conflict_fetchers():
    detector = build_conflict_detector(get_repository())
    start, _ = day_bounds(default_time_provider.today())
    conflicts = asyncio.run(detector.find_lesson_conflicts('healthcheck', start, start.replace(hour=1)))
    return f'conflicts={len(conflicts)}'


def main():
    checks = [
        ('Database connectivity and write access', check_db_connectivity_and_write),
        ('Alembic migration status at head', check_alembic_head),
        ('Required environment variables present', check_required_env),
        ('Scheduler jobs registered', check_scheduler_jobs_registered),
        ('Scheduling tables accessible', check_scheduling_tables_accessible),
        ('Overlap predicate is half-open', check_overlap_semantics),
        ('Conflict fetchers reachable', check_conflict_fetchers),
    ]

    all_ok = True
    for name, fn in checks:
        all_ok = run_check(name, fn) and all_ok

    if not all_ok:
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()
