from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path


# Ensure imports work when running this file directly: `python scripts/weekly_rollover.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from tutor_scheduling.db import Base, engine
from tutor_scheduling.dependencies import build_rollover_scheduler, get_repository
from tutor_scheduling.domain.errors import SyncLoadError


logger = logging.getLogger('weekly_rollover')


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Open the next booking week and close the oldest one.')
    parser.add_argument('--date', dest='reference_date', default=None, help='reference date, YYYY-MM-DD (default: today)')
    parser.add_argument('--dry-run', action='store_true', help='print the weeks involved without changing anything')
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
    args = parse_args(argv)
    reference: date | None = None
    if args.reference_date:
        try:
            reference = date.fromisoformat(args.reference_date)
        except ValueError:
            print(f'Invalid --date {args.reference_date!r}, expected YYYY-MM-DD', file=sys.stderr)
            return 1

    scheduler = build_rollover_scheduler(get_repository())
    if args.dry_run:
        print(json.dumps(scheduler.plan(reference).as_dict(), ensure_ascii=False, indent=2))
        return 0

    Base.metadata.create_all(bind=engine)
    try:
        summary = asyncio.run(scheduler.perform_rollover(reference))
    except SyncLoadError as exc:
        logger.error('weekly_rollover_failed error=%s', exc)
        return 1
    print(json.dumps(summary.as_dict(), ensure_ascii=False, indent=2))
    return 1 if summary.sync and summary.sync.errors else 0


if __name__ == '__main__':
    sys.exit(main())
