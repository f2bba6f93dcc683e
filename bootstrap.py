import asyncio
import logging

from tutor_scheduling.config import settings
from tutor_scheduling.db import Base, engine
from tutor_scheduling.dependencies import build_sync_service, get_repository


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
logger = logging.getLogger('bootstrap')


def main():
    Base.metadata.create_all(bind=engine)
    result = asyncio.run(build_sync_service(get_repository()).run(days_ahead=settings.sync_days_ahead))
    if result.errors:
        logger.warning('Bootstrap sync finished with errors: %s', result.as_dict())
    else:
        logger.info('Bootstrap sync executed: %s', result.as_dict())


if __name__ == '__main__':
    main()
