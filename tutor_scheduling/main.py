from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request

from tutor_scheduling.config import settings
from tutor_scheduling.db import Base, engine
from tutor_scheduling.routers import conflicts, rollover, slots
from tutor_scheduling.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    if settings.enable_scheduler:
        start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)


@app.middleware('http')
async def slow_request_logger(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        logging.getLogger('tutor_scheduling.request').info(
            'request_slow path=%s method=%s status_code=%s duration_ms=%.2f',
            request.url.path,
            request.method,
            response.status_code,
            duration_ms,
        )
    return response


app.include_router(conflicts.router)
app.include_router(slots.router)
app.include_router(rollover.router)


@app.get('/health')
def health():
    return {'status': 'ok', 'app': settings.app_name}
