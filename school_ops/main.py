from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from school_ops.config import settings
from school_ops.db import Base, SessionLocal, engine
from school_ops.errors import register_error_handlers
from school_ops.metrics import log_slow_requests
from school_ops.routers import attendance, class_booking, cohorts, enrollments, follow_ups, rpc, students, teachers, touchpoints
from school_ops.scheduler import start_scheduler, stop_scheduler
from school_ops.services.language_level_service import seed_language_levels

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_language_levels(db)
    finally:
        db.close()
    if settings.enable_scheduler:
        start_scheduler()
    logger.info('app_started env=%s scheduler=%s', settings.app_env, settings.enable_scheduler)
    yield
    stop_scheduler()


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origin.split(',') if origin.strip()],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)
app.middleware('http')(log_slow_requests)
register_error_handlers(app)

app.include_router(students.router)
app.include_router(teachers.router)
app.include_router(cohorts.router)
app.include_router(class_booking.router)
app.include_router(follow_ups.router)
app.include_router(enrollments.router)
app.include_router(attendance.router)
app.include_router(touchpoints.router)
app.include_router(rpc.router)


@app.get('/', response_class=PlainTextResponse)
def root():
    return 'OK'


@app.get('/health')
def health():
    return {'status': 'ok'}
