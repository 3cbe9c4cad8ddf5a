import logging

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from school_ops.config import settings
from school_ops.db import SessionLocal
from school_ops.errors import ValidationFailed
from school_ops.metrics import run_timed_job
from school_ops.services.class_creation_service import create_classes_for_tomorrow
from school_ops.services.follow_up_service import trigger_next_messages


scheduler = BackgroundScheduler(timezone=settings.app_timezone)
logger = logging.getLogger(__name__)


def _with_db(task):
    db: Session = SessionLocal()
    try:
        return task(db)
    finally:
        db.close()


def _run_job(label: str, task) -> None:
    run_timed_job(label, lambda: _with_db(task))


def create_tomorrow_classes_job():
    _run_job('create_tomorrow_classes', lambda db: create_classes_for_tomorrow(db))


def _trigger_follow_ups(db: Session):
    try:
        return trigger_next_messages(db)
    except ValidationFailed as exc:
        logger.warning('follow_up_trigger_skipped code=%s reason=%s', exc.code, exc.message)
        return None


def trigger_follow_up_messages_job():
    _run_job('trigger_follow_up_messages', _trigger_follow_ups)


def _parse_hhmm(value: str, default_hour: int = 18, default_minute: int = 0) -> tuple[int, int]:
    try:
        hour_raw, minute_raw = (value or '').split(':', 1)
        hour = int(hour_raw)
        minute = int(minute_raw)
        if hour < 0 or hour > 23 or minute < 0 or minute > 59:
            raise ValueError
        return hour, minute
    except ValueError:
        return default_hour, default_minute


def start_scheduler():
    hour, minute = _parse_hhmm(settings.create_classes_time)
    scheduler.add_job(
        create_tomorrow_classes_job,
        'cron',
        hour=hour,
        minute=minute,
        id='create_tomorrow_classes',
        replace_existing=True,
    )
    scheduler.add_job(
        trigger_follow_up_messages_job,
        'interval',
        minutes=max(settings.follow_up_trigger_interval_minutes, 1),
        id='trigger_follow_up_messages',
        replace_existing=True,
    )

    if not scheduler.running:
        scheduler.start()
        logger.info('scheduler_started create_classes_time=%02d:%02d', hour, minute)


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
