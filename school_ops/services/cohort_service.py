from __future__ import annotations

import json
import logging
import uuid
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, joinedload

from school_ops.config import settings
from school_ops.core.schedule_math import combine_local, next_weekday_on_or_after, normalize_day_of_week, rrule_day_abbreviation
from school_ops.errors import NotFoundError, ValidationFailed, WebhookError
from school_ops.models import Cohort, Enrollment, ProductLocation, Student, WeeklySession
from school_ops.webhooks import COHORT_SETUP, trigger_webhook


logger = logging.getLogger(__name__)


def serialize_weekly_session(session: WeeklySession) -> dict:
    teacher = session.teacher
    return {
        'id': str(session.id),
        'day_of_week': session.day_of_week,
        'start_time': session.start_time,
        'end_time': session.end_time,
        'teacher_id': str(session.teacher_id) if session.teacher_id else None,
        'teacher_name': teacher.full_name if teacher else None,
        'google_calendar_event_id': session.google_calendar_event_id,
    }


def serialize_cohort(cohort: Cohort, *, include_sessions: bool = False) -> dict:
    product = cohort.product
    payload = {
        'id': str(cohort.id),
        'product_id': str(cohort.product_id) if cohort.product_id else None,
        'product_name': product.display_name if product else None,
        'start_date': cohort.start_date.isoformat() if cohort.start_date else None,
        'cohort_status': cohort.cohort_status,
        'room_type': cohort.room_type,
        'max_students': cohort.max_students,
        'setup_finalized': bool(cohort.setup_finalized),
        'starting_level': cohort.starting_level.code if cohort.starting_level else None,
        'current_level': cohort.current_level.code if cohort.current_level else None,
    }
    if include_sessions:
        payload['weekly_sessions'] = [serialize_weekly_session(session) for session in cohort.weekly_sessions]
    return payload


def list_cohorts(db: Session, *, status: str | None = None) -> list[Cohort]:
    query = db.query(Cohort).options(joinedload(Cohort.product))
    if status:
        query = query.filter(Cohort.cohort_status == status)
    return query.order_by(Cohort.start_date.desc(), Cohort.created_at.desc()).all()


def get_cohort(db: Session, cohort_id: uuid.UUID) -> Cohort:
    cohort = (
        db.query(Cohort)
        .options(
            joinedload(Cohort.product),
            joinedload(Cohort.weekly_sessions).joinedload(WeeklySession.teacher),
        )
        .filter(Cohort.id == cohort_id)
        .first()
    )
    if not cohort:
        raise NotFoundError('Cohort not found', code='COHORT_NOT_FOUND')
    return cohort


def _append_unique(target: list[str], email: str | None) -> None:
    value = (email or '').strip()
    if value and value not in target:
        target.append(value)


def get_attendee_emails(db: Session, cohort: Cohort) -> list[str]:
    """Enrolled student emails followed by the emails of the cohort's teachers."""
    attendees: list[str] = []
    students = (
        db.query(Student)
        .join(Enrollment, Enrollment.student_id == Student.id)
        .filter(Enrollment.cohort_id == cohort.id, Student.deleted_at.is_(None))
        .order_by(Enrollment.created_at.asc())
        .all()
    )
    for student in students:
        _append_unique(attendees, student.email)
    for session in cohort.weekly_sessions:
        if session.teacher:
            _append_unique(attendees, session.teacher.email)
    return attendees


def _location_label(location: str | None) -> str:
    return 'Online' if location == ProductLocation.ONLINE.value else 'In-Person'


def build_calendar_payload(db: Session, cohort: Cohort) -> dict:
    if not cohort.start_date:
        raise ValidationFailed('Cohort start date is required to finalize setup', code='MISSING_START_DATE')
    if not cohort.weekly_sessions:
        raise ValidationFailed('No weekly sessions found for this cohort', code='NO_WEEKLY_SESSIONS')

    product_name = cohort.product.display_name if cohort.product else ''
    product_location = cohort.product.location if cohort.product else None
    location_label = _location_label(product_location)
    tz = ZoneInfo(settings.app_timezone)

    sessions = []
    for session in cohort.weekly_sessions:
        day = normalize_day_of_week(session.day_of_week)
        if day is None:
            raise ValidationFailed(f'Invalid day: {session.day_of_week}', code='INVALID_DAY')
        first_day = next_weekday_on_or_after(cohort.start_date, day)
        try:
            first_start = combine_local(first_day, session.start_time, tz)
            first_end = combine_local(first_day, session.end_time, tz)
        except ValueError as exc:
            raise ValidationFailed(str(exc), code='INVALID_SESSION_TIME') from exc
        teacher_name = session.teacher.full_name if session.teacher else ''
        sessions.append(
            {
                'first_event_start_time': first_start.isoformat(),
                'first_event_end_time': first_end.isoformat(),
                'day_of_week_abbreviation': rrule_day_abbreviation(day),
                'teacher_name': teacher_name,
                'event_summary': f'{product_name} - {location_label}: {day.capitalize()} / {teacher_name}',
            }
        )

    return {
        'cohort_id': str(cohort.id),
        'event_summary': f'{product_name} - {location_label}',
        'location': 'Online' if product_location == ProductLocation.ONLINE.value else (product_location or ''),
        'sessions': json.dumps(sessions),
        'attendees': json.dumps(get_attendee_emails(db, cohort)),
    }


def finalize_setup(db: Session, cohort_id: uuid.UUID) -> dict:
    cohort = get_cohort(db, cohort_id)
    payload = build_calendar_payload(db, cohort)

    result = trigger_webhook(COHORT_SETUP, payload)
    if not result.success:
        logger.error('cohort_setup_webhook_failed cohort_id=%s error=%s', cohort.id, result.error)
        raise WebhookError(
            result.error or 'Failed to create calendar events',
            details={'status_code': result.status_code},
        )

    cohort.setup_finalized = True
    db.commit()
    logger.info('cohort_setup_finalized cohort_id=%s sessions=%s', cohort.id, len(cohort.weekly_sessions))
    return {'cohort_id': str(cohort.id), 'setup_finalized': True}
