from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from school_ops.config import settings
from school_ops.core.schedule_math import DAYS_OF_WEEK, format_duration, normalize_day_of_week
from school_ops.core.time_provider import TimeProvider, default_time_provider
from school_ops.errors import ConflictError, NotFoundError, ValidationFailed
from school_ops.models import (
    ACTIVE_ENROLLMENT_STATUSES,
    Cohort,
    CohortStatus,
    Enrollment,
    Product,
    ProductFormat,
    ProductLocation,
    Student,
)
from school_ops.services.language_level_service import get_level_by_code


logger = logging.getLogger(__name__)


def count_active_enrollments(db: Session, cohort_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Enrollment.id))
        .filter(Enrollment.cohort_id == cohort_id, Enrollment.status.in_(ACTIVE_ENROLLMENT_STATUSES))
        .scalar()
        or 0
    )


def open_places(cohort: Cohort, active_enrollments: int) -> int | None:
    if cohort.max_students is None:
        return None
    return max(0, cohort.max_students - active_enrollments)


def _has_space(cohort: Cohort, active_enrollments: int) -> bool:
    return cohort.max_students is None or active_enrollments < cohort.max_students


def find_available_cohorts(
    db: Session,
    level_code: str | None = None,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> list[tuple[Cohort, int]]:
    code = (level_code or settings.booking_default_level_code).strip().lower()
    level = get_level_by_code(db, code)
    if not level:
        logger.warning('booking_level_not_found code=%s', code)
        return []

    min_start_date = time_provider.today() + timedelta(days=settings.booking_min_lead_days)
    cohorts = (
        db.query(Cohort)
        .join(Product, Product.id == Cohort.product_id)
        .options(joinedload(Cohort.product), joinedload(Cohort.weekly_sessions))
        .filter(
            Cohort.start_date >= min_start_date,
            Cohort.current_level_id == level.id,
            Cohort.cohort_status == CohortStatus.ENROLLMENT_OPEN.value,
            Product.format == ProductFormat.GROUP.value,
        )
        .order_by(Cohort.start_date.asc())
        .all()
    )

    eligible = []
    for cohort in cohorts:
        active = count_active_enrollments(db, cohort.id)
        if _has_space(cohort, active):
            eligible.append((cohort, active))
    return eligible


def _session_sort_key(session) -> tuple[int, str]:
    day = normalize_day_of_week(session.day_of_week)
    return (DAYS_OF_WEEK.index(day) if day else len(DAYS_OF_WEEK), session.start_time or '')


def cohort_ui_label(location: str, day_names: list[str]) -> str:
    prefix = 'Online' if location == ProductLocation.ONLINE.value else 'In-Person'
    return f'{prefix}: {", ".join(day.capitalize() for day in day_names)}'


def format_cohort_for_automation(cohort: Cohort, active_enrollments: int) -> dict:
    """Shapes a cohort the way the booking automation reads it (Airtable-style keys)."""
    ordered = sorted(cohort.weekly_sessions, key=_session_sort_key)
    sessions = []
    for session in ordered:
        duration, duration_string = format_duration(session.start_time, session.end_time)
        sessions.append(
            {
                'Duration (h:mm)': duration,
                'Duration String': duration_string,
                'Day of Week (String)': (session.day_of_week or '').capitalize(),
                'Start Time (Parsed to Date)': session.start_time,
            }
        )

    location = (cohort.product.location if cohort.product else None) or ProductLocation.ONLINE.value
    product_format = (cohort.product.format if cohort.product else None) or ProductFormat.GROUP.value
    return {
        'array': sessions,
        'Format': [product_format.capitalize()],
        'Location': [location.capitalize()],
        'Record ID': str(cohort.id),
        'Start Date': cohort.start_date.isoformat() if cohort.start_date else None,
        'Open Places': open_places(cohort, active_enrollments),
        'Cohort UI Label': cohort_ui_label(location, [session.day_of_week for session in ordered]),
    }


def get_available_cohorts(
    db: Session,
    level_code: str | None = None,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> list[dict]:
    return [
        format_cohort_for_automation(cohort, active)
        for cohort, active in find_available_cohorts(db, level_code, time_provider=time_provider)
    ]


def _with_query_params(url: str, params: dict[str, str]) -> str:
    parts = urlsplit(url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key not in params]
    query.extend(params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def build_checkout_url(db: Session, student_id: uuid.UUID, cohort_id: uuid.UUID) -> dict:
    student = db.query(Student).filter(Student.id == student_id, Student.deleted_at.is_(None)).first()
    if not student:
        raise NotFoundError('Student not found', code='STUDENT_NOT_FOUND')
    cohort = db.query(Cohort).options(joinedload(Cohort.product)).filter(Cohort.id == cohort_id).first()
    if not cohort:
        raise NotFoundError('Cohort not found', code='COHORT_NOT_FOUND')

    if cohort.cohort_status != CohortStatus.ENROLLMENT_OPEN.value:
        raise ValidationFailed('Cohort is not open for enrollment', code='COHORT_NOT_OPEN')
    active = count_active_enrollments(db, cohort.id)
    if not _has_space(cohort, active):
        raise ConflictError('Cohort is full', code='COHORT_FULL')
    already_paid = (
        db.query(Enrollment.id)
        .filter(
            Enrollment.student_id == student.id,
            Enrollment.cohort_id == cohort.id,
            Enrollment.status.in_(ACTIVE_ENROLLMENT_STATUSES),
        )
        .first()
    )
    if already_paid:
        raise ConflictError('Student is already enrolled in this cohort', code='ALREADY_ENROLLED')
    checkout_link = (cohort.product.signup_link_for_self_checkout if cohort.product else None) or ''
    if not checkout_link.strip():
        raise ValidationFailed('Product has no checkout link', code='NO_CHECKOUT_LINK')

    params = {'client_reference_id': f'{student.id}:{cohort.id}'}
    if student.email:
        params['prefilled_email'] = student.email
    url = _with_query_params(checkout_link.strip(), params)
    logger.info('checkout_url_built student_id=%s cohort_id=%s', student.id, cohort.id)
    return {'url': url, 'student_id': str(student.id), 'cohort_id': str(cohort.id)}
