from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from school_ops.core.schedule_math import hours_between, normalize_day_of_week
from school_ops.errors import NotFoundError, ValidationFailed
from school_ops.models import Cohort, CohortStatus, OnboardingStatus, Student, Teacher, WeeklySession


logger = logging.getLogger(__name__)


@dataclass
class TeacherWorkload:
    weekly_hours: float = 0.0
    daily_hours: dict[str, float] = field(default_factory=dict)

    def hours_on(self, day_of_week: str) -> float:
        return self.daily_hours.get(day_of_week, 0.0)


def serialize_teacher(teacher: Teacher) -> dict:
    return {
        'id': str(teacher.id),
        'first_name': teacher.first_name,
        'last_name': teacher.last_name,
        'email': teacher.email,
        'role': list(teacher.role or []),
        'onboarding_status': teacher.onboarding_status,
        'contract_type': teacher.contract_type,
        'google_calendar_id': teacher.google_calendar_id,
        'available_for_booking': bool(teacher.available_for_booking),
        'available_for_online_classes': bool(teacher.available_for_online_classes),
        'available_for_in_person_classes': bool(teacher.available_for_in_person_classes),
        'days_available_online': list(teacher.days_available_online or []),
        'days_available_in_person': list(teacher.days_available_in_person or []),
        'maximum_hours_per_week': teacher.maximum_hours_per_week,
        'maximum_hours_per_day': teacher.maximum_hours_per_day,
        'qualified_for_under_16': bool(teacher.qualified_for_under_16),
    }


def list_teachers(db: Session, *, onboarding_status: str | None = None) -> list[Teacher]:
    query = db.query(Teacher)
    if onboarding_status:
        query = query.filter(Teacher.onboarding_status == onboarding_status)
    return query.order_by(Teacher.first_name.asc(), Teacher.last_name.asc()).all()


def get_teacher(db: Session, teacher_id: uuid.UUID) -> Teacher:
    teacher = db.query(Teacher).filter(Teacher.id == teacher_id).first()
    if not teacher:
        raise NotFoundError('Teacher not found', code='TEACHER_NOT_FOUND')
    return teacher


def compute_workloads(db: Session, teacher_ids: list[uuid.UUID]) -> dict[uuid.UUID, TeacherWorkload]:
    workloads = {teacher_id: TeacherWorkload() for teacher_id in teacher_ids}
    if not teacher_ids:
        return workloads

    sessions = (
        db.query(WeeklySession)
        .join(Cohort, Cohort.id == WeeklySession.cohort_id)
        .filter(
            WeeklySession.teacher_id.in_(teacher_ids),
            Cohort.cohort_status != CohortStatus.CLASS_ENDED.value,
        )
        .all()
    )
    for session in sessions:
        try:
            hours = hours_between(session.start_time, session.end_time)
        except ValueError:
            logger.warning('weekly_session_invalid_times weekly_session_id=%s', session.id)
            continue
        workload = workloads[session.teacher_id]
        day = normalize_day_of_week(session.day_of_week) or session.day_of_week
        workload.weekly_hours += hours
        workload.daily_hours[day] = workload.daily_hours.get(day, 0.0) + hours
    return workloads


def get_teacher_workload(db: Session, teacher_id: uuid.UUID) -> dict:
    teacher = get_teacher(db, teacher_id)
    workload = compute_workloads(db, [teacher.id])[teacher.id]
    return {
        'teacher_id': str(teacher.id),
        'weekly_hours': round(workload.weekly_hours, 2),
        'daily_hours': {day: round(hours, 2) for day, hours in workload.daily_hours.items()},
        'maximum_hours_per_week': teacher.maximum_hours_per_week,
        'maximum_hours_per_day': teacher.maximum_hours_per_day,
    }


def _within_cap(current: float, requested: float, cap: int | None) -> bool:
    if not cap:
        return True
    return current + requested <= cap


def find_available_teachers(
    db: Session,
    *,
    format: str,
    duration_minutes: int,
    day_of_week: str,
    student_id: uuid.UUID,
    session_structure: str = 'single',
) -> list[dict]:
    """Teachers who can take a new private class on the given day.

    Filters on booking/onboarding/calendar/format/day/under-16 eligibility,
    then drops anyone whose weekly or daily hours would exceed their cap
    once the requested hours are added.
    """
    day = normalize_day_of_week(day_of_week)
    if day is None:
        raise ValidationFailed(f'Invalid day: {day_of_week}', code='INVALID_DAY')
    if format not in ('online', 'in_person'):
        raise ValidationFailed(f'Invalid format: {format}', code='INVALID_FORMAT')
    if duration_minutes <= 0:
        raise ValidationFailed('duration_minutes must be positive', code='INVALID_DURATION')

    student = db.query(Student).filter(Student.id == student_id, Student.deleted_at.is_(None)).first()
    if not student:
        raise NotFoundError('Student not found', code='STUDENT_NOT_FOUND')

    query = db.query(Teacher).filter(
        Teacher.available_for_booking.is_(True),
        Teacher.onboarding_status == OnboardingStatus.ONBOARDED.value,
        Teacher.google_calendar_id.is_not(None),
    )
    if format == 'online':
        query = query.filter(Teacher.available_for_online_classes.is_(True))
    else:
        query = query.filter(Teacher.available_for_in_person_classes.is_(True))
    if student.is_under_16:
        query = query.filter(Teacher.qualified_for_under_16.is_(True))

    candidates = []
    for teacher in query.order_by(Teacher.first_name.asc(), Teacher.last_name.asc()).all():
        days = teacher.days_available_online if format == 'online' else teacher.days_available_in_person
        normalized_days = {normalize_day_of_week(value) for value in (days or [])}
        if day in normalized_days:
            candidates.append(teacher)

    requested_hours = (duration_minutes / 60) * (2 if session_structure == 'double' else 1)
    workloads = compute_workloads(db, [teacher.id for teacher in candidates])

    available = []
    for teacher in candidates:
        workload = workloads[teacher.id]
        daily = workload.hours_on(day)
        if not _within_cap(workload.weekly_hours, requested_hours, teacher.maximum_hours_per_week):
            continue
        if not _within_cap(daily, requested_hours, teacher.maximum_hours_per_day):
            continue
        available.append(
            {
                'id': str(teacher.id),
                'first_name': teacher.first_name,
                'last_name': teacher.last_name,
                'google_calendar_id': teacher.google_calendar_id,
                'current_weekly_hours': round(workload.weekly_hours, 2),
                'daily_hours': {name: round(hours, 2) for name, hours in workload.daily_hours.items()},
                'maximum_hours_per_week': teacher.maximum_hours_per_week,
                'maximum_hours_per_day': teacher.maximum_hours_per_day,
            }
        )

    logger.info(
        'teacher_availability_checked day=%s format=%s candidates=%s available=%s',
        day,
        format,
        len(candidates),
        len(available),
    )
    return available
