from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from school_ops.errors import ConflictError, NotFoundError, ValidationFailed
from school_ops.models import TERMINAL_ENROLLMENT_STATUSES, Cohort, Enrollment, EnrollmentStatus, Student
from school_ops.webhooks import ENROLLMENT_ABANDONED, trigger_webhook


logger = logging.getLogger(__name__)

S = EnrollmentStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    S.INTERESTED.value: frozenset(
        {
            S.BEGINNER_FORM_FILLED.value,
            S.CONTRACT_SIGNED.value,
            S.CONTRACT_ABANDONED.value,
            S.DECLINED_CONTRACT.value,
            S.DROPPED_OUT.value,
        }
    ),
    S.BEGINNER_FORM_FILLED.value: frozenset(
        {S.CONTRACT_SIGNED.value, S.CONTRACT_ABANDONED.value, S.DECLINED_CONTRACT.value, S.DROPPED_OUT.value}
    ),
    S.CONTRACT_ABANDONED.value: frozenset({S.CONTRACT_SIGNED.value, S.DECLINED_CONTRACT.value, S.DROPPED_OUT.value}),
    S.CONTRACT_SIGNED.value: frozenset({S.PAID.value, S.PAYMENT_ABANDONED.value, S.DROPPED_OUT.value}),
    S.PAYMENT_ABANDONED.value: frozenset({S.PAID.value, S.DROPPED_OUT.value}),
    S.PAID.value: frozenset({S.WELCOME_PACKAGE_SENT.value, S.DROPPED_OUT.value}),
    S.WELCOME_PACKAGE_SENT.value: frozenset({S.DROPPED_OUT.value}),
    S.DECLINED_CONTRACT.value: frozenset(),
    S.DROPPED_OUT.value: frozenset(),
}

ABANDONED_STATUSES = frozenset({S.CONTRACT_ABANDONED.value, S.PAYMENT_ABANDONED.value})


def serialize_enrollment(enrollment: Enrollment) -> dict:
    return {
        'id': str(enrollment.id),
        'student_id': str(enrollment.student_id),
        'cohort_id': str(enrollment.cohort_id),
        'status': enrollment.status,
        'created_at': enrollment.created_at.isoformat() if enrollment.created_at else None,
        'updated_at': enrollment.updated_at.isoformat() if enrollment.updated_at else None,
    }


def _require_status(value: str) -> str:
    status = (value or '').strip().lower()
    if status not in ALLOWED_TRANSITIONS:
        raise ValidationFailed(f'Unknown enrollment status: {value}', code='INVALID_STATUS')
    return status


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def list_enrollments(
    db: Session,
    *,
    cohort_id: uuid.UUID | None = None,
    student_id: uuid.UUID | None = None,
) -> list[Enrollment]:
    query = db.query(Enrollment)
    if cohort_id:
        query = query.filter(Enrollment.cohort_id == cohort_id)
    if student_id:
        query = query.filter(Enrollment.student_id == student_id)
    return query.order_by(Enrollment.created_at.desc()).all()


def create_enrollment(db: Session, student_id: uuid.UUID, cohort_id: uuid.UUID, status: str = S.INTERESTED.value) -> Enrollment:
    status = _require_status(status)
    if status in TERMINAL_ENROLLMENT_STATUSES:
        raise ValidationFailed('Cannot create an enrollment in a terminal status', code='INVALID_STATUS')
    if not db.query(Student.id).filter(Student.id == student_id, Student.deleted_at.is_(None)).first():
        raise NotFoundError('Student not found', code='STUDENT_NOT_FOUND')
    if not db.query(Cohort.id).filter(Cohort.id == cohort_id).first():
        raise NotFoundError('Cohort not found', code='COHORT_NOT_FOUND')

    duplicate = (
        db.query(Enrollment.id)
        .filter(
            Enrollment.student_id == student_id,
            Enrollment.cohort_id == cohort_id,
            Enrollment.status.not_in(TERMINAL_ENROLLMENT_STATUSES),
        )
        .first()
    )
    if duplicate:
        raise ConflictError('Student already has an active enrollment in this cohort', code='DUPLICATE_ENROLLMENT')

    enrollment = Enrollment(student_id=student_id, cohort_id=cohort_id, status=status)
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    logger.info('enrollment_created enrollment_id=%s status=%s', enrollment.id, status)
    return enrollment


def _notify_abandoned(enrollment: Enrollment) -> None:
    student = enrollment.student
    payload = {
        'enrollment_id': str(enrollment.id),
        'student_id': str(enrollment.student_id),
        'cohort_id': str(enrollment.cohort_id),
        'status': enrollment.status,
        'student_name': student.full_name if student else None,
        'email': student.email if student else None,
        'phone': student.mobile_phone_number if student else None,
    }
    result = trigger_webhook(ENROLLMENT_ABANDONED, payload)
    if not result.success:
        logger.warning('enrollment_abandoned_webhook_failed enrollment_id=%s error=%s', enrollment.id, result.error)


def update_status(db: Session, enrollment_id: uuid.UUID, status: str) -> Enrollment:
    target = _require_status(status)
    enrollment = db.query(Enrollment).filter(Enrollment.id == enrollment_id).first()
    if not enrollment:
        raise NotFoundError('Enrollment not found', code='ENROLLMENT_NOT_FOUND')
    if not can_transition(enrollment.status, target):
        raise ValidationFailed(
            f'Cannot move enrollment from {enrollment.status} to {target}',
            code='INVALID_TRANSITION',
            details={'from': enrollment.status, 'to': target},
        )

    previous = enrollment.status
    enrollment.status = target
    db.commit()
    db.refresh(enrollment)
    logger.info('enrollment_status_changed enrollment_id=%s from=%s to=%s', enrollment.id, previous, target)
    if target in ABANDONED_STATUSES:
        _notify_abandoned(enrollment)
    return enrollment
