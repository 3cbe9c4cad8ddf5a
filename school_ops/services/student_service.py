from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from school_ops.core.time_provider import TimeProvider, default_time_provider
from school_ops.errors import ConflictError, NotFoundError, ValidationFailed
from school_ops.models import Student


logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10

# API field name -> column
_FIELD_ALIASES = {
    'name': 'full_name',
    'phone': 'mobile_phone_number',
}

_WRITABLE_FIELDS = {
    'full_name',
    'email',
    'mobile_phone_number',
    'city',
    'desired_starting_language_level_id',
    'initial_channel',
    'communication_channel',
    'heard_from',
    'website_quiz_submission_date',
    'added_to_email_newsletter',
    'convertkit_id',
    'openphone_contact_id',
    'tally_form_submission_id',
    'respondent_id',
    'stripe_customer_id',
    'is_under_16',
    'is_full_beginner',
    'subjective_deadline_for_student',
    'purpose_to_learn',
}


def serialize_student(student: Student) -> dict:
    return {
        'id': str(student.id),
        'full_name': student.full_name,
        'first_name': student.first_name,
        'last_name': student.last_name,
        'email': student.email,
        'mobile_phone_number': student.mobile_phone_number,
        'city': student.city,
        'initial_channel': student.initial_channel,
        'communication_channel': student.communication_channel,
        'heard_from': student.heard_from,
        'is_under_16': bool(student.is_under_16),
        'is_full_beginner': bool(student.is_full_beginner),
        'tally_form_submission_id': student.tally_form_submission_id,
        'stripe_customer_id': student.stripe_customer_id,
        'desired_starting_language_level_id': (
            str(student.desired_starting_language_level_id) if student.desired_starting_language_level_id else None
        ),
        'created_at': student.created_at.isoformat() if student.created_at else None,
        'updated_at': student.updated_at.isoformat() if student.updated_at else None,
    }


def _normalize_email(email: str | None) -> str:
    return (email or '').strip().lower()


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    values = {}
    for key, value in data.items():
        column = _FIELD_ALIASES.get(key, key)
        if column in _WRITABLE_FIELDS:
            values[column] = value
    if 'email' in values and values['email'] is not None:
        values['email'] = _normalize_email(values['email'])
    return values


def _active_query(db: Session):
    return db.query(Student).filter(Student.deleted_at.is_(None))


def find_by_email(db: Session, email: str) -> Student | None:
    normalized = _normalize_email(email)
    if not normalized:
        return None
    return _active_query(db).filter(func.lower(Student.email) == normalized).first()


def list_students(db: Session, *, limit: int = 50, offset: int = 0) -> list[Student]:
    return (
        _active_query(db)
        .order_by(Student.created_at.desc(), Student.id.desc())
        .offset(max(offset, 0))
        .limit(max(limit, 1))
        .all()
    )


def get_student(db: Session, student_id: uuid.UUID) -> Student:
    student = _active_query(db).filter(Student.id == student_id).first()
    if not student:
        raise NotFoundError('Student not found', code='STUDENT_NOT_FOUND')
    return student


def create_student(db: Session, data: dict[str, Any]) -> Student:
    values = _column_values(data)
    if not (values.get('full_name') or '').strip() or not values.get('email'):
        raise ValidationFailed('Name and email are required')
    if find_by_email(db, values['email']):
        raise ConflictError('Student with this email already exists', code='DUPLICATE_EMAIL')

    student = Student(**values)
    db.add(student)
    db.commit()
    db.refresh(student)
    logger.info('student_created student_id=%s', student.id)
    return student


def update_student(db: Session, student_id: uuid.UUID, data: dict[str, Any]) -> Student:
    student = get_student(db, student_id)
    values = {key: value for key, value in _column_values(data).items() if value is not None}
    new_email = values.get('email')
    if new_email and new_email != _normalize_email(student.email):
        other = find_by_email(db, new_email)
        if other and other.id != student.id:
            raise ConflictError('Student with this email already exists', code='DUPLICATE_EMAIL')
    for key, value in values.items():
        setattr(student, key, value)
    db.commit()
    db.refresh(student)
    return student


def delete_student(
    db: Session,
    student_id: uuid.UUID,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> None:
    student = get_student(db, student_id)
    student.deleted_at = time_provider.utcnow()
    db.commit()
    logger.info('student_deleted student_id=%s', student_id)


def search_by_email(db: Session, query: str) -> list[Student]:
    needle = (query or '').strip().lower()
    if not needle:
        return []
    return (
        _active_query(db)
        .filter(func.lower(Student.email).contains(needle, autoescape=True))
        .order_by(Student.email.asc())
        .limit(SEARCH_LIMIT)
        .all()
    )


def get_by_tally_id(db: Session, tally_id: str) -> Student:
    student = _active_query(db).filter(Student.tally_form_submission_id == (tally_id or '').strip()).first()
    if not student:
        raise NotFoundError('Student not found', code='STUDENT_NOT_FOUND')
    return student


def upsert_student(db: Session, email: str, data: dict[str, Any]) -> tuple[Student, str]:
    normalized = _normalize_email(email)
    if not normalized:
        raise ValidationFailed('Email is required')
    existing = find_by_email(db, normalized)
    if existing:
        return update_student(db, existing.id, {**data, 'email': normalized}), 'updated'
    return create_student(db, {**data, 'email': normalized}), 'created'
