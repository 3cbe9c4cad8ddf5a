from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from school_ops.core.time_provider import TimeProvider, default_time_provider
from school_ops.errors import NotFoundError
from school_ops.models import AttendanceRecord, AttendanceStatus, Cohort, CohortClass, Student, Teacher


logger = logging.getLogger(__name__)


def serialize_attendance(record: AttendanceRecord) -> dict:
    return {
        'id': str(record.id),
        'student_id': str(record.student_id),
        'cohort_id': str(record.cohort_id),
        'class_id': str(record.class_id) if record.class_id else None,
        'status': record.status,
        'notes': record.notes,
        'homework_completed': bool(record.homework_completed),
        'marked_by': str(record.marked_by) if record.marked_by else None,
        'marked_at': record.marked_at.isoformat() if record.marked_at else None,
    }


def _require_teacher(db: Session, teacher_id: uuid.UUID | None) -> None:
    if teacher_id and not db.query(Teacher.id).filter(Teacher.id == teacher_id).first():
        raise NotFoundError('Teacher not found', code='TEACHER_NOT_FOUND')


def list_class_attendance(db: Session, class_id: uuid.UUID) -> list[AttendanceRecord]:
    if not db.query(CohortClass.id).filter(CohortClass.id == class_id).first():
        raise NotFoundError('Class not found', code='CLASS_NOT_FOUND')
    return (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.class_id == class_id)
        .order_by(AttendanceRecord.created_at.asc())
        .all()
    )


def mark_attendance(
    db: Session,
    record_id: uuid.UUID,
    *,
    status: str,
    marked_by: uuid.UUID | None = None,
    notes: str | None = None,
    homework_completed: bool | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> AttendanceRecord:
    record = db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()
    if not record:
        raise NotFoundError('Attendance record not found', code='ATTENDANCE_NOT_FOUND')
    _require_teacher(db, marked_by)

    record.status = AttendanceStatus(status).value
    if marked_by:
        record.marked_by = marked_by
    if notes is not None:
        record.notes = notes
    if homework_completed is not None:
        record.homework_completed = homework_completed
    record.marked_at = time_provider.utcnow()
    db.commit()
    db.refresh(record)
    logger.info('attendance_marked record_id=%s status=%s', record.id, record.status)
    return record


def record_daily_attendance(
    db: Session,
    *,
    student_id: uuid.UUID,
    cohort_id: uuid.UUID,
    status: str,
    marked_by: uuid.UUID | None = None,
    notes: str | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> AttendanceRecord:
    """Attendance not tied to a scheduled class (class_id stays null)."""
    if not db.query(Student.id).filter(Student.id == student_id).first():
        raise NotFoundError('Student not found', code='STUDENT_NOT_FOUND')
    if not db.query(Cohort.id).filter(Cohort.id == cohort_id).first():
        raise NotFoundError('Cohort not found', code='COHORT_NOT_FOUND')
    _require_teacher(db, marked_by)

    record = AttendanceRecord(
        student_id=student_id,
        cohort_id=cohort_id,
        class_id=None,
        status=AttendanceStatus(status).value,
        notes=notes,
        marked_by=marked_by,
        marked_at=time_provider.utcnow(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info('daily_attendance_recorded record_id=%s student_id=%s', record.id, student_id)
    return record
