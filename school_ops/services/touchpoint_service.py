from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from school_ops.core.time_provider import TimeProvider, default_time_provider
from school_ops.errors import NotFoundError
from school_ops.models import Student, Touchpoint


logger = logging.getLogger(__name__)


def serialize_touchpoint(touchpoint: Touchpoint) -> dict:
    return {
        'id': str(touchpoint.id),
        'student_id': str(touchpoint.student_id),
        'channel': touchpoint.channel,
        'type': touchpoint.type,
        'message': touchpoint.message,
        'source': touchpoint.source,
        'automated_follow_up_id': str(touchpoint.automated_follow_up_id) if touchpoint.automated_follow_up_id else None,
        'external_id': touchpoint.external_id,
        'occurred_at': touchpoint.occurred_at.isoformat() if touchpoint.occurred_at else None,
    }


def log_touchpoint(
    db: Session,
    *,
    student_id: uuid.UUID,
    channel: str,
    type: str,
    message: str = '',
    source: str = 'manual',
    external_id: str | None = None,
    external_metadata: str | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> Touchpoint:
    if not db.query(Student.id).filter(Student.id == student_id).first():
        raise NotFoundError('Student not found', code='STUDENT_NOT_FOUND')
    touchpoint = Touchpoint(
        student_id=student_id,
        channel=channel,
        type=type,
        message=message,
        source=source,
        external_id=external_id,
        external_metadata=external_metadata,
        occurred_at=time_provider.utcnow(),
    )
    db.add(touchpoint)
    db.commit()
    db.refresh(touchpoint)
    logger.info('touchpoint_logged touchpoint_id=%s type=%s channel=%s', touchpoint.id, type, channel)
    return touchpoint


def list_student_touchpoints(db: Session, student_id: uuid.UUID) -> list[Touchpoint]:
    return (
        db.query(Touchpoint)
        .filter(Touchpoint.student_id == student_id)
        .order_by(Touchpoint.occurred_at.desc())
        .all()
    )
