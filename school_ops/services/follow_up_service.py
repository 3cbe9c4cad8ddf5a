from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from sqlalchemy.orm import Session, joinedload

from school_ops.core.time_provider import TimeProvider, default_time_provider
from school_ops.errors import ConflictError, NotFoundError, ServiceError, ValidationFailed, WebhookError
from school_ops.models import (
    RUNNING_FOLLOW_UP_STATUSES,
    AutomatedFollowUp,
    CommunicationChannel,
    Enrollment,
    EnrollmentStatus,
    FollowUpMessageStatus,
    FollowUpStatus,
    Student,
    TemplateFollowUpMessage,
    TemplateFollowUpSequence,
    Touchpoint,
    TouchpointChannel,
    TouchpointSource,
    TouchpointType,
)
from school_ops.webhooks import (
    FOLLOW_UP_TRIGGERED,
    is_webhook_configured,
    trigger_webhook,
    webhook_url as configured_webhook_url,
)


logger = logging.getLogger(__name__)

RESTRICTED_ENROLLMENT_STATUSES = (
    EnrollmentStatus.PAID.value,
    EnrollmentStatus.WELCOME_PACKAGE_SENT.value,
    EnrollmentStatus.DROPPED_OUT.value,
    EnrollmentStatus.DECLINED_CONTRACT.value,
)


def serialize_sequence(sequence: TemplateFollowUpSequence) -> dict:
    return {
        'id': str(sequence.id),
        'display_name': sequence.display_name,
        'subject': sequence.subject,
        'backend_name': sequence.backend_name,
    }


def serialize_follow_up(follow_up: AutomatedFollowUp, *, include_sequence: bool = False) -> dict:
    payload = {
        'id': str(follow_up.id),
        'student_id': str(follow_up.student_id),
        'sequence_id': str(follow_up.sequence_id),
        'current_step': follow_up.current_step,
        'status': follow_up.status,
        'started_at': follow_up.started_at.isoformat() if follow_up.started_at else None,
        'last_message_sent_at': follow_up.last_message_sent_at.isoformat() if follow_up.last_message_sent_at else None,
        'completed_at': follow_up.completed_at.isoformat() if follow_up.completed_at else None,
        'last_error': follow_up.last_error,
        'created_at': follow_up.created_at.isoformat() if follow_up.created_at else None,
    }
    if include_sequence:
        payload['sequence'] = serialize_sequence(follow_up.sequence) if follow_up.sequence else None
    return payload


def find_sequence_by_backend_name(db: Session, backend_name: str) -> TemplateFollowUpSequence | None:
    return (
        db.query(TemplateFollowUpSequence)
        .filter(TemplateFollowUpSequence.backend_name == (backend_name or '').strip())
        .first()
    )


def meets_enrollment_conditions(db: Session, student_id: uuid.UUID) -> bool:
    statuses = [status for (status,) in db.query(Enrollment.status).filter(Enrollment.student_id == student_id).all()]
    if not statuses:
        return False
    return not any(status in RESTRICTED_ENROLLMENT_STATUSES for status in statuses)


def has_running_follow_up(db: Session, student_id: uuid.UUID) -> bool:
    return (
        db.query(AutomatedFollowUp.id)
        .filter(
            AutomatedFollowUp.student_id == student_id,
            AutomatedFollowUp.status.in_(RUNNING_FOLLOW_UP_STATUSES),
        )
        .first()
        is not None
    )


def set_follow_up(
    db: Session,
    student_id: uuid.UUID,
    sequence_backend_name: str,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> AutomatedFollowUp:
    sequence = find_sequence_by_backend_name(db, sequence_backend_name)
    if not sequence:
        raise NotFoundError('Follow-up sequence not found', code='SEQUENCE_NOT_FOUND')
    if not meets_enrollment_conditions(db, student_id):
        raise ValidationFailed(
            'Student does not meet enrollment conditions',
            code='ENROLLMENT_CONDITIONS_NOT_MET',
            details=(
                'Student either has no enrollments or has enrollment with status: '
                'paid, welcome_package_sent, dropped_out, or declined_contract'
            ),
        )
    if has_running_follow_up(db, student_id):
        raise ConflictError(
            'Student already has active follow-up',
            code='ACTIVE_FOLLOW_UP_EXISTS',
            details="Student has an automated follow-up with status: activated or ongoing",
        )

    now = time_provider.utcnow()
    follow_up = AutomatedFollowUp(
        student_id=student_id,
        sequence_id=sequence.id,
        current_step=0,
        status=FollowUpStatus.ACTIVATED.value,
        started_at=now,
        created_at=now,
        updated_at=now,
    )
    db.add(follow_up)
    db.commit()
    db.refresh(follow_up)
    logger.info('follow_up_created follow_up_id=%s student_id=%s sequence=%s', follow_up.id, student_id, sequence.backend_name)
    return follow_up


def list_sequences(db: Session) -> list[TemplateFollowUpSequence]:
    return db.query(TemplateFollowUpSequence).order_by(TemplateFollowUpSequence.display_name.asc()).all()


def list_student_follow_ups(db: Session, student_id: uuid.UUID) -> list[AutomatedFollowUp]:
    return (
        db.query(AutomatedFollowUp)
        .options(joinedload(AutomatedFollowUp.sequence))
        .filter(AutomatedFollowUp.student_id == student_id)
        .order_by(AutomatedFollowUp.created_at.desc())
        .all()
    )


def find_next_message(db: Session, follow_up: AutomatedFollowUp) -> TemplateFollowUpMessage | None:
    return (
        db.query(TemplateFollowUpMessage)
        .filter(
            TemplateFollowUpMessage.sequence_id == follow_up.sequence_id,
            TemplateFollowUpMessage.step_index == (follow_up.current_step or 0) + 1,
            TemplateFollowUpMessage.status == FollowUpMessageStatus.ACTIVE.value,
        )
        .first()
    )


def _touchpoint_channel(student: Student) -> str:
    if student.communication_channel == CommunicationChannel.EMAIL.value:
        return TouchpointChannel.EMAIL.value
    return TouchpointChannel.SMS.value


def _webhook_payload(follow_up: AutomatedFollowUp, message: TemplateFollowUpMessage) -> dict:
    student = follow_up.student
    sequence = follow_up.sequence
    return {
        'follow_up_id': str(follow_up.id),
        'student_id': str(student.id),
        'student_name': student.full_name,
        'first_name': student.first_name,
        'email': student.email,
        'phone': student.mobile_phone_number,
        'communication_channel': student.communication_channel,
        'sequence_backend_name': sequence.backend_name if sequence else None,
        'subject': sequence.subject if sequence else None,
        'step_index': message.step_index,
        'message_id': str(message.id),
        'message_content': message.message_content,
    }


def _require_webhook_url(webhook_url: str | None) -> str:
    target = (webhook_url or '').strip() or configured_webhook_url(FOLLOW_UP_TRIGGERED)
    if not is_webhook_configured(target):
        raise ValidationFailed('Webhook URL not configured', code='WEBHOOK_NOT_CONFIGURED')
    return target


def _complete(follow_up: AutomatedFollowUp, time_provider: TimeProvider) -> None:
    now = time_provider.utcnow()
    follow_up.status = FollowUpStatus.COMPLETED.value
    follow_up.completed_at = now
    follow_up.updated_at = now
    logger.info('follow_up_completed follow_up_id=%s steps=%s', follow_up.id, follow_up.current_step)


def _send_step(
    db: Session,
    follow_up: AutomatedFollowUp,
    message: TemplateFollowUpMessage,
    *,
    webhook_url: str | None,
    time_provider: TimeProvider,
) -> bool:
    result = trigger_webhook(FOLLOW_UP_TRIGGERED, _webhook_payload(follow_up, message), url=webhook_url)
    now = time_provider.utcnow()
    if not result.success:
        follow_up.status = FollowUpStatus.FAILED.value
        follow_up.last_error = result.error or 'Webhook delivery failed'
        follow_up.updated_at = now
        logger.error('follow_up_send_failed follow_up_id=%s step=%s error=%s', follow_up.id, message.step_index, follow_up.last_error)
        return False

    follow_up.current_step = message.step_index
    follow_up.status = FollowUpStatus.ONGOING.value
    follow_up.last_message_sent_at = now
    follow_up.last_error = None
    follow_up.updated_at = now
    db.add(
        Touchpoint(
            student_id=follow_up.student_id,
            channel=_touchpoint_channel(follow_up.student),
            type=TouchpointType.OUTBOUND.value,
            message=message.message_content,
            source=TouchpointSource.AUTOMATED.value,
            automated_follow_up_id=follow_up.id,
            occurred_at=now,
        )
    )
    logger.info('follow_up_step_sent follow_up_id=%s step=%s', follow_up.id, message.step_index)
    return True


def _get_follow_up(db: Session, follow_up_id: uuid.UUID) -> AutomatedFollowUp:
    follow_up = (
        db.query(AutomatedFollowUp)
        .options(joinedload(AutomatedFollowUp.student), joinedload(AutomatedFollowUp.sequence))
        .filter(AutomatedFollowUp.id == follow_up_id)
        .first()
    )
    if not follow_up:
        raise NotFoundError('Follow-up not found', code='FOLLOW_UP_NOT_FOUND')
    return follow_up


def advance_follow_up(
    db: Session,
    follow_up_id: uuid.UUID,
    *,
    webhook_url: str | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    """Send the next message of a running follow-up, or complete it when none is left.

    An unconfigured webhook is rejected with WEBHOOK_NOT_CONFIGURED before
    anything changes. A failed delivery moves the follow-up to `failed` and
    raises WebhookError;
    terminal follow-ups are rejected with INVALID_STATUS and left untouched.
    """
    follow_up = _get_follow_up(db, follow_up_id)
    if follow_up.status not in RUNNING_FOLLOW_UP_STATUSES:
        raise ValidationFailed(
            f'Cannot advance follow-up with status: {follow_up.status}',
            code='INVALID_STATUS',
            details="Follow-up must have status 'activated' or 'ongoing' to advance",
        )

    message = find_next_message(db, follow_up)
    if message is None:
        _complete(follow_up, time_provider)
        db.commit()
        return {
            'follow_up_id': str(follow_up.id),
            'status': follow_up.status,
            'completed_at': follow_up.completed_at.isoformat(),
            'message': 'Follow-up sequence completed',
        }

    target = _require_webhook_url(webhook_url)
    sent = _send_step(db, follow_up, message, webhook_url=target, time_provider=time_provider)
    db.commit()
    if not sent:
        raise WebhookError(follow_up.last_error or 'Webhook delivery failed', code='WEBHOOK_FAILED')
    return {
        'follow_up_id': str(follow_up.id),
        'current_step': follow_up.current_step,
        'status': follow_up.status,
        'next_message': {
            'id': str(message.id),
            'step_index': message.step_index,
            'message_content': message.message_content,
            'time_delay_hours': message.time_delay_hours,
        },
    }


def stop_follow_ups(db: Session, student_id: uuid.UUID, *, time_provider: TimeProvider = default_time_provider) -> int:
    running = (
        db.query(AutomatedFollowUp)
        .filter(
            AutomatedFollowUp.student_id == student_id,
            AutomatedFollowUp.status.in_(RUNNING_FOLLOW_UP_STATUSES),
        )
        .all()
    )
    now = time_provider.utcnow()
    for follow_up in running:
        follow_up.status = FollowUpStatus.DISABLED.value
        follow_up.updated_at = now
    db.commit()
    if running:
        logger.info('follow_ups_stopped student_id=%s count=%s', student_id, len(running))
    return len(running)


def _is_due(follow_up: AutomatedFollowUp, message: TemplateFollowUpMessage, time_provider: TimeProvider) -> bool:
    reference = follow_up.last_message_sent_at or follow_up.started_at
    if reference is None:
        return True
    return time_provider.utcnow() >= reference + timedelta(hours=message.time_delay_hours or 0)


def trigger_next_messages(
    db: Session,
    *,
    webhook_url: str | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    target = _require_webhook_url(webhook_url)
    counts = {'processed': 0, 'sent': 0, 'completed': 0, 'failed': 0, 'not_due': 0}
    running = (
        db.query(AutomatedFollowUp)
        .options(joinedload(AutomatedFollowUp.student), joinedload(AutomatedFollowUp.sequence))
        .filter(AutomatedFollowUp.status.in_(RUNNING_FOLLOW_UP_STATUSES))
        .order_by(AutomatedFollowUp.started_at.asc())
        .all()
    )
    for follow_up in running:
        counts['processed'] += 1
        message = find_next_message(db, follow_up)
        if message is None:
            _complete(follow_up, time_provider)
            counts['completed'] += 1
        elif not _is_due(follow_up, message, time_provider):
            counts['not_due'] += 1
        elif _send_step(db, follow_up, message, webhook_url=target, time_provider=time_provider):
            counts['sent'] += 1
        else:
            counts['failed'] += 1
        db.commit()

    logger.info(
        'follow_up_trigger_run processed=%s sent=%s completed=%s failed=%s not_due=%s',
        counts['processed'],
        counts['sent'],
        counts['completed'],
        counts['failed'],
        counts['not_due'],
    )
    return counts


def check_recent_engagements(
    db: Session,
    *,
    hours_back: int = 1,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    if hours_back < 1:
        raise ServiceError('hoursBack must be at least 1', code='INVALID_WINDOW')
    since = time_provider.utcnow() - timedelta(hours=hours_back)
    student_ids = {
        student_id
        for (student_id,) in db.query(Touchpoint.student_id)
        .filter(Touchpoint.type == TouchpointType.INBOUND.value, Touchpoint.occurred_at >= since)
        .distinct()
        .all()
    }
    stopped = 0
    if student_ids:
        now = time_provider.utcnow()
        running = (
            db.query(AutomatedFollowUp)
            .filter(
                AutomatedFollowUp.student_id.in_(student_ids),
                AutomatedFollowUp.status.in_(RUNNING_FOLLOW_UP_STATUSES),
            )
            .all()
        )
        for follow_up in running:
            follow_up.status = FollowUpStatus.ANSWER_RECEIVED.value
            follow_up.updated_at = now
            stopped += 1
        db.commit()

    logger.info('follow_up_engagement_check hours_back=%s students=%s stopped=%s', hours_back, len(student_ids), stopped)
    return {'students_with_engagement': len(student_ids), 'stopped_count': stopped}
