from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, joinedload

from school_ops.config import settings
from school_ops.core.schedule_math import combine_local, day_of_week_for, normalize_day_of_week
from school_ops.core.time_provider import TimeProvider, default_time_provider
from school_ops.errors import ValidationFailed
from school_ops.models import (
    ACTIVE_ENROLLMENT_STATUSES,
    AttendanceRecord,
    AttendanceStatus,
    ClassMode,
    ClassStatus,
    Cohort,
    CohortClass,
    CohortStatus,
    Enrollment,
    WeeklySession,
)


logger = logging.getLogger(__name__)


@dataclass
class ClassCreationResult:
    classes_created: int = 0
    attendance_records_created: int = 0
    skipped: int = 0
    unmatched_events: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'classesCreated': self.classes_created,
            'attendanceRecordsCreated': self.attendance_records_created,
            'skipped': self.skipped,
            'unmatchedEvents': list(self.unmatched_events),
        }


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _class_mode(cohort: Cohort) -> str:
    location = cohort.product.location if cohort.product else None
    if location in (ClassMode.IN_PERSON.value, ClassMode.HYBRID.value):
        return location
    return ClassMode.ONLINE.value


def _class_name(cohort: Cohort, session: WeeklySession) -> str:
    product_name = cohort.product.display_name if cohort.product else 'Class'
    day = (normalize_day_of_week(session.day_of_week) or session.day_of_week).capitalize()
    if session.teacher:
        return f'{product_name}: {day} / {session.teacher.full_name}'
    return f'{product_name}: {day}'


def create_attendance_records(db: Session, cohort_class: CohortClass) -> int:
    enrollments = (
        db.query(Enrollment)
        .filter(
            Enrollment.cohort_id == cohort_class.cohort_id,
            Enrollment.status.in_(ACTIVE_ENROLLMENT_STATUSES),
        )
        .all()
    )
    created = 0
    seen = set()
    for enrollment in enrollments:
        if enrollment.student_id in seen:
            continue
        seen.add(enrollment.student_id)
        db.add(
            AttendanceRecord(
                student_id=enrollment.student_id,
                cohort_id=cohort_class.cohort_id,
                cohort_class=cohort_class,
                status=AttendanceStatus.UNSET.value,
            )
        )
        created += 1
    return created


def _new_class(cohort: Cohort, session: WeeklySession, start: datetime, end: datetime, **extra: Any) -> CohortClass:
    return CohortClass(
        cohort_id=cohort.id,
        teacher_id=session.teacher_id,
        name=_class_name(cohort, session),
        start_time=start,
        end_time=end,
        status=ClassStatus.SCHEDULED.value,
        mode=_class_mode(cohort),
        google_drive_folder_id=cohort.google_drive_folder_id,
        **extra,
    )


def create_classes_for_tomorrow(
    db: Session,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> ClassCreationResult:
    tomorrow = time_provider.today() + timedelta(days=1)
    day = day_of_week_for(tomorrow)
    tz = ZoneInfo(settings.app_timezone)
    result = ClassCreationResult()

    cohorts = (
        db.query(Cohort)
        .options(joinedload(Cohort.product), joinedload(Cohort.weekly_sessions).joinedload(WeeklySession.teacher))
        .filter(
            Cohort.setup_finalized.is_(True),
            Cohort.cohort_status != CohortStatus.CLASS_ENDED.value,
        )
        .all()
    )
    for cohort in cohorts:
        for session in cohort.weekly_sessions:
            if normalize_day_of_week(session.day_of_week) != day:
                continue
            try:
                start = _to_naive_utc(combine_local(tomorrow, session.start_time, tz))
                end = _to_naive_utc(combine_local(tomorrow, session.end_time, tz))
            except ValueError:
                logger.warning('weekly_session_invalid_times weekly_session_id=%s', session.id)
                result.skipped += 1
                continue
            exists = (
                db.query(CohortClass.id)
                .filter(CohortClass.cohort_id == cohort.id, CohortClass.start_time == start)
                .first()
            )
            if exists:
                result.skipped += 1
                continue
            cohort_class = _new_class(cohort, session, start, end)
            db.add(cohort_class)
            db.flush()
            result.classes_created += 1
            result.attendance_records_created += create_attendance_records(db, cohort_class)

    db.commit()
    logger.info(
        'tomorrow_classes_created date=%s classes=%s attendance=%s skipped=%s',
        tomorrow.isoformat(),
        result.classes_created,
        result.attendance_records_created,
        result.skipped,
    )
    return result


def parse_events(events: Any) -> list[dict]:
    """Accepts a list of event dicts or a JSON string holding one."""
    if isinstance(events, str):
        try:
            events = json.loads(events)
        except json.JSONDecodeError as exc:
            raise ValidationFailed('Could not parse stringified events array', code='INVALID_EVENTS') from exc
    if not isinstance(events, list):
        raise ValidationFailed('events must be an array or stringified array', code='INVALID_EVENTS')

    parsed = []
    for index, event in enumerate(events):
        if hasattr(event, 'model_dump'):
            event = event.model_dump(by_alias=True)
        if not isinstance(event, dict) or not event.get('id'):
            raise ValidationFailed(
                'Each event needs an id',
                code='INVALID_EVENTS',
                details=[{'field': f'events.{index}.id', 'message': 'required'}],
            )
        parsed.append(
            {
                'event_id': str(event['id']),
                'start': _parse_event_time(event.get('start'), f'events.{index}.start'),
                'end': _parse_event_time(event.get('end'), f'events.{index}.end'),
                'hangout_link': event.get('hangoutLink') or event.get('hangout_link') or None,
            }
        )
    return parsed


def _parse_event_time(value: Any, field_name: str) -> datetime:
    if isinstance(value, dict):
        value = value.get('dateTime') or value.get('date')
    raw = (value or '').strip() if isinstance(value, str) else ''
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    try:
        return _to_naive_utc(datetime.fromisoformat(raw))
    except ValueError as exc:
        raise ValidationFailed(
            'Invalid event time, expected ISO-8601',
            code='INVALID_EVENTS',
            details=[{'field': field_name, 'message': 'invalid datetime'}],
        ) from exc


def recurring_event_prefix(event_id: str) -> str:
    return event_id.split('_', 1)[0]


def create_classes_from_events(db: Session, events: Any) -> ClassCreationResult:
    parsed = parse_events(events)
    result = ClassCreationResult()

    for event in parsed:
        event_id = event['event_id']
        already_created = db.query(CohortClass.id).filter(CohortClass.google_calendar_event_id == event_id).first()
        if already_created:
            result.skipped += 1
            continue

        session = (
            db.query(WeeklySession)
            .options(joinedload(WeeklySession.cohort).joinedload(Cohort.product), joinedload(WeeklySession.teacher))
            .filter(WeeklySession.google_calendar_event_id == recurring_event_prefix(event_id))
            .first()
        )
        if not session:
            logger.warning('calendar_event_unmatched event_id=%s', event_id)
            result.unmatched_events.append(event_id)
            continue

        cohort_class = _new_class(
            session.cohort,
            session,
            event['start'],
            event['end'],
            google_calendar_event_id=event_id,
            meeting_link=event['hangout_link'],
        )
        db.add(cohort_class)
        db.flush()
        result.classes_created += 1
        result.attendance_records_created += create_attendance_records(db, cohort_class)

    db.commit()
    logger.info(
        'classes_created_from_events events=%s classes=%s attendance=%s skipped=%s unmatched=%s',
        len(parsed),
        result.classes_created,
        result.attendance_records_created,
        result.skipped,
        len(result.unmatched_events),
    )
    return result
