"""Two-pass Airtable -> database migration.

Pass 1 fetches every Airtable table. Tables without foreign keys (products,
teachers, follow-up sequences) are inserted straight away; everything else is
transformed and held as `PendingRow`s carrying the Airtable record ids of its
parents. Pass 2 builds `airtable_record_id -> id` lookup maps and inserts the
pending rows parent-first, rebuilding a map after each parent table lands.

Rows already present (same `airtable_record_id`) are skipped, so re-running
the import without `--clean` does not duplicate data.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from school_ops.airtable.client import AirtableClient, AirtableError
from school_ops.airtable.mappings import (
    EnumMapper,
    checkbox,
    first_link,
    normalize_end_time,
    parse_date,
    parse_datetime,
    seconds_to_wall_clock,
    validate_email,
    yes_no,
)
from school_ops.airtable.stats import ImportStats
from school_ops.core.time_provider import TimeProvider, default_time_provider
from school_ops.models import (
    AttendanceRecord,
    AutomatedFollowUp,
    ClassStatus,
    Cohort,
    CohortClass,
    CohortStatus,
    CommunicationChannel,
    Enrollment,
    FollowUpStatus,
    LanguageLevel,
    Product,
    Student,
    TemplateFollowUpMessage,
    TemplateFollowUpSequence,
    Teacher,
    Touchpoint,
    TouchpointChannel,
    TouchpointSource,
    TouchpointType,
    WeeklySession,
)


logger = logging.getLogger(__name__)

LOOKUP_PAGE_SIZE = 1000
CLEAN_WARNING_SECONDS = 5

# Most dependent first. Language levels are reference data and are kept.
CLEAN_ORDER = (
    AttendanceRecord,
    CohortClass,
    WeeklySession,
    Touchpoint,
    AutomatedFollowUp,
    Enrollment,
    TemplateFollowUpMessage,
    Cohort,
    TemplateFollowUpSequence,
    Product,
    Student,
    Teacher,
)


@dataclass
class PendingRow:
    record_id: str
    values: dict[str, Any]
    refs: dict[str, str | None] = field(default_factory=dict)


def _without_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def clean_existing_data(db: Session) -> None:
    for model in CLEAN_ORDER:
        try:
            deleted = db.query(model).delete(synchronize_session=False)
            db.commit()
            logger.info('import_clean table=%s deleted=%s', model.__tablename__, deleted)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error('import_clean_failed table=%s error=%s', model.__tablename__, exc)


class LevelMatcher:
    """Resolves Airtable level references to language_levels ids.

    Keys are the level's Airtable record id, `display_name:<name>` and
    `code:<code>`.
    """

    def __init__(self, mapping: dict[str, uuid.UUID] | None = None):
        self.mapping = mapping or {}

    @classmethod
    def from_db(cls, db: Session) -> 'LevelMatcher':
        mapping: dict[str, uuid.UUID] = {}
        for level in db.query(LanguageLevel).all():
            if level.airtable_record_id:
                mapping[level.airtable_record_id] = level.id
            mapping[f'display_name:{level.display_name}'] = level.id
            mapping[f'code:{level.code}'] = level.id
        return cls(mapping)

    def match_record_id(self, record_id: str | None) -> uuid.UUID | None:
        if not record_id:
            return None
        level_id = self.mapping.get(record_id)
        if level_id is None:
            logger.warning('level_record_unmatched airtable_record_id=%s', record_id)
        return level_id

    def match_name(self, name: str | None) -> uuid.UUID | None:
        if not name:
            return None
        exact = self.mapping.get(f'display_name:{name}')
        if exact:
            return exact
        if name == 'A0':
            beginner = self.mapping.get('display_name:A0 - Complete Beginner')
            if beginner:
                return beginner
        by_code = self.mapping.get(f'code:{name.lower()}')
        if by_code:
            return by_code
        for key, level_id in self.mapping.items():
            if key.startswith('display_name:') and name in key:
                return level_id
        logger.warning('level_name_unmatched name=%s', name)
        return None


class AirtableImporter:
    def __init__(
        self,
        db: Session,
        client: AirtableClient,
        *,
        stats: ImportStats | None = None,
        time_provider: TimeProvider = default_time_provider,
    ):
        self.db = db
        self.client = client
        self.stats = stats or ImportStats()
        self.enums = EnumMapper(self.stats)
        self.time_provider = time_provider
        self.levels = LevelMatcher()
        self.lookups: dict[str, dict[str, uuid.UUID]] = {}

    # -- helpers --------------------------------------------------------

    def _fetch(self, table_name: str) -> list[dict[str, Any]]:
        records = self.client.fetch_records(table_name)
        self.stats.records_fetched += len(records)
        return records

    def _existing_ids(self, model) -> set[str]:
        return set(self._build_lookup(model))

    def _build_lookup(self, model) -> dict[str, uuid.UUID]:
        mapping: dict[str, uuid.UUID] = {}
        offset = 0
        while True:
            page = (
                self.db.query(model.id, model.airtable_record_id)
                .order_by(model.id)
                .offset(offset)
                .limit(LOOKUP_PAGE_SIZE)
                .all()
            )
            for row_id, airtable_id in page:
                if airtable_id:
                    mapping[airtable_id] = row_id
            if len(page) < LOOKUP_PAGE_SIZE:
                break
            offset += LOOKUP_PAGE_SIZE
        return mapping

    def _refresh_lookup(self, model) -> None:
        self.lookups[model.__tablename__] = self._build_lookup(model)
        logger.info('import_lookup_built table=%s records=%s', model.__tablename__, len(self.lookups[model.__tablename__]))

    def _resolve(self, model, airtable_id: str | None) -> uuid.UUID | None:
        if not airtable_id:
            return None
        return self.lookups.get(model.__tablename__, {}).get(airtable_id)

    def _insert(self, model, rows: list[dict[str, Any]]) -> None:
        table = model.__tablename__
        stats = self.stats.table(table)
        existing = self._existing_ids(model)
        fresh = []
        for values in rows:
            record_id = values.get('airtable_record_id')
            if record_id and record_id in existing:
                self.stats.skip(table, record_id, 'Already imported')
                continue
            fresh.append(values)
        if not fresh:
            return
        try:
            self.db.add_all([model(**values) for values in fresh])
            self.db.commit()
            stats.succeeded += len(fresh)
            logger.info('import_inserted table=%s rows=%s', table, len(fresh))
        except SQLAlchemyError as exc:
            self.db.rollback()
            stats.failed += len(fresh)
            self.stats.error(table, str(exc))

    def _run_table(self, label: str, fn: Callable[[], Any], default: Any = None) -> Any:
        try:
            return fn()
        except AirtableError as exc:
            self.stats.error(label, str(exc))
            return default

    # -- pre-import -------------------------------------------------------

    def link_language_levels(self) -> None:
        """Stamps Airtable record ids onto the seeded levels they correspond to."""
        records = self._fetch('Language Levels')
        levels = self.db.query(LanguageLevel).all()
        by_code = {level.code: level for level in levels}
        by_name = {level.display_name: level for level in levels}
        linked = 0
        for record in records:
            fields = record.get('fields') or {}
            code = str(fields.get('Level Code') or '').strip().lower()
            level = by_code.get(code) or by_name.get(fields.get('Display Name') or '')
            if level is None:
                self.stats.warn('Airtable language level has no seeded match', record_id=record.get('id'), code=code)
                continue
            if level.airtable_record_id != record.get('id'):
                level.airtable_record_id = record.get('id')
                linked += 1
        self.db.commit()
        logger.info('import_levels_linked linked=%s', linked)

    # -- pass 1 -----------------------------------------------------------

    def import_products(self) -> None:
        rows = []
        for record in self._fetch('Products'):
            fields = record.get('fields') or {}
            rows.append(
                {
                    'display_name': fields.get('Internal Nickname') or '',
                    'format': self.enums.map(fields.get('Format'), 'product_format'),
                    'location': self.enums.map(fields.get('Location'), 'product_location'),
                    'pandadoc_contract_template_id': fields.get('Contract Template ID (PandaDoc)') or None,
                    'signup_link_for_self_checkout': fields.get('Signup Link (for Self-Checkout)') or None,
                    'airtable_record_id': record['id'],
                }
            )
        self.stats.table('products').attempted += len(rows)
        self._insert(Product, rows)

    def _day_list(self, values: Any) -> list[str] | None:
        if not isinstance(values, list):
            return None
        days = [self.enums.map(value, 'day_of_week') for value in values]
        return [day for day in days if day] or None

    def import_teachers(self) -> None:
        rows = []
        for record in self._fetch('Teachers/Team'):
            fields = record.get('fields') or {}
            rows.append(
                _without_none(
                    {
                        'first_name': fields.get('First Name') or '',
                        'last_name': fields.get('Last Name') or '',
                        'email': fields.get('Email') or None,
                        'onboarding_status': self.enums.map(fields.get('Team Onboarding Status'), 'onboarding_status'),
                        'contract_type': self.enums.map(fields.get('Contract Type'), 'contract_type'),
                        'group_class_bonus_terms': self.enums.map(fields.get('Group Class Bonus Terms'), 'group_class_bonus_terms'),
                        'max_students_in_person': fields.get('Maximum Students Per In-Person Class') or None,
                        'max_students_online': fields.get('Maximum Students for Online Group Class') or None,
                        'available_for_online_classes': yes_no(fields.get('Available for Teach Online Classes')),
                        'available_for_in_person_classes': yes_no(fields.get('Available for In-Person Classes')),
                        'mobile_phone_number': fields.get('Mobile Phone Number') or None,
                        'admin_notes': fields.get('Teacher Notes') or None,
                        'role': self.enums.map_many(fields.get('Roles'), 'team_roles'),
                        'days_available_in_person': self._day_list(fields.get('Days Available for In-Person Classes')),
                        'days_available_online': self._day_list(fields.get('Days Available for Online Classes')),
                        'available_for_booking': fields.get('Available for Booking?') == 'Available',
                        'qualified_for_under_16': yes_no(fields.get('Qualified for Under 16')),
                        'maximum_hours_per_day': fields.get('Maximum Working Hours Per Day') or None,
                        'maximum_hours_per_week': fields.get('Maximum Working Hours Per Week') or None,
                        'google_calendar_id': fields.get('Google Calendar ID') or None,
                        'airtable_record_id': record['id'],
                    }
                )
            )
        self.stats.table('teachers').attempted += len(rows)
        self._insert(Teacher, rows)

    def import_sequences(self) -> None:
        rows = []
        for record in self._fetch('Follow Up Sequences - Templates'):
            fields = record.get('fields') or {}
            rows.append(
                {
                    'display_name': fields.get('Name') or '',
                    'subject': fields.get('Subject') or '',
                    'backend_name': fields.get('Backend Name') or None,
                    'airtable_record_id': record['id'],
                }
            )
        self.stats.table('template_follow_up_sequences').attempted += len(rows)
        self._insert(TemplateFollowUpSequence, rows)

    def transform_students(self) -> list[PendingRow]:
        pending = []
        for record in self._fetch('Students/Leads'):
            fields = record.get('fields') or {}
            values = {
                'full_name': str(fields.get('Name') or 'Unknown'),
                'email': validate_email(fields.get('Email'), self.stats),
                'mobile_phone_number': fields.get('Mobile Phone Number') or None,
                'city': fields.get('City') or None,
                'communication_channel': (
                    self.enums.map(fields.get('Default Communication Channel'), 'communication_channel')
                    or CommunicationChannel.EMAIL.value
                ),
                'initial_channel': self.enums.map(fields.get('Initial Channel'), 'initial_channel'),
                'is_full_beginner': fields.get("Student's Beginning Level (from Enrollment Form)") == 'Complete Beginner (A0)',
                'is_under_16': fields.get('Age Group') == 'Under 16',
                'purpose_to_learn': fields.get('Why do you want to learn french?') or None,
                'subjective_deadline_for_student': parse_date(fields.get("Student's Subjective Deadline"), self.stats),
                'added_to_email_newsletter': bool(fields.get('ConvertKit Subscriber ID')),
                'website_quiz_submission_date': parse_date(fields.get('Website Quiz Completed Date'), self.stats),
                'convertkit_id': fields.get('ConvertKit Subscriber ID') or None,
                'openphone_contact_id': fields.get('OpenPhone Contact ID') or None,
                'respondent_id': fields.get('Respondent ID') or None,
                'airtable_created_at': parse_datetime(fields.get('Lead Created Date'), self.stats),
                'stripe_customer_id': fields.get('Stripe Customer ID') or None,
                'tally_form_submission_id': fields.get('Submission ID') or None,
                'heard_from': fields.get('How did you hear about us?') or None,
                'airtable_record_id': record['id'],
            }
            pending.append(
                PendingRow(record['id'], values, {'level': first_link(fields.get('Desired Starting Language Level'))})
            )
        self.stats.table('students').attempted += len(pending)
        return pending

    def transform_messages(self) -> list[PendingRow]:
        pending = []
        for record in self._fetch('Follow Up Sequence - Template Messages'):
            fields = record.get('fields') or {}
            values = {
                'step_index': fields.get('Step Index') or 0,
                'message_content': fields.get('Message') or '',
                'time_delay_hours': fields.get('Time Delay (Hours)') or 0,
                'status': self.enums.map(fields.get('Status'), 'follow_up_message_status'),
                'airtable_record_id': record['id'],
            }
            pending.append(PendingRow(record['id'], values, {'sequence': first_link(fields.get('Follow Up Sequence'))}))
        self.stats.table('template_follow_up_messages').attempted += len(pending)
        return pending

    def transform_cohorts(self) -> list[PendingRow]:
        pending = []
        for record in self._fetch('French Programs/Cohorts'):
            fields = record.get('fields') or {}
            max_students = fields.get('Max Students')
            values = {
                'cohort_status': self.enums.map(fields.get('Cohort Status'), 'cohort_status') or CohortStatus.CLASS_ENDED.value,
                'max_students': max_students if isinstance(max_students, int) and not isinstance(max_students, bool) else None,
                'room_type': self.enums.map(fields.get('Max Students - Restricted by Room (Manual)'), 'room_type'),
                'start_date': parse_date(fields.get('Start Date'), self.stats),
                'setup_finalized': bool(checkbox(fields.get('Setup Finalized'))),
                'google_drive_folder_id': fields.get('Google Drive Folder ID') or None,
                'airtable_record_id': record['id'],
                'airtable_created_at': parse_datetime(fields.get('created'), self.stats),
            }
            refs = {
                'product': first_link(fields.get('Product')),
                'starting_level': first_link(fields.get('Starting Level')),
                'current_level_name': fields.get('Current Level') or None,
            }
            pending.append(PendingRow(record['id'], values, refs))
        self.stats.table('cohorts').attempted += len(pending)
        return pending

    def transform_enrollments(self) -> list[PendingRow]:
        pending = []
        for record in self._fetch('Student Enrollments'):
            fields = record.get('fields') or {}
            values = _without_none(
                {
                    'status': self.enums.map(fields.get('Enrollment Status'), 'enrollment_status'),
                    'airtable_record_id': record['id'],
                    'airtable_created_at': parse_datetime(fields.get('Created'), self.stats),
                }
            )
            refs = {
                'student': first_link(fields.get('Student')),
                'cohort': first_link(fields.get('French Program/Cohort')),
            }
            pending.append(PendingRow(record['id'], values, refs))
        self.stats.table('enrollments').attempted += len(pending)
        return pending

    def transform_follow_ups(self) -> list[PendingRow]:
        pending = []
        for record in self._fetch('Automated Follow Ups'):
            fields = record.get('fields') or {}
            last_sent = parse_datetime(fields.get('Last Follow Up Time'), self.stats)
            values = {
                'status': (
                    self.enums.map(fields.get('Status'), 'automated_follow_up_status')
                    or FollowUpStatus.DISABLED.value
                ),
                'started_at': parse_datetime(fields.get('Activated Time'), self.stats) or self.time_provider.utcnow(),
                'last_message_sent_at': last_sent,
                'completed_at': last_sent if fields.get('Status') == '100 - Completed' else None,
                'airtable_record_id': record['id'],
            }
            refs = {
                'student': first_link(fields.get('Student')),
                'sequence': first_link(fields.get('Follow Up Sequence')),
            }
            pending.append(PendingRow(record['id'], values, refs))
        self.stats.table('automated_follow_ups').attempted += len(pending)
        return pending

    def transform_touchpoints(self) -> list[PendingRow]:
        pending = []
        for record in self._fetch('CRM Touchpoints/Follow Ups'):
            fields = record.get('fields') or {}
            values = {
                'message': fields.get('Message from Lead') or fields.get('Message to Lead') or '',
                'channel': self.enums.map(fields.get('Channel'), 'touchpoint_channel') or TouchpointChannel.EMAIL.value,
                'type': self.enums.map(fields.get('Type'), 'touchpoint_type') or TouchpointType.OUTBOUND.value,
                'source': TouchpointSource.MANUAL.value,
                'occurred_at': parse_datetime(fields.get('Date'), self.stats) or self.time_provider.utcnow(),
                'external_id': fields.get('External ID') or None,
                'external_metadata': fields.get('External Metadata') or None,
                'airtable_record_id': record['id'],
                'airtable_created_at': parse_datetime(fields.get('Created at'), self.stats),
            }
            refs = {
                'student': first_link(fields.get('Leads')),
                'follow_up': first_link(fields.get('Automated Follow Up')),
            }
            pending.append(PendingRow(record['id'], values, refs))
        self.stats.table('touchpoints').attempted += len(pending)
        return pending

    def transform_weekly_sessions(self) -> list[PendingRow]:
        pending = []
        for record in self._fetch('Cohort Weekly Session'):
            fields = record.get('fields') or {}
            record_id = record['id']
            day_string = fields.get('Day of Week (String)')
            if not day_string:
                self.stats.skip('weekly_sessions', record_id, 'Day of Week (String) field is missing')
                continue
            day = self.enums.map(day_string, 'day_of_week')
            if not day:
                self.stats.skip('weekly_sessions', record_id, 'Could not map Day of Week value', value=day_string)
                continue
            start_time = seconds_to_wall_clock(fields.get('Start Time (hh:mm)'))
            if start_time is None:
                self.stats.skip('weekly_sessions', record_id, 'Start time is not a duration number')
                continue
            end_time = normalize_end_time(fields.get('End Time'))
            if end_time is None:
                self.stats.skip('weekly_sessions', record_id, 'Invalid end time format', value=fields.get('End Time'))
                continue
            values = {
                'day_of_week': day,
                'start_time': start_time,
                'end_time': end_time,
                'google_calendar_event_id': fields.get('Google Calendar Event ID') or None,
                'airtable_record_id': record_id,
                'airtable_created_at': parse_datetime(fields.get('Created at'), self.stats),
            }
            refs = {'cohort': first_link(fields.get('Cohort')), 'teacher': first_link(fields.get('Teacher'))}
            pending.append(PendingRow(record_id, values, refs))
        self.stats.table('weekly_sessions').attempted += len(pending)
        return pending

    def transform_classes(self) -> list[PendingRow]:
        pending = []
        now = self.time_provider.utcnow()
        for record in self._fetch('Events/Classes'):
            fields = record.get('fields') or {}
            values = {
                'name': fields.get('Name') or '',
                'start_time': parse_datetime(fields.get('Start Date Time'), self.stats) or now,
                'end_time': parse_datetime(fields.get('End Date'), self.stats) or now,
                'status': ClassStatus.SCHEDULED.value,
                'meeting_link': fields.get('Online Access Link') or None,
                'notes': fields.get('Notes') or None,
                'google_calendar_event_id': fields.get('Google Calendar Event ID') or None,
                'google_drive_folder_id': fields.get('Google Drive Folder ID') or None,
                'airtable_record_id': record['id'],
            }
            refs = {
                'cohort': first_link(fields.get('French Program/Cohort')),
                'teacher': first_link(fields.get('Teacher')),
            }
            pending.append(PendingRow(record['id'], values, refs))
        self.stats.table('classes').attempted += len(pending)
        return pending

    # -- pass 2 -----------------------------------------------------------

    def resolve_students(self, pending: list[PendingRow]) -> None:
        rows = []
        for row in pending:
            values = dict(row.values)
            values['desired_starting_language_level_id'] = self.levels.match_record_id(row.refs.get('level'))
            rows.append(values)
        self._insert(Student, rows)
        self._refresh_lookup(Student)

    def resolve_messages(self, pending: list[PendingRow]) -> None:
        rows = []
        for row in pending:
            sequence_id = self._resolve(TemplateFollowUpSequence, row.refs.get('sequence'))
            if not row.refs.get('sequence'):
                self.stats.skip('template_follow_up_messages', row.record_id, 'No sequence reference')
                continue
            if sequence_id is None:
                self.stats.skip('template_follow_up_messages', row.record_id, 'Sequence not found', ref=row.refs['sequence'])
                continue
            rows.append({**row.values, 'sequence_id': sequence_id})
        self._insert(TemplateFollowUpMessage, rows)

    def resolve_cohorts(self, pending: list[PendingRow]) -> None:
        rows = []
        for row in pending:
            rows.append(
                {
                    **row.values,
                    'product_id': self._resolve(Product, row.refs.get('product')),
                    'starting_level_id': self.levels.match_record_id(row.refs.get('starting_level')),
                    'current_level_id': self.levels.match_name(row.refs.get('current_level_name')),
                }
            )
        self._insert(Cohort, rows)
        self._refresh_lookup(Cohort)

    def resolve_enrollments(self, pending: list[PendingRow]) -> None:
        rows = []
        for row in pending:
            student_ref, cohort_ref = row.refs.get('student'), row.refs.get('cohort')
            student_id = self._resolve(Student, student_ref)
            cohort_id = self._resolve(Cohort, cohort_ref)
            if student_id and cohort_id:
                rows.append({**row.values, 'student_id': student_id, 'cohort_id': cohort_id})
                continue
            if not student_ref and not cohort_ref:
                reason = 'No student or cohort reference'
            elif not student_ref:
                reason = 'No student reference'
            elif not cohort_ref:
                reason = 'No cohort reference'
            elif not student_id and not cohort_id:
                reason = 'Student and Cohort not found'
            elif not student_id:
                reason = 'Student not found'
            else:
                reason = 'Cohort not found'
            self.stats.skip('enrollments', row.record_id, reason, student_ref=student_ref, cohort_ref=cohort_ref)
        self._insert(Enrollment, rows)

    def resolve_follow_ups(self, pending: list[PendingRow]) -> None:
        rows = []
        for row in pending:
            student_id = self._resolve(Student, row.refs.get('student'))
            sequence_id = self._resolve(TemplateFollowUpSequence, row.refs.get('sequence'))
            if not student_id or not sequence_id:
                reason = 'Student not found' if not student_id else 'Sequence not found'
                self.stats.skip('automated_follow_ups', row.record_id, reason)
                continue
            rows.append({**row.values, 'student_id': student_id, 'sequence_id': sequence_id})
        self._insert(AutomatedFollowUp, rows)
        self._refresh_lookup(AutomatedFollowUp)

    def resolve_touchpoints(self, pending: list[PendingRow]) -> None:
        rows = []
        for row in pending:
            student_id = self._resolve(Student, row.refs.get('student'))
            if not student_id:
                self.stats.skip('touchpoints', row.record_id, 'Student not found', ref=row.refs.get('student'))
                continue
            rows.append(
                {
                    **row.values,
                    'student_id': student_id,
                    'automated_follow_up_id': self._resolve(AutomatedFollowUp, row.refs.get('follow_up')),
                }
            )
        self._insert(Touchpoint, rows)

    def resolve_weekly_sessions(self, pending: list[PendingRow]) -> None:
        rows = []
        for row in pending:
            cohort_id = self._resolve(Cohort, row.refs.get('cohort'))
            if not cohort_id:
                self.stats.skip('weekly_sessions', row.record_id, 'No cohort_id found', ref=row.refs.get('cohort'))
                continue
            teacher_id = self._resolve(Teacher, row.refs.get('teacher'))
            if row.refs.get('teacher') and not teacher_id:
                self.stats.warn('Weekly session teacher not found', record_id=row.record_id, ref=row.refs['teacher'])
            rows.append({**row.values, 'cohort_id': cohort_id, 'teacher_id': teacher_id})
        self._insert(WeeklySession, rows)

    def resolve_classes(self, pending: list[PendingRow]) -> None:
        rows = []
        for row in pending:
            cohort_id = self._resolve(Cohort, row.refs.get('cohort'))
            if not cohort_id:
                self.stats.skip('classes', row.record_id, 'No cohort_id found', ref=row.refs.get('cohort'))
                continue
            teacher_id = self._resolve(Teacher, row.refs.get('teacher'))
            if not teacher_id:
                self.stats.warn('Class teacher not found', record_id=row.record_id, ref=row.refs.get('teacher'))
            rows.append({**row.values, 'cohort_id': cohort_id, 'teacher_id': teacher_id})
        self._insert(CohortClass, rows)

    # -- orchestration ----------------------------------------------------

    def run(self) -> ImportStats:
        started = time.perf_counter()
        self._run_table('language_levels', self.link_language_levels)
        self.levels = LevelMatcher.from_db(self.db)

        self._run_table('products', self.import_products)
        self._run_table('teachers', self.import_teachers)
        students = self._run_table('students', self.transform_students, [])
        self._run_table('template_follow_up_sequences', self.import_sequences)
        messages = self._run_table('template_follow_up_messages', self.transform_messages, [])
        cohorts = self._run_table('cohorts', self.transform_cohorts, [])
        enrollments = self._run_table('enrollments', self.transform_enrollments, [])
        follow_ups = self._run_table('automated_follow_ups', self.transform_follow_ups, [])
        touchpoints = self._run_table('touchpoints', self.transform_touchpoints, [])
        sessions = self._run_table('weekly_sessions', self.transform_weekly_sessions, [])
        classes = self._run_table('classes', self.transform_classes, [])

        for model in (Teacher, Student, Product, TemplateFollowUpSequence, Cohort, AutomatedFollowUp):
            self._refresh_lookup(model)

        self.resolve_students(students)
        self.resolve_messages(messages)
        self.resolve_cohorts(cohorts)
        self.resolve_enrollments(enrollments)
        self.resolve_follow_ups(follow_ups)
        self.resolve_touchpoints(touchpoints)
        self.resolve_weekly_sessions(sessions)
        self.resolve_classes(classes)

        self.stats.log_summary()
        logger.info('import_finished duration_s=%.1f', time.perf_counter() - started)
        return self.stats


def run_import(
    db: Session,
    client: AirtableClient,
    *,
    clean: bool = False,
    force_clean: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> ImportStats:
    if force_clean:
        clean_existing_data(db)
    elif clean:
        logger.warning('import_clean_pending seconds=%s', CLEAN_WARNING_SECONDS)
        sleep(CLEAN_WARNING_SECONDS)
        clean_existing_data(db)
    return AirtableImporter(db, client).run()
