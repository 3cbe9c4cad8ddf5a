import tempfile
import unittest
from pathlib import Path
from unittest import mock

import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_ops.airtable.client import TABLE_IDS, AirtableClient, AirtableError
from school_ops.airtable.importer import CLEAN_WARNING_SECONDS, LevelMatcher, clean_existing_data, run_import
from school_ops.db import Base
from school_ops.models import (
    AutomatedFollowUp,
    Cohort,
    CohortClass,
    Enrollment,
    LanguageLevel,
    Product,
    Student,
    TemplateFollowUpMessage,
    Teacher,
    Touchpoint,
    WeeklySession,
)
from school_ops.services.language_level_service import seed_language_levels


BASE_ID = 'appTEST'

RECORDS = {
    'Language Levels': [{'id': 'recLvlA0', 'fields': {'Level Code': 'A0', 'Display Name': 'A0 - Complete Beginner'}}],
    'Products': [{'id': 'recProd1', 'fields': {'Internal Nickname': 'Group Beginner', 'Format': 'Group', 'Location': 'Online'}}],
    'Teachers/Team': [
        {
            'id': 'recT1',
            'fields': {
                'First Name': 'Julie',
                'Last Name': 'Martin',
                'Email': 'julie@example.com',
                'Days Available for Online Classes': ['Monday', 'Someday'],
                'Available for Booking?': 'Available',
                'Roles': ['Teacher'],
            },
        }
    ],
    'Students/Leads': [
        {
            'id': 'recS1',
            'fields': {
                'Name': 'Iris Gray',
                'Email': 'iris@example.com',
                'Default Communication Channel': 'SMS',
                'Desired Starting Language Level': ['recLvlA0'],
            },
        },
        {'id': 'recS2', 'fields': {'Email': 'not-an-email'}},
    ],
    'Follow Up Sequences - Templates': [
        {'id': 'recSeq1', 'fields': {'Name': 'Abandoned cart', 'Subject': 'Still there?', 'Backend Name': 'abandoned_cart'}}
    ],
    'Follow Up Sequence - Template Messages': [
        {'id': 'recM1', 'fields': {'Step Index': 1, 'Message': 'Hello', 'Status': 'Active', 'Follow Up Sequence': ['recSeq1']}},
        {'id': 'recM2', 'fields': {'Step Index': 2, 'Message': 'Orphan'}},
    ],
    'French Programs/Cohorts': [
        {
            'id': 'recC1',
            'fields': {
                'Cohort Status': '0 - Open for Enrollment',
                'Max Students': 6,
                'Start Date': '2026-03-09',
                'Setup Finalized': True,
                'Product': ['recProd1'],
                'Starting Level': ['recLvlA0'],
                'Current Level': 'A0',
            },
        }
    ],
    'Student Enrollments': [
        {'id': 'recE1', 'fields': {'Enrollment Status': '100 - Paid', 'Student': ['recS1'], 'French Program/Cohort': ['recC1']}},
        {'id': 'recE2', 'fields': {'French Program/Cohort': ['recC1']}},
        {'id': 'recE3', 'fields': {'Student': ['recGone'], 'French Program/Cohort': ['recC1']}},
    ],
    'Automated Follow Ups': [
        {
            'id': 'recF1',
            'fields': {
                'Status': '50 - Follow Up Ongoing',
                'Student': ['recS1'],
                'Follow Up Sequence': ['recSeq1'],
                'Activated Time': '2026-03-01T10:00:00.000Z',
            },
        }
    ],
    'CRM Touchpoints/Follow Ups': [
        {
            'id': 'recTP1',
            'fields': {
                'Leads': ['recS1'],
                'Channel': 'SMS',
                'Type': 'Inbound',
                'Message from Lead': 'Hi!',
                'Date': '2026-03-01T12:00:00.000Z',
                'Automated Follow Up': ['recF1'],
            },
        }
    ],
    'Cohort Weekly Session': [
        {
            'id': 'recW1',
            'fields': {
                'Day of Week (String)': 'Monday',
                'Start Time (hh:mm)': 64800,
                'End Time': '7:30 PM',
                'Cohort': ['recC1'],
                'Teacher': ['recT1'],
            },
        },
        {'id': 'recW2', 'fields': {'Day of Week (String)': 'Funday', 'Cohort': ['recC1']}},
        {'id': 'recW3', 'fields': {'Day of Week (String)': 'Friday', 'Start Time (hh:mm)': '6pm', 'Cohort': ['recC1']}},
    ],
    'Events/Classes': [
        {
            'id': 'recCl1',
            'fields': {
                'Name': 'Group A0: Monday',
                'Start Date Time': '2026-03-09T23:00:00.000Z',
                'End Date': '2026-03-10T00:30:00.000Z',
                'French Program/Cohort': ['recC1'],
                'Teacher': ['recT1'],
            },
        }
    ],
}

TABLE_NAMES = {table_id: name for name, table_id in TABLE_IDS.items()}


def airtable_handler(request: httpx.Request) -> httpx.Response:
    if request.headers.get('Authorization') != 'Bearer key123':
        return httpx.Response(401)
    table_name = TABLE_NAMES.get(request.url.path.rsplit('/', 1)[-1])
    if table_name is None:
        return httpx.Response(404)
    records = RECORDS.get(table_name, [])
    # Students are served in two pages to exercise offset handling.
    if table_name == 'Students/Leads':
        if request.url.params.get('offset') == 'page2':
            return httpx.Response(200, json={'records': records[1:]})
        return httpx.Response(200, json={'records': records[:1], 'offset': 'page2'})
    return httpx.Response(200, json={'records': records})


class AirtableImportTests(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tmpdir.name) / 'test_airtable_import.db'
        self._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        Base.metadata.create_all(bind=self._engine)
        self.db = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)()
        seed_language_levels(self.db)
        self.client = AirtableClient('key123', BASE_ID, transport=httpx.MockTransport(airtable_handler))

    def tearDown(self):
        self.client.close()
        self.db.close()
        self._engine.dispose()
        self._tmpdir.cleanup()

    def test_full_import_links_every_table(self):
        stats = run_import(self.db, self.client)

        self.assertEqual(stats.errors, [])
        a0 = self.db.query(LanguageLevel).filter(LanguageLevel.code == 'a0').one()
        self.assertEqual(a0.airtable_record_id, 'recLvlA0')

        teacher = self.db.query(Teacher).one()
        self.assertEqual(teacher.days_available_online, ['monday'])
        self.assertTrue(teacher.available_for_booking)

        students = {student.airtable_record_id: student for student in self.db.query(Student).all()}
        self.assertEqual(set(students), {'recS1', 'recS2'})
        self.assertEqual(students['recS1'].communication_channel, 'sms')
        self.assertEqual(students['recS1'].desired_starting_language_level_id, a0.id)
        self.assertEqual(students['recS2'].full_name, 'Unknown')
        self.assertIsNone(students['recS2'].email)

        cohort = self.db.query(Cohort).one()
        self.assertEqual(cohort.product_id, self.db.query(Product).one().id)
        self.assertEqual(cohort.current_level_id, a0.id)
        self.assertEqual(cohort.starting_level_id, a0.id)
        self.assertTrue(cohort.setup_finalized)
        self.assertEqual(cohort.cohort_status, 'enrollment_open')

        enrollment = self.db.query(Enrollment).one()
        self.assertEqual((enrollment.student_id, enrollment.status), (students['recS1'].id, 'paid'))
        self.assertEqual(stats.table('enrollments').skipped_reasons, {'No student reference': ['recE2'], 'Student not found': ['recE3']})

        self.assertEqual(self.db.query(TemplateFollowUpMessage).count(), 1)
        self.assertEqual(stats.table('template_follow_up_messages').skipped_reasons, {'No sequence reference': ['recM2']})

        follow_up = self.db.query(AutomatedFollowUp).one()
        touchpoint = self.db.query(Touchpoint).one()
        self.assertEqual(follow_up.status, 'ongoing')
        self.assertEqual(touchpoint.automated_follow_up_id, follow_up.id)
        self.assertEqual((touchpoint.channel, touchpoint.type), ('sms', 'inbound'))

        session = self.db.query(WeeklySession).one()
        self.assertEqual((session.day_of_week, session.start_time, session.end_time), ('monday', '18:00:00', '19:30:00'))
        self.assertEqual(session.teacher_id, teacher.id)
        self.assertEqual(
            set(stats.table('weekly_sessions').skipped_reasons),
            {'Could not map Day of Week value', 'Start time is not a duration number'},
        )

        cohort_class = self.db.query(CohortClass).one()
        self.assertEqual(cohort_class.cohort_id, cohort.id)
        self.assertEqual(cohort_class.teacher_id, teacher.id)

    def test_second_run_skips_already_imported_rows(self):
        run_import(self.db, self.client)
        stats = run_import(self.db, self.client)

        self.assertEqual(stats.total_imported, 0)
        self.assertEqual(stats.table('students').skipped_reasons['Already imported'], ['recS1', 'recS2'])
        self.assertEqual(self.db.query(Student).count(), 2)
        self.assertEqual(self.db.query(Enrollment).count(), 1)

    def test_clean_waits_then_removes_imported_data(self):
        run_import(self.db, self.client)
        sleeper = mock.Mock()

        with mock.patch('school_ops.airtable.importer.AirtableImporter.run') as importer_run:
            run_import(self.db, self.client, clean=True, sleep=sleeper)

        sleeper.assert_called_once_with(CLEAN_WARNING_SECONDS)
        importer_run.assert_called_once()
        self.assertEqual(self.db.query(Student).count(), 0)
        self.assertEqual(self.db.query(CohortClass).count(), 0)
        self.assertGreater(self.db.query(LanguageLevel).count(), 0)

    def test_clean_on_empty_database(self):
        clean_existing_data(self.db)
        self.assertEqual(self.db.query(Teacher).count(), 0)

    def test_fetch_failure_is_recorded_per_table(self):
        def failing(request):
            if request.url.path.endswith(TABLE_IDS['Products']):
                return httpx.Response(503)
            return airtable_handler(request)

        client = AirtableClient('key123', BASE_ID, transport=httpx.MockTransport(failing))
        try:
            stats = run_import(self.db, client)
        finally:
            client.close()

        self.assertEqual([error['table'] for error in stats.errors], ['products'])
        self.assertIsNone(self.db.query(Cohort).one().product_id)

    def test_client_rejects_unknown_table(self):
        with self.assertRaises(AirtableError):
            self.client.fetch_records('Nope')


class LevelMatcherTests(unittest.TestCase):
    def test_name_matching_order(self):
        matcher = LevelMatcher(
            {
                'display_name:A0 - Complete Beginner': 'a0-id',
                'display_name:A1.1 - Beginner Level 1': 'a11-id',
                'code:a1.1': 'a11-id',
            }
        )
        self.assertEqual(matcher.match_name('A0'), 'a0-id')
        self.assertEqual(matcher.match_name('A1.1'), 'a11-id')
        self.assertEqual(matcher.match_name('Beginner Level 1'), 'a11-id')
        self.assertIsNone(matcher.match_name('C9'))
        self.assertIsNone(matcher.match_record_id(None))


if __name__ == '__main__':
    unittest.main()
