import json
import tempfile
import unittest
from datetime import date, datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_ops.config import settings
from school_ops.core.time_provider import TimeProvider
from school_ops.db import Base
from school_ops.errors import ValidationFailed
from school_ops.models import AttendanceRecord, Cohort, CohortClass, Enrollment, Product, Student, Teacher, WeeklySession
from school_ops.services.class_creation_service import (
    create_classes_for_tomorrow,
    create_classes_from_events,
    parse_events,
    recurring_event_prefix,
)


class FixedTimeProvider(TimeProvider):
    def __init__(self, moment: datetime):
        self._moment = moment

    def now(self) -> datetime:
        return self._moment


def _utc_naive(day: date, hour: int, minute: int = 0) -> datetime:
    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=ZoneInfo(settings.app_timezone))
    return local.astimezone(timezone.utc).replace(tzinfo=None)


class ClassCreationTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_class_creation.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        self.db = self._session_factory()
        for model in (AttendanceRecord, CohortClass, WeeklySession, Enrollment, Cohort, Product, Student, Teacher):
            self.db.query(model).delete()
        self.db.commit()

        product = Product(display_name='Group A1', format='group', location='online')
        self.teacher = Teacher(first_name='Julie', last_name='Martin')
        self.db.add_all([product, self.teacher])
        self.db.flush()
        self.cohort = Cohort(product_id=product.id, start_date=date(2026, 2, 2), setup_finalized=True)
        self.db.add(self.cohort)
        self.db.flush()
        self.session = WeeklySession(
            cohort_id=self.cohort.id,
            teacher_id=self.teacher.id,
            day_of_week='monday',
            start_time='18:00:00',
            end_time='19:30:00',
            google_calendar_event_id='abc123',
        )
        self.db.add(self.session)

        paid = Student(full_name='Paid Student', email='paid@example.com')
        welcomed = Student(full_name='Welcomed Student', email='welcomed@example.com')
        interested = Student(full_name='Interested Student', email='interested@example.com')
        self.db.add_all([paid, welcomed, interested])
        self.db.flush()
        self.db.add_all(
            [
                Enrollment(student_id=paid.id, cohort_id=self.cohort.id, status='paid'),
                Enrollment(student_id=welcomed.id, cohort_id=self.cohort.id, status='welcome_package_sent'),
                Enrollment(student_id=interested.id, cohort_id=self.cohort.id, status='interested'),
            ]
        )
        self.db.commit()
        # Sunday in the app timezone; tomorrow is Monday 2026-03-02.
        self.sunday = FixedTimeProvider(datetime(2026, 3, 1, 10, 0, tzinfo=ZoneInfo(settings.app_timezone)))

    def tearDown(self):
        self.db.close()

    def test_creates_tomorrow_classes_with_attendance(self):
        result = create_classes_for_tomorrow(self.db, time_provider=self.sunday)

        self.assertEqual(result.classes_created, 1)
        self.assertEqual(result.attendance_records_created, 2)
        created = self.db.query(CohortClass).one()
        self.assertEqual(created.name, 'Group A1: Monday / Julie Martin')
        self.assertEqual(created.start_time, _utc_naive(date(2026, 3, 2), 18))
        self.assertEqual(created.end_time, _utc_naive(date(2026, 3, 2), 19, 30))
        self.assertEqual(created.teacher_id, self.teacher.id)
        statuses = {record.status for record in self.db.query(AttendanceRecord).all()}
        self.assertEqual(statuses, {'unset'})

    def test_running_twice_does_not_duplicate(self):
        create_classes_for_tomorrow(self.db, time_provider=self.sunday)
        second = create_classes_for_tomorrow(self.db, time_provider=self.sunday)

        self.assertEqual(second.classes_created, 0)
        self.assertEqual(second.skipped, 1)
        self.assertEqual(self.db.query(CohortClass).count(), 1)

    def test_skips_unfinalized_ended_and_other_days(self):
        self.cohort.setup_finalized = False
        self.db.commit()
        self.assertEqual(create_classes_for_tomorrow(self.db, time_provider=self.sunday).classes_created, 0)

        self.cohort.setup_finalized = True
        self.cohort.cohort_status = 'class_ended'
        self.db.commit()
        self.assertEqual(create_classes_for_tomorrow(self.db, time_provider=self.sunday).classes_created, 0)

        self.cohort.cohort_status = 'enrollment_closed'
        self.db.commit()
        saturday = FixedTimeProvider(datetime(2026, 2, 28, 10, 0, tzinfo=ZoneInfo(settings.app_timezone)))
        self.assertEqual(create_classes_for_tomorrow(self.db, time_provider=saturday).classes_created, 0)

    def test_creates_classes_from_calendar_events(self):
        events = [
            {
                'id': 'abc123_20260302T230000Z',
                'start': {'dateTime': '2026-03-02T18:00:00-05:00'},
                'end': {'dateTime': '2026-03-02T19:30:00-05:00'},
                'hangoutLink': 'https://meet.google.com/xyz',
            },
            {'id': 'unknown_20260302', 'start': '2026-03-02T18:00:00Z', 'end': '2026-03-02T19:00:00Z'},
        ]

        result = create_classes_from_events(self.db, json.dumps(events))

        self.assertEqual(result.classes_created, 1)
        self.assertEqual(result.attendance_records_created, 2)
        self.assertEqual(result.unmatched_events, ['unknown_20260302'])
        created = self.db.query(CohortClass).one()
        self.assertEqual(created.google_calendar_event_id, 'abc123_20260302T230000Z')
        self.assertEqual(created.meeting_link, 'https://meet.google.com/xyz')
        self.assertEqual(created.start_time, datetime(2026, 3, 2, 23, 0))

        again = create_classes_from_events(self.db, events)
        self.assertEqual(again.classes_created, 0)
        self.assertEqual(again.skipped, 1)

    def test_parse_events_rejects_garbage(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_events('not json')
        self.assertEqual(ctx.exception.code, 'INVALID_EVENTS')

        with self.assertRaises(ValidationFailed):
            parse_events([{'id': 'a', 'start': 'yesterday', 'end': None}])

    def test_recurring_event_prefix(self):
        self.assertEqual(recurring_event_prefix('abc123_20260302T230000Z'), 'abc123')
        self.assertEqual(recurring_event_prefix('single'), 'single')


if __name__ == '__main__':
    unittest.main()
