import tempfile
import unittest
import uuid
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_ops.db import Base
from school_ops.errors import NotFoundError, ValidationFailed
from school_ops.models import Cohort, Student, Teacher, WeeklySession
from school_ops.services.teacher_service import find_available_teachers, get_teacher_workload


class TeacherAvailabilityTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_teacher_availability.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        self.db = self._session_factory()
        self.db.query(WeeklySession).delete()
        self.db.query(Cohort).delete()
        self.db.query(Teacher).delete()
        self.db.query(Student).delete()
        self.db.commit()

        self.student = Student(full_name='Lea Tremblay', email='lea@example.com')
        self.minor = Student(full_name='Tom Young', email='tom@example.com', is_under_16=True)
        self.db.add_all([self.student, self.minor])
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def _teacher(self, first_name, **overrides):
        values = {
            'first_name': first_name,
            'last_name': 'Teacher',
            'onboarding_status': 'onboarded',
            'available_for_booking': True,
            'google_calendar_id': f'{first_name.lower()}@calendar',
            'available_for_online_classes': True,
            'days_available_online': ['monday', 'wednesday'],
        }
        values.update(overrides)
        teacher = Teacher(**values)
        self.db.add(teacher)
        self.db.commit()
        return teacher

    def _sessions(self, teacher, *slots, cohort_status='enrollment_open'):
        cohort = Cohort(cohort_status=cohort_status)
        self.db.add(cohort)
        self.db.flush()
        for day, start, end in slots:
            self.db.add(WeeklySession(cohort_id=cohort.id, teacher_id=teacher.id, day_of_week=day, start_time=start, end_time=end))
        self.db.commit()

    def _available_names(self, **kwargs):
        params = {'format': 'online', 'duration_minutes': 60, 'day_of_week': 'Monday', 'student_id': self.student.id}
        params.update(kwargs)
        return [row['first_name'] for row in find_available_teachers(self.db, **params)]

    def test_filters_on_eligibility(self):
        self._teacher('Alice')
        self._teacher('Bruno', available_for_booking=False)
        self._teacher('Chloe', onboarding_status='training_in_progress')
        self._teacher('Denis', google_calendar_id=None)
        self._teacher('Emma', days_available_online=['friday'])
        self._teacher('Farid', available_for_online_classes=False)

        self.assertEqual(self._available_names(), ['Alice'])

    def test_in_person_uses_in_person_days(self):
        self._teacher('Alice')
        self._teacher('Gaby', available_for_in_person_classes=True, days_available_in_person=['monday'])

        self.assertEqual(self._available_names(format='in_person'), ['Gaby'])

    def test_under_16_students_need_qualified_teachers(self):
        self._teacher('Alice')
        self._teacher('Hugo', qualified_for_under_16=True)

        self.assertEqual(self._available_names(student_id=self.minor.id), ['Hugo'])

    def test_weekly_cap_excludes_teacher_that_would_overflow(self):
        full = self._teacher('Alice', maximum_hours_per_week=10)
        self._sessions(full, ('tuesday', '09:00', '18:30'))
        roomy = self._teacher('Basile', maximum_hours_per_week=10)
        self._sessions(roomy, ('tuesday', '09:00', '12:00'))

        self.assertEqual(self._available_names(duration_minutes=60), ['Basile'])
        self.assertEqual(self._available_names(duration_minutes=420), ['Basile'])
        self.assertEqual(self._available_names(duration_minutes=480), [])

    def test_daily_cap_and_double_sessions(self):
        teacher = self._teacher('Alice', maximum_hours_per_day=4)
        self._sessions(teacher, ('monday', '09:00', '11:00'))

        self.assertEqual(self._available_names(duration_minutes=60, session_structure='double'), ['Alice'])
        self.assertEqual(self._available_names(duration_minutes=90, session_structure='double'), [])
        self.assertEqual(self._available_names(day_of_week='Wednesday', duration_minutes=90, session_structure='double'), ['Alice'])

    def test_ended_cohorts_do_not_count_towards_workload(self):
        teacher = self._teacher('Alice', maximum_hours_per_week=2)
        self._sessions(teacher, ('tuesday', '09:00', '17:00'), cohort_status='class_ended')

        self.assertEqual(self._available_names(), ['Alice'])
        workload = get_teacher_workload(self.db, teacher.id)
        self.assertEqual(workload['weekly_hours'], 0)

    def test_workload_sums_hours_per_day(self):
        teacher = self._teacher('Alice')
        self._sessions(teacher, ('monday', '09:00', '10:30'), ('monday', '14:00', '15:00'), ('thursday', '18:00', '20:00'))

        workload = get_teacher_workload(self.db, teacher.id)
        self.assertEqual(workload['weekly_hours'], 4.5)
        self.assertEqual(workload['daily_hours'], {'monday': 2.5, 'thursday': 2.0})

    def test_available_teacher_reports_every_day_of_load(self):
        teacher = self._teacher('Alice')
        self._sessions(teacher, ('monday', '09:00', '10:30'), ('friday', '18:00', '20:00'))

        rows = find_available_teachers(
            self.db, format='online', duration_minutes=60, day_of_week='mon', student_id=self.student.id
        )

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['current_weekly_hours'], 3.5)
        self.assertEqual(rows[0]['daily_hours'], {'monday': 1.5, 'friday': 2.0})

    def test_rejects_unknown_day_and_missing_student(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self._available_names(day_of_week='Funday')
        self.assertEqual(ctx.exception.code, 'INVALID_DAY')

        with self.assertRaises(NotFoundError):
            self._available_names(student_id=uuid.uuid4())


if __name__ == '__main__':
    unittest.main()
