import tempfile
import unittest
import uuid
from datetime import datetime, timedelta
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_ops.db import Base, get_db
from school_ops.errors import register_error_handlers
from school_ops.models import AttendanceRecord, Cohort, CohortClass, Student, Teacher, Touchpoint
from school_ops.routers import attendance as attendance_router
from school_ops.routers import touchpoints as touchpoints_router


class AttendanceAndTouchpointTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_attendance_touchpoints.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        register_error_handlers(app)
        app.include_router(attendance_router.router)
        app.include_router(touchpoints_router.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for model in (Touchpoint, AttendanceRecord, CohortClass, Cohort, Student, Teacher):
                db.query(model).delete()
            db.commit()

            teacher = Teacher(first_name='Julie', last_name='Martin')
            student = Student(full_name='Iris Gray', email='iris@example.com')
            cohort = Cohort()
            db.add_all([teacher, student, cohort])
            db.flush()
            start = datetime(2026, 3, 2, 23, 0)
            cohort_class = CohortClass(
                cohort_id=cohort.id, teacher_id=teacher.id, name='Group A1: Monday', start_time=start, end_time=start + timedelta(hours=1)
            )
            db.add(cohort_class)
            db.flush()
            record = AttendanceRecord(student_id=student.id, cohort_id=cohort.id, class_id=cohort_class.id)
            db.add(record)
            db.commit()
            self.ids = {
                'teacher': str(teacher.id),
                'student': str(student.id),
                'cohort': str(cohort.id),
                'class': str(cohort_class.id),
                'record': str(record.id),
            }
        finally:
            db.close()

    def test_class_attendance_listing(self):
        body = self.client.get(f"/api/attendance/classes/{self.ids['class']}").json()
        self.assertEqual(body['count'], 1)
        self.assertEqual(body['data'][0]['status'], 'unset')
        self.assertIsNone(body['data'][0]['marked_at'])

        missing = self.client.get(f'/api/attendance/classes/{uuid.uuid4()}')
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()['code'], 'CLASS_NOT_FOUND')

    def test_mark_attendance_records_teacher_and_time(self):
        response = self.client.patch(
            f"/api/attendance/{self.ids['record']}",
            json={'status': 'attended', 'marked_by': self.ids['teacher'], 'homework_completed': True},
        )
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()['data']
        self.assertEqual(data['status'], 'attended')
        self.assertEqual(data['marked_by'], self.ids['teacher'])
        self.assertTrue(data['homework_completed'])
        self.assertIsNotNone(data['marked_at'])

    def test_mark_attendance_validates_status_and_teacher(self):
        bad_status = self.client.patch(f"/api/attendance/{self.ids['record']}", json={'status': 'late'})
        self.assertEqual(bad_status.status_code, 400)

        unknown_teacher = self.client.patch(
            f"/api/attendance/{self.ids['record']}", json={'status': 'attended', 'marked_by': str(uuid.uuid4())}
        )
        self.assertEqual(unknown_teacher.status_code, 404)
        self.assertEqual(unknown_teacher.json()['code'], 'TEACHER_NOT_FOUND')

    def test_daily_attendance_has_no_class(self):
        response = self.client.post(
            '/api/attendance/daily',
            json={'student_id': self.ids['student'], 'cohort_id': self.ids['cohort'], 'status': 'not_attended'},
        )
        self.assertEqual(response.status_code, 201, response.text)
        self.assertIsNone(response.json()['data']['class_id'])

    def test_touchpoints_are_logged_and_listed_newest_first(self):
        first = self.client.post(
            '/api/touchpoints',
            json={'student_id': self.ids['student'], 'channel': 'sms', 'type': 'inbound', 'message': 'Hello'},
        )
        self.assertEqual(first.status_code, 201, first.text)
        self.assertEqual(first.json()['data']['source'], 'manual')

        db = self._session_factory()
        try:
            db.add(
                Touchpoint(
                    student_id=uuid.UUID(self.ids['student']),
                    channel='email',
                    type='outbound',
                    message='Older',
                    occurred_at=datetime(2020, 1, 1),
                )
            )
            db.commit()
        finally:
            db.close()

        body = self.client.get(f"/api/touchpoints/student/{self.ids['student']}").json()
        self.assertEqual([row['message'] for row in body['data']], ['Hello', 'Older'])

    def test_touchpoint_for_unknown_student(self):
        response = self.client.post(
            '/api/touchpoints', json={'student_id': str(uuid.uuid4()), 'channel': 'call', 'type': 'outbound'}
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['code'], 'STUDENT_NOT_FOUND')


if __name__ == '__main__':
    unittest.main()
