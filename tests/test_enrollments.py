import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_ops.db import Base, get_db
from school_ops.errors import register_error_handlers
from school_ops.models import Cohort, Enrollment, Student
from school_ops.routers import enrollments as enrollments_router
from school_ops.services.enrollment_service import ALLOWED_TRANSITIONS, can_transition
from school_ops.webhooks import WebhookResult


WEBHOOK_PATH = 'school_ops.services.enrollment_service.trigger_webhook'


class EnrollmentTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_enrollments.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        register_error_handlers(app)
        app.include_router(enrollments_router.router)

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
            db.query(Enrollment).delete()
            db.query(Cohort).delete()
            db.query(Student).delete()
            db.commit()
            student = Student(full_name='Iris Gray', email='iris@example.com', mobile_phone_number='+15145550101')
            cohort = Cohort()
            db.add_all([student, cohort])
            db.commit()
            self.student_id = str(student.id)
            self.cohort_id = str(cohort.id)
        finally:
            db.close()

    def _create(self, status='interested'):
        return self.client.post(
            '/api/enrollments', json={'student_id': self.student_id, 'cohort_id': self.cohort_id, 'status': status}
        )

    def _move(self, enrollment_id, status):
        return self.client.patch(f'/api/enrollments/{enrollment_id}/status', json={'status': status})

    def test_happy_path_through_the_funnel(self):
        created = self._create()
        self.assertEqual(created.status_code, 201, created.text)
        enrollment_id = created.json()['data']['id']

        for status in ('beginner_form_filled', 'contract_signed', 'paid', 'welcome_package_sent'):
            response = self._move(enrollment_id, status)
            self.assertEqual(response.status_code, 200, response.text)
            self.assertEqual(response.json()['data']['status'], status)

    def test_rejects_transitions_outside_the_funnel(self):
        enrollment_id = self._create().json()['data']['id']

        response = self._move(enrollment_id, 'paid')
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body['code'], 'INVALID_TRANSITION')
        self.assertEqual(body['details'], {'from': 'interested', 'to': 'paid'})

        self.assertEqual(self._move(enrollment_id, 'dropped_out').status_code, 200)
        self.assertEqual(self._move(enrollment_id, 'interested').json()['code'], 'INVALID_TRANSITION')

    def test_unknown_status_is_rejected(self):
        self.assertEqual(self._create('maybe').json()['code'], 'INVALID_STATUS')
        self.assertEqual(self._create('dropped_out').json()['code'], 'INVALID_STATUS')

    def test_duplicate_active_enrollment_conflicts(self):
        self._create()
        response = self._create()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'DUPLICATE_ENROLLMENT')

    def test_abandoned_status_fires_webhook_once(self):
        enrollment_id = self._create().json()['data']['id']
        self._move(enrollment_id, 'contract_signed')

        with mock.patch(WEBHOOK_PATH, return_value=WebhookResult(success=True, status_code=200)) as trigger:
            response = self._move(enrollment_id, 'payment_abandoned')

        self.assertEqual(response.status_code, 200)
        trigger.assert_called_once()
        name, payload = trigger.call_args.args
        self.assertEqual(name, 'enrollment_abandoned')
        self.assertEqual(payload['status'], 'payment_abandoned')
        self.assertEqual(payload['email'], 'iris@example.com')

    def test_webhook_failure_does_not_undo_transition(self):
        enrollment_id = self._create().json()['data']['id']

        with mock.patch(WEBHOOK_PATH, return_value=WebhookResult(success=False, error='HTTP 500')):
            response = self._move(enrollment_id, 'contract_abandoned')

        self.assertEqual(response.status_code, 200)
        listing = self.client.get('/api/enrollments', params={'student_id': self.student_id}).json()
        self.assertEqual(listing['data'][0]['status'], 'contract_abandoned')

    def test_non_abandoned_transitions_do_not_notify(self):
        enrollment_id = self._create().json()['data']['id']
        with mock.patch(WEBHOOK_PATH) as trigger:
            self._move(enrollment_id, 'contract_signed')
        trigger.assert_not_called()

    def test_terminal_statuses_have_no_exits(self):
        self.assertEqual(ALLOWED_TRANSITIONS['declined_contract'], frozenset())
        self.assertFalse(can_transition('dropped_out', 'interested'))
        self.assertTrue(can_transition('payment_abandoned', 'paid'))


if __name__ == '__main__':
    unittest.main()
