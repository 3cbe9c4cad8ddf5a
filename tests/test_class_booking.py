import tempfile
import unittest
from datetime import timedelta
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_ops.config import settings
from school_ops.core.time_provider import default_time_provider
from school_ops.db import Base, get_db
from school_ops.errors import register_error_handlers
from school_ops.models import Cohort, Enrollment, LanguageLevel, Product, Student, WeeklySession
from school_ops.routers import class_booking as class_booking_router
from school_ops.services.language_level_service import get_level_by_code, seed_language_levels


TODAY = default_time_provider.today()


class ClassBookingTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_class_booking.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)
        db = cls._session_factory()
        try:
            seed_language_levels(db)
        finally:
            db.close()

        app = FastAPI()
        register_error_handlers(app)
        app.include_router(class_booking_router.router)

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
        self.db = self._session_factory()
        for model in (WeeklySession, Enrollment, Cohort, Product, Student):
            self.db.query(model).delete()
        self.db.commit()

        self.a0 = get_level_by_code(self.db, 'a0')
        self.group = Product(
            display_name='Group Beginner',
            format='group',
            location='online',
            signup_link_for_self_checkout='https://buy.stripe.com/test_123?utm_source=site',
        )
        self.private = Product(display_name='Private', format='private', location='online')
        self.db.add_all([self.group, self.private])
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def _cohort(self, *, days_out=30, product=None, level=None, status='enrollment_open', max_students=2, sessions=()):
        cohort = Cohort(
            product_id=(product or self.group).id,
            current_level_id=(level or self.a0).id,
            start_date=TODAY + timedelta(days=days_out),
            cohort_status=status,
            max_students=max_students,
        )
        self.db.add(cohort)
        self.db.flush()
        for day, start, end in sessions:
            self.db.add(WeeklySession(cohort_id=cohort.id, day_of_week=day, start_time=start, end_time=end))
        self.db.commit()
        return cohort

    def _student(self, email='buyer@example.com'):
        student = Student(full_name='Buyer One', email=email)
        self.db.add(student)
        self.db.commit()
        return student

    def _enroll(self, cohort, status='paid', email=None):
        student = self._student(email or f'{status}-{cohort.id.hex[:6]}-{self.db.query(Student).count()}@example.com')
        self.db.add(Enrollment(student_id=student.id, cohort_id=cohort.id, status=status))
        self.db.commit()
        return student

    def test_lists_open_group_cohorts_at_level(self):
        lead = settings.booking_min_lead_days
        good = self._cohort(days_out=lead + 10, sessions=[('monday', '18:00:00', '19:30:00'), ('wednesday', '18:00:00', '19:30:00')])
        self._enroll(good, 'paid')
        self._enroll(good, 'interested')
        self._cohort(days_out=max(lead - 1, 0))
        self._cohort(product=self.private)
        self._cohort(status='enrollment_closed')
        self._cohort(level=self.db.query(LanguageLevel).filter(LanguageLevel.code == 'a1.1').one())
        full = self._cohort(max_students=1)
        self._enroll(full, 'welcome_package_sent')

        response = self.client.get('/api/class-booking/available-beginner-cohorts')
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body['count'], 1)
        row = body['data'][0]
        self.assertEqual(row['Record ID'], str(good.id))
        self.assertEqual(row['Open Places'], 1)
        self.assertEqual(row['Format'], ['Group'])
        self.assertEqual(row['Location'], ['Online'])
        self.assertEqual(row['Cohort UI Label'], 'Online: Monday, Wednesday')
        self.assertEqual(row['array'][0]['Duration (h:mm)'], '1:30')
        self.assertEqual(row['array'][0]['Duration String'], '1h 30min')

    def test_unlimited_cohort_has_no_open_places_count(self):
        self._cohort(max_students=None)

        body = self.client.get('/api/class-booking/available-beginner-cohorts', params={'level': 'A0'}).json()
        self.assertEqual(body['count'], 1)
        self.assertIsNone(body['data'][0]['Open Places'])

    def test_unknown_level_returns_empty_list(self):
        body = self.client.get('/api/class-booking/available-beginner-cohorts', params={'level': 'z9'}).json()
        self.assertEqual(body, {'success': True, 'data': [], 'count': 0})

    def test_checkout_url_carries_reference_and_email(self):
        cohort = self._cohort()
        student = self._student()

        response = self.client.post(
            '/api/class-booking/checkout-url', json={'student_id': str(student.id), 'cohort_id': str(cohort.id)}
        )

        self.assertEqual(response.status_code, 200, response.text)
        url = response.json()['data']['url']
        parts = urlsplit(url)
        self.assertEqual(parts.netloc, 'buy.stripe.com')
        query = parse_qs(parts.query)
        self.assertEqual(query['client_reference_id'], [f'{student.id}:{cohort.id}'])
        self.assertEqual(query['prefilled_email'], ['buyer@example.com'])
        self.assertEqual(query['utm_source'], ['site'])

    def test_checkout_url_rejections(self):
        student = self._student()
        closed = self._cohort(status='enrollment_closed')
        full = self._cohort(max_students=1)
        self._enroll(full, 'paid', email='other@example.com')
        mine = self._cohort()
        self.db.add(Enrollment(student_id=student.id, cohort_id=mine.id, status='paid'))
        self.db.commit()
        no_link = self._cohort(product=self.private)

        def post(cohort):
            return self.client.post(
                '/api/class-booking/checkout-url', json={'student_id': str(student.id), 'cohort_id': str(cohort.id)}
            )

        self.assertEqual(post(closed).json()['code'], 'COHORT_NOT_OPEN')
        self.assertEqual(post(full).status_code, 409)
        self.assertEqual(post(full).json()['code'], 'COHORT_FULL')
        self.assertEqual(post(mine).json()['code'], 'ALREADY_ENROLLED')
        self.assertEqual(post(no_link).json()['code'], 'NO_CHECKOUT_LINK')


if __name__ == '__main__':
    unittest.main()
