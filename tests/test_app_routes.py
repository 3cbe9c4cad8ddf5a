import unittest

from fastapi.testclient import TestClient

from school_ops.main import app


class AppRoutesTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        # No context manager: the lifespan (create_all, scheduler) is not run.
        cls.client = TestClient(app)

    def test_root_and_health(self):
        root = self.client.get('/')
        self.assertEqual(root.status_code, 200)
        self.assertEqual(root.text, 'OK')
        self.assertEqual(self.client.get('/health').json(), {'status': 'ok'})

    def test_rpc_health_check(self):
        response = self.client.get('/trpc/healthCheck')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'result': {'data': 'OK'}})

    def test_unknown_rpc_procedure(self):
        response = self.client.get('/trpc/doesNotExist')
        self.assertEqual(response.status_code, 404)
        error = response.json()['error']
        self.assertEqual(error['code'], 'NOT_FOUND')
        self.assertEqual(error['data'], {'httpStatus': 404, 'path': 'doesNotExist'})

    def test_unknown_path_uses_error_envelope(self):
        response = self.client.get('/api/nowhere')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['success'], False)

    def test_all_routers_are_mounted(self):
        paths = {route.path for route in app.routes}
        for expected in (
            '/api/students',
            '/api/teachers/available-for-private-classes',
            '/api/cohorts/finalize-setup',
            '/api/class-booking/checkout-url',
            '/api/follow-ups/advance',
            '/api/enrollments/{enrollment_id}/status',
            '/api/attendance/daily',
            '/api/touchpoints',
        ):
            self.assertIn(expected, paths)


if __name__ == '__main__':
    unittest.main()
