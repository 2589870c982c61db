from unittest.mock import patch

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIRequestFactory
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle
from rest_framework.views import APIView

from common.exception_handler import envelope_exception_handler
from common.exceptions import ConflictError


class ApiRootTests(TestCase):
	def test_root_lists_endpoints(self):
		response = self.client.get('/')

		self.assertEqual(response.status_code, 200)
		self.assertIn('bookings', response.json()['data']['endpoints'])

	def test_health_check(self):
		response = self.client.get('/api/health/')

		self.assertEqual(response.status_code, 200)
		body = response.json()
		self.assertEqual(body['status'], 'healthy')
		self.assertEqual(body['services']['database'], 'healthy')
		self.assertEqual(body['services']['channels'], 'healthy')
		self.assertNotIn('redis', body['services'])

	@override_settings(REDIS_URL='redis://localhost:1/0')
	@patch('shareroute.views.redis.Redis.from_url')
	def test_health_check_reports_unreachable_redis(self, mock_from_url):
		mock_from_url.return_value.ping.side_effect = ConnectionError('refused')

		response = self.client.get('/api/health/')

		self.assertEqual(response.status_code, 503)
		self.assertTrue(response.json()['services']['redis'].startswith('unhealthy'))


@patch.object(UserRateThrottle, 'THROTTLE_RATES', {'anon': '50/min', 'user': '50/min'})
@patch.object(AnonRateThrottle, 'THROTTLE_RATES', {'anon': '2/min', 'user': '50/min'})
class ThrottleTests(TestCase):
	def setUp(self):
		cache.clear()

	def tearDown(self):
		cache.clear()

	def test_requests_over_the_rate_get_429_envelope(self):
		for _ in range(2):
			self.assertEqual(self.client.get('/').status_code, 200)

		response = self.client.get('/')

		self.assertEqual(response.status_code, 429)
		body = response.json()
		self.assertFalse(body['success'])
		self.assertEqual(body['error'], 'throttled')
		self.assertIn('throttled', body['message'])


class ExceptionHandlerTests(SimpleTestCase):
	def setUp(self):
		request = APIRequestFactory().get('/')
		self.context = {'view': APIView(), 'request': request}

	def test_service_error_envelope(self):
		response = envelope_exception_handler(ConflictError('Email already registered'), self.context)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data, {
			'success': False,
			'message': 'Email already registered',
			'error': 'conflict',
		})

	@override_settings(DEBUG=False)
	def test_unexpected_error_is_redacted(self):
		with self.assertLogs('common.exception_handler', level='ERROR'):
			response = envelope_exception_handler(RuntimeError('db password is hunter2'), self.context)

		self.assertEqual(response.status_code, 500)
		self.assertEqual(response.data['message'], 'Internal server error')

	@override_settings(DEBUG=True)
	def test_unexpected_error_shown_in_development(self):
		with self.assertLogs('common.exception_handler', level='ERROR'):
			response = envelope_exception_handler(RuntimeError('boom'), self.context)

		self.assertEqual(response.data['message'], 'boom')
