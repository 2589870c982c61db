from datetime import timedelta

from django.test import TestCase, override_settings
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from services import identity
from services.identity import issue_token, verify_token
from common.exceptions import AuthenticationError, ValidationError
from .models import User


class RegisterLoginTests(TestCase):
	def setUp(self):
		self.client = APIClient()

	def register(self, **overrides):
		data = {
			'name': 'Jane Rider',
			'email': 'jane@example.com',
			'password': 'secret123',
		}
		data.update(overrides)
		return self.client.post('/api/auth/register/', data, format='json')

	def test_register_returns_user_and_token_and_sets_cookie(self):
		response = self.register(phone='+15550001')

		self.assertEqual(response.status_code, 201)
		body = response.json()
		self.assertTrue(body['success'])
		self.assertEqual(body['data']['user']['email'], 'jane@example.com')
		self.assertEqual(body['data']['user']['role'], 'rider')
		self.assertNotIn('password', body['data']['user'])
		self.assertIn('token', response.cookies)
		self.assertTrue(response.cookies['token']['httponly'])
		self.assertEqual(response.cookies['token'].value, body['data']['token'])

	def test_register_as_driver(self):
		response = self.register(role='driver')

		self.assertEqual(response.status_code, 201)
		self.assertEqual(User.objects.get(email='jane@example.com').role, 'driver')

	def test_register_as_admin_is_rejected(self):
		response = self.register(role='admin')

		self.assertEqual(response.status_code, 400)
		self.assertFalse(response.json()['success'])
		self.assertFalse(User.objects.exists())

	def test_register_missing_fields(self):
		response = self.client.post('/api/auth/register/', {'email': 'jane@example.com'}, format='json')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.json()['message'], 'Missing required fields')
		self.assertEqual(response.json()['error'], 'validation_error')

	def test_register_duplicate_email_is_case_insensitive(self):
		self.register()
		response = self.register(email='JANE@Example.com')

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.json()['message'], 'Email already registered')
		self.assertEqual(User.objects.count(), 1)

	def test_login_succeeds_with_correct_password(self):
		self.register()
		response = self.client.post('/api/auth/login/', {
			'email': 'jane@example.com',
			'password': 'secret123',
		}, format='json')

		self.assertEqual(response.status_code, 200)
		self.assertIn('token', response.json()['data'])
		self.assertIn('token', response.cookies)

	def test_login_failures_are_indistinguishable(self):
		self.register()
		User.objects.create_user(email='gone@example.com', password='secret123', name='Gone', is_active=False)

		wrong_password = self.client.post('/api/auth/login/', {
			'email': 'jane@example.com', 'password': 'nope-nope',
		}, format='json')
		unknown_email = self.client.post('/api/auth/login/', {
			'email': 'nobody@example.com', 'password': 'secret123',
		}, format='json')
		inactive = self.client.post('/api/auth/login/', {
			'email': 'gone@example.com', 'password': 'secret123',
		}, format='json')

		for response in (wrong_password, unknown_email, inactive):
			self.assertEqual(response.status_code, 401)
			self.assertEqual(response.json()['message'], 'Invalid credentials')

	def test_login_missing_credentials(self):
		response = self.client.post('/api/auth/login/', {'email': 'jane@example.com'}, format='json')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.json()['message'], 'Missing credentials')

	def test_login_rejects_non_object_body(self):
		response = self.client.post('/api/auth/login/', [1, 2], format='json')

		self.assertEqual(response.status_code, 400)
		body = response.json()
		self.assertFalse(body['success'])
		self.assertEqual(body['error'], 'validation_error')

	def test_login_rejects_non_string_fields(self):
		response = self.client.post('/api/auth/login/', {'email': {'$ne': ''}, 'password': ['x']}, format='json')

		self.assertEqual(response.status_code, 400)


class SessionTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.user = User.objects.create_user(email='rider@example.com', password='secret123', name='Rider')
		self.token = issue_token(self.user)

	def test_me_with_bearer_header(self):
		self.client.credentials(HTTP_AUTHORIZATION='Bearer %s' % self.token)
		response = self.client.get('/api/auth/me/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['data']['id'], self.user.id)

	def test_me_with_cookie(self):
		self.client.cookies['token'] = self.token
		response = self.client.get('/api/auth/me/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['data']['email'], 'rider@example.com')

	def test_me_without_session(self):
		response = self.client.get('/api/auth/me/')

		self.assertEqual(response.status_code, 401)
		self.assertFalse(response.json()['success'])

	def test_me_with_garbage_token(self):
		self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
		response = self.client.get('/api/auth/me/')

		self.assertEqual(response.status_code, 401)

	def test_expired_token_is_rejected(self):
		token = AccessToken.for_user(self.user)
		token.set_exp(lifetime=-timedelta(seconds=1))
		self.client.credentials(HTTP_AUTHORIZATION='Bearer %s' % token)

		response = self.client.get('/api/auth/me/')

		self.assertEqual(response.status_code, 401)

	def test_logout_clears_cookie(self):
		self.client.cookies['token'] = self.token
		response = self.client.post('/api/auth/logout/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.cookies['token'].value, '')

	def test_verify_token_round_trip(self):
		identity = verify_token(self.token)

		self.assertEqual(identity.id, self.user.id)
		self.assertEqual(identity.role, 'rider')

	def test_verify_token_missing(self):
		with self.assertRaises(AuthenticationError):
			verify_token('')

	@override_settings(DEBUG=False)
	def test_unknown_endpoint_returns_envelope(self):
		response = self.client.get('/api/does-not-exist/')

		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.json()['message'], 'Endpoint not found')


class AdminUserTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.admin = User.objects.create_superuser(email='admin@example.com', password='secret123', name='Admin')
		self.rider = User.objects.create_user(email='rider@example.com', password='secret123', name='Rider')

	def authenticate(self, user):
		self.client.credentials(HTTP_AUTHORIZATION='Bearer %s' % issue_token(user))

	def test_admin_lists_users(self):
		self.authenticate(self.admin)
		response = self.client.get('/api/admin/users/')

		self.assertEqual(response.status_code, 200)
		emails = {user['email'] for user in response.json()['data']}
		self.assertEqual(emails, {'admin@example.com', 'rider@example.com'})

	def test_non_admin_is_forbidden(self):
		self.authenticate(self.rider)
		response = self.client.get('/api/admin/users/')

		self.assertEqual(response.status_code, 403)

	def test_change_role(self):
		self.authenticate(self.admin)
		response = self.client.put('/api/admin/users/%d/role/' % self.rider.id, {'role': 'driver'}, format='json')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['data']['role'], 'driver')
		self.rider.refresh_from_db()
		self.assertEqual(self.rider.role, 'driver')

		listing = self.client.get('/api/admin/users/').json()['data']
		self.assertIn({'id': self.rider.id, 'role': 'driver'}, [{'id': u['id'], 'role': u['role']} for u in listing])

	def test_change_role_invalid_role_checked_before_lookup(self):
		self.authenticate(self.admin)
		response = self.client.put('/api/admin/users/999999/role/', {'role': 'pilot'}, format='json')

		self.assertEqual(response.status_code, 400)

	def test_change_role_rejects_non_string_role(self):
		self.authenticate(self.admin)
		for role in (['driver'], {'name': 'driver'}, 1):
			response = self.client.put('/api/admin/users/%d/role/' % self.rider.id, {'role': role}, format='json')

			self.assertEqual(response.status_code, 400, role)
			self.assertEqual(response.json()['error'], 'validation_error')
		self.rider.refresh_from_db()
		self.assertEqual(self.rider.role, 'rider')

	def test_change_role_rejects_non_object_body(self):
		self.authenticate(self.admin)
		response = self.client.put('/api/admin/users/%d/role/' % self.rider.id, ['driver'], format='json')

		self.assertEqual(response.status_code, 400)

	def test_change_role_service_rejects_unhashable_role(self):
		with self.assertRaises(ValidationError):
			identity.change_role(self.rider.id, ['driver'])

	def test_change_role_unknown_user(self):
		self.authenticate(self.admin)
		response = self.client.put('/api/admin/users/999999/role/', {'role': 'driver'}, format='json')

		self.assertEqual(response.status_code, 404)

	def test_demoted_admin_loses_access_with_old_token(self):
		token = issue_token(self.admin)
		User.objects.filter(pk=self.admin.pk).update(role='rider')
		self.client.credentials(HTTP_AUTHORIZATION='Bearer %s' % token)

		response = self.client.get('/api/admin/users/')

		self.assertEqual(response.status_code, 403)
