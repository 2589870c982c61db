from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from common.exceptions import InvalidStateError, ValidationError
from services import booking_management
from services.booking_management import can_transition, check_transition, sources_for
from services.identity import issue_token
from .models import Booking


class TransitionTableTests(SimpleTestCase):
	def test_allowed_transitions(self):
		self.assertTrue(can_transition('pending', 'confirmed', via_accept=True))
		self.assertTrue(can_transition('pending', 'cancelled'))
		self.assertTrue(can_transition('confirmed', 'completed'))
		self.assertTrue(can_transition('confirmed', 'cancelled'))
		self.assertTrue(can_transition('pending', 'completed'))
		self.assertTrue(can_transition('completed', 'cancelled'))
		self.assertTrue(can_transition('cancelled', 'completed'))

	def test_confirmed_only_through_accept(self):
		self.assertFalse(can_transition('pending', 'confirmed'))
		with self.assertRaises(InvalidStateError):
			check_transition('pending', 'confirmed')

	def test_rejected_transitions(self):
		for current, target in [
			('cancelled', 'pending'),
			('completed', 'pending'),
			('confirmed', 'pending'),
			('completed', 'confirmed'),
			('cancelled', 'confirmed'),
		]:
			with self.assertRaises(InvalidStateError):
				check_transition(current, target)

	def test_accept_only_leaves_pending(self):
		self.assertEqual(sources_for('confirmed'), {'pending'})

	def test_unknown_status(self):
		with self.assertRaises(ValidationError):
			check_transition('pending', 'teleported')


@patch('services.booking_management.booking_lifecycle.notify_drivers_event')
class BookingCreateTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.rider = User.objects.create_user(email='rider@example.com', password='secret123', name='Rider')

	def test_anonymous_create(self, mock_notify):
		response = self.client.post('/api/bookings/', {
			'pickup': '12 Main St',
			'destination': 'Airport',
			'pickup_coords': [40.71, -74.0],
		}, format='json')

		self.assertEqual(response.status_code, 201)
		data = response.json()['data']
		self.assertEqual(data['status'], 'pending')
		self.assertIsNone(data['rider'])
		self.assertIsNone(data['driver'])
		self.assertEqual(data['pickup_coords'], [40.71, -74.0])
		self.assertIsNone(data['destination_coords'])
		mock_notify.assert_called_once()
		self.assertEqual(mock_notify.call_args[0][0], 'new_ride_request')

	def test_create_with_session_sets_rider(self, mock_notify):
		self.client.credentials(HTTP_AUTHORIZATION='Bearer %s' % issue_token(self.rider))
		response = self.client.post('/api/bookings/', {'pickup': 'A', 'destination': 'B'}, format='json')

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.json()['data']['rider'], self.rider.id)

	def test_stale_cookie_is_ignored(self, mock_notify):
		self.client.cookies['token'] = 'expired-or-garbage'
		response = self.client.post('/api/bookings/', {'pickup': 'A', 'destination': 'B'}, format='json')

		self.assertEqual(response.status_code, 201)
		self.assertIsNone(response.json()['data']['rider'])

	def test_cookie_without_csrf_token_creates_anonymously(self, mock_notify):
		client = APIClient(enforce_csrf_checks=True)
		client.cookies['token'] = issue_token(self.rider)
		response = client.post('/api/bookings/', {'pickup': 'A', 'destination': 'B'}, format='json')

		self.assertEqual(response.status_code, 201)
		self.assertIsNone(response.json()['data']['rider'])

	def test_missing_destination(self, mock_notify):
		response = self.client.post('/api/bookings/', {'pickup': 'A'}, format='json')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.json()['message'], 'Pickup location and destination are required')
		self.assertFalse(Booking.objects.exists())
		mock_notify.assert_not_called()

	def test_blank_pickup(self, mock_notify):
		response = self.client.post('/api/bookings/', {'pickup': '  ', 'destination': 'B'}, format='json')

		self.assertEqual(response.status_code, 400)
		self.assertFalse(Booking.objects.exists())

	def test_bad_coordinates(self, mock_notify):
		for coords in ([1.0], [1.0, 2.0, 3.0], ['a', 'b'], [95.0, 10.0], [10.0, 200.0], 'north'):
			response = self.client.post('/api/bookings/', {
				'pickup': 'A', 'destination': 'B', 'destination_coords': coords,
			}, format='json')
			self.assertEqual(response.status_code, 400, coords)

		self.assertFalse(Booking.objects.exists())

	def test_notification_failure_does_not_fail_create(self, mock_notify):
		mock_notify.return_value = False
		response = self.client.post('/api/bookings/', {'pickup': 'A', 'destination': 'B'}, format='json')

		self.assertEqual(response.status_code, 201)


class BookingListTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		for i in range(5):
			Booking.objects.create(pickup='P%d' % i, destination='D%d' % i)
		Booking.objects.create(pickup='X', destination='Y', status='cancelled')

	def test_pagination(self):
		response = self.client.get('/api/bookings/', {'page': 2, 'limit': 2})

		self.assertEqual(response.status_code, 200)
		body = response.json()
		self.assertEqual(len(body['data']), 2)
		self.assertEqual(body['pagination'], {'total': 6, 'page': 2, 'pages': 3, 'limit': 2})

	def test_twenty_five_bookings_third_page(self):
		Booking.objects.all().delete()
		for i in range(25):
			Booking.objects.create(pickup='P%d' % i, destination='D')

		response = self.client.get('/api/bookings/', {'page': 3, 'limit': 10})

		body = response.json()
		self.assertEqual(len(body['data']), 5)
		self.assertEqual(body['pagination']['total'], 25)
		self.assertEqual(body['pagination']['pages'], 3)

	def test_newest_first(self):
		response = self.client.get('/api/bookings/')

		ids = [item['id'] for item in response.json()['data']]
		self.assertEqual(ids, sorted(ids, reverse=True))

	def test_status_filter(self):
		response = self.client.get('/api/bookings/', {'status': 'cancelled'})

		body = response.json()
		self.assertEqual(body['pagination']['total'], 1)
		self.assertEqual(body['data'][0]['status'], 'cancelled')

	def test_page_past_end_is_empty(self):
		response = self.client.get('/api/bookings/', {'page': 10, 'limit': 10})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['data'], [])

	def test_invalid_params(self):
		for params in ({'status': 'flying'}, {'page': 0}, {'page': 'abc'}, {'limit': 0}, {'limit': 101}):
			response = self.client.get('/api/bookings/', params)
			self.assertEqual(response.status_code, 400, params)


@patch('services.booking_management.booking_lifecycle.notify_rider_event')
class BookingAcceptTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.rider = User.objects.create_user(email='rider@example.com', password='secret123', name='Rider')
		self.driver = User.objects.create_user(email='driver@example.com', password='secret123', name='Driver', role='driver')
		self.other_driver = User.objects.create_user(email='driver2@example.com', password='secret123', name='Driver 2', role='driver')
		self.booking = Booking.objects.create(pickup='A', destination='B', rider=self.rider)

	def accept(self, user, booking_id=None):
		self.client.credentials(HTTP_AUTHORIZATION='Bearer %s' % issue_token(user))
		return self.client.post('/api/bookings/%d/accept/' % (booking_id or self.booking.id))

	def test_driver_accepts_pending_booking(self, mock_notify):
		response = self.accept(self.driver)

		self.assertEqual(response.status_code, 200)
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'confirmed')
		self.assertEqual(self.booking.driver, self.driver)
		self.assertIsNotNone(self.booking.accepted_at)
		mock_notify.assert_called_once()
		self.assertEqual(mock_notify.call_args[0][0], 'ride_accepted')

	def test_cookie_session_requires_csrf_token(self, mock_notify):
		client = APIClient(enforce_csrf_checks=True)
		client.cookies['token'] = issue_token(self.driver)

		response = client.post('/api/bookings/%d/accept/' % self.booking.id)

		self.assertEqual(response.status_code, 403)
		self.assertIn('CSRF', response.json()['message'])
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'pending')

	def test_cookie_session_with_csrf_token(self, mock_notify):
		client = APIClient(enforce_csrf_checks=True)
		client.cookies['token'] = issue_token(self.driver)
		client.cookies['csrftoken'] = 'a' * 32

		response = client.post('/api/bookings/%d/accept/' % self.booking.id, HTTP_X_CSRFTOKEN='a' * 32)

		self.assertEqual(response.status_code, 200)

	def test_bearer_header_skips_csrf(self, mock_notify):
		client = APIClient(enforce_csrf_checks=True)
		client.credentials(HTTP_AUTHORIZATION='Bearer %s' % issue_token(self.driver))

		response = client.post('/api/bookings/%d/accept/' % self.booking.id)

		self.assertEqual(response.status_code, 200)

	def test_second_accept_fails(self, mock_notify):
		self.accept(self.driver)
		response = self.accept(self.other_driver)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.json()['error'], 'invalid_state')
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.driver, self.driver)

	def test_rider_cannot_accept(self, mock_notify):
		response = self.accept(self.rider)

		self.assertEqual(response.status_code, 403)
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'pending')

	def test_role_checked_before_existence(self, mock_notify):
		response = self.accept(self.rider, booking_id=999999)

		self.assertEqual(response.status_code, 403)

	def test_unknown_booking(self, mock_notify):
		response = self.accept(self.driver, booking_id=999999)

		self.assertEqual(response.status_code, 404)

	def test_requires_session(self, mock_notify):
		response = self.client.post('/api/bookings/%d/accept/' % self.booking.id)

		self.assertEqual(response.status_code, 401)

	def test_anonymous_booking_accepted_without_notification(self, mock_notify):
		booking = Booking.objects.create(pickup='A', destination='B')
		response = self.accept(self.driver, booking_id=booking.id)

		self.assertEqual(response.status_code, 200)
		mock_notify.assert_not_called()

	def test_stale_read_cannot_double_accept(self, mock_notify):
		# Simulates two drivers that both saw the booking as pending
		booking_management.accept_booking(self.booking.id, self.driver)
		with self.assertRaises(InvalidStateError):
			booking_management.accept_booking(self.booking.id, self.other_driver)

		self.assertEqual(Booking.objects.filter(driver=self.driver).count(), 1)
		self.assertEqual(Booking.objects.filter(driver=self.other_driver).count(), 0)


class BookingUpdateDeleteTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.booking = Booking.objects.create(pickup='A', destination='B')

	def url(self, booking_id=None):
		return '/api/bookings/%d/' % (booking_id or self.booking.id)

	def test_get_booking(self):
		response = self.client.get(self.url())

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['data']['id'], self.booking.id)

	def test_get_unknown_booking(self):
		response = self.client.get(self.url(999999))

		self.assertEqual(response.status_code, 404)
		self.assertFalse(response.json()['success'])

	def test_update_fare_and_distance(self):
		response = self.client.put(self.url(), {'fare': 25.5, 'distance': 12}, format='json')

		self.assertEqual(response.status_code, 200)
		data = response.json()['data']
		self.assertEqual(data['fare'], 25.5)
		self.assertEqual(data['distance'], 12.0)
		self.assertEqual(data['status'], 'pending')

	def test_negative_fare_rejected(self):
		response = self.client.patch(self.url(), {'fare': -1}, format='json')

		self.assertEqual(response.status_code, 400)

	def test_cancel_pending(self):
		response = self.client.put(self.url(), {'status': 'cancelled'}, format='json')

		self.assertEqual(response.status_code, 200)
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'cancelled')
		self.assertIsNotNone(self.booking.cancelled_at)

	def test_complete_pending_booking_directly(self):
		response = self.client.put(self.url(), {'status': 'completed'}, format='json')

		self.assertEqual(response.status_code, 200)
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'completed')
		self.assertIsNotNone(self.booking.completed_at)

	def test_update_cannot_confirm(self):
		response = self.client.put(self.url(), {'status': 'confirmed'}, format='json')

		self.assertEqual(response.status_code, 400)
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'pending')

	def test_complete_confirmed_booking(self):
		Booking.objects.filter(pk=self.booking.pk).update(status='confirmed')
		response = self.client.patch(self.url(), {'status': 'completed', 'fare': 30}, format='json')

		self.assertEqual(response.status_code, 200)
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'completed')
		self.assertEqual(self.booking.fare, 30)
		self.assertIsNotNone(self.booking.completed_at)

	def test_cancel_completed_booking(self):
		Booking.objects.filter(pk=self.booking.pk).update(status='completed')
		response = self.client.put(self.url(), {'status': 'cancelled'}, format='json')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['data']['status'], 'cancelled')

	def test_finished_booking_cannot_be_confirmed(self):
		Booking.objects.filter(pk=self.booking.pk).update(status='cancelled')
		response = self.client.put(self.url(), {'status': 'confirmed'}, format='json')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.json()['error'], 'invalid_state')

	def test_same_status_is_noop(self):
		response = self.client.put(self.url(), {'status': 'pending'}, format='json')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['data']['status'], 'pending')

	def test_update_unknown_booking(self):
		response = self.client.put(self.url(999999), {'fare': 10}, format='json')

		self.assertEqual(response.status_code, 404)

	def test_delete(self):
		response = self.client.delete(self.url())

		self.assertEqual(response.status_code, 200)
		self.assertFalse(Booking.objects.filter(pk=self.booking.pk).exists())

		response = self.client.delete(self.url())
		self.assertEqual(response.status_code, 404)


class CleanupCommandTests(TestCase):
	def setUp(self):
		old = timezone.now() - timedelta(days=40)
		self.old_done = Booking.objects.create(pickup='A', destination='B', status='completed')
		self.old_pending = Booking.objects.create(pickup='A', destination='B')
		self.recent_done = Booking.objects.create(pickup='A', destination='B', status='cancelled')
		Booking.objects.filter(pk__in=[self.old_done.pk, self.old_pending.pk]).update(created_at=old)

	def test_dry_run_deletes_nothing(self):
		out = StringIO()
		call_command('cleanup_old_bookings', '--dry-run', stdout=out)

		self.assertIn('Would delete 1', out.getvalue())
		self.assertEqual(Booking.objects.count(), 3)

	def test_deletes_only_old_finished_bookings(self):
		call_command('cleanup_old_bookings', days=30, stdout=StringIO())

		remaining = set(Booking.objects.values_list('pk', flat=True))
		self.assertEqual(remaining, {self.old_pending.pk, self.recent_done.pk})
