from asgiref.sync import async_to_sync, sync_to_async
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.test import TransactionTestCase
from rest_framework.test import APIClient

from accounts.models import User
from bookings.models import Booking
from services.identity import issue_token
from .groups import DRIVERS_GROUP, groups_for, user_group
from .middleware import SessionTokenAuthMiddleware
from .routing import websocket_urlpatterns

application = SessionTokenAuthMiddleware(URLRouter(websocket_urlpatterns))

WS_PATH = "/ws/bookings/"


def bearer(token):
	return [(b"authorization", ("Bearer %s" % token).encode())]


class GroupNamingTests(TransactionTestCase):
	def test_driver_joins_drivers_group(self):
		driver = User.objects.create_user(email='d@example.com', password='secret123', name='D', role='driver')
		rider = User.objects.create_user(email='r@example.com', password='secret123', name='R')

		self.assertEqual(groups_for(driver), [user_group(driver.id), DRIVERS_GROUP])
		self.assertEqual(groups_for(rider), [user_group(rider.id)])


class BookingSocketTests(TransactionTestCase):
	def setUp(self):
		self.rider = User.objects.create_user(email='rider@example.com', password='secret123', name='Rider')
		self.driver = User.objects.create_user(email='driver@example.com', password='secret123', name='Driver', role='driver')
		self.other_driver = User.objects.create_user(email='driver2@example.com', password='secret123', name='Driver 2', role='driver')

	def tearDown(self):
		async_to_sync(get_channel_layer().flush)()

	async def connect(self, user=None, headers=None, path=WS_PATH):
		if headers is None:
			headers = bearer(issue_token(user))
		communicator = WebsocketCommunicator(application, path, headers=headers)
		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		welcome = await communicator.receive_json_from()
		self.assertEqual(welcome["type"], "connection_established")
		return communicator

	async def test_handshake_without_token_is_refused(self):
		communicator = WebsocketCommunicator(application, WS_PATH)
		connected, _ = await communicator.connect()

		self.assertFalse(connected)

	async def test_handshake_with_bad_token_is_refused(self):
		communicator = WebsocketCommunicator(application, WS_PATH, headers=bearer("garbage"))
		connected, _ = await communicator.connect()

		self.assertFalse(connected)

	async def test_handshake_with_cookie(self):
		token = issue_token(self.rider)
		communicator = await self.connect(headers=[(b"cookie", ("token=%s" % token).encode())])

		await communicator.disconnect()

	async def test_handshake_with_query_token(self):
		communicator = await self.connect(headers=[], path="%s?token=%s" % (WS_PATH, issue_token(self.rider)))

		await communicator.disconnect()

	async def test_handshake_for_inactive_user_is_refused(self):
		token = issue_token(self.rider)
		await database_sync_to_async(User.objects.filter(pk=self.rider.pk).update)(is_active=False)

		communicator = WebsocketCommunicator(application, WS_PATH, headers=bearer(token))
		connected, _ = await communicator.connect()

		self.assertFalse(connected)

	async def test_booking_flow_over_rest_reaches_sockets(self):
		driver_ws = await self.connect(self.driver)
		rider_ws = await self.connect(self.rider)

		client = APIClient()
		client.credentials(HTTP_AUTHORIZATION="Bearer %s" % issue_token(self.rider))
		response = await sync_to_async(client.post)(
			"/api/bookings/", {"pickup": "A", "destination": "B"}, format="json",
		)
		self.assertEqual(response.status_code, 201)
		booking_id = response.json()["data"]["id"]

		announced = await driver_ws.receive_json_from()
		self.assertEqual(announced["type"], "new_ride_request")
		self.assertEqual(announced["booking"]["id"], booking_id)
		self.assertTrue(await rider_ws.receive_nothing())

		client.credentials(HTTP_AUTHORIZATION="Bearer %s" % issue_token(self.driver))
		response = await sync_to_async(client.post)("/api/bookings/%d/accept/" % booking_id)
		self.assertEqual(response.status_code, 200)

		accepted = await rider_ws.receive_json_from()
		self.assertEqual(accepted["type"], "ride_accepted")
		self.assertEqual(accepted["booking_id"], booking_id)
		self.assertEqual(accepted["driver_id"], self.driver.id)
		self.assertEqual(accepted["booking"]["status"], "confirmed")

		await driver_ws.disconnect()
		await rider_ws.disconnect()

	async def test_booking_flow_over_socket(self):
		driver_ws = await self.connect(self.driver)
		rider_ws = await self.connect(self.rider)

		await rider_ws.send_json_to({"type": "ride_request", "pickup": "A", "destination": "B"})
		created = await rider_ws.receive_json_from()
		self.assertEqual(created["type"], "ride_request_created")
		booking_id = created["booking_id"]

		announced = await driver_ws.receive_json_from()
		self.assertEqual(announced["type"], "new_ride_request")

		await driver_ws.send_json_to({"type": "ride_accepted", "booking_id": booking_id})
		ack = await driver_ws.receive_json_from()
		self.assertEqual(ack["type"], "booking_accepted")
		self.assertEqual(ack["status"], "confirmed")

		accepted = await rider_ws.receive_json_from()
		self.assertEqual(accepted["type"], "ride_accepted")

		booking = await database_sync_to_async(Booking.objects.get)(pk=booking_id)
		self.assertEqual(booking.rider_id, self.rider.id)
		self.assertEqual(booking.driver_id, self.driver.id)

		await driver_ws.disconnect()
		await rider_ws.disconnect()

	async def test_invalid_ride_request_keeps_connection_open(self):
		rider_ws = await self.connect(self.rider)

		await rider_ws.send_json_to({"type": "ride_request", "pickup": "A"})
		error = await rider_ws.receive_json_from()
		self.assertEqual(error["type"], "error")
		self.assertEqual(error["code"], "validation_error")

		await rider_ws.send_json_to({"type": "ride_request", "pickup": "A", "destination": "B"})
		created = await rider_ws.receive_json_from()
		self.assertEqual(created["type"], "ride_request_created")

		await rider_ws.disconnect()

	async def test_rider_cannot_accept_over_socket(self):
		booking = await database_sync_to_async(Booking.objects.create)(pickup="A", destination="B")
		rider_ws = await self.connect(self.rider)

		await rider_ws.send_json_to({"type": "ride_accepted", "booking_id": booking.id})
		error = await rider_ws.receive_json_from()
		self.assertEqual(error["type"], "error")
		self.assertEqual(error["code"], "forbidden")

		await rider_ws.disconnect()

	async def test_unknown_message_type(self):
		rider_ws = await self.connect(self.rider)

		await rider_ws.send_json_to({"type": "teleport"})
		error = await rider_ws.receive_json_from()
		self.assertEqual(error["type"], "error")

		await rider_ws.disconnect()

	async def test_assigned_driver_location_is_relayed(self):
		booking = await database_sync_to_async(Booking.objects.create)(
			pickup="A", destination="B", rider=self.rider, driver=self.driver, status="confirmed",
		)
		driver_ws = await self.connect(self.driver)
		rider_ws = await self.connect(self.rider)

		await driver_ws.send_json_to({
			"type": "driver_location", "booking_id": booking.id, "lat": 40.7, "lng": -74.0, "eta": 5,
		})
		ack = await driver_ws.receive_json_from()
		self.assertEqual(ack["type"], "location_relayed")

		location = await rider_ws.receive_json_from()
		self.assertEqual(location["type"], "driver_location")
		self.assertEqual(location["driver_id"], self.driver.id)
		self.assertEqual(location["lat"], 40.7)
		self.assertEqual(location["lng"], -74.0)
		self.assertEqual(location["eta"], 5)

		await driver_ws.disconnect()
		await rider_ws.disconnect()

	async def test_location_from_other_driver_is_rejected(self):
		await database_sync_to_async(Booking.objects.create)(
			pickup="A", destination="B", rider=self.rider, driver=self.driver, status="confirmed",
		)
		intruder_ws = await self.connect(self.other_driver)
		rider_ws = await self.connect(self.rider)

		await intruder_ws.send_json_to({
			"type": "driver_location", "rider_id": self.rider.id, "lat": 1.0, "lng": 2.0,
		})
		error = await intruder_ws.receive_json_from()
		self.assertEqual(error["type"], "error")
		self.assertEqual(error["code"], "forbidden")
		self.assertTrue(await rider_ws.receive_nothing())

		await intruder_ws.disconnect()
		await rider_ws.disconnect()

