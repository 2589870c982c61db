"""End-to-end smoke check for booking events over WebSockets.

Prerequisites:
1. `python manage.py runserver` (daphne) must be running.
2. Install dependencies once: `pip install -e ".[dev]"` (requests, websocket-client).

The script will:
- Ensure a demo rider and driver exist (auto-register if missing).
- Open the driver and rider WebSocket connections (using the session cookie).
- Create a booking as the rider via REST and wait for new_ride_request.
- Accept it as the driver via REST and wait for ride_accepted on the rider socket.
"""

from __future__ import annotations

import json
import os
import queue
import threading
from typing import Dict

import requests
import websocket  # type: ignore

BASE_URL = os.environ.get("SHAREROUTE_BASE_URL", "http://127.0.0.1:8000")
API_ROOT = f"{BASE_URL}/api"
BOOKINGS_API = f"{API_ROOT}/bookings"
AUTH_API = f"{API_ROOT}/auth"
COOKIE_NAME = os.environ.get("JWT_COOKIE_NAME", "token")

RIDER_CREDS = {
    "name": "WS Demo Rider",
    "email": "ws_demo_rider@example.com",
    "password": "demo1234",
}

DRIVER_CREDS = {
    "name": "WS Demo Driver",
    "email": "ws_demo_driver@example.com",
    "password": "demo1234",
}


def _login_or_register(session: requests.Session, payload: Dict, role: str) -> Dict:
    login_resp = session.post(
        f"{AUTH_API}/login/",
        json={"email": payload["email"], "password": payload["password"]},
        timeout=10,
    )

    if login_resp.status_code != 200:
        reg_resp = session.post(f"{AUTH_API}/register/", json={**payload, "role": role}, timeout=10)
        reg_resp.raise_for_status()
        login_resp = reg_resp

    login_resp.raise_for_status()
    data = login_resp.json()["data"]
    session.headers.update({"Authorization": f"Bearer {data['token']}"})
    return data["user"]


def _open_socket(name: str, session: requests.Session, wanted: str,
                 ready_evt: threading.Event, queue_out: queue.Queue) -> None:
    token = session.cookies.get(COOKIE_NAME)
    if not token:
        raise RuntimeError(f"{name} session missing {COOKIE_NAME} cookie; login should set it.")

    ws_url = BASE_URL.replace("http", "ws") + "/ws/bookings/"

    def on_open(ws):  # type: ignore[no-untyped-def]
        print(f"[WS] {name} connected")
        ready_evt.set()

    def on_message(ws, message):  # type: ignore[no-untyped-def]
        payload = json.loads(message)
        print(f"[WS] {name} received: {payload}")
        if payload.get("type") == wanted:
            queue_out.put(payload)
            ws.close()

    def on_error(ws, error):  # type: ignore[no-untyped-def]
        print(f"[WS] {name} error: {error}")
        ready_evt.set()

    def on_close(_ws, *_):  # type: ignore[no-untyped-def]
        print(f"[WS] {name} connection closed")

    ws_app = websocket.WebSocketApp(
        ws_url,
        header=[f"Cookie: {COOKIE_NAME}={token}", f"Origin: {BASE_URL}"],
        on_open=on_open,
        on_message=on_message,
        on_error=on_error,
        on_close=on_close,
    )

    ws_app.run_forever()


def _start_socket(name: str, session: requests.Session, wanted: str) -> queue.Queue:
    ready_evt = threading.Event()
    message_queue: queue.Queue = queue.Queue()
    thread = threading.Thread(
        target=_open_socket,
        args=(name, session, wanted, ready_evt, message_queue),
        daemon=True,
    )
    thread.start()

    if not ready_evt.wait(timeout=5):
        raise TimeoutError(f"{name} WebSocket failed to connect within 5 seconds")
    return message_queue


def main() -> None:
    rider_session = requests.Session()
    driver_session = requests.Session()

    print("[HTTP] Logging in / registering demo accounts ...")
    rider = _login_or_register(rider_session, RIDER_CREDS, role="rider")
    driver = _login_or_register(driver_session, DRIVER_CREDS, role="driver")
    print(f"[HTTP] Rider #{rider['id']} + Driver #{driver['id']} ready")

    driver_queue = _start_socket("driver", driver_session, "new_ride_request")
    rider_queue = _start_socket("rider", rider_session, "ride_accepted")

    resp = rider_session.post(
        f"{BOOKINGS_API}/",
        json={"pickup": "Connaught Place", "destination": "India Gate", "pickup_coords": [28.6139, 77.2090]},
        timeout=10,
    )
    resp.raise_for_status()
    booking = resp.json()["data"]
    print(f"[HTTP] Booking #{booking['id']} created")

    try:
        payload = driver_queue.get(timeout=30)
        print("[RESULT] Driver received booking", payload["booking"]["id"])
    except queue.Empty:
        raise TimeoutError("Driver WebSocket did not receive new_ride_request within 30 seconds")

    resp = driver_session.post(f"{BOOKINGS_API}/{booking['id']}/accept/", timeout=10)
    resp.raise_for_status()

    try:
        payload = rider_queue.get(timeout=30)
        print("[RESULT] Rider notified, driver", payload["driver_id"])
    except queue.Empty:
        raise TimeoutError("Rider WebSocket did not receive ride_accepted within 30 seconds")

    print("[DONE] End-to-end booking check completed.")


if __name__ == "__main__":
    main()
