"""
Core booking lifecycle operations.

This module contains the business logic for bookings, kept out of the
views and consumers so both the REST and the WebSocket paths share it.
Status changes are checked against ``transitions.TRANSITIONS`` and applied
with conditional updates, so a concurrent writer can never be silently
overwritten.
"""

import logging
from typing import List, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from bookings.serializers import BookingCreateSerializer, BookingUpdateSerializer
from common.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from realtime.notifications import notify_drivers_event, notify_rider_event
from . import transitions

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


# ===================== Rider Operations =====================

def create_booking(data, rider=None) -> Booking:
    """
    Create a pending booking and tell connected drivers about it.

    Args:
        data: pickup, destination and optional coords / passenger contact
        rider: authenticated requester, or None for an anonymous booking

    Raises:
        ValidationError: pickup/destination missing or fields malformed
    """
    serializer = BookingCreateSerializer(data=data)
    if not serializer.is_valid():
        raise ValidationError.from_serializer_errors(
            serializer.errors,
            required_fields=("pickup", "destination"),
            missing_message="Pickup location and destination are required",
            message="Invalid booking data",
        )

    booking = serializer.save(rider=rider, status=transitions.PENDING)
    logger.info("Booking %s created (rider=%s)", booking.id, booking.rider_id)

    notify_drivers_event("new_ride_request", booking)
    return booking


# ===================== Driver Operations =====================

def accept_booking(booking_id: int, driver) -> Booking:
    """
    Assign ``driver`` to a pending booking and confirm it.

    The pending check and the write are one conditional UPDATE, so of two
    drivers racing for the same booking exactly one succeeds.

    Raises:
        AuthorizationError: actor is not a driver
        NotFoundError: no such booking
        InvalidStateError: booking is no longer pending
    """
    if not getattr(driver, "is_driver", False):
        raise AuthorizationError("Only drivers can accept bookings")

    now = timezone.now()
    with transaction.atomic():
        accepted = Booking.objects.filter(
            pk=booking_id,
            status__in=transitions.sources_for(transitions.CONFIRMED),
        ).update(
            driver_id=driver.id,
            status=transitions.CONFIRMED,
            accepted_at=now,
            updated_at=now,
        )

        if not accepted:
            current = _current_status(booking_id)
            if current is None:
                raise NotFoundError("Booking not found")
            raise InvalidStateError(
                "Booking is not available for acceptance",
                details={"status": current},
            )

    booking = Booking.objects.get(pk=booking_id)
    logger.info("Booking %s accepted by driver %s", booking.id, driver.id)

    if booking.rider_id:
        notify_rider_event(
            "ride_accepted",
            booking,
            "Your ride has been accepted! The driver is on the way.",
        )
    return booking


def find_assigned_booking(driver, booking_id: Optional[int] = None,
                          rider_id: Optional[int] = None) -> Optional[Booking]:
    """Confirmed booking that ``driver`` is assigned to, matching the given ids."""
    if booking_id is None and rider_id is None:
        return None

    qs = Booking.objects.filter(driver_id=driver.id, status=transitions.CONFIRMED)
    if booking_id is not None:
        qs = qs.filter(pk=booking_id)
    if rider_id is not None:
        qs = qs.filter(rider_id=rider_id)
    return qs.order_by('-accepted_at', '-id').first()


# ===================== Generic Operations =====================

def get_booking(booking_id: int) -> Booking:
    try:
        return Booking.objects.get(pk=booking_id)
    except Booking.DoesNotExist:
        raise NotFoundError("Booking not found")


def list_bookings(status: Optional[str] = None, page: int = 1,
                  limit: int = DEFAULT_PAGE_SIZE) -> Tuple[List[Booking], int]:
    """
    One page of bookings, newest first.

    Returns:
        (items, total) where total counts every booking matching the filter
    """
    if status is not None and status not in transitions.STATUSES:
        raise ValidationError(f"Unknown status: {status}")
    if page < 1:
        raise ValidationError("page must be a positive integer")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    qs = Booking.objects.all()
    if status:
        qs = qs.filter(status=status)

    total = qs.count()
    offset = (page - 1) * limit
    return list(qs[offset:offset + limit]), total


@transaction.atomic
def update_booking(booking_id: int, data) -> Booking:
    """
    Apply any of status, fare, distance, estimated_duration.

    A status change must be in the transition table: completed and
    cancelled can be set from any other status, confirmed only by accepting.
    Setting the current status again is a no-op.

    Raises:
        ValidationError: malformed fields
        NotFoundError: no such booking
        InvalidStateError: status change not allowed
    """
    serializer = BookingUpdateSerializer(data=data)
    if not serializer.is_valid():
        raise ValidationError.from_serializer_errors(serializer.errors, message="Invalid booking data")

    changes = dict(serializer.validated_data)
    booking = get_booking(booking_id)

    target = changes.pop("status", None)
    now = timezone.now()
    qs = Booking.objects.filter(pk=booking.pk)

    if target is not None and target != booking.status:
        transitions.check_transition(booking.status, target)
        changes["status"] = target
        changes[transitions.TIMESTAMP_FIELDS[target]] = now
        # Only apply if nobody moved the booking since we read it
        qs = qs.filter(status=booking.status)

    if changes:
        changes["updated_at"] = now
        if not qs.update(**changes):
            current = _current_status(booking.pk)
            if current is None:
                raise NotFoundError("Booking not found")
            raise InvalidStateError(
                f"Booking status changed to {current} concurrently",
                details={"status": current},
            )
        logger.info("Booking %s updated: %s", booking.pk, sorted(changes))

    booking.refresh_from_db()
    return booking


def delete_booking(booking_id: int) -> None:
    deleted, _ = Booking.objects.filter(pk=booking_id).delete()
    if not deleted:
        raise NotFoundError("Booking not found")
    logger.info("Booking %s deleted", booking_id)


# ===================== Helper Functions =====================

def _current_status(booking_id: int) -> Optional[str]:
    return Booking.objects.filter(pk=booking_id).values_list("status", flat=True).first()
