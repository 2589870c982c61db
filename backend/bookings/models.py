from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator


class Booking(models.Model):
    """A single ride request and its lifecycle state."""

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    # Weak references: deleting a user leaves the booking in place
    rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='rider_bookings'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driver_bookings'
    )

    # Free-text locations
    pickup = models.CharField(max_length=255)
    destination = models.CharField(max_length=255)

    # Optional coordinates, exposed as [lat, lng] pairs
    pickup_latitude = models.FloatField(null=True, blank=True)
    pickup_longitude = models.FloatField(null=True, blank=True)
    destination_latitude = models.FloatField(null=True, blank=True)
    destination_longitude = models.FloatField(null=True, blank=True)

    # Passenger contact
    passenger_name = models.CharField(max_length=150, blank=True, default='')
    passenger_email = models.EmailField(blank=True, default='')
    passenger_phone = models.CharField(max_length=20, blank=True, default='')

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    fare = models.FloatField(null=True, blank=True, validators=[MinValueValidator(0)])
    distance = models.FloatField(null=True, blank=True, validators=[MinValueValidator(0)])
    estimated_duration = models.FloatField(null=True, blank=True, validators=[MinValueValidator(0)])

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Booking #{self.id} - {self.pickup} -> {self.destination} - {self.status}"

    @property
    def pickup_coords(self):
        if self.pickup_latitude is None or self.pickup_longitude is None:
            return None
        return [self.pickup_latitude, self.pickup_longitude]

    @property
    def destination_coords(self):
        if self.destination_latitude is None or self.destination_longitude is None:
            return None
        return [self.destination_latitude, self.destination_longitude]
