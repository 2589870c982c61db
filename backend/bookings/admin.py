"""Tells what to show in the Django admin interface for bookings app"""

from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Booking admin"""
    list_display = ['id', 'pickup', 'destination', 'rider', 'driver', 'status', 'fare', 'created_at', 'accepted_at']
    list_filter = ['status', 'created_at']
    search_fields = ['pickup', 'destination', 'passenger_name', 'passenger_email', 'rider__email', 'driver__email']
    readonly_fields = ['created_at', 'updated_at', 'accepted_at', 'completed_at', 'cancelled_at']
    date_hierarchy = 'created_at'
