from rest_framework import serializers

from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Serializer for Bookings (responses and real-time payloads)"""
    rider = serializers.PrimaryKeyRelatedField(read_only=True)
    driver = serializers.PrimaryKeyRelatedField(read_only=True)
    pickup_coords = serializers.ListField(child=serializers.FloatField(), read_only=True)
    destination_coords = serializers.ListField(child=serializers.FloatField(), read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'pickup', 'destination', 'pickup_coords', 'destination_coords',
                  'passenger_name', 'passenger_email', 'passenger_phone',
                  'rider', 'driver', 'status', 'fare', 'distance', 'estimated_duration',
                  'created_at', 'updated_at', 'accepted_at', 'completed_at', 'cancelled_at']
        read_only_fields = fields


class CoordinatePairField(serializers.ListField):
    """A [lat, lng] pair: exactly two numbers within Earth coordinate ranges."""

    def __init__(self, **kwargs):
        kwargs.setdefault('child', serializers.FloatField())
        kwargs.setdefault('min_length', 2)
        kwargs.setdefault('max_length', 2)
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if not isinstance(data, (list, tuple)):
            self.fail('not_a_list', input_type=type(data).__name__)
        if len(data) != 2:
            raise serializers.ValidationError("Coordinates must be a [lat, lng] pair.")
        if any(isinstance(value, bool) for value in data):
            raise serializers.ValidationError("Coordinates must be numbers.")
        lat, lng = super().to_internal_value(data)
        if not -90 <= lat <= 90:
            raise serializers.ValidationError("Latitude must be between -90 and 90 degrees.")
        if not -180 <= lng <= 180:
            raise serializers.ValidationError("Longitude must be between -180 and 180 degrees.")
        return [lat, lng]


class BookingCreateSerializer(serializers.ModelSerializer):
    """Serializer for creating bookings"""
    pickup_coords = CoordinatePairField()
    destination_coords = CoordinatePairField()
    passenger_email = serializers.EmailField(required=False, allow_blank=True)

    class Meta:
        model = Booking
        fields = ['pickup', 'destination', 'pickup_coords', 'destination_coords',
                  'passenger_name', 'passenger_email', 'passenger_phone']

    def validate_passenger_email(self, value):
        return value.strip().lower()

    def create(self, validated_data):
        pickup_coords = validated_data.pop('pickup_coords', None)
        destination_coords = validated_data.pop('destination_coords', None)
        if pickup_coords:
            validated_data['pickup_latitude'], validated_data['pickup_longitude'] = pickup_coords
        if destination_coords:
            validated_data['destination_latitude'], validated_data['destination_longitude'] = destination_coords
        return super().create(validated_data)


class BookingUpdateSerializer(serializers.Serializer):
    """Fields that may be changed after creation; all optional."""
    status = serializers.ChoiceField(choices=Booking.STATUS_CHOICES, required=False)
    fare = serializers.FloatField(min_value=0, required=False, allow_null=True)
    distance = serializers.FloatField(min_value=0, required=False, allow_null=True)
    estimated_duration = serializers.FloatField(min_value=0, required=False, allow_null=True)
