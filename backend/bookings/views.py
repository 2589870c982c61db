import math

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authentication import OptionalCookieJWTAuthentication
from common.exceptions import ValidationError
from services import booking_management
from .serializers import BookingSerializer


def _int_param(request, name, default):
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


# ==================== Booking APIs ====================

class BookingListCreateView(APIView):
    """
    GET: list bookings, newest first (?status=&page=&limit=)
    POST: create a booking; the rider is set when a valid session is present,
    any other session is ignored

    POST Body:
    {
        "pickup": "12 Main St",
        "destination": "Airport T1",
        "pickup_coords": [40.71, -74.0],        // optional [lat, lng]
        "destination_coords": [40.64, -73.78],  // optional [lat, lng]
        "passenger_name": "Jane",               // optional
        "passenger_email": "jane@example.com",  // optional
        "passenger_phone": "+1234567890"        // optional
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = [OptionalCookieJWTAuthentication]

    def get(self, request):
        page = _int_param(request, 'page', 1)
        limit = _int_param(request, 'limit', 10)
        items, total = booking_management.list_bookings(
            status=request.query_params.get('status') or None,
            page=page,
            limit=limit,
        )
        return Response({
            'success': True,
            'data': BookingSerializer(items, many=True).data,
            'pagination': {
                'total': total,
                'page': page,
                'pages': math.ceil(total / limit),
                'limit': limit,
            },
        })

    def post(self, request):
        rider = request.user if request.user.is_authenticated else None
        booking = booking_management.create_booking(request.data, rider=rider)
        return Response({
            'success': True,
            'message': 'Booking created successfully',
            'data': BookingSerializer(booking).data,
        }, status=status.HTTP_201_CREATED)


class BookingDetailView(APIView):
    """
    GET: fetch one booking
    PUT/PATCH: change status and/or fare, distance, estimated_duration
    DELETE: remove the booking

    PUT Body:
    {
        "status": "completed",     // cancelled | completed
        "fare": 25.5,
        "distance": 12.3,
        "estimated_duration": 30
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def get(self, request, booking_id: int):
        booking = booking_management.get_booking(booking_id)
        return Response({'success': True, 'data': BookingSerializer(booking).data})

    def put(self, request, booking_id: int):
        booking = booking_management.update_booking(booking_id, request.data)
        return Response({
            'success': True,
            'message': 'Booking updated successfully',
            'data': BookingSerializer(booking).data,
        })

    patch = put

    def delete(self, request, booking_id: int):
        booking_management.delete_booking(booking_id)
        return Response({'success': True, 'message': 'Booking deleted successfully'})


# ==================== Driver APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_booking(request, booking_id):
    """Driver accepts a pending booking"""
    booking = booking_management.accept_booking(booking_id, request.user)
    return Response({
        'success': True,
        'message': 'Booking accepted',
        'data': BookingSerializer(booking).data,
    })
