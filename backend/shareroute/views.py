import logging

import redis
from django.conf import settings
from django.db import connection
from django.http import JsonResponse
from django.utils import timezone
from rest_framework.decorators import api_view, authentication_classes
from rest_framework.response import Response
from rest_framework import status
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

API_NAME = "ShareRoute API"


@api_view(["GET"])
@authentication_classes([])
def health_check(request):
    """Health check endpoint for monitoring system status"""

    health_status = {
        "status": "healthy",
        "timestamp": timezone.now().isoformat(),
        "services": {}
    }

    # Database check
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        health_status["services"]["database"] = "healthy"
    except Exception as e:
        health_status["services"]["database"] = f"unhealthy: {e}"
        health_status["status"] = "unhealthy"

    # Channel layer check
    try:
        channel_layer = get_channel_layer()
        if channel_layer is not None:
            health_status["services"]["channels"] = "healthy"
        else:
            health_status["services"]["channels"] = "unhealthy: no channel layer"
            health_status["status"] = "unhealthy"
    except Exception as e:
        health_status["services"]["channels"] = f"unhealthy: {e}"
        health_status["status"] = "unhealthy"

    # Redis check, only when a Redis-backed layer is configured
    if settings.REDIS_URL:
        try:
            redis_client = redis.Redis.from_url(settings.REDIS_URL, socket_timeout=3)
            redis_client.ping()
            health_status["services"]["redis"] = "healthy"
        except Exception as e:
            health_status["services"]["redis"] = f"unhealthy: {e}"
            health_status["status"] = "unhealthy"

    if health_status["status"] != "healthy":
        logger.warning("Health check failed: %s", health_status["services"])

    status_code = (
        status.HTTP_200_OK
        if health_status["status"] == "healthy"
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )

    return Response(health_status, status=status_code)


@api_view(["GET"])
@authentication_classes([])
def api_root(request):
    """Welcome message with a map of the API"""
    return Response({
        "success": True,
        "message": f"Welcome to {API_NAME}",
        "data": {
            "endpoints": {
                "auth": "/api/auth/",
                "bookings": "/api/bookings/",
                "admin": "/api/admin/",
                "health": "/api/health/",
                "websocket": "/ws/bookings/",
            },
        },
    })


# ---------------------- Error handlers ----------------------
# Plain Django views: they also catch URLs outside DRF

def endpoint_not_found(request, exception=None):
    return JsonResponse(
        {"success": False, "message": "Endpoint not found", "error": "not_found"},
        status=404,
    )


def server_error(request):
    return JsonResponse(
        {"success": False, "message": "Internal server error", "error": "internal_error"},
        status=500,
    )
