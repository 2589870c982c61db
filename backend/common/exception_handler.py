"""DRF exception handler that renders every error as the JSON envelope."""

import logging

from django.conf import settings
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import InternalError, ServiceError

logger = logging.getLogger(__name__)


def error_envelope(message, code=None, details=None):
    body = {"success": False, "message": message}
    if code:
        body["error"] = code
    if details:
        body["details"] = details
    return body


def envelope_exception_handler(exc, context):
    """
    Convert service errors, DRF errors and unexpected exceptions into
    ``{"success": false, "message": ..., "error": ...}`` responses.
    """
    if isinstance(exc, ServiceError):
        return Response(
            error_envelope(exc.message, exc.code, exc.details),
            status=exc.status_code,
        )

    # DRF handles APIException, Http404 and PermissionDenied
    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, drf_exceptions.ValidationError):
            body = error_envelope("Invalid request data", "validation_error", response.data)
        else:
            detail = getattr(exc, "detail", None)
            code = getattr(exc, "default_code", None)
            if isinstance(detail, dict):
                # simplejwt puts {"detail", "code", "messages"} here
                message = str(detail.get("detail", "Request failed"))
                code = str(detail.get("code", code))
            elif detail is not None:
                message = str(detail)
            else:
                message = "Not found" if response.status_code == 404 else "Request failed"
                code = "not_found" if response.status_code == 404 else code
            body = error_envelope(message, code)
        response.data = body
        return response

    view = context.get("view")
    logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "view")
    message = str(exc) if settings.DEBUG else InternalError.default_message
    return Response(
        error_envelope(message, InternalError.code),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
