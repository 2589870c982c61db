"""JWT authentication from the Authorization header or the session cookie."""

import logging

from django.conf import settings
from rest_framework import exceptions
from rest_framework.authentication import CSRFCheck
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken

logger = logging.getLogger(__name__)


class CookieJWTAuthentication(JWTAuthentication):
    """
    Authenticate with a simplejwt access token taken from either:
    1. ``Authorization: Bearer <token>`` (API clients, mobile)
    2. the http-only session cookie (browser)

    The header wins when both are present. A cookie session is ambient
    credentials, so unsafe requests made with it must pass the CSRF check.
    """

    def authenticate(self, request):
        header = self.get_header(request)
        from_cookie = header is None
        if from_cookie:
            raw_token = request.COOKIES.get(settings.JWT_COOKIE_NAME)
        else:
            raw_token = self.get_raw_token(header)

        if not raw_token:
            return None

        validated_token = self.get_validated_token(raw_token)
        user = self.get_user(validated_token)
        if from_cookie:
            self.enforce_csrf(request)
        return user, validated_token

    def enforce_csrf(self, request):
        def dummy_get_response(request):  # pragma: no cover
            return None

        check = CSRFCheck(dummy_get_response)
        # populates request.META['CSRF_COOKIE'], which is used in process_view()
        check.process_request(request)
        reason = check.process_view(request, None, (), {})
        if reason:
            raise exceptions.PermissionDenied('CSRF Failed: %s' % reason)


class OptionalCookieJWTAuthentication(CookieJWTAuthentication):
    """Like CookieJWTAuthentication, but a bad, stale or unprotected session means anonymous."""

    def authenticate(self, request):
        try:
            return super().authenticate(request)
        except (InvalidToken, AuthenticationFailed, exceptions.PermissionDenied) as exc:
            logger.debug("Ignoring session on optional-auth endpoint: %s", exc)
            return None


# ---------------------- Cookie helpers ----------------------

def set_session_cookie(response, token: str):
    response.set_cookie(
        settings.JWT_COOKIE_NAME,
        token,
        max_age=settings.JWT_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.JWT_COOKIE_SECURE,
        samesite=settings.JWT_COOKIE_SAMESITE,
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(settings.JWT_COOKIE_NAME, samesite=settings.JWT_COOKIE_SAMESITE)
    return response
