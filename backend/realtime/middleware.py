"""WebSocket authentication middleware for session tokens."""

import logging
from http.cookies import SimpleCookie
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser

from common.exceptions import AuthenticationError
from services.identity import verify_token

User = get_user_model()
logger = logging.getLogger(__name__)


@database_sync_to_async
def _get_active_user(user_id):
    return User.objects.filter(id=user_id, is_active=True).first()


def _header(scope, name: bytes):
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


def get_scope_token(scope):
    """
    Find the session token of a handshake, checked in order:
    1. Authorization: Bearer header
    2. Session cookie (browsers)
    3. ?token= query parameter (clients that cannot set headers)
    """
    auth = _header(scope, b"authorization")
    if auth:
        parts = auth.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    cookie_header = _header(scope, b"cookie")
    if cookie_header:
        cookies = SimpleCookie()
        cookies.load(cookie_header)
        morsel = cookies.get(settings.JWT_COOKIE_NAME)
        if morsel and morsel.value:
            return morsel.value

    query_string = scope.get("query_string", b"").decode()
    token_list = parse_qs(query_string).get("token")
    if token_list:
        return token_list[0]
    return None


class SessionTokenAuthMiddleware(BaseMiddleware):
    """
    Authenticate WebSocket connections with the same token the REST API
    issues. Sets ``scope["user"]`` (AnonymousUser on failure) and
    ``scope["identity"]``.
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        scope["user"] = AnonymousUser()
        scope["identity"] = None

        try:
            identity = verify_token(get_scope_token(scope))
        except AuthenticationError as e:
            logger.debug("WS auth failed: %s", e.message)
        else:
            user = await _get_active_user(identity.id)
            if user is not None:
                scope["user"] = user
                scope["identity"] = identity

        return await super().__call__(scope, receive, send)
