"""
Registration, login and session tokens.

Session tokens are simplejwt access tokens carrying ``user_id`` and ``role``.
The same token is accepted from the ``Authorization: Bearer`` header and from
the http-only cookie, both by the REST authentication class and by the
WebSocket handshake middleware.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from django.contrib.auth import authenticate, get_user_model
from django.db import IntegrityError, transaction
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import AccessToken

from common.exceptions import AuthenticationError, ConflictError, ValidationError

User = get_user_model()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller derived from a verified session token."""
    id: int
    role: Optional[str]


# ---------------------- Tokens ----------------------

def issue_token(user) -> str:
    """Issue a signed access token for ``user``."""
    token = AccessToken.for_user(user)
    token["role"] = user.role
    return str(token)


def verify_token(raw_token: Optional[str]) -> Identity:
    """
    Validate a raw token string and return the identity it carries.

    Raises:
        AuthenticationError: token missing, malformed, badly signed or expired
    """
    if not raw_token:
        raise AuthenticationError("No token provided")

    try:
        token = AccessToken(raw_token)
    except TokenError as exc:
        raise AuthenticationError("Invalid token", details=str(exc)) from exc

    user_id = token.get(jwt_settings.USER_ID_CLAIM)
    if user_id is None:
        raise AuthenticationError("Invalid token")

    return Identity(id=int(user_id), role=token.get("role"))


# ---------------------- Registration / login ----------------------

def register_user(data) -> Tuple[Any, str]:
    """
    Create a user and issue a session token.

    Raises:
        ValidationError: missing or malformed fields, or a non self-service role
        ConflictError: email already registered
    """
    from accounts.serializers import RegisterSerializer

    serializer = RegisterSerializer(data=data)
    if not serializer.is_valid():
        raise ValidationError.from_serializer_errors(
            serializer.errors,
            required_fields=("name", "email", "password"),
            missing_message="Missing required fields",
            message="Invalid registration data",
        )

    validated = serializer.validated_data
    if User.objects.filter(email__iexact=validated["email"]).exists():
        raise ConflictError("Email already registered")

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=validated["email"],
                password=validated["password"],
                name=validated["name"],
                phone=validated.get("phone", ""),
                role=validated.get("role", User.ROLE_RIDER),
            )
    except IntegrityError as exc:
        # Lost a race with a concurrent registration of the same email
        raise ConflictError("Email already registered") from exc

    logger.info("Registered user %s as %s", user.id, user.role)
    return user, issue_token(user)


def login_user(email: Optional[str], password: Optional[str]) -> Tuple[Any, str]:
    """
    Check credentials and issue a session token.

    Unknown email, wrong password and inactive account all fail the same way.
    """
    if not email or not password:
        raise ValidationError("Missing credentials")

    user = authenticate(
        email=User.objects.normalize_email_address(email),
        password=password,
    )
    if user is None:
        raise AuthenticationError("Invalid credentials")

    return user, issue_token(user)
