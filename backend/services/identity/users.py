"""User administration: listing accounts and changing roles."""

import logging

from django.contrib.auth import get_user_model
from django.utils import timezone

from common.exceptions import NotFoundError, ValidationError

User = get_user_model()
logger = logging.getLogger(__name__)

VALID_ROLES = {choice for choice, _ in User.ROLE_CHOICES}


def list_users():
    """All users, newest first."""
    return User.objects.all().order_by('-date_joined', '-id')


def change_role(user_id: int, role) -> User:
    """
    Set a user's role.

    Raises:
        ValidationError: role is not one of rider/driver/admin
        NotFoundError: no such user
    """
    if not isinstance(role, str) or role not in VALID_ROLES:
        raise ValidationError("Invalid role", details={"role": sorted(VALID_ROLES)})

    updated = User.objects.filter(pk=user_id).update(role=role, updated_at=timezone.now())
    if not updated:
        raise NotFoundError("User not found")

    logger.info("Role of user %s changed to %s", user_id, role)
    return User.objects.get(pk=user_id)
