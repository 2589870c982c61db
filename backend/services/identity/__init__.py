"""
Identity service - users, credentials and session tokens.

This module handles:
    - Registering users and logging them in
    - Issuing and verifying session tokens
    - Listing users and changing roles
"""

from .sessions import (
    Identity,
    issue_token,
    verify_token,
    register_user,
    login_user,
)
from .users import list_users, change_role

__all__ = [
    "Identity",
    "issue_token",
    "verify_token",
    "register_user",
    "login_user",
    "list_users",
    "change_role",
]
