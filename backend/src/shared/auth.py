"""
Authentication utilities for extracting the caller from Cognito tokens,
and the role gate applied before any store mutation.
"""
from typing import Optional

from .errors import Forbidden, Unauthorized
from .models import Role


def get_user_email(event: dict) -> Optional[str]:
    """Extract user email from Cognito claims, lower-cased."""
    try:
        email = event['requestContext']['authorizer']['claims']['email']
    except (KeyError, TypeError):
        return None
    return email.strip().lower() if email else None


def get_user_name(event: dict) -> Optional[str]:
    """Display name claim, if the user pool provides one."""
    try:
        return event['requestContext']['authorizer']['claims'].get('name')
    except (KeyError, TypeError, AttributeError):
        return None


def require_identity(event: dict) -> str:
    """Caller email or Unauthorized."""
    email = get_user_email(event)
    if not email:
        raise Unauthorized()
    return email


def require_role(accounts, email: str, *roles: str) -> dict:
    """
    Role gate. Returns the caller's account when its role is one of
    ``roles``; a missing account and a wrong role are both Forbidden.
    """
    account = accounts.find(email)
    if not account or account.get('role') not in roles:
        raise Forbidden(f"Requires role: {' or '.join(roles)}")
    return account


def is_admin(account: Optional[dict]) -> bool:
    """Check if the account has the admin role."""
    return bool(account) and account.get('role') == Role.ADMIN
