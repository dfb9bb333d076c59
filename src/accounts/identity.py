"""
Identity lookups used by the collaboration engine.
"""

import logging
from typing import Optional

from .models import User

logger = logging.getLogger(__name__)


def get_broker_by_id(broker_id) -> Optional[User]:
    """Resolve a user by id, or None."""
    if not broker_id:
        return None
    return User.objects.filter(id=broker_id).first()


def get_broker_by_email(email: str) -> Optional[User]:
    """
    Resolve a broker account by email address.

    Matching is case-insensitive and restricted to active broker accounts,
    so admins and deactivated users cannot be invited onto a case.
    """
    if not email:
        return None
    return User.objects.filter(
        email__iexact=email.strip(),
        role=User.Role.BROKER,
        is_active=True
    ).first()


def profile_payload(user: Optional[User]) -> Optional[dict]:
    """The public profile shape: id, full name, email, avatar."""
    if user is None:
        return None
    return {
        'id': str(user.id),
        'full_name': user.full_name or None,
        'email': user.email,
        'avatar_url': user.avatar_url or None,
    }
