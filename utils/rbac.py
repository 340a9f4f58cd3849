import logging
from typing import Iterable

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied

# Canonical role names
ROLE_BUYER = "buyer"
ROLE_SELLER = "seller"
ROLE_ADMIN = "admin"

ROLES = (ROLE_BUYER, ROLE_SELLER, ROLE_ADMIN)

logger = logging.getLogger(__name__)


def _fetch_user_from_db(user):
    """Fetch a fresh copy of the user with only the fields RBAC needs.

    Returns None if the user is anonymous or no longer exists.
    """
    if not getattr(user, "is_authenticated", False):
        return None
    User = get_user_model()
    return User.objects.only("id", "role", "is_superuser").filter(pk=getattr(user, "pk", None)).first()


def is_admin(user) -> bool:
    """Admin check verified against the database."""
    db_user = _fetch_user_from_db(user)
    if not db_user:
        return False
    return bool(db_user.is_superuser or db_user.role == ROLE_ADMIN)


def is_seller(user) -> bool:
    """Seller check verified against the database. Admins count as sellers."""
    db_user = _fetch_user_from_db(user)
    if not db_user:
        return False
    return db_user.role == ROLE_SELLER or is_admin(user)


def has_role(user, role: str) -> bool:
    if role == ROLE_ADMIN:
        return is_admin(user)
    if role == ROLE_SELLER:
        return is_seller(user)
    db_user = _fetch_user_from_db(user)
    return db_user.role == role if db_user else False


def has_any_role(user, roles: Iterable[str]) -> bool:
    return any(has_role(user, r) for r in roles)


def require_role(user, roles: Iterable[str]):
    """Raise PermissionDenied unless the user has one of the roles."""
    roles = list(roles)
    if not has_any_role(user, roles):
        logger.warning(
            "RBAC denial: user_id=%s required=%s",
            getattr(user, "id", None),
            roles,
        )
        raise PermissionDenied("Insufficient role to access this resource.")
