"""
Tenant scoping and role checks.

Every gym is a tenant. Admins work across all gyms and must say which
one they mean; everyone else is pinned to the gym on their account.
These rules are framework-agnostic so they can be tested without HTTP.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class UserType(Enum):
    ADMIN = "admin"
    GYM_OWNER = "gym_owner"
    COACH = "coach"
    CLIENT = "client"


# Roles allowed to edit gym content (schedules, activity catalog)
STAFF_ROLES = (UserType.ADMIN, UserType.GYM_OWNER, UserType.COACH)

# Roles allowed to delete templates or change the gym default
MANAGER_ROLES = (UserType.ADMIN, UserType.GYM_OWNER)


class AccessError(Exception):
    """Base class for access-control failures."""
    pass


class GymRequiredError(AccessError):
    """Raised when no gym can be determined for the request."""
    pass


class PermissionDenied(AccessError):
    """Raised when the caller's role or gym does not allow the operation."""
    pass


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as carried in the access token."""
    user_id: str
    email: str
    user_type: UserType
    gym_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.user_type is UserType.ADMIN


def resolve_gym_id(principal: Principal, requested_gym_id: Optional[str] = None) -> str:
    """
    Determine which gym a request operates on.

    Admins must name a gym explicitly. Other users always get their own
    gym and the requested id is ignored.
    """
    if principal.is_admin:
        if not requested_gym_id:
            raise GymRequiredError("Gym ID is required for admin users")
        return requested_gym_id

    if not principal.gym_id:
        raise GymRequiredError("User must be assigned to a gym")
    return principal.gym_id


def can_access_gym(principal: Principal, gym_id: Optional[str]) -> bool:
    if principal.is_admin:
        return True
    return principal.gym_id is not None and principal.gym_id == gym_id


def require_role(principal: Principal, roles: Iterable[UserType], action: str = "perform this action") -> None:
    if principal.user_type not in tuple(roles):
        raise PermissionDenied(f"Insufficient permissions to {action}")


def require_gym_access(principal: Principal, gym_id: Optional[str], action: str = "access this resource") -> None:
    if not can_access_gym(principal, gym_id):
        raise PermissionDenied(f"Access denied to {action}")
