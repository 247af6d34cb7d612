"""
Unit tests for gym scoping and role checks.
"""

import pytest

from src.core.access import (
    MANAGER_ROLES,
    STAFF_ROLES,
    GymRequiredError,
    PermissionDenied,
    Principal,
    UserType,
    can_access_gym,
    require_gym_access,
    require_role,
    resolve_gym_id,
)


ADMIN = Principal(user_id="a", email="admin@example.com", user_type=UserType.ADMIN)
OWNER = Principal(user_id="o", email="owner@example.com", user_type=UserType.GYM_OWNER, gym_id="gym-1")
COACH = Principal(user_id="c", email="coach@example.com", user_type=UserType.COACH, gym_id="gym-1")
CLIENT = Principal(user_id="m", email="member@example.com", user_type=UserType.CLIENT, gym_id="gym-1")
UNASSIGNED = Principal(user_id="u", email="new@example.com", user_type=UserType.COACH)


class TestResolveGymId:

    def test_admin_uses_requested_gym(self):
        assert resolve_gym_id(ADMIN, "gym-9") == "gym-9"

    def test_admin_must_name_a_gym(self):
        with pytest.raises(GymRequiredError, match="required for admin"):
            resolve_gym_id(ADMIN)

    def test_member_is_pinned_to_own_gym(self):
        """A requested gym is ignored for non-admins."""
        assert resolve_gym_id(OWNER, "gym-9") == "gym-1"

    def test_member_without_gym_is_rejected(self):
        with pytest.raises(GymRequiredError, match="assigned to a gym"):
            resolve_gym_id(UNASSIGNED)


class TestGymAccess:

    def test_admin_can_access_any_gym(self):
        assert can_access_gym(ADMIN, "gym-9")

    def test_member_can_access_own_gym_only(self):
        assert can_access_gym(CLIENT, "gym-1")
        assert not can_access_gym(CLIENT, "gym-2")

    def test_unassigned_user_cannot_access_anything(self):
        assert not can_access_gym(UNASSIGNED, None)

    def test_require_gym_access_raises_with_action(self):
        with pytest.raises(PermissionDenied, match="Access denied to this template"):
            require_gym_access(COACH, "gym-2", "this template")


class TestRequireRole:

    @pytest.mark.parametrize("principal", [ADMIN, OWNER, COACH])
    def test_staff_roles_pass(self, principal):
        require_role(principal, STAFF_ROLES, "edit")

    def test_client_is_not_staff(self):
        with pytest.raises(PermissionDenied, match="Insufficient permissions to edit schedules"):
            require_role(CLIENT, STAFF_ROLES, "edit schedules")

    def test_coach_is_not_manager(self):
        with pytest.raises(PermissionDenied):
            require_role(COACH, MANAGER_ROLES, "delete")
