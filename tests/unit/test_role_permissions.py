import pytest

from orgspace.errors import CannotRemoveOwner, InvalidRole, InvalidStatus, OwnerRoleReserved
from orgspace.utils.role_permissions import (
    ALLOWED_ROLES,
    MANAGE_ROLES,
    RoleEnum,
    ensure_not_promoted_to_owner,
    ensure_owner_untouched,
    role_allows_manage,
    validate_assignable_role,
    validate_role,
    validate_status,
)


class TestRolePermissions:
    """Unit tests for the fixed role/status rules."""

    def test_validate_role_valid_roles(self):
        """All three tiers validate without raising."""
        for role in ["owner", "admin", "member"]:
            validate_role(role)

    def test_validate_role_invalid_role(self):
        """Unknown roles raise InvalidRole naming the offending value."""
        with pytest.raises(InvalidRole, match="Invalid role 'viewer'"):
            validate_role("viewer")

    def test_validate_role_is_case_sensitive(self):
        with pytest.raises(InvalidRole):
            validate_role("Admin")

    def test_validate_status(self):
        for status in ["active", "suspended", "pending"]:
            validate_status(status)
        with pytest.raises(InvalidStatus, match="Invalid status 'banned'"):
            validate_status("banned")

    def test_manage_roles(self):
        """Manage roles are owner and admin."""
        assert MANAGE_ROLES == {"owner", "admin"}
        assert MANAGE_ROLES <= ALLOWED_ROLES

    @pytest.mark.parametrize(
        "role,expected",
        [("owner", True), ("admin", True), ("ADMIN", True), ("member", False), (None, False), ("", False)],
    )
    def test_role_allows_manage(self, role, expected):
        assert role_allows_manage(role) is expected

    def test_role_enum_values(self):
        assert {r.value for r in RoleEnum} == set(ALLOWED_ROLES)


class TestOwnerProtection:
    def test_owner_cannot_be_demoted(self):
        with pytest.raises(CannotRemoveOwner):
            ensure_owner_untouched("owner", new_role="admin")

    def test_owner_cannot_be_suspended(self):
        with pytest.raises(CannotRemoveOwner, match="suspended or deactivated"):
            ensure_owner_untouched("owner", new_status="suspended")

    def test_owner_noop_update_allowed(self):
        ensure_owner_untouched("owner", new_role="owner", new_status="active")
        ensure_owner_untouched("owner")

    def test_non_owner_changes_are_not_owner_protected(self):
        ensure_owner_untouched("admin", new_role="member", new_status="suspended")

    def test_promotion_to_owner_is_reserved(self):
        with pytest.raises(OwnerRoleReserved):
            ensure_not_promoted_to_owner("admin", "owner")
        ensure_not_promoted_to_owner("member", "admin")
        ensure_not_promoted_to_owner("owner", "owner")

    def test_validate_assignable_role(self):
        validate_assignable_role("admin")
        validate_assignable_role("member")
        with pytest.raises(OwnerRoleReserved):
            validate_assignable_role("owner")
        with pytest.raises(InvalidRole):
            validate_assignable_role("guest")
