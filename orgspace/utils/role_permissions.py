"""
Role and status rules for organization members.

Roles form a fixed three-tier hierarchy. The owner role is granted once, at
organization creation, and is never reassigned through the update path.
"""

from typing import FrozenSet, Optional
from enum import Enum

from orgspace.errors import CannotRemoveOwner, InvalidRole, InvalidStatus, OwnerRoleReserved


# Central role constants to ensure consistency across the codebase
ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"

ALLOWED_ROLES: FrozenSet[str] = frozenset({ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER})

# Roles allowed to manage an organization
MANAGE_ROLES: FrozenSet[str] = frozenset({ROLE_OWNER, ROLE_ADMIN})

STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"
STATUS_PENDING = "pending"

ALLOWED_STATUSES: FrozenSet[str] = frozenset({STATUS_ACTIVE, STATUS_SUSPENDED, STATUS_PENDING})


class RoleEnum(str, Enum):
    """Enum for organization roles used in schemas and validation."""
    owner = ROLE_OWNER
    admin = ROLE_ADMIN
    member = ROLE_MEMBER


class MemberStatusEnum(str, Enum):
    active = STATUS_ACTIVE
    suspended = STATUS_SUSPENDED
    pending = STATUS_PENDING


def validate_role(role: str) -> None:
    """
    Validate that a role is part of the fixed enumeration.

    Raises:
        InvalidRole: If role is not recognized
    """
    if role not in ALLOWED_ROLES:
        raise InvalidRole(
            f"Invalid role '{role}'. Allowed roles: {sorted(ALLOWED_ROLES)}",
            details={"role": role},
        )


def validate_status(status: str) -> None:
    """
    Validate that a member status is part of the fixed enumeration.

    Raises:
        InvalidStatus: If status is not recognized
    """
    if status not in ALLOWED_STATUSES:
        raise InvalidStatus(
            f"Invalid status '{status}'. Allowed statuses: {sorted(ALLOWED_STATUSES)}",
            details={"status": status},
        )


def role_allows_manage(role: Optional[str]) -> bool:
    return (role or "").lower() in MANAGE_ROLES


def ensure_owner_untouched(current_role: str, new_role: Optional[str] = None, new_status: Optional[str] = None) -> None:
    """Reject changes that would demote or deactivate the owner.

    Demotion and suspension share ``CannotRemoveOwner``: both leave the
    organization without an active owner.
    """
    if current_role != ROLE_OWNER:
        return
    if new_role is not None and new_role != ROLE_OWNER:
        raise CannotRemoveOwner(details={"requested_role": new_role})
    if new_status is not None and new_status != STATUS_ACTIVE:
        raise CannotRemoveOwner(
            "The organization owner cannot be suspended or deactivated",
            details={"requested_status": new_status},
        )


def ensure_not_promoted_to_owner(current_role: str, new_role: Optional[str]) -> None:
    """Owner is only granted at creation; refuse promotion through updates."""
    if new_role == ROLE_OWNER and current_role != ROLE_OWNER:
        raise OwnerRoleReserved()


def validate_assignable_role(role: str) -> None:
    """Validate a role granted outside organization creation."""
    validate_role(role)
    if role == ROLE_OWNER:
        raise OwnerRoleReserved()
