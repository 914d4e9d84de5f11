"""
Typed failures raised by the organization engine.

Every failure carries a ``kind`` (the taxonomy bucket the request layer maps
to a transport status), a stable upper-snake ``code`` and optional
``details``. The engine never formats transport responses itself; the API
layer reads ``http_status`` when rendering.
"""
from typing import Any, Dict, Optional


KIND_NOT_FOUND = "not_found"
KIND_CONFLICT = "conflict"
KIND_QUOTA_EXCEEDED = "quota_exceeded"
KIND_INVALID_STATE = "invalid_state"
KIND_FORBIDDEN = "forbidden"
KIND_FEATURE_DISABLED = "feature_disabled"


class OrganizationError(Exception):
    """Base class for all engine failures."""

    kind = "internal"
    code = "ORGANIZATION_ERROR"
    http_status = 500
    default_message = "Organization operation failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(ValueError):
    """Raised when organization configuration fails validation."""


# ---------------------------------------------------------------------------
# not_found
# ---------------------------------------------------------------------------

class NotFoundError(OrganizationError):
    kind = KIND_NOT_FOUND
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Resource not found"


class OrganizationNotFound(NotFoundError):
    code = "ORGANIZATION_NOT_FOUND"
    default_message = "Organization not found"


class MemberNotFound(NotFoundError):
    code = "MEMBER_NOT_FOUND"
    default_message = "Member not found"


class TeamNotFound(NotFoundError):
    code = "TEAM_NOT_FOUND"
    default_message = "Team not found"


class TeamMemberNotFound(NotFoundError):
    code = "TEAM_MEMBER_NOT_FOUND"
    default_message = "Member is not part of this team"


class InvitationNotFound(NotFoundError):
    code = "INVITATION_NOT_FOUND"
    default_message = "Invitation not found"


# ---------------------------------------------------------------------------
# conflict
# ---------------------------------------------------------------------------

class ConflictError(OrganizationError):
    kind = KIND_CONFLICT
    code = "CONFLICT"
    http_status = 409
    default_message = "Resource already exists"


class SlugAlreadyExists(ConflictError):
    code = "SLUG_ALREADY_EXISTS"
    default_message = "Organization slug already exists"


class MemberAlreadyExists(ConflictError):
    code = "MEMBER_ALREADY_EXISTS"
    default_message = "User is already a member of this organization"


class TeamMemberAlreadyExists(ConflictError):
    code = "TEAM_MEMBER_ALREADY_EXISTS"
    default_message = "Member is already part of this team"


class InvitationAlreadyExists(ConflictError):
    code = "INVITATION_ALREADY_EXISTS"
    default_message = "A pending invitation already exists for this email"


class DuplicateRecordError(ConflictError):
    """A storage uniqueness constraint rejected a write."""

    code = "DUPLICATE_RECORD"
    default_message = "Record violates a uniqueness constraint"


# ---------------------------------------------------------------------------
# quota_exceeded
# ---------------------------------------------------------------------------

class QuotaExceededError(OrganizationError):
    kind = KIND_QUOTA_EXCEEDED
    code = "QUOTA_EXCEEDED"
    http_status = 400
    default_message = "Quota exceeded"

    def __init__(self, limit: int, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.limit = limit
        merged = {"limit": limit}
        merged.update(details or {})
        super().__init__(message or self.default_message.format(limit=limit), merged)


class MaxOrganizationsReached(QuotaExceededError):
    code = "MAX_ORGANIZATIONS_REACHED"
    default_message = "Maximum number of organizations reached ({limit})"


class MaxMembersReached(QuotaExceededError):
    code = "MAX_MEMBERS_REACHED"
    default_message = "Maximum number of members reached ({limit})"


class MaxTeamsReached(QuotaExceededError):
    code = "MAX_TEAMS_REACHED"
    default_message = "Maximum number of teams reached ({limit})"


# ---------------------------------------------------------------------------
# invalid_state
# ---------------------------------------------------------------------------

class InvalidStateError(OrganizationError):
    kind = KIND_INVALID_STATE
    code = "INVALID_STATE"
    http_status = 400
    default_message = "Invalid state"


class InvalidRole(InvalidStateError):
    code = "INVALID_ROLE"
    default_message = "Invalid role"


class InvalidStatus(InvalidStateError):
    code = "INVALID_STATUS"
    default_message = "Invalid status"


class InvitationNotPending(InvalidStateError):
    code = "INVITATION_NOT_PENDING"
    default_message = "Invitation is no longer pending"


class InvitationExpired(InvalidStateError):
    code = "INVITATION_EXPIRED"
    default_message = "Invitation has expired"


# ---------------------------------------------------------------------------
# forbidden
# ---------------------------------------------------------------------------

class ForbiddenError(OrganizationError):
    kind = KIND_FORBIDDEN
    code = "FORBIDDEN"
    http_status = 403
    default_message = "Forbidden"


class NotMember(ForbiddenError):
    code = "NOT_MEMBER"
    default_message = "User is not a member of this organization"


class NotAdmin(ForbiddenError):
    code = "NOT_ADMIN"
    default_message = "Admin or owner role required"


class NotOwner(ForbiddenError):
    code = "NOT_OWNER"
    default_message = "Only the organization owner can perform this action"


class CannotRemoveOwner(ForbiddenError):
    code = "CANNOT_REMOVE_OWNER"
    default_message = "The organization owner cannot be removed or demoted"


class OwnerRoleReserved(ForbiddenError):
    code = "OWNER_ROLE_RESERVED"
    default_message = "The owner role is assigned only at organization creation"


# ---------------------------------------------------------------------------
# feature_disabled
# ---------------------------------------------------------------------------

class FeatureDisabledError(OrganizationError):
    kind = KIND_FEATURE_DISABLED
    code = "FEATURE_DISABLED"
    http_status = 403
    default_message = "Feature disabled"


class CreationDisabled(FeatureDisabledError):
    code = "CREATION_DISABLED"
    default_message = "Self-service organization creation is disabled"


class InvitationRequired(FeatureDisabledError):
    code = "INVITATION_REQUIRED"
    default_message = "Members can only join through an invitation"
