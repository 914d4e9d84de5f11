"""
Pydantic request/response schemas for the organization API.
"""

from .organizations import (
    InvitationAccept,
    InvitationPreview,
    Organization,
    OrganizationCreate,
    OrganizationDetail,
    OrganizationInvitation,
    OrganizationInvitationCreate,
    OrganizationInvitationPage,
    OrganizationInvitationWithToken,
    OrganizationMember,
    OrganizationMemberCreate,
    OrganizationMemberPage,
    OrganizationMemberUpdate,
    OrganizationPage,
    OrganizationUpdate,
    Team,
    TeamCreate,
    TeamMember,
    TeamMemberAdd,
    TeamMemberPage,
    TeamMutationResult,
    TeamPage,
    TeamUpdate,
)

__all__ = [
    "InvitationAccept",
    "InvitationPreview",
    "Organization",
    "OrganizationCreate",
    "OrganizationDetail",
    "OrganizationInvitation",
    "OrganizationInvitationCreate",
    "OrganizationInvitationPage",
    "OrganizationInvitationWithToken",
    "OrganizationMember",
    "OrganizationMemberCreate",
    "OrganizationMemberPage",
    "OrganizationMemberUpdate",
    "OrganizationPage",
    "OrganizationUpdate",
    "Team",
    "TeamCreate",
    "TeamMember",
    "TeamMemberAdd",
    "TeamMemberPage",
    "TeamMutationResult",
    "TeamPage",
    "TeamUpdate",
]
