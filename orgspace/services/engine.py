"""
Organization engine facade.

Single in-process call surface over the organization, membership, team and
invitation managers. ``build_engine`` wires the SQLAlchemy repositories and
one shared unit of work around a session.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from orgspace.config import ConfigStore, get_config_store
from orgspace.db import models
from orgspace.db.repositories import (
    SqlInvitationRepository,
    SqlMemberRepository,
    SqlOrganizationRepository,
    SqlTeamRepository,
)
from orgspace.db.unit_of_work import UnitOfWork
from orgspace.services.invitation_service import InvitationService, ListInvitationsFilter
from orgspace.services.member_service import ListMembersFilter, MembershipPurgeResult, MembershipService
from orgspace.services.organization_service import OrganizationService
from orgspace.services.quota_guard import QuotaGuard
from orgspace.services.team_service import TeamService, provisioning_warning
from orgspace.utils.pagination import Page, PageRequest
from orgspace.utils.timeutil import Clock
from orgspace.utils.token_crypto import generate_invitation_token


logger = logging.getLogger(__name__)


class OrganizationEngine:
    def __init__(
        self,
        organizations: OrganizationService,
        memberships: MembershipService,
        teams: TeamService,
        invitations: InvitationService,
        quota: QuotaGuard,
    ):
        self.organizations = organizations
        self.memberships = memberships
        self.teams = teams
        self.invitations = invitations
        self.quota = quota

    # Organizations

    def create_organization(
        self,
        name: str,
        slug: str,
        creator_user_id: uuid.UUID,
        app_id: uuid.UUID,
        environment_id: uuid.UUID,
        logo: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> models.Organization:
        return self.organizations.create_organization(
            name, slug, creator_user_id, app_id, environment_id, logo=logo, metadata=metadata
        )

    def update_organization(
        self,
        organization_id: uuid.UUID,
        name: Optional[str] = None,
        logo: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> models.Organization:
        return self.organizations.update_organization(organization_id, name=name, logo=logo, metadata=metadata)

    def delete_organization(self, organization_id: uuid.UUID, requester_user_id: uuid.UUID) -> None:
        self.organizations.delete_organization(organization_id, requester_user_id)

    def get_organization(self, organization_id: uuid.UUID) -> models.Organization:
        return self.organizations.get_organization(organization_id)

    def find_organization_by_slug(
        self, app_id: uuid.UUID, environment_id: uuid.UUID, slug: str
    ) -> Optional[models.Organization]:
        return self.organizations.find_organization_by_slug(app_id, environment_id, slug)

    def list_organizations(
        self, app_id: uuid.UUID, environment_id: uuid.UUID, page: Optional[PageRequest] = None
    ) -> Page:
        return self.organizations.list_organizations(app_id, environment_id, page)

    def list_user_organizations(self, user_id: uuid.UUID, page: Optional[PageRequest] = None) -> Page:
        return self.organizations.list_user_organizations(user_id, page)

    # Members

    def add_member(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str,
        adder_user_id: uuid.UUID,
        display_name: Optional[str] = None,
    ) -> models.OrganizationMember:
        return self.memberships.add_member_directly(
            organization_id, user_id, role, adder_user_id, display_name=display_name
        )

    def update_member(
        self,
        member_id: uuid.UUID,
        updater_user_id: uuid.UUID,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> models.OrganizationMember:
        return self.memberships.update_member(member_id, updater_user_id, role=role, status=status)

    def remove_member(self, member_id: uuid.UUID, remover_user_id: uuid.UUID) -> None:
        self.memberships.remove_member(member_id, remover_user_id)

    def get_member(self, member_id: uuid.UUID) -> models.OrganizationMember:
        return self.memberships.get_member(member_id)

    def find_member(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.OrganizationMember]:
        return self.memberships.find_member(organization_id, user_id)

    def list_members(self, filter: ListMembersFilter) -> Page:
        return self.memberships.list_members(filter)

    def list_user_memberships(self, user_id: uuid.UUID, page: Optional[PageRequest] = None) -> Page:
        return self.memberships.list_user_memberships(user_id, page)

    def remove_user_from_all_organizations(self, user_id: uuid.UUID) -> MembershipPurgeResult:
        return self.memberships.remove_user_from_all_organizations(user_id)

    def count_members(self, organization_id: uuid.UUID) -> int:
        return self.memberships.count_members(organization_id)

    def is_member(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return self.memberships.is_member(organization_id, user_id)

    def is_admin(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return self.memberships.is_admin(organization_id, user_id)

    def is_owner(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return self.memberships.is_owner(organization_id, user_id)

    # Teams

    def create_team(
        self,
        organization_id: uuid.UUID,
        name: str,
        creator_user_id: uuid.UUID,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        provisioned_by: Optional[str] = None,
    ) -> models.OrganizationTeam:
        return self.teams.create_team(
            organization_id,
            name,
            creator_user_id,
            description=description,
            metadata=metadata,
            provisioned_by=provisioned_by,
        )

    def update_team(
        self,
        team_id: uuid.UUID,
        updater_user_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> models.OrganizationTeam:
        return self.teams.update_team(team_id, updater_user_id, name=name, description=description, metadata=metadata)

    def delete_team(self, team_id: uuid.UUID, deleter_user_id: uuid.UUID) -> None:
        self.teams.delete_team(team_id, deleter_user_id)

    def get_team(self, team_id: uuid.UUID) -> models.OrganizationTeam:
        return self.teams.get_team(team_id)

    def list_teams(self, organization_id: uuid.UUID, page: Optional[PageRequest] = None) -> Page:
        return self.teams.list_teams(organization_id, page)

    def add_team_member(
        self, team_id: uuid.UUID, member_id: uuid.UUID, actor_user_id: uuid.UUID
    ) -> models.OrganizationTeamMember:
        return self.teams.add_team_member(team_id, member_id, actor_user_id)

    def remove_team_member(self, team_id: uuid.UUID, member_id: uuid.UUID, actor_user_id: uuid.UUID) -> None:
        self.teams.remove_team_member(team_id, member_id, actor_user_id)

    def list_team_members(self, team_id: uuid.UUID, page: Optional[PageRequest] = None) -> Page:
        return self.teams.list_team_members(team_id, page)

    @staticmethod
    def team_warning(team: models.OrganizationTeam) -> Optional[str]:
        return provisioning_warning(team)

    # Invitations

    def invite_member(
        self, organization_id: uuid.UUID, email: str, role: str, inviter_user_id: uuid.UUID
    ) -> models.OrganizationInvitation:
        return self.invitations.invite_member(organization_id, email, role, inviter_user_id)

    def get_invitation(self, token: str) -> models.OrganizationInvitation:
        return self.invitations.get_invitation(token)

    def find_invitation(self, invitation_id: uuid.UUID) -> models.OrganizationInvitation:
        return self.invitations.find_invitation(invitation_id)

    def invitation_status(self, invitation: models.OrganizationInvitation) -> str:
        return self.invitations.status_of(invitation)

    def accept_invitation(
        self, token: str, user_id: uuid.UUID, display_name: Optional[str] = None
    ) -> models.OrganizationMember:
        return self.invitations.accept_invitation(token, user_id, display_name=display_name)

    def decline_invitation(self, token: str) -> None:
        self.invitations.decline_invitation(token)

    def cancel_invitation(
        self, invitation_id: uuid.UUID, canceller_user_id: uuid.UUID
    ) -> models.OrganizationInvitation:
        return self.invitations.cancel_invitation(invitation_id, canceller_user_id)

    def resend_invitation(
        self, invitation_id: uuid.UUID, resender_user_id: uuid.UUID
    ) -> models.OrganizationInvitation:
        return self.invitations.resend_invitation(invitation_id, resender_user_id)

    def list_invitations(self, filter: ListInvitationsFilter) -> Page:
        return self.invitations.list_invitations(filter)

    def cleanup_expired_invitations(self) -> int:
        return self.invitations.cleanup_expired_invitations()


def build_engine(
    db: Session,
    config_store: Optional[ConfigStore] = None,
    clock: Optional[Clock] = None,
    token_generator: Callable[[], str] = generate_invitation_token,
) -> OrganizationEngine:
    store = config_store or get_config_store()
    quota = QuotaGuard(store)
    uow = UnitOfWork(db)
    organization_repo = SqlOrganizationRepository(db)
    member_repo = SqlMemberRepository(db)

    memberships = MembershipService(member_repo, organization_repo, uow, quota, clock=clock)
    organizations = OrganizationService(organization_repo, memberships, uow, quota)
    teams = TeamService(SqlTeamRepository(db), organization_repo, memberships, uow, quota)
    invitations = InvitationService(
        SqlInvitationRepository(db),
        organization_repo,
        memberships,
        uow,
        quota,
        clock=clock,
        token_generator=token_generator,
    )
    return OrganizationEngine(organizations, memberships, teams, invitations, quota)


def run_cleanup() -> int:
    """Externally triggered sweep of expired invitations."""
    from orgspace.db.database import SessionLocal

    db = SessionLocal()
    try:
        deleted = build_engine(db).cleanup_expired_invitations()
    finally:
        db.close()
    logger.info("invitation_cleanup_run: deleted=%s", deleted)
    return deleted
