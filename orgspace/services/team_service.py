"""
Team manager.

A team id alone resolves its authorization scope: every mutation looks up
the team's own organization and checks the actor against it.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from orgspace.db import models
from orgspace.db.repositories.interfaces import OrganizationRepository, TeamRepository
from orgspace.db.unit_of_work import UnitOfWork
from orgspace.errors import (
    DuplicateRecordError,
    MemberNotFound,
    OrganizationNotFound,
    TeamMemberAlreadyExists,
    TeamMemberNotFound,
    TeamNotFound,
)
from orgspace.services.member_service import MembershipService
from orgspace.services.quota_guard import QuotaGuard
from orgspace.utils.pagination import Page, PageRequest


logger = logging.getLogger(__name__)


def provisioning_warning(team: models.OrganizationTeam) -> Optional[str]:
    """Non-blocking notice for teams synced from an external system."""
    if not team.provisioned_by:
        return None
    return (
        f"Team '{team.name}' is provisioned by {team.provisioned_by}; "
        "changes made here may be overwritten by the next sync."
    )


class TeamService:
    def __init__(
        self,
        teams: TeamRepository,
        organizations: OrganizationRepository,
        memberships: MembershipService,
        uow: UnitOfWork,
        quota: QuotaGuard,
    ):
        self.teams = teams
        self.organizations = organizations
        self.memberships = memberships
        self.uow = uow
        self.quota = quota

    def _warn_if_provisioned(self, team: models.OrganizationTeam, action: str, actor_user_id: uuid.UUID) -> None:
        if team.provisioned_by:
            logger.warning(
                "provisioned_team_mutated: team_id=%s action=%s provisioned_by=%s actor=%s",
                team.id, action, team.provisioned_by, actor_user_id,
            )

    def create_team(
        self,
        organization_id: uuid.UUID,
        name: str,
        creator_user_id: uuid.UUID,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        provisioned_by: Optional[str] = None,
    ) -> models.OrganizationTeam:
        with self.uow.atomic():
            if self.organizations.get(organization_id) is None:
                raise OrganizationNotFound(details={"organization_id": str(organization_id)})
            self.memberships.require_member(organization_id, creator_user_id)
            self.quota.ensure_team_capacity(self.teams.count(organization_id))
            team = self.teams.create(
                organization_id=organization_id,
                name=name,
                description=description or "",
                metadata_col=dict(metadata or {}),
                provisioned_by=provisioned_by,
            )
        logger.info("team_created: org_id=%s team_id=%s creator=%s", organization_id, team.id, creator_user_id)
        return team

    def update_team(
        self,
        team_id: uuid.UUID,
        updater_user_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> models.OrganizationTeam:
        changes: Dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if metadata is not None:
            changes["metadata_col"] = dict(metadata)

        with self.uow.atomic():
            team = self.get_team(team_id)
            self.memberships.require_admin(team.organization_id, updater_user_id)
            self._warn_if_provisioned(team, "update", updater_user_id)
            if changes:
                self.teams.update(team, changes)
        logger.info("team_updated: team_id=%s fields=%s", team_id, sorted(changes))
        return team

    def delete_team(self, team_id: uuid.UUID, deleter_user_id: uuid.UUID) -> None:
        with self.uow.atomic():
            team = self.get_team(team_id)
            self.memberships.require_admin(team.organization_id, deleter_user_id)
            self._warn_if_provisioned(team, "delete", deleter_user_id)
            self.teams.delete(team)
        logger.info("team_deleted: team_id=%s actor=%s", team_id, deleter_user_id)

    def add_team_member(
        self, team_id: uuid.UUID, member_id: uuid.UUID, actor_user_id: uuid.UUID
    ) -> models.OrganizationTeamMember:
        with self.uow.atomic():
            team = self.get_team(team_id)
            self.memberships.require_admin(team.organization_id, actor_user_id)
            member = self.memberships.get_member(member_id)
            if member.organization_id != team.organization_id:
                raise MemberNotFound(details={"member_id": str(member_id), "team_id": str(team_id)})
            if self.teams.find_member(team_id, member_id) is not None:
                raise TeamMemberAlreadyExists(details={"member_id": str(member_id), "team_id": str(team_id)})
            self._warn_if_provisioned(team, "add_member", actor_user_id)
            try:
                team_member = self.teams.add_member(team_id, member_id)
            except DuplicateRecordError as exc:
                raise TeamMemberAlreadyExists(
                    details={"member_id": str(member_id), "team_id": str(team_id)}
                ) from exc
        logger.info("team_member_added: team_id=%s member_id=%s", team_id, member_id)
        return team_member

    def remove_team_member(self, team_id: uuid.UUID, member_id: uuid.UUID, actor_user_id: uuid.UUID) -> None:
        with self.uow.atomic():
            team = self.get_team(team_id)
            self.memberships.require_admin(team.organization_id, actor_user_id)
            team_member = self.teams.find_member(team_id, member_id)
            if team_member is None:
                raise TeamMemberNotFound(details={"member_id": str(member_id), "team_id": str(team_id)})
            self._warn_if_provisioned(team, "remove_member", actor_user_id)
            self.teams.remove_member(team_member)
        logger.info("team_member_removed: team_id=%s member_id=%s", team_id, member_id)

    def get_team(self, team_id: uuid.UUID) -> models.OrganizationTeam:
        team = self.teams.get(team_id)
        if team is None:
            raise TeamNotFound(details={"team_id": str(team_id)})
        return team

    def list_teams(self, organization_id: uuid.UUID, page: Optional[PageRequest] = None) -> Page:
        request = (page or PageRequest()).normalized()
        items, total = self.teams.list(organization_id, offset=request.offset, limit=request.limit)
        return Page.build(items, total, request)

    def list_team_members(self, team_id: uuid.UUID, page: Optional[PageRequest] = None) -> Page:
        self.get_team(team_id)
        request = (page or PageRequest()).normalized()
        items, total = self.teams.list_members(team_id, offset=request.offset, limit=request.limit)
        return Page.build(items, total, request)
