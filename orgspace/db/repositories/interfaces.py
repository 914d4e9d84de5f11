"""Persistence contracts consumed by the organization services."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from orgspace.db import models


class OrganizationRepository(Protocol):
    """Persistence for organizations."""

    def create(self, **fields: Any) -> models.Organization:
        ...

    def get(self, organization_id: uuid.UUID) -> Optional[models.Organization]:
        ...

    def get_by_slug(self, app_id: uuid.UUID, environment_id: uuid.UUID, slug: str) -> Optional[models.Organization]:
        ...

    def count_created_by(self, user_id: uuid.UUID) -> int:
        ...

    def list_for_scope(
        self, app_id: uuid.UUID, environment_id: uuid.UUID, *, offset: int, limit: int
    ) -> Tuple[List[models.Organization], int]:
        ...

    def list_for_user(self, user_id: uuid.UUID, *, offset: int, limit: int) -> Tuple[List[models.Organization], int]:
        ...

    def update(self, organization: models.Organization, changes: Dict[str, Any]) -> models.Organization:
        ...

    def delete(self, organization: models.Organization) -> None:
        ...


class MemberRepository(Protocol):
    """Persistence for organization memberships."""

    def create(self, **fields: Any) -> models.OrganizationMember:
        ...

    def get(self, member_id: uuid.UUID) -> Optional[models.OrganizationMember]:
        ...

    def find(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.OrganizationMember]:
        ...

    def count(self, organization_id: uuid.UUID) -> int:
        ...

    def list(
        self,
        organization_id: uuid.UUID,
        *,
        offset: int,
        limit: int,
        search: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Tuple[List[models.OrganizationMember], int]:
        ...

    def list_for_user(self, user_id: uuid.UUID, *, offset: int, limit: int) -> Tuple[List[models.OrganizationMember], int]:
        ...

    def all_for_user(self, user_id: uuid.UUID) -> List[models.OrganizationMember]:
        ...

    def update(self, member: models.OrganizationMember, changes: Dict[str, Any]) -> models.OrganizationMember:
        ...

    def delete(self, member: models.OrganizationMember) -> None:
        ...


class TeamRepository(Protocol):
    """Persistence for teams and the team/member join."""

    def create(self, **fields: Any) -> models.OrganizationTeam:
        ...

    def get(self, team_id: uuid.UUID) -> Optional[models.OrganizationTeam]:
        ...

    def count(self, organization_id: uuid.UUID) -> int:
        ...

    def list(self, organization_id: uuid.UUID, *, offset: int, limit: int) -> Tuple[List[models.OrganizationTeam], int]:
        ...

    def update(self, team: models.OrganizationTeam, changes: Dict[str, Any]) -> models.OrganizationTeam:
        ...

    def delete(self, team: models.OrganizationTeam) -> None:
        ...

    def add_member(self, team_id: uuid.UUID, member_id: uuid.UUID) -> models.OrganizationTeamMember:
        ...

    def find_member(self, team_id: uuid.UUID, member_id: uuid.UUID) -> Optional[models.OrganizationTeamMember]:
        ...

    def remove_member(self, team_member: models.OrganizationTeamMember) -> None:
        ...

    def list_members(self, team_id: uuid.UUID, *, offset: int, limit: int) -> Tuple[List[models.OrganizationTeamMember], int]:
        ...


class InvitationRepository(Protocol):
    """Persistence for invitations."""

    def create(self, **fields: Any) -> models.OrganizationInvitation:
        ...

    def get(self, invitation_id: uuid.UUID) -> Optional[models.OrganizationInvitation]:
        ...

    def get_by_token(self, token: str) -> Optional[models.OrganizationInvitation]:
        ...

    def list_pending_for_email(self, organization_id: uuid.UUID, email: str) -> List[models.OrganizationInvitation]:
        ...

    def list(
        self,
        organization_id: uuid.UUID,
        *,
        offset: int,
        limit: int,
        statuses: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[List[models.OrganizationInvitation], int]:
        ...

    def update(self, invitation: models.OrganizationInvitation, changes: Dict[str, Any]) -> models.OrganizationInvitation:
        ...

    def transition(
        self, invitation: models.OrganizationInvitation, from_status: str, changes: Dict[str, Any]
    ) -> bool:
        ...

    def delete_expired(self, now: datetime) -> int:
        ...
