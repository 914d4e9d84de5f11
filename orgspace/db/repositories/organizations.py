"""
SQLAlchemy-backed organization repositories.

Writes flush but never commit; the caller's unit of work owns the
transaction. Uniqueness violations surface as ``DuplicateRecordError``.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from orgspace.db import models
from orgspace.errors import DuplicateRecordError


logger = logging.getLogger(__name__)


def _flush(db: Session, entity: str) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        hint = str(getattr(exc, "orig", exc))
        logger.info("repository_integrity_violation: entity=%s detail=%s", entity, hint)
        raise DuplicateRecordError(
            f"{entity} violates a uniqueness constraint",
            details={"entity": entity, "constraint": hint},
        ) from exc


def _contains_pattern(term: str) -> str:
    """Build an ILIKE pattern that matches `term` literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _paginate(query: Query, offset: int, limit: int, *order_by) -> Tuple[List[Any], int]:
    total = query.order_by(None).count()
    items = query.order_by(*order_by).offset(offset).limit(limit).all()
    return items, total


def _apply_changes(entity: Any, changes: Dict[str, Any]) -> None:
    for key, value in changes.items():
        setattr(entity, key, value)


class SqlOrganizationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields: Any) -> models.Organization:
        organization = models.Organization(**fields)
        self.db.add(organization)
        _flush(self.db, "organization")
        return organization

    def get(self, organization_id: uuid.UUID) -> Optional[models.Organization]:
        return self.db.query(models.Organization).filter(models.Organization.id == organization_id).first()

    def get_by_slug(self, app_id: uuid.UUID, environment_id: uuid.UUID, slug: str) -> Optional[models.Organization]:
        return (
            self.db.query(models.Organization)
            .filter(
                models.Organization.app_id == app_id,
                models.Organization.environment_id == environment_id,
                models.Organization.slug == slug,
            )
            .first()
        )

    def count_created_by(self, user_id: uuid.UUID) -> int:
        return (
            self.db.query(func.count(models.Organization.id))
            .filter(models.Organization.created_by == user_id)
            .scalar()
            or 0
        )

    def list_for_scope(
        self, app_id: uuid.UUID, environment_id: uuid.UUID, *, offset: int, limit: int
    ) -> Tuple[List[models.Organization], int]:
        query = self.db.query(models.Organization).filter(
            models.Organization.app_id == app_id,
            models.Organization.environment_id == environment_id,
        )
        return _paginate(query, offset, limit, models.Organization.created_at, models.Organization.id)

    def list_for_user(self, user_id: uuid.UUID, *, offset: int, limit: int) -> Tuple[List[models.Organization], int]:
        query = (
            self.db.query(models.Organization)
            .join(models.OrganizationMember, models.OrganizationMember.organization_id == models.Organization.id)
            .filter(
                models.OrganizationMember.user_id == user_id,
                models.OrganizationMember.status == "active",
            )
        )
        return _paginate(query, offset, limit, models.Organization.created_at, models.Organization.id)

    def update(self, organization: models.Organization, changes: Dict[str, Any]) -> models.Organization:
        _apply_changes(organization, changes)
        _flush(self.db, "organization")
        return organization

    def delete(self, organization: models.Organization) -> None:
        self.db.delete(organization)
        self.db.flush()


class SqlMemberRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields: Any) -> models.OrganizationMember:
        member = models.OrganizationMember(**fields)
        self.db.add(member)
        _flush(self.db, "organization_member")
        return member

    def get(self, member_id: uuid.UUID) -> Optional[models.OrganizationMember]:
        return self.db.query(models.OrganizationMember).filter(models.OrganizationMember.id == member_id).first()

    def find(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.OrganizationMember]:
        return (
            self.db.query(models.OrganizationMember)
            .filter(
                models.OrganizationMember.organization_id == organization_id,
                models.OrganizationMember.user_id == user_id,
            )
            .first()
        )

    def count(self, organization_id: uuid.UUID) -> int:
        return (
            self.db.query(func.count(models.OrganizationMember.id))
            .filter(models.OrganizationMember.organization_id == organization_id)
            .scalar()
            or 0
        )

    def list(
        self,
        organization_id: uuid.UUID,
        *,
        offset: int,
        limit: int,
        search: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Tuple[List[models.OrganizationMember], int]:
        query = self.db.query(models.OrganizationMember).filter(
            models.OrganizationMember.organization_id == organization_id
        )
        if role:
            query = query.filter(models.OrganizationMember.role == role)
        if search:
            clauses = [models.OrganizationMember.display_name.ilike(_contains_pattern(search), escape="\\")]
            try:
                clauses.append(models.OrganizationMember.user_id == uuid.UUID(search))
            except ValueError:
                pass
            query = query.filter(or_(*clauses))
        return _paginate(query, offset, limit, models.OrganizationMember.joined_at, models.OrganizationMember.id)

    def list_for_user(self, user_id: uuid.UUID, *, offset: int, limit: int) -> Tuple[List[models.OrganizationMember], int]:
        query = self.db.query(models.OrganizationMember).filter(models.OrganizationMember.user_id == user_id)
        return _paginate(query, offset, limit, models.OrganizationMember.joined_at, models.OrganizationMember.id)

    def all_for_user(self, user_id: uuid.UUID) -> List[models.OrganizationMember]:
        return self.db.query(models.OrganizationMember).filter(models.OrganizationMember.user_id == user_id).all()

    def update(self, member: models.OrganizationMember, changes: Dict[str, Any]) -> models.OrganizationMember:
        _apply_changes(member, changes)
        _flush(self.db, "organization_member")
        return member

    def delete(self, member: models.OrganizationMember) -> None:
        self.db.delete(member)
        self.db.flush()


class SqlTeamRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields: Any) -> models.OrganizationTeam:
        team = models.OrganizationTeam(**fields)
        self.db.add(team)
        _flush(self.db, "organization_team")
        return team

    def get(self, team_id: uuid.UUID) -> Optional[models.OrganizationTeam]:
        return self.db.query(models.OrganizationTeam).filter(models.OrganizationTeam.id == team_id).first()

    def count(self, organization_id: uuid.UUID) -> int:
        return (
            self.db.query(func.count(models.OrganizationTeam.id))
            .filter(models.OrganizationTeam.organization_id == organization_id)
            .scalar()
            or 0
        )

    def list(self, organization_id: uuid.UUID, *, offset: int, limit: int) -> Tuple[List[models.OrganizationTeam], int]:
        query = self.db.query(models.OrganizationTeam).filter(models.OrganizationTeam.organization_id == organization_id)
        return _paginate(query, offset, limit, models.OrganizationTeam.name, models.OrganizationTeam.id)

    def update(self, team: models.OrganizationTeam, changes: Dict[str, Any]) -> models.OrganizationTeam:
        _apply_changes(team, changes)
        _flush(self.db, "organization_team")
        return team

    def delete(self, team: models.OrganizationTeam) -> None:
        self.db.delete(team)
        self.db.flush()

    def add_member(self, team_id: uuid.UUID, member_id: uuid.UUID) -> models.OrganizationTeamMember:
        team_member = models.OrganizationTeamMember(team_id=team_id, member_id=member_id)
        self.db.add(team_member)
        _flush(self.db, "organization_team_member")
        return team_member

    def find_member(self, team_id: uuid.UUID, member_id: uuid.UUID) -> Optional[models.OrganizationTeamMember]:
        return (
            self.db.query(models.OrganizationTeamMember)
            .filter(
                models.OrganizationTeamMember.team_id == team_id,
                models.OrganizationTeamMember.member_id == member_id,
            )
            .first()
        )

    def remove_member(self, team_member: models.OrganizationTeamMember) -> None:
        self.db.delete(team_member)
        self.db.flush()

    def list_members(self, team_id: uuid.UUID, *, offset: int, limit: int) -> Tuple[List[models.OrganizationTeamMember], int]:
        query = self.db.query(models.OrganizationTeamMember).filter(models.OrganizationTeamMember.team_id == team_id)
        return _paginate(query, offset, limit, models.OrganizationTeamMember.joined_at, models.OrganizationTeamMember.id)


def _invitation_status_clause(status: str, now: Optional[datetime]):
    """Filter on effective status: pending rows past expiry count as expired."""
    inv = models.OrganizationInvitation
    if now is None:
        return inv.status == status
    if status == "expired":
        return or_(inv.status == "expired", and_(inv.status == "pending", inv.expires_at <= now))
    if status == "pending":
        return and_(inv.status == "pending", inv.expires_at > now)
    return inv.status == status


class SqlInvitationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields: Any) -> models.OrganizationInvitation:
        invitation = models.OrganizationInvitation(**fields)
        self.db.add(invitation)
        _flush(self.db, "organization_invitation")
        return invitation

    def get(self, invitation_id: uuid.UUID) -> Optional[models.OrganizationInvitation]:
        return (
            self.db.query(models.OrganizationInvitation)
            .filter(models.OrganizationInvitation.id == invitation_id)
            .first()
        )

    def get_by_token(self, token: str) -> Optional[models.OrganizationInvitation]:
        return (
            self.db.query(models.OrganizationInvitation)
            .filter(models.OrganizationInvitation.token == token)
            .first()
        )

    def list_pending_for_email(self, organization_id: uuid.UUID, email: str) -> List[models.OrganizationInvitation]:
        return (
            self.db.query(models.OrganizationInvitation)
            .filter(
                models.OrganizationInvitation.organization_id == organization_id,
                models.OrganizationInvitation.email == email,
                models.OrganizationInvitation.status == "pending",
            )
            .all()
        )

    def list(
        self,
        organization_id: uuid.UUID,
        *,
        offset: int,
        limit: int,
        statuses: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[List[models.OrganizationInvitation], int]:
        query = self.db.query(models.OrganizationInvitation).filter(
            models.OrganizationInvitation.organization_id == organization_id
        )
        if statuses:
            query = query.filter(or_(*[_invitation_status_clause(status, now) for status in statuses]))
        return _paginate(
            query,
            offset,
            limit,
            models.OrganizationInvitation.created_at.desc(),
            models.OrganizationInvitation.id,
        )

    def update(self, invitation: models.OrganizationInvitation, changes: Dict[str, Any]) -> models.OrganizationInvitation:
        _apply_changes(invitation, changes)
        _flush(self.db, "organization_invitation")
        return invitation

    def transition(
        self, invitation: models.OrganizationInvitation, from_status: str, changes: Dict[str, Any]
    ) -> bool:
        """Apply ``changes`` only if the row still holds ``from_status``."""
        try:
            updated = (
                self.db.query(models.OrganizationInvitation)
                .filter(
                    models.OrganizationInvitation.id == invitation.id,
                    models.OrganizationInvitation.status == from_status,
                )
                .update(changes, synchronize_session=False)
            )
        except IntegrityError as exc:
            raise DuplicateRecordError(
                "organization_invitation violates a uniqueness constraint",
                details={"entity": "organization_invitation"},
            ) from exc
        if updated:
            self.db.refresh(invitation)
        return bool(updated)

    def delete_expired(self, now: datetime) -> int:
        deleted = (
            self.db.query(models.OrganizationInvitation)
            .filter(_invitation_status_clause("expired", now))
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted or 0
