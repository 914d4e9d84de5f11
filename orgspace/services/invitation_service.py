"""
Invitation manager.

State machine::

    pending -> accepted | declined | expired | cancelled

All right-hand states are terminal. Expiry is lazy: ``effective_status`` is
re-derived at every read boundary and the persisted ``expired`` status is
only a best-effort cache of it.

Status transitions are conditional updates (``WHERE status = <expected>``)
so a token can only be consumed once even when two requests race.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from orgspace.db import models
from orgspace.db.repositories.interfaces import InvitationRepository, OrganizationRepository
from orgspace.db.unit_of_work import UnitOfWork
from orgspace.errors import (
    InvalidStatus,
    InvitationAlreadyExists,
    InvitationExpired,
    InvitationNotFound,
    InvitationNotPending,
    OrganizationNotFound,
)
from orgspace.services.member_service import MembershipService
from orgspace.services.quota_guard import QuotaGuard
from orgspace.utils.pagination import Page, PageRequest
from orgspace.utils.role_permissions import validate_assignable_role
from orgspace.utils.timeutil import Clock, as_utc, current_time
from orgspace.utils.token_crypto import generate_invitation_token, is_well_formed_token, token_display_prefix


logger = logging.getLogger(__name__)


class InvitationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"
    expired = "expired"
    cancelled = "cancelled"


INVITATION_STATUSES = frozenset(status.value for status in InvitationStatus)
TERMINAL_STATUSES = INVITATION_STATUSES - {InvitationStatus.pending.value}


def effective_status(invitation: models.OrganizationInvitation, now: datetime) -> str:
    """Status as observed at ``now``: a pending invitation past expiry is expired."""
    if invitation.status == InvitationStatus.pending.value and as_utc(now) >= as_utc(invitation.expires_at):
        return InvitationStatus.expired.value
    return invitation.status


@dataclass(frozen=True)
class ListInvitationsFilter:
    organization_id: uuid.UUID
    page: PageRequest = field(default_factory=PageRequest)
    status: Optional[str] = None


class InvitationService:
    def __init__(
        self,
        invitations: InvitationRepository,
        organizations: OrganizationRepository,
        memberships: MembershipService,
        uow: UnitOfWork,
        quota: QuotaGuard,
        clock: Optional[Clock] = None,
        token_generator: Callable[[], str] = generate_invitation_token,
    ):
        self.invitations = invitations
        self.organizations = organizations
        self.memberships = memberships
        self.uow = uow
        self.quota = quota
        self.clock = clock
        self.token_generator = token_generator

    def now(self) -> datetime:
        return current_time(self.clock)

    def status_of(self, invitation: models.OrganizationInvitation) -> str:
        return effective_status(invitation, self.now())

    def _persist_expiry(self, invitation: models.OrganizationInvitation) -> None:
        """Best-effort write-back of the lazily observed expiry."""
        if invitation.status != InvitationStatus.pending.value:
            return
        try:
            with self.uow.atomic():
                self.invitations.transition(
                    invitation, InvitationStatus.pending.value, {"status": InvitationStatus.expired.value}
                )
        except Exception:
            logger.warning("invitation_expiry_writeback_failed: invitation_id=%s", invitation.id, exc_info=True)
            return
        logger.info("invitation_expired: invitation_id=%s", invitation.id)

    def invite_member(
        self,
        organization_id: uuid.UUID,
        email: str,
        role: str,
        inviter_user_id: uuid.UUID,
    ) -> models.OrganizationInvitation:
        email = (email or "").strip().lower()
        with self.uow.atomic():
            if self.organizations.get(organization_id) is None:
                raise OrganizationNotFound(details={"organization_id": str(organization_id)})
            self.memberships.require_admin(organization_id, inviter_user_id)
            validate_assignable_role(role)
            now = self.now()
            for existing in self.invitations.list_pending_for_email(organization_id, email):
                if effective_status(existing, now) == InvitationStatus.pending.value:
                    raise InvitationAlreadyExists(details={"email": email, "invitation_id": str(existing.id)})
            invitation = self.invitations.create(
                organization_id=organization_id,
                email=email,
                role=role,
                token=self.token_generator(),
                status=InvitationStatus.pending.value,
                inviter_id=inviter_user_id,
                expires_at=now + self.quota.invitation_lifetime(),
            )
        logger.info(
            "invitation_created: org_id=%s invitation_id=%s role=%s token_prefix=%s",
            organization_id, invitation.id, role, token_display_prefix(invitation.token),
        )
        return invitation

    def get_invitation(self, token: str) -> models.OrganizationInvitation:
        """Look up by token, expiring it first if it is past due.

        An expired invitation raises ``InvitationExpired`` after the
        write-back has been attempted.
        """
        if not is_well_formed_token(token):
            raise InvitationNotFound()
        invitation = self.invitations.get_by_token(token)
        if invitation is None:
            raise InvitationNotFound()
        if self.status_of(invitation) == InvitationStatus.expired.value:
            self._persist_expiry(invitation)
            raise InvitationExpired(details={"invitation_id": str(invitation.id)})
        return invitation

    def find_invitation(self, invitation_id: uuid.UUID) -> models.OrganizationInvitation:
        invitation = self.invitations.get(invitation_id)
        if invitation is None:
            raise InvitationNotFound(details={"invitation_id": str(invitation_id)})
        return invitation

    def accept_invitation(
        self, token: str, user_id: uuid.UUID, display_name: Optional[str] = None
    ) -> models.OrganizationMember:
        # Lookup runs outside the unit so its expiry write-back survives
        invitation = self.get_invitation(token)
        if invitation.status != InvitationStatus.pending.value:
            raise InvitationNotPending(details={"status": invitation.status})

        with self.uow.atomic():
            claimed = self.invitations.transition(
                invitation,
                InvitationStatus.pending.value,
                {"status": InvitationStatus.accepted.value, "accepted_at": self.now()},
            )
            if not claimed:
                raise InvitationNotPending(details={"invitation_id": str(invitation.id)})
            member = self.memberships.add_member(
                invitation.organization_id, user_id, invitation.role, display_name=display_name
            )
        logger.info(
            "invitation_accepted: invitation_id=%s org_id=%s user_id=%s",
            invitation.id, invitation.organization_id, user_id,
        )
        return member

    def decline_invitation(self, token: str) -> None:
        invitation = self.get_invitation(token)
        if invitation.status != InvitationStatus.pending.value:
            raise InvitationNotPending(details={"status": invitation.status})
        with self.uow.atomic():
            declined = self.invitations.transition(
                invitation, InvitationStatus.pending.value, {"status": InvitationStatus.declined.value}
            )
            if not declined:
                raise InvitationNotPending(details={"invitation_id": str(invitation.id)})
        logger.info("invitation_declined: invitation_id=%s", invitation.id)

    def cancel_invitation(self, invitation_id: uuid.UUID, canceller_user_id: uuid.UUID) -> models.OrganizationInvitation:
        invitation = self.find_invitation(invitation_id)
        self.memberships.require_admin(invitation.organization_id, canceller_user_id)
        status = self.status_of(invitation)
        if status == InvitationStatus.expired.value:
            self._persist_expiry(invitation)
            raise InvitationExpired(details={"invitation_id": str(invitation_id)})
        if status != InvitationStatus.pending.value:
            raise InvitationNotPending(details={"status": status})
        with self.uow.atomic():
            cancelled = self.invitations.transition(
                invitation, InvitationStatus.pending.value, {"status": InvitationStatus.cancelled.value}
            )
            if not cancelled:
                raise InvitationNotPending(details={"invitation_id": str(invitation_id)})
        logger.info("invitation_cancelled: invitation_id=%s actor=%s", invitation_id, canceller_user_id)
        return invitation

    def resend_invitation(self, invitation_id: uuid.UUID, resender_user_id: uuid.UUID) -> models.OrganizationInvitation:
        """Rotate the token and restart the lifetime of a pending or expired invitation."""
        invitation = self.find_invitation(invitation_id)
        self.memberships.require_admin(invitation.organization_id, resender_user_id)
        status = self.status_of(invitation)
        if status not in (InvitationStatus.pending.value, InvitationStatus.expired.value):
            raise InvitationNotPending(details={"status": status})
        with self.uow.atomic():
            now = self.now()
            rotated = self.invitations.transition(
                invitation,
                invitation.status,
                {
                    "token": self.token_generator(),
                    "status": InvitationStatus.pending.value,
                    "expires_at": now + self.quota.invitation_lifetime(),
                },
            )
            if not rotated:
                raise InvitationNotPending(details={"invitation_id": str(invitation_id)})
        logger.info(
            "invitation_resent: invitation_id=%s token_prefix=%s",
            invitation_id, token_display_prefix(invitation.token),
        )
        return invitation

    def list_invitations(self, filter: ListInvitationsFilter) -> Page:
        if filter.status is not None and filter.status not in INVITATION_STATUSES:
            raise InvalidStatus(
                f"Invalid invitation status '{filter.status}'. Allowed statuses: {sorted(INVITATION_STATUSES)}",
                details={"status": filter.status},
            )
        request = filter.page.normalized()
        items, total = self.invitations.list(
            filter.organization_id,
            offset=request.offset,
            limit=request.limit,
            statuses=[filter.status] if filter.status else None,
            now=self.now(),
        )
        return Page.build(items, total, request)

    def cleanup_expired_invitations(self) -> int:
        """Delete expired rows and pending rows past their expiry."""
        with self.uow.atomic():
            deleted = self.invitations.delete_expired(self.now())
        logger.info("invitations_cleaned_up: deleted=%s", deleted)
        return deleted
