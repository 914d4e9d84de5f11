"""
Membership manager.

Owns member creation (also used by organization creation and invitation
acceptance), role/status updates, removal and the authorization predicates
every other manager gates on.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from orgspace.db import models
from orgspace.db.repositories.interfaces import MemberRepository, OrganizationRepository
from orgspace.db.unit_of_work import UnitOfWork
from orgspace.errors import (
    CannotRemoveOwner,
    DuplicateRecordError,
    MemberAlreadyExists,
    MemberNotFound,
    NotAdmin,
    NotMember,
    NotOwner,
    OrganizationNotFound,
    OwnerRoleReserved,
)
from orgspace.services.quota_guard import QuotaGuard
from orgspace.utils.pagination import Page, PageRequest
from orgspace.utils.role_permissions import (
    ROLE_OWNER,
    STATUS_ACTIVE,
    ensure_not_promoted_to_owner,
    ensure_owner_untouched,
    role_allows_manage,
    validate_role,
    validate_status,
)
from orgspace.utils.timeutil import Clock, current_time


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListMembersFilter:
    organization_id: uuid.UUID
    page: PageRequest = field(default_factory=PageRequest)
    role: Optional[str] = None


@dataclass
class MembershipPurgeResult:
    removed: int = 0
    retained_owner_of: List[uuid.UUID] = field(default_factory=list)


class MembershipService:
    def __init__(
        self,
        members: MemberRepository,
        organizations: OrganizationRepository,
        uow: UnitOfWork,
        quota: QuotaGuard,
        clock: Optional[Clock] = None,
    ):
        self.members = members
        self.organizations = organizations
        self.uow = uow
        self.quota = quota
        self.clock = clock

    # ------------------------------------------------------------------
    # Predicates (fail closed)
    # ------------------------------------------------------------------

    def _active_membership(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.OrganizationMember]:
        try:
            member = self.members.find(organization_id, user_id)
        except Exception:
            # Lookup failures never grant access
            logger.warning(
                "membership_lookup_failed: org_id=%s user_id=%s", organization_id, user_id, exc_info=True
            )
            return None
        if member is None or member.status != STATUS_ACTIVE:
            return None
        return member

    def is_member(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return self._active_membership(organization_id, user_id) is not None

    def is_admin(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        member = self._active_membership(organization_id, user_id)
        return member is not None and role_allows_manage(member.role)

    def is_owner(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        member = self._active_membership(organization_id, user_id)
        return member is not None and member.role == ROLE_OWNER

    def require_member(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> None:
        if not self.is_member(organization_id, user_id):
            logger.debug("membership_denied: org_id=%s user_id=%s required=member", organization_id, user_id)
            raise NotMember(details={"organization_id": str(organization_id)})

    def require_admin(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> None:
        if not self.is_admin(organization_id, user_id):
            logger.debug("membership_denied: org_id=%s user_id=%s required=admin", organization_id, user_id)
            raise NotAdmin(details={"organization_id": str(organization_id)})

    def require_owner(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> None:
        if not self.is_owner(organization_id, user_id):
            logger.debug("membership_denied: org_id=%s user_id=%s required=owner", organization_id, user_id)
            raise NotOwner(details={"organization_id": str(organization_id)})

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_member(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str,
        display_name: Optional[str] = None,
        *,
        allow_owner: bool = False,
    ) -> models.OrganizationMember:
        """Create an active membership.

        ``allow_owner`` is reserved for organization creation; every other
        path is refused the owner role.
        """
        with self.uow.atomic():
            if self.organizations.get(organization_id) is None:
                raise OrganizationNotFound(details={"organization_id": str(organization_id)})
            validate_role(role)
            if role == ROLE_OWNER and not allow_owner:
                raise OwnerRoleReserved()
            if self.members.find(organization_id, user_id) is not None:
                raise MemberAlreadyExists(details={"organization_id": str(organization_id), "user_id": str(user_id)})
            self.quota.ensure_member_capacity(self.members.count(organization_id))
            try:
                member = self.members.create(
                    organization_id=organization_id,
                    user_id=user_id,
                    role=role,
                    status=STATUS_ACTIVE,
                    display_name=display_name,
                    joined_at=current_time(self.clock),
                )
            except DuplicateRecordError as exc:
                raise MemberAlreadyExists(
                    details={"organization_id": str(organization_id), "user_id": str(user_id)}
                ) from exc
        logger.info("member_added: org_id=%s user_id=%s role=%s", organization_id, user_id, role)
        return member

    def add_member_directly(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str,
        adder_user_id: uuid.UUID,
        display_name: Optional[str] = None,
    ) -> models.OrganizationMember:
        """Admin-initiated membership without an invitation."""
        if self.organizations.get(organization_id) is None:
            raise OrganizationNotFound(details={"organization_id": str(organization_id)})
        self.require_admin(organization_id, adder_user_id)
        self.quota.ensure_direct_membership_allowed()
        return self.add_member(organization_id, user_id, role, display_name=display_name)

    def update_member(
        self,
        member_id: uuid.UUID,
        updater_user_id: uuid.UUID,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> models.OrganizationMember:
        with self.uow.atomic():
            member = self.get_member(member_id)
            # Owner protection comes before the updater's own privilege
            try:
                ensure_owner_untouched(member.role, role, status)
            except CannotRemoveOwner:
                logger.warning(
                    "owner_mutation_denied: member_id=%s updater=%s role=%s status=%s",
                    member_id, updater_user_id, role, status,
                )
                raise
            self.require_admin(member.organization_id, updater_user_id)
            changes = {}
            if role is not None:
                validate_role(role)
                ensure_not_promoted_to_owner(member.role, role)
                changes["role"] = role
            if status is not None:
                validate_status(status)
                changes["status"] = status
            if changes:
                self.members.update(member, changes)
        logger.info("member_updated: member_id=%s changes=%s", member_id, changes)
        return member

    def remove_member(self, member_id: uuid.UUID, remover_user_id: uuid.UUID) -> None:
        with self.uow.atomic():
            member = self.get_member(member_id)
            if member.role == ROLE_OWNER:
                logger.warning("owner_removal_denied: member_id=%s remover=%s", member_id, remover_user_id)
                raise CannotRemoveOwner()
            self.require_admin(member.organization_id, remover_user_id)
            organization_id = member.organization_id
            self.members.delete(member)
        logger.info("member_removed: org_id=%s member_id=%s", organization_id, member_id)

    def remove_user_from_all_organizations(self, user_id: uuid.UUID) -> MembershipPurgeResult:
        """Drop every non-owner membership of a user; owner rows are kept."""
        result = MembershipPurgeResult()
        with self.uow.atomic():
            for member in self.members.all_for_user(user_id):
                if member.role == ROLE_OWNER:
                    result.retained_owner_of.append(member.organization_id)
                    continue
                self.members.delete(member)
                result.removed += 1
        logger.info(
            "user_memberships_removed: user_id=%s removed=%s retained_owner=%s",
            user_id, result.removed, len(result.retained_owner_of),
        )
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_member(self, member_id: uuid.UUID) -> models.OrganizationMember:
        member = self.members.get(member_id)
        if member is None:
            raise MemberNotFound(details={"member_id": str(member_id)})
        return member

    def find_member(self, organization_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.OrganizationMember]:
        return self.members.find(organization_id, user_id)

    def list_members(self, filter: ListMembersFilter) -> Page:
        if filter.role is not None:
            validate_role(filter.role)
        request = filter.page.normalized()
        items, total = self.members.list(
            filter.organization_id,
            offset=request.offset,
            limit=request.limit,
            search=request.search,
            role=filter.role,
        )
        return Page.build(items, total, request)

    def list_user_memberships(self, user_id: uuid.UUID, page: Optional[PageRequest] = None) -> Page:
        request = (page or PageRequest()).normalized()
        items, total = self.members.list_for_user(user_id, offset=request.offset, limit=request.limit)
        return Page.build(items, total, request)

    def count_members(self, organization_id: uuid.UUID) -> int:
        """Member count for display; a failed lookup reads as zero."""
        try:
            return self.members.count(organization_id)
        except Exception:
            logger.warning("member_count_failed: org_id=%s", organization_id, exc_info=True)
            return 0
