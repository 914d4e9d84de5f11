"""
Organization lifecycle manager.

Creation writes the organization and its owner membership as one unit.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from orgspace.db import models
from orgspace.db.repositories.interfaces import OrganizationRepository
from orgspace.db.unit_of_work import UnitOfWork
from orgspace.errors import DuplicateRecordError, NotOwner, OrganizationNotFound, SlugAlreadyExists
from orgspace.services.member_service import MembershipService
from orgspace.services.quota_guard import QuotaGuard
from orgspace.utils.pagination import Page, PageRequest
from orgspace.utils.role_permissions import ROLE_OWNER


logger = logging.getLogger(__name__)


class OrganizationService:
    def __init__(
        self,
        organizations: OrganizationRepository,
        memberships: MembershipService,
        uow: UnitOfWork,
        quota: QuotaGuard,
    ):
        self.organizations = organizations
        self.memberships = memberships
        self.uow = uow
        self.quota = quota

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
        self.quota.ensure_creation_enabled()
        self.quota.ensure_organization_capacity(self.organizations.count_created_by(creator_user_id))
        if self.quota.enforce_unique_slug and self.organizations.get_by_slug(app_id, environment_id, slug) is not None:
            raise SlugAlreadyExists(details={"slug": slug})

        with self.uow.atomic():
            try:
                organization = self.organizations.create(
                    app_id=app_id,
                    environment_id=environment_id,
                    name=name,
                    slug=slug,
                    logo=logo,
                    metadata_col=dict(metadata or {}),
                    created_by=creator_user_id,
                )
            except DuplicateRecordError as exc:
                raise SlugAlreadyExists(details={"slug": slug}) from exc
            self.memberships.add_member(organization.id, creator_user_id, ROLE_OWNER, allow_owner=True)

        logger.info(
            "organization_created: org_id=%s slug=%s creator=%s app_id=%s env_id=%s",
            organization.id, slug, creator_user_id, app_id, environment_id,
        )
        return organization

    def update_organization(
        self,
        organization_id: uuid.UUID,
        name: Optional[str] = None,
        logo: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> models.Organization:
        changes: Dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if logo is not None:
            changes["logo"] = logo
        if metadata is not None:
            changes["metadata_col"] = dict(metadata)

        with self.uow.atomic():
            organization = self.get_organization(organization_id)
            if changes:
                self.organizations.update(organization, changes)
        logger.info("organization_updated: org_id=%s fields=%s", organization_id, sorted(changes))
        return organization

    def delete_organization(self, organization_id: uuid.UUID, requester_user_id: uuid.UUID) -> None:
        with self.uow.atomic():
            organization = self.get_organization(organization_id)
            if not self.memberships.is_owner(organization_id, requester_user_id):
                logger.warning(
                    "organization_delete_denied: org_id=%s requester=%s", organization_id, requester_user_id
                )
                raise NotOwner(details={"organization_id": str(organization_id)})
            self.organizations.delete(organization)
        logger.info("organization_deleted: org_id=%s requester=%s", organization_id, requester_user_id)

    def get_organization(self, organization_id: uuid.UUID) -> models.Organization:
        organization = self.organizations.get(organization_id)
        if organization is None:
            raise OrganizationNotFound(details={"organization_id": str(organization_id)})
        return organization

    def find_organization_by_slug(
        self, app_id: uuid.UUID, environment_id: uuid.UUID, slug: str
    ) -> Optional[models.Organization]:
        return self.organizations.get_by_slug(app_id, environment_id, slug)

    def list_organizations(
        self, app_id: uuid.UUID, environment_id: uuid.UUID, page: Optional[PageRequest] = None
    ) -> Page:
        request = (page or PageRequest()).normalized()
        items, total = self.organizations.list_for_scope(
            app_id, environment_id, offset=request.offset, limit=request.limit
        )
        return Page.build(items, total, request)

    def list_user_organizations(self, user_id: uuid.UUID, page: Optional[PageRequest] = None) -> Page:
        request = (page or PageRequest()).normalized()
        items, total = self.organizations.list_for_user(user_id, offset=request.offset, limit=request.limit)
        return Page.build(items, total, request)
