"""
Quota guard: numeric ceilings and feature switches read from the config store.

Each check reads one configuration snapshot. Checks are count-then-act and
therefore best-effort under concurrent writers.
"""
import logging
from datetime import timedelta

from orgspace.config import ConfigStore, OrganizationConfig
from orgspace.errors import (
    CreationDisabled,
    InvitationRequired,
    MaxMembersReached,
    MaxOrganizationsReached,
    MaxTeamsReached,
)


logger = logging.getLogger(__name__)


class QuotaGuard:
    def __init__(self, config_store: ConfigStore):
        self.config_store = config_store

    @property
    def config(self) -> OrganizationConfig:
        return self.config_store.get()

    @property
    def enforce_unique_slug(self) -> bool:
        return self.config.enforce_unique_slug

    def ensure_creation_enabled(self) -> None:
        if not self.config.enable_user_creation:
            raise CreationDisabled()

    def ensure_organization_capacity(self, current_count: int) -> None:
        limit = self.config.max_organizations_per_user
        if current_count >= limit:
            logger.info("quota_exceeded: kind=organizations count=%s limit=%s", current_count, limit)
            raise MaxOrganizationsReached(limit)

    def ensure_member_capacity(self, current_count: int) -> None:
        limit = self.config.max_members_per_organization
        if current_count >= limit:
            logger.info("quota_exceeded: kind=members count=%s limit=%s", current_count, limit)
            raise MaxMembersReached(limit)

    def ensure_team_capacity(self, current_count: int) -> None:
        limit = self.config.max_teams_per_organization
        if current_count >= limit:
            logger.info("quota_exceeded: kind=teams count=%s limit=%s", current_count, limit)
            raise MaxTeamsReached(limit)

    def ensure_direct_membership_allowed(self) -> None:
        if self.config.require_invitation:
            raise InvitationRequired()

    def invitation_lifetime(self) -> timedelta:
        return timedelta(hours=self.config.invitation_expiry_hours)
