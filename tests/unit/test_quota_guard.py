from datetime import timedelta

import pytest

from orgspace.config import ConfigStore, OrganizationConfig
from orgspace.errors import (
    CreationDisabled,
    InvitationRequired,
    MaxMembersReached,
    MaxOrganizationsReached,
    MaxTeamsReached,
)
from orgspace.services.quota_guard import QuotaGuard


def _guard(**values) -> QuotaGuard:
    return QuotaGuard(ConfigStore(OrganizationConfig(**values)))


class TestQuotaGuard:
    def test_under_limit_passes(self):
        guard = _guard(max_organizations_per_user=2, max_members_per_organization=2, max_teams_per_organization=2)
        guard.ensure_organization_capacity(1)
        guard.ensure_member_capacity(1)
        guard.ensure_team_capacity(1)

    @pytest.mark.parametrize(
        "method,field,error",
        [
            ("ensure_organization_capacity", "max_organizations_per_user", MaxOrganizationsReached),
            ("ensure_member_capacity", "max_members_per_organization", MaxMembersReached),
            ("ensure_team_capacity", "max_teams_per_organization", MaxTeamsReached),
        ],
    )
    def test_at_limit_raises(self, method, field, error):
        guard = _guard(**{field: 2})
        with pytest.raises(error) as exc_info:
            getattr(guard, method)(2)
        assert exc_info.value.limit == 2

    def test_zero_limit_blocks_everything(self):
        guard = _guard(max_organizations_per_user=0)
        with pytest.raises(MaxOrganizationsReached):
            guard.ensure_organization_capacity(0)

    def test_feature_switches(self):
        guard = _guard(enable_user_creation=False, require_invitation=True)
        with pytest.raises(CreationDisabled):
            guard.ensure_creation_enabled()
        with pytest.raises(InvitationRequired):
            guard.ensure_direct_membership_allowed()

        open_guard = _guard()
        open_guard.ensure_creation_enabled()
        open_guard.ensure_direct_membership_allowed()

    def test_reads_live_configuration(self):
        """Updates to the store apply to the next check."""
        store = ConfigStore()
        guard = QuotaGuard(store)
        guard.ensure_team_capacity(5)
        store.update({"max_teams_per_organization": 5})
        with pytest.raises(MaxTeamsReached):
            guard.ensure_team_capacity(5)

    def test_invitation_lifetime(self):
        assert _guard(invitation_expiry_hours=24).invitation_lifetime() == timedelta(hours=24)
        assert _guard().enforce_unique_slug is True
