import uuid

import pytest

from orgspace.db import models
from orgspace.errors import (
    MaxTeamsReached,
    MemberNotFound,
    NotAdmin,
    NotMember,
    OrganizationNotFound,
    TeamMemberAlreadyExists,
    TeamMemberNotFound,
    TeamNotFound,
)


class TestCreateTeam:
    def test_any_member_can_create(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        plain = member_factory(org)
        team = org_engine.create_team(org.id, "Design", plain.user_id, description="UI folks", metadata={"color": "red"})
        assert team.organization_id == org.id
        assert team.description == "UI folks"
        assert team.metadata_col == {"color": "red"}
        assert org_engine.team_warning(team) is None

    def test_non_member_refused(self, org_engine, organization_factory):
        org = organization_factory()
        with pytest.raises(NotMember):
            org_engine.create_team(org.id, "Design", uuid.uuid4())

    def test_suspended_member_refused(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        member = member_factory(org)
        org_engine.update_member(member.id, org.created_by, status="suspended")
        with pytest.raises(NotMember):
            org_engine.create_team(org.id, "Design", member.user_id)

    def test_unknown_organization(self, org_engine):
        with pytest.raises(OrganizationNotFound):
            org_engine.create_team(uuid.uuid4(), "Design", uuid.uuid4())

    def test_team_ceiling(self, org_engine, config_store, organization_factory, db_session):
        config_store.update({"max_teams_per_organization": 1})
        org = organization_factory()
        org_engine.create_team(org.id, "One", org.created_by)
        with pytest.raises(MaxTeamsReached):
            org_engine.create_team(org.id, "Two", org.created_by)
        assert db_session.query(models.OrganizationTeam).count() == 1


class TestTeamMutations:
    def test_update_requires_admin(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        plain = member_factory(org)
        team = org_engine.create_team(org.id, "Ops", plain.user_id)
        with pytest.raises(NotAdmin):
            org_engine.update_team(team.id, plain.user_id, name="Renamed")
        updated = org_engine.update_team(team.id, org.created_by, name="Renamed", description="On call")
        assert updated.name == "Renamed"
        assert updated.description == "On call"

    def test_provisioned_team_mutation_warns(self, org_engine, organization_factory, caplog):
        org = organization_factory()
        team = org_engine.create_team(org.id, "Synced", org.created_by, provisioned_by="scim")
        assert "provisioned by scim" in org_engine.team_warning(team)

        with caplog.at_level("WARNING"):
            org_engine.update_team(team.id, org.created_by, description="edited locally")
        assert "provisioned_team_mutated" in caplog.text
        assert org_engine.get_team(team.id).description == "edited locally"

    def test_delete_team_cascades_memberships(self, org_engine, organization_factory, member_factory, db_session):
        org = organization_factory()
        member = member_factory(org)
        team = org_engine.create_team(org.id, "Ops", org.created_by)
        org_engine.add_team_member(team.id, member.id, org.created_by)

        org_engine.delete_team(team.id, org.created_by)

        with pytest.raises(TeamNotFound):
            org_engine.get_team(team.id)
        assert db_session.query(models.OrganizationTeamMember).count() == 0
        assert org_engine.get_member(member.id).status == "active"

    def test_delete_requires_admin(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        plain = member_factory(org)
        team = org_engine.create_team(org.id, "Ops", plain.user_id)
        with pytest.raises(NotAdmin):
            org_engine.delete_team(team.id, plain.user_id)

    def test_admin_of_other_org_has_no_reach(self, org_engine, organization_factory):
        org = organization_factory()
        other = organization_factory()
        team = org_engine.create_team(org.id, "Ops", org.created_by)
        with pytest.raises(NotAdmin):
            org_engine.delete_team(team.id, other.created_by)


class TestTeamMembership:
    def test_add_list_remove(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        member = member_factory(org)
        team = org_engine.create_team(org.id, "Ops", org.created_by)

        team_member = org_engine.add_team_member(team.id, member.id, org.created_by)
        assert team_member.member_id == member.id

        page = org_engine.list_team_members(team.id)
        assert [tm.member_id for tm in page.items] == [member.id]

        org_engine.remove_team_member(team.id, member.id, org.created_by)
        assert org_engine.list_team_members(team.id).total == 0

    def test_duplicate_team_member(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        member = member_factory(org)
        team = org_engine.create_team(org.id, "Ops", org.created_by)
        org_engine.add_team_member(team.id, member.id, org.created_by)
        with pytest.raises(TeamMemberAlreadyExists):
            org_engine.add_team_member(team.id, member.id, org.created_by)

    def test_member_of_other_organization_refused(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        other = organization_factory()
        outsider = member_factory(other)
        team = org_engine.create_team(org.id, "Ops", org.created_by)
        with pytest.raises(MemberNotFound):
            org_engine.add_team_member(team.id, outsider.id, org.created_by)

    def test_remove_absent_team_member(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        member = member_factory(org)
        team = org_engine.create_team(org.id, "Ops", org.created_by)
        with pytest.raises(TeamMemberNotFound):
            org_engine.remove_team_member(team.id, member.id, org.created_by)

    def test_plain_member_cannot_manage_roster(self, org_engine, organization_factory, member_factory):
        org = organization_factory()
        plain = member_factory(org)
        team = org_engine.create_team(org.id, "Ops", org.created_by)
        with pytest.raises(NotAdmin):
            org_engine.add_team_member(team.id, plain.id, plain.user_id)

    def test_list_teams_sorted_by_name(self, org_engine, organization_factory):
        org = organization_factory()
        for name in ["Zeta", "Alpha", "Mid"]:
            org_engine.create_team(org.id, name, org.created_by)
        page = org_engine.list_teams(org.id)
        assert [t.name for t in page.items] == ["Alpha", "Mid", "Zeta"]
        assert org_engine.list_teams(organization_factory().id).total == 0

    def test_list_members_of_unknown_team(self, org_engine):
        with pytest.raises(TeamNotFound):
            org_engine.list_team_members(uuid.uuid4())
