from datetime import datetime, timezone

import pytest

from orgspace.db import models
from scripts import cleanup_expired_invitations


@pytest.mark.integration
def test_cleanup_script_deletes_expired_invitations(org_engine, organization_factory, frozen_clock, db_session, capsys):
    frozen_clock.now = datetime(2020, 5, 1, tzinfo=timezone.utc)
    org = organization_factory()
    org_engine.invite_member(org.id, "gone@example.com", "member", org.created_by)
    org_engine.invite_member(org.id, "also-gone@example.com", "member", org.created_by)

    exit_code = cleanup_expired_invitations.main([])

    assert exit_code == 0
    assert "Deleted 2 expired invitations." in capsys.readouterr().out
    db_session.expire_all()
    assert db_session.query(models.OrganizationInvitation).count() == 0


@pytest.mark.integration
def test_cleanup_script_quiet_with_nothing_to_do(capsys):
    assert cleanup_expired_invitations.main(["--quiet"]) == 0
    assert capsys.readouterr().out == ""
