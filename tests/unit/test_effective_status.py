from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from orgspace.services.invitation_service import INVITATION_STATUSES, TERMINAL_STATUSES, effective_status


NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _invitation(status, expires_at):
    return SimpleNamespace(status=status, expires_at=expires_at)


def test_pending_before_expiry_stays_pending():
    assert effective_status(_invitation("pending", NOW + timedelta(seconds=1)), NOW) == "pending"


def test_pending_at_or_after_expiry_reads_expired():
    assert effective_status(_invitation("pending", NOW), NOW) == "expired"
    assert effective_status(_invitation("pending", NOW - timedelta(days=1)), NOW) == "expired"


def test_naive_expiry_treated_as_utc():
    naive = (NOW - timedelta(minutes=1)).replace(tzinfo=None)
    assert effective_status(_invitation("pending", naive), NOW) == "expired"


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
def test_terminal_statuses_are_unchanged(status):
    """Terminal rows never flip, even long past expiry."""
    assert effective_status(_invitation(status, NOW - timedelta(days=30)), NOW) == status


def test_status_sets():
    assert INVITATION_STATUSES == {"pending", "accepted", "declined", "expired", "cancelled"}
    assert "pending" not in TERMINAL_STATUSES
