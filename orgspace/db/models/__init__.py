"""
SQLAlchemy models.

Exposes `Base`, `now_utc`, and the organization ORM classes.
"""

from .base import Base, now_utc  # re-export

from .organizations import (
    Organization,
    OrganizationMember,
    OrganizationTeam,
    OrganizationTeamMember,
    OrganizationInvitation,
)

__all__ = [
    "Base",
    "now_utc",
    "Organization",
    "OrganizationMember",
    "OrganizationTeam",
    "OrganizationTeamMember",
    "OrganizationInvitation",
]
