"""
Repository layer for the organization engine.

`interfaces` holds the persistence contracts the services depend on;
`organizations` provides their SQLAlchemy implementations.
"""

from .organizations import (
    SqlInvitationRepository,
    SqlMemberRepository,
    SqlOrganizationRepository,
    SqlTeamRepository,
)

__all__ = [
    "SqlInvitationRepository",
    "SqlMemberRepository",
    "SqlOrganizationRepository",
    "SqlTeamRepository",
]
