import uuid
from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Organization(Base):
    __tablename__ = 'organizations'
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    app_id = Column(Uuid, nullable=False)
    environment_id = Column(Uuid, nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    logo = Column(Text, nullable=True)
    metadata_col = Column('metadata', JSON, nullable=False, default=dict)
    created_by = Column(Uuid, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    members = relationship('OrganizationMember', back_populates='organization', cascade='all, delete-orphan')
    teams = relationship('OrganizationTeam', back_populates='organization', cascade='all, delete-orphan')
    invitations = relationship('OrganizationInvitation', back_populates='organization', cascade='all, delete-orphan')

    __table_args__ = (
        UniqueConstraint('app_id', 'environment_id', 'slug', name='uq_organizations_scope_slug'),
        Index('ix_organizations_created_by', 'created_by'),
    )


class OrganizationMember(Base):
    __tablename__ = 'organization_members'
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Uuid, nullable=False)
    role = Column(String(20), nullable=False)  # owner|admin|member
    status = Column(String(20), nullable=False, default='active')  # active|suspended|pending
    display_name = Column(String(255), nullable=True)
    joined_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    organization = relationship('Organization', back_populates='members')
    team_memberships = relationship('OrganizationTeamMember', back_populates='member', cascade='all, delete-orphan')

    __table_args__ = (
        UniqueConstraint('organization_id', 'user_id', name='uq_organization_members_org_user'),
        # Owner singleton: at most one owner row per organization
        Index(
            'uq_organization_members_owner',
            'organization_id',
            unique=True,
            sqlite_where=text("role = 'owner'"),
            postgresql_where=text("role = 'owner'"),
        ),
        Index('ix_organization_members_user_id', 'user_id'),
        CheckConstraint("role in ('owner','admin','member')", name='ck_organization_members_role'),
        CheckConstraint("status in ('active','suspended','pending')", name='ck_organization_members_status'),
    )


class OrganizationTeam(Base):
    __tablename__ = 'organization_teams'
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default='')
    metadata_col = Column('metadata', JSON, nullable=False, default=dict)
    provisioned_by = Column(String(64), nullable=True)  # e.g. 'scim' when synced externally
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    organization = relationship('Organization', back_populates='teams')
    members = relationship('OrganizationTeamMember', back_populates='team', cascade='all, delete-orphan')

    __table_args__ = (
        Index('ix_organization_teams_organization_id', 'organization_id'),
    )


class OrganizationTeamMember(Base):
    __tablename__ = 'organization_team_members'
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey('organization_teams.id', ondelete='CASCADE'), nullable=False)
    member_id = Column(Uuid, ForeignKey('organization_members.id', ondelete='CASCADE'), nullable=False)
    joined_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    team = relationship('OrganizationTeam', back_populates='members')
    member = relationship('OrganizationMember', back_populates='team_memberships')

    __table_args__ = (
        UniqueConstraint('team_id', 'member_id', name='uq_organization_team_members_team_member'),
        Index('ix_organization_team_members_member_id', 'member_id'),
    )


class OrganizationInvitation(Base):
    __tablename__ = 'organization_invitations'
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    email = Column(String(320), nullable=False)
    role = Column(String(20), nullable=False)
    token = Column(String(64), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default='pending')  # pending|accepted|declined|expired|cancelled
    inviter_id = Column(Uuid, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    organization = relationship('Organization', back_populates='invitations')

    __table_args__ = (
        Index('ix_organization_invitations_email', 'email'),
        Index('ix_organization_invitations_organization_id', 'organization_id'),
        CheckConstraint("role in ('admin','member')", name='ck_organization_invitations_role'),
        CheckConstraint(
            "status in ('pending','accepted','declined','expired','cancelled')",
            name='ck_organization_invitations_status',
        ),
    )
