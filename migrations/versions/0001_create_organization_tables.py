"""
Create organization tables.

- organizations, unique slug per (app, environment)
- organization_members, one row per (organization, user), single owner per
  organization enforced with a partial unique index
- organization_teams and the organization_team_members join
- organization_invitations, unique token
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'orgs_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('app_id', sa.Uuid(), nullable=False),
        sa.Column('environment_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('logo', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('app_id', 'environment_id', 'slug', name='uq_organizations_scope_slug'),
    )
    op.create_index('ix_organizations_created_by', 'organizations', ['created_by'])

    op.create_table(
        'organization_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_organization_members_org_user'),
        sa.CheckConstraint("role in ('owner','admin','member')", name='ck_organization_members_role'),
        sa.CheckConstraint("status in ('active','suspended','pending')", name='ck_organization_members_status'),
    )
    op.create_index('ix_organization_members_user_id', 'organization_members', ['user_id'])
    op.create_index(
        'uq_organization_members_owner',
        'organization_members',
        ['organization_id'],
        unique=True,
        sqlite_where=sa.text("role = 'owner'"),
        postgresql_where=sa.text("role = 'owner'"),
    )

    op.create_table(
        'organization_teams',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('provisioned_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_organization_teams_organization_id', 'organization_teams', ['organization_id'])

    op.create_table(
        'organization_team_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('team_id', sa.Uuid(), sa.ForeignKey('organization_teams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('member_id', sa.Uuid(), sa.ForeignKey('organization_members.id', ondelete='CASCADE'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('team_id', 'member_id', name='uq_organization_team_members_team_member'),
    )
    op.create_index('ix_organization_team_members_member_id', 'organization_team_members', ['member_id'])

    op.create_table(
        'organization_invitations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False, unique=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('inviter_id', sa.Uuid(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("role in ('admin','member')", name='ck_organization_invitations_role'),
        sa.CheckConstraint(
            "status in ('pending','accepted','declined','expired','cancelled')",
            name='ck_organization_invitations_status',
        ),
    )
    op.create_index('ix_organization_invitations_email', 'organization_invitations', ['email'])
    op.create_index('ix_organization_invitations_organization_id', 'organization_invitations', ['organization_id'])


def downgrade() -> None:
    op.drop_index('ix_organization_invitations_organization_id', table_name='organization_invitations')
    op.drop_index('ix_organization_invitations_email', table_name='organization_invitations')
    op.drop_table('organization_invitations')
    op.drop_index('ix_organization_team_members_member_id', table_name='organization_team_members')
    op.drop_table('organization_team_members')
    op.drop_index('ix_organization_teams_organization_id', table_name='organization_teams')
    op.drop_table('organization_teams')
    op.drop_index('uq_organization_members_owner', table_name='organization_members')
    op.drop_index('ix_organization_members_user_id', table_name='organization_members')
    op.drop_table('organization_members')
    op.drop_index('ix_organizations_created_by', table_name='organizations')
    op.drop_table('organizations')
