import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from orgspace.config import ConfigStore, OrganizationConfig, refresh_config_store
from orgspace.db import models
from orgspace.db.database import SessionLocal, engine
from orgspace.services.engine import build_engine


_ORG_ENV_VARS = [
    "ORG_CONFIG_FILE",
    "ORG_MAX_ORGANIZATIONS_PER_USER",
    "ORG_MAX_MEMBERS_PER_ORGANIZATION",
    "ORG_MAX_TEAMS_PER_ORGANIZATION",
    "ORG_ENABLE_USER_CREATION",
    "ORG_REQUIRE_INVITATION",
    "ORG_INVITATION_EXPIRY_HOURS",
    "ORG_ENFORCE_UNIQUE_SLUG",
]


class FrozenClock:
    """Callable clock the services consult instead of the wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture(scope="session", autouse=True)
def create_schema_once():
    """Create all tables once per test session (SQLite in-memory)."""
    models.Base.metadata.create_all(bind=engine)
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_data():
    """Truncate all tables between tests without dropping metadata (faster)."""
    with engine.begin() as connection:
        for table in reversed(models.Base.metadata.sorted_tables):
            connection.execute(table.delete())
    yield


@pytest.fixture(autouse=True)
def isolated_org_env(monkeypatch):
    """Keep host ORG_* settings out of the tests."""
    for name in _ORG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    refresh_config_store()
    yield
    refresh_config_store()


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def frozen_clock():
    return FrozenClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def config_store():
    return ConfigStore(OrganizationConfig())


@pytest.fixture
def org_engine(db_session: Session, config_store, frozen_clock):
    return build_engine(db_session, config_store=config_store, clock=frozen_clock)


@pytest.fixture
def app_scope():
    return uuid.uuid4(), uuid.uuid4()


@pytest.fixture
def organization_factory(org_engine, app_scope):
    def _create(owner_id=None, slug=None, name=None):
        owner_id = owner_id or uuid.uuid4()
        slug = slug or f"org-{uuid.uuid4().hex[:8]}"
        app_id, environment_id = app_scope
        return org_engine.create_organization(name or slug.title(), slug, owner_id, app_id, environment_id)
    return _create


@pytest.fixture
def member_factory(org_engine):
    """Add a member directly, acting as the organization's owner."""
    def _create(organization, role="member", user_id=None, display_name=None):
        return org_engine.add_member(
            organization.id,
            user_id or uuid.uuid4(),
            role,
            adder_user_id=organization.created_by,
            display_name=display_name,
        )
    return _create
