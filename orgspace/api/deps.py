"""
API dependency helpers.

Resolves the caller and tenant scope from request headers and builds an
engine bound to the request's database session.
"""
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from orgspace.config import ConfigStore, get_config_store
from orgspace.db.database import get_db
from orgspace.services.engine import OrganizationEngine, build_engine
from orgspace.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT, PageRequest


@dataclass(frozen=True)
class TenantScope:
    app_id: uuid.UUID
    environment_id: uuid.UUID


def _parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


def get_org_config_store() -> ConfigStore:
    return get_config_store()


def get_engine(
    db: Session = Depends(get_db),
    config_store: ConfigStore = Depends(get_org_config_store),
) -> OrganizationEngine:
    return build_engine(db, config_store=config_store)


# Contract: returns the caller's user id; 401 when the header is absent or malformed.
def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> uuid.UUID:
    user_id = _parse_uuid(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user_id


def get_tenant_scope(
    x_app_id: Optional[str] = Header(default=None),
    x_environment_id: Optional[str] = Header(default=None),
) -> TenantScope:
    app_id = _parse_uuid(x_app_id)
    environment_id = _parse_uuid(x_environment_id)
    if app_id is None or environment_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-App-Id and X-Environment-Id headers are required",
        )
    return TenantScope(app_id=app_id, environment_id=environment_id)


def get_page_request(
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    page: int = Query(default=1, ge=1),
    search: Optional[str] = Query(default=None, max_length=255),
) -> PageRequest:
    return PageRequest(limit=limit, page=page, search=search)
