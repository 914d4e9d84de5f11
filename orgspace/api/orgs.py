"""
Organizations API endpoints.

Thin mapping from HTTP onto the organization engine: resolve the caller,
call one engine operation, shape the response. Business rules live in the
engine; read routes apply the membership/admin predicates here.
"""
from typing import Any, Dict, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from orgspace.api.deps import (
    TenantScope,
    get_current_user_id,
    get_engine,
    get_page_request,
    get_tenant_scope,
)
from orgspace.db import schemas
from orgspace.errors import InvitationNotFound, MemberNotFound, NotAdmin, NotMember, TeamNotFound
from orgspace.services.engine import OrganizationEngine
from orgspace.services.invitation_service import ListInvitationsFilter
from orgspace.services.member_service import ListMembersFilter
from orgspace.utils.pagination import Page, PageRequest


router = APIRouter(prefix="/organizations", tags=["organizations"])
invitations_router = APIRouter(prefix="/invitations", tags=["invitations"])


def _page_payload(page: Page, schema, transform=None) -> Dict[str, Any]:
    items = [schema.model_validate(item) for item in page.items]
    if transform is not None:
        items = [transform(raw, item) for raw, item in zip(page.items, items)]
    return {
        "items": items,
        "total": page.total,
        "limit": page.limit,
        "page": page.page,
        "total_pages": page.total_pages,
        "has_next": page.has_next,
        "has_prev": page.has_prev,
    }


def _require_member(engine: OrganizationEngine, org_id: uuid.UUID, user_id: uuid.UUID) -> None:
    engine.get_organization(org_id)
    if not engine.is_member(org_id, user_id):
        raise NotMember(details={"organization_id": str(org_id)})


def _require_admin(engine: OrganizationEngine, org_id: uuid.UUID, user_id: uuid.UUID) -> None:
    engine.get_organization(org_id)
    if not engine.is_admin(org_id, user_id):
        raise NotAdmin(details={"organization_id": str(org_id)})


def _member_in_org(engine: OrganizationEngine, org_id: uuid.UUID, member_id: uuid.UUID):
    member = engine.get_member(member_id)
    if member.organization_id != org_id:
        raise MemberNotFound(details={"member_id": str(member_id)})
    return member


def _team_in_org(engine: OrganizationEngine, org_id: uuid.UUID, team_id: uuid.UUID):
    team = engine.get_team(team_id)
    if team.organization_id != org_id:
        raise TeamNotFound(details={"team_id": str(team_id)})
    return team


def _invitation_in_org(engine: OrganizationEngine, org_id: uuid.UUID, invitation_id: uuid.UUID):
    invitation = engine.find_invitation(invitation_id)
    if invitation.organization_id != org_id:
        raise InvitationNotFound(details={"invitation_id": str(invitation_id)})
    return invitation


def _invitation_view(engine: OrganizationEngine):
    def _apply(raw, item: schemas.OrganizationInvitation) -> schemas.OrganizationInvitation:
        return item.model_copy(update={"status": engine.invitation_status(raw)})
    return _apply


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

@router.post("/", status_code=status.HTTP_201_CREATED, response_model=schemas.Organization)
def create_organization(
    payload: schemas.OrganizationCreate,
    scope: TenantScope = Depends(get_tenant_scope),
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    organization = engine.create_organization(
        name=payload.name,
        slug=payload.slug,
        creator_user_id=user_id,
        app_id=scope.app_id,
        environment_id=scope.environment_id,
        logo=payload.logo,
        metadata=payload.metadata,
    )
    return schemas.Organization.model_validate(organization)


@router.get("/", response_model=schemas.OrganizationPage)
def list_my_organizations(
    user_id: uuid.UUID = Depends(get_current_user_id),
    page: PageRequest = Depends(get_page_request),
    engine: OrganizationEngine = Depends(get_engine),
):
    return _page_payload(engine.list_user_organizations(user_id, page), schemas.Organization)


@router.get("/memberships", response_model=schemas.OrganizationMemberPage)
def list_my_memberships(
    user_id: uuid.UUID = Depends(get_current_user_id),
    page: PageRequest = Depends(get_page_request),
    engine: OrganizationEngine = Depends(get_engine),
):
    return _page_payload(engine.list_user_memberships(user_id, page), schemas.OrganizationMember)


@router.get("/by-slug/{slug}", response_model=schemas.Organization)
def get_organization_by_slug(
    slug: str,
    scope: TenantScope = Depends(get_tenant_scope),
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    organization = engine.find_organization_by_slug(scope.app_id, scope.environment_id, slug)
    if organization is None or not engine.is_member(organization.id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    return schemas.Organization.model_validate(organization)


@router.get("/{org_id}", response_model=schemas.OrganizationDetail)
def get_organization(
    org_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _require_member(engine, org_id, user_id)
    organization = engine.get_organization(org_id)
    detail = schemas.OrganizationDetail.model_validate(organization)
    return detail.model_copy(update={"member_count": engine.count_members(org_id)})


@router.put("/{org_id}", response_model=schemas.Organization)
def update_organization(
    org_id: uuid.UUID,
    payload: schemas.OrganizationUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _require_admin(engine, org_id, user_id)
    organization = engine.update_organization(
        org_id, name=payload.name, logo=payload.logo, metadata=payload.metadata
    )
    return schemas.Organization.model_validate(organization)


@router.delete("/{org_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_organization(
    org_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    engine.delete_organization(org_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get("/{org_id}/members", response_model=schemas.OrganizationMemberPage)
def list_members(
    org_id: uuid.UUID,
    role: Optional[str] = Query(default=None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    page: PageRequest = Depends(get_page_request),
    engine: OrganizationEngine = Depends(get_engine),
):
    _require_member(engine, org_id, user_id)
    result = engine.list_members(ListMembersFilter(organization_id=org_id, page=page, role=role))
    return _page_payload(result, schemas.OrganizationMember)


@router.post("/{org_id}/members", status_code=status.HTTP_201_CREATED, response_model=schemas.OrganizationMember)
def add_member(
    org_id: uuid.UUID,
    payload: schemas.OrganizationMemberCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    member = engine.add_member(
        org_id, payload.user_id, payload.role.value, adder_user_id=user_id, display_name=payload.display_name
    )
    return schemas.OrganizationMember.model_validate(member)


@router.put("/{org_id}/members/{member_id}", response_model=schemas.OrganizationMember)
def update_member(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    payload: schemas.OrganizationMemberUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _member_in_org(engine, org_id, member_id)
    member = engine.update_member(member_id, user_id, role=payload.role, status=payload.status)
    return schemas.OrganizationMember.model_validate(member)


@router.delete("/{org_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _member_in_org(engine, org_id, member_id)
    engine.remove_member(member_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

@router.get("/{org_id}/teams", response_model=schemas.TeamPage)
def list_teams(
    org_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    page: PageRequest = Depends(get_page_request),
    engine: OrganizationEngine = Depends(get_engine),
):
    _require_member(engine, org_id, user_id)
    return _page_payload(engine.list_teams(org_id, page), schemas.Team)


@router.post("/{org_id}/teams", status_code=status.HTTP_201_CREATED, response_model=schemas.Team)
def create_team(
    org_id: uuid.UUID,
    payload: schemas.TeamCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    team = engine.create_team(
        org_id,
        payload.name,
        user_id,
        description=payload.description,
        metadata=payload.metadata,
        provisioned_by=payload.provisioned_by,
    )
    return schemas.Team.model_validate(team)


@router.put("/{org_id}/teams/{team_id}", response_model=schemas.TeamMutationResult)
def update_team(
    org_id: uuid.UUID,
    team_id: uuid.UUID,
    payload: schemas.TeamUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _team_in_org(engine, org_id, team_id)
    team = engine.update_team(
        team_id, user_id, name=payload.name, description=payload.description, metadata=payload.metadata
    )
    return {"team": schemas.Team.model_validate(team), "warning": engine.team_warning(team)}


@router.delete("/{org_id}/teams/{team_id}")
def delete_team(
    org_id: uuid.UUID,
    team_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    team = _team_in_org(engine, org_id, team_id)
    warning = engine.team_warning(team)
    engine.delete_team(team_id, user_id)
    return {"deleted": True, "id": str(team_id), "warning": warning}


@router.get("/{org_id}/teams/{team_id}/members", response_model=schemas.TeamMemberPage)
def list_team_members(
    org_id: uuid.UUID,
    team_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    page: PageRequest = Depends(get_page_request),
    engine: OrganizationEngine = Depends(get_engine),
):
    _require_member(engine, org_id, user_id)
    _team_in_org(engine, org_id, team_id)
    return _page_payload(engine.list_team_members(team_id, page), schemas.TeamMember)


@router.post(
    "/{org_id}/teams/{team_id}/members",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.TeamMember,
)
def add_team_member(
    org_id: uuid.UUID,
    team_id: uuid.UUID,
    payload: schemas.TeamMemberAdd,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _team_in_org(engine, org_id, team_id)
    team_member = engine.add_team_member(team_id, payload.member_id, user_id)
    return schemas.TeamMember.model_validate(team_member)


@router.delete("/{org_id}/teams/{team_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_team_member(
    org_id: uuid.UUID,
    team_id: uuid.UUID,
    member_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _team_in_org(engine, org_id, team_id)
    engine.remove_team_member(team_id, member_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Invitations (admin side)
# ---------------------------------------------------------------------------

@router.get("/{org_id}/invitations", response_model=schemas.OrganizationInvitationPage)
def list_invitations(
    org_id: uuid.UUID,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    page: PageRequest = Depends(get_page_request),
    engine: OrganizationEngine = Depends(get_engine),
):
    _require_admin(engine, org_id, user_id)
    result = engine.list_invitations(ListInvitationsFilter(organization_id=org_id, page=page, status=status_filter))
    return _page_payload(result, schemas.OrganizationInvitation, transform=_invitation_view(engine))


@router.post(
    "/{org_id}/invitations",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.OrganizationInvitationWithToken,
)
def create_invitation(
    org_id: uuid.UUID,
    payload: schemas.OrganizationInvitationCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    invitation = engine.invite_member(org_id, payload.email, payload.role.value, user_id)
    return schemas.OrganizationInvitationWithToken.model_validate(invitation)


@router.post("/{org_id}/invitations/{invitation_id}/resend", response_model=schemas.OrganizationInvitationWithToken)
def resend_invitation(
    org_id: uuid.UUID,
    invitation_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _invitation_in_org(engine, org_id, invitation_id)
    invitation = engine.resend_invitation(invitation_id, user_id)
    return schemas.OrganizationInvitationWithToken.model_validate(invitation)


@router.delete("/{org_id}/invitations/{invitation_id}", response_model=schemas.OrganizationInvitation)
def cancel_invitation(
    org_id: uuid.UUID,
    invitation_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    _invitation_in_org(engine, org_id, invitation_id)
    invitation = engine.cancel_invitation(invitation_id, user_id)
    return schemas.OrganizationInvitation.model_validate(invitation)


# ---------------------------------------------------------------------------
# Invitations (invitee side, addressed by token)
# ---------------------------------------------------------------------------

@invitations_router.get("/{token}", response_model=schemas.InvitationPreview)
def get_invitation(token: str, engine: OrganizationEngine = Depends(get_engine)):
    invitation = engine.get_invitation(token)
    organization = engine.get_organization(invitation.organization_id)
    return schemas.InvitationPreview(
        organization_id=organization.id,
        organization_name=organization.name,
        email=invitation.email,
        role=invitation.role,
        status=engine.invitation_status(invitation),
        expires_at=invitation.expires_at,
    )


@invitations_router.post("/{token}/accept", response_model=schemas.OrganizationMember)
def accept_invitation(
    token: str,
    payload: Optional[schemas.InvitationAccept] = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    engine: OrganizationEngine = Depends(get_engine),
):
    display_name = payload.display_name if payload else None
    member = engine.accept_invitation(token, user_id, display_name=display_name)
    return schemas.OrganizationMember.model_validate(member)


@invitations_router.post("/{token}/decline")
def decline_invitation(token: str, engine: OrganizationEngine = Depends(get_engine)):
    engine.decline_invitation(token)
    return {"status": "declined"}
