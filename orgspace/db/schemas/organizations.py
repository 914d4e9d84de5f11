import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from orgspace.utils.role_permissions import MemberStatusEnum, RoleEnum


def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        raise ValueError("Name must not be blank")
    return cleaned


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    logo: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: Optional[str]):
        return _clean_name(v)


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    logo: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: Optional[str]):
        return _clean_name(v)


class Organization(BaseModel):
    id: uuid.UUID
    app_id: uuid.UUID
    environment_id: uuid.UUID
    name: str
    slug: str
    logo: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("metadata_col", "metadata"))
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class OrganizationDetail(Organization):
    member_count: int = 0


class OrganizationMemberCreate(BaseModel):
    user_id: uuid.UUID
    role: RoleEnum = RoleEnum.member
    display_name: Optional[str] = None


class OrganizationMemberUpdate(BaseModel):
    role: Optional[str] = None
    status: Optional[str] = None


class OrganizationMember(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID
    role: RoleEnum
    status: MemberStatusEnum
    display_name: Optional[str] = None
    joined_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    provisioned_by: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: Optional[str]):
        return _clean_name(v)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: Optional[str]):
        return _clean_name(v)


class Team(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    description: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("metadata_col", "metadata"))
    provisioned_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TeamMutationResult(BaseModel):
    team: Team
    warning: Optional[str] = None


class TeamMemberAdd(BaseModel):
    member_id: uuid.UUID


class TeamMember(BaseModel):
    id: uuid.UUID
    team_id: uuid.UUID
    member_id: uuid.UUID
    joined_at: datetime
    model_config = ConfigDict(from_attributes=True)


class OrganizationInvitationCreate(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    role: RoleEnum = RoleEnum.member


class OrganizationInvitation(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    email: str
    role: str
    status: str
    inviter_id: uuid.UUID
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class OrganizationInvitationWithToken(OrganizationInvitation):
    """Returned only to the inviter so the token can be delivered out of band."""
    token: str


class InvitationPreview(BaseModel):
    """Public view of an invitation, served to the invitee by token."""
    organization_id: uuid.UUID
    organization_name: str
    email: str
    role: str
    status: str
    expires_at: datetime


class InvitationAccept(BaseModel):
    display_name: Optional[str] = None


class Page(BaseModel):
    total: int
    limit: int
    page: int
    total_pages: int
    has_next: bool
    has_prev: bool


class OrganizationPage(Page):
    items: List[Organization]


class OrganizationMemberPage(Page):
    items: List[OrganizationMember]


class TeamPage(Page):
    items: List[Team]


class TeamMemberPage(Page):
    items: List[TeamMember]


class OrganizationInvitationPage(Page):
    items: List[OrganizationInvitation]
