from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class TokenStatus(str, Enum):
    """Credential state of a pooled team"""
    ACTIVE = "active"
    EXPIRED = "expired"   # Remote service rejected the token


class Team(BaseModel):
    """A pooled account on the remote collaboration service"""
    id: str
    name: str
    account_id: str
    access_token: str
    organization_id: Optional[str] = None
    email: Optional[str] = None
    token_status: TokenStatus = TokenStatus.ACTIVE
    token_error_count: int = 0
    member_count: int = 0
    last_invite_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_expired(self) -> bool:
        return self.token_status == TokenStatus.EXPIRED


class TeamPublic(BaseModel):
    """Team as shown to administrators (credential omitted)"""
    id: str
    name: str
    account_id: str
    organization_id: Optional[str] = None
    email: Optional[str] = None
    token_status: TokenStatus
    token_error_count: int
    member_count: int
    last_invite_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_team(cls, team: Team) -> "TeamPublic":
        return cls(**team.model_dump(exclude={"access_token"}))


class TeamCreate(BaseModel):
    """Schema para registrar un team a partir de la sesion exportada"""
    name: str = Field(..., min_length=1, max_length=100)
    session_data: str = Field(..., description="Session JSON with accessToken and account id")


class TeamTokenUpdate(BaseModel):
    session_data: str


class RemoteMember(BaseModel):
    """Member as reported by the remote service"""
    id: str
    email: str
    role: Optional[str] = None
    created_at: Optional[datetime] = None
    raw: dict = Field(default_factory=dict)


class PendingInvite(BaseModel):
    """Outstanding invite as reported by the remote service"""
    id: str
    email: str
    role: Optional[str] = None
    created_at: Optional[datetime] = None
    raw: dict = Field(default_factory=dict)


class MemberView(BaseModel):
    """Live member enriched with the local join time"""
    id: str
    email: str
    role: Optional[str] = None
    joined_at: Optional[datetime] = None


class KickMemberRequest(BaseModel):
    email: Optional[str] = None
