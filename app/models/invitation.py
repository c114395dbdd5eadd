"""
Invitation ledger models
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


class InvitationStatus(str, Enum):
    """Estados de una invitacion"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Invitation(BaseModel):
    """One admission event for (team, email)"""
    id: str
    team_id: str
    email: str
    key_code: Optional[str] = None    # None for admin direct invites
    status: InvitationStatus
    is_temp: bool = False
    temp_expire_at: Optional[datetime] = None
    is_confirmed: bool = False        # Exempt from expiry-based removal
    created_at: datetime

    def is_expired_grant(self, now: datetime) -> bool:
        """Temp success grant past its expiry and not confirmed"""
        return (
            self.status == InvitationStatus.SUCCESS
            and self.is_temp
            and not self.is_confirmed
            and self.temp_expire_at is not None
            and self.temp_expire_at <= now
        )


class InvitationConfirm(BaseModel):
    confirmed: bool = True


class JoinRequest(BaseModel):
    """Public join request"""
    email: EmailStr
    key_code: str = Field(..., min_length=1)


class JoinResult(BaseModel):
    team_id: str
    team_name: str
    email: str
    already_member: bool = False
    invitation_id: str


class DirectInviteRequest(BaseModel):
    email: str


class DirectInvitesRequest(BaseModel):
    emails: List[str] = Field(..., min_length=1)


class DirectInviteResult(BaseModel):
    email: str
    success: bool
    error: Optional[str] = None


class DirectInviteSummary(BaseModel):
    results: List[DirectInviteResult]
    success_count: int
    fail_count: int
