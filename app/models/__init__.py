# Models module for SeatPool API
from app.models.team import (
    Team, TeamPublic, TeamCreate, TeamTokenUpdate, TokenStatus,
    RemoteMember, PendingInvite, MemberView, KickMemberRequest
)
from app.models.access_key import AccessKey, AccessKeyGenerate
from app.models.invitation import (
    Invitation, InvitationStatus, InvitationConfirm,
    JoinRequest, JoinResult,
    DirectInviteRequest, DirectInvitesRequest, DirectInviteResult, DirectInviteSummary
)
from app.models.auto_kick import AutoKickConfig, KickLog, TickReport
