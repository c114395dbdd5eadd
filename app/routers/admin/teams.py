"""
Admin Teams Router
Pooled team accounts, their live members and pending invites.
"""
from fastapi import APIRouter, Depends, Body
from typing import Optional
import logging

from app.core.dependencies import Services, get_services
from app.models.invitation import DirectInviteRequest, DirectInvitesRequest
from app.models.team import TeamCreate, TeamPublic, TeamTokenUpdate, KickMemberRequest

router = APIRouter(prefix="/api/admin/teams", tags=["admin-teams"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_teams(services: Services = Depends(get_services)):
    teams = await services.teams.list()
    return {"success": True, "teams": [TeamPublic.from_team(t) for t in teams]}


@router.post("", status_code=201)
async def create_team(data: TeamCreate, services: Services = Depends(get_services)):
    """Register a team from an exported session JSON"""
    team = await services.teams.create_from_session(data.name, data.session_data)
    return {"success": True, "team": TeamPublic.from_team(team)}


@router.put("/{team_id}/token")
async def update_token(team_id: str, data: TeamTokenUpdate, services: Services = Depends(get_services)):
    """Replace the credential and reactivate the team"""
    team = await services.teams.update_token(team_id, data.session_data)
    return {"success": True, "team": TeamPublic.from_team(team)}


@router.delete("/{team_id}")
async def delete_team(team_id: str, services: Services = Depends(get_services)):
    await services.teams.delete(team_id)
    return {"success": True}


@router.get("/{team_id}/members")
async def list_members(team_id: str, services: Services = Depends(get_services)):
    members = await services.members.list_members(team_id)
    return {"success": True, "members": members}


@router.delete("/{team_id}/members/{user_id}")
async def kick_member(
    team_id: str,
    user_id: str,
    data: Optional[KickMemberRequest] = Body(default=None),
    services: Services = Depends(get_services)
):
    """
    Remove a member. Supplying the email also clears their invitation records.
    """
    email = data.email if data else None
    deleted = await services.members.kick_member(team_id, user_id, email)
    return {"success": True, "invitations_deleted": deleted}


@router.get("/{team_id}/pending-invites")
async def list_pending_invites(team_id: str, services: Services = Depends(get_services)):
    invites = await services.members.list_pending_invites(team_id)
    return {"success": True, "invites": invites}


@router.delete("/{team_id}/pending-invites/{invite_id}")
async def revoke_pending_invite(team_id: str, invite_id: str, services: Services = Depends(get_services)):
    await services.members.revoke_pending_invite(team_id, invite_id)
    return {"success": True}


@router.post("/{team_id}/invite")
async def invite_one(team_id: str, data: DirectInviteRequest, services: Services = Depends(get_services)):
    summary = await services.members.invite_direct(team_id, [data.email])
    return {"success": summary.success_count > 0, **summary.model_dump()}


@router.post("/{team_id}/invites")
async def invite_many(team_id: str, data: DirectInvitesRequest, services: Services = Depends(get_services)):
    summary = await services.members.invite_direct(team_id, data.emails)
    return {"success": summary.success_count > 0, **summary.model_dump()}
