"""
Admin Invitations Router
"""
from fastapi import APIRouter, Body, Depends, Query
from typing import Optional
import logging

from app.core.dependencies import Services, get_services
from app.models.invitation import InvitationConfirm

router = APIRouter(prefix="/api/admin/invitations", tags=["admin-invitations"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_invitations(
    email: Optional[str] = Query(default=None),
    services: Services = Depends(get_services)
):
    """Whole ledger newest first, or one address's invitations"""
    if email:
        invitations = await services.invitations.list_by_email(email)
    else:
        invitations = await services.invitations.list_all()
    return {"success": True, "invitations": invitations}


@router.post("/{invitation_id}/confirm")
async def confirm_invitation(
    invitation_id: str,
    data: Optional[InvitationConfirm] = Body(default=None),
    services: Services = Depends(get_services)
):
    """Confirmed temp grants are never removed on expiry"""
    invitation = await services.invitations.confirm(invitation_id, data.confirmed if data else True)
    return {"success": True, "invitation": invitation}
