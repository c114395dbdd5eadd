"""
Public join endpoint
"""
import logging
from fastapi import APIRouter, Depends

from app.core.dependencies import Services, get_services
from app.models.invitation import JoinRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["join"])


@router.post("/join")
async def join(data: JoinRequest, services: Services = Depends(get_services)):
    """
    Redeem an access key for a seat.

    Already-seated addresses get a success without a new invite.
    """
    result = await services.allocator.join(data.key_code, data.email)

    if result.already_member:
        message = f"You are already a member of {result.team_name}"
    else:
        message = "Invitation sent! Check your email."

    return {
        "success": True,
        "message": message,
        "team_name": result.team_name,
        "email": result.email,
        "already_member": result.already_member
    }
