"""
Admin Access Keys Router
"""
from fastapi import APIRouter, Depends
import logging

from app.core.dependencies import Services, get_services
from app.core.exceptions import NotFoundError
from app.models.access_key import AccessKeyGenerate

router = APIRouter(prefix="/api/admin/keys", tags=["admin-keys"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_keys(services: Services = Depends(get_services)):
    keys = await services.keys.list()
    return {"success": True, "keys": keys}


@router.post("", status_code=201)
async def generate_keys(data: AccessKeyGenerate, services: Services = Depends(get_services)):
    if data.team_id:
        await services.teams.require(data.team_id)

    keys = await services.keys.generate(
        count=data.count,
        is_unlimited=data.is_unlimited,
        is_temp=data.is_temp,
        temp_hours=data.temp_hours,
        team_id=data.team_id,
    )
    return {"success": True, "keys": keys}


@router.delete("/{code}")
async def delete_key(code: str, services: Services = Depends(get_services)):
    if not await services.keys.delete(code):
        raise NotFoundError("Key not found")
    return {"success": True}
