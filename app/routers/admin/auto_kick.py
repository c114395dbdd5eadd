"""
Admin Auto-Kick Router
Reconciler configuration, kick log and manual runs.
"""
from fastapi import APIRouter, Depends, Query
import logging

from app.core.dependencies import Services, get_services
from app.models.auto_kick import AutoKickConfig

router = APIRouter(prefix="/api/admin/auto-kick", tags=["admin-auto-kick"])
logger = logging.getLogger(__name__)


@router.get("/config")
async def get_config(services: Services = Depends(get_services)):
    config = await services.auto_kick_config.get()
    return {"success": True, "config": config}


@router.post("/config")
async def save_config(config: AutoKickConfig, services: Services = Depends(get_services)):
    saved = await services.auto_kick_config.save(config)
    return {"success": True, "config": saved}


@router.get("/logs")
async def list_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    services: Services = Depends(get_services)
):
    logs = await services.kick_logs.list(limit)
    return {"success": True, "logs": logs}


@router.post("/run")
async def run_now(services: Services = Depends(get_services)):
    """Run one reconciliation tick immediately (still honors enabled and the hour window)"""
    report = await services.reconciler.tick()
    return {"success": True, "report": report}
