"""
Factories para sembrar datos de prueba en los stores.
"""
import json
from typing import Optional

import httpx

from app.core.dependencies import Services, build_services
from app.models.access_key import AccessKey
from app.models.team import Team
from app.services.gateways.team_api import TeamApiClient


def session_json(
    access_token: str = "tok-123",
    account_id: Optional[str] = "acct-1",
    user_id: Optional[str] = None,
    email: Optional[str] = "owner@pool.test"
) -> str:
    """Exported session blob as pasted by an administrator."""
    session = {"accessToken": access_token, "user": {}}
    if account_id:
        session["account"] = {"id": account_id}
    if user_id:
        session["user"]["id"] = user_id
    if email:
        session["user"]["email"] = email
    return json.dumps(session)


class TeamFactory:
    """Factory para crear teams de prueba."""

    _counter = 0

    @classmethod
    async def create(
        cls,
        services: Services,
        name: Optional[str] = None,
        account_id: Optional[str] = None,
        access_token: str = "tok-valid",
        advance_clock: bool = True
    ) -> Team:
        cls._counter += 1
        team = await services.teams.create(
            name=name or f"Team {cls._counter}",
            account_id=account_id or f"acct-{cls._counter}",
            access_token=access_token,
        )
        # Distinct created_at keeps the allocation order deterministic
        if advance_clock and hasattr(services.teams.clock, "advance"):
            services.teams.clock.advance(seconds=1)
        return team


class AccessKeyFactory:
    """Factory para crear claves de acceso."""

    @classmethod
    async def create(
        cls,
        services: Services,
        code: Optional[str] = None,
        is_temp: bool = False,
        is_unlimited: bool = False,
        temp_hours: Optional[int] = None,
        team_id: Optional[str] = None
    ) -> AccessKey:
        return await services.keys.create(
            code=code,
            team_id=team_id,
            is_temp=is_temp,
            is_unlimited=is_unlimited,
            temp_hours=temp_hours,
        )


def http_services(store, clock, handler) -> Services:
    """Servicios con el cliente HTTP real sobre un transporte simulado."""
    client = TeamApiClient(base_url="https://teams.test/api/", transport=httpx.MockTransport(handler))
    return build_services(store, client, clock=clock, capacity=4, timezone="UTC")
