"""
Team directory: pooled accounts, their credentials and cached seat state
"""
import json
import logging
import uuid
from typing import Any, List, Optional

from pydantic_core import to_jsonable_python

from app.core.exceptions import NotFoundError, ValidationError
from app.models.team import Team, TokenStatus
from app.storage.kv_store import KeyValueStore
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

PREFIX = "teams"


def parse_session(session_data: str) -> dict:
    """
    Pull the credential out of an exported session JSON blob.

    account id preference: account.id, then accountId, then user.id
    (user.id is often 'user-xxx' and rejected by the API, so it is last).

    Raises:
        ValidationError: malformed JSON or missing fields
    """
    try:
        session = json.loads(session_data)
    except (TypeError, ValueError):
        raise ValidationError("Invalid Session JSON")

    if not isinstance(session, dict):
        raise ValidationError("Invalid Session JSON")

    access_token = session.get("accessToken")
    if not access_token:
        raise ValidationError("Invalid Session JSON: Missing accessToken")

    account = session.get("account") or {}
    user = session.get("user") or {}
    account_id = account.get("id") or session.get("accountId") or user.get("id")
    if not account_id:
        raise ValidationError("Invalid Session JSON: Missing account.id, accountId or user.id")

    return {
        "access_token": access_token,
        "account_id": str(account_id),
        "email": user.get("email"),
        "organization_id": account.get("organization_id") or session.get("organizationId"),
    }


class TeamDirectory:
    """Persistent record of pooled teams"""

    def __init__(self, store: KeyValueStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    async def create(
        self,
        name: str,
        account_id: str,
        access_token: str,
        email: Optional[str] = None,
        organization_id: Optional[str] = None
    ) -> Team:
        now = self.clock()
        team = Team(
            id=str(uuid.uuid4()),
            name=name,
            account_id=account_id,
            access_token=access_token,
            email=email,
            organization_id=organization_id,
            created_at=now,
            updated_at=now,
        )
        await self.store.set((PREFIX, team.id), team.model_dump(mode="json"))
        logger.info(f"Team created: {team.name} ({team.id})")
        return team

    async def create_from_session(self, name: str, session_data: str) -> Team:
        session = parse_session(session_data)
        return await self.create(name=name, **session)

    async def get(self, team_id: str) -> Optional[Team]:
        data = await self.store.get((PREFIX, team_id))
        return Team.model_validate(data) if data else None

    async def require(self, team_id: str) -> Team:
        team = await self.get(team_id)
        if not team:
            raise NotFoundError("Team not found")
        return team

    async def list(self) -> List[Team]:
        """All teams, oldest first. This is the allocation scan order."""
        rows = await self.store.list((PREFIX,))
        teams = [Team.model_validate(value) for _, value in rows]
        return sorted(teams, key=lambda t: (t.created_at, t.id))

    async def update(self, team_id: str, **fields: Any) -> Team:
        """Field-level update; untouched fields keep whatever is stored"""
        fields["updated_at"] = self.clock()
        data = await self.store.patch((PREFIX, team_id), to_jsonable_python(fields))
        if data is None:
            raise NotFoundError("Team not found")
        return Team.model_validate(data)

    async def delete(self, team_id: str) -> bool:
        deleted = await self.store.delete((PREFIX, team_id))
        if deleted:
            logger.info(f"Team deleted: {team_id}")
        return deleted

    async def update_token(self, team_id: str, session_data: str) -> Team:
        session = parse_session(session_data)
        return await self.update(
            team_id,
            access_token=session["access_token"],
            token_status=TokenStatus.ACTIVE,
            token_error_count=0,
        )

    async def mark_expired(self, team_id: str) -> Optional[Team]:
        """Record an authentication failure observed from the remote service"""
        data = await self.store.increment((PREFIX, team_id), "token_error_count")
        if data is None:
            return None
        try:
            team = await self.update(team_id, token_status=TokenStatus.EXPIRED)
        except NotFoundError:
            return None
        logger.warning(f"Team {team.name} ({team_id}) token marked expired")
        return team

    async def record_member_count(self, team_id: str, member_count: int) -> Optional[Team]:
        try:
            return await self.update(team_id, member_count=member_count)
        except NotFoundError:
            return None

    async def record_invite(self, team_id: str) -> Optional[Team]:
        """Atomically take one cached seat and stamp last_invite_at"""
        data = await self.store.increment((PREFIX, team_id), "member_count")
        if data is None:
            return None
        return await self.update(team_id, last_invite_at=self.clock())
