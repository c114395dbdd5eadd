"""
Invitation ledger: every admission attempt, keyed by (team, email)

Records live under ("invitations", id). A secondary index
("invitation_index", email, team_id, id) -> id answers "which invitations
does this address hold" without scanning the whole ledger.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic_core import to_jsonable_python

from app.core.exceptions import NotFoundError
from app.models.invitation import Invitation, InvitationStatus
from app.storage.kv_store import KeyValueStore
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

PREFIX = "invitations"
INDEX_PREFIX = "invitation_index"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _newest_first(invitations: List[Invitation]) -> List[Invitation]:
    return sorted(invitations, key=lambda inv: (inv.created_at, inv.id), reverse=True)


class InvitationLedger:
    """Append-mostly record of admissions"""

    def __init__(self, store: KeyValueStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    async def create(
        self,
        team_id: str,
        email: str,
        status: InvitationStatus = InvitationStatus.SUCCESS,
        key_code: Optional[str] = None,
        is_temp: bool = False,
        temp_expire_at: Optional[datetime] = None,
        is_confirmed: bool = False
    ) -> Invitation:
        invitation = Invitation(
            id=str(uuid.uuid4()),
            team_id=team_id,
            email=normalize_email(email),
            key_code=key_code,
            status=status,
            is_temp=is_temp,
            temp_expire_at=temp_expire_at,
            is_confirmed=is_confirmed,
            created_at=self.clock(),
        )
        await self.store.set((PREFIX, invitation.id), invitation.model_dump(mode="json"))
        await self.store.set(
            (INDEX_PREFIX, invitation.email, team_id, invitation.id),
            invitation.id
        )
        return invitation

    async def get(self, invitation_id: str) -> Optional[Invitation]:
        data = await self.store.get((PREFIX, invitation_id))
        return Invitation.model_validate(data) if data else None

    async def list_all(self) -> List[Invitation]:
        """Whole ledger, newest first"""
        rows = await self.store.list((PREFIX,))
        return _newest_first([Invitation.model_validate(value) for _, value in rows])

    async def _indexed(self, prefix: Tuple[str, ...]) -> List[Invitation]:
        rows = await self.store.list(prefix)
        invitations = []
        for _, invitation_id in rows:
            invitation = await self.get(invitation_id)
            if invitation:
                invitations.append(invitation)
        return _newest_first(invitations)

    async def list_by_email(self, email: str) -> List[Invitation]:
        """Every invitation held by an address across teams, newest first"""
        return await self._indexed((INDEX_PREFIX, normalize_email(email)))

    async def list_by_team_and_email(self, team_id: str, email: str) -> List[Invitation]:
        return await self._indexed((INDEX_PREFIX, normalize_email(email), team_id))

    async def latest_by_team_and_email(self, team_id: str, email: str) -> Optional[Invitation]:
        matches = await self.list_by_team_and_email(team_id, email)
        return matches[0] if matches else None

    async def update(self, invitation_id: str, **fields: Any) -> Invitation:
        data = await self.store.patch((PREFIX, invitation_id), to_jsonable_python(fields))
        if data is None:
            raise NotFoundError("Invitation not found")
        return Invitation.model_validate(data)

    async def confirm(self, invitation_id: str, confirmed: bool = True) -> Invitation:
        """Confirmed invitations are never removed for expiry"""
        invitation = await self.update(invitation_id, is_confirmed=confirmed)
        logger.info(f"Invitation {invitation_id} confirmed={confirmed}")
        return invitation

    async def delete_by_team_and_email(self, team_id: str, email: str) -> int:
        """Remove every record for (team, email) and its index entries"""
        normalized = normalize_email(email)
        # Index plus a scan so records written before the index existed go too
        ids = {inv.id for inv in await self.list_by_team_and_email(team_id, normalized)}
        ids.update(
            inv.id for inv in await self.list_all()
            if inv.team_id == team_id and inv.email == normalized
        )

        for invitation_id in ids:
            await self.store.delete((PREFIX, invitation_id))
        await self.store.delete_prefix((INDEX_PREFIX, normalized, team_id))

        if ids:
            logger.info(f"Deleted {len(ids)} invitations for team {team_id}")
        return len(ids)

    @staticmethod
    def latest_success_by_pair(invitations: List[Invitation]) -> Dict[Tuple[str, str], Invitation]:
        """
        Most recent success invitation per (team_id, email).

        This is what decides whether an address is currently authorized on a
        team. Expects the newest-first order of list_all().
        """
        latest: Dict[Tuple[str, str], Invitation] = {}
        for invitation in invitations:
            if invitation.status != InvitationStatus.SUCCESS:
                continue
            latest.setdefault((invitation.team_id, invitation.email), invitation)
        return latest
