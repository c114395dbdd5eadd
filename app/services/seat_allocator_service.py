"""
Seat allocation for the public join flow.

Flow:
1. Validate the access key (exists, and single-use keys not yet consumed)
   and claim a single-use key so no concurrent join can spend it too
2. Scan active teams oldest first, refreshing each live roster
   - an address already seated anywhere short-circuits to success
   - the first team under capacity becomes the invite candidate
3. Invite into the candidate and record the grant (a claim is released when
   the attempt ends without one)
"""
import logging
from datetime import timedelta
from typing import Optional

from app.config import settings
from app.core.exceptions import (
    AuthExpiredError, InvalidKeyError, KeyAlreadyUsedError,
    NoAvailableTeamsError, RemoteError, ValidationError
)
from app.core.logging import mask_email
from app.models.access_key import AccessKey
from app.models.invitation import Invitation, InvitationStatus, JoinResult
from app.models.team import Team
from app.services.access_keys_service import AccessKeyStore
from app.services.gateways.base import BaseTeamClient, non_owner_members
from app.services.invitations_service import InvitationLedger, normalize_email
from app.services.teams_service import TeamDirectory
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class SeatAllocator:
    """Places a joining address into a pooled team"""

    def __init__(
        self,
        directory: TeamDirectory,
        keys: AccessKeyStore,
        ledger: InvitationLedger,
        client: BaseTeamClient,
        capacity: Optional[int] = None,
        clock: Clock = utcnow
    ):
        self.directory = directory
        self.keys = keys
        self.ledger = ledger
        self.client = client
        self.capacity = capacity if capacity is not None else settings.seat_capacity
        self.clock = clock

    async def _check_key(self, key_code: str) -> AccessKey:
        key = await self.keys.validate(key_code)
        if not key:
            raise InvalidKeyError()
        # Temp and unlimited keys stay reusable until no team has room
        if key.is_consumed:
            raise KeyAlreadyUsedError()
        return key

    def _temp_expire_at(self, key: AccessKey):
        if not key.is_temp:
            return None
        return self.clock() + timedelta(hours=key.temp_hours or settings.default_temp_hours)

    async def _record_grant(self, team: Team, key: AccessKey, email: str) -> Invitation:
        invitation = await self.ledger.create(
            team_id=team.id,
            email=email,
            key_code=key.code,
            status=InvitationStatus.SUCCESS,
            is_temp=key.is_temp,
            temp_expire_at=self._temp_expire_at(key),
            is_confirmed=False,
        )
        await self.keys.increment_usage(key.code)
        return invitation

    async def _claim(self, key: AccessKey) -> Optional[str]:
        """Hold a single-use key for this attempt. Reusable keys need no claim."""
        if not key.is_single_use:
            return None
        claim_id = await self.keys.claim(key.code)
        if claim_id is None:
            if await self.keys.validate(key.code) is None:
                raise InvalidKeyError()
            raise KeyAlreadyUsedError()
        return claim_id

    async def join(self, key_code: str, email: str) -> JoinResult:
        """
        Admit an address with an access key.

        A single-use key is claimed before any remote call, so concurrent joins
        with the same key cannot both be invited. The claim is released again
        when the attempt grants nothing.

        Raises:
            InvalidKeyError: unknown key
            KeyAlreadyUsedError: single-use key already consumed or claimed
            NoAvailableTeamsError: nobody has room and the address is seated nowhere
            RemoteError: the invite itself failed upstream (message kept verbatim)
        """
        key = await self._check_key(key_code)

        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")

        claim_id = await self._claim(key)
        try:
            return await self._place(key, email)
        except Exception:
            if claim_id:
                await self.keys.release(key.code, claim_id)
            raise

    async def _place(self, key: AccessKey, email: str) -> JoinResult:
        teams = await self.directory.list()
        if key.team_id:
            teams = [t for t in teams if t.id == key.team_id]

        candidate: Optional[Team] = None

        for team in teams:
            if team.is_expired:
                continue

            try:
                members = await self.client.list_members(team.access_token, team.account_id)
            except AuthExpiredError as e:
                logger.warning(f"[Join] team {team.name} token rejected: {e.message}")
                await self.directory.mark_expired(team.id)
                continue
            except RemoteError as e:
                logger.error(f"[Join] member fetch failed for team {team.name}: {e.message}")
                continue

            seated = non_owner_members(members)
            member_count = len(seated)
            await self.directory.record_member_count(team.id, member_count)

            if email in {m.email for m in seated}:
                invitation = await self._record_grant(team, key, email)
                logger.info(f"[Join] {mask_email(email)} already seated in {team.name}")
                return JoinResult(
                    team_id=team.id,
                    team_name=team.name,
                    email=email,
                    already_member=True,
                    invitation_id=invitation.id,
                )

            if candidate is None and member_count < self.capacity:
                candidate = team

        if candidate is None:
            logger.warning(f"[Join] no available team for {mask_email(email)}")
            raise NoAvailableTeamsError()

        try:
            await self.client.invite(candidate.access_token, candidate.account_id, email)
        except RemoteError as e:
            if e.is_auth_expired:
                await self.directory.mark_expired(candidate.id)
            await self.ledger.create(
                team_id=candidate.id,
                email=email,
                key_code=key.code,
                status=InvitationStatus.FAILED,
                is_temp=key.is_temp,
            )
            logger.error(f"[Join] invite into {candidate.name} failed: {e.message}")
            raise

        invitation = await self._record_grant(candidate, key, email)
        await self.directory.record_invite(candidate.id)

        logger.info(f"[Join] invited {mask_email(email)} into {candidate.name}")
        return JoinResult(
            team_id=candidate.id,
            team_name=candidate.name,
            email=email,
            already_member=False,
            invitation_id=invitation.id,
        )
