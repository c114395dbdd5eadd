"""
Administrator operations on a single team's live membership
"""
import logging
from typing import List, Optional

from app.core.exceptions import RemoteError, ValidationError
from app.core.logging import mask_email
from app.models.invitation import (
    DirectInviteResult, DirectInviteSummary, InvitationStatus
)
from app.models.team import MemberView, PendingInvite, Team
from app.services.gateways.base import BaseTeamClient
from app.services.invitations_service import InvitationLedger, normalize_email
from app.services.kick_logs_service import KickLogStore
from app.services.teams_service import TeamDirectory

logger = logging.getLogger(__name__)

KICK_REASON_MANUAL = "manual"


class MemberAdmin:
    """Roster, kick, pending invite and direct invite operations"""

    def __init__(
        self,
        directory: TeamDirectory,
        ledger: InvitationLedger,
        client: BaseTeamClient,
        kick_logs: KickLogStore
    ):
        self.directory = directory
        self.ledger = ledger
        self.client = client
        self.kick_logs = kick_logs

    async def _call(self, team: Team, coro):
        """Await a remote call, marking the team expired on auth failure"""
        try:
            return await coro
        except RemoteError as e:
            if e.is_auth_expired:
                await self.directory.mark_expired(team.id)
            raise

    async def list_members(self, team_id: str) -> List[MemberView]:
        """Live roster with the local join time where the ledger knows it"""
        team = await self.directory.require(team_id)
        members = await self._call(team, self.client.list_members(team.access_token, team.account_id))

        views = []
        for member in members:
            joined_at = member.created_at
            if member.email:
                invitation = await self.ledger.latest_by_team_and_email(team.id, member.email)
                if invitation:
                    joined_at = invitation.created_at
            views.append(MemberView(
                id=member.id,
                email=member.email,
                role=member.role,
                joined_at=joined_at,
            ))
        return views

    async def kick_member(self, team_id: str, user_id: str, email: Optional[str] = None) -> int:
        """
        Remove a member. When the email is supplied, the ledger records for
        (team, email) are deleted too. Returns the number of records deleted.
        """
        team = await self.directory.require(team_id)
        email = normalize_email(email) if email else ""

        try:
            await self._call(team, self.client.remove_member(team.access_token, team.account_id, user_id))
        except RemoteError as e:
            await self.kick_logs.add(team.id, email or user_id, KICK_REASON_MANUAL, False, e.message)
            raise

        await self.kick_logs.add(team.id, email or user_id, KICK_REASON_MANUAL, True)

        deleted = 0
        if email:
            deleted = await self.ledger.delete_by_team_and_email(team.id, email)
        logger.info(f"Kicked {mask_email(email) or user_id} from {team.name}")
        return deleted

    async def list_pending_invites(self, team_id: str) -> List[PendingInvite]:
        team = await self.directory.require(team_id)
        return await self._call(team, self.client.list_pending_invites(team.access_token, team.account_id))

    async def revoke_pending_invite(self, team_id: str, invite_id: str) -> bool:
        team = await self.directory.require(team_id)
        return await self._call(team, self.client.revoke_invite(team.access_token, team.account_id, invite_id))

    async def invite_direct(self, team_id: str, emails: List[str]) -> DirectInviteSummary:
        """
        Invite addresses straight into a team, bypassing access keys.

        Each address succeeds or fails on its own; the summary carries the
        upstream error text for failures.
        """
        team = await self.directory.require(team_id)
        clean = [str(e or "").strip() for e in emails]
        clean = [e for e in clean if e]
        if not clean:
            raise ValidationError("Emails are required")

        results = []
        for email in clean:
            normalized = normalize_email(email)
            try:
                await self.client.invite(team.access_token, team.account_id, normalized)
            except RemoteError as e:
                if e.is_auth_expired:
                    await self.directory.mark_expired(team.id)
                await self.ledger.create(team_id=team.id, email=normalized, status=InvitationStatus.FAILED)
                results.append(DirectInviteResult(email=normalized, success=False, error=e.message))
                continue

            await self.ledger.create(team_id=team.id, email=normalized, status=InvitationStatus.SUCCESS)
            results.append(DirectInviteResult(email=normalized, success=True))

        success_count = sum(1 for r in results if r.success)
        if success_count:
            await self.directory.update(team.id, last_invite_at=self.directory.clock())

        logger.info(f"Direct invites into {team.name}: {success_count} ok, {len(results) - success_count} failed")
        return DirectInviteSummary(
            results=results,
            success_count=success_count,
            fail_count=len(results) - success_count,
        )
