"""
Auto-kick reconciler.

Each tick aligns live team membership with the invitation ledger:

- expiry pass: temp grants past their expiry (and not confirmed) are removed
  from the team, or their pending invite revoked if they never joined
- unauthorized pass: live members holding no current success invitation for
  that team are removed

A tick keeps no persisted progress, so a crash mid-tick just resumes on the
next one. Failures are isolated per team and per invitation and every removal
attempt lands in the kick log.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple
from zoneinfo import ZoneInfo

from app.config import settings
from app.core.exceptions import AuthExpiredError, RemoteError
from app.core.logging import mask_email
from app.models.auto_kick import TickReport
from app.models.invitation import Invitation
from app.models.team import RemoteMember, Team
from app.services.gateways.base import BaseTeamClient, non_owner_members
from app.services.invitations_service import InvitationLedger
from app.services.kick_logs_service import AutoKickConfigStore, KickLogStore
from app.services.teams_service import TeamDirectory
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

REASON_EXPIRED = "expired"
REASON_UNAUTHORIZED = "unauthorized"

Pair = Tuple[str, str]


class AutoKickReconciler:
    """Periodic membership reconciliation"""

    def __init__(
        self,
        directory: TeamDirectory,
        ledger: InvitationLedger,
        client: BaseTeamClient,
        kick_logs: KickLogStore,
        config_store: AutoKickConfigStore,
        clock: Clock = utcnow,
        timezone: Optional[str] = None
    ):
        self.directory = directory
        self.ledger = ledger
        self.client = client
        self.kick_logs = kick_logs
        self.config_store = config_store
        self.clock = clock
        self.timezone = timezone if timezone is not None else settings.auto_kick_timezone

    def local_hour(self, now: datetime) -> int:
        if self.timezone:
            return now.astimezone(ZoneInfo(self.timezone)).hour
        return now.astimezone().hour

    async def tick(self, now: Optional[datetime] = None) -> TickReport:
        now = now or self.clock()
        report = TickReport(started_at=now)

        config = await self.config_store.get()
        if not config.enabled:
            report.skipped_reason = "disabled"
            return report

        hour = self.local_hour(now)
        if not config.allows_hour(hour):
            report.skipped_reason = "outside_window"
            logger.debug(f"[AutoKick] hour {hour} outside {config.start_hour}-{config.end_hour}")
            return report

        report.ran = True
        logger.info("[AutoKick] Starting check...")

        teams = {team.id: team for team in await self.directory.list()}
        rosters: Dict[str, Optional[List[RemoteMember]]] = {}
        latest = self.ledger.latest_success_by_pair(await self.ledger.list_all())

        handled = await self._expiry_pass(now, teams, latest, rosters, report)
        await self._unauthorized_pass(now, teams, latest, rosters, report, handled)

        logger.info(
            f"[AutoKick] Done: expired {report.expired_kicked} kicked / {report.expired_failed} failed, "
            f"unauthorized {report.unauthorized_kicked} kicked / {report.unauthorized_failed} failed"
        )
        return report

    async def _roster(
        self,
        team: Team,
        rosters: Dict[str, Optional[List[RemoteMember]]]
    ) -> Optional[List[RemoteMember]]:
        """Live roster, fetched at most once per team per tick. None on failure."""
        if team.id in rosters:
            return rosters[team.id]

        members = None
        try:
            members = await self.client.list_members(team.access_token, team.account_id)
        except AuthExpiredError as e:
            logger.warning(f"[AutoKick] team {team.name} token rejected: {e.message}")
            await self.directory.mark_expired(team.id)
        except RemoteError as e:
            logger.error(f"[AutoKick] member fetch failed for team {team.name}: {e.message}")

        rosters[team.id] = members
        return members

    async def _fail(self, team: Team, email: str, reason: str, error: RemoteError, rosters) -> None:
        if error.is_auth_expired:
            await self.directory.mark_expired(team.id)
            rosters[team.id] = None
        await self.kick_logs.add(team.id, email, reason, False, error.message)
        logger.error(f"[AutoKick] failed to remove {mask_email(email)} from {team.name}: {error.message}")

    async def _expiry_pass(
        self,
        now: datetime,
        teams: Dict[str, Team],
        latest: Dict[Pair, Invitation],
        rosters: Dict[str, Optional[List[RemoteMember]]],
        report: TickReport
    ) -> Set[Pair]:
        handled: Set[Pair] = set()

        for (team_id, email), invitation in latest.items():
            if not invitation.is_expired_grant(now):
                continue
            handled.add((team_id, email))
            logger.info(f"[AutoKick] Expired invite: {mask_email(email)}")

            team = teams.get(team_id)
            if team is None:
                await self.kick_logs.add(team_id, email, REASON_EXPIRED, False, "Team not found")
                await self.ledger.delete_by_team_and_email(team_id, email)
                report.expired_failed += 1
                continue

            if team.is_expired:
                await self.kick_logs.add(team.id, email, REASON_EXPIRED, False, "Team token expired")
                report.expired_failed += 1
                if team.id not in report.teams_skipped:
                    report.teams_skipped.append(team.id)
                continue

            members = await self._roster(team, rosters)
            if members is None:
                await self.kick_logs.add(team.id, email, REASON_EXPIRED, False, "Failed to fetch members")
                report.expired_failed += 1
                continue

            member = next((m for m in non_owner_members(members) if m.email == email), None)
            try:
                if member:
                    await self.client.remove_member(team.access_token, team.account_id, member.id)
                    rosters[team.id] = [m for m in members if m.id != member.id]
                else:
                    # Never accepted: withdraw the outstanding invite instead
                    pending = await self.client.list_pending_invites(team.access_token, team.account_id)
                    for invite in pending:
                        if invite.email == email:
                            await self.client.revoke_invite(team.access_token, team.account_id, invite.id)
            except RemoteError as e:
                await self._fail(team, email, REASON_EXPIRED, e, rosters)
                report.expired_failed += 1
                continue

            await self.kick_logs.add(team.id, email, REASON_EXPIRED, True)
            # Retire the grant so later ticks do not process it again
            await self.ledger.delete_by_team_and_email(team.id, email)
            report.expired_kicked += 1
            logger.info(f"[AutoKick] removed expired {mask_email(email)} from {team.name}")

        return handled

    async def _unauthorized_pass(
        self,
        now: datetime,
        teams: Dict[str, Team],
        latest: Dict[Pair, Invitation],
        rosters: Dict[str, Optional[List[RemoteMember]]],
        report: TickReport,
        handled: Set[Pair]
    ) -> None:
        authorized = {pair for pair, inv in latest.items() if not inv.is_expired_grant(now)}

        for team in teams.values():
            if team.is_expired:
                if team.id not in report.teams_skipped:
                    report.teams_skipped.append(team.id)
                continue

            members = await self._roster(team, rosters)
            if members is None:
                if team.id not in report.teams_skipped:
                    report.teams_skipped.append(team.id)
                continue

            for member in non_owner_members(members):
                pair = (team.id, member.email)
                if not member.email or pair in authorized or pair in handled:
                    continue

                try:
                    await self.client.remove_member(team.access_token, team.account_id, member.id)
                except RemoteError as e:
                    await self._fail(team, member.email, REASON_UNAUTHORIZED, e, rosters)
                    report.unauthorized_failed += 1
                    if e.is_auth_expired:
                        break
                    continue

                await self.kick_logs.add(team.id, member.email, REASON_UNAUTHORIZED, True)
                report.unauthorized_kicked += 1
                logger.info(f"[AutoKick] removed unauthorized {mask_email(member.email)} from {team.name}")
