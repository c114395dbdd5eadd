from dataclasses import dataclass
from fastapi import Request
from typing import Optional
import logging

from app.config import settings
from app.services.access_keys_service import AccessKeyStore
from app.services.auto_kick_service import AutoKickReconciler
from app.services.gateways.base import BaseTeamClient
from app.services.invitations_service import InvitationLedger
from app.services.kick_logs_service import AutoKickConfigStore, KickLogStore
from app.services.members_service import MemberAdmin
from app.services.seat_allocator_service import SeatAllocator
from app.services.teams_service import TeamDirectory
from app.storage.kv_store import KeyValueStore
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the routes need, wired once per application"""
    store: KeyValueStore
    client: BaseTeamClient
    teams: TeamDirectory
    keys: AccessKeyStore
    invitations: InvitationLedger
    kick_logs: KickLogStore
    auto_kick_config: AutoKickConfigStore
    allocator: SeatAllocator
    members: MemberAdmin
    reconciler: AutoKickReconciler


def build_services(
    store: KeyValueStore,
    client: BaseTeamClient,
    clock: Clock = utcnow,
    capacity: Optional[int] = None,
    timezone: Optional[str] = None
) -> Services:
    teams = TeamDirectory(store, clock)
    keys = AccessKeyStore(store, clock)
    invitations = InvitationLedger(store, clock)
    kick_logs = KickLogStore(store, clock)
    auto_kick_config = AutoKickConfigStore(store)

    return Services(
        store=store,
        client=client,
        teams=teams,
        keys=keys,
        invitations=invitations,
        kick_logs=kick_logs,
        auto_kick_config=auto_kick_config,
        allocator=SeatAllocator(
            teams, keys, invitations, client,
            capacity=capacity if capacity is not None else settings.seat_capacity,
            clock=clock
        ),
        members=MemberAdmin(teams, invitations, client, kick_logs),
        reconciler=AutoKickReconciler(
            teams, invitations, client, kick_logs, auto_kick_config,
            clock=clock, timezone=timezone
        ),
    )


def get_services(request: Request) -> Services:
    """
    Dependency returning the application's service container.
    Set on app.state during startup.
    """
    return request.app.state.services
