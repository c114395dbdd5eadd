"""
Fakes para el servicio remoto de teams y el reloj.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple

from app.core.exceptions import RemoteError
from app.models.team import RemoteMember, PendingInvite
from app.services.gateways.base import BaseTeamClient, OWNER_ROLE


class FrozenClock:
    """Reloj controlable para tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeTeamClient(BaseTeamClient):
    """
    In-memory team service.

    Rosters and pending invites are keyed by account_id. Failures can be
    scripted per (operation, account_id); a scripted failure is raised on
    every call until cleared. Remote calls yield to the event loop once, like
    a real round trip.
    """

    def __init__(self):
        self.rosters: Dict[str, List[RemoteMember]] = {}
        self.pending: Dict[str, List[PendingInvite]] = {}
        self.failures: Dict[Tuple[str, str], RemoteError] = {}
        self.invites: List[Tuple[str, str]] = []
        self.removed: List[Tuple[str, str]] = []
        self.revoked: List[Tuple[str, str]] = []
        self.list_calls: List[str] = []
        self._counter = 0

    @property
    def name(self) -> str:
        return "fake"

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def add_member(self, account_id: str, email: str, role: str = "standard-user") -> RemoteMember:
        member = RemoteMember(id=self._next_id("user"), email=email.lower(), role=role)
        self.rosters.setdefault(account_id, []).append(member)
        return member

    def add_owner(self, account_id: str, email: str = "owner@pool.test") -> RemoteMember:
        return self.add_member(account_id, email, role=OWNER_ROLE)

    def fill(self, account_id: str, count: int, domain: str = "seat.test") -> List[RemoteMember]:
        return [self.add_member(account_id, f"{account_id}-{i}@{domain}") for i in range(count)]

    def add_pending(self, account_id: str, email: str) -> PendingInvite:
        invite = PendingInvite(id=self._next_id("invite"), email=email.lower())
        self.pending.setdefault(account_id, []).append(invite)
        return invite

    def fail(self, operation: str, account_id: str, error: RemoteError) -> None:
        self.failures[(operation, account_id)] = error

    def clear_failures(self) -> None:
        self.failures.clear()

    def _maybe_fail(self, operation: str, account_id: str) -> None:
        error = self.failures.get((operation, account_id))
        if error:
            raise error

    async def list_members(self, access_token: str, account_id: str) -> List[RemoteMember]:
        self.list_calls.append(account_id)
        await asyncio.sleep(0)
        self._maybe_fail("list_members", account_id)
        return list(self.rosters.get(account_id, []))

    async def invite(self, access_token: str, account_id: str, email: str) -> dict:
        await asyncio.sleep(0)
        self._maybe_fail("invite", account_id)
        self.invites.append((account_id, email))
        invite = self.add_pending(account_id, email)
        return {"account_invites": [{"id": invite.id, "email_address": email}]}

    async def list_pending_invites(self, access_token: str, account_id: str) -> List[PendingInvite]:
        self._maybe_fail("list_pending_invites", account_id)
        return list(self.pending.get(account_id, []))

    async def revoke_invite(self, access_token: str, account_id: str, invite_id: str) -> bool:
        self._maybe_fail("revoke_invite", account_id)
        self.revoked.append((account_id, invite_id))
        self.pending[account_id] = [i for i in self.pending.get(account_id, []) if i.id != invite_id]
        return True

    async def remove_member(self, access_token: str, account_id: str, user_id: str) -> bool:
        self._maybe_fail("remove_member", account_id)
        roster = self.rosters.get(account_id, [])
        email = next((m.email for m in roster if m.id == user_id), user_id)
        self.removed.append((account_id, email))
        self.rosters[account_id] = [m for m in roster if m.id != user_id]
        return True

    def emails(self, account_id: str) -> List[str]:
        return [m.email for m in self.rosters.get(account_id, [])]


class MockDBConnection:
    """Mock de conexión asyncpg: respuestas por fragmento de query."""

    def __init__(self):
        self.fetchval_returns = {}
        self.fetch_returns = {}
        self.execute_returns = {}
        self._call_history = []

    @staticmethod
    def _match(returns: dict, query: str, default):
        for key, value in returns.items():
            if key in query:
                return value
        return default

    async def fetchval(self, query: str, *args) -> Any:
        self._call_history.append(("fetchval", query, args))
        return self._match(self.fetchval_returns, query, None)

    async def fetch(self, query: str, *args) -> List[dict]:
        self._call_history.append(("fetch", query, args))
        return self._match(self.fetch_returns, query, [])

    async def execute(self, query: str, *args) -> str:
        self._call_history.append(("execute", query, args))
        return self._match(self.execute_returns, query, "UPDATE 1")

    def calls(self, method: str) -> List[tuple]:
        return [c for c in self._call_history if c[0] == method]


class MockDBContextManager:
    """Context manager mock para get_db_connection."""

    def __init__(self, connection: MockDBConnection = None):
        self.connection = connection or MockDBConnection()

    async def __aenter__(self):
        return self.connection

    async def __aexit__(self, *args):
        pass
