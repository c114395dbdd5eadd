"""
Base Team Service Client Interface

The allocation engine and the reconciler only talk to the remote
collaboration service through this contract. Implementations raise
AuthExpiredError when the credential is rejected and RemoteError for any
other non-success response.
"""
from abc import ABC, abstractmethod
from typing import List

from app.models.team import RemoteMember, PendingInvite

OWNER_ROLE = "account-owner"


class BaseTeamClient(ABC):
    """Abstract client for a pooled team account"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Client identifier"""
        pass

    @abstractmethod
    async def list_members(self, access_token: str, account_id: str) -> List[RemoteMember]:
        """
        List current members of the account, owner included.

        Raises:
            AuthExpiredError: credential rejected
            RemoteError: any other failure
        """
        pass

    @abstractmethod
    async def invite(self, access_token: str, account_id: str, email: str) -> dict:
        """Send an invite. Returns the upstream payload."""
        pass

    @abstractmethod
    async def list_pending_invites(self, access_token: str, account_id: str) -> List[PendingInvite]:
        pass

    @abstractmethod
    async def revoke_invite(self, access_token: str, account_id: str, invite_id: str) -> bool:
        pass

    @abstractmethod
    async def remove_member(self, access_token: str, account_id: str, user_id: str) -> bool:
        pass

    async def close(self) -> None:
        pass


def non_owner_members(members: List[RemoteMember]) -> List[RemoteMember]:
    """Members occupying a seat (the owner is excluded)"""
    return [m for m in members if m.role != OWNER_ROLE]
