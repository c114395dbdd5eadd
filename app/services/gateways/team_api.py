"""
Team account API client (chatgpt.com backend-api)

Endpoints used, all under /accounts/{account_id}:
- GET    /users                 member roster
- DELETE /users/{user_id}       remove a member
- GET    /invites               pending invites
- POST   /invites               send invites
- DELETE /invites/{id}          revoke (falls back to POST .../revoke, POST .../cancel)
"""
import logging
import httpx
from datetime import datetime
from typing import Dict, Any, List, Optional

from app.config import settings
from app.core.exceptions import RemoteError, remote_error_from_status
from app.models.team import RemoteMember, PendingInvite
from app.services.gateways.base import BaseTeamClient

logger = logging.getLogger(__name__)

INVITE_ROLE = "standard-user"


def extract_email(item: Dict[str, Any]) -> str:
    """Roster and invite payloads put the address in different places"""
    user = item.get("user") or {}
    raw = (
        item.get("email")
        or item.get("email_address")
        or user.get("email")
        or user.get("email_address")
        or ""
    )
    return str(raw).strip().lower()


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000 if value > 1e11 else value).astimezone()
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _items(response: httpx.Response, action: str) -> List[Dict[str, Any]]:
    """
    The `items` list of a listing response.

    A body that is not a JSON object holding a list of objects is an upstream
    failure, reported like any other non-success status.
    """
    try:
        body = response.json()
    except ValueError:
        raise RemoteError(response.status_code, response.text, action)

    items = body.get("items") if isinstance(body, dict) else None
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        logger.error(f"{action} returned an unexpected body: {response.text[:200]}")
        raise RemoteError(response.status_code, response.text, action)
    return items


class TeamApiClient(BaseTeamClient):
    """httpx implementation of the team client contract"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.team_api_base_url).rstrip("/")
        self.timeout = timeout or settings.team_api_timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "team_api"

    def _get_headers(self, access_token: str, account_id: str) -> Dict[str, str]:
        return {
            "accept": "*/*",
            "authorization": f"Bearer {access_token}",
            "chatgpt-account-id": account_id,
            "content-type": "application/json",
            "user-agent": settings.team_api_user_agent,
        }

    async def _request(
        self,
        method: str,
        path: str,
        access_token: str,
        account_id: str,
        action: str,
        json: Any = None
    ) -> httpx.Response:
        url = f"{self.base_url}/accounts/{account_id}{path}"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                return await client.request(
                    method,
                    url,
                    json=json,
                    headers=self._get_headers(access_token, account_id)
                )
        except httpx.RequestError as e:
            logger.error(f"{action} request to {url} failed: {e}")
            raise RemoteError(0, str(e) or e.__class__.__name__, action)

    async def list_members(self, access_token: str, account_id: str) -> List[RemoteMember]:
        response = await self._request("GET", "/users", access_token, account_id, "Fetch members")
        if response.status_code != 200:
            raise remote_error_from_status(response.status_code, response.text, "Fetch members")

        members = []
        for item in _items(response, "Fetch members"):
            members.append(RemoteMember(
                id=str(item.get("id") or (item.get("user") or {}).get("id") or ""),
                email=extract_email(item),
                role=item.get("role"),
                created_at=_parse_datetime(item.get("created_at") or item.get("created_time")),
                raw=item,
            ))
        return members

    async def invite(self, access_token: str, account_id: str, email: str) -> dict:
        payload = {
            "email_addresses": [email],
            "role": INVITE_ROLE,
            "resend_emails": False,
        }
        response = await self._request("POST", "/invites", access_token, account_id, "Invite", json=payload)
        if response.status_code not in (200, 201):
            logger.error(f"Invite API error for account {account_id}: {response.status_code}")
            raise remote_error_from_status(response.status_code, response.text, "Invite")
        try:
            return response.json()
        except ValueError:
            return {}

    async def list_pending_invites(self, access_token: str, account_id: str) -> List[PendingInvite]:
        response = await self._request("GET", "/invites", access_token, account_id, "Fetch invites")
        if response.status_code != 200:
            raise remote_error_from_status(response.status_code, response.text, "Fetch invites")

        items = _items(response, "Fetch invites")
        return [
            PendingInvite(
                id=str(item.get("id") or ""),
                email=extract_email(item),
                role=item.get("role"),
                created_at=_parse_datetime(item.get("created_time") or item.get("created_at")),
                raw=item,
            )
            for item in items
        ]

    async def revoke_invite(self, access_token: str, account_id: str, invite_id: str) -> bool:
        """
        Revoke a pending invite.

        Tries DELETE on the invite, then POST .../revoke, then POST .../cancel.
        Only a 405 moves on to the next strategy; any other failure is final.
        """
        attempts = [
            ("DELETE", f"/invites/{invite_id}", None),
            ("POST", f"/invites/{invite_id}/revoke", {}),
            ("POST", f"/invites/{invite_id}/cancel", {}),
        ]

        last_status = 0
        last_text = ""
        for method, path, body in attempts:
            response = await self._request(method, path, access_token, account_id, "Revoke invite", json=body)
            if response.status_code in (200, 204):
                logger.info(f"Revoked invite {invite_id} via {method} {path}")
                return True

            last_status = response.status_code
            last_text = response.text
            if response.status_code != 405:
                break

        raise remote_error_from_status(last_status, last_text, "Revoke invite")

    async def remove_member(self, access_token: str, account_id: str, user_id: str) -> bool:
        response = await self._request("DELETE", f"/users/{user_id}", access_token, account_id, "Kick")
        if response.status_code not in (200, 204):
            raise remote_error_from_status(response.status_code, response.text, "Kick")
        return True
