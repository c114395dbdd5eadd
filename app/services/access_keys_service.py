"""
Access key store: admission tickets and their usage counters
"""
import logging
import secrets
import uuid
from typing import List, Optional

from app.core.exceptions import ValidationError
from app.models.access_key import AccessKey
from app.storage.kv_store import KeyValueStore
from app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

PREFIX = "keys"
CODE_LENGTH = 16


def generate_code() -> str:
    """16 lowercase hex characters"""
    return secrets.token_hex(CODE_LENGTH // 2)


class AccessKeyStore:
    """Persistent record of access keys"""

    def __init__(self, store: KeyValueStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    async def create(
        self,
        code: Optional[str] = None,
        team_id: Optional[str] = None,
        is_temp: bool = False,
        is_unlimited: bool = False,
        temp_hours: Optional[int] = None
    ) -> AccessKey:
        code = (code or generate_code()).strip()
        if not code:
            raise ValidationError("Key code must not be empty")

        key = AccessKey(
            code=code,
            team_id=team_id,
            is_temp=is_temp,
            is_unlimited=is_unlimited,
            temp_hours=temp_hours if is_temp else None,
            usage_count=0,
            created_at=self.clock(),
        )
        await self.store.set((PREFIX, code), key.model_dump(mode="json"))
        return key

    async def generate(
        self,
        count: int = 1,
        is_unlimited: bool = False,
        is_temp: bool = False,
        temp_hours: Optional[int] = None,
        team_id: Optional[str] = None
    ) -> List[AccessKey]:
        keys = []
        for _ in range(count):
            keys.append(await self.create(
                team_id=team_id,
                is_temp=is_temp,
                is_unlimited=is_unlimited,
                temp_hours=temp_hours,
            ))
        logger.info(f"Generated {len(keys)} access keys (unlimited={is_unlimited}, temp={is_temp})")
        return keys

    async def validate(self, code: str) -> Optional[AccessKey]:
        """
        Look up a key. Returns None when it does not exist.

        Single-use enforcement is left to the caller, since reuse depends on
        is_temp / is_unlimited.
        """
        if not code:
            return None
        data = await self.store.get((PREFIX, code))
        return AccessKey.model_validate(data) if data else None

    async def list(self) -> List[AccessKey]:
        rows = await self.store.list((PREFIX,))
        keys = [AccessKey.model_validate(value) for _, value in rows]
        return sorted(keys, key=lambda k: k.created_at, reverse=True)

    async def delete(self, code: str) -> bool:
        return await self.store.delete((PREFIX, code))

    async def increment_usage(self, code: str) -> Optional[AccessKey]:
        """Atomic usage bump. Silently does nothing if the key was deleted."""
        data = await self.store.increment((PREFIX, code), "usage_count")
        if data is None:
            logger.warning(f"Usage increment skipped, key {code[:4]}... no longer exists")
            return None
        return AccessKey.model_validate(data)

    async def claim(self, code: str) -> Optional[str]:
        """
        Reserve an unused single-use key for one join attempt.

        Succeeds only while usage_count is 0 and no other attempt holds the
        key, so of two concurrent joins at most one gets a claim id back.
        Returns None when the key is taken or gone.
        """
        claim_id = uuid.uuid4().hex
        data = await self.store.patch_if(
            (PREFIX, code),
            {"claim_id": claim_id},
            {"usage_count": 0, "claim_id": None}
        )
        return claim_id if data else None

    async def release(self, code: str, claim_id: str) -> bool:
        """Give the key back after a join that granted nothing"""
        data = await self.store.patch_if((PREFIX, code), {"claim_id": None}, {"claim_id": claim_id})
        if data is None:
            logger.warning(f"Claim release skipped, key {code[:4]}... no longer held by this attempt")
            return False
        return True
