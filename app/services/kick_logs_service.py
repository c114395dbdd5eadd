"""
Kick audit log and auto-kick configuration
"""
import logging
import uuid
from typing import List, Optional

from app.config import settings
from app.models.auto_kick import AutoKickConfig, KickLog
from app.storage.kv_store import KeyValueStore
from app.utils.clock import Clock, utcnow, sortable_timestamp

logger = logging.getLogger(__name__)

LOG_PREFIX = "kick_logs"
CONFIG_KEY = ("config", "auto_kick")


class KickLogStore:
    """Append-only removal log"""

    def __init__(self, store: KeyValueStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    async def add(
        self,
        team_id: str,
        email: str,
        reason: str,
        success: bool,
        error: Optional[str] = None
    ) -> KickLog:
        entry = KickLog(
            id=str(uuid.uuid4()),
            team_id=team_id,
            email=email,
            reason=reason,
            success=success,
            error=error,
            created_at=self.clock(),
        )
        key = (LOG_PREFIX, f"{sortable_timestamp(entry.created_at)}-{entry.id}")
        await self.store.set(key, entry.model_dump(mode="json"))
        return entry

    async def list(self, limit: int = 100) -> List[KickLog]:
        """Newest first"""
        rows = await self.store.list((LOG_PREFIX,), reverse=True, limit=limit)
        return [KickLog.model_validate(value) for _, value in rows]


class AutoKickConfigStore:
    """Singleton reconciler config, falling back to Settings defaults"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def defaults() -> AutoKickConfig:
        return AutoKickConfig(
            enabled=settings.auto_kick_enabled,
            check_interval=settings.auto_kick_check_interval,
            start_hour=settings.auto_kick_start_hour,
            end_hour=settings.auto_kick_end_hour,
        )

    async def get(self) -> AutoKickConfig:
        data = await self.store.get(CONFIG_KEY)
        return AutoKickConfig.model_validate(data) if data else self.defaults()

    async def save(self, config: AutoKickConfig) -> AutoKickConfig:
        await self.store.set(CONFIG_KEY, config.model_dump(mode="json"))
        logger.info(
            f"Auto-kick config saved: enabled={config.enabled} "
            f"interval={config.check_interval}s window={config.start_hour}-{config.end_hour}"
        )
        return config
