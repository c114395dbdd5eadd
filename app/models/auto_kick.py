from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime


class AutoKickConfig(BaseModel):
    """Process-wide reconciler configuration"""
    enabled: bool = False
    check_interval: int = Field(default=300, ge=60)   # seconds
    start_hour: int = Field(default=0, ge=0, le=23)
    end_hour: int = Field(default=23, ge=0, le=23)

    @model_validator(mode='after')
    def window_is_ordered(self):
        if self.start_hour > self.end_hour:
            raise ValueError("start_hour must not be after end_hour")
        return self

    def allows_hour(self, hour: int) -> bool:
        return self.start_hour <= hour <= self.end_hour


class KickLog(BaseModel):
    """Audit record of one removal attempt"""
    id: str
    team_id: str
    email: str
    reason: str
    success: bool
    error: Optional[str] = None
    created_at: datetime


class TickReport(BaseModel):
    """Outcome of one reconciler tick"""
    ran: bool = False
    skipped_reason: Optional[str] = None
    expired_kicked: int = 0
    expired_failed: int = 0
    unauthorized_kicked: int = 0
    unauthorized_failed: int = 0
    teams_skipped: List[str] = Field(default_factory=list)
    started_at: Optional[datetime] = None
