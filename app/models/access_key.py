from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime


class AccessKey(BaseModel):
    """Admission ticket for the join flow"""
    code: str
    team_id: Optional[str] = None     # Only allocate into this team
    is_temp: bool = False             # Grant expires after temp_hours
    is_unlimited: bool = False        # Reusable
    temp_hours: Optional[int] = None
    usage_count: int = 0
    claim_id: Optional[str] = None    # Held by an in-flight join of a single-use key
    created_at: datetime

    @property
    def is_single_use(self) -> bool:
        return not self.is_unlimited and not self.is_temp

    @property
    def is_consumed(self) -> bool:
        return self.is_single_use and self.usage_count > 0


class AccessKeyGenerate(BaseModel):
    """Schema para generar claves en lote"""
    count: int = Field(default=1, ge=1, le=100)
    is_unlimited: bool = False
    is_temp: bool = False
    temp_hours: Optional[int] = Field(default=None, ge=1, le=24 * 365)
    team_id: Optional[str] = None

    @model_validator(mode='after')
    def temp_hours_only_for_temp(self):
        if self.temp_hours is not None and not self.is_temp:
            raise ValueError("temp_hours requires is_temp")
        return self
