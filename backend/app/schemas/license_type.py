from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class LicenseTypeRule(BaseModel):
    name: str
    renewal_protocol_days: int = Field(default=0, ge=0)
    process_start_days: int = Field(default=0, ge=0)


class LicenseTypeUpdate(BaseModel):
    name: Optional[str] = None
    renewal_protocol_days: Optional[int] = Field(default=None, ge=0)
    process_start_days: Optional[int] = Field(default=None, ge=0)


class LicenseTypeOut(LicenseTypeRule):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Optional[datetime] = None


class LicenseDeadlinesOut(BaseModel):
    expiry_date: str
    prorroga_date: Optional[str] = None
    process_start_date: Optional[str] = None
    days_until_expiry: int
    status: Literal["ok", "warning", "expired"]
