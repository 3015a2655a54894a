from typing import Literal

from pydantic import BaseModel, Field


class ExpiringLao(BaseModel):
    id: str
    lao_number: str
    empreendimento: str
    validity_date: str
    days: int
    status: Literal["ok", "warning", "expired"]


class DashboardOut(BaseModel):
    total_active: int
    total_expired: int
    total_warning: int
    total_branches: int
    expiring_soon: list[ExpiringLao] = Field(default_factory=list)
