from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

LaoCategory = Literal["Ambiental", "SGA"]
FrequencyPreset = Literal["mensal", "bimestral", "trimestral", "semestral", "anual", "custom"]
InspectionSource = Literal["manual", "import"]
MonthStatus = Literal["done", "planned", "overdue"]


class LaoDetailKV(BaseModel):
    id: str
    key: str
    value: str
    order: int = 0


class Attachment(BaseModel):
    id: str
    file_name: str
    file_url: str
    uploaded_at: str
    storage_path: Optional[str] = None


class LaoRecordCreate(BaseModel):
    lao_number: str
    title: str
    empreendimento: str
    branch_id: Optional[str] = None
    category: LaoCategory = "Ambiental"
    process_number: Optional[str] = None
    fcei: Optional[str] = None
    codam: Optional[str] = None
    issue_date: Optional[str] = None
    validity_date: str
    details: list[LaoDetailKV] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    active: bool = True


class LaoRecordUpdate(BaseModel):
    lao_number: Optional[str] = None
    title: Optional[str] = None
    empreendimento: Optional[str] = None
    branch_id: Optional[str] = None
    category: Optional[LaoCategory] = None
    process_number: Optional[str] = None
    fcei: Optional[str] = None
    codam: Optional[str] = None
    issue_date: Optional[str] = None
    validity_date: Optional[str] = None
    details: Optional[list[LaoDetailKV]] = None
    active: Optional[bool] = None


class LaoRecordOut(LaoRecordCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str
    details: list[LaoDetailKV] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("details", "attachments", mode="before")
    @classmethod
    def _null_lists(cls, value):
        # JSON columns come back as None for rows written without details
        return value or []


class LaoConditionCreate(BaseModel):
    lao_id: str
    name: str
    frequency_preset: FrequencyPreset = "anual"
    custom_months_interval: Optional[int] = None
    last_inspection_date: Optional[str] = None
    notes: Optional[str] = None
    active: bool = True

    @model_validator(mode="after")
    def _custom_interval_required(self):
        if self.frequency_preset == "custom":
            if not self.custom_months_interval or self.custom_months_interval <= 0:
                raise ValueError("custom_months_interval must be > 0 for custom frequency")
        else:
            self.custom_months_interval = None
        return self


class LaoConditionOut(LaoConditionCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LaoInspectionCreate(BaseModel):
    lao_id: str
    condition_id: str
    inspection_date: str
    note: Optional[str] = None
    source: InspectionSource = "manual"
    created_by: Optional[str] = None


class LaoInspectionOut(LaoInspectionCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Optional[datetime] = None


class ManualInspectionIn(BaseModel):
    inspection_date: str
    note: Optional[str] = None
    created_by: Optional[str] = None


class ConditionScheduleOut(BaseModel):
    condition: LaoConditionOut
    interval_months: Optional[int] = None
    projected_dates: list[str] = Field(default_factory=list)
    recorded_by_month: dict[int, list[str]] = Field(default_factory=dict)
    month_status: dict[int, MonthStatus] = Field(default_factory=dict)
    validity_ends_before_next_projection: bool = False


class LaoScheduleOut(BaseModel):
    lao: LaoRecordOut
    year: int
    conditions: list[ConditionScheduleOut] = Field(default_factory=list)
