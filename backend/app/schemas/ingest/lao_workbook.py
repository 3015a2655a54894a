from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.lao import FrequencyPreset, LaoDetailKV


class ParsedLaoConditionImport(BaseModel):
    name: str
    frequency_preset: FrequencyPreset = "anual"
    custom_months_interval: Optional[int] = None
    inspections: list[str] = Field(default_factory=list)
    last_inspection_date: Optional[str] = None
    notes: Optional[str] = None


class ParsedLaoImportItem(BaseModel):
    import_key: str
    lao_number: str
    title: str
    empreendimento: str
    process_number: Optional[str] = None
    fcei: Optional[str] = None
    codam: Optional[str] = None
    issue_date: Optional[str] = None
    validity_date: Optional[str] = None
    details: list[LaoDetailKV] = Field(default_factory=list)
    conditions: list[ParsedLaoConditionImport] = Field(default_factory=list)


class PendingItem(BaseModel):
    lao_number: str
    empreendimento: str
    reason: str


class LaoImportResult(BaseModel):
    created: int = 0
    updated: int = 0
    pending_branch: int = 0
    condition_created: int = 0
    condition_updated: int = 0
    inspections_created: int = 0
    inspections_skipped: int = 0
    parser_errors: list[str] = Field(default_factory=list)
    import_errors: list[str] = Field(default_factory=list)
    pending_items: list[PendingItem] = Field(default_factory=list)


class LaoWorkbookIngestResult(LaoImportResult):
    ingest_run_id: str
    source_hash: str
    items_parsed: int
