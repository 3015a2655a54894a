"""
Reconcile parsed workbook items into LAO records, condicionantes and inspections.

The reconciler never touches storage directly: it awaits the injected
``LaoWriter`` one call at a time and keeps shadow copies of everything it has
seen or written during the run, so duplicates inside the same file are detected
without reading back from the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from app.schemas.branch import BranchOut
from app.schemas.ingest.lao_workbook import (
    LaoImportResult,
    ParsedLaoConditionImport,
    ParsedLaoImportItem,
    PendingItem,
)
from app.schemas.lao import (
    LaoConditionCreate,
    LaoConditionOut,
    LaoDetailKV,
    LaoInspectionCreate,
    LaoInspectionOut,
    LaoRecordCreate,
    LaoRecordOut,
)
from app.services.lao.schedule import import_key, max_date_iso, normalize_text, unique_sorted_dates

logger = logging.getLogger(__name__)

PENDING_BRANCH_REASON = "Filial não encontrada automaticamente"


class LaoWriter(Protocol):
    async def add_lao(self, data: LaoRecordCreate) -> str: ...

    async def update_lao(self, record: LaoRecordOut) -> None: ...

    async def delete_lao(self, lao_id: str) -> None: ...

    async def add_condition(self, data: LaoConditionCreate) -> str: ...

    async def update_condition(self, record: LaoConditionOut) -> None: ...

    async def delete_condition(self, condition_id: str) -> None: ...

    async def add_inspection(self, data: LaoInspectionCreate) -> str | None:
        """Returns None when an inspection for that condition and date already exists."""
        ...

    # Optional: `item_scope() -> async context manager`. When present, each item is
    # imported inside it and a failing item is expected to leave no writes behind.


@dataclass
class LaoSnapshot:
    branches: list[BranchOut] = field(default_factory=list)
    laos: list[LaoRecordOut] = field(default_factory=list)
    conditions: list[LaoConditionOut] = field(default_factory=list)
    inspections: list[LaoInspectionOut] = field(default_factory=list)


def _renumber_details(details: list[LaoDetailKV]) -> list[LaoDetailKV]:
    return [
        detail.model_copy(update={"id": detail.id or f"detail-import-{index}", "order": index})
        for index, detail in enumerate(details)
    ]


def _condition_payload(lao_id: str, parsed: ParsedLaoConditionImport) -> LaoConditionCreate:
    return LaoConditionCreate(
        lao_id=lao_id,
        name=parsed.name.strip(),
        frequency_preset=parsed.frequency_preset,
        custom_months_interval=parsed.custom_months_interval
        if parsed.frequency_preset == "custom"
        else None,
        last_inspection_date=parsed.last_inspection_date or max_date_iso(parsed.inspections),
        notes=parsed.notes or "",
        active=True,
    )


_COUNTERS = (
    "created",
    "updated",
    "pending_branch",
    "condition_created",
    "condition_updated",
    "inspections_created",
    "inspections_skipped",
)


def _accumulate(total: LaoImportResult, part: LaoImportResult) -> None:
    for name in _COUNTERS:
        setattr(total, name, getattr(total, name) + getattr(part, name))
    total.import_errors.extend(part.import_errors)
    total.pending_items.extend(part.pending_items)


class LaoImportReconciler:
    def __init__(self, writer: LaoWriter, snapshot: LaoSnapshot):
        self.writer = writer
        self._branches = {}
        for branch in snapshot.branches:
            self._branches.setdefault(normalize_text(branch.name), branch.id)

        # shadow state for the duration of one run
        self._laos: dict[str, LaoRecordOut] = {}
        for lao in snapshot.laos:
            self._laos.setdefault(import_key(lao.lao_number, lao.empreendimento), lao)
        self._conditions: dict[tuple[str, str], LaoConditionOut] = {}
        for condition in snapshot.conditions:
            self._conditions.setdefault((condition.lao_id, normalize_text(condition.name)), condition)
        self._inspections: set[tuple[str, str]] = {
            (inspection.condition_id, inspection.inspection_date) for inspection in snapshot.inspections
        }

    def find_branch_id(self, empreendimento: str) -> str | None:
        return self._branches.get(normalize_text(empreendimento))

    def _shadow_copy(self):
        return dict(self._laos), dict(self._conditions), set(self._inspections)

    def _restore_shadow(self, shadow) -> None:
        self._laos, self._conditions, self._inspections = shadow

    async def _import_item_scoped(self, item: ParsedLaoImportItem, item_summary: LaoImportResult) -> None:
        scope = getattr(self.writer, "item_scope", None)
        if scope is None:
            await self._import_item(item, item_summary)
            return
        async with scope():
            await self._import_item(item, item_summary)

    async def run(self, items: list[ParsedLaoImportItem], parser_errors: list[str] | None = None) -> LaoImportResult:
        summary = LaoImportResult(parser_errors=list(parser_errors or []))
        rolls_back = hasattr(self.writer, "item_scope")
        for item in items:
            shadow = self._shadow_copy()
            item_summary = LaoImportResult()
            try:
                await self._import_item_scoped(item, item_summary)
            except Exception as exc:
                logger.warning("lao_import item failed lao=%s", item.lao_number, exc_info=True)
                if rolls_back:
                    # the writer discarded this item's writes; forget them too
                    self._restore_shadow(shadow)
                    item_summary = LaoImportResult()
                item_summary.import_errors.append(f'Falha ao importar "{item.lao_number}": {exc}')
            _accumulate(summary, item_summary)

        logger.info(
            "lao_import done items=%s created=%s updated=%s pending_branch=%s "
            "conditions_created=%s conditions_updated=%s inspections_created=%s "
            "inspections_skipped=%s import_errors=%s",
            len(items),
            summary.created,
            summary.updated,
            summary.pending_branch,
            summary.condition_created,
            summary.condition_updated,
            summary.inspections_created,
            summary.inspections_skipped,
            len(summary.import_errors),
        )
        return summary

    async def _import_item(self, item: ParsedLaoImportItem, summary: LaoImportResult) -> None:
        branch_id = self.find_branch_id(item.empreendimento)
        if not branch_id:
            summary.pending_branch += 1
            summary.pending_items.append(
                PendingItem(
                    lao_number=item.lao_number,
                    empreendimento=item.empreendimento,
                    reason=PENDING_BRANCH_REASON,
                )
            )

        if not item.validity_date:
            summary.import_errors.append(f'LAO "{item.lao_number}" ignorada: validade obrigatória ausente.')
            return

        lao = await self._upsert_lao(item, branch_id, summary)
        for parsed_condition in item.conditions:
            condition_id = await self._upsert_condition(lao.id, parsed_condition, summary)
            await self._add_inspections(lao.id, condition_id, parsed_condition.inspections, summary)

    async def _upsert_lao(
        self, item: ParsedLaoImportItem, branch_id: str | None, summary: LaoImportResult
    ) -> LaoRecordOut:
        key = import_key(item.lao_number, item.empreendimento)
        fields = {
            "lao_number": item.lao_number,
            "title": item.title or f"{item.lao_number} {item.empreendimento}".strip(),
            "empreendimento": item.empreendimento,
            "branch_id": branch_id,
            "process_number": item.process_number or None,
            "fcei": item.fcei or None,
            "codam": item.codam or None,
            "issue_date": item.issue_date or None,
            "validity_date": item.validity_date,
            "details": _renumber_details(item.details),
            "active": True,
        }

        existing = self._laos.get(key)
        if existing:
            # id, created_at, category and attachments stay as stored
            updated = existing.model_copy(update=fields)
            await self.writer.update_lao(updated)
            summary.updated += 1
            self._laos[key] = updated
            return updated

        payload = LaoRecordCreate(**fields)
        new_id = await self.writer.add_lao(payload)
        created = LaoRecordOut(id=new_id, **payload.model_dump())
        summary.created += 1
        self._laos[key] = created
        return created

    async def _upsert_condition(
        self, lao_id: str, parsed: ParsedLaoConditionImport, summary: LaoImportResult
    ) -> str:
        shadow_key = (lao_id, normalize_text(parsed.name))
        payload = _condition_payload(lao_id, parsed)
        existing = self._conditions.get(shadow_key)

        if existing:
            last_inspection = max_date_iso(
                [existing.last_inspection_date, parsed.last_inspection_date, *parsed.inspections]
            )
            updated = existing.model_copy(
                update={
                    "name": payload.name,
                    "frequency_preset": payload.frequency_preset,
                    "custom_months_interval": payload.custom_months_interval,
                    "last_inspection_date": last_inspection,
                    "notes": payload.notes or existing.notes,
                    "active": True,
                }
            )
            await self.writer.update_condition(updated)
            summary.condition_updated += 1
            self._conditions[shadow_key] = updated
            return updated.id

        new_id = await self.writer.add_condition(payload)
        summary.condition_created += 1
        self._conditions[shadow_key] = LaoConditionOut(id=new_id, **payload.model_dump())
        return new_id

    async def _add_inspections(
        self, lao_id: str, condition_id: str, dates: list[str], summary: LaoImportResult
    ) -> None:
        for inspection_date in unique_sorted_dates(dates):
            if (condition_id, inspection_date) in self._inspections:
                summary.inspections_skipped += 1
                continue

            created_id = await self.writer.add_inspection(
                LaoInspectionCreate(
                    lao_id=lao_id,
                    condition_id=condition_id,
                    inspection_date=inspection_date,
                    source="import",
                )
            )
            if not created_id:
                summary.inspections_skipped += 1
                continue

            summary.inspections_created += 1
            self._inspections.add((condition_id, inspection_date))


async def execute_lao_import(
    items: list[ParsedLaoImportItem],
    parser_errors: list[str] | None,
    *,
    writer: LaoWriter,
    snapshot: LaoSnapshot,
) -> LaoImportResult:
    return await LaoImportReconciler(writer, snapshot).run(items, parser_errors)
