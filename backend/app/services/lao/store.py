from __future__ import annotations

from contextlib import asynccontextmanager

from sqlalchemy.orm import Session

from app.models.branch import Branch
from app.models.lao_condition import LaoCondition
from app.models.lao_inspection import LaoInspection
from app.models.lao_record import LaoRecord
from app.schemas.branch import BranchOut
from app.schemas.lao import (
    LaoConditionCreate,
    LaoConditionOut,
    LaoInspectionCreate,
    LaoInspectionOut,
    LaoRecordCreate,
    LaoRecordOut,
)
from app.services.lao.reconcile import LaoSnapshot

_LAO_FIELDS = (
    "lao_number",
    "title",
    "empreendimento",
    "branch_id",
    "category",
    "process_number",
    "fcei",
    "codam",
    "issue_date",
    "validity_date",
    "details",
    "attachments",
    "active",
)
_CONDITION_FIELDS = (
    "lao_id",
    "name",
    "frequency_preset",
    "custom_months_interval",
    "last_inspection_date",
    "notes",
    "active",
)


class SqlLaoWriter:
    """
    LaoWriter over a SQLAlchemy session.

    Every write is flushed so ids are available immediately; committing (or
    rolling back) the whole run is left to the caller. Each imported item runs
    inside a SAVEPOINT, so a database error drops only that item's writes.

    The methods are async only to satisfy the writer contract: they block on the
    session and must not be awaited concurrently.
    """

    def __init__(self, db: Session):
        self.db = db

    @asynccontextmanager
    async def item_scope(self):
        with self.db.begin_nested():
            yield

    def _get(self, model, entity_id: str):
        entity = self.db.get(model, entity_id)
        if entity is None:
            raise LookupError(f"{model.__name__} {entity_id} not found")
        return entity

    async def add_lao(self, data: LaoRecordCreate) -> str:
        payload = data.model_dump(include=set(_LAO_FIELDS))
        lao = LaoRecord(**payload)
        self.db.add(lao)
        self.db.flush()
        return lao.id

    async def update_lao(self, record: LaoRecordOut) -> None:
        lao = self._get(LaoRecord, record.id)
        for key, value in record.model_dump(include=set(_LAO_FIELDS)).items():
            setattr(lao, key, value)
        self.db.flush()

    async def delete_lao(self, lao_id: str) -> None:
        lao = self._get(LaoRecord, lao_id)
        # hard delete cascades: inspections, then condicionantes, then the LAO
        self.db.query(LaoInspection).filter(LaoInspection.lao_id == lao_id).delete(synchronize_session=False)
        self.db.query(LaoCondition).filter(LaoCondition.lao_id == lao_id).delete(synchronize_session=False)
        self.db.delete(lao)
        self.db.flush()

    async def add_condition(self, data: LaoConditionCreate) -> str:
        condition = LaoCondition(**data.model_dump(include=set(_CONDITION_FIELDS)))
        self.db.add(condition)
        self.db.flush()
        return condition.id

    async def update_condition(self, record: LaoConditionOut) -> None:
        condition = self._get(LaoCondition, record.id)
        for key, value in record.model_dump(include=set(_CONDITION_FIELDS)).items():
            setattr(condition, key, value)
        self.db.flush()

    async def delete_condition(self, condition_id: str) -> None:
        condition = self._get(LaoCondition, condition_id)
        self.db.query(LaoInspection).filter(LaoInspection.condition_id == condition_id).delete(
            synchronize_session=False
        )
        self.db.delete(condition)
        self.db.flush()

    async def add_inspection(self, data: LaoInspectionCreate) -> str | None:
        duplicate = (
            self.db.query(LaoInspection.id)
            .filter(
                LaoInspection.condition_id == data.condition_id,
                LaoInspection.inspection_date == data.inspection_date,
            )
            .first()
        )
        if duplicate:
            return None
        inspection = LaoInspection(**data.model_dump())
        self.db.add(inspection)
        self.db.flush()
        return inspection.id


def load_snapshot(db: Session) -> LaoSnapshot:
    return LaoSnapshot(
        branches=[BranchOut.model_validate(b) for b in db.query(Branch).all()],
        laos=[LaoRecordOut.model_validate(lao) for lao in db.query(LaoRecord).all()],
        conditions=[LaoConditionOut.model_validate(c) for c in db.query(LaoCondition).all()],
        inspections=[LaoInspectionOut.model_validate(i) for i in db.query(LaoInspection).all()],
    )
