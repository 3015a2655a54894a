from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.lao_condition import LaoCondition
from app.models.lao_inspection import LaoInspection
from app.models.lao_record import LaoRecord
from app.schemas.lao import (
    ConditionScheduleOut,
    LaoCategory,
    LaoConditionOut,
    LaoInspectionCreate,
    LaoInspectionOut,
    LaoRecordOut,
    LaoRecordUpdate,
    LaoScheduleOut,
    ManualInspectionIn,
)
from app.services.lao.projection import build_condition_schedule
from app.services.lao.schedule import normalize_text, parse_iso_date
from app.services.lao.store import SqlLaoWriter

router = APIRouter()


def _get_lao_or_404(db: Session, lao_id: str) -> LaoRecord:
    lao = db.get(LaoRecord, lao_id)
    if not lao:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="LAO not found",
        )
    return lao


@router.get("", response_model=list[LaoRecordOut])
def list_laos(
    db: Session = Depends(get_db),
    category: LaoCategory | None = Query(default=None),
    branch_id: str | None = Query(default=None),
    search: str | None = Query(default=None),
    active: bool | None = Query(default=None),
) -> list[LaoRecordOut]:
    query = db.query(LaoRecord)
    if category:
        query = query.filter(LaoRecord.category == category)
    if branch_id:
        query = query.filter(LaoRecord.branch_id == branch_id)
    if active is not None:
        query = query.filter(LaoRecord.active == active)
    laos = query.all()

    needle = normalize_text(search)
    if needle:
        names_by_lao: dict[str, list[str]] = {}
        for lao_id, name in db.query(LaoCondition.lao_id, LaoCondition.name).all():
            names_by_lao.setdefault(lao_id, []).append(normalize_text(name))
        laos = [
            lao
            for lao in laos
            if needle in normalize_text(f"{lao.lao_number} {lao.title} {lao.empreendimento}")
            or any(needle in name for name in names_by_lao.get(lao.id, []))
        ]

    laos.sort(key=lambda lao: normalize_text(f"{lao.lao_number} {lao.empreendimento}"))
    return [LaoRecordOut.model_validate(lao) for lao in laos]


@router.get("/{lao_id}", response_model=LaoRecordOut)
def get_lao(lao_id: str, db: Session = Depends(get_db)) -> LaoRecordOut:
    return LaoRecordOut.model_validate(_get_lao_or_404(db, lao_id))


@router.patch("/{lao_id}", response_model=LaoRecordOut)
def update_lao(
    lao_id: str,
    payload: LaoRecordUpdate,
    db: Session = Depends(get_db),
) -> LaoRecordOut:
    lao = _get_lao_or_404(db, lao_id)
    data = payload.model_dump(exclude_unset=True)
    if "validity_date" in data and not data["validity_date"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="validity_date is required",
        )
    if "details" in data and data["details"] is not None:
        kept = [d for d in data["details"] if d["key"].strip() and d["value"].strip()]
        data["details"] = [{**d, "order": index} for index, d in enumerate(kept)]
    for key, value in data.items():
        setattr(lao, key, value)
    db.commit()
    db.refresh(lao)
    return LaoRecordOut.model_validate(lao)


@router.delete("/{lao_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lao(lao_id: str, db: Session = Depends(get_db)) -> Response:
    _get_lao_or_404(db, lao_id)
    await SqlLaoWriter(db).delete_lao(lao_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{lao_id}/conditions", response_model=list[LaoConditionOut])
def list_conditions(lao_id: str, db: Session = Depends(get_db)) -> list[LaoConditionOut]:
    _get_lao_or_404(db, lao_id)
    conditions = db.query(LaoCondition).filter(LaoCondition.lao_id == lao_id).all()
    conditions.sort(key=lambda c: normalize_text(c.name))
    return [LaoConditionOut.model_validate(c) for c in conditions]


@router.get("/{lao_id}/schedule", response_model=LaoScheduleOut)
def get_lao_schedule(
    lao_id: str,
    year: int | None = Query(default=None, ge=1900, le=2200),
    db: Session = Depends(get_db),
) -> LaoScheduleOut:
    lao = _get_lao_or_404(db, lao_id)
    year = year or date.today().year

    conditions = (
        db.query(LaoCondition)
        .filter(LaoCondition.lao_id == lao_id, LaoCondition.active.is_(True))
        .all()
    )
    conditions.sort(key=lambda c: normalize_text(c.name))
    dates_by_condition: dict[str, list[str]] = {}
    for condition_id, inspection_date in (
        db.query(LaoInspection.condition_id, LaoInspection.inspection_date)
        .filter(LaoInspection.lao_id == lao_id)
        .all()
    ):
        dates_by_condition.setdefault(condition_id, []).append(inspection_date)

    rows = []
    for condition in conditions:
        schedule = build_condition_schedule(
            condition_id=condition.id,
            frequency_preset=condition.frequency_preset,
            custom_months_interval=condition.custom_months_interval,
            last_inspection_date=condition.last_inspection_date,
            validity_date=lao.validity_date,
            inspection_dates=dates_by_condition.get(condition.id, []),
            year=year,
        )
        rows.append(
            ConditionScheduleOut(
                condition=LaoConditionOut.model_validate(condition),
                interval_months=schedule.interval_months,
                projected_dates=schedule.projected_dates,
                recorded_by_month=schedule.recorded_by_month,
                month_status=schedule.month_status,
                validity_ends_before_next_projection=schedule.validity_ends_before_next_projection,
            )
        )

    return LaoScheduleOut(lao=LaoRecordOut.model_validate(lao), year=year, conditions=rows)


@router.post(
    "/{lao_id}/conditions/{condition_id}/inspections",
    response_model=LaoInspectionOut,
    status_code=status.HTTP_201_CREATED,
)
async def record_inspection(
    lao_id: str,
    condition_id: str,
    payload: ManualInspectionIn,
    db: Session = Depends(get_db),
) -> LaoInspectionOut:
    _get_lao_or_404(db, lao_id)
    condition = db.get(LaoCondition, condition_id)
    if not condition or condition.lao_id != lao_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Condition not found",
        )
    if not parse_iso_date(payload.inspection_date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="inspection_date must be YYYY-MM-DD",
        )

    writer = SqlLaoWriter(db)
    inspection_id = await writer.add_inspection(
        LaoInspectionCreate(
            lao_id=lao_id,
            condition_id=condition_id,
            inspection_date=payload.inspection_date,
            note=(payload.note or "").strip() or None,
            source="manual",
            created_by=payload.created_by,
        )
    )
    if not inspection_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Inspection already recorded for this date",
        )

    # a newer inspection becomes the projection anchor
    if not condition.last_inspection_date or payload.inspection_date > condition.last_inspection_date:
        condition.last_inspection_date = payload.inspection_date
    db.commit()
    return LaoInspectionOut.model_validate(db.get(LaoInspection, inspection_id))
