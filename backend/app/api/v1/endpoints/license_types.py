from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.license_type import LicenseType
from app.schemas.license_type import (
    LicenseDeadlinesOut,
    LicenseTypeOut,
    LicenseTypeRule,
    LicenseTypeUpdate,
)
from app.services.lao.deadlines import (
    classify_expiry,
    days_until_expiry,
    renewal_deadlines,
    renewal_window_days,
)

router = APIRouter()


def _get_license_type_or_404(db: Session, license_type_id: str) -> LicenseType:
    license_type = db.get(LicenseType, license_type_id)
    if not license_type:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="License type not found",
        )
    return license_type


@router.post("", response_model=LicenseTypeOut, status_code=status.HTTP_201_CREATED)
def create_license_type(
    payload: LicenseTypeRule,
    db: Session = Depends(get_db),
) -> LicenseTypeOut:
    license_type = LicenseType(**payload.model_dump())
    db.add(license_type)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="License type already exists",
        )
    db.refresh(license_type)
    return LicenseTypeOut.model_validate(license_type)


@router.get("", response_model=list[LicenseTypeOut])
def list_license_types(db: Session = Depends(get_db)) -> list[LicenseTypeOut]:
    types = db.query(LicenseType).order_by(LicenseType.name.asc()).all()
    return [LicenseTypeOut.model_validate(t) for t in types]


@router.get("/{license_type_id}/deadlines", response_model=LicenseDeadlinesOut)
def get_license_deadlines(
    license_type_id: str,
    expiry_date: str = Query(..., pattern=r"^\d{4}-\d{2}-\d{2}$"),
    db: Session = Depends(get_db),
) -> LicenseDeadlinesOut:
    license_type = _get_license_type_or_404(db, license_type_id)
    rule = LicenseTypeRule.model_validate(license_type, from_attributes=True)
    days = days_until_expiry(expiry_date, date.today())
    if days is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid expiry_date",
        )
    prorroga, process_start = renewal_deadlines(expiry_date, rule)
    return LicenseDeadlinesOut(
        expiry_date=expiry_date,
        prorroga_date=prorroga,
        process_start_date=process_start,
        days_until_expiry=days,
        status=classify_expiry(days, renewal_window_days(rule, settings.DEFAULT_RENEWAL_WINDOW_DAYS)),
    )


@router.patch("/{license_type_id}", response_model=LicenseTypeOut)
def update_license_type(
    license_type_id: str,
    payload: LicenseTypeUpdate,
    db: Session = Depends(get_db),
) -> LicenseTypeOut:
    license_type = _get_license_type_or_404(db, license_type_id)
    data = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    if "name" in data:
        data["name"] = data["name"].strip()
        if not data["name"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="License type name is required",
            )
    for key, value in data.items():
        setattr(license_type, key, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="License type already exists",
        )
    db.refresh(license_type)
    return LicenseTypeOut.model_validate(license_type)


@router.delete("/{license_type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_license_type(license_type_id: str, db: Session = Depends(get_db)) -> Response:
    license_type = _get_license_type_or_404(db, license_type_id)
    db.delete(license_type)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
