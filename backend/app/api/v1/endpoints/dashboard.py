from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.branch import Branch
from app.models.lao_record import LaoRecord
from app.models.license_type import LicenseType
from app.schemas.dashboard import DashboardOut, ExpiringLao
from app.schemas.license_type import LicenseTypeRule
from app.services.lao.deadlines import classify_expiry, days_until_expiry, renewal_window_days

router = APIRouter()


@router.get("", response_model=DashboardOut)
def get_dashboard(
    db: Session = Depends(get_db),
    license_type_id: str | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
) -> DashboardOut:
    rule = None
    if license_type_id:
        license_type = db.get(LicenseType, license_type_id)
        if not license_type:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="License type not found",
            )
        rule = LicenseTypeRule.model_validate(license_type, from_attributes=True)
    window = renewal_window_days(rule, settings.DEFAULT_RENEWAL_WINDOW_DAYS)

    today = date.today()
    active = db.query(LaoRecord).filter(LaoRecord.active.is_(True)).all()
    with_status: list[ExpiringLao] = []
    for lao in active:
        days = days_until_expiry(lao.validity_date, today)
        if days is None:
            continue
        with_status.append(
            ExpiringLao(
                id=lao.id,
                lao_number=lao.lao_number,
                empreendimento=lao.empreendimento,
                validity_date=lao.validity_date,
                days=days,
                status=classify_expiry(days, window),
            )
        )
    with_status.sort(key=lambda item: item.days)

    return DashboardOut(
        total_active=len(active),
        total_expired=sum(1 for item in with_status if item.status == "expired"),
        total_warning=sum(1 for item in with_status if item.status == "warning"),
        total_branches=db.query(Branch).count(),
        expiring_soon=with_status[:limit],
    )
