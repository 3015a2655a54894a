from __future__ import annotations

from datetime import date, timedelta
from typing import Literal, Optional

from app.schemas.license_type import LicenseTypeRule
from app.services.lao.schedule import parse_iso_date, to_iso_date

ExpiryStatus = Literal["ok", "warning", "expired"]


def renewal_deadlines(
    expiry_iso: str | None, rule: LicenseTypeRule
) -> tuple[Optional[str], Optional[str]]:
    """
    (prazo de prorrogação, início do processo) for a licence expiring on ``expiry_iso``.

    The protocol deadline is ``expiry - renewal_protocol_days``; the process start
    is counted back from that deadline and only exists when process_start_days > 0.
    """
    expiry = parse_iso_date(expiry_iso)
    if not expiry:
        return None, None
    prorroga = expiry - timedelta(days=rule.renewal_protocol_days or 0)
    process_start = None
    if rule.process_start_days:
        process_start = to_iso_date(prorroga - timedelta(days=rule.process_start_days))
    return to_iso_date(prorroga), process_start


def days_until_expiry(expiry_iso: str | None, today: date) -> int | None:
    expiry = parse_iso_date(expiry_iso)
    if not expiry:
        return None
    return (expiry - today).days


def renewal_window_days(rule: LicenseTypeRule | None, default_days: int) -> int:
    if rule is None:
        return default_days
    return (rule.renewal_protocol_days or 0) + (rule.process_start_days or 0)


def classify_expiry(days: int, window_days: int) -> ExpiryStatus:
    if days < 0:
        return "expired"
    if days <= window_days:
        return "warning"
    return "ok"
