from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from app.services.lao.schedule import (
    add_months_preserve_day,
    frequency_to_months,
    is_month_before_today,
    parse_iso_date,
    to_iso_date,
)


def project_dates_for_year(
    anchor_iso: str | None,
    validity_iso: str | None,
    interval_months: int | None,
    year: int,
) -> list[str]:
    """
    Projected inspection dates falling in ``year``.

    Candidates are anchor + interval, + 2*interval, ... (each step taken from the
    previous candidate) up to and including the validity date.
    """
    anchor = parse_iso_date(anchor_iso)
    validity = parse_iso_date(validity_iso)
    if not anchor or not validity or not interval_months or interval_months <= 0:
        return []

    dates: list[str] = []
    cursor = add_months_preserve_day(anchor, interval_months)
    while cursor <= validity:
        if cursor.year == year:
            dates.append(to_iso_date(cursor))
        elif cursor.year > year:
            # strictly increasing: nothing further can land in ``year``
            break
        cursor = add_months_preserve_day(cursor, interval_months)
    return dates


@dataclass
class ConditionSchedule:
    condition_id: str
    interval_months: int | None
    projected_dates: list[str] = field(default_factory=list)
    recorded_by_month: dict[int, list[str]] = field(default_factory=dict)
    month_status: dict[int, str] = field(default_factory=dict)
    validity_ends_before_next_projection: bool = False


def build_condition_schedule(
    *,
    condition_id: str,
    frequency_preset: str,
    custom_months_interval: int | None,
    last_inspection_date: str | None,
    validity_date: str | None,
    inspection_dates: Iterable[str],
    year: int,
    today: date | None = None,
) -> ConditionSchedule:
    """
    One row of the yearly board: projections plus inspections recorded per month (0-11).

    ``month_status`` marks each non-empty month as ``done`` (an inspection was
    recorded), ``planned`` (projected, month not yet past) or ``overdue``
    (projected, month already past, nothing recorded).
    """
    today = today or date.today()
    interval = frequency_to_months(frequency_preset, custom_months_interval)
    projected = (
        project_dates_for_year(last_inspection_date, validity_date, interval, year)
        if interval
        else []
    )

    recorded: dict[int, list[str]] = {}
    for value in sorted(set(inspection_dates)):
        parsed = parse_iso_date(value)
        if not parsed or parsed.year != year:
            continue
        recorded.setdefault(parsed.month - 1, []).append(value)

    month_status: dict[int, str] = {month: "done" for month in recorded}
    for value in projected:
        month = int(value[5:7]) - 1
        if month in month_status:
            continue
        month_status[month] = "overdue" if is_month_before_today(month, year, today) else "planned"

    anchor = parse_iso_date(last_inspection_date)
    validity = parse_iso_date(validity_date)
    ends_early = False
    if anchor and validity and interval:
        ends_early = add_months_preserve_day(anchor, interval) > validity

    return ConditionSchedule(
        condition_id=condition_id,
        interval_months=interval,
        projected_dates=projected,
        recorded_by_month=recorded,
        month_status=dict(sorted(month_status.items())),
        validity_ends_before_next_projection=ends_early,
    )
