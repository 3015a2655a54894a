"""
Date and frequency helpers for LAO condition scheduling.

All dates travel as ISO strings (YYYY-MM-DD) between layers; ``datetime.date``
is only used while doing arithmetic, so no timezone conversion can shift a day.
"""

from __future__ import annotations

import calendar
import re
import unicodedata
from datetime import date, datetime, timedelta
from typing import Iterable, NamedTuple, Optional

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_BR_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_EVERY_N_MONTHS = re.compile(r"(\d+)\s*(mes|meses|m)")
_WHITESPACE = re.compile(r"\s+")

_EXCEL_EPOCH = datetime(1899, 12, 30)
_MILLIS_PER_DAY = 24 * 60 * 60 * 1000

FREQUENCY_MONTHS: dict[str, int] = {
    "mensal": 1,
    "bimestral": 2,
    "trimestral": 3,
    "semestral": 6,
    "anual": 12,
}

# Checked in order: the first keyword found in the label wins.
_FREQUENCY_KEYWORDS = ("mensal", "bimestral", "trimestral", "semestral", "anual")


class FrequencyResolution(NamedTuple):
    preset: str
    custom_months_interval: Optional[int] = None


def normalize_text(value: str | None) -> str:
    """Accent-, case- and whitespace-insensitive form used for every fuzzy match."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped.lower().strip())


def import_key(lao_number: str | None, empreendimento: str | None) -> str:
    return f"{normalize_text(lao_number)}::{normalize_text(empreendimento)}"


def parse_iso_date(value: str | None) -> date | None:
    if not value or not isinstance(value, str):
        return None
    match = _ISO_DATE.match(value)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def to_iso_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_date_br(value: str | None) -> str:
    parsed = parse_iso_date(value)
    if not parsed:
        return ""
    return f"{parsed.day:02d}/{parsed.month:02d}/{parsed.year:04d}"


def parse_workbook_date(value) -> str | None:
    """
    Decode a spreadsheet cell into an ISO date.

    Accepts native date/datetime cells, Excel serial numbers and text in
    ISO (returned as-is) or Brazilian D/M/YYYY form.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (datetime, date)):
        return to_iso_date(value)

    if isinstance(value, (int, float)):
        if not value:
            return None
        try:
            millis = round(value * _MILLIS_PER_DAY)
            parsed = _EXCEL_EPOCH + timedelta(milliseconds=millis)
        except (OverflowError, ValueError):
            return None
        return to_iso_date(parsed.date())

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        if _ISO_DATE.match(trimmed):
            return trimmed
        br_match = _BR_DATE.match(trimmed)
        if br_match:
            day, month, year = (int(part) for part in br_match.groups())
            if 0 < day <= 31 and 0 < month <= 12:
                return f"{year:04d}-{month:02d}-{day:02d}"

    return None


def resolve_frequency_from_label(value: str | None) -> FrequencyResolution:
    """
    Map a free-text frequency label ("Vistoria Trimestral", "a cada 5 meses")
    to a preset. Unrecognized or empty labels fall back to ``anual``.
    """
    normalized = normalize_text(value)
    if not normalized:
        return FrequencyResolution("anual")

    for keyword in _FREQUENCY_KEYWORDS:
        if keyword in normalized:
            return FrequencyResolution(keyword)

    match = _EVERY_N_MONTHS.search(normalized)
    if match:
        interval = int(match.group(1))
        if interval > 0:
            return FrequencyResolution("custom", interval)

    return FrequencyResolution("anual")


def frequency_to_months(preset: str, custom_months_interval: int | None = None) -> int | None:
    if preset == "custom":
        if not custom_months_interval or custom_months_interval <= 0:
            return None
        return custom_months_interval
    return FREQUENCY_MONTHS.get(preset)


def add_months_preserve_day(base: date, months_to_add: int) -> date:
    """Add calendar months, clamping to the last day of a shorter target month."""
    year_offset, month_index = divmod(base.month - 1 + months_to_add, 12)
    year = base.year + year_offset
    month = month_index + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(base.day, last_day))


def max_date_iso(values: Iterable[str | None]) -> str | None:
    present = [value for value in values if value]
    return max(present) if present else None


def unique_sorted_dates(values: Iterable[str]) -> list[str]:
    return sorted({value for value in values if value})


def is_month_before_today(month_index: int, year: int, today: date) -> bool:
    """``month_index`` is zero-based (0 = January)."""
    if year < today.year:
        return True
    if year > today.year:
        return False
    return month_index < today.month - 1
