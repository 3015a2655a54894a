from datetime import date, datetime

import pytest

from app.services.lao.schedule import (
    add_months_preserve_day,
    format_date_br,
    frequency_to_months,
    import_key,
    is_month_before_today,
    max_date_iso,
    normalize_text,
    parse_iso_date,
    parse_workbook_date,
    resolve_frequency_from_label,
    to_iso_date,
    unique_sorted_dates,
)


def test_normalize_text_ignores_case_accents_and_spacing():
    assert normalize_text("  Condicionante   ÁGUA ") == "condicionante agua"
    assert normalize_text(None) == ""
    assert normalize_text("") == ""


@pytest.mark.parametrize(
    "value",
    [
        "Condicionante ÁGUA",
        "  MiXeD   Case  ",
        "coluna\tcom\ttab",
        "linha 1\nlinha 2\r\n",
        "Ação Çãõ ü",
        "",
        None,
    ],
)
def test_normalize_text_is_idempotent(value):
    once = normalize_text(value)
    assert normalize_text(once) == once


def test_import_key_is_stable_across_spelling_variants():
    assert import_key("LAO 123", "Anápolis") == "lao 123::anapolis"
    assert import_key("lao  123 ", "ANAPOLIS") == import_key("LAO 123", "Anápolis")


def test_iso_round_trip_and_invalid_dates():
    assert to_iso_date(parse_iso_date("2024-02-29")) == "2024-02-29"
    assert parse_iso_date("2024-02-30") is None
    assert parse_iso_date("2024-2-3") is None
    assert parse_iso_date(None) is None


def test_format_date_br():
    assert format_date_br("2024-03-05") == "05/03/2024"
    assert format_date_br("invalid") == ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (datetime(2024, 3, 5, 10, 30), "2024-03-05"),
        (date(2024, 3, 5), "2024-03-05"),
        (45292, "2024-01-01"),
        (45292.5, "2024-01-01"),
        ("05/03/2024", "2024-03-05"),
        ("5/3/2024", "2024-03-05"),
        (" 2024-03-05 ", "2024-03-05"),
        ("32/01/2024", None),
        ("sem data", None),
        ("", None),
        (None, None),
        (0, None),
        (True, None),
    ],
)
def test_parse_workbook_date(value, expected):
    assert parse_workbook_date(value) == expected


def test_resolve_frequency_from_label():
    assert resolve_frequency_from_label("Vistoria Trimestral") == ("trimestral", None)
    assert resolve_frequency_from_label("SEMESTRAL") == ("semestral", None)
    assert resolve_frequency_from_label("a cada 5 meses") == ("custom", 5)
    assert resolve_frequency_from_label("") == ("anual", None)
    assert resolve_frequency_from_label("quando solicitado") == ("anual", None)


def test_frequency_to_months():
    assert frequency_to_months("mensal") == 1
    assert frequency_to_months("bimestral") == 2
    assert frequency_to_months("anual") == 12
    assert frequency_to_months("custom", 5) == 5
    assert frequency_to_months("custom", 0) is None
    assert frequency_to_months("custom") is None


def test_add_months_preserve_day_clamps_to_month_end():
    assert add_months_preserve_day(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months_preserve_day(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months_preserve_day(date(2024, 11, 15), 3) == date(2025, 2, 15)
    assert add_months_preserve_day(date(2024, 3, 31), -1) == date(2024, 2, 29)


def test_max_date_and_unique_sorted():
    assert max_date_iso([None, "2024-01-01", "2023-05-05"]) == "2024-01-01"
    assert max_date_iso([]) is None
    assert unique_sorted_dates(["2024-05-01", "2024-01-01", "2024-05-01", ""]) == [
        "2024-01-01",
        "2024-05-01",
    ]


def test_is_month_before_today():
    today = date(2024, 3, 10)
    assert is_month_before_today(0, 2024, today) is True
    assert is_month_before_today(2, 2024, today) is False
    assert is_month_before_today(11, 2023, today) is True
    assert is_month_before_today(0, 2025, today) is False
