from datetime import datetime

from app.schemas.ingest.lao_workbook import ParsedLaoConditionImport, ParsedLaoImportItem
from app.schemas.lao import LaoDetailKV
from app.services.lao.schedule import import_key
from app.services.lao.workbook import (
    WorkbookParserConfig,
    extract_empreendimento,
    extract_lao_number,
    merge_condition,
    merge_cover_with_detail,
    merge_detail_blocks,
    parse_workbook,
    parse_workbook_rows,
)

HEADER = ["LAO", "Condicionante", "Frequência"] + [f"M{month}" for month in range(1, 13)]


def _month_row(name, frequency, dates_by_month):
    months = [None] * 12
    for month, value in dates_by_month.items():
        months[month - 1] = value
    return [None, name, frequency, *months]


def _detail_rows(**overrides):
    rows = {
        "Empreendimento": "Posto Anápolis",
        "Licença": "LAO 001/2020",
        "Processo": "123/2020",
        "Emissão": datetime(2020, 1, 1),
        "Validade": "31/12/2026",
        "Responsável": "Maria",
    }
    rows.update(overrides)
    return [[key, value] for key, value in rows.items() if value is not None]


def test_extract_lao_header_lines():
    assert extract_lao_number("LAO 001/2020\nPosto Anápolis") == "LAO 001/2020"
    assert extract_empreendimento("LAO 001/2020\nPosto\nAnápolis") == "Posto Anápolis"


def test_parse_cover_and_detail(workbook_bytes):
    data = workbook_bytes(
        {
            "Capa": [
                HEADER,
                ["LAO 001/2020\nPosto Anápolis"],
                _month_row("Monitoramento", "Semestral", {1: datetime(2024, 1, 10), 7: datetime(2024, 7, 10)}),
                _month_row("monitoramento ", "Semestral", {3: "15/03/2024"}),
                _month_row("Relatório", "a cada 4 meses", {1: 45292}),
            ],
            "Anápolis": _detail_rows(),
        }
    )

    result = parse_workbook(data)

    assert result.parser_errors == []
    assert len(result.items) == 1
    item = result.items[0]
    assert item.import_key == import_key("LAO 001/2020", "Posto Anápolis")
    assert item.lao_number == "LAO 001/2020"
    assert item.empreendimento == "Posto Anápolis"
    assert item.process_number == "123/2020"
    assert item.issue_date == "2020-01-01"
    assert item.validity_date == "2026-12-31"
    assert [(d.key, d.value) for d in item.details] == [("Responsável", "Maria")]

    assert [c.name for c in item.conditions] == ["Monitoramento", "Relatório"]
    monitoring, report = item.conditions
    assert monitoring.frequency_preset == "semestral"
    assert monitoring.inspections == ["2024-01-10", "2024-03-15", "2024-07-10"]
    assert monitoring.last_inspection_date == "2024-07-10"
    assert report.frequency_preset == "custom"
    assert report.custom_months_interval == 4
    assert report.inspections == ["2024-01-01"]


def test_missing_cover_keeps_detail_items(workbook_bytes):
    data = workbook_bytes({"Anápolis": _detail_rows()})

    result = parse_workbook(data)

    assert result.parser_errors == ["Aba Capa não encontrada no arquivo."]
    assert [item.lao_number for item in result.items] == ["LAO 001/2020"]
    assert result.items[0].conditions == []


def test_item_without_validity_is_reported():
    sheets = {
        "Capa": [HEADER, ["LAO 002\nFazenda Boa Vista"], _month_row("Poços", "Anual", {})],
    }

    result = parse_workbook_rows(sheets)

    assert result.items == []
    assert result.parser_errors == ['LAO "LAO 002" sem validade definida no detalhamento.']


def test_detail_matched_by_site_when_license_differs():
    sheets = {
        "capa": [HEADER, ["LAO 003\nFazenda Boa Vista"]],
        "Boa Vista": _detail_rows(**{"Empreendimento": "FAZENDA BOA VISTA", "Licença": "LAO 003-A"}),
    }

    result = parse_workbook_rows(sheets)

    assert len(result.items) == 1
    assert result.items[0].lao_number == "LAO 003"
    assert result.items[0].validity_date == "2026-12-31"


def test_ignored_sheets_are_skipped():
    sheets = {
        "Capa": [HEADER, ["LAO 001/2020\nPosto Anápolis"]],
        "Cronograma": _detail_rows(**{"Licença": "LAO 999", "Empreendimento": "Outro"}),
        "Anápolis": _detail_rows(),
    }

    result = parse_workbook_rows(sheets)

    assert [item.lao_number for item in result.items] == ["LAO 001/2020"]


def test_custom_cover_sheet_name():
    config = WorkbookParserConfig(cover_sheet="Resumo", ignored_sheets=frozenset({"resumo"}))
    sheets = {
        "Resumo": [HEADER, ["LAO 001/2020\nPosto Anápolis"]],
        "Anápolis": _detail_rows(),
    }

    result = parse_workbook_rows(sheets, config)

    assert result.parser_errors == []
    assert len(result.items) == 1


def test_unreadable_file_is_a_parser_error():
    result = parse_workbook(b"not a workbook")

    assert result.items == []
    assert len(result.parser_errors) == 1
    assert result.parser_errors[0].startswith("Arquivo de planilha inválido")


def test_merge_cover_with_detail_prefers_cover_values():
    cover = ParsedLaoImportItem(
        import_key="k",
        lao_number="LAO 1",
        title="LAO 1 Posto",
        empreendimento="Posto",
        process_number="cover-proc",
    )
    detail = cover.model_copy(
        update={
            "process_number": "detail-proc",
            "fcei": "F-1",
            "validity_date": "2026-01-01",
            "details": [LaoDetailKV(id="d", key="Obs", value="x")],
        }
    )

    merged = merge_cover_with_detail(cover, detail)

    assert merged.process_number == "cover-proc"
    assert merged.fcei == "F-1"
    assert merged.validity_date == "2026-01-01"
    assert len(merged.details) == 1
    assert cover.fcei is None


def test_merge_detail_blocks_skips_duplicates_and_renumbers():
    base = [LaoDetailKV(id="a", key="Obs", value="Sim", order=5)]
    addition = [
        LaoDetailKV(id="b", key="obs ", value="SIM"),
        LaoDetailKV(id="c", key="Área", value="10 ha"),
    ]

    merged = merge_detail_blocks(base, addition)

    assert [(d.key, d.order) for d in merged] == [("Obs", 0), ("Área", 1)]


def test_merge_condition_unions_dates():
    current = [ParsedLaoConditionImport(name="Monitoramento", inspections=["2024-01-10"])]
    incoming = ParsedLaoConditionImport(
        name="MONITORAMENTO", frequency_preset="mensal", inspections=["2024-02-10", "2024-01-10"]
    )

    merged = merge_condition(current, incoming)

    assert len(merged) == 1
    assert merged[0].name == "Monitoramento"
    assert merged[0].frequency_preset == "mensal"
    assert merged[0].inspections == ["2024-01-10", "2024-02-10"]
    assert merged[0].last_inspection_date == "2024-02-10"
    assert current[0].inspections == ["2024-01-10"]
