from app.schemas.ingest.lao_workbook import LaoImportResult, PendingItem
from app.services.lao.report import build_import_report_csv


def test_report_lists_pending_then_errors():
    result = LaoImportResult(
        created=1,
        pending_branch=1,
        pending_items=[
            PendingItem(
                lao_number="LAO 001",
                empreendimento="Posto Anápolis",
                reason="Filial não encontrada automaticamente",
            )
        ],
        import_errors=['Falha ao importar "LAO 002": boom'],
        parser_errors=["Aba Capa não encontrada no arquivo."],
    )

    lines = build_import_report_csv(result).splitlines()

    assert lines[0] == "tipo;lao;empreendimento;motivo"
    assert lines[1] == "pendencia;LAO 001;Posto Anápolis;Filial não encontrada automaticamente"
    assert lines[2] == 'erro;;;"Falha ao importar ""LAO 002"": boom"'
    assert lines[3] == "parser;;;Aba Capa não encontrada no arquivo."
    assert len(lines) == 4


def test_empty_report_has_only_header():
    assert build_import_report_csv(LaoImportResult()) == "tipo;lao;empreendimento;motivo\n"
