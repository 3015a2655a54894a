from __future__ import annotations

import csv
from io import StringIO

from app.schemas.ingest.lao_workbook import LaoImportResult

REPORT_HEADER = ("tipo", "lao", "empreendimento", "motivo")


def build_import_report_csv(result: LaoImportResult) -> str:
    """Pending branches first, then import errors, then parser errors (';'-separated)."""
    buffer = StringIO()
    writer = csv.writer(buffer, delimiter=";", lineterminator="\n")
    writer.writerow(REPORT_HEADER)
    for item in result.pending_items:
        writer.writerow(("pendencia", item.lao_number, item.empreendimento, item.reason))
    for error in result.import_errors:
        writer.writerow(("erro", "", "", error))
    for error in result.parser_errors:
        writer.writerow(("parser", "", "", error))
    return buffer.getvalue()
