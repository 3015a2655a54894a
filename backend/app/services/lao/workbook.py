"""
Parser for the LAO control workbook.

Layout handled:

* a cover sheet ("Capa") listing, per licence, one header row whose first column
  holds "LAO <n>\\n<empreendimento>" followed by one row per condicionante
  (column B name, column C frequency label, columns D-O one inspection date per month);
* one detail sheet per site with "key | value" rows (Empreendimento, Processo,
  FCEI, CODAM, Licença, Emissão, Validade and free-form extras).

Both passes are reconciled into ``ParsedLaoImportItem`` values keyed by
``import_key(lao_number, empreendimento)``. Structural problems never raise:
they are returned as human-readable strings in ``parser_errors``.
"""

from __future__ import annotations

import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Iterable, Mapping, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.schemas.ingest.lao_workbook import ParsedLaoConditionImport, ParsedLaoImportItem
from app.schemas.lao import LaoDetailKV
from app.services.ingest.utils import repair_mojibake_utf8
from app.services.lao.schedule import (
    import_key,
    max_date_iso,
    normalize_text,
    parse_workbook_date,
    resolve_frequency_from_label,
    to_iso_date,
    unique_sorted_dates,
)

logger = logging.getLogger(__name__)

Row = Sequence[object]

_LINE_BREAKS = re.compile(r"[\r\n]+")


@dataclass(frozen=True)
class WorkbookParserConfig:
    cover_sheet: str = "Capa"
    ignored_sheets: frozenset[str] = frozenset({"capa", "lai", "cronograma", "plan1"})
    first_month_column: int = 3
    month_columns: int = 12

    @classmethod
    def from_settings(cls, settings) -> "WorkbookParserConfig":
        ignored = {normalize_text(name) for name in settings.LAO_IGNORED_SHEETS}
        # the cover sheet never doubles as a detail sheet
        ignored.add(normalize_text(settings.LAO_COVER_SHEET))
        return cls(cover_sheet=settings.LAO_COVER_SHEET, ignored_sheets=frozenset(ignored))


@dataclass
class WorkbookParseResult:
    items: list[ParsedLaoImportItem] = field(default_factory=list)
    parser_errors: list[str] = field(default_factory=list)


def _cell(row: Row, index: int):
    return row[index] if index < len(row) else None


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return to_iso_date(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repair_mojibake_utf8(str(value)).strip()


def _lines(value: str) -> list[str]:
    return [line.strip() for line in value.splitlines() if line.strip()]


def extract_lao_number(value: str) -> str:
    lines = _lines(value)
    return lines[0] if lines else value.strip()


def extract_empreendimento(value: str) -> str:
    lines = _lines(value)
    if len(lines) > 1:
        return " ".join(lines[1:])
    first = lines[0] if lines else ""
    return first.replace(extract_lao_number(first), "", 1).strip()


def merge_detail_blocks(base: list[LaoDetailKV], addition: list[LaoDetailKV]) -> list[LaoDetailKV]:
    """Append unseen (key, value) pairs, compared normalized, then renumber ``order``."""
    merged = list(base)
    seen = {(normalize_text(d.key), normalize_text(d.value)) for d in merged}
    for detail in addition:
        signature = (normalize_text(detail.key), normalize_text(detail.value))
        if signature in seen:
            continue
        seen.add(signature)
        merged.append(detail.model_copy(update={"id": f"{detail.id}-{len(merged)}"}))
    return [detail.model_copy(update={"order": index}) for index, detail in enumerate(merged)]


def merge_condition(
    conditions: list[ParsedLaoConditionImport], incoming: ParsedLaoConditionImport
) -> list[ParsedLaoConditionImport]:
    """Union ``incoming`` into the condition with the same normalized name, or append it."""
    target = normalize_text(incoming.name)
    for index, current in enumerate(conditions):
        if normalize_text(current.name) != target:
            continue
        inspections = unique_sorted_dates([*current.inspections, *incoming.inspections])
        merged = current.model_copy(
            update={
                "frequency_preset": incoming.frequency_preset or current.frequency_preset,
                "custom_months_interval": incoming.custom_months_interval
                or current.custom_months_interval,
                "inspections": inspections,
                "last_inspection_date": max_date_iso(inspections),
                "notes": current.notes or incoming.notes,
            }
        )
        return [*conditions[:index], merged, *conditions[index + 1 :]]
    return [*conditions, incoming]


def merge_cover_with_detail(cover: ParsedLaoImportItem, detail: ParsedLaoImportItem) -> ParsedLaoImportItem:
    """Fill the cover item's empty fields from a detail sheet; cover data wins."""
    return cover.model_copy(
        update={
            "process_number": cover.process_number or detail.process_number,
            "fcei": cover.fcei or detail.fcei,
            "codam": cover.codam or detail.codam,
            "issue_date": cover.issue_date or detail.issue_date,
            "validity_date": cover.validity_date or detail.validity_date,
            "details": merge_detail_blocks(cover.details, detail.details),
        }
    )


def read_detail_sheet(sheet_name: str, rows: Iterable[Row]) -> ParsedLaoImportItem | None:
    fields = {
        "empreendimento": "",
        "lao_number": "",
        "process_number": "",
        "fcei": "",
        "codam": "",
        "issue_date": "",
        "validity_date": "",
    }
    details: list[LaoDetailKV] = []
    sheet_slug = normalize_text(sheet_name)

    for index, row in enumerate(rows):
        key_raw = _cell_text(_cell(row, 0))
        if not key_raw:
            continue
        value_raw = _cell(row, 1)
        value = _cell_text(value_raw)
        key = normalize_text(key_raw)
        parsed_date = parse_workbook_date(value_raw)

        if key == "empreendimento":
            fields["empreendimento"] = value
        elif key == "processo":
            fields["process_number"] = value
        elif key == "fcei":
            fields["fcei"] = value
        elif key == "codam":
            fields["codam"] = value
        elif "licenca" in key:
            fields["lao_number"] = value
        elif "emissao" in key:
            fields["issue_date"] = parsed_date or value
        elif key == "validade":
            fields["validity_date"] = parsed_date or value
        elif value:
            details.append(
                LaoDetailKV(
                    id=f"detail-{sheet_slug}-{index}",
                    key=key_raw,
                    value=value,
                    order=len(details),
                )
            )

    if not fields["empreendimento"] and not fields["lao_number"] and not details:
        return None

    lao_number = fields["lao_number"] or f"LAO {sheet_name}"
    empreendimento = fields["empreendimento"] or sheet_name
    return ParsedLaoImportItem(
        import_key=import_key(lao_number, empreendimento),
        lao_number=lao_number,
        title=f"{lao_number} {empreendimento}".strip(),
        empreendimento=empreendimento,
        process_number=fields["process_number"] or None,
        fcei=fields["fcei"] or None,
        codam=fields["codam"] or None,
        issue_date=fields["issue_date"] or None,
        validity_date=fields["validity_date"] or None,
        details=details,
    )


def read_cover_sheet(rows: Sequence[Row], config: WorkbookParserConfig) -> dict[str, ParsedLaoImportItem]:
    items: dict[str, ParsedLaoImportItem] = {}
    current_key = ""
    last_month_column = config.first_month_column + config.month_columns

    # first row is the header
    for row in rows[1:]:
        col_a = _cell_text(_cell(row, 0))
        col_b = _cell_text(_cell(row, 1))
        col_c = _cell_text(_cell(row, 2))

        if col_a and "lao" in normalize_text(col_a):
            lao_number = extract_lao_number(col_a)
            empreendimento = extract_empreendimento(col_a) or lao_number
            current_key = import_key(lao_number, empreendimento)
            if current_key not in items:
                items[current_key] = ParsedLaoImportItem(
                    import_key=current_key,
                    lao_number=lao_number,
                    title=_LINE_BREAKS.sub(" ", col_a).strip(),
                    empreendimento=empreendimento,
                )
            continue

        if not col_b or not current_key:
            continue

        frequency = resolve_frequency_from_label(col_c)
        inspections = unique_sorted_dates(
            parsed
            for parsed in (
                parse_workbook_date(_cell(row, column))
                for column in range(config.first_month_column, last_month_column)
            )
            if parsed
        )
        condition = ParsedLaoConditionImport(
            name=col_b,
            frequency_preset=frequency.preset,
            custom_months_interval=frequency.custom_months_interval,
            inspections=inspections,
            last_inspection_date=max_date_iso(inspections),
        )
        entity = items[current_key]
        items[current_key] = entity.model_copy(
            update={"conditions": merge_condition(entity.conditions, condition)}
        )

    return items


def _find_sheet(sheets: Mapping[str, Sequence[Row]], name: str) -> str | None:
    wanted = normalize_text(name)
    for sheet_name in sheets:
        if normalize_text(sheet_name) == wanted:
            return sheet_name
    return None


def _validate(items: Iterable[ParsedLaoImportItem], parser_errors: list[str]) -> list[ParsedLaoImportItem]:
    valid: list[ParsedLaoImportItem] = []
    for item in items:
        if not item.lao_number or not item.empreendimento:
            parser_errors.append(f'Registro ignorado por falta de LAO/Empreendimento: "{item.title}"')
            continue
        if not item.validity_date:
            parser_errors.append(f'LAO "{item.lao_number}" sem validade definida no detalhamento.')
            continue
        valid.append(item)
    return valid


def parse_workbook_rows(
    sheets: Mapping[str, Sequence[Row]], config: WorkbookParserConfig | None = None
) -> WorkbookParseResult:
    """Parse already-extracted sheet rows (sheet order preserved by the mapping)."""
    config = config or WorkbookParserConfig()
    parser_errors: list[str] = []

    detail_records: list[ParsedLaoImportItem] = []
    for sheet_name, rows in sheets.items():
        if normalize_text(sheet_name) in config.ignored_sheets:
            logger.debug("lao_workbook sheet=%s ignored", sheet_name)
            continue
        record = read_detail_sheet(sheet_name, rows)
        if record is None:
            logger.debug("lao_workbook sheet=%s empty, skipped", sheet_name)
            continue
        detail_records.append(record)

    cover_name = _find_sheet(sheets, config.cover_sheet)
    if cover_name is None:
        parser_errors.append(f"Aba {config.cover_sheet} não encontrada no arquivo.")
        return WorkbookParseResult(items=detail_records, parser_errors=parser_errors)

    merged = read_cover_sheet(sheets[cover_name], config)
    cover_keys = list(merged)

    for detail in detail_records:
        if detail.import_key in merged:
            merged[detail.import_key] = merge_cover_with_detail(merged[detail.import_key], detail)
            continue

        site = normalize_text(detail.empreendimento)
        by_site = next(
            (key for key in cover_keys if normalize_text(merged[key].empreendimento) == site),
            None,
        )
        if by_site is not None:
            merged[by_site] = merge_cover_with_detail(merged[by_site], detail)
            continue

        merged[detail.import_key] = detail

    items = _validate(merged.values(), parser_errors)
    return WorkbookParseResult(items=items, parser_errors=parser_errors)


def parse_workbook(data: bytes, config: WorkbookParserConfig | None = None) -> WorkbookParseResult:
    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        logger.warning("lao_workbook unreadable file: %s", exc)
        return WorkbookParseResult(parser_errors=[f"Arquivo de planilha inválido: {exc}"])

    try:
        sheets = {
            worksheet.title: list(worksheet.iter_rows(values_only=True))
            for worksheet in workbook.worksheets
        }
    finally:
        workbook.close()

    result = parse_workbook_rows(sheets, config)
    logger.info(
        "lao_workbook parsed sheets=%s items=%s parser_errors=%s",
        len(sheets),
        len(result.items),
        len(result.parser_errors),
    )
    return result
