# -*- coding: utf-8 -*-
"""
Pré-visualização offline da planilha de controle de LAO.

Lê o .xlsx com o mesmo parser do endpoint /api/v1/ingest/lao-workbook e grava
(ou imprime) o resultado em JSON, sem tocar no banco.

Uso:
    python scripts/lao_workbook_preview.py planilha.xlsx [-o saida.json]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.services.lao.schedule import format_date_br, normalize_text  # noqa: E402
from app.services.lao.workbook import WorkbookParserConfig, parse_workbook  # noqa: E402


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pré-visualiza a importação de uma planilha de LAO.")
    parser.add_argument("workbook", type=Path, help="arquivo .xlsx de entrada")
    parser.add_argument("-o", "--output", type=Path, default=None, help="arquivo JSON de saída")
    parser.add_argument("--cover-sheet", default="Capa", help="nome da aba de capa (padrão: Capa)")
    parser.add_argument(
        "--ignore-sheet",
        action="append",
        default=[],
        help="aba adicional a ignorar no detalhamento (pode repetir)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if not args.workbook.exists():
        print(f"Arquivo não encontrado: {args.workbook}", file=sys.stderr)
        return 1

    defaults = WorkbookParserConfig()
    config = WorkbookParserConfig(
        cover_sheet=args.cover_sheet,
        ignored_sheets=defaults.ignored_sheets
        | {normalize_text(args.cover_sheet)}
        | {normalize_text(name) for name in args.ignore_sheet if name.strip()},
    )
    result = parse_workbook(args.workbook.read_bytes(), config)

    payload = {
        "source_name": args.workbook.name,
        "items": [item.model_dump() for item in result.items],
        "parser_errors": result.parser_errors,
    }
    text = json.dumps(payload, ensure_ascii=False, indent=2)

    if args.output:
        args.output.write_text(text, encoding="utf-8")
        print(f"JSON gerado: {args.output}")
    else:
        print(text)

    print(f"LAOs lidas: {len(result.items)}", file=sys.stderr)
    for item in result.items:
        validity = format_date_br(item.validity_date)
        print(f"  {item.lao_number} - {item.empreendimento} (validade {validity})", file=sys.stderr)
    conditions = sum(len(item.conditions) for item in result.items)
    print(f"Condicionantes: {conditions}", file=sys.stderr)
    for error in result.parser_errors:
        print(f"  - {error}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
