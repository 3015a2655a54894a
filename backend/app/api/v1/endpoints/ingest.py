from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.ingest_run import IngestRun
from app.schemas.ingest.lao_workbook import LaoImportResult, LaoWorkbookIngestResult
from app.services.ingest.utils import compute_sha256
from app.services.lao.reconcile import execute_lao_import
from app.services.lao.report import build_import_report_csv
from app.services.lao.store import SqlLaoWriter, load_snapshot
from app.services.lao.workbook import WorkbookParserConfig, parse_workbook

logger = logging.getLogger(__name__)

router = APIRouter()

DATASET_LAO_WORKBOOK = "lao_workbook"


def _create_ingest_run(
    *,
    db: Session,
    dataset: str,
    source_name: str | None,
    source_hash: str,
    result: LaoImportResult,
) -> IngestRun:
    ingest_run = IngestRun(
        dataset=dataset,
        source_type="spreadsheet_upload",
        source_name=source_name,
        source_hash=source_hash,
        status="PARTIAL" if result.import_errors else "SUCCESS",
        stats=result.model_dump(),
        error="; ".join(result.import_errors)[:2000] or None,
    )
    db.add(ingest_run)
    db.flush()
    return ingest_run


@router.post("/lao-workbook", response_model=LaoWorkbookIngestResult)
async def ingest_lao_workbook(
    request: Request,
    source_name: str | None = Query(default=None, max_length=255),
    db: Session = Depends(get_db),
) -> LaoWorkbookIngestResult:
    body_bytes = await request.body()
    if not body_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty workbook upload",
        )
    if len(body_bytes) > settings.LAO_MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Workbook exceeds LAO_MAX_UPLOAD_BYTES",
        )

    source_hash = compute_sha256(body_bytes)
    parsed = parse_workbook(body_bytes, WorkbookParserConfig.from_settings(settings))

    try:
        result = await execute_lao_import(
            parsed.items,
            parsed.parser_errors,
            writer=SqlLaoWriter(db),
            snapshot=load_snapshot(db),
        )
        ingest_run_obj = _create_ingest_run(
            db=db,
            dataset=DATASET_LAO_WORKBOOK,
            source_name=source_name,
            source_hash=source_hash,
            result=result,
        )
        db.commit()
        db.refresh(ingest_run_obj)
    except Exception as exc:
        db.rollback()
        logger.exception("lao_workbook ingest failed hash=%s", source_hash)
        raise HTTPException(status_code=500, detail=f"Ingest failed: {exc}")

    logger.info(
        "lao_workbook ingest run=%s hash=%s status=%s",
        ingest_run_obj.id,
        source_hash,
        ingest_run_obj.status,
    )
    return LaoWorkbookIngestResult(
        **result.model_dump(),
        ingest_run_id=ingest_run_obj.id,
        source_hash=source_hash,
        items_parsed=len(parsed.items),
    )


@router.get("/runs/{run_id}/report", response_class=PlainTextResponse)
def get_ingest_run_report(run_id: str, db: Session = Depends(get_db)) -> PlainTextResponse:
    ingest_run = db.get(IngestRun, run_id)
    if not ingest_run or ingest_run.dataset != DATASET_LAO_WORKBOOK:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ingest run not found",
        )
    result = LaoImportResult.model_validate(ingest_run.stats or {})
    return PlainTextResponse(
        build_import_report_csv(result),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="relatorio-importacao-lao-{run_id}.csv"'
        },
    )
