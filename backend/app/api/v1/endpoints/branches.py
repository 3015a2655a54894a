from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.branch import Branch
from app.models.lao_record import LaoRecord
from app.schemas.branch import BranchCreate, BranchOut, BranchUpdate
from app.services.ingest.utils import normalize_cnpj
from app.services.lao.schedule import normalize_text

router = APIRouter()


def _get_branch_or_404(db: Session, branch_id: str) -> Branch:
    branch = db.get(Branch, branch_id)
    if not branch:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Branch not found",
        )
    return branch


def _ensure_unique_name(db: Session, name: str, exclude_id: str | None = None) -> None:
    # workbook import matches branches by normalized name, so names must stay distinct
    wanted = normalize_text(name)
    for existing in db.query(Branch.id, Branch.name).all():
        if existing.id != exclude_id and normalize_text(existing.name) == wanted:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Branch already exists",
            )


def _clean_payload(data: dict) -> dict:
    if "name" in data:
        data["name"] = (data["name"] or "").strip()
        if not data["name"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Branch name is required",
            )
    if data.get("cnpj"):
        data["cnpj"] = normalize_cnpj(data["cnpj"]) or None
    return data


@router.post("", response_model=BranchOut, status_code=status.HTTP_201_CREATED)
def create_branch(
    payload: BranchCreate,
    db: Session = Depends(get_db),
) -> BranchOut:
    data = _clean_payload(payload.model_dump())
    _ensure_unique_name(db, data["name"])

    branch = Branch(**data)
    db.add(branch)
    db.commit()
    db.refresh(branch)
    return BranchOut.model_validate(branch)


@router.get("", response_model=list[BranchOut])
def list_branches(
    db: Session = Depends(get_db),
    limit: int = Query(default=1000, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> list[BranchOut]:
    branches = db.query(Branch).order_by(Branch.name.asc()).offset(offset).limit(limit).all()
    return [BranchOut.model_validate(branch) for branch in branches]


@router.patch("/{branch_id}", response_model=BranchOut)
def update_branch(
    branch_id: str,
    payload: BranchUpdate,
    db: Session = Depends(get_db),
) -> BranchOut:
    branch = _get_branch_or_404(db, branch_id)
    data = _clean_payload(payload.model_dump(exclude_unset=True))
    if data.get("status") is None:
        data.pop("status", None)
    if "name" in data:
        _ensure_unique_name(db, data["name"], exclude_id=branch.id)
    for key, value in data.items():
        setattr(branch, key, value)
    db.commit()
    db.refresh(branch)
    return BranchOut.model_validate(branch)


@router.delete("/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_branch(branch_id: str, db: Session = Depends(get_db)) -> Response:
    branch = _get_branch_or_404(db, branch_id)
    # LAOs of a removed branch go back to pending
    db.query(LaoRecord).filter(LaoRecord.branch_id == branch_id).update(
        {LaoRecord.branch_id: None}, synchronize_session=False
    )
    db.delete(branch)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
