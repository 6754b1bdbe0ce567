"""Duplicate detection and merge endpoints (admins only)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lien_recovery.core.deps import get_db, require_roles
from lien_recovery.db.enums import Role
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.duplicate import MergeRequest, MergeResult
from lien_recovery.schemas.record import RecordRead
from lien_recovery.services import duplicate_service, record_query_service

router = APIRouter()

ADMINS = [Role.ADMIN, Role.SUPER_ADMIN]


@router.get(
    "/duplicates",
    response_model=list[RecordRead],
    dependencies=[Depends(require_roles(ADMINS))],
)
def find_duplicates(db: Session = Depends(get_db)):
    """Every record in a duplicate cluster, sorted by provider and patient."""
    records = duplicate_service.find_duplicates(db)
    return [record_query_service.to_record_read(r) for r in records]


@router.post("/duplicates/merge-group", response_model=MergeResult)
def merge_group(
    data: MergeRequest,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    return duplicate_service.merge_selected_duplicates(
        db, data.primary_id, data.duplicate_ids, actor
    )
