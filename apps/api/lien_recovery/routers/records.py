"""Records router - CRUD, listing, assignment and timeline endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lien_recovery.core.deps import get_current_actor, get_db, require_roles
from lien_recovery.core.record_access import check_provider_ownership, check_record_access
from lien_recovery.db.enums import Role
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.comment import CommentCreate, CommentUpdate
from lien_recovery.schemas.record import (
    AssignmentSummaryItem,
    AssignRequest,
    BulkResult,
    DeleteManyRequest,
    ProviderSummary,
    ReassignManyRequest,
    RecordCreate,
    RecordListResponse,
    RecordRead,
    RecordUpdate,
)
from lien_recovery.services import (
    assignment_service,
    comment_service,
    record_query_service,
    record_service,
    summary_service,
)
from lien_recovery.utils.pagination import PaginationParams, get_pagination

router = APIRouter()

ADMINS = [Role.ADMIN, Role.SUPER_ADMIN]


@router.post("", response_model=RecordRead, status_code=201)
def create_record(
    data: RecordCreate,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    """Create a record (admins only)."""
    record = record_service.create_record(db, data, actor)
    return record_query_service.to_record_read(record, actor)


@router.get("", response_model=RecordListResponse)
def list_records(
    collector_id: str | None = Query(None, description="Collector id or 'unassigned'"),
    search: str | None = Query(None, max_length=200),
    category: str | None = Query(None, description="'history' or 'active'"),
    pagination: PaginationParams = Depends(get_pagination),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """List records visible to the caller."""
    page = record_query_service.list_records(
        db,
        actor,
        pagination,
        collector_id=collector_id,
        search=search,
        category=category,
    )
    return RecordListResponse(
        items=page.items,
        total=page.total,
        page=page.page,
        per_page=page.per_page,
        pages=page.pages,
    )


@router.get("/unique-providers", response_model=list[str])
def list_unique_providers(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return record_query_service.list_unique_providers(db)


@router.get("/summary", response_model=list[ProviderSummary])
def get_summary(
    actor: Actor = Depends(
        require_roles([Role.ADMIN, Role.SUPER_ADMIN, Role.COLLECTOR, Role.PROVIDER])
    ),
    db: Session = Depends(get_db),
):
    """Per-provider case status counts."""
    return summary_service.get_provider_summary(db, actor)


@router.get("/assignments/summary", response_model=list[AssignmentSummaryItem])
def get_assignment_summary(
    start_date: date | None = None,
    end_date: date | None = None,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    return record_query_service.get_assignment_summary(db, start_date, end_date)


@router.patch("/reassign-many", response_model=BulkResult)
def reassign_many(
    data: ReassignManyRequest,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    """Move many records to one collector (or unassign them)."""
    modified = assignment_service.reassign_many(db, data.record_ids, data.collector_id, actor)
    return BulkResult(modified_count=modified)


@router.post("/delete-many", response_model=BulkResult)
def delete_many(
    data: DeleteManyRequest,
    actor: Actor = Depends(require_roles(ADMINS)),
    db: Session = Depends(get_db),
):
    deleted = record_service.delete_records(db, data.record_ids)
    return BulkResult(deleted_count=deleted)


@router.get("/{record_id}", response_model=RecordRead)
def get_record(
    record_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Get one record (respects role-based access)."""
    record = record_service.get_record(db, record_id)
    check_record_access(record, actor)
    return record_query_service.to_record_read(record, actor)


@router.patch("/{record_id}", response_model=RecordRead)
def update_record(
    record_id: str,
    data: RecordUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Partial update (respects role-based access)."""
    record = record_service.get_record(db, record_id, for_update=True)
    check_record_access(record, actor)
    record = record_service.update_record(db, record_id, data, actor, record=record)
    return record_query_service.to_record_read(record, actor)


@router.patch("/{record_id}/assign", response_model=RecordRead)
def assign_record(
    record_id: str,
    data: AssignRequest,
    actor: Actor = Depends(require_roles([Role.ADMIN, Role.SUPER_ADMIN, Role.PROVIDER])),
    db: Session = Depends(get_db),
):
    """Assign a collector; providers may only assign their own records."""
    record = record_service.get_record(db, record_id, for_update=True)
    check_provider_ownership(record, actor)
    record = assignment_service.assign_collector(
        db, record_id, data.collector_id, actor, record=record
    )
    return record_query_service.to_record_read(record, actor)


@router.post("/{record_id}/comments", response_model=RecordRead, status_code=201)
def add_comment(
    record_id: str,
    data: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Add a timeline comment (respects role-based access)."""
    record = record_service.get_record(db, record_id, for_update=True)
    check_record_access(record, actor)
    record = comment_service.add_comment(db, record_id, data, actor, record=record)
    return record_query_service.to_record_read(record, actor)


@router.patch("/{record_id}/comments/{comment_id}", response_model=RecordRead)
def update_comment(
    record_id: str,
    comment_id: str,
    data: CommentUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    record = record_service.get_record(db, record_id, for_update=True)
    check_record_access(record, actor)
    record = comment_service.update_comment(
        db, record_id, comment_id, data, actor, record=record
    )
    return record_query_service.to_record_read(record, actor)
