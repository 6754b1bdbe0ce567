"""Role-scoped record queries (visibility policy, listing, providers, assignment summary).

Each role's access rule is a named predicate so it can be composed into
any query and tested on its own:

- collector_clause: records assigned to the collector
- provider_clause: records filed under the provider's own name
- payment_redeemer_clause: records assigned to the redeemer (optionally
  only while the head of the timeline is an open "waiting for payment")
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import String, and_, cast, false, func, or_, select, true
from sqlalchemy.orm import Session, aliased, selectinload
from sqlalchemy.sql.elements import ColumnElement

from lien_recovery.core.constants import UNASSIGNED
from lien_recovery.core.record_access import visible_comments
from lien_recovery.db.enums import CommentStatus, Role
from lien_recovery.db.models import Record, RecordAssignmentHistory, RecordComment
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.record import (
    AssignmentHistoryRead,
    AssignmentSummaryItem,
    RecordRead,
)
from lien_recovery.schemas.user import UserRef
from lien_recovery.services.errors import InvalidArgumentError, parse_uuid
from lien_recovery.utils.business_time import end_of_business_day, start_of_business_day
from lien_recovery.utils.normalization import identities_match, normalize_identity
from lien_recovery.utils.pagination import PaginatedResponse, PaginationParams

logger = logging.getLogger(__name__)

CATEGORY_HISTORY = "history"
CATEGORY_ACTIVE = "active"
CATEGORIES = (CATEGORY_HISTORY, CATEGORY_ACTIVE)

RECORD_LOAD_OPTIONS = (
    selectinload(Record.comments).selectinload(RecordComment.author),
    selectinload(Record.assigned_collector),
    selectinload(Record.assigned_by),
    selectinload(Record.assigned_payment_redeemer),
    selectinload(Record.payment_assigned_by),
    selectinload(Record.assignment_history).selectinload(RecordAssignmentHistory.from_collector),
    selectinload(Record.assignment_history).selectinload(RecordAssignmentHistory.to_collector),
    selectinload(Record.assignment_history).selectinload(RecordAssignmentHistory.assigned_by),
)


# =============================================================================
# Visibility policy
# =============================================================================


def top_comment_matches(*conditions: ColumnElement[bool]) -> ColumnElement[bool]:
    """True when the head of the record's timeline satisfies every condition."""
    inner = aliased(RecordComment)
    head_position = (
        select(func.min(inner.position))
        .where(inner.record_id == Record.id)
        .correlate(Record)
        .scalar_subquery()
    )
    return (
        select(RecordComment.id)
        .where(
            RecordComment.record_id == Record.id,
            RecordComment.position == head_position,
            *conditions,
        )
        .exists()
    )


def open_wfp_head() -> ColumnElement[bool]:
    return top_comment_matches(
        RecordComment.status == CommentStatus.WFP.value,
        RecordComment.is_completed.is_(False),
    )


def collector_clause(user_id: UUID) -> ColumnElement[bool]:
    return Record.assigned_collector_id == user_id


def provider_clause(identity: str | None) -> ColumnElement[bool]:
    normalized = normalize_identity(identity)
    if not normalized:
        return false()
    return func.lower(func.trim(Record.provider)) == normalized


def payment_redeemer_clause(user_id: UUID, *, queue_only: bool = True) -> ColumnElement[bool]:
    clause = Record.assigned_payment_redeemer_id == user_id
    if queue_only:
        clause = and_(clause, open_wfp_head())
    return clause


def scope_clause(actor: Actor, *, queue_only: bool = True) -> ColumnElement[bool]:
    """Predicate selecting the records an actor is allowed to see."""
    if actor.role == Role.COLLECTOR:
        return collector_clause(actor.user_id)
    if actor.role == Role.PROVIDER:
        return provider_clause(actor.identity)
    if actor.role == Role.PAYMENT_REDEEMER:
        return payment_redeemer_clause(actor.user_id, queue_only=queue_only)
    return true()


def visibility_clause(actor: Actor) -> ColumnElement[bool]:
    return scope_clause(actor, queue_only=True)


def matches_visibility(record: Record, actor: Actor, *, queue_only: bool = True) -> bool:
    """In-memory counterpart of scope_clause for an already loaded record."""
    if actor.role == Role.COLLECTOR:
        return record.assigned_collector_id == actor.user_id
    if actor.role == Role.PROVIDER:
        return identities_match(actor.identity, record.provider)
    if actor.role == Role.PAYMENT_REDEEMER:
        if record.assigned_payment_redeemer_id != actor.user_id:
            return False
        if not queue_only:
            return True
        head = record.top_comment
        return (
            head is not None
            and head.status == CommentStatus.WFP.value
            and not head.is_completed
        )
    return True


# =============================================================================
# Listing
# =============================================================================


def _search_clause(search: str) -> ColumnElement[bool]:
    pattern = f"%{search.strip().lower()}%"
    return or_(
        func.lower(Record.provider).like(pattern),
        func.lower(Record.pt_name).like(pattern),
        func.lower(Record.reference_id).like(pattern),
        func.lower(Record.lien_status).like(pattern),
        func.lower(Record.case_status).like(pattern),
        func.lower(cast(Record.adj_number, String)).like(pattern),
        Record.comments.any(func.lower(RecordComment.status).like(pattern)),
    )


def to_record_read(record: Record, actor: Actor | None = None) -> RecordRead:
    """Serialize a record, redacting timeline entries the caller may not see."""
    read = RecordRead.model_validate(record)
    if actor is None:
        return read
    visible = visible_comments(read.comments, actor.role)
    if len(visible) != len(read.comments):
        read = read.model_copy(update={"comments": visible})
    return read


def list_records(
    db: Session,
    actor: Actor,
    pagination: PaginationParams,
    *,
    collector_id: str | None = None,
    search: str | None = None,
    category: str | None = None,
) -> PaginatedResponse[RecordRead]:
    """
    List records visible to the actor, newest first.

    Categories (collector work views):
    - history: records the actor commented on, newest comment first
    - active: records assigned to the actor with no comment by them yet
    """
    if category is not None and category not in CATEGORIES:
        raise InvalidArgumentError(f"Unknown category '{category}'")

    stmt = select(Record).where(visibility_clause(actor))

    if actor.role == Role.COLLECTOR:
        if collector_id == UNASSIGNED:
            raise InvalidArgumentError("Collectors cannot list unassigned records")
    elif collector_id == UNASSIGNED:
        stmt = stmt.where(Record.assigned_collector_id.is_(None))
    elif collector_id:
        stmt = stmt.where(Record.assigned_collector_id == parse_uuid(collector_id, "collector id"))

    if search and search.strip():
        stmt = stmt.where(_search_clause(search))

    authored_by_actor = Record.comments.any(RecordComment.author_id == actor.user_id)
    last_comment = None
    if category == CATEGORY_HISTORY:
        last_comment = (
            select(func.max(RecordComment.created_at))
            .where(RecordComment.record_id == Record.id, RecordComment.author_id == actor.user_id)
            .correlate(Record)
            .scalar_subquery()
        )
        stmt = stmt.where(authored_by_actor)
    elif category == CATEGORY_ACTIVE:
        stmt = stmt.where(collector_clause(actor.user_id), ~authored_by_actor)

    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0

    if last_comment is not None:
        stmt = stmt.order_by(last_comment.desc(), Record.created_at.desc(), Record.id)
    else:
        stmt = stmt.order_by(Record.created_at.desc(), Record.id)

    records = db.scalars(
        stmt.options(*RECORD_LOAD_OPTIONS).offset(pagination.offset).limit(pagination.per_page)
    ).all()

    items = []
    for record in records:
        read = to_record_read(record, actor)
        if category == CATEGORY_HISTORY:
            authored = [c.created_at for c in record.comments if c.author_id == actor.user_id]
            read = read.model_copy(update={"last_comment_date": max(authored) if authored else None})
        items.append(read)

    return PaginatedResponse.create(items, total, pagination)


def list_unique_providers(db: Session) -> list[str]:
    """Distinct non-empty provider names, sorted."""
    providers = db.scalars(
        select(Record.provider).where(Record.provider.is_not(None)).distinct()
    ).all()
    return sorted({p.strip() for p in providers if p and p.strip()})


# =============================================================================
# Assignment summary
# =============================================================================


def _user_ref(user) -> UserRef | None:
    return UserRef.model_validate(user) if user is not None else None


def get_assignment_summary(
    db: Session,
    start: date | None = None,
    end: date | None = None,
) -> list[AssignmentSummaryItem]:
    """
    Current assignee and full reassignment trail per record.

    With a window, a record qualifies when its current assignment or any
    history entry falls inside it (business-day bounds, inclusive).
    """
    lower: datetime | None = start_of_business_day(start) if start else None
    upper: datetime | None = end_of_business_day(end) if end else None

    def in_window(column) -> ColumnElement[bool]:
        conditions = []
        if lower is not None:
            conditions.append(column >= lower)
        if upper is not None:
            conditions.append(column <= upper)
        return and_(*conditions) if conditions else true()

    stmt = select(Record).where(
        or_(Record.assigned_at.is_not(None), Record.assignment_history.any())
    )
    if lower is not None or upper is not None:
        stmt = stmt.where(
            or_(
                and_(Record.assigned_at.is_not(None), in_window(Record.assigned_at)),
                Record.assignment_history.any(in_window(RecordAssignmentHistory.assigned_at)),
            )
        )
    stmt = stmt.options(*RECORD_LOAD_OPTIONS).order_by(
        Record.assigned_at.desc().nulls_last(), Record.id
    )

    summary = []
    for record in db.scalars(stmt).all():
        summary.append(
            AssignmentSummaryItem(
                record_id=record.id,
                reference_id=record.reference_id,
                provider=record.provider,
                pt_name=record.pt_name,
                assigned_collector=_user_ref(record.assigned_collector),
                assigned_by=_user_ref(record.assigned_by),
                assigned_at=record.assigned_at,
                history=[
                    AssignmentHistoryRead.model_validate(entry)
                    for entry in record.assignment_history
                ],
            )
        )
    return summary
