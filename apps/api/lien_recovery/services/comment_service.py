"""Comment/timeline engine: prepend, auto-complete, role gates and queue hand-off."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from lien_recovery.core.config import settings
from lien_recovery.db.enums import ADMIN_ROLES, PAYMENT_QUEUE_EXIT_STATUSES, CommentStatus, Role
from lien_recovery.db.models import Record, RecordComment
from lien_recovery.db.types import utcnow
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.comment import CommentCreate, CommentUpdate
from lien_recovery.services import assignment_service, record_service
from lien_recovery.services.errors import (
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    parse_uuid,
)

logger = logging.getLogger(__name__)

# Statuses restricted to specific roles; everything else is open to any
# role with access to the record.
STATUS_ROLE_GATES: dict[CommentStatus, frozenset[Role]] = {
    CommentStatus.CLOSED: ADMIN_ROLES,
    CommentStatus.PAYMENT_RECEIVED: frozenset({Role.PAYMENT_REDEEMER}),
}

_GATE_MESSAGES = {
    CommentStatus.CLOSED: "Only administrators or super admins can use this status.",
    CommentStatus.PAYMENT_RECEIVED: "Only Payment Redeemer can add 'Payment Received' comments.",
}


def check_status_permission(status: CommentStatus, actor: Actor) -> None:
    """Raise ForbiddenError when the actor's role may not post this status."""
    allowed = STATUS_ROLE_GATES.get(status)
    if allowed is not None and actor.role not in allowed:
        raise ForbiddenError(_GATE_MESSAGES[status])


def approximate_base64_size(payload: str) -> int:
    """Decoded size of a base64 string, without decoding it."""
    return (len(payload) * 3) // 4


def validate_payment_details(data: CommentCreate) -> None:
    """
    A payment_received comment must carry the check.

    Number (non-blank), date, positive amount and a scanned copy under the
    size limit. Raises InvalidArgumentError before anything is written.
    """
    if not (data.check_number or "").strip():
        raise InvalidArgumentError("Check Number is required.")
    if data.check_date is None:
        raise InvalidArgumentError("Check Date is required.")
    if data.check_amount is None or data.check_amount <= 0:
        raise InvalidArgumentError("Check Amount must be greater than 0.")
    if data.check_copy is None or not data.check_copy.base64:
        raise InvalidArgumentError("Attach Copy of Check is required.")
    if approximate_base64_size(data.check_copy.base64) > settings.CHECK_COPY_MAX_BYTES:
        max_mb = settings.CHECK_COPY_MAX_BYTES // (1024 * 1024)
        raise InvalidArgumentError(f"Check copy file too large. Max {max_mb}MB.")


def complete_open_items(record: Record, now: datetime) -> int:
    """Mark every open follow-up on the record completed. Returns how many."""
    completed = 0
    for comment in record.comments:
        if comment.is_open:
            comment.is_completed = True
            comment.completed_at = now
            comment.updated_at = now
            completed += 1
    return completed


def next_head_position(record: Record) -> int:
    if not record.comments:
        return 0
    return min(c.position for c in record.comments) - 1


def add_comment(
    db: Session,
    record_id: str | UUID,
    data: CommentCreate,
    actor: Actor,
    *,
    record: Record | None = None,
    now: datetime | None = None,
) -> Record:
    """
    Prepend a comment to the record's timeline.

    In one transaction:
    1. every open follow-up is auto-completed
    2. the new comment becomes the head of the timeline
    3. "wfp" hands the record to the least-loaded payment redeemer;
       "payment_received" / "closed" take it out of the payment queue
    """
    check_status_permission(data.status, actor)
    if data.status == CommentStatus.PAYMENT_RECEIVED:
        validate_payment_details(data)
    if data.scheduled_time and data.scheduled_date is None:
        raise InvalidArgumentError("Scheduled time requires a scheduled date.")

    now = now or utcnow()
    record = record or record_service.get_record(db, record_id, for_update=True)

    auto_completed = complete_open_items(record, now)

    is_payment = data.status == CommentStatus.PAYMENT_RECEIVED
    comment = RecordComment(
        position=next_head_position(record),
        text=data.text,
        status=data.status.value,
        author_id=actor.user_id,
        scheduled_date=data.scheduled_date,
        scheduled_time=data.scheduled_time if data.scheduled_date else None,
        offer_amount=data.offer_amount,
        check_number=data.check_number.strip() if is_payment else None,
        check_date=data.check_date if is_payment else None,
        check_amount=data.check_amount if is_payment else None,
        check_copy=data.check_copy.model_dump() if is_payment else None,
        is_completed=False,
        created_at=now,
        updated_at=now,
    )

    redeemer = None
    if data.status == CommentStatus.WFP:
        # Picked before the new head is flushed, so this record's own
        # previous queue state still counts toward the load.
        redeemer = assignment_service.assign_payment_redeemer(db, record, actor, now)
    elif data.status in PAYMENT_QUEUE_EXIT_STATUSES:
        assignment_service.clear_payment_redeemer(record)

    record.comments.insert(0, comment)
    record.updated_at = now
    db.commit()

    logger.info(
        "Comment added",
        extra={
            "record_id": str(record.id),
            "comment_id": str(comment.id),
            "status": data.status.value,
            "auto_completed": auto_completed,
            "user_id": str(actor.user_id),
        },
    )
    if redeemer is not None:
        logger.info(
            "Record handed to payment redeemer",
            extra={"record_id": str(record.id), "redeemer_id": str(redeemer.id)},
        )

    db.expire_all()
    return record_service.get_record(db, record.id)


def update_comment(
    db: Session,
    record_id: str | UUID,
    comment_id: str | UUID,
    data: CommentUpdate,
    actor: Actor,
    *,
    record: Record | None = None,
    now: datetime | None = None,
) -> Record:
    """Toggle completion of one comment; completing stamps completed_at."""
    comment_uuid = parse_uuid(comment_id, "comment id")
    now = now or utcnow()
    record = record or record_service.get_record(db, record_id, for_update=True)

    comment = next((c for c in record.comments if c.id == comment_uuid), None)
    if comment is None:
        raise NotFoundError("Comment not found")

    comment.is_completed = data.is_completed
    comment.updated_at = now
    if data.is_completed:
        comment.completed_at = now
    db.commit()

    logger.info(
        "Comment updated",
        extra={
            "record_id": str(record.id),
            "comment_id": str(comment.id),
            "is_completed": data.is_completed,
            "user_id": str(actor.user_id),
        },
    )
    db.expire_all()
    return record_service.get_record(db, record.id)
