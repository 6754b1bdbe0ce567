"""Work-queue assignment: collectors (manual) and payment redeemers (automatic)."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lien_recovery.db.enums import Role
from lien_recovery.db.models import Record, RecordAssignmentHistory, User
from lien_recovery.db.types import utcnow
from lien_recovery.schemas.auth import Actor
from lien_recovery.services import record_service, user_service
from lien_recovery.services.errors import parse_uuids
from lien_recovery.services.record_query_service import RECORD_LOAD_OPTIONS, open_wfp_head

logger = logging.getLogger(__name__)


def _apply_collector(
    record: Record,
    collector: User | None,
    actor: Actor,
    now: datetime,
) -> None:
    """Point the record at a collector and append one history entry."""
    from_collector_id = record.assigned_collector_id
    record.assigned_collector_id = collector.id if collector else None
    record.assigned_at = now
    record.assigned_by_id = actor.user_id
    record.updated_at = now
    record.assignment_history.append(
        RecordAssignmentHistory(
            from_collector_id=from_collector_id,
            to_collector_id=collector.id if collector else None,
            assigned_by_id=actor.user_id,
            assigned_at=now,
        )
    )


def assign_collector(
    db: Session,
    record_id: str | UUID,
    collector_id: str | UUID | None,
    actor: Actor,
    *,
    record: Record | None = None,
    now: datetime | None = None,
) -> Record:
    """
    Assign (or, with "unassigned", clear) a record's collector.

    Ownership checks (a Provider may only assign its own records) belong
    to the caller; the actor is recorded as the assigner.
    """
    now = now or utcnow()
    record = record or record_service.get_record(db, record_id, for_update=True)
    collector = user_service.resolve_collector(db, collector_id)
    previous = record.assigned_collector_id

    _apply_collector(record, collector, actor, now)
    db.commit()

    logger.info(
        "Collector assignment changed",
        extra={
            "record_id": str(record.id),
            "from_collector_id": str(previous) if previous else None,
            "to_collector_id": str(collector.id) if collector else None,
            "user_id": str(actor.user_id),
        },
    )
    db.expire_all()
    return record_service.get_record(db, record.id)


def reassign_many(
    db: Session,
    record_ids: list[str | UUID],
    collector_id: str | UUID | None,
    actor: Actor,
    *,
    now: datetime | None = None,
) -> int:
    """
    Bulk reassignment.

    All ids are validated up front and the batch fails on any malformed
    id. Each record's current collector is read first so its history
    entry carries the right `from_collector`. Ids that no longer exist
    are skipped. Returns the number of records modified.
    """
    ids = parse_uuids(record_ids, "record id")
    collector = user_service.resolve_collector(db, collector_id)
    now = now or utcnow()

    records = db.scalars(
        select(Record)
        .where(Record.id.in_(ids))
        .options(*RECORD_LOAD_OPTIONS)
        .with_for_update()
    ).all()
    for record in records:
        _apply_collector(record, collector, actor, now)
    db.commit()

    logger.info(
        "Bulk reassignment",
        extra={
            "requested": len(ids),
            "modified": len(records),
            "to_collector_id": str(collector.id) if collector else None,
            "user_id": str(actor.user_id),
        },
    )
    return len(records)


# =============================================================================
# Payment-redeemer queue
# =============================================================================


def count_redeemer_queues(db: Session, redeemer_ids: list[UUID]) -> dict[UUID, int]:
    """Records per redeemer whose timeline head is an open "waiting for payment"."""
    if not redeemer_ids:
        return {}
    rows = db.execute(
        select(Record.assigned_payment_redeemer_id, func.count(Record.id))
        .where(Record.assigned_payment_redeemer_id.in_(redeemer_ids), open_wfp_head())
        .group_by(Record.assigned_payment_redeemer_id)
    ).all()
    counts = {redeemer_id: 0 for redeemer_id in redeemer_ids}
    for redeemer_id, count in rows:
        counts[redeemer_id] = count
    return counts


def pick_payment_redeemer(db: Session) -> User | None:
    """
    Least-loaded payment redeemer, ties going to the first enumerated.

    Read-then-decide without a lock: concurrent hand-offs may pick the same
    redeemer, so balance is best effort.
    """
    redeemers = user_service.list_users_by_role(db, Role.PAYMENT_REDEEMER)
    if not redeemers:
        return None
    counts = count_redeemer_queues(db, [r.id for r in redeemers])

    best = None
    best_count = None
    for redeemer in redeemers:
        count = counts.get(redeemer.id, 0)
        if best_count is None or count < best_count:
            best, best_count = redeemer, count
    return best


def assign_payment_redeemer(
    db: Session,
    record: Record,
    actor: Actor,
    now: datetime,
) -> User | None:
    """Hand the record to the least-loaded redeemer. Does not commit."""
    redeemer = pick_payment_redeemer(db)
    if redeemer is None:
        logger.warning(
            "No active payment redeemer for hand-off",
            extra={"record_id": str(record.id)},
        )
        return None
    record.assigned_payment_redeemer_id = redeemer.id
    record.payment_assigned_at = now
    record.payment_assigned_by_id = actor.user_id
    return redeemer


def clear_payment_redeemer(record: Record) -> None:
    """Take the record out of the payment queue. Does not commit."""
    record.assigned_payment_redeemer_id = None
    record.payment_assigned_at = None
    record.payment_assigned_by_id = None

