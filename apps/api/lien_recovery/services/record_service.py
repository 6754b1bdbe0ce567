"""Record writer: create, update, delete and single-record reads."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lien_recovery.db.enums import DocumentFlag
from lien_recovery.db.models import Record, RecordAssignmentHistory, RecordComment
from lien_recovery.db.types import utcnow
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.record import RecordCreate, RecordUpdate
from lien_recovery.services import reference_id_service, user_service
from lien_recovery.services.errors import ConflictError, NotFoundError, parse_uuid, parse_uuids
from lien_recovery.services.record_query_service import RECORD_LOAD_OPTIONS
from lien_recovery.utils.currency import compute_outstanding

logger = logging.getLogger(__name__)

ENTRY_FIELDS = ("doi", "adj_number", "claim_no")
DOCUMENT_FLAG_FIELDS = ("ledger", "hcf", "invoice", "signin_sheet")
# Admin-only on update; silently ignored for everyone else
PRIVILEGED_FIELDS = frozenset({"provider"})


def get_record(db: Session, record_id: str | UUID, *, for_update: bool = False) -> Record:
    """Load a record with its timeline; raises NotFoundError when missing."""
    stmt = select(Record).where(Record.id == parse_uuid(record_id, "record id"))
    if for_update:
        stmt = stmt.with_for_update()
    record = db.scalars(stmt.options(*RECORD_LOAD_OPTIONS)).first()
    if record is None:
        raise NotFoundError("Record not found")
    return record


def _field_values(data: RecordCreate | RecordUpdate, *, exclude_unset: bool) -> dict:
    values = data.model_dump(exclude_unset=exclude_unset, exclude={"assigned_collector_id"})
    for field in ENTRY_FIELDS:
        if field in values:
            values[field] = [
                {"value": entry["value"]} for entry in values[field] or []
            ]
    for field in DOCUMENT_FLAG_FIELDS:
        if field in values and values[field] is None:
            values[field] = DocumentFlag.NOT_REQUIRED.value
    for field, value in values.items():
        if isinstance(value, Enum):
            values[field] = value.value
    return values


def create_record(
    db: Session,
    data: RecordCreate,
    actor: Actor | None = None,
    *,
    now: datetime | None = None,
) -> Record:
    """
    Create a record with a freshly drawn reference id.

    When `assigned_collector_id` is set the record starts in that
    collector's queue, with one history entry. A reference-id collision
    resyncs the counter and retries once before surfacing ConflictError.
    """
    now = now or utcnow()
    collector = user_service.resolve_collector(db, data.assigned_collector_id)
    values = _field_values(data, exclude_unset=False)
    values["outstanding"] = compute_outstanding(data.bill, data.paid)

    record = None
    for attempt in range(2):
        record = Record(
            reference_id=reference_id_service.next_reference_id(db),
            record_created_at=now,
            created_at=now,
            updated_at=now,
            **values,
        )
        if collector is not None:
            record.assigned_collector_id = collector.id
            record.assigned_at = now
            record.assigned_by_id = actor.user_id if actor else None
            record.assignment_history.append(
                RecordAssignmentHistory(
                    from_collector_id=None,
                    to_collector_id=collector.id,
                    assigned_by_id=actor.user_id if actor else None,
                    assigned_at=now,
                )
            )
        db.add(record)
        try:
            db.commit()
            break
        except IntegrityError as exc:
            db.rollback()
            if not reference_id_service.is_reference_id_conflict(exc):
                raise
            if attempt == 0:
                logger.warning("Reference id collision, retrying with a fresh id")
                reference_id_service.resync_counter(db)
                continue
            raise ConflictError("Could not allocate a unique reference id") from exc

    logger.info(
        "Record created",
        extra={
            "record_id": str(record.id),
            "reference_id": record.reference_id,
            "user_id": str(actor.user_id) if actor else None,
        },
    )
    return get_record(db, record.id)


def update_record(
    db: Session,
    record_id: str | UUID,
    data: RecordUpdate,
    actor: Actor,
    *,
    record: Record | None = None,
) -> Record:
    """
    Partial update.

    The reference id is never writable; provider changes need an admin.
    Outstanding is recomputed from the merged bill/paid whenever either moves.
    """
    record = record or get_record(db, record_id, for_update=True)
    values = _field_values(data, exclude_unset=True)

    if not actor.is_admin:
        for field in PRIVILEGED_FIELDS & values.keys():
            logger.info(
                "Dropping privileged field from update",
                extra={"record_id": str(record.id), "field": field, "role": actor.role.value},
            )
            values.pop(field)

    for field, value in values.items():
        setattr(record, field, value)

    if "bill" in values or "paid" in values:
        record.outstanding = compute_outstanding(record.bill, record.paid)

    db.commit()
    logger.info(
        "Record updated",
        extra={"record_id": str(record.id), "fields": sorted(values.keys())},
    )
    db.expire_all()
    return get_record(db, record.id)


def delete_records(db: Session, record_ids: list[str | UUID]) -> int:
    """
    Bulk delete.

    Every id is validated before anything is removed.
    """
    ids = parse_uuids(record_ids, "record id")
    db.execute(delete(RecordComment).where(RecordComment.record_id.in_(ids)))
    db.execute(delete(RecordAssignmentHistory).where(RecordAssignmentHistory.record_id.in_(ids)))
    result = db.execute(delete(Record).where(Record.id.in_(ids)))
    db.commit()
    deleted = result.rowcount or 0
    logger.info("Records deleted", extra={"requested": len(ids), "deleted": deleted})
    return deleted
