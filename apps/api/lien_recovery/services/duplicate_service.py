"""Duplicate detection and provenance-preserving merge."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from lien_recovery.db.models import Record, RecordComment
from lien_recovery.db.types import utcnow
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.duplicate import MergeResult
from lien_recovery.services.errors import InvalidArgumentError, NotFoundError, parse_uuid
from lien_recovery.services.record_query_service import RECORD_LOAD_OPTIONS
from lien_recovery.utils.normalization import entry_values, identities_match, normalize_identity

logger = logging.getLogger(__name__)


def _adj_keys(values) -> set[str]:
    return {value.strip() for value in entry_values(values) if value.strip()}


def find_duplicates(db: Session) -> list[Record]:
    """
    Records sharing provider, patient name and at least one adjuster number.

    Provider and patient name compare case-insensitively; a record with N
    adjuster numbers takes part in N groups. Returns every record that
    appears in a group of two or more, sorted by provider then patient.
    """
    rows = db.execute(select(Record.id, Record.provider, Record.pt_name, Record.adj_number)).all()

    groups: dict[tuple[str, str, str], set[UUID]] = defaultdict(set)
    for record_id, provider, pt_name, adj_number in rows:
        provider_key = normalize_identity(provider)
        patient_key = normalize_identity(pt_name)
        if not provider_key or not patient_key:
            continue
        for adj in _adj_keys(adj_number):
            groups[(provider_key, patient_key, adj)].add(record_id)

    duplicate_ids: set[UUID] = set()
    for members in groups.values():
        if len(members) > 1:
            duplicate_ids |= members
    if not duplicate_ids:
        return []

    return list(
        db.scalars(
            select(Record)
            .where(Record.id.in_(duplicate_ids))
            .options(*RECORD_LOAD_OPTIONS)
            .order_by(Record.provider, Record.pt_name, Record.id)
        ).all()
    )


def build_source_snapshot(record: Record) -> dict:
    """Denormalized view of a duplicate, kept on each comment merged from it."""
    collector = record.assigned_collector
    return {
        "provider": record.provider,
        "pt_name": record.pt_name,
        "adj_numbers": entry_values(record.adj_number),
        "record_created_at": record.record_created_at.isoformat() if record.record_created_at else None,
        "assigned_collector": (
            {"id": str(collector.id), "username": collector.username} if collector else None
        ),
    }


def _check_mergeable(primary: Record, duplicate: Record) -> None:
    label = duplicate.reference_id or str(duplicate.id)
    if not identities_match(primary.provider, duplicate.provider) or not identities_match(
        primary.pt_name, duplicate.pt_name
    ):
        raise InvalidArgumentError(
            f"Record {label} does not match the primary record's provider and patient name"
        )
    primary_adj = _adj_keys(primary.adj_number)
    if primary_adj and not primary_adj & _adj_keys(duplicate.adj_number):
        raise InvalidArgumentError(
            f"Record {label} shares no adjuster number with the primary record"
        )


def plan_merged_comments(
    primary: Record,
    duplicates: list[Record],
    now: datetime,
) -> list[RecordComment]:
    """
    Copies of every duplicate comment not already merged into the primary.

    Originals keep their text, status, author, schedule, offer, payment and
    completion fields and timestamps. Dedup key is source record + source
    comment, so a comment is never merged twice.
    """
    merged_keys = {c.merge_key for c in primary.comments if c.merge_key}
    planned = []
    for duplicate in duplicates:
        snapshot = build_source_snapshot(duplicate)
        for original in duplicate.comments:
            key = f"{duplicate.id}:{original.id}"
            if key in merged_keys:
                continue
            merged_keys.add(key)
            planned.append(
                RecordComment(
                    text=original.text,
                    status=original.status,
                    author_id=original.author_id,
                    scheduled_date=original.scheduled_date,
                    scheduled_time=original.scheduled_time,
                    offer_amount=original.offer_amount,
                    check_number=original.check_number,
                    check_date=original.check_date,
                    check_amount=original.check_amount,
                    check_copy=original.check_copy,
                    is_completed=original.is_completed,
                    completed_at=original.completed_at,
                    is_from_merged_record=True,
                    source_record_id=duplicate.id,
                    source_comment_id=original.id,
                    source_record_snapshot=snapshot,
                    merged_at=now,
                    created_at=original.created_at,
                    updated_at=original.updated_at,
                )
            )
    return planned


def merge_selected_duplicates(
    db: Session,
    primary_id: str | UUID,
    duplicate_ids: list[str | UUID],
    actor: Actor | None = None,
    *,
    now: datetime | None = None,
) -> MergeResult:
    """
    Fold duplicate records into a primary, then delete the duplicates.

    Validation runs before any write. The primary's whole timeline is
    re-ordered chronologically (oldest first) since two timelines are being
    reconciled. Append and delete commit in one transaction.
    """
    primary_uuid = parse_uuid(primary_id, "primary id")
    duplicate_uuids: list[UUID] = []
    for value in duplicate_ids:
        uuid_value = parse_uuid(value, "duplicate id")
        if uuid_value not in duplicate_uuids:
            duplicate_uuids.append(uuid_value)
    if not duplicate_uuids:
        raise InvalidArgumentError("At least one duplicate id is required")
    if primary_uuid in duplicate_uuids:
        raise InvalidArgumentError("Primary record cannot also be a duplicate")

    now = now or utcnow()
    records = {
        record.id: record
        for record in db.scalars(
            select(Record)
            .where(Record.id.in_([primary_uuid, *duplicate_uuids]))
            .options(*RECORD_LOAD_OPTIONS)
            .with_for_update()
        ).all()
    }
    primary = records.get(primary_uuid)
    if primary is None:
        raise NotFoundError("Primary record not found")
    missing = [str(d) for d in duplicate_uuids if d not in records]
    if missing:
        raise NotFoundError(f"Duplicate records not found: {', '.join(missing)}")
    duplicates = [records[d] for d in duplicate_uuids]

    for duplicate in duplicates:
        _check_mergeable(primary, duplicate)

    planned = plan_merged_comments(primary, duplicates, now)

    timeline = sorted(
        [*primary.comments, *planned],
        key=lambda c: (c.created_at, str(c.source_comment_id or c.id or "")),
    )
    for position, comment in enumerate(timeline):
        comment.position = position
    primary.comments.extend(planned)
    primary.updated_at = now

    for duplicate in duplicates:
        db.delete(duplicate)
    db.commit()

    logger.info(
        "Duplicates merged",
        extra={
            "record_id": str(primary.id),
            "merged_records": len(duplicates),
            "merged_comments": len(planned),
            "user_id": str(actor.user_id) if actor else None,
        },
    )
    return MergeResult(
        primary_id=str(primary.id),
        merged_records=len(duplicates),
        merged_comments=len(planned),
        deleted_duplicates=len(duplicates),
    )
