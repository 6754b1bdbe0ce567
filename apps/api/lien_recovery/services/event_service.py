"""Scheduling & notification engine.

Everything here is computed on demand from the timelines; nothing is
stored. A follow-up's (scheduled_date, scheduled_time) is Pacific wall
clock, converted to an absolute instant before any comparison.

Every entry point accepts an optional `now` so callers and tests can pin
the clock.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from lien_recovery.core.constants import (
    ASSIGNMENT_BANNER_TTL,
    ASSIGNMENT_LOOKBACK,
    FOLLOW_UP_WINDOW,
    OVERDUE_GRACE_PERIOD,
)
from lien_recovery.db.enums import ADMIN_ROLES, CommentStatus, Role
from lien_recovery.db.models import Record, RecordComment
from lien_recovery.db.types import utcnow
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.events import (
    HearingEvent,
    Notification,
    OverdueEvent,
    ScheduledEvent,
)
from lien_recovery.schemas.user import UserRef
from lien_recovery.services.record_query_service import RECORD_LOAD_OPTIONS, scope_clause
from lien_recovery.utils.business_time import (
    business_date,
    end_of_business_day,
    format_business_hhmm,
    to_business_instant,
)
from lien_recovery.utils.normalization import entry_values

logger = logging.getLogger(__name__)

# Roles that receive assignment banners, keyed to the queue they work
ASSIGNMENT_ALERT_ROLES = frozenset({Role.COLLECTOR, Role.PAYMENT_REDEEMER})


def _user_ref(user) -> UserRef | None:
    return UserRef.model_validate(user) if user is not None else None


def scheduled_instant(comment: RecordComment) -> datetime:
    """Absolute instant of a follow-up; date-only follow-ups start at midnight PT."""
    return to_business_instant(comment.scheduled_date, comment.scheduled_time)


def follow_up_deadline(comment: RecordComment) -> datetime:
    """Scheduled instant + grace when timed, else the end of the business day."""
    if comment.scheduled_time:
        return scheduled_instant(comment) + OVERDUE_GRACE_PERIOD
    return end_of_business_day(comment.scheduled_date)


def classify_follow_up(instant: datetime, now: datetime) -> str:
    """
    Place a follow-up relative to now.

    upcoming: due within the next hour
    active:   due within the last hour
    overdue:  more than an hour past
    Anything further out than the window is "later".
    """
    if instant > now:
        return "upcoming" if instant <= now + FOLLOW_UP_WINDOW else "later"
    if instant >= now - FOLLOW_UP_WINDOW:
        return "active"
    return "overdue"


def latest_open_comment(
    comments: Iterable[RecordComment],
    *,
    key: Callable[[RecordComment], object] | None = None,
    predicate: Callable[[RecordComment], bool] | None = None,
) -> RecordComment | None:
    """Open follow-up with the greatest key (default: created_at)."""
    key = key or (lambda c: c.created_at)
    candidates = [c for c in comments if c.is_open and (predicate is None or predicate(c))]
    if not candidates:
        return None
    return max(candidates, key=key)


def _records_with_open_items(db: Session, *clauses) -> list[Record]:
    open_item = RecordComment.is_completed.is_(False) & RecordComment.scheduled_date.is_not(None)
    stmt = (
        select(Record)
        .where(Record.comments.any(open_item), *clauses)
        .options(*RECORD_LOAD_OPTIONS)
    )
    return list(db.scalars(stmt).all())


# =============================================================================
# Calendar
# =============================================================================


def get_scheduled_events(
    db: Session,
    actor: Actor,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[ScheduledEvent]:
    """
    One calendar event per record: its most recently created open follow-up.

    Collectors see their queue, providers their own records, payment
    redeemers their assigned records and only "wfp" follow-ups.
    """

    def in_window(comment: RecordComment) -> bool:
        if start_date and comment.scheduled_date < start_date:
            return False
        if end_date and comment.scheduled_date > end_date:
            return False
        if actor.role == Role.PAYMENT_REDEEMER and comment.status != CommentStatus.WFP.value:
            return False
        return True

    events: list[tuple[datetime, ScheduledEvent]] = []
    for record in _records_with_open_items(db, scope_clause(actor, queue_only=False)):
        comment = latest_open_comment(record.comments, predicate=in_window)
        if comment is None:
            continue
        try:
            instant = scheduled_instant(comment)
        except ValueError:
            logger.warning(
                "Skipping follow-up with unreadable schedule",
                extra={"record_id": str(record.id), "comment_id": str(comment.id)},
            )
            continue
        events.append(
            (
                instant,
                ScheduledEvent(
                    record_id=record.id,
                    comment_id=comment.id,
                    reference_id=record.reference_id,
                    pt_name=record.pt_name,
                    text=comment.text,
                    status=comment.status,
                    scheduled_date=comment.scheduled_date,
                    scheduled_time=comment.scheduled_time,
                    scheduled_at=instant,
                    offer_amount=comment.offer_amount,
                    author=_user_ref(comment.author),
                    assigned_collector=_user_ref(record.assigned_collector),
                    created_at=comment.created_at,
                ),
            )
        )
    events.sort(key=lambda pair: pair[0])
    return [event for _, event in events]


# =============================================================================
# Notifications
# =============================================================================


def _notification_scope(actor: Actor):
    if actor.role == Role.COLLECTOR:
        return Record.assigned_collector_id == actor.user_id
    if actor.role == Role.PAYMENT_REDEEMER:
        return Record.assigned_payment_redeemer_id == actor.user_id
    return None


def _visible_kinds(role: Role) -> frozenset[str]:
    # Admins chase missed follow-ups; queue workers act before the deadline
    if role in ADMIN_ROLES:
        return frozenset({"overdue"})
    if role in ASSIGNMENT_ALERT_ROLES:
        return frozenset({"upcoming"})
    return frozenset()


def _follow_up_alerts(db: Session, actor: Actor, now: datetime) -> list[Notification]:
    kinds = _visible_kinds(actor.role)
    if not kinds:
        return []
    scope = _notification_scope(actor)
    clauses = [scope] if scope is not None else []

    alerts = []
    for record in _records_with_open_items(db, *clauses):
        timed = [c for c in record.comments if c.is_open and c.scheduled_time]
        try:
            comment = latest_open_comment(timed, key=scheduled_instant)
            if comment is None:
                continue
            instant = scheduled_instant(comment)
        except ValueError:
            logger.warning(
                "Skipping follow-up with unreadable schedule",
                extra={"record_id": str(record.id)},
            )
            continue

        kind = classify_follow_up(instant, now)
        if kind not in kinds:
            continue
        alerts.append(
            Notification(
                record_id=record.id,
                comment_id=comment.id,
                pt_name=record.pt_name,
                text=comment.text,
                status=comment.status,
                scheduled_date=comment.scheduled_date,
                scheduled_time=comment.scheduled_time,
                scheduled_at=instant,
                author=_user_ref(comment.author),
                assigned_collector=_user_ref(record.assigned_collector),
                kind=kind,
                is_overdue=kind == "overdue",
            )
        )
    return alerts


def _assignment_alerts(db: Session, actor: Actor, now: datetime) -> list[Notification]:
    """
    Banner for work handed to the actor in the last hour and not yet touched.

    "Touched" means the actor posted any comment after the hand-off.
    """
    if actor.role not in ASSIGNMENT_ALERT_ROLES:
        return []

    if actor.role == Role.COLLECTOR:
        owner_column, assigned_column = Record.assigned_collector_id, Record.assigned_at
    else:
        owner_column, assigned_column = (
            Record.assigned_payment_redeemer_id,
            Record.payment_assigned_at,
        )

    since = now - min(ASSIGNMENT_LOOKBACK, ASSIGNMENT_BANNER_TTL)
    stmt = (
        select(Record)
        .where(
            owner_column == actor.user_id,
            assigned_column.is_not(None),
            assigned_column >= since,
            assigned_column <= now,
        )
        .options(*RECORD_LOAD_OPTIONS)
    )

    alerts = []
    for record in db.scalars(stmt).all():
        assigned_at = getattr(record, assigned_column.key)
        touched = any(
            c.author_id == actor.user_id and c.created_at > assigned_at
            for c in record.comments
        )
        if touched:
            continue
        alerts.append(
            Notification(
                record_id=record.id,
                comment_id=None,
                pt_name=record.pt_name,
                text=f"New record assigned: {record.pt_name}",
                status="Assigned",
                scheduled_date=business_date(assigned_at),
                scheduled_time=format_business_hhmm(assigned_at),
                scheduled_at=assigned_at,
                author=None,
                assigned_collector=_user_ref(record.assigned_collector),
                kind="assignment",
                is_assignment=True,
            )
        )
    return alerts


def get_notifications(
    db: Session,
    actor: Actor,
    *,
    now: datetime | None = None,
) -> list[Notification]:
    """Follow-up alerts plus assignment banners, soonest first."""
    now = now or utcnow()
    notifications = _follow_up_alerts(db, actor, now)
    seen = {n.record_id for n in notifications}
    for alert in _assignment_alerts(db, actor, now):
        if alert.record_id in seen:
            continue
        seen.add(alert.record_id)
        notifications.append(alert)
    notifications.sort(key=lambda n: n.scheduled_at)
    return notifications


# =============================================================================
# Org-wide sweeps
# =============================================================================


def get_overdue_events(db: Session, *, now: datetime | None = None) -> list[OverdueEvent]:
    """
    Every record whose latest open follow-up has passed its deadline.

    Not role-scoped; callers restrict this to admins.
    """
    now = now or utcnow()
    overdue: list[OverdueEvent] = []
    for record in _records_with_open_items(db):
        comment = latest_open_comment(record.comments)
        if comment is None:
            continue
        try:
            deadline = follow_up_deadline(comment)
        except ValueError:
            logger.warning(
                "Skipping follow-up with unreadable schedule",
                extra={"record_id": str(record.id), "comment_id": str(comment.id)},
            )
            continue
        if now <= deadline:
            continue
        overdue.append(
            OverdueEvent(
                record_id=record.id,
                comment_id=comment.id,
                reference_id=record.reference_id,
                provider=record.provider,
                pt_name=record.pt_name,
                text=comment.text,
                status=comment.status,
                scheduled_date=comment.scheduled_date,
                scheduled_time=comment.scheduled_time,
                deadline=deadline,
                author=_user_ref(comment.author),
                assigned_collector=_user_ref(record.assigned_collector),
            )
        )
    overdue.sort(key=lambda event: event.deadline)
    return overdue


def get_hearing_events(
    db: Session,
    start_date: date | None = None,
    end_date: date | None = None,
    actor: Actor | None = None,
) -> list[HearingEvent]:
    """Records with a hearing date, soonest first, optionally windowed and role-scoped."""
    conditions = [Record.hearing_date.is_not(None)]
    if start_date:
        conditions.append(Record.hearing_date >= start_date)
    if end_date:
        conditions.append(Record.hearing_date <= end_date)
    if actor is not None:
        conditions.append(scope_clause(actor, queue_only=False))

    stmt = (
        select(Record)
        .where(and_(*conditions))
        .options(*RECORD_LOAD_OPTIONS)
        .order_by(Record.hearing_date, Record.id)
    )

    events = []
    for record in db.scalars(stmt).all():
        head = record.top_comment
        events.append(
            HearingEvent(
                record_id=record.id,
                reference_id=record.reference_id,
                provider=record.provider,
                pt_name=record.pt_name,
                adj_number=entry_values(record.adj_number),
                case_status=record.case_status,
                hearing_status=record.hearing_status,
                hearing_date=record.hearing_date,
                hearing_time=record.hearing_time,
                judge_name=record.judge_name,
                court_room_link=record.court_room_link,
                judge_phone=record.judge_phone,
                access_code=record.access_code,
                board_location=record.board_location,
                pmr_status=record.pmr_status,
                dor_filed_by=record.dor_filed_by,
                status_4903_8=record.status_4903_8,
                judge_order_status=record.judge_order_status,
                assigned_collector=_user_ref(record.assigned_collector),
                last_comment_author=_user_ref(head.author) if head else None,
            )
        )
    return events
